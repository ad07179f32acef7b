from fastapi import FastAPI, Request
from dotenv import load_dotenv

load_dotenv()
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from database import Base, engine
from datetime import datetime
from exceptions import ConflictError, NotFoundError, PurchaseOrderError, StorageError, ValidationError
import models  # noqa: F401  registers every table on Base.metadata
import routers.purchase_orders as purchase_orders
import routers.inventory_items as inventory_items
import os
import logging
from fastapi.openapi.utils import get_openapi


LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True) # Create the log directory if it doesn't exist

# Create a unique log file name based on current date/time
current_time_str = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
LOG_FILE = os.path.join(LOG_DIR, f"app_{current_time_str}.log")

# Configure the root logger
logging.basicConfig(
    level=logging.INFO, # Set desired minimum log level (INFO, DEBUG, WARNING, ERROR, CRITICAL)
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename=LOG_FILE, # Log to a file
    filemode='a' # Append to the file if it exists
)

# Also add a StreamHandler so logs show up in the terminal as well as the file
console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logging.getLogger().addHandler(console_handler) # Add to the root logger

# Get a logger for this module (app.main)
logger = logging.getLogger(__name__)
logger.info("Application starting up...")
# --- End Logging Configuration ---


# Create database tables; production schemas are managed by alembic
Base.metadata.create_all(bind=engine)


app = FastAPI()


allowed_origins_str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173"
)

# Split the string into a list, stripping any whitespace
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(',')]

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Typed engine errors -> HTTP status; anything unlisted is a 500
ERROR_STATUS_CODES = {
    NotFoundError: 404,
    ValidationError: 422,
    ConflictError: 409,
    StorageError: 503,
}


@app.exception_handler(PurchaseOrderError)
async def purchase_order_error_handler(request: Request, exc: PurchaseOrderError):
    status_code = next(
        (code for error_cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_cls)),
        500,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "detail": str(exc), "details": getattr(exc, "details", [])},
    )


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Purchase Order Engine API",
        version="1.0.0",
        description="Purchase order lifecycle and inventory reconciliation",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    # Apply security globally to all endpoints
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi


app.include_router(purchase_orders.router)
app.include_router(inventory_items.router)


@app.get("/")
async def test_route():
    return {"message": "Welcome to the Purchase Order Engine API!"}
