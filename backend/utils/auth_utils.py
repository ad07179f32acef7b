import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import HTTPException, Request, status
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

load_dotenv()

logger = logging.getLogger("auth")

# Tokens are issued by the external identity service; this side only verifies them.
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")


def decode_token(token: str) -> Dict[str, Any]:
    options = {"verify_aud": JWT_AUDIENCE is not None}
    return jwt.decode(
        token,
        JWT_SECRET_KEY,
        algorithms=[JWT_ALGORITHM],
        audience=JWT_AUDIENCE,
        options=options,
    )


def get_current_user(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency to validate the bearer JWT from the Authorization header.

    Usage:
        @app.get("/secure-data", dependencies=[Depends(get_current_user)])
        def secure_endpoint():
            return {"message": "This is secure data."}
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing",
        )

    # The token is expected to be in the format "Bearer <token>"
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    try:
        return decode_token(parts[1])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except JWTClaimsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token claims: {e}"
        )
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {e}"
        )


def get_user_identifier(user: Optional[Dict[str, Any]]) -> Optional[str]:
    """Best human-readable identifier for audit columns: email, then username, then subject."""
    if not user:
        return None
    return user.get("email") or user.get("username") or user.get("cognito:username") or user.get("sub")
