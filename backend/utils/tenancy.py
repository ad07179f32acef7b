from fastapi import Header, HTTPException


def get_tenant_id(x_tenant_id: str = Header(...)) -> str:
    """Tenant of the caller; every store query is scoped by this value."""
    tenant_id = x_tenant_id.strip()
    if not tenant_id:
        raise HTTPException(status_code=400, detail="X-Tenant-ID header is missing")
    return tenant_id
