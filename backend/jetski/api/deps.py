from fastapi import Header, HTTPException

from jetski.services.exceptions import (
    BookingException,
    BusinessRuleViolation,
    NotFoundError,
    ValidationError,
)


def get_tenant(x_tenant_id: str = Header(...)) -> str:
    if not x_tenant_id.strip():
        raise HTTPException(status_code=400, detail="X-Tenant-Id header is required")
    return x_tenant_id.strip()


def to_http(e: BookingException) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, BusinessRuleViolation):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))
