from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jetski.api.deps import get_tenant, to_http
from jetski.db import get_db
from jetski.schemas.policy_schema import BookingPolicyOut, BookingPolicyUpdate
from jetski.services.exceptions import BookingException
from jetski.services.policy_service import BookingPolicyService

router = APIRouter(prefix="/api/booking-policy", tags=["booking-policy"])


@router.get("", response_model=BookingPolicyOut)
def get_policy(tenant_id: str = Depends(get_tenant), db: Session = Depends(get_db)):
    return BookingPolicyService(db).get_or_create(tenant_id)


@router.put("", response_model=BookingPolicyOut)
def update_policy(
    payload: BookingPolicyUpdate,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return BookingPolicyService(db).update(tenant_id, payload.model_dump(exclude_unset=True))
    except BookingException as e:
        raise to_http(e)
