from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.user import User
from app.schemas.delivery_cost_schemas import DeliveryCostUpdate
from app.services import delivery_cost_service


router = APIRouter()


@router.get("")
def get_delivery_costs(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    return {
        "success": True,
        "delivery_costs": delivery_cost_service.get_delivery_costs(session, admin),
    }


@router.post("")
def update_delivery_costs(
    payload: DeliveryCostUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    costs = delivery_cost_service.set_delivery_costs(
        session, admin, payload.dhaka_inside, payload.dhaka_outside
    )
    return {
        "success": True,
        "message": "Delivery costs updated successfully",
        "delivery_costs": costs,
    }
