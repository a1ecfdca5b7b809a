from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import Optional
from app.database import get_session
from app.models.user import User
from app.schemas.orders_schemas import OrderCancelRequest, OrderCreate
from app.schemas.payment_proof_schemas import PaymentProofCreate
from app.services import order_service, payment_proof_service
from app.utils.token import get_current_user

router = APIRouter()


# Place order from cart

@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    data: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order = order_service.create_order(
        session,
        current_user,
        shipping_address=data.shipping_address,
        payment_method=data.payment_method,
        notes=data.notes,
    )
    return {
        "success": True,
        "message": "Order created successfully",
        "order": order_service.serialize_order(order),
    }


# My orders

@router.get("")
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return {
        "success": True,
        **order_service.list_user_orders(session, current_user, status, page, limit),
    }


@router.get("/{order_id}")
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order = order_service.get_order(session, current_user, order_id)
    return {"success": True, "order": order_service.serialize_order(order)}


@router.put("/{order_id}/cancel")
def cancel_my_order(
    order_id: int,
    data: Optional[OrderCancelRequest] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order = order_service.cancel_order(
        session,
        current_user,
        order_id,
        reason=data.reason if data else None,
    )
    return {
        "success": True,
        "message": "Order cancelled successfully",
        "order": order_service.serialize_order(order),
    }


# Payment proof

@router.post("/{order_id}/payment-proof", status_code=status.HTTP_201_CREATED)
def submit_payment_proof(
    order_id: int,
    data: PaymentProofCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    proof = payment_proof_service.submit_payment_proof(session, current_user, order_id, data)
    return {
        "success": True,
        "message": "Payment proof submitted successfully",
        "payment_proof": {
            "id": proof.id,
            "transaction_id": proof.transaction_id,
            "payment_method": proof.payment_method,
            "amount": proof.amount,
            "status": proof.status,
            "submitted_at": proof.submitted_at,
        },
    }


@router.get("/{order_id}/payment-proof")
def get_payment_proof(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return {
        "success": True,
        "payment_proof": payment_proof_service.get_payment_proof(session, current_user, order_id),
    }
