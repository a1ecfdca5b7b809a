import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import defer
from sqlmodel import Session, select

from app.constants.order_status import PROOF_PAYMENT_METHODS
from app.database import commit_or_fail
from app.models.payment_proof import PaymentProof
from app.models.user import User
from app.schemas.payment_proof_schemas import PaymentProofCreate
from app.services.order_event_service import log_order_event
from app.dependencies.admin import require_staff
from app.services.order_service import get_order_or_404
from app.utils.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

# verification outcome -> order payment status
PAYMENT_STATUS_FOR = {
    "verified": "paid",
    "rejected": "failed",
}


def find_payment_proof(session: Session, order_id: int) -> Optional[PaymentProof]:
    return session.exec(
        select(PaymentProof).where(PaymentProof.order_id == order_id)
    ).first()


def serialize_payment_proof(proof: PaymentProof, verifier: Optional[User] = None) -> dict:
    """Proof details for owners and staff. The screenshot is never part of this view."""
    data = {
        "id": proof.id,
        "order_id": proof.order_id,
        "user_id": proof.user_id,
        "transaction_id": proof.transaction_id,
        "payment_method": proof.payment_method,
        "amount": proof.amount,
        "sender_number": proof.sender_number,
        "sender_name": proof.sender_name,
        "payment_date": proof.payment_date,
        "status": proof.status,
        "verified_by": proof.verified_by,
        "verified_at": proof.verified_at,
        "admin_notes": proof.admin_notes,
        "submitted_at": proof.submitted_at,
    }
    if verifier is not None:
        data["verifier"] = {"id": verifier.id, "name": verifier.name, "email": verifier.email}
    return data


def submit_payment_proof(
    session: Session,
    user: User,
    order_id: int,
    data: PaymentProofCreate,
) -> PaymentProof:
    if data.payment_method not in PROOF_PAYMENT_METHODS:
        raise InvalidInputError(
            f"Invalid payment method. Must be one of: {', '.join(PROOF_PAYMENT_METHODS)}"
        )

    if data.amount is None or data.amount <= 0:
        raise InvalidInputError("Amount must be positive")

    order = get_order_or_404(session, order_id)

    if order.user_id != user.id:
        raise UnauthorizedError("Not authorized to submit payment proof for this order")

    if order.payment_status == "paid":
        raise ConflictError("Payment already verified for this order")

    if order.status == "cancelled":
        raise ConflictError("Cannot submit payment proof for a cancelled order")

    if find_payment_proof(session, order.id):
        raise ConflictError("Payment proof already submitted for this order")

    proof = PaymentProof(
        order_id=order.id,
        user_id=user.id,
        transaction_id=data.transaction_id,
        payment_method=data.payment_method,
        amount=data.amount,
        screenshot=data.screenshot,
        sender_number=data.sender_number,
        sender_name=data.sender_name,
        payment_date=data.payment_date,
    )
    session.add(proof)

    order.payment_status = "pending"
    order.updated_at = datetime.utcnow()
    session.add(order)

    log_order_event(
        session,
        order.id,
        "payment_proof_submitted",
        f"Payment proof submitted ({data.payment_method}, {data.transaction_id})",
        created_by=f"{user.role}:{user.id}",
        meta={"amount": data.amount},
    )

    try:
        session.commit()
    except IntegrityError:
        # a concurrent submit for the same order won the unique constraint
        session.rollback()
        raise ConflictError("Payment proof already submitted for this order")
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Database error while saving payment proof for order {order_id}")
        raise InternalError()

    session.refresh(proof)
    logger.info(f"Payment proof {proof.id} submitted for order {order_id} by user {user.id}")
    return proof


def verify_payment_proof(
    session: Session,
    admin: User,
    order_id: int,
    status: str,
    admin_notes: Optional[str] = None,
) -> PaymentProof:
    require_staff(admin)

    if status not in PAYMENT_STATUS_FOR:
        raise InvalidInputError("Status must be either verified or rejected")

    order = get_order_or_404(session, order_id)

    proof = find_payment_proof(session, order.id)
    if not proof:
        raise NotFoundError("Payment proof not found")

    now = datetime.utcnow()
    proof.status = status
    proof.verified_by = admin.id
    proof.verified_at = now
    proof.admin_notes = admin_notes
    proof.updated_at = now
    session.add(proof)

    order.payment_status = PAYMENT_STATUS_FOR[status]
    order.updated_at = now
    session.add(order)

    log_order_event(
        session,
        order.id,
        "payment_verified" if status == "verified" else "payment_rejected",
        f"Payment proof {status}",
        created_by=f"{admin.role}:{admin.id}",
        meta={"payment_status": order.payment_status},
    )

    commit_or_fail(session, "verify payment proof")
    session.refresh(proof)

    logger.info(f"Payment proof for order {order_id} {status} by admin {admin.id}")
    return proof


def get_payment_proof(session: Session, principal: User, order_id: int) -> dict:
    order = get_order_or_404(session, order_id)

    if order.user_id != principal.id and not principal.is_admin:
        raise UnauthorizedError("Not authorized to view payment proof for this order")

    proof = session.exec(
        select(PaymentProof)
        .where(PaymentProof.order_id == order.id)
        .options(defer(PaymentProof.screenshot))
    ).first()
    if not proof:
        raise NotFoundError("No payment proof found for this order")

    verifier = session.get(User, proof.verified_by) if proof.verified_by else None
    return serialize_payment_proof(proof, verifier)
