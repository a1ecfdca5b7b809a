import logging
import random
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import (
    ORDER_PAYMENT_METHODS,
    ORDER_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
)
from app.database import commit_or_fail
from app.dependencies.admin import require_staff
from app.models.cart import Cart
from app.models.order import Order
from app.models.product import Product
from app.models.user import User
from app.services.cart_service import find_cart
from app.services.delivery_cost_service import get_delivery_cost
from app.services.order_event_service import log_order_event
from app.utils.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

ADMIN_CANCEL_REASON = "Cancelled by admin"
CUSTOMER_CANCEL_REASON = "Cancelled by customer"


def generate_order_number(now: Optional[datetime] = None) -> str:
    """ORD-YYYYMMDD-RRR with a random three digit suffix."""
    now = now or datetime.utcnow()
    return f"ORD-{now:%Y%m%d}-{random.randint(0, 999):03d}"


def _actor(user: User) -> str:
    return f"{user.role}:{user.id}"


def serialize_order(order: Order, user: Optional[User] = None) -> dict:
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "items": [
            {**item, "line_total": item["price"] * item["quantity"]}
            for item in order.items
        ],
        "subtotal": order.subtotal,
        "delivery_cost": order.delivery_cost,
        "total": order.total,
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "shipping_address": order.shipping_address,
        "notes": order.notes,
        "tracking_number": order.tracking_number,
        "admin_notes": order.admin_notes,
        "cancel_reason": order.cancel_reason,
        "cancelled_date": order.cancelled_date,
        "delivered_date": order.delivered_date,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
    if user is not None:
        data["customer"] = {"id": user.id, "name": user.name, "email": user.email}
    return data


def get_order_or_404(session: Session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


# ---------- CREATION ----------

def _allocate_order_number(session: Session) -> str:
    for _ in range(settings.order_number_attempts):
        number = generate_order_number()
        taken = session.exec(
            select(Order.id).where(Order.order_number == number)
        ).first()
        if taken is None:
            return number
        logger.warning(f"Order number {number} already taken, regenerating")
    raise InternalError("Could not allocate a unique order number")


def _place_order(
    session: Session,
    user: User,
    address: dict,
    payment_method: str,
    notes: Optional[str],
) -> Order:
    cart = find_cart(session, user.id)
    if not cart:
        raise InvalidInputError("Cart not found. Please add items to cart first.")

    if not cart.items:
        raise InvalidInputError("Cart is empty. Please add items to cart first.")

    cart_id, cart_version = cart.id, cart.version
    lines = [dict(line) for line in cart.items]

    product_ids = {line["product_id"] for line in lines}
    available = set(
        session.exec(select(Product.id).where(Product.id.in_(product_ids))).all()
    )
    for line in lines:
        if line["product_id"] not in available:
            name = line.get("name") or line["product_id"]
            raise InvalidInputError(f"Product {name} is no longer available")

    subtotal = sum(line["price"] * line["quantity"] for line in lines)
    delivery_cost = get_delivery_cost(session, address)

    order = Order(
        order_number=_allocate_order_number(session),
        user_id=user.id,
        items=[
            {
                "product_id": line["product_id"],
                "name": line["name"],
                "price": line["price"],
                "quantity": line["quantity"],
                "image": line.get("image") or "",
                "size": line.get("size") or "M",
            }
            for line in lines
        ],
        subtotal=subtotal,
        delivery_cost=delivery_cost,
        total=subtotal + delivery_cost,
        payment_method=payment_method,
        shipping_address=address,
        notes=notes,
    )

    try:
        session.add(order)
        session.flush()

        log_order_event(
            session,
            order.id,
            "order_placed",
            f"Order {order.order_number} placed",
            created_by=_actor(user),
            meta={"total": order.total, "items": len(order.items)},
        )

        # Detach the cart only if nobody touched it since we read it.
        detached = session.execute(
            update(Cart)
            .where(Cart.id == cart_id, Cart.version == cart_version)
            .values(items=[], version=cart_version + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if detached.rowcount != 1:
            session.rollback()
            logger.warning(f"Cart {cart_id} changed while user {user.id} was placing an order")
            raise ConflictError(
                "Your cart changed while the order was being placed. Please review it and try again."
            )

        session.commit()
    except IntegrityError:
        raise
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Database error while placing order for user {user.id}")
        raise InternalError()

    session.refresh(order)
    logger.info(f"Order {order.order_number} placed by user {user.id}, total {order.total}")
    return order


def create_order(
    session: Session,
    user: User,
    shipping_address,
    payment_method: str,
    notes: Optional[str] = None,
) -> Order:
    """Turn the user's cart into an order and empty the cart in the same commit."""
    if payment_method not in ORDER_PAYMENT_METHODS:
        raise InvalidInputError(
            f"Invalid payment method. Must be one of: {', '.join(ORDER_PAYMENT_METHODS)}"
        )

    if shipping_address is None:
        raise InvalidInputError("Shipping address is required")

    address = (
        shipping_address
        if isinstance(shipping_address, dict)
        else shipping_address.model_dump()
    )

    for attempt in range(1, settings.order_number_attempts + 1):
        try:
            return _place_order(session, user, address, payment_method, notes)
        except IntegrityError:
            # lost an order-number race at commit time
            session.rollback()
            logger.warning(f"Order number conflict for user {user.id} (attempt {attempt})")

    raise InternalError("Could not allocate a unique order number")


# ---------- READS ----------

def get_order(session: Session, principal: User, order_id: int) -> Order:
    order = get_order_or_404(session, order_id)
    if order.user_id != principal.id and not principal.is_admin:
        raise UnauthorizedError("Not authorized to view this order")
    return order


def list_user_orders(
    session: Session,
    user: User,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = select(Order).where(Order.user_id == user.id)

    if status and status != "all":
        if status not in ORDER_STATUSES:
            raise InvalidInputError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.where(Order.status == status)

    return paginate(
        session=session,
        query=query.order_by(Order.created_at.desc(), Order.id.desc()),
        page=page,
        limit=limit,
        transform=serialize_order,
    )


# ---------- STAFF STATE MACHINE ----------

def _apply_cancel(order: Order, reason: Optional[str], default_reason: str):
    if order.status == "delivered":
        raise ConflictError("Cannot cancel delivered order")

    if order.status == "cancelled":
        raise ConflictError("Order is already cancelled")

    now = datetime.utcnow()
    order.status = "cancelled"
    order.cancelled_date = now
    order.cancel_reason = reason or default_reason
    order.updated_at = now


def _apply_status(order: Order, status: str, tracking_number: Optional[str] = None):
    if status == order.status and status in TERMINAL_STATUSES:
        # a closed order keeps its status; only the tracking number may change
        if not tracking_number:
            raise ConflictError(f"Order is already {status}")
    elif status == "cancelled":
        _apply_cancel(order, None, ADMIN_CANCEL_REASON)
    else:
        if not can_transition(order.status, status):
            raise ConflictError(f"Cannot change status of a {order.status} order")

        order.status = status
        if status == "delivered":
            order.delivered_date = datetime.utcnow()

    if tracking_number:
        order.tracking_number = tracking_number

    order.updated_at = datetime.utcnow()


def _status_event(previous: str, status: str) -> str:
    if previous == status and status in TERMINAL_STATUSES:
        return "tracking_updated"
    return "order_cancelled" if status == "cancelled" else "status_changed"


def _validate_status(status: str):
    if status not in ORDER_STATUSES:
        raise InvalidInputError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")


def update_order_status(
    session: Session,
    admin: User,
    order_id: int,
    status: str,
    tracking_number: Optional[str] = None,
) -> Order:
    require_staff(admin)
    _validate_status(status)

    order = get_order_or_404(session, order_id)
    previous = order.status
    _apply_status(order, status, tracking_number)

    log_order_event(
        session,
        order.id,
        _status_event(previous, status),
        f"Status changed from {previous} to {order.status}",
        created_by=_actor(admin),
        meta={"from": previous, "to": order.status, "tracking_number": order.tracking_number},
    )
    session.add(order)
    commit_or_fail(session, "update order status")
    session.refresh(order)

    logger.info(f"Order {order.order_number} moved {previous} -> {order.status} by admin {admin.id}")
    return order


def cancel_order(
    session: Session,
    principal: User,
    order_id: int,
    reason: Optional[str] = None,
    by_admin: bool = False,
) -> Order:
    """Staff cancel any order; owners cancel their own. Delivered and cancelled orders stay put."""
    order = get_order_or_404(session, order_id)

    if by_admin:
        require_staff(principal)
        default_reason = ADMIN_CANCEL_REASON
    elif order.user_id == principal.id:
        default_reason = CUSTOMER_CANCEL_REASON
    else:
        raise UnauthorizedError("Not authorized to cancel this order")

    previous = order.status
    _apply_cancel(order, reason, default_reason)

    log_order_event(
        session,
        order.id,
        "order_cancelled",
        f"Order cancelled ({order.cancel_reason})",
        created_by=_actor(principal),
        meta={"from": previous, "reason": order.cancel_reason},
    )
    session.add(order)
    commit_or_fail(session, "cancel order")
    session.refresh(order)

    logger.info(f"Order {order.order_number} cancelled by {_actor(principal)}")
    return order


def add_admin_note(session: Session, admin: User, order_id: int, note: str) -> Order:
    require_staff(admin)

    if not note or not note.strip():
        raise InvalidInputError("Note is required")

    order = get_order_or_404(session, order_id)

    order.admin_notes = [
        *order.admin_notes,
        {
            "note": note.strip(),
            "added_by": admin.id,
            "added_at": datetime.utcnow().isoformat(),
        },
    ]
    flag_modified(order, "admin_notes")
    order.updated_at = datetime.utcnow()

    log_order_event(session, order.id, "admin_note", "Admin note added", created_by=_actor(admin))
    session.add(order)
    commit_or_fail(session, "add admin note")
    session.refresh(order)
    return order


def bulk_update_order_status(
    session: Session,
    admin: User,
    order_ids: List[int],
    status: str,
    tracking_number: Optional[str] = None,
) -> dict:
    require_staff(admin)

    if not order_ids:
        raise InvalidInputError("Order IDs array is required")

    _validate_status(status)

    unique_ids = list(dict.fromkeys(order_ids))
    orders = {
        o.id: o
        for o in session.exec(select(Order).where(Order.id.in_(unique_ids))).all()
    }

    updated = []
    skipped = []
    for order_id in unique_ids:
        order = orders.get(order_id)
        if order is None:
            skipped.append({"order_id": order_id, "reason": "Order not found"})
            continue

        previous = order.status
        try:
            _apply_status(order, status, tracking_number)
        except ConflictError as exc:
            skipped.append({"order_id": order_id, "reason": exc.message})
            continue

        log_order_event(
            session,
            order.id,
            _status_event(previous, status),
            f"Status changed from {previous} to {order.status} (bulk)",
            created_by=_actor(admin),
            meta={"from": previous, "to": order.status},
        )
        session.add(order)
        updated.append(order_id)

    commit_or_fail(session, "bulk update order status")
    logger.info(f"Bulk status {status}: {len(updated)} updated, {len(skipped)} skipped by admin {admin.id}")

    return {
        "updated_count": len(updated),
        "updated": updated,
        "skipped": skipped,
    }
