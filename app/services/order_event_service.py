from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from app.models.order_event import OrderEvent


def log_order_event(
    session: Session,
    order_id: int,
    event_type: str,
    label: str,
    created_by: str = "system",
    meta: Optional[dict] = None,
) -> OrderEvent:
    """Stage a timeline entry; it is written with the caller's commit."""
    event = OrderEvent(
        order_id=order_id,
        event_type=event_type,
        label=label,
        meta=meta,
        created_by=created_by,
        created_at=datetime.utcnow(),
    )
    session.add(event)
    return event


def get_order_timeline(session: Session, order_id: int) -> List[OrderEvent]:
    return session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at, OrderEvent.id)
    ).all()


def serialize_event(event: OrderEvent) -> dict:
    return {
        "event_type": event.event_type,
        "label": event.label,
        "meta": event.meta,
        "created_by": event.created_by,
        "created_at": event.created_at,
    }
