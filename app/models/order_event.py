from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class OrderEvent(SQLModel, table=True):
    """One line of an order's timeline. Rows are only ever appended."""

    __tablename__ = "order_event"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)

    # order_placed | status_changed | order_cancelled | admin_note
    # payment_proof_submitted | payment_verified | payment_rejected
    event_type: str = Field(index=True)
    label: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_by: str = Field(default="system")  # "<role>:<user id>" or "system"
    created_at: datetime = Field(default_factory=datetime.utcnow)
