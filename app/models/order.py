from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # snapshot of the cart lines: [{product_id, name, price, quantity, image, size}]
    items: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    subtotal: float
    delivery_cost: float = 0
    total: float

    status: str = Field(default="pending", index=True)
    payment_method: str
    payment_status: str = Field(default="pending", index=True)

    # {full_name, phone, address, city, postal_code, country}
    shipping_address: dict = Field(sa_column=Column(JSON, nullable=False))

    notes: Optional[str] = None
    tracking_number: Optional[str] = None

    # append-only: [{note, added_by, added_at}]
    admin_notes: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    cancel_reason: Optional[str] = None
    cancelled_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
