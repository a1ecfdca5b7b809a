from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Text
from typing import Optional
from datetime import datetime


class PaymentProof(SQLModel, table=True):
    __tablename__ = "payment_proof"

    id: Optional[int] = Field(default=None, primary_key=True)

    # one proof per order, enforced by the database
    order_id: int = Field(foreign_key="order.id", unique=True, index=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    transaction_id: str
    payment_method: str  # bkash | nagad | rocket | bank
    amount: float
    screenshot: str = Field(sa_column=Column(Text, nullable=False))
    sender_number: str
    sender_name: str
    payment_date: datetime

    status: str = Field(default="pending", index=True)  # pending | verified | rejected
    verified_by: Optional[int] = Field(default=None, foreign_key="user.id")
    verified_at: Optional[datetime] = None
    admin_notes: Optional[str] = None

    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
