from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

DELIVERY_COST_ID = 1


class DeliveryCost(SQLModel, table=True):
    __tablename__ = "delivery_cost"

    # singleton row, always id=1
    id: Optional[int] = Field(default=DELIVERY_COST_ID, primary_key=True)
    dhaka_inside: float = Field(ge=0)
    dhaka_outside: float = Field(ge=0)
    updated_by: Optional[int] = Field(default=None, foreign_key="user.id")
    updated_at: datetime = Field(default_factory=datetime.utcnow)
