from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime


class Cart(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    # [{id, product_id, name, price, quantity, image, size}]
    items: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # bumped on every write; order placement detaches the cart only at the version it read
    version: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
