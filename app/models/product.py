from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime


class Product(SQLModel, table=True):
    """Catalog entry. Owned by the catalog service; the order core only reads it."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    price: float
    category: str
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None
