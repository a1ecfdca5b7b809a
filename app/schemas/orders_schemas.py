from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShippingAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = "Bangladesh"


class OrderCreate(BaseModel):
    shipping_address: ShippingAddress
    payment_method: str
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str
    tracking_number: Optional[str] = None


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = None


class AdminNoteCreate(BaseModel):
    note: str


class BulkStatusUpdate(BaseModel):
    order_ids: List[int]
    status: str
    tracking_number: Optional[str] = None


class OrderFilters(BaseModel):
    """Admin order listing. Every field is optional and combined with AND."""

    status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
