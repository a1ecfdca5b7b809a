from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentProofCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    transaction_id: str = Field(min_length=1)
    payment_method: str
    amount: float = Field(gt=0)
    screenshot: str = Field(min_length=1)  # base64 image data
    sender_number: str = Field(min_length=1)
    sender_name: str = Field(min_length=1)
    payment_date: datetime


class PaymentProofVerify(BaseModel):
    status: str  # verified | rejected
    admin_notes: Optional[str] = None
