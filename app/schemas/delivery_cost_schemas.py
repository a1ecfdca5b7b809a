from pydantic import BaseModel

class DeliveryCostUpdate(BaseModel):
    dhaka_inside: float
    dhaka_outside: float
