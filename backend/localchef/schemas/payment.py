# localchef/schemas/payment.py
from pydantic import BaseModel, Field


class PaymentIntentCreate(BaseModel):
    orderId: str


class PaymentSuccess(BaseModel):
    orderId: str
    token: str = Field(..., min_length=1, description="Checkout session token returned by create-payment-intent")
