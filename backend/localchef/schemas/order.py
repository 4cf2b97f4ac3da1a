"""
localchef/schemas/order.py
Order payloads and the order status lifecycle.

    pending -> accepted -> delivered
       \\          \\
        -> cancelled -> (final)
"""
from typing import Dict, FrozenSet, Literal, Optional

from pydantic import BaseModel, Field

OrderStatus = Literal["pending", "accepted", "delivered", "cancelled"]

ORDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"accepted", "cancelled"}),
    "accepted": frozenset({"delivered", "cancelled"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}


class OrderCreate(BaseModel):
    mealId: str
    quantity: int = Field(1, ge=1, le=50)
    userAddress: str = Field(..., min_length=1)
    userEmail: Optional[str] = None

    # price, chef and meal name are copied from the stored meal
    class Config:
        extra = "ignore"


class OrderStatusUpdate(BaseModel):
    orderStatus: OrderStatus
