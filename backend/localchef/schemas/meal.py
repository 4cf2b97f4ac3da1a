# localchef/schemas/meal.py
from typing import List, Optional

from pydantic import BaseModel, Field

# set by the server from the verified caller / profile, never patchable
OWNER_FIELDS = ("chefEmail", "chefId")


class MealCreate(BaseModel):
    foodName: str = Field(..., min_length=1, max_length=120)
    chefName: Optional[str] = None
    foodImage: Optional[str] = None
    price: float = Field(..., gt=0)
    rating: float = Field(0, ge=0, le=5)
    ingredients: List[str] = Field(default_factory=list)
    estimatedDeliveryTime: Optional[str] = None
    chefExperience: Optional[str] = None
    deliveryArea: Optional[str] = None
    chefEmail: Optional[str] = Field(None, description="Checked against the caller, then overwritten")

    class Config:
        extra = "ignore"


class MealUpdate(BaseModel):
    foodName: Optional[str] = Field(None, min_length=1, max_length=120)
    chefName: Optional[str] = None
    foodImage: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    ingredients: Optional[List[str]] = None
    estimatedDeliveryTime: Optional[str] = None
    chefExperience: Optional[str] = None
    deliveryArea: Optional[str] = None

    class Config:
        extra = "ignore"
