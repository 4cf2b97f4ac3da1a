# localchef/schemas/favorite.py
from typing import Optional, Union

from pydantic import BaseModel, field_validator


class FavoriteCreate(BaseModel):
    userEmail: str
    mealId: Union[str, int]
    mealName: Optional[str] = None
    chefName: Optional[str] = None
    price: Optional[float] = None

    class Config:
        extra = "ignore"

    @field_validator("mealId")
    @classmethod
    def _meal_id_as_string(cls, v):
        return str(v)
