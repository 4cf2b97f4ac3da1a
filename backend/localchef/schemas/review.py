# localchef/schemas/review.py
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


class ReviewCreate(BaseModel):
    foodId: Union[str, int]
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=1000)
    reviewerName: Optional[str] = None
    reviewerImage: Optional[str] = None
    mealName: Optional[str] = None
    reviewerEmail: Optional[str] = None

    class Config:
        extra = "ignore"

    @field_validator("foodId")
    @classmethod
    def _food_id_as_string(cls, v):
        # stored as a string so it matches the meal id in queries
        return str(v)


class ReviewUpdate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=1000)
