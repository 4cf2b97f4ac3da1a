"""
localchef/schemas/principal.py
Principal model and the user role vocabulary.
"""
from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["user", "chef", "admin"]


class Principal(BaseModel):
    email: str = Field(..., description="Verified e-mail from the identity token")

    def __str__(self) -> str:
        return self.email
