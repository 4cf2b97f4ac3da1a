# localchef/schemas/role_request.py
from typing import Literal, Optional

from pydantic import BaseModel

RequestType = Literal["chef", "admin"]


class RoleRequestCreate(BaseModel):
    userEmail: str
    requestType: RequestType
    userName: Optional[str] = None

    class Config:
        extra = "ignore"
