"""
# `localchef/schemas/user.py` - User schemas

## `UserCreate`
Self registration payload (`POST /users`).
| Field    | Type           | Required | Notes |
|----------|----------------|----------|-------|
| email    | `str`          | ✔        | must equal the verified token e-mail |
| name     | `str` / `null` | ✖        | display name |
| photoURL | `str` / `null` | ✖        | avatar |
| address  | `str` / `null` | ✖        | default delivery address |

`role` and `status` are never taken from the client: new records start as
`user` / `normal`. Unknown fields are dropped.

## `RoleUpdate`
Admin payload for `PATCH /users/update-role/{email}`.
"""
from typing import Optional

from pydantic import BaseModel, Field

from localchef.schemas.principal import Role


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3)
    name: Optional[str] = None
    photoURL: Optional[str] = None
    address: Optional[str] = None

    class Config:
        extra = "ignore"


class RoleUpdate(BaseModel):
    role: Role
