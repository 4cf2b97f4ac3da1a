"""
# `localchef/routers/users.py` - Users

Access rules for every route live in `core/gate.py`; handlers here assume the
gate already ran.

## Endpoints

### `POST /users`
Self registration. Idempotent: registering an e-mail that already has a record
answers `{"message": "User already exists"}` and writes nothing. The e-mail is
also claimed as a unique key, so two simultaneous registrations still produce a
single record. Lookup, stored field and key all use the e-mail exactly as the
identity token carries it.

### `GET /users` (admin)
All user records.

### `GET /users/{email}`
The caller's own record; 404 until they registered.

### `PATCH /users/make-fraud/{email}` (admin)
Flags a user as `fraud`. Fraud chefs cannot create meals, fraud users cannot order.

### `PATCH /users/update-role/{email}` (admin)
Sets the role directly. Promoting to chef assigns a chef id if the user has none.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from localchef.core.errors import NotFound
from localchef.core.security import get_store, json_body
from localchef.repositories.base import DocumentStore, DuplicateKeyError
from localchef.schemas.user import RoleUpdate, UserCreate
from localchef.services.role_requests import new_chef_id

logger = logging.getLogger("localchef.users")

router = APIRouter(prefix="/users", tags=["Users"])

EXISTS = {"message": "User already exists"}


@router.post("")
def register_user(
    payload: UserCreate = Depends(json_body(UserCreate)),
    store: DocumentStore = Depends(get_store),
):
    users = store.users
    if users.find_one({"email": payload.email}):
        return EXISTS

    doc = {
        **payload.model_dump(exclude_none=True),
        "role": "user",
        "status": "normal",
        "createdAt": datetime.now(timezone.utc),
    }
    try:
        result = users.insert_one(doc, unique_key=payload.email)
    except DuplicateKeyError:
        return EXISTS
    logger.info("Registered user %s", payload.email)
    return result.to_dict()


@router.get("")
def list_users(store: DocumentStore = Depends(get_store)):
    return store.users.find()


@router.get("/{email}")
def get_user(email: str, store: DocumentStore = Depends(get_store)):
    user = store.users.find_one({"email": email})
    if not user:
        raise NotFound("User not found")
    return user


@router.patch("/make-fraud/{email}")
def make_fraud(email: str, store: DocumentStore = Depends(get_store)):
    result = store.users.update_one({"email": email}, {"status": "fraud"})
    if result.matched_count == 0:
        raise NotFound("User not found")
    logger.info("User %s flagged as fraud", email)
    return {"success": True, "result": result.to_dict()}


@router.patch("/update-role/{email}")
def update_role(
    email: str,
    payload: RoleUpdate = Depends(json_body(RoleUpdate)),
    store: DocumentStore = Depends(get_store),
):
    user = store.users.find_one({"email": email})
    if not user:
        raise NotFound("User not found")

    changes = {"role": payload.role}
    if payload.role == "chef" and not user.get("chefId"):
        changes["chefId"] = new_chef_id()
    result = store.users.update_by_id(user["_id"], changes)
    return {"success": True, "result": result.to_dict(), **changes}
