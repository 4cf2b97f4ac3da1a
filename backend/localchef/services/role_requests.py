"""
Role request workflow.

    pending --accept--> approved   (user record gets the requested role)
    pending --reject--> rejected   (user record untouched)

Accepting writes the user record first and only then marks the request
approved. If the user write fails or matches nothing, the request stays pending.
Closing is conditional on the request still being pending, so of two concurrent
decisions only one wins; the loser gets 409, and a losing accept restores the
user's previous role.
Both decisions release the pending-uniqueness key, so the user may file a new
request afterwards.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from localchef.core.errors import Conflict, NotFound
from localchef.repositories.base import DocumentStore, DuplicateKeyError

logger = logging.getLogger("localchef.role_requests")

DUPLICATE_MESSAGE = "You already submitted a request. Please wait for admin approval."


def new_chef_id() -> str:
    return f"chef-{secrets.token_hex(4)}"


def pending_key(email: str) -> str:
    return email


def submit(store: DocumentStore, *, email: str, request_type: str, user_name: Optional[str] = None) -> dict:
    doc = {
        "userEmail": email,
        "userName": user_name,
        "requestType": request_type,
        "requestStatus": "pending",
        "requestTime": datetime.now(timezone.utc),
    }
    try:
        result = store.role_requests.insert_one(doc, unique_key=pending_key(email))
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_MESSAGE)
    logger.info("Role request %s filed by %s for %s", result.inserted_id, email, request_type)
    return {"success": True, "result": result.to_dict()}


def _load_pending(store: DocumentStore, request_id: str) -> dict:
    request = store.role_requests.find_by_id(request_id)
    if request is None:
        raise NotFound("Role request not found")
    if request.get("requestStatus") != "pending":
        raise Conflict(f"Request already {request.get('requestStatus')}")
    return request


def _close(store: DocumentStore, request: dict, status: str) -> None:
    result = store.role_requests.update_by_id(
        request["_id"],
        {"requestStatus": status, "decidedAt": datetime.now(timezone.utc)},
        expected={"requestStatus": "pending"},
    )
    if result.matched_count == 0:
        current = store.role_requests.find_by_id(request["_id"])
        if current is None:
            raise NotFound("Role request not found")
        raise Conflict(f"Request already {current.get('requestStatus')}")
    store.role_requests.release_unique_key(pending_key(request["userEmail"]))


def accept(store: DocumentStore, request_id: str) -> dict:
    request = _load_pending(store, request_id)
    email = request["userEmail"]
    role = request["requestType"]

    user = store.users.find_one({"email": email})
    if user is None:
        raise NotFound("User not found")

    changes = {"role": role}
    if role == "chef":
        changes["chefId"] = user.get("chefId") or new_chef_id()

    result = store.users.update_one({"email": email}, changes)
    if result.matched_count == 0:
        # user vanished between the read and the write
        raise NotFound("User not found")

    try:
        _close(store, request, "approved")
    except Conflict:
        previous = {field: user.get(field) for field in changes}
        store.users.update_one({"email": email}, previous)
        logger.warning("Role request %s was decided concurrently; %s keeps role %s",
                       request_id, email, user.get("role"))
        raise
    logger.info("Role request %s approved: %s is now %s", request_id, email, role)
    return {"success": True, "email": email, **changes}


def reject(store: DocumentStore, request_id: str) -> dict:
    request = _load_pending(store, request_id)
    _close(store, request, "rejected")
    logger.info("Role request %s rejected", request_id)
    return {"success": True, "email": request["userEmail"], "requestStatus": "rejected"}
