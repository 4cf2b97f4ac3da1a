# localchef/routers/role_requests.py - Requests to become chef or admin
from fastapi import APIRouter, Depends

from localchef.core.errors import Conflict, NotFound
from localchef.core.security import get_profile, get_store, json_body
from localchef.repositories.base import DESCENDING, DocumentStore
from localchef.schemas.role_request import RoleRequestCreate
from localchef.services import role_requests

router = APIRouter(prefix="/role-requests", tags=["Role Requests"])


@router.post("")
def submit_request(
    payload: RoleRequestCreate = Depends(json_body(RoleRequestCreate)),
    profile: dict = Depends(get_profile),
    store: DocumentStore = Depends(get_store),
):
    if not profile:
        raise NotFound("User profile not found")
    if profile.get("role") == payload.requestType:
        raise Conflict(f"You are already {payload.requestType}")
    return role_requests.submit(
        store,
        email=payload.userEmail,
        request_type=payload.requestType,
        user_name=payload.userName or profile.get("name"),
    )


@router.get("")
def list_requests(store: DocumentStore = Depends(get_store)):
    return store.role_requests.find(sort=("requestTime", DESCENDING))


@router.patch("/accept/{id}")
def accept_request(id: str, store: DocumentStore = Depends(get_store)):
    return role_requests.accept(store, id)


@router.patch("/reject/{id}")
def reject_request(id: str, store: DocumentStore = Depends(get_store)):
    return role_requests.reject(store, id)
