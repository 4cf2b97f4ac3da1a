# localchef/routers/meals.py - Meals (public catalogue, chef managed)
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from localchef.core.errors import InvalidArgument, NotFound
from localchef.core.security import get_principal, get_profile, get_store, json_body, loaded
from localchef.repositories.base import ASCENDING, DESCENDING, DocumentStore
from localchef.schemas.meal import OWNER_FIELDS, MealCreate, MealUpdate
from localchef.schemas.principal import Principal

router = APIRouter(prefix="/meals", tags=["Meals"])


@router.post("")
def create_meal(
    payload: MealCreate = Depends(json_body(MealCreate)),
    principal: Principal = Depends(get_principal),
    profile: dict = Depends(get_profile),
    store: DocumentStore = Depends(get_store),
):
    meal = payload.model_dump(exclude_none=True)
    meal.update({
        "chefEmail": principal.email,
        "chefId": profile.get("chefId"),
        "createdAt": datetime.now(timezone.utc),
    })
    return store.meals.insert_one(meal).to_dict()


@router.get("")
def list_meals(
    chefEmail: Optional[str] = Query(None, description="Only meals of this chef"),
    sort: Optional[Literal["asc", "desc"]] = Query(None, description="Order by price"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    store: DocumentStore = Depends(get_store),
):
    filters = {"chefEmail": chefEmail} if chefEmail else None
    order = ("price", ASCENDING if sort == "asc" else DESCENDING) if sort else None
    return store.meals.find(filters, sort=order, limit=limit)


@router.get("/{id}")
def get_meal(id: str, store: DocumentStore = Depends(get_store)):
    meal = store.meals.find_by_id(id)
    if not meal:
        raise NotFound("Meal not found")
    return meal


@router.patch("/{id}")
def update_meal(
    id: str,
    payload: MealUpdate = Depends(json_body(MealUpdate)),
    meal: dict = Depends(loaded("meals")),
    store: DocumentStore = Depends(get_store),
):
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if k not in OWNER_FIELDS}
    if not changes:
        raise InvalidArgument("Nothing to update")
    changes["updatedAt"] = datetime.now(timezone.utc)
    result = store.meals.update_by_id(meal["_id"], changes)
    return {"success": True, "result": result.to_dict()}


@router.delete("/{id}")
def delete_meal(
    id: str,
    meal: dict = Depends(loaded("meals")),
    store: DocumentStore = Depends(get_store),
):
    result = store.meals.delete_by_id(meal["_id"])
    return {"success": True, "result": result.to_dict()}
