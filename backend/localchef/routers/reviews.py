"""
# `localchef/routers/reviews.py` - Reviews

- `POST /reviews`: the meal must exist; `reviewerEmail` is stamped from the caller.
- `GET /reviews`, `GET /reviews/{mealId}`: public, newest first.
- `PATCH|DELETE /reviews/{id}`: the stored reviewer must be the caller.
- `GET /user-reviews?email=`: the caller's own reviews.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from localchef.core.errors import NotFound
from localchef.core.security import get_principal, get_store, json_body, loaded
from localchef.repositories.base import DESCENDING, DocumentStore
from localchef.schemas.principal import Principal
from localchef.schemas.review import ReviewCreate, ReviewUpdate

router = APIRouter(tags=["Reviews"])

NEWEST = ("date", DESCENDING)


@router.post("/reviews")
def create_review(
    payload: ReviewCreate = Depends(json_body(ReviewCreate)),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    meal = store.meals.find_by_id(payload.foodId)
    if not meal:
        raise NotFound("Meal not found")

    review = payload.model_dump(exclude_none=True)
    review.update({
        "reviewerEmail": principal.email,
        "mealName": payload.mealName or meal.get("foodName"),
        "date": datetime.now(timezone.utc),
    })
    return store.reviews.insert_one(review).to_dict()


@router.get("/reviews")
def list_reviews(store: DocumentStore = Depends(get_store)):
    return store.reviews.find(sort=NEWEST)


@router.get("/reviews/{mealId}")
def meal_reviews(mealId: str, store: DocumentStore = Depends(get_store)):
    return store.reviews.find({"foodId": mealId}, sort=NEWEST)


@router.patch("/reviews/{id}")
def update_review(
    id: str,
    payload: ReviewUpdate = Depends(json_body(ReviewUpdate)),
    review: dict = Depends(loaded("reviews")),
    store: DocumentStore = Depends(get_store),
):
    changes = payload.model_dump()
    changes["date"] = datetime.now(timezone.utc)
    result = store.reviews.update_by_id(review["_id"], changes)
    return {"success": True, "result": result.to_dict()}


@router.delete("/reviews/{id}")
def delete_review(
    id: str,
    review: dict = Depends(loaded("reviews")),
    store: DocumentStore = Depends(get_store),
):
    return store.reviews.delete_by_id(review["_id"]).to_dict()


@router.get("/user-reviews")
def user_reviews(
    email: str = Query(..., description="Reviewer e-mail; must be the caller"),
    store: DocumentStore = Depends(get_store),
):
    return store.reviews.find({"reviewerEmail": email}, sort=NEWEST)
