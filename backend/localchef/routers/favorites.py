# localchef/routers/favorites.py - Favorite meals of a user
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from localchef.core.security import get_store, json_body, loaded
from localchef.repositories.base import DocumentStore, DuplicateKeyError
from localchef.schemas.favorite import FavoriteCreate

logger = logging.getLogger("localchef.favorites")

router = APIRouter(prefix="/favorites", tags=["Favorites"])


def favorite_key(email: str, meal_id: str) -> str:
    return f"{email}|{meal_id}"


@router.post("")
def add_favorite(
    payload: FavoriteCreate = Depends(json_body(FavoriteCreate)),
    store: DocumentStore = Depends(get_store),
):
    doc = payload.model_dump(exclude_none=True)
    doc["addedTime"] = datetime.now(timezone.utc)
    try:
        result = store.favorites.insert_one(doc, unique_key=favorite_key(payload.userEmail, payload.mealId))
    except DuplicateKeyError:
        return {"exists": True}
    return result.to_dict()


@router.get("/{email}")
def list_favorites(email: str, store: DocumentStore = Depends(get_store)):
    return store.favorites.find({"userEmail": email})


@router.delete("/{id}")
def remove_favorite(
    id: str,
    favorite: dict = Depends(loaded("favorites")),
    store: DocumentStore = Depends(get_store),
):
    result = store.favorites.delete_by_id(favorite["_id"])
    if result.deleted_count:
        store.favorites.release_unique_key(favorite_key(favorite["userEmail"], str(favorite["mealId"])))
    return result.to_dict()
