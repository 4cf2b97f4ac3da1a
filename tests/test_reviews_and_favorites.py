"""Reviews and favorites."""
from conftest import MISSING_ID


# =============================================================================
# Reviews
# =============================================================================


class TestReviews:
    def test_create_review(self, client, auth, seed_meal, store):
        meal_id = seed_meal("chef@x.com")

        response = client.post(
            "/reviews",
            json={"foodId": meal_id, "rating": 5, "comment": "Lovely"},
            headers=auth("a@x.com"),
        )

        assert response.status_code == 200
        review = store.reviews.find_by_id(response.json()["insertedId"])
        assert review["reviewerEmail"] == "a@x.com"
        assert review["foodId"] == meal_id
        assert review["mealName"] == "Lentil Soup"
        assert "date" in review

    def test_rating_out_of_range(self, client, auth, seed_meal):
        meal_id = seed_meal("chef@x.com")
        response = client.post("/reviews", json={"foodId": meal_id, "rating": 6}, headers=auth("a@x.com"))
        assert response.status_code == 400

    def test_review_for_missing_meal(self, client, auth):
        response = client.post("/reviews", json={"foodId": MISSING_ID, "rating": 4}, headers=auth("a@x.com"))
        assert response.status_code == 404

    def test_cannot_review_as_someone_else(self, client, auth, seed_meal):
        meal_id = seed_meal("chef@x.com")
        response = client.post(
            "/reviews",
            json={"foodId": meal_id, "rating": 4, "reviewerEmail": "b@x.com"},
            headers=auth("a@x.com"),
        )
        assert response.status_code == 403

    def test_meal_reviews_are_public_and_newest_first(self, client, auth, seed_meal):
        meal_id = seed_meal("chef@x.com")
        client.post("/reviews", json={"foodId": meal_id, "rating": 3, "comment": "first"}, headers=auth("a@x.com"))
        client.post("/reviews", json={"foodId": meal_id, "rating": 4, "comment": "second"}, headers=auth("b@x.com"))

        response = client.get(f"/reviews/{meal_id}")

        assert [r["comment"] for r in response.json()] == ["second", "first"]
        assert len(client.get("/reviews").json()) == 2

    def test_user_reviews(self, client, auth, seed_meal):
        meal_id = seed_meal("chef@x.com")
        client.post("/reviews", json={"foodId": meal_id, "rating": 3}, headers=auth("a@x.com"))
        client.post("/reviews", json={"foodId": meal_id, "rating": 4}, headers=auth("b@x.com"))

        mine = client.get("/user-reviews", params={"email": "a@x.com"}, headers=auth("a@x.com"))
        assert [r["reviewerEmail"] for r in mine.json()] == ["a@x.com"]

        theirs = client.get("/user-reviews", params={"email": "b@x.com"}, headers=auth("a@x.com"))
        assert theirs.status_code == 403

    def test_only_reviewer_edits_and_deletes(self, client, auth, seed_meal, store):
        meal_id = seed_meal("chef@x.com")
        review_id = client.post(
            "/reviews", json={"foodId": meal_id, "rating": 2}, headers=auth("a@x.com")
        ).json()["insertedId"]

        assert client.patch(f"/reviews/{review_id}", json={"rating": 5}, headers=auth("b@x.com")).status_code == 403
        assert client.delete(f"/reviews/{review_id}", headers=auth("b@x.com")).status_code == 403

        updated = client.patch(f"/reviews/{review_id}", json={"rating": 5, "comment": "better"},
                               headers=auth("a@x.com"))
        assert updated.status_code == 200
        assert store.reviews.find_by_id(review_id)["rating"] == 5

        deleted = client.delete(f"/reviews/{review_id}", headers=auth("a@x.com"))
        assert deleted.json()["deletedCount"] == 1

    def test_malformed_review_id(self, client, auth):
        response = client.delete("/reviews/xyz", headers=auth("a@x.com"))
        assert response.json() == {"message": "Invalid review id", "error": "InvalidArgument"}


# =============================================================================
# Favorites
# =============================================================================


class TestFavorites:
    def test_add_is_idempotent(self, client, auth, seed_meal, store):
        meal_id = seed_meal("chef@x.com")
        payload = {"userEmail": "a@x.com", "mealId": meal_id, "mealName": "Lentil Soup"}

        first = client.post("/favorites", json=payload, headers=auth("a@x.com"))
        second = client.post("/favorites", json=payload, headers=auth("a@x.com"))

        assert first.json()["acknowledged"] is True
        assert second.json() == {"exists": True}
        assert store.favorites.count() == 1

    def test_cannot_favorite_for_someone_else(self, client, auth):
        response = client.post("/favorites", json={"userEmail": "b@x.com", "mealId": "m1"}, headers=auth("a@x.com"))
        assert response.status_code == 403

    def test_list_own_favorites_only(self, client, auth):
        client.post("/favorites", json={"userEmail": "a@x.com", "mealId": "m1"}, headers=auth("a@x.com"))

        assert len(client.get("/favorites/a@x.com", headers=auth("a@x.com")).json()) == 1
        assert client.get("/favorites/a@x.com", headers=auth("b@x.com")).status_code == 403

    def test_delete_checks_owner_and_allows_re_adding(self, client, auth):
        payload = {"userEmail": "a@x.com", "mealId": "m1"}
        fav_id = client.post("/favorites", json=payload, headers=auth("a@x.com")).json()["insertedId"]

        assert client.delete(f"/favorites/{fav_id}", headers=auth("b@x.com")).status_code == 403
        assert client.delete(f"/favorites/{fav_id}", headers=auth("a@x.com")).json()["deletedCount"] == 1

        again = client.post("/favorites", json=payload, headers=auth("a@x.com"))
        assert again.json()["acknowledged"] is True
