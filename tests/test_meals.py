"""Meals: chef-only creation with the fraud gate, public reads, owner-only changes."""
from conftest import MISSING_ID

SOUP = {"foodName": "Lentil Soup", "price": 10, "ingredients": ["lentil", "onion"]}


class TestCreateMeal:
    def test_chef_creates_meal(self, client, auth, seed_user, store):
        seed_user("a@x.com", role="chef", chefId="chef-1")

        response = client.post("/meals", json={**SOUP, "chefEmail": "a@x.com"}, headers=auth("a@x.com"))

        assert response.status_code == 200
        body = response.json()
        assert body["acknowledged"] is True
        meal = store.meals.find_by_id(body["insertedId"])
        assert meal["chefEmail"] == "a@x.com"
        assert meal["chefId"] == "chef-1"

    def test_owner_field_is_stamped_when_absent(self, client, auth, seed_user, store):
        seed_user("a@x.com", role="chef")
        response = client.post("/meals", json=SOUP, headers=auth("a@x.com"))
        assert store.meals.find_by_id(response.json()["insertedId"])["chefEmail"] == "a@x.com"

    def test_cannot_create_for_another_chef(self, client, auth, seed_user):
        seed_user("a@x.com", role="chef")
        response = client.post("/meals", json={**SOUP, "chefEmail": "b@x.com"}, headers=auth("a@x.com"))
        assert response.status_code == 403

    def test_only_chefs(self, client, auth, seed_user):
        seed_user("a@x.com")
        response = client.post("/meals", json=SOUP, headers=auth("a@x.com"))
        assert response.status_code == 403
        assert response.json()["message"] == "Only chefs can create meals"

    def test_fraud_chef_blocked(self, client, auth, seed_user, store):
        seed_user("a@x.com", role="chef", status="fraud")
        response = client.post("/meals", json=SOUP, headers=auth("a@x.com"))
        assert response.status_code == 403
        assert response.json() == {"message": "Fraud chefs cannot create meals", "error": "Forbidden"}
        assert store.meals.count() == 0

    def test_invalid_price(self, client, auth, seed_user):
        seed_user("a@x.com", role="chef")
        response = client.post("/meals", json={**SOUP, "price": 0}, headers=auth("a@x.com"))
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidArgument"


class TestReadMeals:
    def test_list_is_public(self, client, seed_meal):
        seed_meal("a@x.com", price=5)
        seed_meal("b@x.com", price=9)
        response = client.get("/meals", params={"sort": "desc"})
        assert [m["price"] for m in response.json()] == [9, 5]

    def test_filter_by_chef(self, client, seed_meal):
        seed_meal("a@x.com")
        seed_meal("b@x.com")
        response = client.get("/meals", params={"chefEmail": "b@x.com"})
        assert [m["chefEmail"] for m in response.json()] == ["b@x.com"]

    def test_out_of_range_limit(self, client):
        response = client.get("/meals", params={"limit": 0})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "InvalidArgument"
        assert body["message"].startswith("limit: ")

    def test_unknown_sort_order(self, client):
        response = client.get("/meals", params={"sort": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidArgument"
        assert response.json()["message"].startswith("sort: ")

    def test_get_one(self, client, seed_meal):
        meal_id = seed_meal("a@x.com")
        response = client.get(f"/meals/{meal_id}")
        assert response.status_code == 200
        assert response.json()["_id"] == meal_id

    def test_malformed_id(self, client):
        response = client.get("/meals/not-an-id")
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid meal id", "error": "InvalidArgument"}

    def test_missing_meal(self, client):
        assert client.get(f"/meals/{MISSING_ID}").status_code == 404


class TestChangeMeal:
    def test_owner_updates_price(self, client, auth, seed_user, seed_meal, store):
        seed_user("a@x.com", role="chef")
        meal_id = seed_meal("a@x.com")

        response = client.patch(f"/meals/{meal_id}", json={"price": 15}, headers=auth("a@x.com"))

        assert response.status_code == 200
        assert store.meals.find_by_id(meal_id)["price"] == 15

    def test_owner_fields_are_not_patchable(self, client, auth, seed_user, seed_meal):
        seed_user("a@x.com", role="chef")
        meal_id = seed_meal("a@x.com")
        response = client.patch(f"/meals/{meal_id}", json={"chefEmail": "b@x.com"}, headers=auth("a@x.com"))
        assert response.status_code == 400

    def test_other_chef_cannot_update(self, client, auth, seed_user, seed_meal):
        seed_user("b@x.com", role="chef")
        meal_id = seed_meal("a@x.com")
        assert client.patch(f"/meals/{meal_id}", json={"price": 1}, headers=auth("b@x.com")).status_code == 403

    def test_owner_deletes(self, client, auth, seed_user, seed_meal, store):
        seed_user("a@x.com", role="chef")
        meal_id = seed_meal("a@x.com")

        response = client.delete(f"/meals/{meal_id}", headers=auth("a@x.com"))

        assert response.status_code == 200
        assert response.json()["result"]["deletedCount"] == 1
        assert store.meals.count() == 0

    def test_delete_missing(self, client, auth, seed_user):
        seed_user("a@x.com", role="chef")
        assert client.delete(f"/meals/{MISSING_ID}", headers=auth("a@x.com")).status_code == 404


def test_end_to_end_ownership_and_fraud(client, auth, seed_user):
    seed_user("a@x.com", role="chef")
    seed_user("b@x.com", role="user", status="fraud")

    created = client.post("/meals", json={**SOUP, "chefEmail": "a@x.com"}, headers=auth("a@x.com"))
    assert created.status_code == 200
    assert created.json()["acknowledged"] is True

    spoofed = client.post("/meals", json={**SOUP, "chefEmail": "b@x.com"}, headers=auth("a@x.com"))
    assert spoofed.status_code == 403

    order = client.post(
        "/orders",
        json={"mealId": created.json()["insertedId"], "quantity": 1, "userAddress": "Kadikoy"},
        headers=auth("b@x.com"),
    )
    assert order.status_code == 403
    assert order.json()["error"] == "Forbidden"
