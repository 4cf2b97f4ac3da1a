"""Role requests: one pending request per user, admin decisions."""
from concurrent.futures import ThreadPoolExecutor

import pytest

from localchef.core.errors import Conflict
from localchef.services import role_requests
from localchef.services.role_requests import DUPLICATE_MESSAGE

from conftest import MISSING_ID


def submit(client, auth, email, request_type="chef"):
    return client.post("/role-requests", json={"userEmail": email, "requestType": request_type},
                       headers=auth(email))


@pytest.fixture
def admin(seed_user):
    return seed_user("root@x.com", role="admin")


class TestSubmit:
    def test_submit(self, client, auth, seed_user, store):
        seed_user("u@x.com")

        response = submit(client, auth, "u@x.com")

        assert response.status_code == 200
        assert response.json()["success"] is True
        request = store.role_requests.find_one({"userEmail": "u@x.com"})
        assert request["requestStatus"] == "pending"
        assert request["requestType"] == "chef"

    def test_second_pending_request_conflicts(self, client, auth, seed_user):
        seed_user("u@x.com")
        submit(client, auth, "u@x.com")

        response = submit(client, auth, "u@x.com", "admin")

        assert response.status_code == 409
        assert response.json() == {"message": DUPLICATE_MESSAGE, "error": "Conflict"}

    def test_for_someone_else(self, client, auth, seed_user):
        seed_user("u@x.com")
        response = client.post("/role-requests", json={"userEmail": "v@x.com", "requestType": "chef"},
                               headers=auth("u@x.com"))
        assert response.status_code == 403

    def test_already_has_role(self, client, auth, seed_user):
        seed_user("c@x.com", role="chef")
        assert submit(client, auth, "c@x.com").status_code == 409

    def test_unknown_request_type(self, client, auth, seed_user):
        seed_user("u@x.com")
        assert submit(client, auth, "u@x.com", "owner").status_code == 400

    def test_unregistered_user(self, client, auth):
        assert submit(client, auth, "nobody@x.com").status_code == 404

    def test_concurrent_submissions_create_one_request(self, store):
        def attempt(_):
            try:
                role_requests.submit(store, email="u@x.com", request_type="chef")
                return "ok"
            except Conflict:
                return "conflict"

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(8)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert store.role_requests.count({"userEmail": "u@x.com", "requestStatus": "pending"}) == 1


class TestDecisions:
    @pytest.fixture
    def request_id(self, client, auth, seed_user, store):
        seed_user("u@x.com")
        submit(client, auth, "u@x.com")
        return store.role_requests.find_one({"userEmail": "u@x.com"})["_id"]

    def test_admin_lists_requests(self, client, auth, admin, request_id):
        response = client.get("/role-requests", headers=auth("root@x.com"))
        assert [r["_id"] for r in response.json()] == [request_id]

    def test_list_requires_admin(self, client, auth, request_id):
        assert client.get("/role-requests", headers=auth("u@x.com")).status_code == 403

    def test_accept_chef(self, client, auth, admin, request_id, store):
        response = client.patch(f"/role-requests/accept/{request_id}", headers=auth("root@x.com"))

        assert response.status_code == 200
        user = store.users.find_one({"email": "u@x.com"})
        assert user["role"] == "chef"
        assert user["chefId"].startswith("chef-")
        assert store.role_requests.find_by_id(request_id)["requestStatus"] == "approved"

    def test_accept_twice(self, client, auth, admin, request_id):
        client.patch(f"/role-requests/accept/{request_id}", headers=auth("root@x.com"))
        response = client.patch(f"/role-requests/accept/{request_id}", headers=auth("root@x.com"))
        assert response.status_code == 409
        assert response.json()["message"] == "Request already approved"

    def test_reject_leaves_user_untouched(self, client, auth, admin, request_id, store):
        response = client.patch(f"/role-requests/reject/{request_id}", headers=auth("root@x.com"))

        assert response.status_code == 200
        assert store.users.find_one({"email": "u@x.com"})["role"] == "user"
        assert store.role_requests.find_by_id(request_id)["requestStatus"] == "rejected"

    def test_new_request_allowed_after_decision(self, client, auth, admin, request_id):
        client.patch(f"/role-requests/reject/{request_id}", headers=auth("root@x.com"))
        assert submit(client, auth, "u@x.com").status_code == 200

    def test_non_admin_cannot_decide(self, client, auth, request_id):
        assert client.patch(f"/role-requests/accept/{request_id}", headers=auth("u@x.com")).status_code == 403

    def test_malformed_id(self, client, auth, admin):
        response = client.patch("/role-requests/accept/123", headers=auth("root@x.com"))
        assert response.json() == {"message": "Invalid role request id", "error": "InvalidArgument"}

    def test_missing_request(self, client, auth, admin):
        response = client.patch(f"/role-requests/reject/{MISSING_ID}", headers=auth("root@x.com"))
        assert response.status_code == 404

    def test_accept_when_user_record_is_gone(self, client, auth, admin, store):
        role_requests.submit(store, email="ghost@x.com", request_type="chef")
        request_id = store.role_requests.find_one({"userEmail": "ghost@x.com"})["_id"]

        response = client.patch(f"/role-requests/accept/{request_id}", headers=auth("root@x.com"))

        assert response.status_code == 404
        assert store.role_requests.find_by_id(request_id)["requestStatus"] == "pending"

    def test_accept_racing_a_reject_restores_the_user(self, store, seed_user, monkeypatch):
        seed_user("u@x.com")
        role_requests.submit(store, email="u@x.com", request_type="chef")
        stale = store.role_requests.find_one({"userEmail": "u@x.com"})
        # the reject commits after the accept has already read the request as pending
        role_requests.reject(store, stale["_id"])
        monkeypatch.setattr(role_requests, "_load_pending", lambda store, request_id: stale)

        with pytest.raises(Conflict, match="Request already rejected"):
            role_requests.accept(store, stale["_id"])

        user = store.users.find_one({"email": "u@x.com"})
        assert user["role"] == "user"
        assert user.get("chefId") is None
        assert store.role_requests.find_by_id(stale["_id"])["requestStatus"] == "rejected"

    def test_second_decision_on_a_stale_read_conflicts(self, store, seed_user, monkeypatch):
        seed_user("u@x.com")
        role_requests.submit(store, email="u@x.com", request_type="chef")
        stale = store.role_requests.find_one({"userEmail": "u@x.com"})
        role_requests.accept(store, stale["_id"])
        monkeypatch.setattr(role_requests, "_load_pending", lambda store, request_id: stale)

        with pytest.raises(Conflict, match="Request already approved"):
            role_requests.reject(store, stale["_id"])

        assert store.users.find_one({"email": "u@x.com"})["role"] == "chef"
