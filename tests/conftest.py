"""Shared fixtures: an app wired to the in-memory store, mock tokens and simulated payments."""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from localchef.config import Settings
from localchef.integrations.identity import MockIdentityProvider, mock_token
from localchef.integrations.payment import IyzicoPaymentGateway
from localchef.main import create_app
from localchef.repositories.memory import InMemoryDocumentStore

CLIENT_URL = "http://front.test"

# well formed, never issued by the store
MISSING_ID = "A" * 20


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        store_backend="memory",
        auth_mock_tokens=True,
        client_url=CLIENT_URL,
        log_level="WARNING",
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def payments():
    return IyzicoPaymentGateway()


@pytest.fixture
def app(settings, store, payments):
    return create_app(settings, store=store, identity=MockIdentityProvider(), payments=payments)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth():
    """`auth("a@x.com")` -> headers carrying a mock bearer token for that e-mail."""
    def headers(email: str) -> dict:
        return {"Authorization": f"Bearer {mock_token(email)}"}
    return headers


@pytest.fixture
def seed_user(store):
    """Writes a user record straight into the store and returns it."""
    def seed(email: str, role: str = "user", status: str = "normal", **extra) -> dict:
        doc = {
            "email": email,
            "name": email.split("@")[0],
            "role": role,
            "status": status,
            "createdAt": datetime.now(timezone.utc),
            **extra,
        }
        if role == "chef" and "chefId" not in doc:
            doc["chefId"] = f"chef-{email.split('@')[0]}"
        doc["_id"] = store.users.insert_one(doc).inserted_id
        return doc
    return seed


@pytest.fixture
def seed_meal(store):
    def seed(chef_email: str, price: float = 12.5, **extra) -> str:
        doc = {
            "foodName": "Lentil Soup",
            "price": price,
            "chefEmail": chef_email,
            "chefId": f"chef-{chef_email.split('@')[0]}",
            "createdAt": datetime.now(timezone.utc),
            **extra,
        }
        return store.meals.insert_one(doc).inserted_id
    return seed
