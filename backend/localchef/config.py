"""
localchef/config.py - Application configuration and Firebase initialization.

This module defines a Pydantic BaseSettings class that loads configuration from the
environment (and an optional `.env` file), plus the helpers that turn those settings
into the collaborators the app is built from: the Firebase Admin app, the document
store, the identity provider and the payment gateway.

Nothing here runs at import time. `create_app()` calls the builders once at startup
and keeps the results on `app.state`.
"""
import base64
import json
import logging
from functools import lru_cache
from typing import Literal, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger("localchef.config")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Firebase service account: either a base64 encoded JSON blob or a file on disk
    fb_service_key: Optional[str] = Field(None, description="Base64 encoded service account JSON")
    firebase_cred_file: str = Field('firebase_service_account.json')
    firebase_project_id: Optional[str] = None

    store_backend: Literal["firestore", "memory"] = "firestore"

    # Development only: accept `mock_jwt_token_<email>` bearer tokens
    auth_mock_tokens: bool = False
    auth_check_revoked: bool = False

    iyzico_api_key: str = ''
    iyzico_secret_key: str = ''
    iyzico_base_url: str = 'sandbox-api.iyzipay.com'
    payment_currency: str = 'TRY'
    payment_locale: str = 'tr'

    client_url: str = 'http://localhost:5173'
    allowed_origins: str = '*'  # Comma-separated list or '*' for all
    debug: bool = False
    log_level: str = 'INFO'
    port: int = 3000

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def origins(self) -> list:
        if not self.allowed_origins or self.allowed_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(',') if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


def _load_credential(settings: Settings) -> credentials.Certificate:
    if settings.fb_service_key:
        decoded = base64.b64decode(settings.fb_service_key).decode("utf-8")
        return credentials.Certificate(json.loads(decoded))
    # Use service account file (local development)
    return credentials.Certificate(settings.firebase_cred_file)


def init_firebase(settings: Settings) -> firebase_admin.App:
    """
    Initialize the default Firebase Admin app once.
    Calling this again (tests, reloads) returns the already initialized app.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {'projectId': settings.firebase_project_id} if settings.firebase_project_id else None
    try:
        return firebase_admin.initialize_app(_load_credential(settings), options)
    except ValueError as e:
        if "already exists" in str(e):
            # Firebase app already initialized, get the default app
            return firebase_admin.get_app()
        raise


def build_store(settings: Settings):
    from localchef.repositories.memory import InMemoryDocumentStore
    from localchef.repositories.firestore import FirestoreDocumentStore

    if settings.store_backend == "memory":
        logger.warning("Using the in-memory document store; data is lost on restart")
        return InMemoryDocumentStore()
    firebase_app = init_firebase(settings)
    return FirestoreDocumentStore(firestore.client(firebase_app))


def build_identity_provider(settings: Settings):
    from localchef.integrations.identity import FirebaseIdentityProvider, MockIdentityProvider

    if settings.auth_mock_tokens:
        logger.warning("Mock bearer tokens are enabled; never run this way in production")
        return MockIdentityProvider()
    return FirebaseIdentityProvider(init_firebase(settings), check_revoked=settings.auth_check_revoked)


def build_payment_gateway(settings: Settings):
    from localchef.integrations.payment import IyzicoPaymentGateway

    return IyzicoPaymentGateway(
        api_key=settings.iyzico_api_key,
        secret_key=settings.iyzico_secret_key,
        base_url=settings.iyzico_base_url,
        currency=settings.payment_currency,
        locale=settings.payment_locale,
    )
