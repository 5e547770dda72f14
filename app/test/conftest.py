import pytest
from fastapi.testclient import TestClient

from app.config.settings import settings
from app.database.connection import get_db
from app.services.property_service import listing_cache
from app.test.fake_firestore import FakeFirestore

from main import app


@pytest.fixture(autouse=True)
def no_vendor_keys(monkeypatch):
    for key in (
        "GEMINI_API_KEY",
        "GOOGLE_GEMINI_API_KEY",
        "IDX_BROKER_API_KEY",
        "STRIPE_SECRET_KEY",
        "STRIPE_WEBHOOK_SECRET",
        "STRIPE_PUBLIC_KEY",
    ):
        monkeypatch.setattr(settings, key, None)
    listing_cache.clear()


@pytest.fixture(scope="function")
def db():
    return FakeFirestore()


@pytest.fixture(scope="function")
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()
