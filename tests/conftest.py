"""Pytest configuration and fixtures"""
import os
from datetime import datetime, timedelta, timezone

import fakeredis
import mongomock
import pytest

# keep settings deterministic regardless of the developer's .env
os.environ.setdefault("CART_MATCH_SCOPE", "scoped")
os.environ.setdefault("CART_MERGE_STRATEGY", "atomic")
os.environ.setdefault("CART_SNAPSHOT_POLICY", "reject")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from cart_service.data.database import ensure_indexes  # noqa: E402
from cart_service.services.cart_service import CartService  # noqa: E402
from cart_service.services.keyed_lock import KeyedLock  # noqa: E402
from cart_service.services.lock_service import LockService  # noqa: E402


CATALOG = {
    "p1": {"_id": "mongo-internal", "id": "p1", "name": "Keyboard", "price": 199.99},
    "p2": {"id": "p2", "name": "Mouse", "price": 49.5},
    "42": {"id": 42, "name": "Monitor", "price": 899.0},
}


class StubProductClient:
    """In-memory catalog that records every lookup."""

    def __init__(self, products=None, error=None):
        self.products = dict(CATALOG if products is None else products)
        self.error = error
        self.calls = []

    def fetch_product(self, product_id):
        self.calls.append(product_id)
        if self.error is not None:
            raise self.error
        product = self.products.get(product_id)
        return dict(product) if product is not None else None


class FakeClock:
    """Advances one second on every call."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def mongo_db():
    """Fresh in-memory MongoDB database with the production indexes."""
    db = mongomock.MongoClient()["shop_test"]
    ensure_indexes(db)
    return db


@pytest.fixture
def product_client():
    return StubProductClient()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def lock_service(fake_redis):
    return LockService(client=fake_redis, ttl=5, wait_seconds=0.3)


@pytest.fixture
def make_service(mongo_db, product_client, clock):
    """Factory for CartService over the in-memory store; keyword overrides win."""

    def _make(**overrides):
        kwargs = dict(
            db=mongo_db,
            product_client=product_client,
            match_scope="scoped",
            merge_strategy="atomic",
            snapshot_policy="reject",
            keyed_lock=KeyedLock(),
            clock=clock,
        )
        kwargs.update(overrides)
        return CartService(**kwargs)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()
