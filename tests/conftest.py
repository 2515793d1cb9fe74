import threading

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

GATEWAY_SECRET = "rzp_test_secret"


class FakeGateway:
    def __init__(self):
        self.calls = []
        self.error = None

    def create_order(self, amount, currency, receipt):
        if self.error is not None:
            raise self.error
        self.calls.append((amount, currency, receipt))
        return {
            "id": f"order_test{len(self.calls)}",
            "entity": "order",
            "amount": int(round(amount * 100)),
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="mongodb://localhost:27017",
        database_name="storefront_test",
        jwt_secret="test-signing-secret",
        razorpay_key="rzp_test_key",
        razorpay_secret=GATEWAY_SECRET,
        upload_dir=str(tmp_path / "images"),
        public_base_url="http://testserver",
    )


@pytest.fixture
def db():
    return mongomock.MongoClient()["storefront_test"]


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, db, gateway):
    app = create_app(settings, db=db, gateway=gateway)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token(client):
    res = client.post("/signup", json={"username": "Ana", "email": "ana@example.com", "password": "secret123"})
    assert res.status_code == 200
    return res.json()["token"]


@pytest.fixture
def auth_headers(token):
    return {"auth-token": token}


def add_product(client, **overrides):
    body = {
        "name": "Kibble",
        "image": "http://testserver/images/product_1.png",
        "category": "dog",
        "new_price": 10,
        "old_price": 12,
    }
    body.update(overrides)
    res = client.post("/addproduct", json=body)
    assert res.status_code == 200
    return res.json()


class SerializedDatabase:
    """mongomock with each collection call made atomic, like a real server.

    mongomock runs find-then-write internally, so without this a
    single-operation update can still interleave across threads.
    """

    def __init__(self, db):
        self._db = db
        self._lock = threading.RLock()

    def __getitem__(self, name):
        return _SerializedCollection(self._db[name], self._lock)

    def __getattr__(self, name):
        return getattr(self._db, name)


class _SerializedCollection:
    def __init__(self, collection, lock):
        self._collection = collection
        self._lock = lock

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        def call(*args, **kwargs):
            with self._lock:
                return attr(*args, **kwargs)
        return call


@pytest.fixture
def shared_db(db):
    return SerializedDatabase(db)
