"""
Shared fixtures for the order-intake API tests.

Firestore is replaced by a small in-memory double that implements the
subset of the client API the stores use (documents, ordered queries,
count aggregation, batches with create semantics). Mail goes to recording
transports, so no test touches the network.
"""

import copy
import itertools
import threading
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import AlreadyExists, NotFound

from sorgulen_api.config import Settings
from sorgulen_api.main import create_app


# ---------------------------------------------------------------------------
# In-memory Firestore double
# ---------------------------------------------------------------------------

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = copy.deepcopy(data)
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self.collection_name = collection
        self.id = doc_id

    @property
    def _key(self):
        return (self.collection_name, self.id)

    def get(self):
        with self._db.lock:
            return FakeSnapshot(self.id, self._db.docs.get(self._key))

    def set(self, data):
        with self._db.lock:
            self._db.docs[self._key] = copy.deepcopy(data)
            self._db.writes.append(("set", self._key))

    def create(self, data):
        with self._db.lock:
            if self._key in self._db.docs:
                raise AlreadyExists(f"Document already exists: {self.id}")
            self._db.docs[self._key] = copy.deepcopy(data)
            self._db.writes.append(("create", self._key))

    def update(self, data):
        with self._db.lock:
            if self._key not in self._db.docs:
                raise NotFound(f"No document to update: {self.id}")
            self._db.docs[self._key].update(copy.deepcopy(data))
            self._db.writes.append(("update", self._key))

    def delete(self):
        with self._db.lock:
            self._db.docs.pop(self._key, None)


class FakeQuery:
    def __init__(self, collection, field=None, direction="ASCENDING"):
        self._collection = collection
        self._field = field
        self._direction = direction

    def stream(self):
        snaps = list(self._collection.stream())
        if self._field:
            snaps.sort(
                key=lambda s: s.to_dict().get(self._field),
                reverse=self._direction == "DESCENDING",
            )
        return iter(snaps)


class FakeCollection:
    def __init__(self, db, name):
        self._db = db
        self.name = name

    def document(self, doc_id=None):
        # A slash would turn the id into a nested path with an odd segment count
        if doc_id is not None and "/" in doc_id:
            raise ValueError(f"A document must have an even number of path elements: {self.name}/{doc_id}")
        return FakeDocumentRef(self._db, self.name, doc_id or uuid.uuid4().hex)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self, field, direction)

    def stream(self):
        with self._db.lock:
            items = [(k[1], v) for k, v in self._db.docs.items() if k[0] == self.name]
        return iter([FakeSnapshot(doc_id, data) for doc_id, data in items])

    def count(self):
        total = len(list(self.stream()))
        return SimpleNamespace(get=lambda: [[SimpleNamespace(alias="count", value=total)]])


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def create(self, ref, data):
        self._ops.append(("create", ref, data))

    def update(self, ref, data):
        self._ops.append(("update", ref, data))

    def delete(self, ref):
        self._ops.append(("delete", ref, None))

    def commit(self):
        with self._db.lock:
            # Preconditions first: nothing is written if any fails
            for op, ref, _ in self._ops:
                if op == "create" and ref._key in self._db.docs:
                    raise AlreadyExists(f"Document already exists: {ref.id}")
                if op == "update" and ref._key not in self._db.docs:
                    raise NotFound(f"No document to update: {ref.id}")
            for op, ref, data in self._ops:
                if op == "create":
                    self._db.docs[ref._key] = copy.deepcopy(data)
                elif op == "update":
                    self._db.docs[ref._key].update(copy.deepcopy(data))
                else:
                    self._db.docs.pop(ref._key, None)
                self._db.writes.append((op, ref._key))


class FakeFirestore:
    """Just enough of google.cloud.firestore.Client for the stores."""

    def __init__(self):
        self.docs = {}
        self.writes = []
        self.lock = threading.RLock()

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def raw(self, collection, doc_id):
        return copy.deepcopy(self.docs.get((collection, doc_id)))


# ---------------------------------------------------------------------------
# Mail transports
# ---------------------------------------------------------------------------

class RecordingTransport:
    """Records every message instead of sending it."""

    def __init__(self):
        self.sent = []
        self._lock = threading.Lock()

    def send(self, to, subject, text, html):
        with self._lock:
            self.sent.append(SimpleNamespace(to=to, subject=subject, text=text, html=html))

    def recipients(self):
        with self._lock:
            return [m.to for m in self.sent]


class FailingTransport(RecordingTransport):
    """Fails for the listed recipients (all recipients when none given)."""

    def __init__(self, fail_for=None):
        super().__init__()
        self.fail_for = set(fail_for or [])

    def send(self, to, subject, text, html):
        if not self.fail_for or to in self.fail_for:
            raise ConnectionRefusedError(f"SMTP unavailable for {to}")
        super().send(to, subject, text, html)


class BlockingTransport(RecordingTransport):
    """Holds every send until `release` is set."""

    def __init__(self, fail=False):
        super().__init__()
        self.release = threading.Event()
        self.fail = fail

    def send(self, to, subject, text, html):
        self.release.wait(timeout=10)
        if self.fail:
            raise TimeoutError("SMTP timed out")
        super().send(to, subject, text, html)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

OWNER_EMAIL = "owner@example.com"
OWNER_PASSWORD = "owner-password"


def make_settings(**overrides):
    values = dict(
        jwt_secret="test-secret",
        firestore_project_id="sorgulen-test",
        seed_owner_email=OWNER_EMAIL,
        seed_owner_password=OWNER_PASSWORD,
        company_email="ops@example.com",
        base_url="https://api.example.com",
        rate_limit_enabled=False,
        bcrypt_rounds=4,
        notify_workers=2,
    )
    values.update(overrides)
    return Settings(**values)


def order_payload(**overrides):
    payload = {
        "service": "trefelling",
        "customer": {
            "name": "Kari Nordmann",
            "email": "kari@example.com",
            "phone": "+47 900 00 000",
            "address": "Storgata 1",
            "zip": "0155",
            "city": "Oslo",
        },
        "details": "Two birches close to the house",
        "consent": True,
        "sourcePage": "/tjenester/trefelling",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def app(settings, db, transport):
    return create_app(settings=settings, db=db, transport=transport)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token(client):
    resp = client.post("/api/auth/login", json={"email": OWNER_EMAIL, "password": OWNER_PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def ticking_clock(monkeypatch):
    """Make store timestamps strictly increasing, one second apart."""
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = itertools.count()
    monkeypatch.setattr(
        "sorgulen_api.stores._now",
        lambda: start + timedelta(seconds=next(counter)),
    )
