# tests/conftest.py
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

ADMIN_EMAIL = "admin@example.com"

from cryptoadmin import config as app_config  # noqa: E402
app_config.settings.ADMIN_EMAILS = ADMIN_EMAIL
app_config.settings.JWT_SECRET = "test-secret"

from cryptoadmin.api import deps as app_deps  # noqa: E402
from cryptoadmin.core.access import allow_list_policy  # noqa: E402
from cryptoadmin.core.admin_page import AdminPage  # noqa: E402
from cryptoadmin.database import FileBackedDocumentStore, StoreError  # noqa: E402
from cryptoadmin.main import app  # noqa: E402
from cryptoadmin.models.coin import Coin  # noqa: E402
from cryptoadmin.models.session import AdminContext, User  # noqa: E402


@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path):
    """
    Point the store at an isolated data directory and start every test with
    fresh page state. Restores the original setting afterwards.
    """
    orig = app_config.settings.DATA_DIR
    app_config.settings.DATA_DIR = Path(tmp_path)
    app_deps._registry = None
    try:
        yield Path(tmp_path)
    finally:
        app_config.settings.DATA_DIR = orig
        app_deps._registry = None


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def store(temp_data_dir):
    return FileBackedDocumentStore(data_dir=temp_data_dir)


@pytest.fixture
def token_for():
    """
    Build an identity-provider style token.
    Usage: tok = token_for("uid-1", "someone@example.com")
    """
    def _fn(uid: str, email: str = "", secret: str = None):
        claims = {"sub": uid}
        if email:
            claims["email"] = email
        return jwt.encode(claims, secret or app_config.settings.JWT_SECRET, algorithm=app_config.settings.JWT_ALGORITHM)
    return _fn


@pytest.fixture
def auth_header(token_for):
    """
    Usage: hdr = auth_header("uid-1", "someone@example.com")
    """
    def _h(uid: str, email: str = ""):
        return {"Authorization": f"Bearer {token_for(uid, email)}"}
    return _h


@pytest.fixture
def admin_header(auth_header):
    return auth_header("admin-uid", ADMIN_EMAIL)


@pytest.fixture
def seed_coins(temp_data_dir):
    """Write a small coin catalog into the data dir."""
    def _fn(rows=None):
        rows = rows or [
            {"id": "bitcoin", "name": "Bitcoin", "symbol": "btc"},
            {"id": "ethereum", "name": "Ethereum", "symbol": "eth"},
        ]
        path = temp_data_dir / app_config.settings.COINS_FILE
        lines = ["id,name,symbol"] + [f'{r["id"]},{r["name"]},{r["symbol"]}' for r in rows]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _fn


class RecordingStore:
    """Wraps a real store and records every call made through it."""

    def __init__(self, inner):
        self.inner = inner
        self.gets = []
        self.sets = []

    async def get(self, collection, doc_id):
        self.gets.append((collection, doc_id))
        return await self.inner.get(collection, doc_id)

    async def set(self, collection, doc_id, fields, merge=True):
        self.sets.append((collection, doc_id, dict(fields), merge))
        await self.inner.set(collection, doc_id, fields, merge=merge)


class FailingStore(RecordingStore):
    """Records calls like RecordingStore, then rejects them."""

    def __init__(self, inner, message="permission denied"):
        super().__init__(inner)
        self.message = message
        self.fail_gets = True
        self.fail_sets = True

    async def get(self, collection, doc_id):
        self.gets.append((collection, doc_id))
        if self.fail_gets:
            raise StoreError(self.message)
        return await self.inner.get(collection, doc_id)

    async def set(self, collection, doc_id, fields, merge=True):
        self.sets.append((collection, doc_id, dict(fields), merge))
        if self.fail_sets:
            raise StoreError(self.message)
        await self.inner.set(collection, doc_id, fields, merge=merge)


@pytest.fixture
def recording_store(store):
    return RecordingStore(store)


@pytest.fixture
def failing_store(store):
    return FailingStore(store)


@pytest.fixture
def make_page():
    def _fn(db, emails=(ADMIN_EMAIL,)):
        return AdminPage(db, allow_list_policy(emails))
    return _fn


@pytest.fixture
def admin_ctx():
    """Context for a signed-in admin with a two-coin catalog."""
    def _fn(uid="admin-uid", email=ADMIN_EMAIL, coins=None):
        if coins is None:
            coins = [
                Coin(id="bitcoin", name="Bitcoin", symbol="btc"),
                Coin(id="ethereum", name="Ethereum", symbol="eth"),
            ]
        return AdminContext(user=User(uid=uid, email=email), watchlist=["bitcoin"], coins=coins)
    return _fn
