import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from handyhub.main import app
from handyhub.services.directory_client import (
    DirectoryClientError,
    DirectoryDocument,
    SqliteDirectoryClient,
    get_directory_client,
)
from handyhub.services.identity_store import IdentityStore, get_identity_store


class FakeDirectoryClient:
    """In-memory collections with switchable failures and a call log."""

    def __init__(self):
        self.collections = {}
        self.calls = []
        self.fail_fetch = False
        self.fail_insert = False
        self._counter = 0

    def put(self, collection, document_id, data):
        self.collections.setdefault(collection, []).append((document_id, dict(data)))

    async def fetch_all(self, collection):
        self.calls.append(("fetch_all", collection))
        if self.fail_fetch:
            raise DirectoryClientError("backend unavailable")
        return [DirectoryDocument(id=doc_id, data=dict(data)) for doc_id, data in self.collections.get(collection, [])]

    async def insert(self, collection, record):
        self.calls.append(("insert", collection))
        if self.fail_insert:
            raise DirectoryClientError("write rejected")
        self._counter += 1
        doc_id = f"doc_{self._counter}"
        self.put(collection, doc_id, record)
        return doc_id

    async def fetch_by_field(self, collection, field, value, order_by, descending=True):
        self.calls.append(("fetch_by_field", collection, field, value, order_by, descending))
        if self.fail_fetch:
            raise DirectoryClientError("backend unavailable")
        rows = [(doc_id, data) for doc_id, data in self.collections.get(collection, []) if data.get(field) == value]
        rows.sort(key=lambda row: row[1].get(order_by), reverse=descending)
        return [DirectoryDocument(id=doc_id, data=dict(data)) for doc_id, data in rows]


@pytest.fixture
def fake_client():
    return FakeDirectoryClient()


@pytest.fixture
def identity_store(tmp_path):
    return IdentityStore(db_path=str(tmp_path / "identity.sqlite3"))


@pytest.fixture
def api_client(tmp_path, identity_store):
    directory = SqliteDirectoryClient(db_path=str(tmp_path / "directory.sqlite3"))
    app.dependency_overrides[get_directory_client] = lambda: directory
    app.dependency_overrides[get_identity_store] = lambda: identity_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
