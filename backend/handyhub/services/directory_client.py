import asyncio
import json
import logging
import os
import re
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)

PROVIDERS_COLLECTION = "providers"
BOOKINGS_COLLECTION = "bookings"

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DirectoryClientError(RuntimeError):
    """Raised when the document store cannot serve a request."""


@dataclass(frozen=True)
class DirectoryDocument:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


class DirectoryClient(Protocol):
    async def fetch_all(self, collection: str) -> List[DirectoryDocument]:
        ...

    async def insert(self, collection: str, record: Dict[str, Any]) -> str:
        ...

    async def fetch_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: str,
        descending: bool = True,
    ) -> List[DirectoryDocument]:
        ...


class SqliteDirectoryClient:
    """Document collections kept as JSON bodies in a local sqlite file."""

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        id TEXT NOT NULL UNIQUE,
                        collection TEXT NOT NULL,
                        body_json TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection)")
                conn.commit()

    async def fetch_all(self, collection: str) -> List[DirectoryDocument]:
        return await asyncio.to_thread(self._fetch_all, collection)

    async def insert(self, collection: str, record: Dict[str, Any]) -> str:
        return await asyncio.to_thread(self._insert, collection, record)

    async def fetch_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: str,
        descending: bool = True,
    ) -> List[DirectoryDocument]:
        return await asyncio.to_thread(self._fetch_by_field, collection, field, value, order_by, descending)

    def _fetch_all(self, collection: str) -> List[DirectoryDocument]:
        try:
            with self._lock:
                with self._connect() as conn:
                    rows = conn.execute(
                        "SELECT id, body_json FROM documents WHERE collection = ? ORDER BY seq",
                        (collection,),
                    ).fetchall()
        except sqlite3.Error as exc:
            raise DirectoryClientError(f"Failed to fetch {collection}: {exc}") from exc
        return [self._row_to_document(row) for row in rows]

    def _insert(self, collection: str, record: Dict[str, Any]) -> str:
        document_id = uuid4().hex[:20]
        try:
            body = json.dumps(record)
        except (TypeError, ValueError) as exc:
            raise DirectoryClientError(f"Record for {collection} is not serialisable: {exc}") from exc
        try:
            with self._lock:
                with self._connect() as conn:
                    conn.execute(
                        "INSERT INTO documents (id, collection, body_json, created_at) VALUES (?, ?, ?, ?)",
                        (document_id, collection, body, datetime.now(timezone.utc).isoformat()),
                    )
                    conn.commit()
        except sqlite3.Error as exc:
            raise DirectoryClientError(f"Failed to write to {collection}: {exc}") from exc
        return document_id

    def _fetch_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: str,
        descending: bool,
    ) -> List[DirectoryDocument]:
        for name in (field, order_by):
            if not _FIELD_NAME.match(name):
                raise DirectoryClientError(f"Invalid field name: {name!r}")
        direction = "DESC" if descending else "ASC"
        try:
            with self._lock:
                with self._connect() as conn:
                    rows = conn.execute(
                        f"""
                        SELECT id, body_json FROM documents
                        WHERE collection = ? AND json_extract(body_json, ?) = ?
                        ORDER BY json_extract(body_json, ?) {direction}, seq {direction}
                        """,
                        (collection, f"$.{field}", value, f"$.{order_by}"),
                    ).fetchall()
        except sqlite3.Error as exc:
            raise DirectoryClientError(f"Failed to query {collection}: {exc}") from exc
        return [self._row_to_document(row) for row in rows]

    def _row_to_document(self, row: sqlite3.Row) -> DirectoryDocument:
        try:
            data = json.loads(row["body_json"] or "{}")
        except json.JSONDecodeError:
            data = {}
        return DirectoryDocument(id=str(row["id"]), data=data if isinstance(data, dict) else {})


class FirestoreDirectoryClient:
    """Cloud Firestore collections through firebase-admin."""

    def __init__(self, credentials_path: str) -> None:
        import firebase_admin
        from firebase_admin import credentials, firestore
        from google.api_core import exceptions as google_exceptions
        from google.cloud.firestore_v1.base_query import BaseQuery, FieldFilter

        cred = credentials.Certificate(credentials_path)
        if not firebase_admin._apps:  # pylint: disable=protected-access
            firebase_admin.initialize_app(cred)
        self._db = firestore.client()
        self._api_error = google_exceptions.GoogleAPIError
        self._field_filter = FieldFilter
        self._query = BaseQuery
        logger.info("Firestore directory client initialized")

    async def fetch_all(self, collection: str) -> List[DirectoryDocument]:
        return await asyncio.to_thread(self._fetch_all, collection)

    async def insert(self, collection: str, record: Dict[str, Any]) -> str:
        return await asyncio.to_thread(self._insert, collection, record)

    async def fetch_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: str,
        descending: bool = True,
    ) -> List[DirectoryDocument]:
        return await asyncio.to_thread(self._fetch_by_field, collection, field, value, order_by, descending)

    def _fetch_all(self, collection: str) -> List[DirectoryDocument]:
        try:
            snapshots = list(self._db.collection(collection).stream())
        except self._api_error as exc:
            raise DirectoryClientError(f"Failed to fetch {collection}: {exc}") from exc
        return [DirectoryDocument(id=snapshot.id, data=snapshot.to_dict() or {}) for snapshot in snapshots]

    def _insert(self, collection: str, record: Dict[str, Any]) -> str:
        try:
            _, reference = self._db.collection(collection).add(record)
        except self._api_error as exc:
            raise DirectoryClientError(f"Failed to write to {collection}: {exc}") from exc
        return reference.id

    def _fetch_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: str,
        descending: bool,
    ) -> List[DirectoryDocument]:
        direction = self._query.DESCENDING if descending else self._query.ASCENDING
        query = (
            self._db.collection(collection)
            .where(filter=self._field_filter(field, "==", value))
            .order_by(order_by, direction=direction)
        )
        try:
            snapshots = list(query.stream())
        except self._api_error as exc:
            raise DirectoryClientError(f"Failed to query {collection}: {exc}") from exc
        return [DirectoryDocument(id=snapshot.id, data=snapshot.to_dict() or {}) for snapshot in snapshots]


@lru_cache(maxsize=1)
def get_directory_client() -> DirectoryClient:
    credentials_path = os.getenv("FIREBASE_CREDENTIALS_PATH", "").strip()
    if credentials_path:
        return FirestoreDirectoryClient(credentials_path)
    default_db = str(Path(__file__).resolve().parents[2] / "data" / "directory.sqlite3")
    db_path = os.getenv("DIRECTORY_DB_PATH", default_db)
    logger.info("Directory backend: sqlite at %s", db_path)
    return SqliteDirectoryClient(db_path=db_path)
