import hashlib
import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional
from uuid import uuid4

from handyhub.auth import create_access_token, hash_password, read_access_token, verify_password

logger = logging.getLogger(__name__)


class IdentityError(ValueError):
    """Sign-in or sign-up rejected; the message is shown to the user."""


@dataclass(frozen=True)
class SignedInUser:
    user_id: str
    email: str
    access_token: str
    expires_at: str


class IdentityStore:
    """Email/password accounts with bearer tokens that can be revoked on sign-out."""

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
                    CREATE TABLE IF NOT EXISTS accounts (
                        user_id TEXT PRIMARY KEY,
                        email TEXT NOT NULL UNIQUE,
                        password_hash TEXT NOT NULL,
                        password_salt TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS revoked_tokens (
                        token_hash TEXT PRIMARY KEY,
                        expires_at INTEGER NOT NULL
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def sign_up(self, email: str, password: str) -> str:
        normalized = self._normalize_email(email)
        local, _, domain = normalized.partition("@")
        if not local or "." not in domain:
            raise IdentityError("The email address is badly formatted.")
        if len(password) < 6:
            raise IdentityError("The given password is invalid. Password should be at least 6 characters")

        password_hash, salt = hash_password(password)
        user_id = uuid4().hex[:28]
        with self._lock:
            with self._connect() as conn:
                try:
                    conn.execute(
                        """
                        INSERT INTO accounts (user_id, email, password_hash, password_salt, created_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (user_id, normalized, password_hash, salt, datetime.now(timezone.utc).isoformat()),
                    )
                    conn.commit()
                except sqlite3.IntegrityError:
                    raise IdentityError("The email address is already in use by another account.") from None
        logger.info("Account created: %s", user_id)
        return user_id

    def sign_in(self, email: str, password: str) -> SignedInUser:
        normalized = self._normalize_email(email)
        with self._lock:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT user_id, email, password_hash, password_salt FROM accounts WHERE email = ?",
                    (normalized,),
                ).fetchone()
        if not row or not verify_password(password, row["password_hash"], row["password_salt"]):
            raise IdentityError("The supplied auth credential is incorrect, malformed or has expired.")
        token, expires_at = create_access_token(user_id=row["user_id"])
        return SignedInUser(
            user_id=row["user_id"],
            email=row["email"],
            access_token=token,
            expires_at=expires_at,
        )

    @staticmethod
    def _token_hash(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def sign_out(self, token: Optional[str]) -> None:
        claims = read_access_token(token) if token else None
        if claims is None:
            return
        now = int(datetime.now(timezone.utc).timestamp())
        with self._lock:
            with self._connect() as conn:
                # Rows for expired tokens are pruned on each sign-out.
                conn.execute("DELETE FROM revoked_tokens WHERE expires_at < ?", (now,))
                conn.execute(
                    "INSERT OR IGNORE INTO revoked_tokens (token_hash, expires_at) VALUES (?, ?)",
                    (self._token_hash(token), claims[1]),
                )
                conn.commit()

    def resolve_token(self, token: Optional[str]) -> Optional[str]:
        claims = read_access_token(token) if token else None
        if claims is None:
            return None
        with self._lock:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT 1 FROM revoked_tokens WHERE token_hash = ?", (self._token_hash(token),)
                ).fetchone()
        return None if row else claims[0]

    def email_for(self, user_id: str) -> Optional[str]:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT email FROM accounts WHERE user_id = ?", (user_id,)).fetchone()
        return str(row["email"]) if row else None

    def session(self, token: Optional[str] = None) -> "IdentitySession":
        return IdentitySession(store=self, token=token)


class IdentitySession:
    """The signed-in identity as seen by one screen."""

    def __init__(self, store: IdentityStore, token: Optional[str] = None) -> None:
        self._store = store
        self._token = token

    @property
    def token(self) -> Optional[str]:
        return self._token

    def current_user_id(self) -> Optional[str]:
        return self._store.resolve_token(self._token)

    def sign_in(self, email: str, password: str) -> SignedInUser:
        user = self._store.sign_in(email, password)
        self._token = user.access_token
        return user

    def sign_up(self, email: str, password: str) -> str:
        return self._store.sign_up(email, password)

    def sign_out(self) -> None:
        self._store.sign_out(self._token)
        self._token = None


@lru_cache(maxsize=1)
def get_identity_store() -> IdentityStore:
    default_db = str(Path(__file__).resolve().parents[2] / "data" / "identity.sqlite3")
    return IdentityStore(db_path=os.getenv("IDENTITY_DB_PATH", default_db))
