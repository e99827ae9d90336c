import base64
import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_TOKEN_TTL_HOURS = 24


def _read_positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


TOKEN_TTL_HOURS = _read_positive_int_env("AUTH_TOKEN_TTL_HOURS", DEFAULT_TOKEN_TTL_HOURS)
_AUTH_SECRET = os.getenv("AUTH_SECRET", "dev-insecure-secret-change-me")


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _b64urldecode(value: str) -> bytes:
    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def create_access_token(user_id: str) -> tuple[str, str]:
    expiry = datetime.now(timezone.utc) + timedelta(hours=TOKEN_TTL_HOURS)
    # Nonce keeps two sign-ins within the same second distinct so sign-out revokes only one session.
    nonce = _b64url(os.urandom(6))
    payload = f"{user_id}|{int(expiry.timestamp())}|{nonce}".encode("utf-8")
    payload_part = _b64url(payload)
    sig = hmac.new(_AUTH_SECRET.encode("utf-8"), payload, hashlib.sha256).digest()
    token = f"{payload_part}.{_b64url(sig)}"
    return token, expiry.isoformat()


def read_access_token(token: str) -> Optional[tuple[str, int]]:
    """Return the user id and expiry timestamp of a validly signed, unexpired token."""
    try:
        payload_part, sig_part = token.split(".", 1)
        payload = _b64urldecode(payload_part)
        sent_sig = _b64urldecode(sig_part)
        expected_sig = hmac.new(_AUTH_SECRET.encode("utf-8"), payload, hashlib.sha256).digest()
        if not hmac.compare_digest(sent_sig, expected_sig):
            return None
        user_id, expiry_ts, _nonce = payload.decode("utf-8").split("|", 2)
        if datetime.now(timezone.utc).timestamp() > int(expiry_ts):
            return None
        return user_id, int(expiry_ts)
    except Exception:
        return None


def verify_access_token(token: str) -> Optional[str]:
    claims = read_access_token(token)
    return claims[0] if claims else None


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def hash_password(password: str, salt: Optional[bytes] = None) -> tuple[str, str]:
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 120_000)
    return _b64url(digest), _b64url(salt)


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    candidate, _ = hash_password(password, salt=_b64urldecode(salt))
    return hmac.compare_digest(candidate, password_hash)
