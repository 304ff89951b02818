import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt

from ..core.config import settings


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64url_decode(data: str) -> bytes:
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("utf-8"))


def _sign(signing_input: bytes) -> bytes:
    return hmac.new(settings.secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()


def create_session_token(user_id: int, expires_in_seconds: Optional[int] = None) -> str:
    """Signed HS256 JWT for the session cookie, subject is the user id."""
    if expires_in_seconds is None:
        expires_in_seconds = settings.session_ttl_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in_seconds)).timestamp()),
    }

    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signature_b64 = _b64url_encode(_sign(f"{header_b64}.{payload_b64}".encode("utf-8")))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def verify_session_token(token: str) -> Optional[Dict[str, Any]]:
    """Payload of a valid token, None when the signature or expiry check fails."""
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        header_b64, payload_b64, signature_b64 = parts
        expected_sig = _sign(f"{header_b64}.{payload_b64}".encode("utf-8"))
        actual_sig = _b64url_decode(signature_b64)

        if not hmac.compare_digest(expected_sig, actual_sig):
            return None

        payload = json.loads(_b64url_decode(payload_b64))
        exp = int(payload.get("exp", 0))
        if datetime.now(timezone.utc).timestamp() > exp:
            return None
        return payload
    except (ValueError, TypeError):
        return None


def _prehash(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes of its input
    return hashlib.sha256(password.encode("utf-8")).hexdigest().encode("ascii")


def hash_password(password: str) -> str:
    """bcrypt hash of the SHA-256 hex digest of the password"""
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except ValueError:
        return False
