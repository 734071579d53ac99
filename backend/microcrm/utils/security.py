from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from microcrm.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def create_access_token(subject: str, tenant_id: str, extra_claims: Mapping[str, Any] | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {
        "sub": subject,
        "tenant_id": tenant_id,
        "exp": expire,
        "jti": str(uuid4()),
    }
    if extra_claims:
        to_encode.update(extra_claims)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if "sub" not in payload or "jti" not in payload:
        raise ValueError("Invalid token payload")
    return payload


class TokenBlacklist:
    """Revoked token ids, kept in memory until the token would expire anyway."""

    def __init__(self) -> None:
        self._revoked: dict[str, float] = {}
        self._lock = threading.Lock()

    def revoke(self, jti: str, expires_at: float) -> None:
        with self._lock:
            self._revoked[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        now = datetime.now(timezone.utc).timestamp()
        with self._lock:
            for expired in [key for key, exp in self._revoked.items() if exp <= now]:
                del self._revoked[expired]
            return jti in self._revoked

    def clear(self) -> None:
        with self._lock:
            self._revoked.clear()


token_blacklist = TokenBlacklist()
