"""JWT authentication for NutrIA: password hashing, tokens, dependencies."""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.db.engine import get_session
from src.db.user_tables import RevokedTokenRow, UserRow
from src.models import CamelModel

# ---- Password hashing (PBKDF2) ----

_ITERATIONS = 260_000
_SALT_LEN = 32


def hash_password(password: str) -> str:
    salt = uuid.uuid4().hex[:_SALT_LEN]
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return f"{salt}${dk.hex()}"


def verify_password(password: str, stored: str) -> bool:
    if "$" not in stored:
        return False
    salt, dk_hex = stored.split("$", 1)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return hmac.compare_digest(dk.hex(), dk_hex)


# ---- JWT (HS256) ----

_JWT_ALGO = "HS256"
_ACCESS_TTL = 3600 * 24 * 7  # 7 days
_REFRESH_TTL = 3600 * 24 * 30  # 30 days


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    s += "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s)


def _sign(payload: dict) -> str:
    header = _b64url(json.dumps({"alg": _JWT_ALGO, "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    sig_input = f"{header}.{body}".encode()
    sig = hmac.new(settings.JWT_SECRET.encode(), sig_input, hashlib.sha256).digest()
    return f"{header}.{body}.{_b64url(sig)}"


def decode_token(token: str) -> Optional[dict]:
    """Payload of a well-signed, unexpired token, else None."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        sig_input = f"{parts[0]}.{parts[1]}".encode()
        expected = hmac.new(settings.JWT_SECRET.encode(), sig_input, hashlib.sha256).digest()
        if not hmac.compare_digest(expected, _b64url_decode(parts[2])):
            return None
        payload = json.loads(_b64url_decode(parts[1]))
    except ValueError:
        # bad base64, bad utf-8 and bad JSON are all ValueError subclasses
        return None
    if not isinstance(payload, dict) or payload.get("exp", 0) < time.time():
        return None
    return payload


def _access_token(user_id: str, now: int) -> str:
    return _sign({"sub": user_id, "iat": now, "exp": now + _ACCESS_TTL, "type": "access",
                  "jti": uuid.uuid4().hex})


def create_tokens(user_id: str) -> dict:
    now = int(time.time())
    refresh = _sign({"sub": user_id, "iat": now, "exp": now + _REFRESH_TTL, "type": "refresh",
                     "jti": uuid.uuid4().hex})
    return {"access_token": _access_token(user_id, now), "refresh_token": refresh, "token_type": "bearer"}


async def is_revoked(session: AsyncSession, jti: Optional[str]) -> bool:
    if not jti:
        return False
    return await session.get(RevokedTokenRow, jti) is not None


async def refresh_access_token(session: AsyncSession, refresh_token: str) -> Optional[dict]:
    """Validate a refresh token and issue a new access token."""
    payload = decode_token(refresh_token)
    if not payload or payload.get("type") != "refresh":
        return None
    if await is_revoked(session, payload.get("jti")):
        return None
    return {"access_token": _access_token(payload["sub"], int(time.time())), "token_type": "bearer"}


async def revoke_token(session: AsyncSession, token: str) -> bool:
    """Record the token's jti so it stops authenticating. False if the token is invalid."""
    payload = decode_token(token)
    if not payload or not payload.get("jti"):
        return False
    if await is_revoked(session, payload["jti"]):
        return True
    session.add(RevokedTokenRow(
        jti=payload["jti"],
        user_id=payload["sub"],
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    ))
    await session.flush()
    return True


# ---- FastAPI dependencies ----

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    session: AsyncSession = Depends(get_session),
) -> Optional[UserRow]:
    if not creds:
        return None
    payload = decode_token(creds.credentials)
    if not payload or payload.get("type") != "access":
        return None
    if await is_revoked(session, payload.get("jti")):
        return None
    result = await session.execute(select(UserRow).where(UserRow.id == payload["sub"]))
    return result.scalar_one_or_none()


async def require_user(user: Optional[UserRow] = Depends(get_current_user)) -> UserRow:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


# ---- Request models ----

class RegisterRequest(CamelModel):
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str
