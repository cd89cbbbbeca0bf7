"""Session authentication and permission guards.

Users log in with email + password and receive a signed HS256 session token
(cookie, or `Authorization: Bearer`). The token carries a snapshot of the
user's permissions taken at login: later changes to the user row only take
effect after the session is reissued.
"""

from __future__ import annotations

import functools
import hashlib
import hmac
import json
import logging
import time
import uuid
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import bcrypt
from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from src.api.permissions import has_all_permissions, has_any_permission, permissions_for_role
from src.config import get_settings
from src.logging.structured_logger import user_id_var
from src.store.engine import get_engine
from src.store.users import UserStore

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

_redis: Any = None

_LOGIN_MAX_ATTEMPTS = 5
_LOGIN_WINDOW_SECONDS = 900  # 15 minutes


async def _get_redis() -> Any:
    """Lazily create and cache Redis connection for rate limiting and logout."""
    global _redis
    if _redis is None:
        from redis.asyncio import Redis

        settings = get_settings()
        _redis = Redis.from_url(settings.redis.url, decode_responses=True)
    return _redis


async def ping_redis() -> bool:
    r = await _get_redis()
    return bool(await r.ping())


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def _user_store() -> UserStore:
    return UserStore(await get_engine())


async def blacklist_token(jti: str, ttl: int) -> None:
    """Add a token ID to the Redis blacklist with TTL.

    After TTL expires, the key auto-deletes (token would be expired anyway).
    """
    try:
        r = await _get_redis()
        await r.setex(f"session_blacklist:{jti}", max(ttl, 1), "1")
    except Exception:
        logger.warning("Failed to blacklist token jti=%s", jti, exc_info=True)


async def is_token_blacklisted(jti: str) -> bool:
    """Check if a token ID is in the Redis blacklist."""
    try:
        r = await _get_redis()
        return await r.exists(f"session_blacklist:{jti}") > 0
    except Exception:
        logger.debug("Blacklist check failed, allowing request", exc_info=True)
        return False


async def _check_rate_limit(ip: str, email: str) -> bool:
    """Check login rate limit. Returns True if request should be BLOCKED."""
    try:
        r = await _get_redis()
        key = f"login_rl:{ip}:{email}"
        count = await r.incr(key)
        if count == 1:
            await r.expire(key, _LOGIN_WINDOW_SECONDS)
        return int(count) > _LOGIN_MAX_ATTEMPTS
    except Exception:
        logger.debug("Rate limit check failed, allowing request", exc_info=True)
        return False


# ── Tokens ───────────────────────────────────────────────────


def _b64_encode(data: bytes) -> str:
    return urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64_decode(s: str) -> bytes:
    padding = 4 - len(s) % 4
    return urlsafe_b64decode(s + "=" * padding)


def create_jwt(payload: dict[str, Any], secret: str, expires_in: int = 86400) -> str:
    """Create a simple JWT token (HS256)."""
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {
        **payload,
        "exp": int(time.time()) + expires_in,
        "iat": int(time.time()),
        "jti": str(uuid.uuid4()),
    }

    header_b64 = _b64_encode(json.dumps(header).encode())
    payload_b64 = _b64_encode(json.dumps(payload).encode())

    message = f"{header_b64}.{payload_b64}"
    signature = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    sig_b64 = _b64_encode(signature)

    return f"{message}.{sig_b64}"


def verify_jwt(token: str, secret: str) -> dict[str, Any]:
    """Verify and decode a JWT token."""
    parts = token.split(".")
    if len(parts) != 3:
        msg = "Invalid token format"
        raise ValueError(msg)

    message = f"{parts[0]}.{parts[1]}"
    expected_sig = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    actual_sig = _b64_decode(parts[2])

    if not hmac.compare_digest(expected_sig, actual_sig):
        msg = "Invalid signature"
        raise ValueError(msg)

    payload = json.loads(_b64_decode(parts[1]))
    if payload.get("exp", 0) < time.time():
        msg = "Token expired"
        raise ValueError(msg)

    result: dict[str, Any] = payload
    return result


@dataclass(frozen=True)
class Session:
    """An authenticated caller, as recorded in the session token."""

    user_id: str
    email: str
    name: str
    permissions: frozenset[str]
    jti: str | None = None
    expires_at: int = 0

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Session:
        return cls(
            user_id=str(payload["sub"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
            permissions=frozenset(payload.get("permissions") or []),
            jti=payload.get("jti"),
            expires_at=int(payload.get("exp", 0)),
        )

    def public(self) -> dict[str, Any]:
        return {
            "user": {
                "id": self.user_id,
                "email": self.email,
                "name": self.name,
                "permissions": sorted(self.permissions),
            },
            "expires_at": self.expires_at,
        }


def issue_session_token(user: dict[str, Any], secret: str, expires_in: int) -> str:
    """Sign a session token carrying the user's current permission set."""
    return create_jwt(
        {
            "sub": str(user["id"]),
            "email": user["email"],
            "name": user.get("name") or "",
            "permissions": sorted(user.get("permissions") or []),
        },
        secret,
        expires_in=expires_in,
    )


# ── Passwords ────────────────────────────────────────────────


def hash_password(password: str) -> str:
    rounds = get_settings().auth.bcrypt_rounds
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed hash or password over bcrypt's 72-byte limit
        logger.warning("Password verification failed due to bcrypt ValueError")
        return False


@functools.lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(uuid.uuid4().hex)


async def _migrate_legacy_permissions(store: UserStore, user: dict[str, Any]) -> dict[str, Any]:
    """Grant every permission to a user stored without any (unmigrated admin)."""
    permissions = sorted(permissions_for_role("ADMIN"))
    logger.info("Migrating permissions for user %s", user["email"])
    try:
        await store.set_permissions(user["id"], permissions)
        logger.info("Permissions migrated for user %s", user["email"])
    except Exception:
        logger.exception("Failed to persist migrated permissions for user %s", user["email"])
    return {**user, "permissions": permissions}


async def authenticate(store: UserStore, email: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns the user (without password hash) or None."""
    user = await store.get_user_by_email(email)
    if not user:
        # Keep response time similar whether or not the email exists
        verify_password(password, _dummy_hash())
        return None

    if not verify_password(password, user["password_hash"]):
        return None

    user = {k: v for k, v in user.items() if k != "password_hash"}
    if not user["permissions"] and get_settings().auth.legacy_permission_migration:
        user = await _migrate_legacy_permissions(store, user)
    return user


# ── Guards ───────────────────────────────────────────────────


def _extract_token(request: Request) -> str | None:
    cookie_name = get_settings().auth.cookie_name
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


async def require_session(request: Request) -> Session:
    """FastAPI dependency: resolve the caller's session or fail with 401."""
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    settings = get_settings()
    try:
        payload = verify_jwt(token, settings.auth.jwt_secret)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    if "sub" not in payload:
        raise HTTPException(status_code=401, detail="Invalid session")

    jti = payload.get("jti")
    if jti and await is_token_blacklisted(jti):
        raise HTTPException(status_code=401, detail="Session has been revoked")

    session = Session.from_payload(payload)
    user_id_var.set(session.user_id)
    return session


def check_permissions(
    session: Session,
    required: Iterable[str],
    *,
    mode: str = "any",
    detail: str | None = None,
) -> None:
    """Raise 403 unless the session satisfies `required`.

    mode="any": at least one required permission is held.
    mode="all": every required permission is held.
    """
    required = list(required)
    if mode == "all":
        allowed = has_all_permissions(session.permissions, required)
    elif mode == "any":
        allowed = has_any_permission(session.permissions, required)
    else:
        msg = f"Unknown permission mode: {mode!r}"
        raise ValueError(msg)

    if not allowed:
        joiner = " and " if mode == "all" else " or "
        raise HTTPException(
            status_code=403,
            detail=detail or f"Insufficient permissions. Required: {joiner.join(required)}",
        )


def forbid_self_action(session: Session, target_user_id: Any, detail: str) -> None:
    """Reject an action aimed at the caller's own account, whatever they hold."""
    if session.user_id == str(target_user_id):
        raise HTTPException(status_code=403, detail=detail)


def _permission_dependency(permissions: tuple[str, ...], mode: str, detail: str | None) -> Any:
    async def _check_permission(request: Request) -> Session:
        session = await require_session(request)
        check_permissions(session, permissions, mode=mode, detail=detail)
        return session

    return _check_permission


def require_any(*permissions: str, detail: str | None = None) -> Any:
    """Create a FastAPI dependency passing when any listed permission is held.

    Usage:
        _perm = Depends(require_any("products:view", "products:research"))
        async def endpoint(session: Session = _perm): ...
    """
    return _permission_dependency(permissions, "any", detail)


def require_all(*permissions: str, detail: str | None = None) -> Any:
    """Create a FastAPI dependency passing only when every listed permission is held."""
    return _permission_dependency(permissions, "all", detail)


# ── Endpoints ────────────────────────────────────────────────


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/login")
async def login(login_data: LoginRequest, request: Request, response: Response) -> dict[str, Any]:
    """Authenticate a user and issue a session token.

    Rate-limited: max 5 attempts per 15 minutes per IP+email.
    """
    settings = get_settings()
    client_ip = request.client.host if request.client else "unknown"

    if await _check_rate_limit(client_ip, login_data.email):
        logger.warning("Login rate limit hit for %s from %s", login_data.email, client_ip)
        raise HTTPException(status_code=429, detail="Too many login attempts. Try again later.")

    store = await _user_store()
    user = await authenticate(store, login_data.email, login_data.password)
    if not user:
        logger.info("Failed login for %s from %s", login_data.email, client_ip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    ttl_seconds = settings.auth.session_ttl_seconds
    token = issue_session_token(user, settings.auth.jwt_secret, ttl_seconds)
    response.set_cookie(
        settings.auth.cookie_name,
        token,
        max_age=ttl_seconds,
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="lax",
    )

    return {
        "token": token,
        "token_type": "bearer",
        "expires_in": ttl_seconds,
        "user": {
            "id": str(user["id"]),
            "email": user["email"],
            "name": user.get("name") or "",
            "permissions": sorted(user["permissions"]),
        },
    }


@router.get("/session")
async def get_session(request: Request) -> dict[str, Any]:
    """Return the caller's session snapshot (used by clients for UI gating)."""
    session = await require_session(request)
    return session.public()


@router.post("/logout")
async def logout(request: Request, response: Response) -> dict[str, str]:
    """Revoke the current session token via the Redis blacklist."""
    session = await require_session(request)

    if session.jti:
        ttl = session.expires_at - int(time.time())
        await blacklist_token(session.jti, ttl)
        logger.info("Session revoked: jti=%s user=%s", session.jti, session.user_id)

    response.delete_cookie(get_settings().auth.cookie_name)
    return {"status": "logged_out"}
