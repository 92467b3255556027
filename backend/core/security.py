"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. Opaque session tokens                    (secrets)
3. JWT creation / decoding                  (PyJWT / HS256)
4. FastAPI dependency guards                (get_current_identity, require_master)
"""

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from core.config import settings
from database import get_db

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------
# Used for identity-user passwords and master credentials.  Master passwords
# are only ever compared through verify_password, never in plaintext.
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Hash a plaintext password with PBKDF2-SHA256 (salt embedded in the hash)."""
    return _pbkdf2.using(rounds=settings.password_hash_rounds).hash(plain)


def verify_password(plain: str, stored_hash: str) -> bool:
    """
    Constant-time verification of a plaintext password against a
    pbkdf2_sha256 hash produced by :func:`hash_password`.  Malformed hashes
    verify as False instead of raising.
    """
    try:
        return _pbkdf2.verify(plain, stored_hash)
    except (ValueError, TypeError):
        return False


# ---------------------------------------------------------------------------
# 2.  Opaque session tokens
# ---------------------------------------------------------------------------

_TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_session_token(length: int = 64) -> str:
    """64 characters drawn from [A-Za-z0-9] with a CSPRNG (~381 bits)."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


# ---------------------------------------------------------------------------
# 3.  JWT – access / refresh tokens
# ---------------------------------------------------------------------------


def create_token(data: dict, expires_delta: timedelta, now: Optional[datetime] = None) -> str:
    """
    Sign a JWT with HS256.  An ``exp`` and ``iat`` claim are added
    automatically; *data* should carry ``sub`` and ``typ``.
    """
    issued = now or datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode["iat"] = issued
    to_encode["exp"] = issued + expires_delta
    # jti keeps two tokens minted in the same second distinct
    to_encode["jti"] = secrets.token_hex(8)
    return _jwt.encode(to_encode, settings.secret_key, algorithm="HS256")


def decode_token(token: str) -> dict:
    """
    Decode and verify a JWT.  Raises ``jwt.InvalidTokenError`` (or its
    ``ExpiredSignatureError`` subclass) on any failure.
    """
    return _jwt.decode(token, settings.secret_key, algorithms=["HS256"])


def decode_access_token(token: str) -> dict:
    """
    Decode an access token for the HTTP guards.  Raises HTTP 401 on any
    failure (expired, bad signature, malformed, wrong token type).
    """
    try:
        payload = decode_token(token)
    except _jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado",
        )
    if payload.get("typ") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado",
        )
    return payload


# ---------------------------------------------------------------------------
# 4.  FastAPI dependency guards
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs;
# the actual login endpoint is POST /auth/login with a JSON body.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_identity(
    token: str = Depends(oauth2_scheme),
    db=Depends(get_db),
):
    """
    Dependency: decode the access token and load the IdentityUser row.

    Raises 401 if the token is invalid or the identity user is gone.
    """
    payload = decode_access_token(token)

    # Lazy import to avoid circular dependency at module load time
    from models.identity_user import IdentityUser  # noqa: E402

    identity = db.query(IdentityUser).filter(IdentityUser.id == payload["sub"]).first()
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não autenticado",
        )
    return identity


def require_master(current_identity=Depends(get_current_identity), db=Depends(get_db)):
    """
    Dependency: wraps :func:`get_current_identity` and additionally asserts
    that the identity holds the ``master`` role.  Raises 403 otherwise.
    """
    from models.user_role import UserRole  # noqa: E402

    is_master = (
        db.query(UserRole)
        .filter(UserRole.user_id == current_identity.id, UserRole.role == "master")
        .first()
    )
    if not is_master:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito ao Master",
        )
    return current_identity


# -- IP Address extraction ----------------------------------------------------


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from the request.
    Checks X-Forwarded-For header first (for proxies), then falls back to client host.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
