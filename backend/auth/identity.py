"""
Identity provider and the bridge the login pipeline uses to reach it.

The provider owns the backing user (e-mail + password hash) and mints the
access / refresh token pair returned to the client.  The bridge turns an
already-validated account into a signed-in identity session, creating or
repairing the provider user when needed.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import jwt as _jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import Clock, utcnow
from core.config import settings
from core.errors import IdentityProviderError
from core.logger import logger
from core.security import create_token, decode_token, hash_password, verify_password
from models.identity_user import IdentityUser


class IdentitySignInFailed(Exception):
    """Wrong e-mail / password pair, or unknown user."""


class IdentityUserExists(Exception):
    """admin_create_user was asked for an e-mail that is already registered."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"identity user already exists: {user_id}")


class IdentityTokenInvalid(Exception):
    pass


@dataclass
class IdentitySession:
    user_id: str
    email: str
    access_token: str
    refresh_token: str


def canonical_email(username: str) -> str:
    return f"{username.strip().lower()}@{settings.identity_email_domain}"


class IdentityProvider:
    """Interface consumed by :class:`IdentityBridge`."""

    def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        raise NotImplementedError

    def admin_create_user(self, email: str, password: str) -> str:
        raise NotImplementedError

    def admin_update_password(self, user_id: str, password: str) -> None:
        raise NotImplementedError

    def refresh_session(self, refresh_token: str) -> IdentitySession:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    """SQLAlchemy-backed provider: pbkdf2 password hashes, HS256 JWT sessions."""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def _issue(self, user: IdentityUser) -> IdentitySession:
        now = self.clock()
        claims = {"sub": user.id, "email": user.email}
        access = create_token(
            {**claims, "typ": "access"},
            timedelta(minutes=settings.access_token_expire_minutes),
            now=now,
        )
        refresh = create_token(
            {**claims, "typ": "refresh"},
            timedelta(minutes=settings.refresh_token_expire_minutes),
            now=now,
        )
        return IdentitySession(user_id=user.id, email=user.email, access_token=access, refresh_token=refresh)

    def get_user_by_email(self, email: str) -> Optional[IdentityUser]:
        return self.db.query(IdentityUser).filter(IdentityUser.email == email.lower()).first()

    def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise IdentitySignInFailed(email)
        user.last_sign_in_at = self.clock()
        self.db.commit()
        return self._issue(user)

    def admin_create_user(self, email: str, password: str) -> str:
        existing = self.get_user_by_email(email)
        if existing:
            raise IdentityUserExists(existing.id)
        user = IdentityUser(email=email.lower(), password_hash=hash_password(password))
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent login for the same account
            self.db.rollback()
            existing = self.get_user_by_email(email)
            if not existing:
                raise
            raise IdentityUserExists(existing.id)
        return user.id

    def admin_update_password(self, user_id: str, password: str) -> None:
        user = self.db.query(IdentityUser).filter(IdentityUser.id == user_id).first()
        if not user:
            raise IdentitySignInFailed(user_id)
        user.password_hash = hash_password(password)
        self.db.commit()

    def refresh_session(self, refresh_token: str) -> IdentitySession:
        try:
            payload = decode_token(refresh_token)
        except _jwt.InvalidTokenError as exc:
            raise IdentityTokenInvalid(str(exc)) from exc
        if payload.get("typ") != "refresh":
            raise IdentityTokenInvalid("not a refresh token")
        user = self.db.query(IdentityUser).filter(IdentityUser.id == payload["sub"]).first()
        if not user:
            raise IdentityTokenInvalid("unknown user")
        return self._issue(user)


class IdentityBridge:
    """
    Ensure a provider user and session exist for an account the credential
    resolver has already validated.

    sign-in → on failure create the user (an "already exists" answer rotates
    its password to the supplied one) → retry sign-in exactly once.
    """

    def __init__(self, provider: IdentityProvider):
        self.provider = provider

    def ensure_session(self, email: str, password: str) -> IdentitySession:
        try:
            return self.provider.sign_in_with_password(email, password)
        except IdentitySignInFailed:
            logger.info("Identity sign-in failed for %s, provisioning", email)

        try:
            self.provider.admin_create_user(email, password)
        except IdentityUserExists as exc:
            # License key was rotated since the provider user was created
            logger.info("Identity user %s exists, rotating password", email)
            try:
                self.provider.admin_update_password(exc.user_id, password)
            except (IdentitySignInFailed, SQLAlchemyError) as update_exc:
                logger.error("Could not rotate identity password for %s: %s", email, update_exc)
        except SQLAlchemyError as exc:
            logger.error("Error creating identity user %s: %s", email, exc)
            raise IdentityProviderError("Erro ao criar conta") from exc

        try:
            return self.provider.sign_in_with_password(email, password)
        except (IdentitySignInFailed, SQLAlchemyError) as exc:
            logger.error("Identity sign-in retry failed for %s: %s", email, exc)
            raise IdentityProviderError("Erro ao autenticar") from exc
