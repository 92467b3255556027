"""
Auth endpoints – login, hydrate, token refresh, single-session checks.

Security notes
--------------
* Failures carry a Portuguese, user-facing message only.  Identity-provider
  and internal failures are logged in full here and reported generically.
* Passwords and license keys are never written to the log.
* ``/auth/session/validate`` lets a client discover that its session was
  replaced by a login on another device.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.identity import IdentityTokenInvalid, LocalIdentityProvider, canonical_email
from auth.licenses import LicenseManager, license_payload
from auth.resolver import infer_regular_role
from auth.schemas import (
    HydrateResponse,
    LoginFailure,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    SessionTokenRequest,
    SessionValidationResponse,
    TokenPairResponse,
)
from auth.service import LoginService
from auth.sessions import SessionGuard
from core.clock import utcnow
from core.errors import IdentityProviderError, InternalError, LoginError
from core.logger import logger
from core.security import get_client_ip, get_current_identity
from database import get_db
from models.identity_user import IdentityUser
from models.profile import Profile
from models.user_role import UserRole

router = APIRouter(prefix="/auth", tags=["auth"])

_ROLE_PRIORITY = ("master", "admin", "instructor", "client")

_SESSION_REPLACED = "Sua conta foi acessada em outro dispositivo."


def get_login_service(db: Session = Depends(get_db)) -> LoginService:
    """Dependency seam: tests override it to inject a clock or a provider."""
    return LoginService(db)


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": LoginFailure},
        403: {"model": LoginFailure},
        422: {"model": LoginFailure},
        500: {"model": LoginFailure},
    },
)
def login(
    body: LoginRequest,
    request: Request,
    service: LoginService = Depends(get_login_service),
):
    """Resolve the credential, enforce license and panel rules, open the single session."""
    try:
        return service.login(
            body.username,
            body.password,
            panel=body.panel_type,
            device_info=body.device_info,
            ip_address=get_client_ip(request),
        )
    except (IdentityProviderError, InternalError) as exc:
        logger.error("Login for %s failed: %r (cause: %r)", body.username.strip(), exc, exc.__cause__)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
    except LoginError as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# ---------------------------------------------------------------------------
# GET /auth/me  – hydrate the client after a page reload
# ---------------------------------------------------------------------------


def _linked_profile(identity: IdentityUser, db: Session) -> Optional[Profile]:
    """
    Profile linked to *identity*.  When the link is missing, attach the
    profile whose username matches the e-mail local part, or whose e-mail
    matches outright.
    """
    profile = db.query(Profile).filter(Profile.user_id == identity.id).first()
    if profile:
        return profile

    local_part = identity.email.split("@", 1)[0]
    if local_part:
        profile = db.query(Profile).filter(func.lower(Profile.username) == local_part.lower()).first()
    if not profile:
        profile = db.query(Profile).filter(func.lower(Profile.email) == identity.email.lower()).first()
    if profile:
        profile.user_id = identity.id
        if not profile.email:
            profile.email = identity.email
        db.commit()
    return profile


def _resolved_role(identity: IdentityUser, profile: Profile, db: Session) -> str:
    roles = {row.role for row in db.query(UserRole).filter(UserRole.user_id == identity.id).all()}
    for role in _ROLE_PRIORITY:
        if role in roles:
            return role
    # Never auto-promote to master here
    derived = infer_regular_role(profile.username, profile.cref)
    db.add(UserRole(user_id=identity.id, role=derived))
    db.commit()
    return derived


@router.get("/me", response_model=HydrateResponse)
def me(
    identity: IdentityUser = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Return the caller's profile, role and license state."""
    profile = _linked_profile(identity, db)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Seu perfil não está vinculado a este login. Procure o Master/administrador para vincular sua conta.",
        )

    role = _resolved_role(identity, profile, db)
    license = LicenseManager(db).get_for_profile(profile.id)
    return {
        "success": True,
        "user": {
            "id": identity.id,
            "email": identity.email or profile.email or canonical_email(profile.username),
            "profile_id": profile.id,
            "username": profile.username,
            "full_name": profile.full_name,
            "role": role,
        },
        "license": license_payload(license, utcnow()) if license else None,
    }


# ---------------------------------------------------------------------------
# POST /auth/refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenPairResponse)
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a fresh access / refresh pair."""
    try:
        session = LocalIdentityProvider(db).refresh_session(body.refresh_token)
    except IdentityTokenInvalid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido ou expirado")
    return TokenPairResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        token_type="bearer",
    )


# ---------------------------------------------------------------------------
# POST /auth/session/validate  – is this still the single live session?
# ---------------------------------------------------------------------------


@router.post("/session/validate", response_model=SessionValidationResponse)
def validate_session(
    body: SessionTokenRequest,
    identity: IdentityUser = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    profile = db.query(Profile).filter(Profile.user_id == identity.id).first()
    if profile and SessionGuard(db).validate(profile.id, body.session_token, now=utcnow()):
        return SessionValidationResponse(valid=True)
    return SessionValidationResponse(valid=False, error=_SESSION_REPLACED)


# ---------------------------------------------------------------------------
# POST /auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout")
def logout(
    body: SessionTokenRequest,
    identity: IdentityUser = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Drop the caller's session row.  Unknown tokens are not an error."""
    profile = db.query(Profile).filter(Profile.user_id == identity.id).first()
    if profile:
        SessionGuard(db).revoke(profile.id, body.session_token)
    return {"detail": "Sessão encerrada"}
