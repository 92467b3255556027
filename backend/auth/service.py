"""
Login pipeline.

    resolve credential → identity session → profile → role record
    → license (ensure + check) → session rotation → panel gate

Each stage lives in its own module; this one wires them together, owns the
clock, records the audit trail and turns unexpected failures into
:class:`core.errors.InternalError`.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.identity import IdentityBridge, IdentityProvider, LocalIdentityProvider
from auth.licenses import LicenseManager, license_payload
from auth.panels import PanelAuthorizer
from auth.profiles import ProfileStore
from auth.resolver import CredentialResolver
from auth.sessions import SessionGuard
from core.clock import Clock, utcnow
from core.errors import InternalError, LoginError
from core.logger import logger
from models.audit_log import AuditLog
from models.user_role import UserRole


class LoginService:
    def __init__(
        self,
        db: Session,
        provider: Optional[IdentityProvider] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.clock = clock
        self.resolver = CredentialResolver(db)
        self.bridge = IdentityBridge(provider or LocalIdentityProvider(db, clock=clock))
        self.profiles = ProfileStore(db)
        self.licenses = LicenseManager(db)
        self.sessions = SessionGuard(db)
        self.panels = PanelAuthorizer()

    def login(
        self,
        username: str,
        password: str,
        panel: str = "client",
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        """
        Run the full pipeline and return the success payload.

        Raises a :class:`core.errors.LoginError` subclass on any failure.
        """
        username = (username or "").strip()
        password = (password or "").strip()
        panel = panel or "client"
        logger.info("Login attempt for username: %s on panel: %s", username, panel)

        try:
            payload = self._run(username, password, panel, device_info, ip_address)
        except LoginError as exc:
            self.db.rollback()
            self._audit("login_failed", None, f"username={username} panel={panel} reason={type(exc).__name__}", ip_address)
            raise
        except Exception as exc:
            self.db.rollback()
            logger.exception("Login error for %s", username)
            raise InternalError() from exc

        logger.info("Login successful for: %s (%s)", username, payload["user"]["role"])
        return payload

    def _run(
        self,
        username: str,
        password: str,
        panel: str,
        device_info: Optional[str],
        ip_address: Optional[str],
    ) -> dict:
        account = self.resolver.resolve(username, password)
        identity = self.bridge.ensure_session(account.identity_email, password)
        profile = self.profiles.ensure_profile(account, identity)
        self._ensure_role(identity.user_id, account.role)

        license = self.licenses.ensure_license(account, profile, self.clock())
        # Checked against a fresh reading of the clock, even for a license
        # created a moment ago in this request
        now = self.clock()
        self.licenses.check(license, now)

        session_row = self.sessions.rotate(profile.id, device_info, now, ip_address=ip_address)
        self.panels.authorize(account.role, panel, username=username)

        self._audit("login_success", profile.id, f"role={account.role} panel={panel}", ip_address)
        return {
            "success": True,
            "user": {
                "id": identity.user_id,
                "email": identity.email,
                "profile_id": profile.id,
                "username": profile.username,
                "full_name": profile.full_name,
                "role": account.role,
            },
            "license": license_payload(license, now),
            "session": {
                "access_token": identity.access_token,
                "refresh_token": identity.refresh_token,
                "session_token": session_row.session_token,
            },
        }

    def _ensure_role(self, user_id: str, role: str) -> None:
        exists = (
            self.db.query(UserRole)
            .filter(UserRole.user_id == user_id, UserRole.role == role)
            .first()
        )
        if exists:
            return
        self.db.add(UserRole(user_id=user_id, role=role))
        try:
            self.db.commit()
        except IntegrityError:
            # Inserted concurrently; the row we wanted is there
            self.db.rollback()

    def _audit(self, action: str, profile_id: Optional[str], detail: str, ip_address: Optional[str]) -> None:
        self.db.add(
            AuditLog(
                actor_user_id=None,
                target_profile_id=profile_id,
                action=action,
                detail=detail,
                request_ip=ip_address,
            )
        )
        self.db.commit()
