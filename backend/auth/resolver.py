"""
Credential resolution.

An incoming (username, password) pair is classified by an ordered list of
branches: demo literal, master credential, pre-generated account, regular
account.  The first branch that claims the pair decides the outcome; a
branch either returns a :class:`ResolvedAccount`, raises a
:class:`core.errors.LoginError`, or declines with ``None``.
"""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.identity import canonical_email
from core.config import settings
from core.errors import AccountNotFound, InvalidCredential, LicenseRevoked
from core.logger import logger
from core.security import verify_password
from models.license import License
from models.master_credential import MasterCredential
from models.pre_generated_account import PreGeneratedAccount
from models.profile import Profile

INVALID_LICENSE_KEY_MESSAGE = (
    "Chave de licença inválida. Verifique se digitou corretamente "
    "ou entre em contato com a administração."
)


class AccountKind(str, Enum):
    DEMO = "demo"
    MASTER = "master"
    PRE_GENERATED = "pre_generated"
    REGULAR = "regular"


@dataclass
class ResolvedAccount:
    kind: AccountKind
    username: str
    role: str
    identity_email: str
    # Type of the license to create when none exists yet (None for regular accounts)
    license_type: Optional[str] = None
    display_name: Optional[str] = None
    pre_generated: Optional[PreGeneratedAccount] = None
    profile: Optional[Profile] = None
    license: Optional[License] = None


def role_for_account_type(account_type: str) -> str:
    """Pre-generated account type → panel role.  trial/demo/client all map to client."""
    if account_type in ("instructor", "admin"):
        return account_type
    return "client"


def infer_regular_role(username: str, cref: Optional[str]) -> str:
    lower = username.lower()
    if lower.startswith("gerente") or lower.startswith("admin"):
        return "admin"
    if cref:
        return "instructor"
    return "client"


def pre_generated_license_type(account: PreGeneratedAccount) -> str:
    """demo for 30-minute accounts, trial for trial accounts, otherwise full."""
    if is_thirty_minute_account(account):
        return "demo"
    if account.account_type == "trial":
        return "trial"
    return "full"


def is_thirty_minute_account(account: PreGeneratedAccount) -> bool:
    upper = account.username.upper()
    return (
        account.account_type == "demo"
        or upper.startswith("DEMO")
        or (upper.startswith("ADMIN") and account.account_type == "admin")
    )


def pre_generated_display_name(account: PreGeneratedAccount) -> str:
    prefix = {
        "client": "Cliente",
        "instructor": "Instrutor",
        "admin": "Gerente",
        "demo": "Demonstração",
    }.get(account.account_type, "Trial")
    return f"{prefix} {account.username}"


def _ilike(column, value: str):
    return func.lower(column) == value.lower()


class CredentialResolver:
    def __init__(self, db: Session):
        self.db = db
        self._branches: tuple[Callable[[str, str], Optional[ResolvedAccount]], ...] = (
            self._match_demo,
            self._match_master,
            self._match_pre_generated,
            self._match_regular,
        )

    def resolve(self, username: str, password: str) -> ResolvedAccount:
        for branch in self._branches:
            resolved = branch(username, password)
            if resolved is not None:
                return resolved
        # _match_regular never declines; kept for completeness
        raise AccountNotFound()

    # -- special accounts ------------------------------------------------

    def _match_demo(self, username: str, password: str) -> Optional[ResolvedAccount]:
        if username.lower() != settings.demo_username.lower():
            return None
        if not hmac.compare_digest(password.encode("utf-8"), settings.demo_password.encode("utf-8")):
            logger.info("Invalid password for demo account")
            raise InvalidCredential()
        return ResolvedAccount(
            kind=AccountKind.DEMO,
            username=username,
            role="client",
            identity_email=canonical_email(username),
            license_type="demo",
            display_name="Usuário Demonstração",
        )

    def _match_master(self, username: str, password: str) -> Optional[ResolvedAccount]:
        credential = (
            self.db.query(MasterCredential)
            .filter(
                MasterCredential.username == username.lower(),
                MasterCredential.is_active.is_(True),
            )
            .first()
        )
        if not credential:
            return None
        if not verify_password(password, credential.password_hash):
            logger.info("Invalid password for master account: %s", username)
            raise InvalidCredential()
        return ResolvedAccount(
            kind=AccountKind.MASTER,
            username=username,
            role="master",
            identity_email=canonical_email(username),
            license_type="master",
            display_name=credential.full_name or "Administrador Master",
        )

    # -- pre-generated accounts ------------------------------------------

    def _match_pre_generated(self, username: str, password: str) -> Optional[ResolvedAccount]:
        account = (
            self.db.query(PreGeneratedAccount)
            .filter(_ilike(PreGeneratedAccount.username, username))
            .first()
        )
        if not account:
            return None

        if not hmac.compare_digest(password.encode("utf-8"), account.license_key.encode("utf-8")):
            if account.is_used and self._consumed_license(account) is not None:
                # The license may have been rotated; its key decides
                return None
            logger.info("Invalid license key for pre-generated account: %s", username)
            raise InvalidCredential(INVALID_LICENSE_KEY_MESSAGE)

        if account.is_used:
            if self._consumed_license(account) is not None:
                # Consumed and licensed: from now on it is a regular account
                return None
            logger.info("Pre-generated account used but license missing: %s", username)
            raise LicenseRevoked()

        logger.info("Using pre-generated account: %s", username)
        return ResolvedAccount(
            kind=AccountKind.PRE_GENERATED,
            username=username,
            role=role_for_account_type(account.account_type),
            identity_email=canonical_email(username),
            license_type=pre_generated_license_type(account),
            display_name=pre_generated_display_name(account),
            pre_generated=account,
        )

    def _consumed_license(self, account: PreGeneratedAccount) -> Optional[License]:
        profile_id = account.used_by_profile_id
        if profile_id is None:
            profile = self.db.query(Profile).filter(_ilike(Profile.username, account.username)).first()
            profile_id = profile.id if profile else None
        if profile_id is None:
            return None
        return self.db.query(License).filter(License.profile_id == profile_id).first()

    # -- regular accounts ------------------------------------------------

    def _match_regular(self, username: str, password: str) -> ResolvedAccount:
        profile = self.db.query(Profile).filter(_ilike(Profile.username, username)).first()
        if not profile:
            logger.info("User not found: %s", username)
            raise AccountNotFound()

        license = (
            self.db.query(License)
            .filter(License.profile_id == profile.id, License.license_key == password)
            .first()
        )
        if not license:
            logger.info("Invalid license key for: %s", username)
            raise InvalidCredential(INVALID_LICENSE_KEY_MESSAGE)

        consumed = (
            self.db.query(PreGeneratedAccount)
            .filter(PreGeneratedAccount.used_by_profile_id == profile.id)
            .first()
        )
        if consumed is not None:
            role = role_for_account_type(consumed.account_type)
        else:
            role = infer_regular_role(username, profile.cref)

        return ResolvedAccount(
            kind=AccountKind.REGULAR,
            username=username,
            role=role,
            identity_email=profile.email or canonical_email(username),
            profile=profile,
            license=license,
        )
