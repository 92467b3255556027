"""
License lifecycle.

States are ``active``, ``expired`` and ``blocked``.  The login flow may only
move a license from ``active`` to ``expired`` (lazily, the first time a login
sees ``now >= expires_at``); nothing here ever moves it back.  Timer fields
(``started_at``, ``demo_started_at``, ``trial_started_at``, ``expires_at``)
are only assigned in :func:`new_license`, which is reachable solely from the
creation branch of :meth:`LicenseManager.ensure_license`.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.resolver import AccountKind, ResolvedAccount, is_thirty_minute_account
from core.clock import as_utc, isoformat
from core.errors import InternalError, LicenseBlocked, LicenseExpired
from core.logger import logger
from models.license import License
from models.profile import Profile

DEMO_DURATION = timedelta(minutes=30)

_EXPIRED_MESSAGES = {
    "demo": "Período de demonstração expirado. Entre em contato para adquirir uma licença.",
    "trial": "Período de teste expirado. Entre em contato para adquirir uma licença.",
}


def duration_from_config(value: int, thirty_minute: bool = False) -> timedelta:
    """
    Length of a fresh license.

    30-minute accounts ignore *value*.  Otherwise a negative *value* is a
    number of minutes and a non-negative one a number of whole days.
    """
    if thirty_minute:
        return DEMO_DURATION
    if value < 0:
        return timedelta(minutes=abs(value))
    return timedelta(days=value)


def new_license(
    profile_id: str,
    license_key: str,
    license_type: str,
    now: datetime,
    duration: Optional[timedelta],
) -> License:
    return License(
        profile_id=profile_id,
        license_key=license_key,
        license_type=license_type,
        status="active",
        started_at=now,
        demo_started_at=now if license_type == "demo" else None,
        trial_started_at=now if license_type == "trial" else None,
        expires_at=now + duration if duration is not None else None,
    )


def time_remaining_ms(license: License, now: datetime) -> Optional[int]:
    expires_at = as_utc(license.expires_at)
    if expires_at is None:
        return None
    remaining = int((expires_at - now).total_seconds() * 1000)
    return max(remaining, 0)


def license_payload(license: License, now: datetime, terminal: bool = False) -> dict:
    """Public view of a license.  *terminal* forces ``time_remaining_ms`` to 0."""
    return {
        "type": license.license_type,
        "status": license.status,
        "expires_at": isoformat(license.expires_at),
        "time_remaining_ms": 0 if terminal else time_remaining_ms(license, now),
    }


class LicenseManager:
    def __init__(self, db: Session):
        self.db = db

    def get_for_profile(self, profile_id: str) -> Optional[License]:
        return self.db.query(License).filter(License.profile_id == profile_id).first()

    def ensure_license(self, account: ResolvedAccount, profile: Profile, now: datetime) -> License:
        """
        Return the profile's license, creating it on the profile's first
        successful login.  An existing license is returned as stored.
        """
        if account.kind is AccountKind.REGULAR:
            return account.license

        existing = self.get_for_profile(profile.id)
        if existing is not None:
            if existing.status == "expired":
                logger.info("License already expired for %s, not resetting", account.username)
            return existing

        return self._create(account, profile, now)

    def _create(self, account: ResolvedAccount, profile: Profile, now: datetime) -> License:
        pre_generated = account.pre_generated
        if pre_generated is not None:
            duration = duration_from_config(
                pre_generated.license_duration_days,
                thirty_minute=is_thirty_minute_account(pre_generated),
            )
            license = new_license(profile.id, pre_generated.license_key, account.license_type, now, duration)
            # Consumed in the same transaction that creates the license
            pre_generated.is_used = True
            pre_generated.used_by_profile_id = profile.id
            pre_generated.used_at = now
        else:
            duration = DEMO_DURATION if account.license_type == "demo" else None
            key = f"{account.license_type.upper()}-{int(now.timestamp() * 1000)}"
            license = new_license(profile.id, key, account.license_type, now, duration)

        self.db.add(license)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # A concurrent login for the same profile created it first
            self.db.rollback()
            existing = self.get_for_profile(profile.id)
            if existing is None:
                logger.error("Error creating license for %s: %s", account.username, exc)
                raise InternalError() from exc
            return existing

        logger.info(
            "Created %s license for %s (expires_at=%s)",
            license.license_type,
            account.username,
            isoformat(license.expires_at),
        )
        return license

    def check(self, license: License, now: datetime) -> None:
        """
        Raise unless *license* is usable at *now*.  The only write is the
        one-time ``active → expired`` transition.
        """
        if license.status == "blocked":
            raise LicenseBlocked(license=license_payload(license, now, terminal=True))

        if license.status == "expired":
            raise LicenseExpired(
                _EXPIRED_MESSAGES.get(license.license_type),
                license=license_payload(license, now, terminal=True),
            )

        expires_at = as_utc(license.expires_at)
        if expires_at is not None and now >= expires_at:
            license.status = "expired"
            self.db.commit()
            logger.info("License %s expired at %s", license.id, isoformat(expires_at))
            raise LicenseExpired(
                _EXPIRED_MESSAGES.get(license.license_type),
                license=license_payload(license, now, terminal=True),
            )
