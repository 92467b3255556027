"""
Single-session enforcement.

Every successful login replaces whatever session rows the profile had with a
fresh one.  The delete and the insert are committed together so a reader
never sees zero or two rows for the profile.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.logger import logger
from core.security import generate_session_token
from models.active_session import ActiveSession


class SessionGuard:
    def __init__(self, db: Session):
        self.db = db

    def rotate(
        self,
        profile_id: str,
        device_info: Optional[str],
        now: datetime,
        ip_address: Optional[str] = None,
    ) -> ActiveSession:
        """Invalidate every prior session of *profile_id* and open a new one."""
        token = generate_session_token()
        removed = (
            self.db.query(ActiveSession)
            .filter(ActiveSession.profile_id == profile_id)
            .delete(synchronize_session=False)
        )
        session_row = ActiveSession(
            profile_id=profile_id,
            session_token=token,
            device_info=device_info or "Unknown",
            ip_address=ip_address,
            is_valid=True,
            created_at=now,
            last_activity=now,
        )
        self.db.add(session_row)
        self.db.commit()
        if removed:
            logger.info("Invalidated %d previous session(s) for profile %s", removed, profile_id)
        return session_row

    def validate(self, profile_id: str, token: str, now: Optional[datetime] = None) -> bool:
        """True while *token* is still the profile's live session.  Touches last_activity."""
        row = (
            self.db.query(ActiveSession)
            .filter(
                ActiveSession.profile_id == profile_id,
                ActiveSession.session_token == token,
                ActiveSession.is_valid.is_(True),
            )
            .first()
        )
        if row is None:
            return False
        if now is not None:
            row.last_activity = now
            self.db.commit()
        return True

    def revoke(self, profile_id: str, token: str) -> bool:
        removed = (
            self.db.query(ActiveSession)
            .filter(ActiveSession.profile_id == profile_id, ActiveSession.session_token == token)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return bool(removed)
