"""Profile lookup, creation and identity-link repair for the login pipeline."""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.identity import IdentitySession
from auth.resolver import ResolvedAccount
from core.errors import InternalError
from core.logger import logger
from models.profile import Profile


class ProfileStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_user_id(self, user_id: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.user_id == user_id).first()

    def find_by_username(self, username: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(func.lower(Profile.username) == username.lower()).first()

    def ensure_profile(self, account: ResolvedAccount, identity: IdentitySession) -> Profile:
        """
        Return the profile for *account*, linked to *identity*.

        Lookup prefers the identity link, then the username.  A profile that
        is unlinked or linked to another identity user is re-pointed at this
        one (account recovery after a credential rotation).  Calling this
        again with the same inputs changes nothing.
        """
        profile = account.profile
        if profile is None:
            profile = self.find_by_user_id(identity.user_id) or self.find_by_username(account.username)

        if profile is None:
            return self._create(account, identity)

        relink = profile.user_id != identity.user_id
        email_drift = (profile.email or "").lower() != identity.email
        if relink or email_drift:
            if relink:
                logger.info("Relinking profile %s to identity user %s", profile.id, identity.user_id)
                profile.user_id = identity.user_id
            if email_drift:
                profile.email = identity.email
            self.db.commit()
        return profile

    def _create(self, account: ResolvedAccount, identity: IdentitySession) -> Profile:
        profile = Profile(
            user_id=identity.user_id,
            username=account.username.upper(),
            email=identity.email,
            full_name=account.display_name,
        )
        self.db.add(profile)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error creating profile for %s: %s", account.username, exc)
            raise InternalError("Erro ao criar perfil") from exc
        logger.info("Created profile %s for %s", profile.id, account.username)
        return profile
