"""IdentityUser ORM model – the backing identity-provider account."""

import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from database import Base


class IdentityUser(Base):
    __tablename__ = "identity_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Always stored lower-cased: "{username}@{identity_email_domain}"
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
