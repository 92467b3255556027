"""Profile ORM model – one row per person/account, never deleted by the login flow."""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Link to the identity-provider user; repaired on login when it drifts.
    user_id = Column(
        String(36),
        ForeignKey("identity_users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Stored upper-case; compared case-insensitively.
    username = Column(String(64), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    # Professional registration (CREF).  Its presence marks an instructor.
    cref = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
