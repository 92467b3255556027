"""PreGeneratedAccount ORM model – bulk-issued, single-use credentials."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from database import Base

ACCOUNT_TYPES = ("client", "instructor", "admin", "trial", "demo")


class PreGeneratedAccount(Base):
    __tablename__ = "pre_generated_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    license_key = Column(String(128), nullable=False)
    account_type = Column(String(16), nullable=False, index=True)
    # Negative values are minutes (-30 = 30 minutes), others are whole days.
    license_duration_days = Column(Integer, nullable=False, default=30)
    is_used = Column(Boolean, nullable=False, default=False)
    used_by_profile_id = Column(
        String(36),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
