"""License ORM model."""

from sqlalchemy import Column, Integer, String, Enum, DateTime, ForeignKey
from sqlalchemy.sql import func

from database import Base

LICENSE_TYPES = ("demo", "trial", "full", "master")
LICENSE_STATUSES = ("active", "expired", "blocked")


class License(Base):
    __tablename__ = "licenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # At most one license per profile.  Removing a profile removes its license.
    profile_id = Column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    # Doubles as the login password for regular accounts.
    license_key = Column(String(128), nullable=False, index=True)
    license_type = Column(Enum(*LICENSE_TYPES, name="license_type"), nullable=False, default="full")
    status = Column(Enum(*LICENSE_STATUSES, name="license_status"), nullable=False, default="active")
    # Timer fields are written once, when the license is created.
    started_at = Column(DateTime(timezone=True), nullable=True)
    demo_started_at = Column(DateTime(timezone=True), nullable=True)
    trial_started_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
