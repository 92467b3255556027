"""MasterCredential ORM model – administrator-managed master logins."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from database import Base


class MasterCredential(Base):
    __tablename__ = "master_credentials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Stored lower-cased
    username = Column(String(64), unique=True, nullable=False, index=True)
    # pbkdf2_sha256 hash; the plaintext is never stored or compared directly
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
