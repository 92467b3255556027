"""
Bootstrap script – creates the first master credential.

Run once after the initial migration:
    python bin/seed_master.py

The script reads FIRST_MASTER_USERNAME, FIRST_MASTER_PASSWORD and
FIRST_MASTER_FULL_NAME from etc/app.conf.  After the row is inserted those
values are no longer used by the application.  The master then logs in
through POST /auth/login like any other account; the identity user, profile
and master license are provisioned on that first login.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_master.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from core.config import settings          # noqa: E402
from core.security import hash_password   # noqa: E402
from database import SessionLocal         # noqa: E402
from models.master_credential import MasterCredential  # noqa: E402


def seed():
    if not settings.first_master_username or not settings.first_master_password:
        print("[seed_master] FIRST_MASTER_USERNAME or FIRST_MASTER_PASSWORD not set in etc/app.conf – nothing to do.")
        return

    username = settings.first_master_username.strip().lower()
    db = SessionLocal()
    try:
        existing = db.query(MasterCredential).filter(MasterCredential.username == username).first()
        if existing:
            print(f"[seed_master] Master '{username}' already exists – skipping.")
            return

        db.add(MasterCredential(
            username=username,
            password_hash=hash_password(settings.first_master_password),
            full_name=settings.first_master_full_name or None,
            is_active=True,
        ))
        db.commit()
        print(f"[seed_master] Master '{username}' created successfully.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
