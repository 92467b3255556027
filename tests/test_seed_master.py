from __future__ import annotations

import importlib.util
from pathlib import Path

from core.security import verify_password
from models.master_credential import MasterCredential

_SCRIPT = Path(__file__).resolve().parent.parent / "bin" / "seed_master.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("seed_master", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_seed_creates_the_first_master_once(monkeypatch, session_factory, db):
    script = _load_script()
    monkeypatch.setattr(script, "SessionLocal", session_factory)
    monkeypatch.setattr(script.settings, "first_master_username", " Dono ")
    monkeypatch.setattr(script.settings, "first_master_password", "senha-do-dono")

    script.seed()
    script.seed()

    rows = db.query(MasterCredential).all()
    assert [row.username for row in rows] == ["dono"]
    assert verify_password("senha-do-dono", rows[0].password_hash)
    assert rows[0].is_active is True


def test_seed_without_settings_does_nothing(monkeypatch, session_factory, db):
    script = _load_script()
    monkeypatch.setattr(script, "SessionLocal", session_factory)
    monkeypatch.setattr(script.settings, "first_master_username", "")

    script.seed()

    assert db.query(MasterCredential).count() == 0
