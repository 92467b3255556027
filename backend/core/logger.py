"""
Logging setup for the authentication service.

Levels, handlers and rotation are declared in etc/logging.conf; the only
thing decided here is where log/app.log lives.  ``GYMAUTH_LOG_DIR``
overrides the default ``<project>/log`` directory (containers mount a
volume there, the test suite points it at a temp dir).

Usage:
    from core.logger import logger
"""

import configparser
import logging
import logging.config
import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_LOGGING_CONF = _PROJECT_ROOT / "etc" / "logging.conf"


def _log_file() -> Path:
    log_dir = Path(os.environ.get("GYMAUTH_LOG_DIR") or _PROJECT_ROOT / "log")
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "app.log"


def _load_config() -> configparser.RawConfigParser:
    # logging.conf carries a %(log_file)s placeholder inside the handler
    # args, which are eval'd: substitute a forward-slash path before parsing.
    # Raw parser so the %(asctime)s style format strings are left alone.
    text = _LOGGING_CONF.read_text(encoding="utf-8")
    text = text.replace("%(log_file)s", _log_file().as_posix())
    parser = configparser.RawConfigParser()
    parser.read_string(text)
    return parser


logging.config.fileConfig(_load_config(), disable_existing_loggers=False)

logger = logging.getLogger("gymauth")
