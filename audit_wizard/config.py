"""Centralized config loading — read once at import time."""

import logging
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Load .env from project root (parent of audit_wizard/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

_config = yaml.safe_load(CONFIG_PATH.read_text())

LOG_FORMAT = "[AUDIT] %(levelname)s %(name)s: %(message)s"


def get_config() -> dict:
    """Return the loaded config dictionary."""
    return _config


def get_supabase_settings() -> tuple[str, str]:
    """Return (url, anon_key) for the hosted backend, read from the environment.

    Raises RuntimeError if either value is missing.
    """
    url = os.environ.get("SUPABASE_URL", "").rstrip("/")
    key = os.environ.get("SUPABASE_ANON_KEY", "")
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set.")
    return url, key


def configure_logging(level: str | None = None) -> None:
    """Send package logs to stderr with the [AUDIT] prefix."""
    level = level or get_config().get("log_level", "INFO")
    logger = logging.getLogger("audit_wizard")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
