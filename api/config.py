from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))     # api/
ROOT_DIR = os.path.dirname(BASE_DIR)                      # project root

# =========================
# Config & Initialization
# =========================
# Load root .env first, then any CWD .env.
load_dotenv(os.path.join(ROOT_DIR, ".env"))
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


APP_NAME = os.getenv("APP_NAME", "Finchat API")
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = _env_bool("DEBUG", "false")
FLASK_SECRET = os.getenv("FLASK_SECRET", "finchat_dev_secret")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "1024"))
OPENAI_TIMEOUT_SECS = _env_float("OPENAI_TIMEOUT_SECS")

# "full" (14 fields) or "minimal" (5 fields)
QUESTIONNAIRE_CATALOG = os.getenv("QUESTIONNAIRE_CATALOG", "full").strip().lower()
MAX_TOOL_STEPS = int(os.getenv("MAX_TOOL_STEPS", "6"))

DEBUG_CONSOLE_ENABLED = _env_bool("DEBUG_CONSOLE_ENABLED", "false")
DEBUG_EVENTS_MAX = int(os.getenv("DEBUG_EVENTS_MAX", "500"))

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("finchat")
