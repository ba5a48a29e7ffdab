import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

# Public site URL, used when synthesizing publication records
MYSKY_URL = os.environ.get("MYSKY_URL") or "https://mysky.wtf"

# External services
PLC_DIRECTORY = os.environ.get("PLC_DIRECTORY") or "https://plc.directory"
CONSTELLATION_API = os.environ.get("CONSTELLATION_API") or "https://constellation.microcosm.blue"
BSKY_CDN = os.environ.get("BSKY_CDN") or "https://cdn.bsky.app"
# XRPC base URL for sign-in, e.g. https://bsky.social/xrpc; the SDK default when unset
PDS_HOST = os.environ.get("PDS_HOST")

USER_AGENT = os.environ.get("USER_AGENT") or "MySky/1.0"

# Session storage
DATABASE_PATH = os.environ.get("DATABASE_PATH") or "mysky.db"
SESSION_COOKIE = os.environ.get("SESSION_COOKIE") or "ms_session"


def _get_bool_env_var(value: str) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


def _get_float_env_var(value: str, default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


HTTP_TIMEOUT = _get_float_env_var(os.environ.get("HTTP_TIMEOUT"), 10.0)

DEBUG = _get_bool_env_var(os.environ.get("DEBUG"))

# Logging configuration
from mysky.logger import logger
FLASK_RUN_FROM_CLI = os.environ.get("FLASK_RUN_FROM_CLI")
if FLASK_RUN_FROM_CLI or DEBUG:
    logger.setLevel(logging.DEBUG)
