import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

CSS_VERSION = "v2026_10_19_01"   # increment this anytime you change CSS

APP_TITLE = "Chartix"


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default


def _env_flag(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------
# Runtime settings (environment overrides)
# ---------------------------------------------------------
PROJECTS_DIR = Path(
    os.getenv("CHARTIX_PROJECTS_DIR", str(Path.home() / ".chartix" / "projects"))
)

MAX_UPLOAD_MB = _env_int("CHARTIX_MAX_UPLOAD_MB", 50)
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

LOG_LEVEL = os.getenv("CHARTIX_LOG_LEVEL", "INFO").upper()

USE_DEMO_DATA = _env_flag("CHARTIX_DEMO_DATA", True)
