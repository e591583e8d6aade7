"""Configuration: env defaults for rendering, scanning, dispatch and logging."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

# real environment variables take precedence over .env
load_dotenv(BASE_DIR / ".env")

# Rendering
ERROR_LEVEL = os.getenv("QR_STUDIO_ERROR_LEVEL", "M").upper()
SIZE = int(os.getenv("QR_STUDIO_SIZE", "300"))
MARGIN = int(os.getenv("QR_STUDIO_MARGIN", "4"))
STYLE = os.getenv("QR_STUDIO_STYLE", "gradient")
SIZE_MIN, SIZE_MAX, SIZE_STEP = 200, 800, 50

# Dispatch
PLATFORM = os.getenv("QR_STUDIO_PLATFORM", "")
MAPS_WEB_URL = os.getenv("QR_STUDIO_MAPS_WEB_URL", "https://www.google.com/maps?q={lat},{lng}")

# Scanning / UI timing
DUP_WINDOW = float(os.getenv("QR_STUDIO_DUP_WINDOW", "1.5"))
PREVIEW_DELAY_MS = int(os.getenv("QR_STUDIO_PREVIEW_DELAY_MS", "250"))

LOG_LEVEL = os.getenv("QR_STUDIO_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=getattr(logging, level or LOG_LEVEL, logging.INFO), format=LOG_FORMAT)
