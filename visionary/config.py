"""Runtime configuration for Visionary.

Values are resolved from the process environment (and a local `.env` file) at
import time. Credentials are only read when a Gemini model is first needed.
"""
import logging
import os

from dotenv import load_dotenv

# Load environment variables FIRST
load_dotenv()

# Gemini models
IMAGE_MODEL = os.getenv("VISIONARY_IMAGE_MODEL", "gemini-2.5-flash-image-preview")
TEXT_MODEL = os.getenv("VISIONARY_TEXT_MODEL", "gemini-2.0-flash")

# Local storage
DATA_DIR = os.path.expanduser(os.getenv("VISIONARY_DATA_DIR", "~/.visionary"))
HISTORY_FILE = os.getenv(
    "VISIONARY_HISTORY_FILE",
    os.path.join(DATA_DIR, "visionaryAppImageHistory.json"),
)
# Same budget a browser gives localStorage
HISTORY_QUOTA_BYTES = int(os.getenv("VISIONARY_HISTORY_QUOTA_BYTES", str(5 * 1024 * 1024)))
DOWNLOAD_DIR = os.getenv("VISIONARY_DOWNLOAD_DIR", "downloads")

MAX_HISTORY_LENGTH = 5
MAX_UNDO_STEPS = 5
THUMBNAIL_MAX_SIZE = 400
THUMBNAIL_QUALITY = 70

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_api_key():
    """Return the Gemini API key from the environment, or None."""
    return os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")


def configure_logging(level=None):
    """Configure root logging for the CLI and HTTP entry points."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
