# incubator/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

# Pick up a local .env if present; real env vars win.
load_dotenv()

# Use the same DB for app + scripts. Adjust if you keep your db elsewhere.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/incubator.db")
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")


def upload_dir() -> Path:
    """Directory holding stored file attachment content.

    Read on every call so tests can point it somewhere else with monkeypatch.
    """
    return Path(os.getenv("UPLOAD_DIR", "./data/uploads")).resolve()
