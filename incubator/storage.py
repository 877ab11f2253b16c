# incubator/storage.py
from __future__ import annotations

import uuid
from pathlib import Path

from incubator import config


def _path_for(key: str) -> Path:
    return config.upload_dir() / key


def save_content(content: bytes, filename: str | None = None) -> str:
    """Write uploaded bytes under UPLOAD_DIR and return the key to store on the row."""
    suffix = Path(filename).suffix if filename else ""
    key = f"{uuid.uuid4().hex}{suffix}"
    path = _path_for(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return key


def read_content(key: str) -> bytes:
    return _path_for(key).read_bytes()


def delete_content(key: str) -> bool:
    """Remove stored content; returns False if it was already gone."""
    path = _path_for(key)
    if not path.exists():
        return False
    path.unlink()
    return True
