"""
Local disk storage for uploaded attachment bytes.
"""
import logging
import re
import time
import uuid
from pathlib import Path
from typing import Tuple

from leavedesk.core.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalFileStorage:
    def __init__(self, root: str, public_url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.public_url_prefix = public_url_prefix.rstrip("/")

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes the upload directory: {key}")
        return path

    def save(self, data: bytes, filename: str) -> Tuple[str, str]:
        """Write bytes under a unique key. Returns (storage_key, public_url)."""
        self.ensure_root()
        base = Path(filename.replace("\\", "/")).name
        stem = _UNSAFE_CHARS.sub("_", Path(base).stem)[:80] or "file"
        suffix = _UNSAFE_CHARS.sub("", Path(base).suffix.lower())
        key = f"leave_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{stem}{suffix}"
        self._path(key).write_bytes(data)
        return key, f"{self.public_url_prefix}/{key}"

    def delete(self, key: str) -> bool:
        """Remove stored bytes. Missing files are not an error; returns whether bytes were removed."""
        path = self._path(key)
        if not path.exists():
            logger.info(f"Stored file {key} already absent")
            return False
        path.unlink()
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


def get_storage() -> LocalFileStorage:
    """FastAPI dependency; overridden in tests with a temporary directory."""
    return LocalFileStorage(settings.storage.upload_dir, settings.storage.public_url_prefix)
