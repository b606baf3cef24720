"""
storage/local.py -- Local filesystem storage for uploaded images.

Images live under <base_dir>/<folder>/<filename>, where folder is one of
users, posts, programs, sliders, advisors. The app mounts the parent of
base_dir at /public, so a stored file is served as
/public/images/<folder>/<filename>.

Filenames are generated (random hex + original extension); the client's
filename is never used as a path component.

Layer rule: may import from core/ only.
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path

from core.errors import ValidationError

logger = logging.getLogger("kin.storage")

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif"})


class LocalImageStorage:
    """Persist uploaded images to the local filesystem."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_directory = Path(base_dir).resolve()
        self.base_directory.mkdir(parents=True, exist_ok=True)

    def _folder(self, folder: str) -> Path:
        path = (self.base_directory / folder).resolve()
        if path.parent != self.base_directory:
            raise ValidationError("Invalid storage folder.")
        return path

    def _resolve(self, folder: str, filename: str) -> Path | None:
        directory = self._folder(folder)
        path = (directory / filename).resolve()
        if path.parent != directory:
            return None
        return path

    def save(self, data: bytes, original_name: str | None, folder: str) -> str:
        """Write `data` under `folder` and return the generated filename.

        Raises ValidationError for empty uploads and disallowed extensions.
        """
        ext = Path(original_name or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(f"Only {', '.join(sorted(ALLOWED_EXTENSIONS))} images are allowed.")
        if not data:
            raise ValidationError("Uploaded file is empty.")
        directory = self._folder(folder)
        directory.mkdir(parents=True, exist_ok=True)
        filename = f"{secrets.token_hex(16)}{ext}"
        (directory / filename).write_bytes(data)
        logger.info("Stored image %s/%s (%d bytes)", folder, filename, len(data))
        return filename

    def exists(self, folder: str, filename: str) -> bool:
        path = self._resolve(folder, filename)
        return path is not None and path.is_file()

    def delete(self, folder: str, filename: str | None) -> bool:
        """Remove a stored image. Missing files and foreign paths are ignored.

        Returns True if a file was removed.
        """
        if not filename:
            return False
        path = self._resolve(folder, filename)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info("Deleted image %s/%s", folder, filename)
        return True
