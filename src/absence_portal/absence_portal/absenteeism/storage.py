from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path
from typing import BinaryIO

from werkzeug.utils import secure_filename

from ..core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class LetterStorage:
    """Stores uploaded letters on disk under one upload directory.

    Records keep the path relative to that directory.
    """

    def __init__(self, upload_dir: str | os.PathLike):
        self._root = Path(upload_dir).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def ensure_dir(self) -> None:
        self._root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def new_name(original_filename: str) -> str:
        ext = Path(secure_filename(original_filename or "")).suffix.lower()
        return f"absenteeism-{int(time.time() * 1000)}-{secrets.token_hex(16)}{ext}"

    def save(self, stream: BinaryIO, original_filename: str) -> str:
        self.ensure_dir()
        name = self.new_name(original_filename)
        with open(self._root / name, "wb") as fh:
            while True:
                chunk = stream.read(64 * 1024)
                if not chunk:
                    break
                fh.write(chunk)
        logger.info("Stored letter %s", name)
        return name

    def _path(self, relative_path: str) -> Path:
        path = (self._root / relative_path).resolve()
        if path != self._root and self._root not in path.parents:
            raise NotFoundError("File not found.")
        return path

    def resolve(self, relative_path: str) -> Path:
        path = self._path(relative_path)
        if not path.is_file():
            raise NotFoundError("File not found.")
        return path

    def delete(self, relative_path: str) -> None:
        try:
            self._path(relative_path).unlink()
        except (FileNotFoundError, NotFoundError):
            logger.info("Letter file %s was already missing", relative_path)
