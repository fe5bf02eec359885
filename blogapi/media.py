"""
Local file store for images attached to posts.

The service layer only ever sees the returned filenames; how and where the
bytes live is this module's business.
"""
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from blogapi.config import settings
from blogapi.errors import ValidationError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class LocalMediaStore:
    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = Path(directory)

    async def save(self, uploads: list[UploadFile]) -> list[str]:
        """
        Persist every upload and return the stored filenames in order.

        Empty file fields (no filename) are ignored.  Only ``image/*``
        content is accepted.  If any write fails the files already written
        for this call are removed before raising.
        """
        uploads = [u for u in uploads if u.filename]
        for upload in uploads:
            if not (upload.content_type or "").startswith("image/"):
                raise ValidationError(f"Unsupported media type for {upload.filename!r}; images only")

        self.directory.mkdir(parents=True, exist_ok=True)
        stored: list[str] = []
        try:
            for upload in uploads:
                name = f"{uuid.uuid4().hex}{Path(upload.filename).suffix.lower()}"
                await run_in_threadpool(self._write, upload.file, self.directory / name)
                stored.append(name)
        except Exception:
            self.discard(stored)
            raise
        return stored

    @staticmethod
    def _write(source: BinaryIO, target: Path) -> None:
        source.seek(0)
        with open(target, "wb") as fh:
            shutil.copyfileobj(source, fh, _CHUNK_SIZE)

    def discard(self, filenames: list[str]) -> None:
        """Remove files written for a request that did not go through."""
        for name in filenames:
            try:
                (self.directory / name).unlink()
            except FileNotFoundError:
                logger.debug("Media file already gone: %s", name)


def get_media_store() -> LocalMediaStore:
    return LocalMediaStore(settings.MEDIA_DIR)
