"""
Payment screenshot storage.

Files land in a single directory that is also mounted at /uploads, so the
stored filename doubles as the public path suffix.
"""
import logging
import os
import re
import shutil
import time
import uuid
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class UploadError(Exception):
    """The uploaded file was rejected (client error)."""


class StorageUnavailable(Exception):
    """The upload directory could not be written."""


def safe_filename(original: str) -> str:
    base = os.path.basename(original.replace("\\", "/"))
    base = _UNSAFE.sub("_", base).strip("._")
    return base[-100:] or "upload"


class UploadStore:
    def __init__(self, directory: str):
        self.directory = directory

    def _ensure_dir(self) -> None:
        os.makedirs(self.directory, exist_ok=True)

    def path_for(self, name: str) -> str:
        return os.path.join(self.directory, os.path.basename(name))

    def exists(self, name: str) -> bool:
        return os.path.isfile(self.path_for(name))

    def save(self, upload: Optional[UploadFile]) -> Optional[str]:
        """Persist an optional upload and return its stored filename."""
        if upload is None or not upload.filename:
            return None
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            logger.warning("Rejected screenshot %s with content type %r", upload.filename, content_type)
            raise UploadError("screenshot must be an image")

        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_filename(upload.filename)}"
        try:
            self._ensure_dir()
            with open(self.path_for(name), "wb") as out:
                shutil.copyfileobj(upload.file, out)
        except OSError as e:
            logger.exception("Could not store screenshot in %s", self.directory)
            raise StorageUnavailable(str(e)) from e
        logger.info("Stored screenshot %s", name)
        return name

    def remove(self, name: Optional[str]) -> None:
        if not name:
            return
        try:
            os.remove(self.path_for(name))
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Could not remove screenshot %s", name)
