import logging
import os
import re
import time
import uuid

from app.config import settings
from app.exceptions import StorageIOError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_CHUNK_SIZE = 1024 * 1024


def sanitize_filename(name: str, token: str = None) -> str:
    """Strip everything outside ``[A-Za-z0-9._-]`` and prefix a unique token."""
    if token is None:
        token = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
    safe = _UNSAFE_CHARS.sub("", os.path.basename(name or "")).lstrip(".")
    return f"{token}-{safe or 'photo'}"


class LocalFileStorage:
    """Stores uploaded photos as plain files under a root directory."""

    def __init__(self, root: str = None):
        self.root = os.path.abspath(root or settings.UPLOADS_DIR)

    def _path(self, filename: str) -> str:
        path = os.path.abspath(os.path.join(self.root, filename))
        if os.path.commonpath([self.root, path]) != self.root:
            raise StorageIOError(
                f"Refusing to touch a file outside the upload directory: {filename}"
            )
        return path

    async def save(self, upload, destination: str) -> str:
        path = self._path(destination)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as out:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
        except OSError as exc:
            # Never leave a truncated photo behind
            try:
                os.remove(path)
            except OSError:
                pass
            raise StorageIOError(
                f"Could not store {destination}: {exc}", details={"file": destination}
            ) from exc
        logger.debug("Stored photo %s", path)
        return destination

    def delete(self, filename: str) -> bool:
        path = self._path(filename)
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageIOError(
                f"Could not remove {filename}: {exc}", details={"file": filename}
            ) from exc
        return True
