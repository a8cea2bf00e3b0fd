"""Filesystem-backed object storage for analysed images."""
import base64
import binascii
import logging
import re
import time
from pathlib import Path
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[\w-]+=[\w.-]+)*;base64,(?P<data>.*)$", re.DOTALL)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}

MEDIA_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "heic": "image/heic",
}


class StorageError(Exception):
    """Raised for unusable image data or object paths."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def decode_data_url(value: str) -> Tuple[bytes, str]:
    """
    Decode a data URL or bare base64 string.

    Returns:
        Tuple of (raw bytes, mime type). Bare base64 is assumed to be JPEG.
    """
    value = value.strip()
    mime = "image/jpeg"
    match = DATA_URL_PATTERN.match(value)
    if match:
        mime = (match.group("mime") or mime).lower()
        value = match.group("data")
    elif value.startswith("data:"):
        raise StorageError("Unsupported data URL encoding")

    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise StorageError("Image data is not valid base64")
    if not raw:
        raise StorageError("Image data is empty")
    return raw, mime


def encode_data_url(raw: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


class ImageStore:
    """A bucket of images on the local filesystem, keyed by ``<user>/<name>``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _resolve(self, object_path: str) -> Path:
        root = self.root.resolve()
        target = (root / object_path).resolve()
        if target == root or root not in target.parents:
            raise StorageError(f"Invalid object path: {object_path}")
        return target

    def save(self, user_id: str, data_url: str, now: Optional[float] = None) -> str:
        """Store an image for ``user_id`` and return its object path."""
        if not user_id or "/" in user_id or user_id in (".", ".."):
            raise StorageError("Invalid user id for storage")
        raw, mime = decode_data_url(data_url)
        extension = EXTENSIONS.get(mime, "jpg")
        stamp = int((now if now is not None else time.time()) * 1000)

        object_path = f"{user_id}/{stamp}.{extension}"
        target = self._resolve(object_path)
        counter = 1
        while target.exists():
            object_path = f"{user_id}/{stamp}-{counter}.{extension}"
            target = self._resolve(object_path)
            counter += 1

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(raw)
        logger.info(f"Stored image {object_path} ({len(raw)} bytes)")
        return object_path

    def path_for(self, object_path: str) -> Path:
        """Filesystem path of an existing object."""
        target = self._resolve(object_path)
        if not target.is_file():
            raise FileNotFoundError(object_path)
        return target

    def exists(self, object_path: str) -> bool:
        try:
            return self._resolve(object_path).is_file()
        except StorageError:
            return False

    def delete(self, object_path: str) -> bool:
        """Remove an object. Returns False if it did not exist."""
        target = self._resolve(object_path)
        if not target.exists():
            logger.warning(f"Stored image {object_path} already removed")
            return False
        target.unlink()
        logger.info(f"Deleted image {object_path}")
        return True

    @staticmethod
    def media_type(object_path: str) -> str:
        return MEDIA_TYPES.get(object_path.rsplit(".", 1)[-1].lower(), "application/octet-stream")
