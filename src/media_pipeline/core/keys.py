"""Storage key naming."""

import secrets
import string
import time
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from .exceptions import ValidationError

_BASE36 = string.digits + string.ascii_lowercase
UNKNOWN_EXTENSION = "unknown"


class AssetCategory(str, Enum):
    """Namespace an object is stored under."""

    AVATAR = "avatar"
    POST = "post"
    ALBUM = "album"
    VIDEO = "video"
    PROCESSED = "processed"
    TEMP = "temp"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Union[str, "AssetCategory"]) -> "AssetCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(f"Unknown asset category: {value!r}") from None


KEY_TEMPLATES = {
    AssetCategory.AVATAR: "avatars/user-{owner}/{uid}.{ext}",
    AssetCategory.POST: "posts/post-{owner}/{uid}.{ext}",
    AssetCategory.ALBUM: "albums/album-{owner}/{uid}.{ext}",
    AssetCategory.VIDEO: "videos/post-{owner}/{uid}.{ext}",
    AssetCategory.PROCESSED: "processed/user-{owner}/{uid}.{ext}",
    AssetCategory.TEMP: "temp/uploads/{uid}.{ext}",
    AssetCategory.OTHER: "uploads/other/{uid}.{ext}",
}


def file_extension(filename: str) -> str:
    """Text after the last dot of ``filename``, or "unknown" if there is none."""
    name = filename.rsplit("/", 1)[-1]
    if "." not in name:
        return UNKNOWN_EXTENSION
    extension = name.rsplit(".", 1)[1]
    return extension or UNKNOWN_EXTENSION


def file_stem(filename: str) -> str:
    """Filename without directory and extension."""
    name = filename.rsplit("/", 1)[-1]
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return stem or "file"


def _disambiguator(length: int = 9) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _as_millis(timestamp: Optional[Union[int, float, datetime]]) -> int:
    if timestamp is None:
        return int(time.time() * 1000)
    if isinstance(timestamp, datetime):
        return int(timestamp.timestamp() * 1000)
    return int(timestamp)


def make_key(
    category: Union[str, AssetCategory],
    owner_id: str,
    filename: str,
    timestamp: Optional[Union[int, float, datetime]] = None,
) -> str:
    """
    Build a storage key for an uploaded or derived object.

    The unique part is ``{timestamp_ms}-{random}``, so two calls with
    identical arguments still produce distinct keys.

    Args:
        category: Namespace of the object
        owner_id: Opaque owner identifier, used for namespacing only
        filename: Original (or derived) filename, only its extension is kept
        timestamp: Epoch milliseconds or datetime, defaults to now

    Returns:
        Storage key
    """
    template = KEY_TEMPLATES[AssetCategory.parse(category)]
    uid = f"{_as_millis(timestamp)}-{_disambiguator()}"
    return template.format(owner=owner_id, uid=uid, ext=file_extension(filename))


def sibling_key(original_key: str, suffix: str = "thumbnail") -> str:
    """Key in the same directory with ``-{suffix}`` inserted before the extension."""
    directory, _, name = original_key.rpartition("/")
    if "." in name:
        base, extension = name.rsplit(".", 1)
        name = f"{base}-{suffix}.{extension}"
    else:
        name = f"{name}-{suffix}"
    return f"{directory}/{name}" if directory else name
