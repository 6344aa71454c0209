from __future__ import annotations

from typing import BinaryIO

from accounts.errors import AvatarRejected
from accounts.utils.base import AvatarFormat
from accounts.utils.config import settings


_SIGNATURES: dict[AvatarFormat, bytes] = {
    AvatarFormat.JPEG: b"\xff\xd8\xff",
    AvatarFormat.PNG: b"\x89PNG\r\n\x1a\n",
}

_EXTENSIONS: dict[str, AvatarFormat] = {
    "jpg": AvatarFormat.JPEG,
    "jpeg": AvatarFormat.JPEG,
    "png": AvatarFormat.PNG,
}


def read_avatar(filename: str | None, stream: BinaryIO) -> tuple[bytes, AvatarFormat]:
    """Read an uploaded image, enforcing size, extension and magic bytes.

    At most ``avatar_max_bytes + 1`` bytes of the upload are read into memory.
    """
    name = filename or ""
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if extension not in settings.avatar_extensions or extension not in _EXTENSIONS:
        raise AvatarRejected("Please upload a jpg, jpeg or png image")

    data = stream.read(settings.avatar_max_bytes + 1)
    if len(data) > settings.avatar_max_bytes:
        raise AvatarRejected("Avatar is too large", status_code=413)
    if not data:
        raise AvatarRejected("Avatar file is empty")

    fmt = _EXTENSIONS[extension]
    if not data.startswith(_SIGNATURES[fmt]):
        raise AvatarRejected("File content does not match its image type")
    return data, fmt
