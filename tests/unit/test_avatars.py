"""
Unit tests for avatar upload checks.
"""
import io

import pytest

from accounts.errors import AvatarRejected
from accounts.services.avatars import read_avatar
from accounts.utils.base import AvatarFormat
from accounts.utils.config import settings


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


def test_accepts_png():
    data, fmt = read_avatar("profile-pic.png", io.BytesIO(PNG))
    assert data == PNG
    assert fmt is AvatarFormat.PNG


@pytest.mark.parametrize("filename", ["profile-pic.jpg", "PROFILE.JPEG"])
def test_accepts_jpeg(filename):
    _, fmt = read_avatar(filename, io.BytesIO(JPEG))
    assert fmt is AvatarFormat.JPEG


@pytest.mark.parametrize("filename", ["notes.txt", "profile", None, "archive.png.zip"])
def test_rejects_other_extensions(filename):
    with pytest.raises(AvatarRejected) as exc_info:
        read_avatar(filename, io.BytesIO(PNG))
    assert exc_info.value.status_code == 400


def test_rejects_content_not_matching_extension():
    with pytest.raises(AvatarRejected):
        read_avatar("profile-pic.png", io.BytesIO(JPEG))


def test_rejects_empty_file():
    with pytest.raises(AvatarRejected):
        read_avatar("profile-pic.png", io.BytesIO(b""))


def test_rejects_oversized_file(monkeypatch):
    monkeypatch.setattr(settings, "avatar_max_bytes", 16)
    with pytest.raises(AvatarRejected) as exc_info:
        read_avatar("profile-pic.png", io.BytesIO(PNG))
    assert exc_info.value.status_code == 413
