from enum import Enum


class BaseEnum(Enum):
    @classmethod
    def choices(cls):
        return [(item.value, item.name) for item in cls]


class TokenFailure(BaseEnum):
    MISSING_HEADER = "missing_header"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    UNKNOWN_USER = "unknown_user"
    REVOKED = "revoked"


class AvatarFormat(BaseEnum):
    JPEG = "image/jpeg"
    PNG = "image/png"
