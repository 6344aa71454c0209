from accounts.utils.base.enums import BaseEnum, TokenFailure, AvatarFormat

__all__ = ["BaseEnum", "TokenFailure", "AvatarFormat"]
