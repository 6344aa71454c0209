from accounts.models.user import Token, User

__all__ = ["Token", "User"]
