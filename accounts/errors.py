from typing import Any

from fastapi import HTTPException


class Unauthenticated(HTTPException):
    """Missing, malformed, forged, expired or revoked credential.

    The detail is the same whatever check failed.
    """

    def __init__(self, detail: str = "Please authenticate") -> None:
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class DuplicateEmail(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=409, detail="Email already registered")


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=404, detail=detail)


class ValidationError(HTTPException):
    def __init__(self, detail: Any) -> None:
        super().__init__(status_code=422, detail=detail)


class AvatarRejected(HTTPException):
    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(status_code=status_code, detail=detail)


class StoreUnavailable(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=503, detail="Database unavailable, try again later")
