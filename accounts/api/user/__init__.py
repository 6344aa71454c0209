import logging
from typing import Annotated

from bson.objectid import ObjectId
from fastapi import APIRouter, Depends, File, Response, UploadFile
from mongoengine import NotUniqueError
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from accounts.errors import DuplicateEmail, NotFound, Unauthenticated
from accounts.models.user import User
from accounts.services.auth import AuthSession, get_current_session, get_current_user
from accounts.services.avatars import read_avatar
from accounts.services.hashing import verify_password
from accounts.services.sessions import append_token, remove_all_tokens, remove_token
from accounts.services.tokens import TokenIssuer, get_token_issuer


logger = logging.getLogger(__name__)

router = APIRouter()

# Passwords are compared byte for byte, so only names are trimmed
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


def _check_password(value: str) -> str:
    if len(value) < 7:
        raise ValueError("Password must be at least 7 characters long")
    if "password" in value.lower():
        raise ValueError('Password cannot contain "password"')
    return value


class SignupBody(BaseModel):
    name: Name
    email: EmailStr
    password: str
    age: int = Field(default=0, ge=0)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class LoginBody(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UpdateBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Name | None = None
    email: EmailStr | None = None
    password: str | None = None
    age: int | None = Field(default=None, ge=0)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str | None) -> str | None:
        return value if value is None else _check_password(value)


def _email_taken(email: str, exclude_id=None) -> bool:
    query = User.objects(email=email)
    if exclude_id is not None:
        query = query.filter(id__ne=exclude_id)
    return query.first() is not None


@router.post("", status_code=201)
def signup(body: SignupBody, issuer: TokenIssuer = Depends(get_token_issuer)) -> dict:
    """PUBLIC: Create a user and log them in."""
    # Reject duplicate email signups early; the unique index catches races
    if _email_taken(body.email):
        raise DuplicateEmail()

    # Id is assigned up front so the first token is stored in the same insert
    user = User(id=ObjectId(), name=body.name, email=body.email, password=body.password, age=body.age)
    token = issuer.issue(str(user.id))
    try:
        append_token(user, token)
    except NotUniqueError:
        raise DuplicateEmail()

    logger.info("User signed up", extra={"user_id": str(user.id)})
    return {"user": user.to_output(), "token": token}


@router.post("/login")
def login(body: LoginBody, issuer: TokenIssuer = Depends(get_token_issuer)) -> dict:
    """PUBLIC: Exchange email and password for a new session token."""
    user = User.objects(email=body.email).first()
    # Same answer for unknown email and wrong password
    if not user or not verify_password(body.password, user.password):
        logger.info("Login failed")
        raise Unauthenticated("Invalid credentials")

    token = issuer.issue(str(user.id))
    append_token(user, token)
    logger.info("User logged in", extra={"user_id": str(user.id), "sessions": len(user.tokens)})
    return {"user": user.to_output(), "token": token}


@router.post("/logout")
def logout(session: AuthSession = Depends(get_current_session)) -> dict:
    """PROTECTED: Revoke the token used for this request only."""
    remove_token(session.user, session.token)
    logger.info("User logged out", extra={"user_id": str(session.user.id)})
    return {"status": True}


@router.post("/logout-all")
def logout_all(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Revoke every session of the current user."""
    revoked = remove_all_tokens(current_user)
    logger.info("User logged out everywhere", extra={"user_id": str(current_user.id), "revoked": revoked})
    return {"status": True}


@router.get("/me")
def read_me(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Current user's profile."""
    return current_user.to_output()


@router.patch("/me")
def update_me(body: UpdateBody, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Update name, email, password and/or age."""
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in updates and _email_taken(updates["email"], exclude_id=current_user.id):
        raise DuplicateEmail()

    for field, value in updates.items():
        setattr(current_user, field, value)
    try:
        current_user.save()
    except NotUniqueError:
        raise DuplicateEmail()

    logger.info("User updated", extra={"user_id": str(current_user.id), "fields": sorted(updates)})
    return current_user.to_output()


@router.delete("/me")
def delete_me(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Delete the account; all of its tokens stop working with it."""
    output = current_user.to_output()
    current_user.delete()
    logger.info("User deleted", extra={"user_id": output["id"]})
    return output


@router.post("/me/avatar")
def upload_avatar(
    avatar: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
) -> dict:
    """PROTECTED: Replace the profile picture (jpg/jpeg/png, size-bounded)."""
    data, fmt = read_avatar(avatar.filename, avatar.file)
    current_user.avatar = data
    current_user.avatar_content_type = fmt.value
    current_user.save()
    return {"status": True}


@router.delete("/me/avatar")
def delete_avatar(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Remove the profile picture."""
    current_user.avatar = None
    current_user.avatar_content_type = None
    current_user.save()
    return {"status": True}


@router.get("/{user_id}/avatar")
def read_avatar_image(user_id: str) -> Response:
    """PUBLIC: Serve a user's profile picture."""
    user = User.objects(id=user_id).first() if ObjectId.is_valid(user_id) else None
    if not user or not user.avatar:
        raise NotFound("Avatar not found")
    return Response(content=user.avatar, media_type=user.avatar_content_type)
