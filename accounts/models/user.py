from datetime import datetime, timezone

from mongoengine import (
    BinaryField,
    DateTimeField,
    EmailField,
    EmbeddedDocumentField,
    IntField,
    ListField,
    StringField,
)

from accounts.models.base import BaseDocument, BaseEmbeddedDocument
from accounts.services.hashing import hash_password
from accounts.utils.base import AvatarFormat


class Token(BaseEmbeddedDocument):
    """Embedded: one issued bearer token (a login session).

    Fields:
    - token (str): the signed JWT handed to the client
    - created_at (datetime): issuance time
    """
    token = StringField(required=True, null=False)
    created_at = DateTimeField(default=lambda: datetime.now(timezone.utc), null=False)


class User(BaseDocument):
    """User document.

    Fields:
    - name (str): Display name, trimmed
    - email (str, unique): Login identifier, trimmed and lower-cased
    - password (str, hashed): Bcrypt digest, hashed on save whenever it changes
    - age (int): Non-negative, defaults to 0
    - avatar (bytes|None) / avatar_content_type (str|None): Profile picture
    - tokens (list[Token]): Active sessions in login order
    """
    private_fields = ("metadata", "password", "tokens", "avatar", "avatar_content_type")

    name = StringField(required=True, null=False, min_length=1)
    email = EmailField(required=True, null=False, unique=True)
    password = StringField(required=True, null=False)
    age = IntField(required=True, null=False, default=0, min_value=0)
    avatar = BinaryField(required=False, null=True)
    avatar_content_type = StringField(required=False, null=True, choices=AvatarFormat.choices())
    tokens = ListField(EmbeddedDocumentField(Token), default=list, null=False)

    meta = {
        "collection": "users",
        "indexes": [
            {"fields": ["email"], "unique": True},
        ],
    }

    def clean(self):
        if self.name is not None:
            self.name = self.name.strip()
        if self.email is not None:
            self.email = self.email.strip().lower()

    def save(self, *args, **kwargs):
        # New documents and password changes are hashed before they reach the store
        if self._created or "password" in self._get_changed_fields():
            self.password = hash_password(self.password)
        return super().save(*args, **kwargs)
