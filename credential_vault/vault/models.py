"""Credential records and the parameter objects used to create and update them."""
from datetime import datetime
from typing import Any, Optional

import orjson
from pydantic import BaseModel, Field, model_validator


class Credential(BaseModel):
    """A decrypted credential record.

    ``password`` holds plaintext and only ever lives in memory; the stored
    row carries the envelope string instead.
    """

    id: int
    user_id: int
    site_name: str
    username: str
    password: str = Field(repr=False)
    site_url: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any, password: str) -> "Credential":
        """Build from a database row and its decrypted password."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            site_name=row["site_name"],
            site_url=row["site_url"],
            username=row["username"],
            password=password,
            notes=row["notes"],
            category=row["category"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        return self.model_dump()

    def to_json(self) -> bytes:
        """Serialize for an API response (datetimes as RFC 3339)."""
        return orjson.dumps(self.model_dump())


class CredentialCreate(BaseModel):
    """Fields accepted when creating a credential."""

    site_name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    site_url: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None


class CredentialUpdate(BaseModel):
    """Partial update; only explicitly supplied fields are changed."""

    site_name: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[str] = Field(default=None, min_length=1, repr=False)
    site_url: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None

    @model_validator(mode="after")
    def reject_null_required(self) -> "CredentialUpdate":
        """site_name, username and password may be omitted but not cleared."""
        for name in ("site_name", "username", "password"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changed_fields(self) -> dict[str, Any]:
        """Return the fields that were explicitly set, in declaration order."""
        return self.model_dump(exclude_unset=True)


def credentials_to_json(credentials: list[Credential]) -> bytes:
    """Serialize a list of credentials as ``{"credentials": [...]}``."""
    return orjson.dumps(
        {"credentials": [c.model_dump() for c in credentials]}
    )
