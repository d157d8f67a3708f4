"""
Contact Data Models for the Phone Book

These models define the in-memory shape of a contact as it flows between
the vCard codec, the storage layer and the photo store.

DESIGN DECISION: Phone numbers and email addresses are ordered lists of
typed entries. Order is significant: the first entry is treated as the
primary one by every caller.
"""

from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


DATA_URI_PREFIX = "data:"


class TypedEntry(BaseModel):
    """A phone number or email address with a categorical label."""

    model_config = ConfigDict(str_strip_whitespace=True)

    kind: str = Field(
        default="",
        description="Label such as CELL, HOME, WORK, VOICE, INTERNET"
    )
    value: str = Field(
        ...,
        description="The phone number or email address"
    )


class ContactRecord(BaseModel):
    """
    A single phone book contact.

    CRITICAL: formatted_name is required. A vCard block without FN never
    becomes a ContactRecord.

    `photo` is either an inline data URI (data:<mime>;base64,<payload>) as
    produced by the decoder, or an opaque reference returned by a photo store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique contact ID"
    )
    formatted_name: str = Field(
        ...,
        min_length=1,
        description="Display name (vCard FN)"
    )
    organization: Optional[str] = None
    title: Optional[str] = None
    note: Optional[str] = Field(
        default=None,
        description="Free text, may contain newlines"
    )
    telephones: list[TypedEntry] = Field(default_factory=list)
    emails: list[TypedEntry] = Field(default_factory=list)
    photo: Optional[str] = Field(
        default=None,
        description="Data URI or photo store reference"
    )

    @field_validator("telephones", "emails")
    @classmethod
    def drop_blank_entries(cls, v: list[TypedEntry]) -> list[TypedEntry]:
        """Entries without a value are never kept."""
        return [entry for entry in v if entry.value]

    @field_validator("organization", "title", "note", "photo")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def primary_telephone(self) -> Optional[TypedEntry]:
        return self.telephones[0] if self.telephones else None

    @property
    def primary_email(self) -> Optional[TypedEntry]:
        return self.emails[0] if self.emails else None

    @property
    def has_inline_photo(self) -> bool:
        """True when the photo is carried as a data URI rather than a reference."""
        return bool(self.photo) and self.photo.startswith(DATA_URI_PREFIX)
