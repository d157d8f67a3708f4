"""Result models returned by the phone book flows."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.models.contact import ContactRecord


class ImportResult(BaseModel):
    """
    Outcome of importing one vCard file.

    blocks_seen counts BEGIN:VCARD markers in the source text, so callers can
    compare it with the number of decoded records to spot dropped blocks.
    """

    filename: str
    imported_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    imported: list[ContactRecord] = Field(default_factory=list)
    skipped_duplicates: list[str] = Field(
        default_factory=list,
        description="Formatted names that already existed in storage"
    )
    blocks_seen: int = Field(default=0, ge=0)
    dropped_blocks: int = Field(
        default=0,
        ge=0,
        description="Blocks that did not produce a contact (no FN or no END)"
    )
    photos_stored: int = Field(default=0, ge=0)
    photo_failures: int = Field(default=0, ge=0)

    @property
    def imported_count(self) -> int:
        return len(self.imported)


class ExportResult(BaseModel):
    """Outcome of exporting contacts to a vCard file."""

    exported_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    vcf_text: str
    contact_count: int = Field(ge=0)
    photos_included: int = Field(default=0, ge=0)
    photos_missing: int = Field(
        default=0,
        ge=0,
        description="Photo references that could not be loaded back"
    )
    search: Optional[str] = None
