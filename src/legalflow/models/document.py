"""
Training document models for style learning.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class TrainingDocument(BaseModel):
    """
    One historical document submitted by a firm for style learning.

    The synthesis pipeline only reads these; edits come from firm staff.
    """

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    title: str = ""
    text: str = Field(..., description="Full extracted text")
    contract_type: str = Field(..., description="Declared contract/document type")
    category_id: UUID | None = None

    # Derived by the single-document analyzer on upload
    style_summary: str | None = None
    tone_label: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def word_count(self) -> int:
        return len(self.text.split())


class Excerpt(BaseModel):
    """A labelled window of a document, as selected by the sample extractor."""

    label: str
    start: int
    end: int
    text: str


class StyleSummary(BaseModel):
    """Tone label plus a one-line style summary for a single document."""

    tone: str
    summary: str
