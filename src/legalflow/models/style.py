"""
Style DNA models: per-document deep analyses and the master style profile.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Deep analysis (one per training document)
# =============================================================================


class DocumentStructure(BaseModel):
    """Formal layout conventions of a document."""

    has_preamble: bool = False
    clause_numbering_style: str = ""
    section_headers_style: str = ""
    signature_block_format: str = ""


class ToneProfile(BaseModel):
    """Register and voice of a document."""

    formality_level: str = Field(
        default="neutral", description="muy_formal | formal | neutral | moderno"
    )
    use_of_archaisms: list[str] = Field(default_factory=list)
    voice: str = Field(default="mixed", description="passive | active | mixed")
    person: str = Field(
        default="impersonal", description="first_plural | third_person | impersonal"
    )


class SignatureClauses(BaseModel):
    """How the firm habitually handles its signature clauses."""

    confidentiality_approach: str = ""
    liability_limitation_style: str = ""
    dispute_resolution_preference: str = ""
    termination_clause_pattern: str = ""


class JurisdictionStyle(BaseModel):
    """Conventions specific to the firm's jurisdiction and courts."""

    formal_register: str = Field(
        default="usted",
        validation_alias=AliasChoices("formal_register", "uses_vos_usted"),
        description="vos | usted | mixed",
    )
    judicial_formulas: list[str] = Field(default_factory=list)
    citation_style: str = ""
    procedural_structure: bool = False


class ClauseExamples(BaseModel):
    """Literal excerpts illustrating each clause category."""

    preamble: str | None = None
    confidentiality_clause: str | None = None
    liability_clause: str | None = None
    dispute_clause: str | None = None
    termination_clause: str | None = None
    signature_block: str | None = None


class DeepStyleAnalysis(BaseModel):
    """
    Structured multi-axis stylistic profile of one training document.

    Only usable when both ``structure`` and ``tone`` are present; see
    ``missing_required``.
    """

    model_config = ConfigDict(populate_by_name=True)

    structure: DocumentStructure | None = None
    tone: ToneProfile | None = None
    signature_clauses: SignatureClauses | None = None
    jurisdiction_style: JurisdictionStyle | None = Field(
        default=None,
        validation_alias=AliasChoices("jurisdiction_style", "argentine_legal_style"),
    )
    examples: ClauseExamples | None = None

    # Provenance, filled in by the analyzer rather than the model
    document_type: str | None = None
    category: str | None = None

    @property
    def missing_required(self) -> list[str]:
        """Names of the required axes the model left out."""
        missing = []
        if self.structure is None:
            missing.append("structure")
        if self.tone is None:
            missing.append("tone")
        return missing

    @property
    def is_usable(self) -> bool:
        return not self.missing_required


# =============================================================================
# Master style profile (one active per tenant)
# =============================================================================


class ProfileSource(str, Enum):
    """How a master style profile came to be."""

    SYNTHESIZED = "synthesized"
    SIMPLE = "simple"
    MANUAL = "manual"
    DEGENERATE = "degenerate"


class StyleExamples(BaseModel):
    """Canonical worked examples attached to a master profile."""

    model_config = ConfigDict(frozen=True)

    good_preamble: str = ""
    good_clause_structure: str = ""
    signature_block: str = ""


class MasterStyleProfile(BaseModel):
    """
    The firm's synthesized drafting voice.

    Frozen: writers build a new instance and replace the active one
    wholesale, so readers never observe a half-updated profile.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str | None = None
    style_instruction: str = Field(..., description="Operative prompt fragment")
    validation_checklist: list[str] = Field(default_factory=list)
    examples: StyleExamples = Field(default_factory=StyleExamples)
    completeness_score: int = Field(default=0, ge=0, le=100)
    missing_elements: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    source: ProfileSource = ProfileSource.SYNTHESIZED
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("completeness_score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> int:
        """Models occasionally answer 120 or -5; clamp rather than reject."""
        try:
            score = int(round(float(v)))
        except (TypeError, ValueError):
            return 0
        return min(100, max(0, score))

    @field_validator("validation_checklist", "missing_elements", "suggestions", mode="before")
    @classmethod
    def drop_blank_items(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(item).strip() for item in v if item is not None and str(item).strip()]
        return v

    @property
    def has_checklist(self) -> bool:
        return bool(self.validation_checklist)

    def for_tenant(self, tenant_id: str) -> "MasterStyleProfile":
        """Return a copy bound to ``tenant_id`` with a fresh timestamp."""
        return self.model_copy(
            update={"tenant_id": tenant_id, "updated_at": datetime.now(timezone.utc)}
        )
