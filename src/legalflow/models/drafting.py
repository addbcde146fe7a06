"""
Drafting models: generation requests, results, validation reports and usage.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

PASS_MARK = "✓"
FAIL_MARK = "✗"


class ContractGenerationRequest(BaseModel):
    """Parameters of one prompt-build-and-generate cycle. Never persisted."""

    tenant_id: str
    user_id: str
    client_id: UUID
    contract_type: str
    context: str = ""
    category_id: UUID | None = None
    use_style: bool = True


class ValidationItem(BaseModel):
    """One checklist assertion and whether the draft satisfies it."""

    passed: bool
    statement: str

    def render(self) -> str:
        return f"{PASS_MARK if self.passed else FAIL_MARK} {self.statement}"

    @classmethod
    def parse(cls, line: str) -> "ValidationItem | None":
        """Parse a ``"✓ ..."`` / ``"✗ ..."`` line. Unmarked lines count as failures."""
        line = line.strip().lstrip("-*").strip()
        if not line:
            return None
        if line.startswith(PASS_MARK):
            return cls(passed=True, statement=line[len(PASS_MARK):].strip())
        if line.startswith(FAIL_MARK):
            return cls(passed=False, statement=line[len(FAIL_MARK):].strip())
        return cls(passed=False, statement=line)


class ValidationReport(BaseModel):
    """Checklist-derived pass/fail comparison of a draft against the firm style."""

    items: list[ValidationItem] = Field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: list[str]) -> "ValidationReport":
        items = [ValidationItem.parse(str(line)) for line in lines]
        return cls(items=[item for item in items if item is not None])

    @property
    def passed(self) -> int:
        return sum(1 for item in self.items if item.passed)

    @property
    def failed(self) -> int:
        return len(self.items) - self.passed

    def lines(self) -> list[str]:
        return [item.render() for item in self.items]


class GenerationResult(BaseModel):
    """Outcome of a full (non-preview) generation."""

    content: str
    model: str
    validation_report: ValidationReport | None = None
    styled: bool = False
    degraded: bool = False
    fallback_reason: str | None = None


class UsageRecord(BaseModel):
    """One successful completion call, for quota and cost accounting."""

    tenant_id: str
    user_id: str
    operation: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("input_tokens", "output_tokens", mode="before")
    @classmethod
    def non_negative(cls, v: int | None) -> int:
        return max(0, int(v or 0))


class DraftingState(str, Enum):
    """States of an interactive drafting session."""

    IDLE = "idle"
    PREVIEWING = "previewing"
    CONFIRMED = "confirmed"
    GENERATED = "generated"
    CANCELLED = "cancelled"
