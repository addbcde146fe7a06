"""
Progress events emitted while a master style profile is being trained.
"""

from enum import Enum

from pydantic import BaseModel

from legalflow.models.style import MasterStyleProfile


class SynthesisStage(str, Enum):
    """Stages of the training run, in the order they are entered."""

    ANALYZING = "analyzing"
    SYNTHESIZING = "synthesizing"
    FALLBACK = "fallback"
    COMPLETE = "complete"


class SynthesisResult(BaseModel):
    """Final outcome of a training run."""

    profile: MasterStyleProfile
    analyzed_documents: int = 0
    degraded: bool = False
    fallback_reason: str | None = None


class SynthesisProgress(BaseModel):
    """A single ``{stage, current, total}`` progress event."""

    stage: SynthesisStage
    current: int
    total: int
    result: SynthesisResult | None = None

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return self.current / self.total

    def __str__(self) -> str:
        return f"{self.stage.value} ({self.current}/{self.total})"
