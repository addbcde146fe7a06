"""
Domain errors raised by the style and drafting pipeline.
"""


class LegalFlowError(Exception):
    """Base class for all LegalFlow domain errors."""


class UpstreamUnavailable(LegalFlowError):
    """The completion service could not be reached or timed out."""


class MalformedCompletion(LegalFlowError):
    """The completion service answered, but the output could not be parsed."""


class IncompleteAnalysis(LegalFlowError):
    """The output parsed, but required fields are missing."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class InvalidInput(LegalFlowError):
    """The caller supplied empty or missing required fields."""


class DraftingStateError(LegalFlowError):
    """A drafting session was asked to make an illegal transition."""
