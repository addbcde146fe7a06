"""
Pydantic models for LegalFlow.

This module contains all data models used throughout the application:
- Client and category models supplied by the practice-management side
- Training document and excerpt models for style learning
- Style DNA models (deep analyses, master style profile)
- Drafting models (requests, results, validation reports, usage records)
- Progress models for the training run
"""

from legalflow.models.analysis import ContractAnalysis
from legalflow.models.client import Client, ClientType, ContractCategory
from legalflow.models.document import Excerpt, StyleSummary, TrainingDocument
from legalflow.models.drafting import (
    ContractGenerationRequest,
    DraftingState,
    GenerationResult,
    UsageRecord,
    ValidationItem,
    ValidationReport,
)
from legalflow.models.progress import SynthesisProgress, SynthesisResult, SynthesisStage
from legalflow.models.style import (
    ClauseExamples,
    DeepStyleAnalysis,
    DocumentStructure,
    JurisdictionStyle,
    MasterStyleProfile,
    ProfileSource,
    SignatureClauses,
    StyleExamples,
    ToneProfile,
)

__all__ = [
    # Client models
    "Client",
    "ClientType",
    "ContractCategory",
    # Document models
    "TrainingDocument",
    "Excerpt",
    "StyleSummary",
    # Style models
    "DeepStyleAnalysis",
    "DocumentStructure",
    "ToneProfile",
    "SignatureClauses",
    "JurisdictionStyle",
    "ClauseExamples",
    "MasterStyleProfile",
    "StyleExamples",
    "ProfileSource",
    # Drafting models
    "ContractGenerationRequest",
    "GenerationResult",
    "ValidationItem",
    "ValidationReport",
    "UsageRecord",
    "DraftingState",
    # Progress models
    "SynthesisProgress",
    "SynthesisResult",
    "SynthesisStage",
    # Analysis models
    "ContractAnalysis",
]
