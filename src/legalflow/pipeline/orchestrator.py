"""
Style training orchestrator.

Coordinates master style profile training for one tenant:
1. Deep analysis of every training document, one at a time
2. Synthesis of the analyses into a master profile
3. Single-pass fallback over raw texts when either step fails
4. Atomic replacement of the tenant's active profile
"""

from typing import Callable, Iterator
from uuid import UUID

import structlog

from legalflow.config import get_settings
from legalflow.exceptions import InvalidInput, LegalFlowError
from legalflow.models.document import TrainingDocument
from legalflow.models.progress import SynthesisProgress, SynthesisResult, SynthesisStage
from legalflow.models.style import DeepStyleAnalysis, MasterStyleProfile
from legalflow.services.profile_synthesizer import (
    ProfileSynthesizer,
    get_profile_synthesizer,
    manual_profile,
)
from legalflow.services.style_analyzer import StyleAnalyzer, get_style_analyzer
from legalflow.storage.base import CategoryStore, StyleProfileStore, TrainingDocumentStore

logger = structlog.get_logger(__name__)


class StyleProfileService:
    """Read and hand-edit the active style profile of a tenant."""

    def __init__(self, profiles: StyleProfileStore):
        self.profiles = profiles

    def get_active(self, tenant_id: str) -> MasterStyleProfile | None:
        return self.profiles.get_active(tenant_id)

    def save_manual(self, tenant_id: str, style_text: str) -> MasterStyleProfile:
        """Store a profile typed in by firm staff, bypassing synthesis."""
        profile = manual_profile(style_text, tenant_id=tenant_id)
        return self.profiles.replace(tenant_id, profile)

    def history(self, tenant_id: str) -> list[MasterStyleProfile]:
        return self.profiles.history(tenant_id)


class StyleTrainingPipeline:
    """
    Trains a tenant's master style profile from its training documents.

    ``run()`` is a generator of progress events; closing it stops the run
    before the next document is analyzed.
    """

    def __init__(
        self,
        documents: TrainingDocumentStore,
        profiles: StyleProfileStore,
        categories: CategoryStore | None = None,
        analyzer: StyleAnalyzer | None = None,
        synthesizer: ProfileSynthesizer | None = None,
    ):
        self.settings = get_settings()
        self.documents = documents
        self.profiles = profiles
        self.categories = categories

        self._analyzer = analyzer
        self._synthesizer = synthesizer

    @property
    def analyzer(self) -> StyleAnalyzer:
        if self._analyzer is None:
            self._analyzer = get_style_analyzer()
        return self._analyzer

    @property
    def synthesizer(self) -> ProfileSynthesizer:
        if self._synthesizer is None:
            self._synthesizer = get_profile_synthesizer()
        return self._synthesizer

    # =========================================================================
    # Document intake
    # =========================================================================

    def add_document(
        self,
        document: TrainingDocument,
        timeout: float | None = None,
    ) -> TrainingDocument:
        """
        Store a training document with its tone label and style summary.

        The single-document analysis is best effort; it never fails the upload.
        """
        summary = self.analyzer.analyze_single(document.text, timeout=timeout)
        document = document.model_copy(
            update={"style_summary": summary.summary, "tone_label": summary.tone}
        )
        stored = self.documents.add(document)
        logger.info(
            "training_document_registered",
            tenant_id=document.tenant_id,
            document_id=str(document.id),
            words=document.word_count,
            tone=summary.tone,
        )
        return stored

    # =========================================================================
    # Training
    # =========================================================================

    def run(self, tenant_id: str, timeout: float | None = None) -> Iterator[SynthesisProgress]:
        """
        Train the tenant's profile, yielding progress events.

        analyzing (0/N .. N/N) -> synthesizing (0/1, 1/1) -> complete, or
        fallback (0/1, 1/1) in place of the rest when any structured step
        fails. The final event carries the SynthesisResult.

        Raises InvalidInput when the tenant has no training documents.
        """
        documents = self.documents.list_by_tenant(tenant_id)
        if not documents:
            raise InvalidInput(f"Tenant {tenant_id} has no training documents")

        total = len(documents)
        logger.info("style_training_started", tenant_id=tenant_id, documents=total)

        analyses: list[DeepStyleAnalysis] = []
        category_names: list[str] = []
        profile: MasterStyleProfile | None = None
        fallback_reason: str | None = None

        yield SynthesisProgress(stage=SynthesisStage.ANALYZING, current=0, total=total)
        try:
            for index, document in enumerate(documents, start=1):
                category = self._category_name(tenant_id, document.category_id)
                analyses.append(self._analyze(document, category, timeout))
                if category:
                    category_names.append(category)
                yield SynthesisProgress(stage=SynthesisStage.ANALYZING, current=index, total=total)

            yield SynthesisProgress(stage=SynthesisStage.SYNTHESIZING, current=0, total=1)
            profile = self.synthesizer.synthesize(analyses, category_names, timeout=timeout)
            yield SynthesisProgress(stage=SynthesisStage.SYNTHESIZING, current=1, total=1)
        except LegalFlowError as e:
            logger.warning(
                "synthesis_fallback",
                tenant_id=tenant_id,
                analyzed=len(analyses),
                error=str(e),
            )
            fallback_reason = str(e)

        if profile is None:
            yield SynthesisProgress(stage=SynthesisStage.FALLBACK, current=0, total=1)
            profile = self.synthesizer.build_simple_profile(
                [document.text for document in documents], timeout=timeout
            )
            yield SynthesisProgress(stage=SynthesisStage.FALLBACK, current=1, total=1)

        stored = self.profiles.replace(tenant_id, profile)
        result = SynthesisResult(
            profile=stored,
            analyzed_documents=len(analyses),
            degraded=fallback_reason is not None,
            fallback_reason=fallback_reason,
        )

        logger.info(
            "style_training_completed",
            tenant_id=tenant_id,
            source=stored.source.value,
            completeness=stored.completeness_score,
            degraded=result.degraded,
        )
        yield SynthesisProgress(
            stage=SynthesisStage.COMPLETE, current=total, total=total, result=result
        )

    def synthesize(
        self,
        tenant_id: str,
        on_progress: Callable[[SynthesisProgress], None] | None = None,
        timeout: float | None = None,
    ) -> SynthesisResult:
        """Run training to completion and return its result."""
        result: SynthesisResult | None = None
        for event in self.run(tenant_id, timeout=timeout):
            if on_progress:
                on_progress(event)
            if event.result is not None:
                result = event.result
        return result

    def _analyze(
        self,
        document: TrainingDocument,
        category: str | None,
        timeout: float | None,
    ) -> DeepStyleAnalysis:
        try:
            return self.analyzer.analyze_deep(
                document.text, document.contract_type, category, timeout=timeout
            )
        except LegalFlowError as e:
            logger.error(
                "deep_analysis_failed",
                document_id=str(document.id),
                title=document.title,
                error=str(e),
            )
            raise

    def _category_name(self, tenant_id: str, category_id: UUID | None) -> str | None:
        if category_id is None or self.categories is None:
            return None
        category = self.categories.get(tenant_id, category_id)
        return category.name if category else None
