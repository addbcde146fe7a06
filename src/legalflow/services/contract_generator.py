"""
Contract generation and refinement.

Drives preview and final generation, validates styled drafts against the
firm's checklist, falls back from styled to unstyled generation, and records
usage for every successful completion call.
"""

from functools import lru_cache
from typing import Any
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict

from legalflow.exceptions import DraftingStateError, InvalidInput, LegalFlowError, MalformedCompletion
from legalflow.models.client import Client, ContractCategory
from legalflow.models.drafting import (
    ContractGenerationRequest,
    DraftingState,
    GenerationResult,
    ValidationItem,
    ValidationReport,
)
from legalflow.models.style import MasterStyleProfile
from legalflow.services.llm_service import (
    Completion,
    CompletionGateway,
    get_completion_gateway,
    parse_or_default,
)
from legalflow.services.prompt_builder import (
    ContractPromptBuilder,
    PromptInputs,
    get_prompt_builder,
    select_template,
)
from legalflow.storage.base import (
    CategoryStore,
    ClientStore,
    StyleProfileStore,
    TrainingDocumentStore,
    UsageLogger,
)
from legalflow.storage.sql import (
    SqlCategoryStore,
    SqlClientStore,
    SqlStyleProfileStore,
    SqlTrainingDocumentStore,
    SqlUsageLogger,
    get_sql_database,
)

logger = structlog.get_logger(__name__)

MAX_DERIVED_CHECKLIST_ITEMS = 15
MAX_PREVIEW_SUMMARIES = 10


class ResolvedRequest(BaseModel):
    """A generation request with its client, category and style looked up."""

    model_config = ConfigDict(frozen=True)

    request: ContractGenerationRequest
    client: Client
    category: ContractCategory | None = None
    profile: MasterStyleProfile | None = None

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    def prompt_inputs(self, styled: bool, training_summaries: tuple[str, ...] = ()) -> PromptInputs:
        return PromptInputs(
            client=self.client,
            contract_type=self.request.contract_type.strip(),
            context=self.request.context,
            category_name=self.category_name,
            template=select_template(self.category),
            style_text=self.profile.style_instruction if styled and self.profile else None,
            training_summaries=training_summaries,
        )


def derived_checklist(profile: MasterStyleProfile) -> list[str]:
    """
    The assertions a styled draft is checked against.

    Simple and manual profiles carry no checklist; their instruction lines are
    used instead.
    """
    if profile.has_checklist:
        return list(profile.validation_checklist)
    lines = [line.strip().lstrip("-*•").strip() for line in profile.style_instruction.splitlines()]
    return [line for line in lines if line][:MAX_DERIVED_CHECKLIST_ITEMS]


class ContractGenerator:
    """
    Contract drafting operations.

    All operations share style resolution and the completion path; they
    differ only in prompt template:
    - preview(): outline and consistency check, nothing persisted
    - generate(): full draft plus validation report
    - generate_clause(): append one clause to existing content
    - refine(): objective-directed rewrite
    - improve(): clarity and style pass
    """

    def __init__(
        self,
        clients: ClientStore,
        categories: CategoryStore,
        profiles: StyleProfileStore,
        usage_logger: UsageLogger,
        gateway: CompletionGateway | None = None,
        prompt_builder: ContractPromptBuilder | None = None,
        documents: TrainingDocumentStore | None = None,
    ):
        self.clients = clients
        self.categories = categories
        self.profiles = profiles
        self.usage_logger = usage_logger
        self.documents = documents
        self._gateway = gateway
        self._prompt_builder = prompt_builder

    @property
    def gateway(self) -> CompletionGateway:
        if self._gateway is None:
            self._gateway = get_completion_gateway()
        return self._gateway

    @property
    def prompt_builder(self) -> ContractPromptBuilder:
        if self._prompt_builder is None:
            self._prompt_builder = get_prompt_builder()
        return self._prompt_builder

    # =========================================================================
    # Resolution
    # =========================================================================

    def _resolve(self, request: ContractGenerationRequest) -> ResolvedRequest:
        """Validate a request and look up everything its prompt needs."""
        if not request.contract_type or not request.contract_type.strip():
            raise InvalidInput("contract_type is required")
        if not request.tenant_id:
            raise InvalidInput("tenant_id is required")

        client = self.clients.get(request.tenant_id, request.client_id)
        if client is None:
            raise InvalidInput(f"Client {request.client_id} not found")

        category = self._category(request.tenant_id, request.category_id)
        profile = self._resolve_style(request.tenant_id, request.use_style)
        return ResolvedRequest(request=request, client=client, category=category, profile=profile)

    def _category(self, tenant_id: str, category_id: UUID | None) -> ContractCategory | None:
        if category_id is None:
            return None
        category = self.categories.get(tenant_id, category_id)
        if category is None:
            raise InvalidInput(f"Category {category_id} not found")
        return category

    def _resolve_style(self, tenant_id: str, use_style: bool) -> MasterStyleProfile | None:
        """The tenant's active profile, if style was requested and one is usable."""
        if not use_style:
            return None
        profile = self.profiles.get_active(tenant_id)
        if profile is None or not profile.style_instruction.strip():
            logger.info("no_style_profile", tenant_id=tenant_id)
            return None
        return profile

    def _training_summaries(self, tenant_id: str) -> tuple[str, ...]:
        """One line per training document that has a style summary, most recent first."""
        if self.documents is None:
            return ()
        summaries = []
        for document in reversed(self.documents.list_by_tenant(tenant_id)):
            if not document.style_summary:
                continue
            label = document.title or document.contract_type
            if document.tone_label:
                label = f"{label} ({document.tone_label})"
            summaries.append(f"{label}: {document.style_summary}")
        return tuple(summaries[:MAX_PREVIEW_SUMMARIES])

        return profile

    # =========================================================================
    # Completion and usage
    # =========================================================================

    def _complete(
        self,
        operation: str,
        prompt: str,
        tenant_id: str,
        user_id: str,
        timeout: float | None = None,
        json_mode: bool = False,
    ) -> Completion:
        completion = self.gateway.complete(prompt, timeout=timeout, json_mode=json_mode)
        self._record_usage(operation, completion, tenant_id, user_id)
        return completion

    def _record_usage(
        self,
        operation: str,
        completion: Completion,
        tenant_id: str,
        user_id: str,
    ) -> None:
        try:
            self.usage_logger.record(
                tenant_id=tenant_id,
                user_id=user_id,
                operation=operation,
                model=completion.model,
                input_tokens=completion.input_tokens,
                output_tokens=completion.output_tokens,
            )
        except Exception as e:  # accounting must never fail a draft
            logger.warning(
                "usage_logging_failed",
                operation=operation,
                tenant_id=tenant_id,
                error=str(e),
            )

    def _draft(
        self,
        operation: str,
        prompt: str,
        request: ContractGenerationRequest,
        timeout: float | None,
    ) -> Completion:
        completion = self._complete(
            operation, prompt, request.tenant_id, request.user_id, timeout=timeout
        )
        if not completion.text.strip():
            raise MalformedCompletion(f"{operation} returned an empty draft")
        return completion

    # =========================================================================
    # Preview and generation
    # =========================================================================

    def preview(self, request: ContractGenerationRequest, timeout: float | None = None) -> str:
        """Outline and consistency check of the request. Persists nothing."""
        resolved = self._resolve(request)
        summaries = self._training_summaries(request.tenant_id)
        prompt = self.prompt_builder.build_preview(
            resolved.prompt_inputs(styled=True, training_summaries=summaries)
        )
        completion = self._complete(
            "contract_preview", prompt, request.tenant_id, request.user_id, timeout=timeout
        )
        logger.info("contract_preview_generated", tenant_id=request.tenant_id)
        return completion.text

    def generate(
        self,
        request: ContractGenerationRequest,
        timeout: float | None = None,
    ) -> GenerationResult:
        """
        Generate the full draft.

        With an active profile the draft is generated styled and validated
        against the profile's checklist. If the styled call fails, generation
        is retried once without style and the result is marked degraded.
        Errors from unstyled generation propagate.
        """
        resolved = self._resolve(request)

        if resolved.profile is not None:
            prompt = self.prompt_builder.build(resolved.prompt_inputs(styled=True))
            try:
                completion = self._draft("generate_contract_styled", prompt, request, timeout)
            except LegalFlowError as e:
                logger.warning(
                    "styled_generation_failed",
                    tenant_id=request.tenant_id,
                    error=str(e),
                )
                result = self._generate_unstyled(resolved, timeout)
                return result.model_copy(update={"degraded": True, "fallback_reason": str(e)})

            report = self._validate(completion.text, resolved.profile, request, timeout)
            logger.info(
                "contract_generated",
                tenant_id=request.tenant_id,
                styled=True,
                passed=report.passed,
                failed=report.failed,
            )
            return GenerationResult(
                content=completion.text,
                model=completion.model,
                validation_report=report,
                styled=True,
            )

        return self._generate_unstyled(resolved, timeout)

    def _generate_unstyled(self, resolved: ResolvedRequest, timeout: float | None) -> GenerationResult:
        prompt = self.prompt_builder.build(resolved.prompt_inputs(styled=False))
        completion = self._draft("generate_contract", prompt, resolved.request, timeout)
        logger.info("contract_generated", tenant_id=resolved.request.tenant_id, styled=False)
        return GenerationResult(content=completion.text, model=completion.model, styled=False)

    def _validate(
        self,
        content: str,
        profile: MasterStyleProfile,
        request: ContractGenerationRequest,
        timeout: float | None,
    ) -> ValidationReport:
        """
        Check a styled draft against the profile. Never raises: a failed
        validation becomes a report with a single failed item.
        """
        checklist = derived_checklist(profile)
        prompt = self.prompt_builder.build_validation(content, checklist)
        try:
            completion = self._complete(
                "validate_style",
                prompt,
                request.tenant_id,
                request.user_id,
                timeout=timeout,
                json_mode=True,
            )
        except LegalFlowError as e:
            logger.warning("style_validation_failed", tenant_id=request.tenant_id, error=str(e))
            return self._failed_report(f"Style validation could not be run: {e}")

        raw: Any = parse_or_default(completion.text, {})
        lines = raw.get("validation_report")
        if not isinstance(lines, list) or not lines:
            logger.warning("style_validation_malformed", tenant_id=request.tenant_id)
            return self._failed_report("Style validation returned no usable report")
        return ValidationReport.from_lines([str(line) for line in lines])

    @staticmethod
    def _failed_report(reason: str) -> ValidationReport:
        return ValidationReport(items=[ValidationItem(passed=False, statement=reason)])

    # =========================================================================
    # Editing
    # =========================================================================

    def generate_clause(
        self,
        tenant_id: str,
        user_id: str,
        topic: str,
        existing_content: str = "",
        category_id: UUID | None = None,
        use_style: bool = True,
        timeout: float | None = None,
    ) -> str:
        """Generate one clause and return ``existing_content`` with it appended."""
        if not topic or not topic.strip():
            raise InvalidInput("topic is required")
        category = self._category(tenant_id, category_id)
        profile = self._resolve_style(tenant_id, use_style)

        prompt = self.prompt_builder.build_clause(
            topic.strip(),
            existing_content=existing_content,
            style_text=profile.style_instruction if profile else None,
            category_name=category.name if category else None,
        )
        clause = self._complete("generate_clause", prompt, tenant_id, user_id, timeout=timeout).text.strip()

        if not existing_content.strip():
            return clause
        return f"{existing_content.rstrip()}\n\n{clause}"

    def refine(
        self,
        tenant_id: str,
        user_id: str,
        text: str,
        objective: str | None = None,
        category_id: UUID | None = None,
        use_style: bool = True,
        timeout: float | None = None,
    ) -> str:
        """Rewrite the whole document towards ``objective``."""
        if not text or not text.strip():
            raise InvalidInput("text is required")
        category = self._category(tenant_id, category_id)
        profile = self._resolve_style(tenant_id, use_style)

        prompt = self.prompt_builder.build_refine(
            text,
            objective=objective,
            style_text=profile.style_instruction if profile else None,
            category_name=category.name if category else None,
        )
        return self._complete("refine_contract", prompt, tenant_id, user_id, timeout=timeout).text

    def improve(
        self,
        tenant_id: str,
        user_id: str,
        text: str,
        category_id: UUID | None = None,
        use_style: bool = True,
        timeout: float | None = None,
    ) -> str:
        """Clarity and style pass over an existing document."""
        if not text or not text.strip():
            raise InvalidInput("text is required")
        category = self._category(tenant_id, category_id)
        profile = self._resolve_style(tenant_id, use_style)

        prompt = self.prompt_builder.build_improve(
            text,
            style_text=profile.style_instruction if profile else None,
            category_name=category.name if category else None,
        )
        return self._complete("improve_contract", prompt, tenant_id, user_id, timeout=timeout).text


# =============================================================================
# Interactive drafting session
# =============================================================================

_TRANSITIONS: dict[DraftingState, set[DraftingState]] = {
    DraftingState.IDLE: {DraftingState.PREVIEWING},
    DraftingState.PREVIEWING: {
        DraftingState.PREVIEWING,
        DraftingState.CONFIRMED,
        DraftingState.CANCELLED,
    },
    DraftingState.CONFIRMED: {DraftingState.GENERATED, DraftingState.PREVIEWING},
    DraftingState.CANCELLED: {DraftingState.IDLE},
    DraftingState.GENERATED: set(),
}


class DraftingSession:
    """
    One preview-then-generate cycle.

    idle -> previewing -> (confirmed -> generated | cancelled -> idle)

    A failed generation returns the session to ``previewing`` so the user can
    retry.
    """

    def __init__(self, generator: ContractGenerator, request: ContractGenerationRequest):
        self.generator = generator
        self.request = request
        self.state = DraftingState.IDLE
        self.preview_text: str | None = None
        self.result: GenerationResult | None = None

    def _move(self, target: DraftingState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise DraftingStateError(
                f"Cannot go from {self.state.value} to {target.value}"
            )
        logger.debug("drafting_transition", source=self.state.value, target=target.value)
        self.state = target

    def preview(self, timeout: float | None = None) -> str:
        if DraftingState.PREVIEWING not in _TRANSITIONS[self.state]:
            raise DraftingStateError(f"Cannot preview from {self.state.value}")
        text = self.generator.preview(self.request, timeout=timeout)
        self._move(DraftingState.PREVIEWING)
        self.preview_text = text
        return text

    def confirm(self, timeout: float | None = None) -> GenerationResult:
        self._move(DraftingState.CONFIRMED)
        try:
            result = self.generator.generate(self.request, timeout=timeout)
        except LegalFlowError:
            self._move(DraftingState.PREVIEWING)
            raise
        self._move(DraftingState.GENERATED)
        self.result = result
        return result

    def cancel(self) -> None:
        self._move(DraftingState.CANCELLED)
        self.preview_text = None

    def reset(self) -> None:
        self._move(DraftingState.IDLE)


@lru_cache()
def get_contract_generator() -> ContractGenerator:
    """Get cached contract generator backed by the SQL stores."""
    db = get_sql_database()
    return ContractGenerator(
        clients=SqlClientStore(db),
        categories=SqlCategoryStore(db),
        profiles=SqlStyleProfileStore(db),
        usage_logger=SqlUsageLogger(db),
        documents=SqlTrainingDocumentStore(db),
    )
