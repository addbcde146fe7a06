"""
Master style profile synthesis.

Reconciles per-document deep analyses into one canonical, editable style
instruction with a validation checklist and worked examples. Also builds the
lower-fidelity single-pass profile used when structured synthesis fails, and
manual profiles typed in by firm staff.
"""

import json
from functools import lru_cache
from typing import Any, Iterable

import structlog
from pydantic import ValidationError

from legalflow.config import get_settings
from legalflow.exceptions import InvalidInput, MalformedCompletion
from legalflow.models.style import DeepStyleAnalysis, MasterStyleProfile, ProfileSource
from legalflow.services.llm_service import CompletionGateway, get_completion_gateway

logger = structlog.get_logger(__name__)

SYNTHESIS_TEMPERATURE = 0.2
SIMPLE_PROFILE_CHARS_PER_DOCUMENT = 4000
DOCUMENT_SEPARATOR = "\n\n---\n\n"


def manual_profile(style_text: str, tenant_id: str | None = None) -> MasterStyleProfile:
    """A profile written by a human: complete by definition."""
    if not style_text or not style_text.strip():
        raise InvalidInput("style_text is required for a manual profile")
    return MasterStyleProfile(
        tenant_id=tenant_id,
        style_instruction=style_text.strip(),
        completeness_score=100,
        missing_elements=[],
        suggestions=[],
        source=ProfileSource.MANUAL,
    )


def degenerate_profile() -> MasterStyleProfile:
    """Profile for an empty corpus. Generation still works with it."""
    return MasterStyleProfile(
        style_instruction="",
        completeness_score=0,
        missing_elements=["No analyzed documents"],
        suggestions=["Upload representative contracts and judicial filings"],
        source=ProfileSource.DEGENERATE,
    )


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value and value.strip():
            seen.setdefault(value.strip(), None)
    return list(seen)


class ProfileSynthesizer:
    """
    Builds master style profiles.

    - synthesize(): structured path over DeepStyleAnalysis records
    - build_simple_profile(): single pass over raw texts (fallback)
    """

    def __init__(self, gateway: CompletionGateway | None = None):
        self.settings = get_settings()
        self._gateway = gateway

    @property
    def gateway(self) -> CompletionGateway:
        if self._gateway is None:
            self._gateway = get_completion_gateway()
        return self._gateway

    # =========================================================================
    # Structured synthesis
    # =========================================================================

    def synthesize(
        self,
        analyses: list[DeepStyleAnalysis],
        categories: Iterable[str] = (),
        timeout: float | None = None,
    ) -> MasterStyleProfile:
        """
        Reconcile deep analyses into one master profile.

        With no analyses a degenerate profile is returned without calling the
        model. Raises MalformedCompletion when the model output is unusable.
        """
        category_list = _dedupe(categories)

        if not analyses:
            logger.info("synthesis_skipped_empty_corpus")
            return degenerate_profile()

        payload = [
            a.model_dump(mode="json", exclude_none=True) for a in analyses
        ]
        prompt = f"""You are an expert in {self.settings.jurisdiction} legal drafting. From the analyses of {len(analyses)} documents, write a COMPLETE STYLE MANUAL for this law firm.

=== INDIVIDUAL ANALYSES ===
{json.dumps(payload, ensure_ascii=False, indent=2)}

=== CATEGORIES PRESENT ===
{', '.join(category_list) or 'General'}

=== YOUR TASK ===
1. Reconcile conflicting signals across documents by majority or most representative pattern. Do NOT concatenate the analyses.
2. Write a "style_instruction" that a drafting model can follow verbatim. It must cover:
   - Structure rules (numbering, headings, preamble with an example)
   - Tone rules (formality, voice, person, archaisms)
   - Jurisdiction vocabulary (addressing the court, statute citations, vos/usted)
   - Model clauses (confidentiality, liability, disputes, termination)
   - Judicial filings (structure and formulas) when applicable
3. Write a "validation_checklist" of 10 to 15 concrete, checkable assertions (e.g. "Uses third-person impersonal voice", "Confidentiality clause present with indemnity language").
4. Select or compose three canonical examples: preamble, clause structure, signature block.
5. Score "completeness_score" from 0 to 100 by how much reliable signal the corpus provided, and list what is missing.

Write everything in {self.settings.drafting_language}.

RETURN JSON:
{{
  "style_instruction": "COMPLETE INSTRUCTION",
  "validation_checklist": ["assertion 1", "assertion 2"],
  "examples": {{
    "good_preamble": "literal example",
    "good_clause_structure": "literal example",
    "signature_block": "literal example"
  }},
  "completeness_score": 0,
  "missing_elements": ["element 1"],
  "suggestions": ["suggestion 1"]
}}"""

        raw = self.gateway.generate_json(
            prompt, None, temperature=SYNTHESIS_TEMPERATURE, timeout=timeout
        )
        profile = self._to_profile(raw, ProfileSource.SYNTHESIZED, "style_instruction")

        logger.info(
            "master_profile_synthesized",
            analyses=len(analyses),
            categories=len(category_list),
            checklist_items=len(profile.validation_checklist),
            completeness=profile.completeness_score,
        )
        return profile

    # =========================================================================
    # Single-pass fallback
    # =========================================================================

    def build_simple_profile(
        self,
        texts: list[str],
        timeout: float | None = None,
    ) -> MasterStyleProfile:
        """
        Build a profile directly from raw document texts.

        Lower fidelity than synthesize(): no checklist, no examples. Either
        returns a usable profile or raises a LegalFlowError.
        """
        texts = [t for t in texts if t and t.strip()]
        if not texts:
            raise InvalidInput("At least one non-empty document text is required")

        all_text = DOCUMENT_SEPARATOR.join(t[:SIMPLE_PROFILE_CHARS_PER_DOCUMENT] for t in texts)

        prompt = f"""You are {self.settings.assistant_name}. Analyze the following legal documents to build the firm's drafting profile ("Style DNA").

The goal is to capture the firm's exact voice so future contracts read as if the firm had written them.

Focus on:
1. Tone and rhythm: aggressive, defensive, conciliatory; long or short sentences.
2. Vocabulary: legal archaisms vs. modern language.
3. Clause structure: headings, capitalization, bold, numbering (1.1 vs. "Primero").
4. Liability and risk: exemptions, indemnity, caps.
5. Subject-matter particulars (family law, litigation, etc.).

Write the profile in {self.settings.drafting_language}.

Documents:
{all_text}

RETURN JSON:
{{
  "style_text": "Detailed, editable profile of the firm's style.",
  "completeness_score": number,
  "missing_elements": ["string"],
  "suggestions": ["string"]
}}"""

        raw = self.gateway.generate_json(prompt, None, timeout=timeout)
        profile = self._to_profile(raw, ProfileSource.SIMPLE, "style_text")

        logger.info(
            "simple_profile_built",
            documents=len(texts),
            completeness=profile.completeness_score,
        )
        return profile

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _to_profile(raw: Any, source: ProfileSource, instruction_key: str) -> MasterStyleProfile:
        if not isinstance(raw, dict):
            raise MalformedCompletion("Profile synthesis did not return a JSON object")

        instruction = raw.get(instruction_key) or raw.get("style_instruction") or raw.get("style_text")
        if not isinstance(instruction, str) or not instruction.strip():
            raise MalformedCompletion(f"Profile synthesis returned an empty {instruction_key}")

        data = {
            "style_instruction": instruction.strip(),
            "completeness_score": raw.get("completeness_score", 0),
            "missing_elements": raw.get("missing_elements") or [],
            "suggestions": raw.get("suggestions") or [],
            "source": source,
        }
        if source == ProfileSource.SYNTHESIZED:
            data["validation_checklist"] = raw.get("validation_checklist") or []
            if isinstance(raw.get("examples"), dict):
                data["examples"] = {
                    k: v for k, v in raw["examples"].items() if isinstance(v, str)
                }

        try:
            return MasterStyleProfile.model_validate(data)
        except ValidationError as e:
            raise MalformedCompletion(f"Profile synthesis output failed validation: {e}") from e


@lru_cache()
def get_profile_synthesizer() -> ProfileSynthesizer:
    """Get cached profile synthesizer instance."""
    return ProfileSynthesizer()
