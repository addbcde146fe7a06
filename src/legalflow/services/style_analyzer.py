"""
Per-document style analysis.

Two analyzers share the completion gateway:

- the single-document analyzer, a best-effort tone label plus one-line summary
  computed on upload (never fails the upload);
- the deep analyzer, a structured multi-axis profile that feeds master
  profile synthesis (fails loudly, since its output is load-bearing).
"""

from functools import lru_cache

import structlog
from pydantic import ValidationError

from legalflow.config import get_settings
from legalflow.exceptions import (
    IncompleteAnalysis,
    InvalidInput,
    LegalFlowError,
    MalformedCompletion,
)
from legalflow.models.document import StyleSummary
from legalflow.models.style import DeepStyleAnalysis
from legalflow.pipeline.sampling import extract_strategic_samples, format_samples
from legalflow.services.llm_service import CompletionGateway, get_completion_gateway

logger = structlog.get_logger(__name__)

SINGLE_EXCERPT_CHARS = 5000
DEEP_ANALYSIS_TEMPERATURE = 0.3

FALLBACK_TONE = "Unknown"
FALLBACK_SUMMARY = "Analysis failed."


def fallback_summary() -> StyleSummary:
    return StyleSummary(tone=FALLBACK_TONE, summary=FALLBACK_SUMMARY)


class StyleAnalyzer:
    """
    Style analysis of individual training documents.

    Produces:
    - StyleSummary (tone + one-liner) for document listings
    - DeepStyleAnalysis (structure, tone, clause habits, jurisdiction style)
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
    # Single-document analysis
    # =========================================================================

    def analyze_single(self, text: str, timeout: float | None = None) -> StyleSummary:
        """
        Classify the tone of one document and summarize its style in one line.

        Model failures (malformed output, upstream errors, timeouts) return the
        fixed fallback instead of raising.
        """
        if not text or not text.strip():
            raise InvalidInput("text is required")

        prompt = f"""You are {self.settings.assistant_name}. Analyze the drafting style of the following legal document.

Document excerpt:
{text[:SINGLE_EXCERPT_CHARS]}

Tasks:
1. Identify the specific TONE (for example: "Formal and Strict", "Modern and Direct", "Protective", "Archaic"). Return a short label.
2. Write one short sentence (a single line) summarizing the style patterns you found.

Write both values in {self.settings.drafting_language}.

Return JSON: {{"tone": "string", "summary": "string"}}"""

        fallback = fallback_summary()
        try:
            result = self.gateway.generate_json(prompt, fallback, timeout=timeout)
        except LegalFlowError as e:
            logger.warning("single_style_analysis_failed", error=str(e))
            return fallback

        logger.info("single_style_analyzed", tone=result.tone, fallback=result is fallback)
        return result

    # =========================================================================
    # Deep analysis
    # =========================================================================

    def analyze_deep(
        self,
        full_text: str,
        document_type: str,
        category: str | None = None,
        timeout: float | None = None,
    ) -> DeepStyleAnalysis:
        """
        Build the structured stylistic profile of one document.

        Raises:
            InvalidInput: empty text or document type (before any call).
            MalformedCompletion: the model output is not a JSON object.
            IncompleteAnalysis: ``structure`` or ``tone`` is missing.
            UpstreamUnavailable: the completion service failed.
        """
        if not full_text or not full_text.strip():
            raise InvalidInput("full_text is required for deep analysis")
        if not document_type or not document_type.strip():
            raise InvalidInput("document_type is required for deep analysis")

        samples = extract_strategic_samples(full_text)
        prompt = self._deep_prompt(document_type, category, format_samples(samples))

        raw = self.gateway.generate_json(
            prompt, None, temperature=DEEP_ANALYSIS_TEMPERATURE, timeout=timeout
        )
        if not isinstance(raw, dict):
            raise MalformedCompletion(
                f"Deep analysis of '{document_type}' did not return a JSON object"
            )

        try:
            analysis = DeepStyleAnalysis.model_validate(raw)
        except ValidationError as e:
            raise MalformedCompletion(f"Deep analysis output failed validation: {e}") from e

        if not analysis.is_usable:
            missing = analysis.missing_required
            raise IncompleteAnalysis(
                f"Deep analysis of '{document_type}' is missing required fields: "
                f"{', '.join(missing)}",
                missing=missing,
            )

        analysis = analysis.model_copy(
            update={"document_type": document_type, "category": category}
        )
        logger.info(
            "deep_style_analyzed",
            document_type=document_type,
            category=category,
            samples=len(samples),
        )
        return analysis

    def _deep_prompt(self, document_type: str, category: str | None, samples: str) -> str:
        return f"""You are an expert in {self.settings.jurisdiction} legal drafting. Analyze this document in depth.

DOCUMENT TYPE: {document_type}
CATEGORY: {category or 'General'}

=== STRATEGIC SAMPLES ===
{samples}

=== INSTRUCTIONS ===
Analyze the following aspects WITH CONCRETE EXAMPLES from the text:

1. FORMAL STRUCTURE:
   - Exact clause numbering convention
   - Heading style (upper case, bold, title case)
   - Preamble (if any) and its format
   - Signature block format

2. TONE AND VOICE:
   - Formality level
   - Voice (passive/active/mixed) with an example
   - Grammatical person
   - Archaisms used

3. JURISDICTION-SPECIFIC VOCABULARY:
   - Forms of address to the court (e.g. "V.S.", "Su Señoría")
   - How statutes are cited (examples)
   - Formal register (vos/usted)

4. SIGNATURE CLAUSES:
   - Confidentiality (literal excerpt)
   - Limitation of liability (literal excerpt)
   - Dispute resolution (literal excerpt)
   - Termination (literal excerpt)

5. FOR JUDICIAL FILINGS:
   - Heading/Purpose/Facts/Legal grounds/Relief structure
   - Formulas used to address the court
   - Style of legal reasoning

Return JSON with this structure, quoting the text literally where possible:
{{
  "structure": {{
    "has_preamble": boolean,
    "clause_numbering_style": "string",
    "section_headers_style": "string",
    "signature_block_format": "string"
  }},
  "tone": {{
    "formality_level": "muy_formal" | "formal" | "neutral" | "moderno",
    "use_of_archaisms": ["string"],
    "voice": "passive" | "active" | "mixed",
    "person": "first_plural" | "third_person" | "impersonal"
  }},
  "signature_clauses": {{
    "confidentiality_approach": "string",
    "liability_limitation_style": "string",
    "dispute_resolution_preference": "string",
    "termination_clause_pattern": "string"
  }},
  "jurisdiction_style": {{
    "formal_register": "vos" | "usted" | "mixed",
    "judicial_formulas": ["string"],
    "citation_style": "string",
    "procedural_structure": boolean
  }},
  "examples": {{
    "preamble": "string",
    "confidentiality_clause": "string",
    "liability_clause": "string",
    "dispute_clause": "string",
    "termination_clause": "string",
    "signature_block": "string"
  }}
}}"""


@lru_cache()
def get_style_analyzer() -> StyleAnalyzer:
    """Get cached style analyzer instance."""
    return StyleAnalyzer()
