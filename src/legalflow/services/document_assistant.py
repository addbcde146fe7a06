"""
Document assistant service.

AI helpers around individual legal documents:
- Text extraction from scanned or binary documents
- Cleaning, rewriting and title detection
- Auto-categorization and tagging (best effort)
- Structured contract analysis, Q&A and clause explanation
- Client strategy and suggested documents
- Version comparison
"""

import difflib
from functools import lru_cache
from typing import Sequence

import structlog

from legalflow.config import get_settings
from legalflow.exceptions import InvalidInput, LegalFlowError
from legalflow.models.analysis import ContractAnalysis
from legalflow.services.llm_service import (
    CompletionGateway,
    ContentPart,
    get_completion_gateway,
)

logger = structlog.get_logger(__name__)

UNTITLED_DOCUMENT = "Untitled document"
OTHER_CATEGORY = "Other"
NO_DIFFERENCES = "No differences detected."
MAX_TAGS = 8
MAX_SUGGESTIONS = 3

CLEAN_TEXT_CHARS = 30000
REWRITE_TEXT_CHARS = 20000
DIFF_TEXT_CHARS = 10000
EXCERPT_CHARS = 2000
TITLE_EXCERPT_CHARS = 1000

CATEGORY_KEYWORDS = {
    "Juicios": "juicios, demandas, procesos judiciales, escritos judiciales",
    "Derecho de Familia": "familia, régimen de comunicación, tenencia, guarda, responsabilidad parental",
    "Divorcios": "divorcio, separación, convenio regulador, disolución matrimonial",
    "Alimentos": "cuota alimentaria, alimentos, manutención, obligación alimentaria",
    "Sucesiones": "sucesión, herencia, bienes hereditarios, declaratoria, testamento",
}


def _required(value: str | None, name: str) -> str:
    if not value or not value.strip():
        raise InvalidInput(f"{name} is required")
    return value


class DocumentAssistant:
    """
    Single-document AI operations sharing the completion gateway.

    Best-effort helpers (categorization, tagging, title detection) return a
    safe default instead of raising; the rest propagate gateway errors.
    """

    def __init__(self, gateway: CompletionGateway | None = None):
        self.settings = get_settings()
        self._gateway = gateway

    @property
    def gateway(self) -> CompletionGateway:
        if self._gateway is None:
            self._gateway = get_completion_gateway()
        return self._gateway

    @property
    def name(self) -> str:
        return self.settings.assistant_name

    # =========================================================================
    # Text preparation
    # =========================================================================

    def extract_text(self, parts: Sequence[ContentPart]) -> str:
        """Extract the verbatim text of a scanned or binary document."""
        if not parts:
            raise InvalidInput("At least one document part is required")
        prompt = "Extract all the text of this document verbatim, preserving its structure where possible."
        text = self.gateway.generate_from_parts(parts, prompt)
        logger.info("document_text_extracted", parts=len(parts), chars=len(text))
        return text

    def clean_text(self, raw_text: str) -> str:
        """Fix broken line breaks, drop page furniture and standardize structure."""
        _required(raw_text, "raw_text")
        prompt = f"""You are {self.name}. Clean and reconstruct the following legal document text.

Tasks:
1. Fix broken line breaks.
2. Remove page numbers, headers and footers.
3. Standardize the structure.

Return ONLY the cleaned document text.

Text:
{raw_text[:CLEAN_TEXT_CHARS]}"""
        return self.gateway.generate_text(prompt) or raw_text

    def rewrite(
        self,
        text: str,
        style: str | None = None,
        objective: str | None = None,
    ) -> str:
        """Rewrite a document, optionally following the firm's style."""
        _required(text, "text")
        style_section = (
            f"STYLE GUIDELINES (use the firm's Style DNA):\n{style}"
            if style
            else "STYLE: professional legal standard."
        )
        objective_section = (
            f"USER OBJECTIVE:\n{objective}" if objective else "OBJECTIVE: clean up and normalize the text."
        )
        prompt = f"""You are {self.name}. Rewrite the following legal document text.

{style_section}
{objective_section}

DOCUMENT TEXT:
{text[:REWRITE_TEXT_CHARS]}

Return ONLY the rewritten text."""
        return self.gateway.generate_text(prompt)

    def detect_title(self, text: str) -> str:
        """Infer a professional title. Falls back to a fixed title."""
        _required(text, "text")
        prompt = f"""You are {self.name}. Infer a professional title for this legal document.

Document start:
{text[:TITLE_EXCERPT_CHARS]}

Return ONLY the title."""
        try:
            title = self.gateway.generate_text(prompt)
        except LegalFlowError as e:
            logger.warning("title_detection_failed", error=str(e))
            return UNTITLED_DOCUMENT
        title = title.replace('"', "").strip()
        return title.splitlines()[0].strip() if title else UNTITLED_DOCUMENT

    # =========================================================================
    # Organization (best effort)
    # =========================================================================

    def auto_categorize(self, text: str, categories: list[str]) -> str:
        """
        Pick one of ``categories`` for the document.

        Returns "Other" when the model fails or answers with anything that is
        not one of the given categories.
        """
        _required(text, "text")
        if not categories:
            return OTHER_CATEGORY

        keywords = "\n".join(
            f"- {name}: {words}" for name, words in CATEGORY_KEYWORDS.items()
        )
        prompt = f"""You are {self.name}. Classify the document into one of the available categories.

Categories: {', '.join(categories)}

KEYWORDS TO CHECK:
{keywords}

Excerpt:
{text[:EXCERPT_CHARS]}...

Instructions:
1. Detect keywords.
2. Choose the most appropriate category.
3. Return ONLY the category name."""
        try:
            answer = self.gateway.generate_text(prompt)
        except LegalFlowError as e:
            logger.warning("auto_categorize_failed", error=str(e))
            return OTHER_CATEGORY

        answer = answer.replace('"', "").strip().lower()
        for category in categories:
            if category.lower() == answer:
                return category
        logger.debug("auto_categorize_no_match", answer=answer[:100])
        return OTHER_CATEGORY

    def auto_tag(self, text: str) -> list[str]:
        """Between 3 and 8 relevant tags; empty when the model fails."""
        _required(text, "text")
        prompt = f"""You are {self.name}. Suggest between 3 and {MAX_TAGS} relevant tags for this document.

Document:
{text[:EXCERPT_CHARS]}...

Return ONLY a comma-separated list."""
        try:
            answer = self.gateway.generate_text(prompt)
        except LegalFlowError as e:
            logger.warning("auto_tag_failed", error=str(e))
            return []

        tags: list[str] = []
        for tag in answer.split(","):
            tag = tag.strip().strip('"').strip()
            if tag and tag not in tags:
                tags.append(tag)
        return tags[:MAX_TAGS]

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze_contract(self, text: str, category: str | None = None) -> ContractAnalysis:
        """Structured summary, clauses, obligations, risks and gaps of a contract."""
        _required(text, "text")
        prompt = f"""You are {self.name}. Analyze the following contract or judicial filing and produce a structured summary.

Legal category: {category or 'General'}

Document:
{text}

TASKS:
1) Executive summary
2) Key clauses
3) Obligations
4) Risks
5) Missing clauses for the category {category or 'General'}

Write the values in {self.settings.drafting_language}.

Return ONLY a JSON object with this structure:
{{
  "summary": "string",
  "key_clauses": [{{"title": "string", "content": "string", "type": "standard" | "unusual"}}],
  "risks": [{{"severity": "High" | "Medium" | "Low", "description": "string", "clause_ref": "string"}}],
  "obligations": [{{"party": "Client" | "Counterparty" | "Both", "description": "string"}}],
  "missing_clauses": [{{"name": "string", "reason": "string"}}],
  "recommended_changes": "string",
  "highlighted_variables": [{{"label": "string", "value": "string"}}]
}}"""
        fallback = ContractAnalysis(summary="Analysis failed.")
        analysis = self.gateway.generate_json(prompt, fallback)
        logger.info(
            "contract_analyzed",
            key_clauses=len(analysis.key_clauses),
            risks=len(analysis.risks),
            fallback=analysis is fallback,
        )
        return analysis

    def ask(self, text: str, question: str) -> str:
        """Answer a question strictly from the contract text."""
        _required(text, "text")
        _required(question, "question")
        prompt = f"""You are {self.name}. Answer the following question strictly based on the contract text provided. If the text does not answer it, say so.

Question: {question}

Contract:
{text}"""
        return self.gateway.generate_text(prompt)

    def explain_clause(self, clause_text: str) -> str:
        """Explain a clause in plain language."""
        _required(clause_text, "clause_text")
        prompt = f"""You are {self.name}. Explain the following legal clause in plain language, in {self.settings.drafting_language}.

Clause:
{clause_text}"""
        return self.gateway.generate_text(prompt)

    # =========================================================================
    # Client strategy
    # =========================================================================

    def client_strategy(self, client_name: str, history: str) -> str:
        """Next steps, risks and suggested documents from a client's history."""
        _required(client_name, "client_name")
        _required(history, "history")
        prompt = f"""You are {self.name}, a strategic legal assistant. Analyze the history of the client "{client_name}" and suggest the next steps.

History:
{history}

Return a brief summary with risks, suggested contracts or filings, and follow-up tasks. Write in {self.settings.drafting_language}."""
        return self.gateway.generate_text(prompt)

    def suggest_contracts(self, client_name: str, history: str) -> list[str]:
        """Titles of contracts or judicial filings worth drafting next for a client."""
        _required(client_name, "client_name")
        _required(history, "history")
        prompt = f"""You are {self.name}. Based on the client's history, suggest {MAX_SUGGESTIONS} contracts or judicial filings to draft.

Client: {client_name}
History: {history}

Return ONLY a bulleted list of {MAX_SUGGESTIONS} titles."""
        answer = self.gateway.generate_text(prompt)

        titles: list[str] = []
        for line in answer.splitlines():
            title = line.strip().lstrip("-*•0123456789.) ").strip().strip('"').strip()
            if title and title not in titles:
                titles.append(title)
        logger.info("contracts_suggested", client=client_name, count=len(titles[:MAX_SUGGESTIONS]))
        return titles[:MAX_SUGGESTIONS]

    def diff_versions(self, old_version: str, new_version: str) -> str:
        """
        Summarize the differences between two versions of a document.

        Identical versions are answered locally without a model call.
        """
        _required(old_version, "old_version")
        _required(new_version, "new_version")
        if old_version.strip() == new_version.strip():
            return NO_DIFFERENCES

        diff = "\n".join(
            difflib.unified_diff(
                old_version[:DIFF_TEXT_CHARS].splitlines(),
                new_version[:DIFF_TEXT_CHARS].splitlines(),
                fromfile="old",
                tofile="new",
                lineterm="",
            )
        )
        prompt = f"""You are {self.name}. Compare two versions of a legal document and explain the differences.

Unified diff:
{diff}

Return a concise summary of the differences and their legal effect."""
        return self.gateway.generate_text(prompt)


@lru_cache()
def get_document_assistant() -> DocumentAssistant:
    """Get cached document assistant instance."""
    return DocumentAssistant()
