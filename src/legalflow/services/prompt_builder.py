"""
Contract prompt construction.

Prompts are assembled in a fixed section order:

1. task header (judicial filing or contract)
2. firm style profile, verbatim, when one is supplied
3. client data, with a bracketed placeholder for every absent field
4. free-text context, verbatim
5. closing instructions

Downstream legal review relies on placeholders being visibly distinct from
real client data, so the client section never omits a field label and never
renders an empty value.
"""

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from legalflow.config import Settings, get_settings
from legalflow.models.client import Client, ContractCategory

DEFAULT_CATEGORY = "General"

JUDICIAL_SECTIONS = [
    "Heading (summary, purpose, standing of the parties)",
    "Purpose (clear and precise)",
    "Facts (ordered narrative)",
    "Legal grounds (statutes and case law)",
    "Evidence (offered, if applicable)",
    "Relief requested (clear, numbered points)",
    "Signature (placeholder)",
]


class PromptTemplate(str, Enum):
    """Structural template of a drafting prompt."""

    JUDICIAL = "judicial"
    CONTRACT = "contract"


def select_template(category: ContractCategory | None) -> PromptTemplate:
    """Judicial categories get the court-filing template; everything else is a contract."""
    if category is not None and category.is_judicial:
        return PromptTemplate.JUDICIAL
    return PromptTemplate.CONTRACT


class PromptInputs(BaseModel):
    """Everything a drafting prompt is built from."""

    model_config = ConfigDict(frozen=True)

    client: Client
    contract_type: str
    context: str = ""
    category_name: str | None = None
    template: PromptTemplate = PromptTemplate.CONTRACT
    style_text: str | None = None
    training_summaries: tuple[str, ...] = ()

    @property
    def category_label(self) -> str:
        return self.category_name or DEFAULT_CATEGORY

    @property
    def has_style(self) -> bool:
        return bool(self.style_text and self.style_text.strip())


class ContractPromptBuilder:
    """
    Builds prompts for preview, generation, validation and editing.

    Pure string assembly: identical inputs always produce identical prompts.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def placeholder(self) -> str:
        return self.settings.missing_field_placeholder

    # =========================================================================
    # Generation
    # =========================================================================

    def build(self, inputs: PromptInputs) -> str:
        """Build the full generation prompt."""
        if inputs.template == PromptTemplate.JUDICIAL:
            header = self._judicial_header(inputs)
        else:
            header = self._contract_header(inputs)

        sections = [self._preamble(), header]
        if inputs.has_style:
            sections.append(self._style_section(inputs.style_text))
        sections.append(self._client_section(inputs.client))
        sections.append(f"CONTEXT:\n{inputs.context}")
        sections.append(self._closing_instructions(inputs))
        return "\n\n".join(sections) + "\n"

    def build_preview(self, inputs: PromptInputs) -> str:
        """
        Build the preview prompt: an outline and consistency check of the
        request, not the document itself.
        """
        kind = (
            "JUDICIAL FILING" if inputs.template == PromptTemplate.JUDICIAL else "CONTRACT"
        )
        sections = [
            f"You are {self.settings.assistant_name}. Before generating the {kind}, "
            "analyze all inputs and produce a preview summary.",
            f"TYPE: {inputs.contract_type}\nCATEGORY: {inputs.category_label}",
        ]
        if inputs.template == PromptTemplate.JUDICIAL:
            sections.append(
                "MODE: judicial filing. The structure must follow local procedural rules: "
                + "; ".join(JUDICIAL_SECTIONS)
                + "."
            )
        if inputs.has_style:
            sections.append(self._style_section(inputs.style_text))
        sections.append(self._client_section(inputs.client))
        sections.append(f"CONTEXT:\n{inputs.context}")
        if inputs.training_summaries:
            sections.append(
                "TRAINING DOCUMENTS (firm style reference):\n"
                + "\n".join(f"- {summary}" for summary in inputs.training_summaries)
            )
        sections.append(
            "TASKS:\n"
            "1. Summarize the information that will be used.\n"
            "2. Identify inconsistencies and missing fields "
            f"(fields shown as {self.placeholder} are missing).\n"
            f"3. Analyze whether the request aligns with the category: {inputs.category_label}.\n"
            "4. Provide an outline of the document structure.\n\n"
            "Format the output with these headers:\n"
            "## Summary\n"
            "## Detected Issues\n"
            f"## Category Alignment ({inputs.category_label})\n"
            "## Structure Preview\n\n"
            f"Write in {self.settings.drafting_language}."
        )
        return "\n\n".join(sections) + "\n"

    def _preamble(self) -> str:
        return (
            f"You are {self.settings.assistant_name}, specialized in "
            f"{self.settings.jurisdiction} legal drafting."
        )

    def _judicial_header(self, inputs: PromptInputs) -> str:
        lines = [
            "TASK: Generate a FORMAL JUDICIAL FILING",
            f"TYPE: {inputs.contract_type}",
            f"CATEGORY: {inputs.category_label}",
            "",
            "Mandatory structure:",
        ]
        lines.extend(f"- {section}" for section in JUDICIAL_SECTIONS)
        lines.append("")
        lines.append('Tone must be respectful to the court ("V.S.", "Su Señoría").')
        return "\n".join(lines)

    def _contract_header(self, inputs: PromptInputs) -> str:
        return "\n".join([
            "TASK: Generate a LEGAL CONTRACT",
            f"TYPE: {inputs.contract_type}",
            f"CATEGORY: {inputs.category_label}",
        ])

    def _style_section(self, style_text: str) -> str:
        return f"FIRM STYLE PROFILE (MANDATORY):\n{style_text}"

    def _client_section(self, client: Client) -> str:
        value = self._value
        lines = [
            "CLIENT DATA (MANDATORY):",
            f"Full name: {value(client.full_name)}",
            f"Type: {client.client_type.value}",
            f"Document: {value(client.document_type)} {value(client.document_number)}",
            f"Address: {value(client.address)}",
            f"City: {value(client.city)}",
            f"Zip code: {value(client.zip_code)}",
        ]
        if client.is_organization or client.legal_representative or client.representative_id:
            lines.append(f"Legal representative: {value(client.legal_representative)}")
            lines.append(f"Representative ID: {value(client.representative_id)}")
        return "\n".join(lines)

    def _value(self, field: str | None) -> str:
        if field is None or not str(field).strip():
            return self.placeholder
        return str(field).strip()

    def _closing_instructions(self, inputs: PromptInputs) -> str:
        style_rule = (
            "Follow the FIRM STYLE PROFILE above in structure, tone and clause wording."
            if inputs.has_style
            else f"Use standard {self.settings.jurisdiction} legal drafting conventions."
        )
        if inputs.template == PromptTemplate.JUDICIAL:
            kind_rule = "Keep every mandatory section of the judicial filing, in order."
        else:
            kind_rule = (
                f"Use standard clauses for the category {inputs.category_label}, "
                "with clear definitions and liability clauses."
            )
        return "\n".join([
            "INSTRUCTIONS:",
            f"1. Adapt wording, tone, clauses and structure to the legal category: {inputs.category_label}.",
            f"2. {style_rule}",
            f"3. {kind_rule}",
            "4. STRICT DATA RULE: use only the client data above. Never invent client data; "
            f"write {self.placeholder} wherever a value is missing.",
            f"5. Write in {self.settings.drafting_language}.",
            "6. Return ONLY the final legal text, with no explanations.",
        ])

    # =========================================================================
    # Validation and editing
    # =========================================================================

    def build_validation(self, content: str, checklist: list[str]) -> str:
        """Ask the model to check a draft against the firm's checklist."""
        items = "\n".join(f"- {item}" for item in checklist)
        return f"""You are {self.settings.assistant_name}, a legal style reviewer. Check the draft below against each assertion of the firm's style checklist.

CHECKLIST:
{items}

DRAFT:
{content}

Return JSON: {{"validation_report": ["✓ assertion that holds", "✗ assertion that fails, with the reason"]}}
Use exactly one line per checklist assertion, in the same order, each starting with ✓ or ✗."""

    def build_clause(
        self,
        topic: str,
        existing_content: str = "",
        style_text: str | None = None,
        category_name: str | None = None,
    ) -> str:
        """Prompt for one new clause that continues an existing document."""
        sections = [f"You are {self.settings.assistant_name}. Generate a single legal clause."]
        if style_text:
            sections.append(self._style_section(style_text))
        sections.append(f"CATEGORY: {category_name or DEFAULT_CATEGORY}\nTOPIC: {topic}")
        if existing_content:
            sections.append(
                "EXISTING DOCUMENT (continue its numbering and terminology):\n"
                f"{existing_content}"
            )
        sections.append(
            f"Adapt the wording to the legal category {category_name or DEFAULT_CATEGORY}. "
            f"Write in {self.settings.drafting_language}. Return only the clause text."
        )
        return "\n\n".join(sections) + "\n"

    def build_refine(
        self,
        text: str,
        objective: str | None = None,
        style_text: str | None = None,
        category_name: str | None = None,
    ) -> str:
        """Prompt for an objective-directed rewrite of a whole document."""
        sections = [f"You are {self.settings.assistant_name}. Rewrite or refine the following text."]
        if style_text:
            sections.append(f"STYLE PROFILE (MUST FOLLOW):\n{style_text}")
        else:
            sections.append("STYLE: professional legal standard.")
        if category_name:
            sections.append(f"LEGAL CATEGORY: {category_name}")
        sections.append(
            "USER OBJECTIVE:\n" + (objective or "Improve clarity and legal robustness.")
        )
        sections.append(f"TEXT:\n{text}")
        sections.append(
            f"Keep every {self.placeholder} placeholder as is. Return ONLY the rewritten text."
        )
        return "\n\n".join(sections) + "\n"

    def build_improve(
        self,
        text: str,
        style_text: str | None = None,
        category_name: str | None = None,
    ) -> str:
        """Prompt for a clarity and style pass that keeps the document's identity."""
        goal = (
            "while preserving the law firm's writing identity"
            if style_text
            else "for clarity and legal robustness"
        )
        sections = [f"You are {self.settings.assistant_name}. Improve the following legal text {goal}."]
        if style_text:
            sections.append(f"FIRM STYLE PROFILE:\n{style_text}")
        if category_name:
            sections.append(f"LEGAL CATEGORY: {category_name}")
        sections.append(f"TEXT TO IMPROVE:\n{text}")
        sections.append(
            "INSTRUCTIONS:\n"
            f"1. Adapt wording, tone and clauses to the legal category: {category_name or DEFAULT_CATEGORY}.\n"
            "2. Maintain tone, formality, formatting and clause structure.\n"
            f"3. Keep every {self.placeholder} placeholder as is.\n\n"
            "Return only the improved text."
        )
        return "\n\n".join(sections) + "\n"


@lru_cache()
def get_prompt_builder() -> ContractPromptBuilder:
    """Get cached prompt builder instance."""
    return ContractPromptBuilder()
