"""Tests for legalflow/services/prompt_builder.py: section order, placeholders, determinism."""

import pytest

from legalflow.config import Settings
from legalflow.models.client import Client, ClientType
from legalflow.services.prompt_builder import (
    ContractPromptBuilder,
    PromptInputs,
    PromptTemplate,
    select_template,
)

PLACEHOLDER = "[MISSING_FIELD]"


@pytest.fixture
def builder(test_settings):
    return ContractPromptBuilder(test_settings)


def inputs(client, **overrides):
    data = {
        "client": client,
        "contract_type": "Acuerdo de Confidencialidad",
        "context": "Intercambio de información técnica por 2 años.",
    }
    data.update(overrides)
    return PromptInputs(**data)


def client_section(prompt):
    return prompt.split("CLIENT DATA (MANDATORY):")[1].split("CONTEXT:")[0]


class TestSelectTemplate:

    def test_judicial_category(self, judicial_category):
        assert select_template(judicial_category) == PromptTemplate.JUDICIAL

    def test_contract_category(self, contract_category):
        assert select_template(contract_category) == PromptTemplate.CONTRACT

    def test_no_category(self):
        assert select_template(None) == PromptTemplate.CONTRACT


class TestBuildContract:

    def test_section_order(self, builder, company_client):
        prompt = builder.build(inputs(company_client, style_text="STYLE-DNA", category_name="Comercial"))
        positions = [
            prompt.index("TASK: Generate a LEGAL CONTRACT"),
            prompt.index("FIRM STYLE PROFILE (MANDATORY):"),
            prompt.index("CLIENT DATA (MANDATORY):"),
            prompt.index("CONTEXT:"),
            prompt.index("INSTRUCTIONS:"),
        ]
        assert positions == sorted(positions)

    def test_header(self, builder, company_client):
        prompt = builder.build(inputs(company_client, category_name="Comercial"))
        assert "TYPE: Acuerdo de Confidencialidad" in prompt
        assert "CATEGORY: Comercial" in prompt
        assert "JUDICIAL" not in prompt

    def test_default_category(self, builder, company_client):
        prompt = builder.build(inputs(company_client))
        assert "CATEGORY: General" in prompt

    def test_style_embedded_verbatim(self, builder, company_client):
        style = "Usar PRIMERA, SEGUNDA...\n  * tercera persona\n\tfirma al pie"
        prompt = builder.build(inputs(company_client, style_text=style))
        assert f"FIRM STYLE PROFILE (MANDATORY):\n{style}" in prompt

    @pytest.mark.parametrize("style", [None, "", "   "])
    def test_style_section_omitted_without_style(self, builder, company_client, style):
        prompt = builder.build(inputs(company_client, style_text=style))
        assert "FIRM STYLE PROFILE" not in prompt
        assert "standard Argentina legal drafting conventions" in prompt

    def test_context_verbatim(self, builder, individual_client):
        context = "Plazo: 24 meses.\nMonto: $1.000.000 [confirmar]"
        prompt = builder.build(inputs(individual_client, context=context))
        assert f"CONTEXT:\n{context}\n\nINSTRUCTIONS:" in prompt

    def test_empty_context(self, builder, individual_client):
        prompt = builder.build(inputs(individual_client, context=""))
        assert "CONTEXT:\n\nINSTRUCTIONS:" in prompt

    def test_closing_instructions(self, builder, individual_client):
        prompt = builder.build(inputs(individual_client, category_name="Sucesiones"))
        instructions = prompt.split("INSTRUCTIONS:")[1]
        assert "legal category: Sucesiones" in instructions
        assert f"write {PLACEHOLDER} wherever a value is missing" in instructions
        assert "Return ONLY the final legal text" in instructions

    def test_deterministic(self, builder, company_client):
        request = inputs(company_client, style_text="S", category_name="C")
        assert builder.build(request) == builder.build(request)


class TestBuildJudicial:

    def test_judicial_header(self, builder, individual_client):
        prompt = builder.build(inputs(
            individual_client,
            contract_type="Demanda de alimentos",
            category_name="Juicios",
            template=PromptTemplate.JUDICIAL,
        ))
        assert prompt.index("TASK: Generate a FORMAL JUDICIAL FILING") < prompt.index("CLIENT DATA")
        assert "TYPE: Demanda de alimentos" in prompt
        assert "Relief requested" in prompt
        assert '"V.S."' in prompt
        assert "LEGAL CONTRACT" not in prompt
        assert "mandatory section of the judicial filing" in prompt


class TestClientSection:

    def test_company_lists_representative_placeholders(self, builder, company_client):
        section = client_section(builder.build(inputs(company_client)))
        assert "Full name: ACME S.A." in section
        assert "Type: company" in section
        assert "Document: CUIT 30-71234567-8" in section
        assert "Address: Av. Corrientes 1234" in section
        assert f"Legal representative: {PLACEHOLDER}" in section
        assert f"Representative ID: {PLACEHOLDER}" in section

    def test_company_with_representative(self, builder, company_client):
        client = company_client.model_copy(
            update={"legal_representative": "María Gómez", "representative_id": "DNI 25111222"}
        )
        section = client_section(builder.build(inputs(client)))
        assert "Legal representative: María Gómez" in section
        assert "Representative ID: DNI 25111222" in section
        assert PLACEHOLDER not in section

    def test_individual_without_representative(self, builder, individual_client):
        section = client_section(builder.build(inputs(individual_client)))
        assert f"Address: {PLACEHOLDER}" in section
        assert f"City: {PLACEHOLDER}" in section
        assert f"Zip code: {PLACEHOLDER}" in section
        assert "Legal representative" not in section
        assert "Representative ID" not in section

    def test_individual_with_representative(self, builder, individual_client):
        client = individual_client.model_copy(update={"legal_representative": "Apoderado Ruiz"})
        section = client_section(builder.build(inputs(client)))
        assert "Legal representative: Apoderado Ruiz" in section
        assert f"Representative ID: {PLACEHOLDER}" in section

    def test_blank_values_become_placeholders(self, builder, tenant_id):
        client = Client(
            tenant_id=tenant_id,
            full_name="Ana Díaz",
            client_type=ClientType.INDIVIDUAL,
            document_type="DNI",
            document_number="1",
            address="   ",
        )
        section = client_section(builder.build(inputs(client)))
        assert f"Address: {PLACEHOLDER}" in section

    def test_no_empty_values(self, builder, company_client):
        section = client_section(builder.build(inputs(company_client)))
        for line in section.strip().splitlines():
            label, _, value = line.partition(": ")
            assert value.strip(), label

    def test_custom_placeholder(self, individual_client):
        settings = Settings(_env_file=None, missing_field_placeholder="[COMPLETAR]")
        section = client_section(ContractPromptBuilder(settings).build(inputs(individual_client)))
        assert "Address: [COMPLETAR]" in section


class TestBuildPreview:

    def test_preview_headers(self, builder, company_client):
        prompt = builder.build_preview(inputs(company_client, category_name="Comercial"))
        assert "## Summary" in prompt
        assert "## Detected Issues" in prompt
        assert "## Category Alignment (Comercial)" in prompt
        assert "## Structure Preview" in prompt
        assert "CLIENT DATA (MANDATORY):" in prompt

    def test_judicial_preview_mentions_procedure(self, builder, company_client):
        prompt = builder.build_preview(inputs(company_client, template=PromptTemplate.JUDICIAL))
        assert "MODE: judicial filing" in prompt
        assert "JUDICIAL FILING" in prompt

    def test_training_summaries_before_tasks(self, builder, company_client):
        prompt = builder.build_preview(
            inputs(company_client, training_summaries=("NDA (Formal): Cláusulas numeradas.",))
        )
        section = prompt.split("TRAINING DOCUMENTS (firm style reference):\n")[1]
        assert section.startswith("- NDA (Formal): Cláusulas numeradas.\n\nTASKS:")

    def test_training_summaries_not_in_generation_prompt(self, builder, company_client):
        prompt = builder.build(inputs(company_client, training_summaries=("NDA: x",)))
        assert "TRAINING DOCUMENTS" not in prompt


class TestEditingPrompts:

    def test_validation_lists_checklist(self, builder):
        prompt = builder.build_validation("PRIMERA: Objeto.", ["Uses impersonal voice", "Has signature"])
        assert "- Uses impersonal voice\n- Has signature" in prompt
        assert "PRIMERA: Objeto." in prompt
        assert '"validation_report"' in prompt

    def test_clause_with_existing_content(self, builder):
        prompt = builder.build_clause("Confidencialidad", "PRIMERA: Objeto.", "STYLE", "Comercial")
        assert "TOPIC: Confidencialidad" in prompt
        assert "EXISTING DOCUMENT" in prompt
        assert "FIRM STYLE PROFILE (MANDATORY):\nSTYLE" in prompt

    def test_clause_without_existing_content(self, builder):
        prompt = builder.build_clause("Jurisdicción")
        assert "EXISTING DOCUMENT" not in prompt
        assert "CATEGORY: General" in prompt

    def test_refine_default_objective(self, builder):
        prompt = builder.build_refine("texto")
        assert "Improve clarity and legal robustness." in prompt
        assert "STYLE: professional legal standard." in prompt

    def test_refine_with_style_and_objective(self, builder):
        prompt = builder.build_refine("texto", "Hacerlo más breve", "STYLE", "Divorcios")
        assert "STYLE PROFILE (MUST FOLLOW):\nSTYLE" in prompt
        assert "LEGAL CATEGORY: Divorcios" in prompt
        assert "USER OBJECTIVE:\nHacerlo más breve" in prompt

    def test_improve_with_style(self, builder):
        prompt = builder.build_improve("texto", "STYLE", "Alimentos")
        assert "writing identity" in prompt
        assert "FIRM STYLE PROFILE:\nSTYLE" in prompt
        assert "legal category: Alimentos" in prompt

    def test_improve_without_style(self, builder):
        prompt = builder.build_improve("texto")
        assert "FIRM STYLE PROFILE" not in prompt
        assert "TEXT TO IMPROVE:\ntexto" in prompt
