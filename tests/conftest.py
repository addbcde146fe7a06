"""Shared pytest fixtures and mocks for the LegalFlow test suite."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import structlog

from legalflow.config import Settings
from legalflow.models.client import Client, ClientType, ContractCategory
from legalflow.models.document import TrainingDocument
from legalflow.models.style import MasterStyleProfile, ProfileSource
from legalflow.services.llm_service import CompletionGateway


# ---------------------------------------------------------------------------
# Singleton cache clearing (autouse)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_singletons():
    """Clear all @lru_cache singletons and logging config between tests."""
    from legalflow.config import get_settings
    from legalflow.services.contract_generator import get_contract_generator
    from legalflow.services.document_assistant import get_document_assistant
    from legalflow.services.document_loader import get_document_loader
    from legalflow.services.llm_service import get_completion_gateway
    from legalflow.services.profile_synthesizer import get_profile_synthesizer
    from legalflow.services.prompt_builder import get_prompt_builder
    from legalflow.services.style_analyzer import get_style_analyzer
    from legalflow.storage.sql import get_sql_database

    for factory in (
        get_settings,
        get_completion_gateway,
        get_style_analyzer,
        get_profile_synthesizer,
        get_prompt_builder,
        get_contract_generator,
        get_document_assistant,
        get_document_loader,
        get_sql_database,
    ):
        factory.cache_clear()
    yield
    structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Completion gateway with a mocked Anthropic client
# ---------------------------------------------------------------------------

def anthropic_reply(text, input_tokens=10, output_tokens=20):
    """A messages.create() response carrying ``text``."""
    return MagicMock(
        content=[MagicMock(text=text)],
        usage=MagicMock(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def sent_prompt(client, index=-1):
    """Text of the user prompt sent in the ``index``-th messages.create() call."""
    call = client.messages.create.call_args_list[index]
    blocks = call.kwargs["messages"][0]["content"]
    return "".join(block.get("text", "") for block in blocks)


@pytest.fixture
def test_settings():
    """Settings isolated from the environment: Anthropic only, no retries."""
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        openai_api_key="",
        primary_llm_provider="anthropic",
        primary_llm_model="claude-test",
        fallback_llm_provider="openai",
        fallback_llm_model="gpt-test",
        llm_max_retries=1,
        llm_retry_wait_min=0,
    )


@pytest.fixture
def mock_anthropic():
    client = MagicMock()
    client.messages.create.return_value = anthropic_reply("{}")
    return client


@pytest.fixture
def gateway(test_settings, mock_anthropic):
    return CompletionGateway(settings=test_settings, anthropic_client=mock_anthropic)


@pytest.fixture
def make_reply():
    return anthropic_reply


@pytest.fixture
def prompt_of(mock_anthropic):
    """Prompt text of a recorded call; the last one by default."""
    def _prompt_of(index=-1):
        return sent_prompt(mock_anthropic, index)
    return _prompt_of


@pytest.fixture
def script(mock_anthropic):
    """Queue model replies: strings are returned as completions, exceptions raised."""
    def _script(*replies):
        mock_anthropic.messages.create.side_effect = [
            reply if isinstance(reply, BaseException) else anthropic_reply(reply)
            for reply in replies
        ]
    return _script


# ---------------------------------------------------------------------------
# Model replies
# ---------------------------------------------------------------------------

@pytest.fixture
def deep_analysis_data():
    return {
        "structure": {
            "has_preamble": True,
            "clause_numbering_style": "PRIMERA, SEGUNDA, TERCERA",
            "section_headers_style": "UPPER CASE",
            "signature_block_format": "Firma, aclaración y DNI",
        },
        "tone": {
            "formality_level": "muy_formal",
            "use_of_archaisms": ["en prueba de conformidad"],
            "voice": "passive",
            "person": "third_person",
        },
        "signature_clauses": {
            "confidentiality_approach": "Strict, with indemnity",
            "liability_limitation_style": "Capped at fees paid",
            "dispute_resolution_preference": "Tribunales ordinarios de CABA",
            "termination_clause_pattern": "30 days notice",
        },
        "jurisdiction_style": {
            "formal_register": "usted",
            "judicial_formulas": ["V.S.", "Proveer de conformidad, SERÁ JUSTICIA"],
            "citation_style": "art. 1061 CCyCN",
            "procedural_structure": False,
        },
        "examples": {
            "preamble": "Entre ACME S.A., por una parte...",
        },
    }


@pytest.fixture
def deep_analysis_json(deep_analysis_data):
    return json.dumps(deep_analysis_data, ensure_ascii=False)


@pytest.fixture
def synthesis_data():
    return {
        "style_instruction": "Redactar en tercera persona impersonal con cláusulas PRIMERA, SEGUNDA.",
        "validation_checklist": [
            "Uses third-person impersonal voice",
            "Clauses numbered PRIMERA, SEGUNDA",
            "Confidentiality clause present with indemnity language",
        ],
        "examples": {
            "good_preamble": "Entre ACME S.A. ...",
            "good_clause_structure": "PRIMERA: Objeto.",
            "signature_block": "Firma / Aclaración / DNI",
        },
        "completeness_score": 80,
        "missing_elements": ["No termination examples"],
        "suggestions": ["Upload a service agreement"],
    }


@pytest.fixture
def synthesis_json(synthesis_data):
    return json.dumps(synthesis_data, ensure_ascii=False)


@pytest.fixture
def simple_profile_json():
    return json.dumps({
        "style_text": "- Formal register\n- Clauses in upper case\n- Third person",
        "completeness_score": 40,
        "missing_elements": ["No judicial filings"],
        "suggestions": [],
    })


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

TENANT = "firm-1"


@pytest.fixture
def tenant_id():
    return TENANT


@pytest.fixture
def individual_client():
    """Individual with no address and no representative."""
    return Client(
        tenant_id=TENANT,
        full_name="Juan Pérez",
        client_type=ClientType.INDIVIDUAL,
        document_type="DNI",
        document_number="30123456",
    )


@pytest.fixture
def company_client():
    """Company with an address but no legal representative on file."""
    return Client(
        tenant_id=TENANT,
        full_name="ACME S.A.",
        client_type=ClientType.COMPANY,
        document_type="CUIT",
        document_number="30-71234567-8",
        address="Av. Corrientes 1234",
        city="CABA",
        zip_code="C1043",
    )


@pytest.fixture
def judicial_category():
    return ContractCategory(tenant_id=TENANT, name="Juicios", is_judicial=True)


@pytest.fixture
def contract_category():
    return ContractCategory(tenant_id=TENANT, name="Comercial", is_judicial=False)


@pytest.fixture
def synthesized_profile():
    return MasterStyleProfile(
        tenant_id=TENANT,
        style_instruction="STYLE-DNA: tercera persona, cláusulas PRIMERA/SEGUNDA.",
        validation_checklist=["Uses impersonal voice", "Has signature block"],
        completeness_score=85,
        source=ProfileSource.SYNTHESIZED,
    )


@pytest.fixture
def training_documents():
    """Five documents whose texts carry a unique marker each."""
    return [
        TrainingDocument(
            tenant_id=TENANT,
            title=f"Documento {i}",
            text=f"DOC-MARKER-{i} " + "lorem ipsum dolor sit amet " * 20,
            contract_type="Contrato de Servicios",
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc) + timedelta(minutes=i),
        )
        for i in range(1, 6)
    ]
