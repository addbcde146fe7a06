"""Tests for legalflow/services/document_assistant.py: best-effort helpers and analysis."""

import json

import pytest

from legalflow.exceptions import InvalidInput, UpstreamUnavailable
from legalflow.services.document_assistant import DocumentAssistant
from legalflow.services.llm_service import InlineBinaryPart

CATEGORIES = ["Juicios", "Divorcios", "Sucesiones"]


@pytest.fixture
def assistant(gateway):
    return DocumentAssistant(gateway)


class TestTextPreparation:

    def test_extract_text_from_parts(self, assistant, script, mock_anthropic):
        script("SEÑOR JUEZ: ...")
        scan = InlineBinaryPart.from_bytes(b"\xff\xd8", "image/jpeg")
        assert assistant.extract_text([scan]) == "SEÑOR JUEZ: ..."
        blocks = mock_anthropic.messages.create.call_args.kwargs["messages"][0]["content"]
        assert blocks[0]["type"] == "image"
        assert "verbatim" in blocks[1]["text"]

    def test_extract_text_requires_parts(self, assistant, mock_anthropic):
        with pytest.raises(InvalidInput):
            assistant.extract_text([])
        mock_anthropic.messages.create.assert_not_called()

    def test_clean_text(self, assistant, script):
        script("Texto limpio")
        assert assistant.clean_text("Texto  sucio\n- 1 -") == "Texto limpio"

    def test_clean_text_empty_answer_keeps_original(self, assistant, script):
        script("")
        assert assistant.clean_text("original") == "original"

    def test_rewrite_with_style(self, assistant, script, prompt_of):
        script("reescrito")
        assert assistant.rewrite("texto", style="STYLE-DNA", objective="Más formal") == "reescrito"
        assert "STYLE-DNA" in prompt_of()
        assert "USER OBJECTIVE:\nMás formal" in prompt_of()

    def test_rewrite_defaults(self, assistant, script, prompt_of):
        script("reescrito")
        assistant.rewrite("texto")
        assert "professional legal standard" in prompt_of()


class TestDetectTitle:

    def test_strips_quotes_and_extra_lines(self, assistant, script):
        script('"Contrato de Locación de Vivienda"\nExplanation: ...')
        assert assistant.detect_title("texto") == "Contrato de Locación de Vivienda"

    def test_failure_returns_untitled(self, assistant, script):
        script(RuntimeError("down"))
        assert assistant.detect_title("texto") == "Untitled document"

    def test_empty_answer_returns_untitled(self, assistant, script):
        script('""')
        assert assistant.detect_title("texto") == "Untitled document"


class TestAutoCategorize:

    def test_case_insensitive_match(self, assistant, script):
        script('"divorcios"')
        assert assistant.auto_categorize("convenio regulador", CATEGORIES) == "Divorcios"

    def test_unknown_answer_returns_other(self, assistant, script):
        script("Laboral")
        assert assistant.auto_categorize("texto", CATEGORIES) == "Other"

    def test_failure_returns_other(self, assistant, script):
        script(RuntimeError("down"))
        assert assistant.auto_categorize("texto", CATEGORIES) == "Other"

    def test_no_categories_skips_call(self, assistant, mock_anthropic):
        assert assistant.auto_categorize("texto", []) == "Other"
        mock_anthropic.messages.create.assert_not_called()

    def test_prompt_lists_categories(self, assistant, script, prompt_of):
        script("Juicios")
        assistant.auto_categorize("texto", CATEGORIES)
        assert "Categories: Juicios, Divorcios, Sucesiones" in prompt_of()


class TestAutoTag:

    def test_splits_and_dedupes(self, assistant, script):
        script('alquiler, "garantía", alquiler, , plazo')
        assert assistant.auto_tag("texto") == ["alquiler", "garantía", "plazo"]

    def test_capped_at_eight(self, assistant, script):
        script(", ".join(f"tag{i}" for i in range(12)))
        assert len(assistant.auto_tag("texto")) == 8

    def test_failure_returns_empty(self, assistant, script):
        script(RuntimeError("down"))
        assert assistant.auto_tag("texto") == []


class TestAnalysis:

    def test_analyze_contract(self, assistant, script):
        script(json.dumps({
            "summary": "Locación de vivienda por 3 años.",
            "key_clauses": [{"title": "Plazo", "content": "36 meses"}],
            "risks": [
                {"severity": "High", "description": "Sin garantía"},
                {"severity": "Low", "description": "Redacción ambigua"},
            ],
            "obligations": [{"party": "Client", "description": "Pagar el canon"}],
            "missing_clauses": [{"name": "Rescisión anticipada"}],
        }))
        analysis = assistant.analyze_contract("texto", "Comercial")
        assert analysis.summary == "Locación de vivienda por 3 años."
        assert analysis.key_clauses[0].type == "standard"
        assert [r.description for r in analysis.high_risks] == ["Sin garantía"]
        assert analysis.missing_clauses[0].name == "Rescisión anticipada"

    def test_analyze_contract_malformed_returns_fallback(self, assistant, script):
        script("I could not analyze it")
        analysis = assistant.analyze_contract("texto")
        assert analysis.summary == "Analysis failed."
        assert analysis.risks == []

    def test_analyze_contract_upstream_failure_propagates(self, assistant, script):
        script(RuntimeError("down"))
        with pytest.raises(UpstreamUnavailable):
            assistant.analyze_contract("texto")

    def test_ask(self, assistant, script, prompt_of):
        script("El plazo es de 36 meses.")
        assert assistant.ask("PLAZO: 36 meses", "¿Cuál es el plazo?") == "El plazo es de 36 meses."
        assert "Question: ¿Cuál es el plazo?" in prompt_of()

    def test_ask_requires_question(self, assistant, mock_anthropic):
        with pytest.raises(InvalidInput):
            assistant.ask("texto", "")
        mock_anthropic.messages.create.assert_not_called()

    def test_explain_clause(self, assistant, script):
        script("Significa que...")
        assert assistant.explain_clause("Las partes se someten a...") == "Significa que..."


class TestDiffVersions:

    def test_identical_versions_skip_call(self, assistant, mock_anthropic):
        assert assistant.diff_versions("PRIMERA: Objeto.", "PRIMERA: Objeto.\n") == "No differences detected."
        mock_anthropic.messages.create.assert_not_called()

    def test_sends_unified_diff(self, assistant, script, prompt_of):
        script("Se modificó el plazo.")
        summary = assistant.diff_versions("PLAZO: 12 meses\nPRECIO: 100", "PLAZO: 24 meses\nPRECIO: 100")
        assert summary == "Se modificó el plazo."
        prompt = prompt_of()
        assert "--- old" in prompt
        assert "+++ new" in prompt
        assert "-PLAZO: 12 meses" in prompt
        assert "+PLAZO: 24 meses" in prompt

    @pytest.mark.parametrize("old,new", [("", "b"), ("a", " ")])
    def test_empty_version_rejected(self, assistant, mock_anthropic, old, new):
        with pytest.raises(InvalidInput):
            assistant.diff_versions(old, new)
        mock_anthropic.messages.create.assert_not_called()


@pytest.mark.parametrize("method", ["clean_text", "detect_title", "auto_tag", "explain_clause"])
def test_empty_text_rejected_before_call(assistant, mock_anthropic, method):
    with pytest.raises(InvalidInput):
        getattr(assistant, method)("  ")
    mock_anthropic.messages.create.assert_not_called()


class TestClientStrategy:

    HISTORY = "2023: contrato de locación. 2024: carta documento por falta de pago."

    def test_client_strategy(self, assistant, script, prompt_of):
        script("Riesgos: mora del locatario. Próximo paso: intimación.")
        answer = assistant.client_strategy("ACME S.A.", self.HISTORY)
        assert answer.startswith("Riesgos")
        assert '"ACME S.A."' in prompt_of()
        assert self.HISTORY in prompt_of()

    def test_suggest_contracts_parses_bullets(self, assistant, script, prompt_of):
        script("- Convenio de pago\n* Demanda de desalojo\n\n3. Addenda de locación\n- Convenio de pago")
        titles = assistant.suggest_contracts("ACME S.A.", self.HISTORY)
        assert titles == ["Convenio de pago", "Demanda de desalojo", "Addenda de locación"]
        assert "Client: ACME S.A." in prompt_of()

    def test_suggest_contracts_capped_at_three(self, assistant, script):
        script("\n".join(f"- Título {i}" for i in range(6)))
        assert len(assistant.suggest_contracts("ACME S.A.", self.HISTORY)) == 3

    def test_suggest_contracts_upstream_failure_propagates(self, assistant, script):
        script(ConnectionError("down"))
        with pytest.raises(UpstreamUnavailable):
            assistant.suggest_contracts("ACME S.A.", self.HISTORY)

    @pytest.mark.parametrize("method", ["client_strategy", "suggest_contracts"])
    @pytest.mark.parametrize("client_name,history", [("", "historial"), ("ACME", "  "), (None, "historial")])
    def test_empty_inputs_rejected_before_call(self, assistant, mock_anthropic, method, client_name, history):
        with pytest.raises(InvalidInput):
            getattr(assistant, method)(client_name, history)
        mock_anthropic.messages.create.assert_not_called()
