"""Tests for legalflow/pipeline/orchestrator.py: training run, fallback, manual profiles."""

import json

import pytest

from legalflow.exceptions import InvalidInput, MalformedCompletion
from legalflow.models.client import ContractCategory
from legalflow.models.document import TrainingDocument
from legalflow.models.progress import SynthesisStage
from legalflow.models.style import ProfileSource
from legalflow.pipeline.orchestrator import StyleProfileService, StyleTrainingPipeline
from legalflow.services.profile_synthesizer import ProfileSynthesizer
from legalflow.services.style_analyzer import StyleAnalyzer
from legalflow.storage.memory import (
    InMemoryCategoryStore,
    InMemoryStyleProfileStore,
    InMemoryTrainingDocumentStore,
)


@pytest.fixture
def profiles():
    return InMemoryStyleProfileStore()


@pytest.fixture
def categories():
    return InMemoryCategoryStore()


@pytest.fixture
def documents(training_documents):
    return InMemoryTrainingDocumentStore(training_documents)


@pytest.fixture
def pipeline(gateway, documents, profiles, categories):
    return StyleTrainingPipeline(
        documents=documents,
        profiles=profiles,
        categories=categories,
        analyzer=StyleAnalyzer(gateway),
        synthesizer=ProfileSynthesizer(gateway),
    )


def stages(events):
    return [(e.stage, e.current, e.total) for e in events]


class TestRun:

    def test_happy_path_events(self, pipeline, script, deep_analysis_json, synthesis_json, tenant_id):
        script(*[deep_analysis_json] * 5, synthesis_json)
        events = list(pipeline.run(tenant_id))
        assert stages(events) == [
            (SynthesisStage.ANALYZING, 0, 5),
            (SynthesisStage.ANALYZING, 1, 5),
            (SynthesisStage.ANALYZING, 2, 5),
            (SynthesisStage.ANALYZING, 3, 5),
            (SynthesisStage.ANALYZING, 4, 5),
            (SynthesisStage.ANALYZING, 5, 5),
            (SynthesisStage.SYNTHESIZING, 0, 1),
            (SynthesisStage.SYNTHESIZING, 1, 1),
            (SynthesisStage.COMPLETE, 5, 5),
        ]
        result = events[-1].result
        assert result.degraded is False
        assert result.fallback_reason is None
        assert result.analyzed_documents == 5
        assert result.profile.source == ProfileSource.SYNTHESIZED
        assert all(e.result is None for e in events[:-1])

    def test_profile_stored_for_tenant(self, pipeline, profiles, script, deep_analysis_json, synthesis_json, tenant_id):
        script(*[deep_analysis_json] * 5, synthesis_json)
        result = pipeline.synthesize(tenant_id)
        active = profiles.get_active(tenant_id)
        assert active == result.profile
        assert active.tenant_id == tenant_id

    def test_documents_analyzed_in_order(self, pipeline, script, deep_analysis_json, synthesis_json, tenant_id, prompt_of):
        script(*[deep_analysis_json] * 5, synthesis_json)
        pipeline.synthesize(tenant_id)
        for i in range(5):
            assert f"DOC-MARKER-{i + 1}" in prompt_of(i)

    def test_third_analysis_malformed_falls_back(
        self, pipeline, profiles, script, deep_analysis_json, simple_profile_json, tenant_id, prompt_of
    ):
        script(deep_analysis_json, deep_analysis_json, "not json at all", simple_profile_json)
        events = list(pipeline.run(tenant_id))
        assert stages(events) == [
            (SynthesisStage.ANALYZING, 0, 5),
            (SynthesisStage.ANALYZING, 1, 5),
            (SynthesisStage.ANALYZING, 2, 5),
            (SynthesisStage.FALLBACK, 0, 1),
            (SynthesisStage.FALLBACK, 1, 1),
            (SynthesisStage.COMPLETE, 5, 5),
        ]
        result = events[-1].result
        assert result.degraded is True
        assert result.fallback_reason
        assert result.analyzed_documents == 2
        assert result.profile.source == ProfileSource.SIMPLE
        assert profiles.get_active(tenant_id).source == ProfileSource.SIMPLE

        fallback_prompt = prompt_of()
        for i in range(1, 6):
            assert f"DOC-MARKER-{i}" in fallback_prompt

    def test_synthesis_failure_falls_back(
        self, pipeline, script, deep_analysis_json, simple_profile_json, tenant_id
    ):
        script(*[deep_analysis_json] * 5, RuntimeError("down"), simple_profile_json)
        events = list(pipeline.run(tenant_id))
        labels = [e.stage for e in events]
        assert labels[-4:] == [
            SynthesisStage.SYNTHESIZING,
            SynthesisStage.FALLBACK,
            SynthesisStage.FALLBACK,
            SynthesisStage.COMPLETE,
        ]
        result = events[-1].result
        assert result.degraded is True
        assert result.analyzed_documents == 5

    def test_incomplete_analysis_falls_back(
        self, pipeline, script, deep_analysis_data, simple_profile_json, tenant_id
    ):
        del deep_analysis_data["structure"]
        script(json.dumps(deep_analysis_data), simple_profile_json)
        result = pipeline.synthesize(tenant_id)
        assert result.degraded is True
        assert "structure" in result.fallback_reason

    def test_fallback_failure_propagates_and_keeps_active_profile(
        self, pipeline, profiles, script, synthesized_profile, tenant_id
    ):
        previous = profiles.replace(tenant_id, synthesized_profile)
        script("garbage", "more garbage")
        with pytest.raises(MalformedCompletion):
            pipeline.synthesize(tenant_id)
        assert profiles.get_active(tenant_id) == previous

    def test_zero_documents_invalid_before_any_call(self, pipeline, mock_anthropic):
        with pytest.raises(InvalidInput):
            list(pipeline.run("empty-firm"))
        mock_anthropic.messages.create.assert_not_called()

    def test_closing_generator_cancels_between_documents(self, pipeline, script, deep_analysis_json, mock_anthropic, tenant_id, profiles):
        script(*[deep_analysis_json] * 5)
        run = pipeline.run(tenant_id)
        next(run)
        next(run)
        run.close()
        assert mock_anthropic.messages.create.call_count == 1
        assert profiles.get_active(tenant_id) is None

    def test_on_progress_callback(self, pipeline, script, deep_analysis_json, synthesis_json, tenant_id):
        script(*[deep_analysis_json] * 5, synthesis_json)
        seen = []
        result = pipeline.synthesize(tenant_id, on_progress=seen.append)
        assert len(seen) == 9
        assert seen[-1].result == result
        assert seen[-1].fraction == 1.0

    def test_categories_passed_to_synthesis(
        self, gateway, profiles, categories, script, deep_analysis_json, synthesis_json, tenant_id, prompt_of
    ):
        category = categories.add(ContractCategory(tenant_id=tenant_id, name="Divorcios"))
        documents = InMemoryTrainingDocumentStore()
        documents.add(TrainingDocument(
            tenant_id=tenant_id,
            title="Convenio",
            text="Convenio regulador de divorcio.",
            contract_type="Convenio de Divorcio",
            category_id=category.id,
        ))
        pipeline = StyleTrainingPipeline(
            documents=documents,
            profiles=profiles,
            categories=categories,
            analyzer=StyleAnalyzer(gateway),
            synthesizer=ProfileSynthesizer(gateway),
        )
        script(deep_analysis_json, synthesis_json)
        pipeline.synthesize(tenant_id)
        assert "CATEGORY: Divorcios" in prompt_of(0)
        assert "Divorcios" in prompt_of(1).split("=== CATEGORIES PRESENT ===")[1]


@pytest.fixture
def upload():
    return TrainingDocument(
        tenant_id="other-firm",
        title="Locación",
        text="CONTRATO DE LOCACIÓN. PRIMERA: Objeto.",
        contract_type="Contrato de Locación",
    )


class TestAddDocument:

    def test_stores_tone_and_summary(self, pipeline, documents, script, upload):
        script('{"tone": "Protector", "summary": "Prioriza la indemnidad del cliente."}')
        stored = pipeline.add_document(upload)
        assert stored.tone_label == "Protector"
        assert stored.style_summary == "Prioriza la indemnidad del cliente."
        assert documents.get("other-firm", upload.id) == stored

    def test_analysis_failure_does_not_block_upload(self, pipeline, documents, script, upload):
        script(RuntimeError("down"))
        stored = pipeline.add_document(upload)
        assert stored.tone_label == "Unknown"
        assert stored.style_summary == "Analysis failed."
        assert documents.list_by_tenant("other-firm") == [stored]

    def test_original_document_not_mutated(self, pipeline, script, upload):
        script('{"tone": "Formal", "summary": "s"}')
        pipeline.add_document(upload)
        assert upload.tone_label is None
        assert upload.style_summary is None


class TestStyleProfileService:

    def test_save_manual(self, profiles, tenant_id):
        service = StyleProfileService(profiles)
        stored = service.save_manual(tenant_id, "Escribir con formalidad.")
        assert stored.source == ProfileSource.MANUAL
        assert stored.completeness_score == 100
        assert service.get_active(tenant_id) == stored

    def test_manual_replaces_synthesized(self, profiles, synthesized_profile, tenant_id):
        service = StyleProfileService(profiles)
        profiles.replace(tenant_id, synthesized_profile)
        stored = service.save_manual(tenant_id, "Nuevo estilo.")
        assert service.get_active(tenant_id).id == stored.id
        assert [p.source for p in service.history(tenant_id)] == [
            ProfileSource.MANUAL,
            ProfileSource.SYNTHESIZED,
        ]

    def test_save_manual_requires_text(self, profiles, tenant_id):
        with pytest.raises(InvalidInput):
            StyleProfileService(profiles).save_manual(tenant_id, "")
        assert profiles.get_active(tenant_id) is None
