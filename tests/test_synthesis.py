import json

import pytest

from conftest import STAGE_REPLIES, FakeLLM
from pipelines.extraction import ExtractedPage
from research.models import ResearchBundle, SearchResult
from synthesis.llm import GenerationError
from synthesis.orchestrator import (
    DEFAULT_TITLE,
    ComprehensiveCorpus,
    SynthesisError,
    SynthesisOrchestrator,
    SynthesisState,
    assemble_document,
    collect_citations,
    estimate_product_complexity,
)
from synthesis.stages import UNSET, ExtractedStructure, FinalMetadata, WrittenDocumentation, is_set
from synthesis.theme import DEFAULT_FONT, DEFAULT_PRIMARY, MAX_COLORS, extract_theme


def _corpus():
    page = ExtractedPage(
        url="https://acme.test/docs/start",
        title="Start",
        content="Use color: #ff0000; font-family: 'Roboto', sans-serif;",
        code_blocks=[{"language": "bash", "code": "acme init --all"}],
        word_count=120,
    )
    research = ResearchBundle(
        results=[SearchResult(url="https://blog.test/acme", title="Acme tips", trust_score=0.6)],
        quality_score=0.42,
        provider_counts={"web": 1, "reddit": 0},
    )
    return ComprehensiveCorpus(product_name="Acme", base_url="https://acme.test", pages=[page], research=research)


class TestStageOutputs:

    def test_missing_fields_are_unset_and_unknown_keys_kept(self):
        structure = ExtractedStructure.from_payload({"title": "T", "custom_block": {"x": 1}})

        assert structure.title == "T"
        assert structure.sections is UNSET
        assert not is_set(structure.theme)
        assert structure.extra == {"custom_block": {"x": 1}}
        assert structure.get("custom_block") == {"x": 1}
        assert structure.get("sections", "fallback") == "fallback"

    def test_payload_round_trips_verbatim(self):
        payload = {"title": "T", "sections": [], "unexpected": [1, 2]}
        assert ExtractedStructure.from_payload(payload).to_payload() == payload

    def test_unset_is_falsy_singleton(self):
        assert not UNSET
        assert repr(UNSET) == "UNSET"
        assert type(UNSET)() is UNSET


class TestOrchestrator:

    @pytest.mark.asyncio
    async def test_happy_path_makes_three_calls(self, fake_llm):
        orchestrator = SynthesisOrchestrator(fake_llm, max_repairs=2)

        document = await orchestrator.run(_corpus())

        assert len(fake_llm.calls) == 3
        assert orchestrator.state == SynthesisState.DONE
        assert orchestrator.history == [
            SynthesisState.STRUCTURE_EXTRACTION,
            SynthesisState.WRITING,
            SynthesisState.METADATA,
        ]
        assert document.title == "Acme Docs"
        assert document.sections == STAGE_REPLIES[1]["sections"]
        assert document.citations == ["https://acme.test/docs/start"]
        assert document.research_stats["pages_analyzed"] == 1
        assert document.research_stats["external_sources"] == 1
        assert document.research_stats["code_examples"] == 1
        assert document.research_stats["quality_score"] == 0.42

    @pytest.mark.asyncio
    async def test_unknown_keys_reach_the_next_stage(self):
        stage_one = dict(STAGE_REPLIES[0], tone_guide={"voice": "friendly"})
        llm = FakeLLM([stage_one, STAGE_REPLIES[1], STAGE_REPLIES[2]])

        await SynthesisOrchestrator(llm).run(_corpus())

        writing_request = llm.calls[1][1]["content"]
        assert '"tone_guide"' in writing_request
        assert '"friendly"' in writing_request

    @pytest.mark.asyncio
    async def test_service_failure_fails_stage_without_repair(self):
        llm = FakeLLM([STAGE_REPLIES[0], GenerationError("upstream 503", status=503)])
        orchestrator = SynthesisOrchestrator(llm, max_repairs=2)

        with pytest.raises(SynthesisError) as excinfo:
            await orchestrator.run(_corpus())

        assert excinfo.value.stage == "writing"
        assert "upstream 503" in excinfo.value.message
        assert orchestrator.state == SynthesisState.FAILED
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_exhausted_repair_fails_stage(self):
        llm = FakeLLM([STAGE_REPLIES[0], "not json", "still not", "nope"])
        orchestrator = SynthesisOrchestrator(llm, max_repairs=2)

        with pytest.raises(SynthesisError) as excinfo:
            await orchestrator.run(_corpus())

        assert excinfo.value.stage == "writing"
        assert len(llm.calls) == 4
        assert orchestrator.state == SynthesisState.FAILED

    @pytest.mark.asyncio
    async def test_repaired_stage_continues(self):
        llm = FakeLLM(["oops", STAGE_REPLIES[0], STAGE_REPLIES[1], STAGE_REPLIES[2]])

        document = await SynthesisOrchestrator(llm, max_repairs=2).run(_corpus())

        assert len(llm.calls) == 4
        assert document.title == "Acme Docs"

    @pytest.mark.asyncio
    async def test_structure_request_carries_corpus(self, fake_llm):
        await SynthesisOrchestrator(fake_llm).run(_corpus())

        request = fake_llm.calls[0][1]["content"]
        assert "PRODUCT: Acme" in request
        assert "https://blog.test/acme" in request


class TestAssembly:

    def test_metadata_sections_win_when_present(self):
        final = FinalMetadata.from_payload({"sections": [{"id": "meta"}], "metadata": {"title": "M"}})
        written = WrittenDocumentation.from_payload({"title": "W", "sections": [{"id": "written"}]})
        document = assemble_document(_corpus(), ExtractedStructure(), written, final)

        assert document.sections == [{"id": "meta"}]
        assert document.title == "M"

    def test_falls_back_to_written_then_default(self):
        written = WrittenDocumentation.from_payload({"title": "W", "sections": [{"id": "written"}]})
        document = assemble_document(_corpus(), ExtractedStructure(), written, FinalMetadata.from_payload({"sections": []}))
        assert document.sections == [{"id": "written"}]
        assert document.title == "W"

        bare = assemble_document(_corpus(), ExtractedStructure(), WrittenDocumentation(), FinalMetadata())
        assert bare.sections == []
        assert bare.title == DEFAULT_TITLE
        assert bare.metadata == {}

    def test_document_serializes(self):
        document = assemble_document(_corpus(), ExtractedStructure(), WrittenDocumentation(), FinalMetadata())
        json.dumps(document.to_dict())


def test_citations_keep_only_corpus_urls():
    corpus_urls = ["https://acme.test/docs/start", "https://blog.test/acme"]
    raw = [
        "https://www.acme.test/docs/start/",
        {"url": "https://blog.test/acme"},
        {"nested": ["https://invented.test/page"]},
        "https://acme.test/docs/start",
    ]
    assert collect_citations(raw, corpus_urls) == ["https://www.acme.test/docs/start/", "https://blog.test/acme"]
    assert collect_citations(UNSET, corpus_urls) == []


def test_product_complexity():
    assert estimate_product_complexity(5) == "small"
    assert estimate_product_complexity(25) == "medium"
    assert estimate_product_complexity(60) == "medium"
    assert estimate_product_complexity(60, github_stars=20000) == "large"


class TestTheme:

    def test_defaults_without_signals(self):
        theme = extract_theme(["plain text only"])
        assert theme["primary_color"] == DEFAULT_PRIMARY
        assert theme["primary_font"] == DEFAULT_FONT
        assert theme["colors"] == []

    def test_most_frequent_colors_and_fonts(self):
        theme = extract_theme([
            "color: #abcdef; background: #abcdef; border: #123",
            "font-family: 'Roboto', sans-serif; font-family: Inter;",
            "font-family: Roboto;",
        ])
        assert theme["primary_color"] == "#ABCDEF"
        assert theme["secondary_color"] == "#123"
        assert theme["fonts"][0] == "Roboto"
        assert theme["primary_font"] == "Roboto"

    def test_colors_are_capped(self):
        text = " ".join(f"#{i:06x}" for i in range(1, 30))
        assert len(extract_theme([text])["colors"]) == MAX_COLORS
