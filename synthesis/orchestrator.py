"""Three-stage synthesis over a crawled and researched corpus.

The orchestrator is a small state machine:

    STRUCTURE_EXTRACTION -> WRITING -> METADATA -> DONE

Each stage sends exactly one request. A service failure fails the stage at
once; unparseable output goes through the bounded JSON repair protocol, and
an exhausted repair budget fails the stage. A failed stage moves the
machine to FAILED and raises `SynthesisError`; nothing partial is returned.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from config.pipeline_loader import pipeline_config
from observability.prometheus_metrics import record_repair_attempt, record_stage_duration
from pipelines.extraction import ExtractedPage
from research.models import ResearchBundle, normalize_url

from .json_repair import parse_with_repair
from .llm import GenerationError, GenerativeClient
from .prompts import metadata_messages, structure_messages, writing_messages
from .stages import ExtractedStructure, FinalMetadata, StageOutput, WrittenDocumentation, is_set
from .theme import extract_theme

logger = logging.getLogger(__name__)

DEFAULT_TITLE = 'Comprehensive Documentation'


class SynthesisState(str, Enum):
    STRUCTURE_EXTRACTION = 'structure_extraction'
    WRITING = 'writing'
    METADATA = 'metadata'
    DONE = 'done'
    FAILED = 'failed'


class SynthesisError(Exception):
    """Terminal synthesis failure for one stage."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"Synthesis failed at stage '{stage}': {message}")
        self.stage = stage
        self.message = message


def estimate_product_complexity(page_count: int, github_stars: Optional[int] = None) -> str:
    """Classify a product as small, medium or large from crawl size and popularity."""
    score = 3 if page_count >= 50 else 2 if page_count >= 20 else 1
    if github_stars:
        if github_stars >= 10000:
            score += 2
        elif github_stars >= 1000:
            score += 1
    if score >= 4:
        return 'large'
    if score >= 2:
        return 'medium'
    return 'small'


@dataclass
class ComprehensiveCorpus:
    """Everything synthesis reads: crawled pages plus research."""
    product_name: str
    base_url: str
    pages: List[ExtractedPage] = field(default_factory=list)
    research: ResearchBundle = field(default_factory=ResearchBundle)

    @property
    def total_words(self) -> int:
        return sum(p.word_count for p in self.pages)

    @property
    def code_examples(self) -> int:
        return sum(len(p.code_blocks) for p in self.pages)

    @property
    def image_count(self) -> int:
        return sum(len(p.images) for p in self.pages)

    @property
    def complexity(self) -> str:
        return estimate_product_complexity(len(self.pages))

    def urls(self) -> List[str]:
        return [p.url for p in self.pages] + self.research.urls()

    def to_payload(self, limits: Dict[str, int] = None) -> Dict[str, Any]:
        """Serializable stage-1 input, trimmed to the per-complexity limits."""
        limits = limits or pipeline_config.get_synthesis_limits(self.complexity)
        truncate = limits.get('truncate', 1000)
        pages = []
        for page in self.pages[:limits.get('pages', 8)]:
            data = page.to_dict()
            data['content'] = data['content'][:truncate]
            pages.append(data)
        research = []
        for result in self.research.results[:limits.get('research', 30)]:
            research.append({
                'kind': result.kind,
                'source': result.source,
                'title': result.title,
                'url': result.url,
                'snippet': result.snippet[:truncate],
                'trust_score': result.trust_score,
            })
        return {
            'product_name': self.product_name,
            'base_url': self.base_url,
            'site_content': {
                'pages_scraped': len(self.pages),
                'total_words': self.total_words,
                'pages': pages,
            },
            'external_research': {
                'total_sources': self.research.total_sources,
                'quality_score': self.research.quality_score,
                'results': research,
            },
        }


@dataclass
class FinalDocument:
    title: str
    description: str
    sections: List[Any]
    metadata: Dict[str, Any]
    searchability: Dict[str, Any]
    validation: Dict[str, Any]
    theme: Dict[str, Any]
    citations: List[str]
    research_stats: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'description': self.description,
            'sections': self.sections,
            'metadata': self.metadata,
            'searchability': self.searchability,
            'validation': self.validation,
            'theme': self.theme,
            'citations': self.citations,
            'research_stats': self.research_stats,
        }


def _citation_urls(raw: Any) -> Iterable[str]:
    if isinstance(raw, str):
        yield raw
    elif isinstance(raw, dict):
        if isinstance(raw.get('url'), str):
            yield raw['url']
        else:
            for value in raw.values():
                yield from _citation_urls(value)
    elif isinstance(raw, list):
        for item in raw:
            yield from _citation_urls(item)


def collect_citations(raw: Any, corpus_urls: Iterable[str]) -> List[str]:
    """Citation URLs declared by the model that actually appear in the corpus."""
    if not is_set(raw):
        return []
    known = {normalize_url(u) for u in corpus_urls}
    known.discard('')
    citations = []
    seen = set()
    for url in _citation_urls(raw):
        key = normalize_url(url)
        if key in known and key not in seen:
            seen.add(key)
            citations.append(url)
    return citations


def _dict_or_empty(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def assemble_document(corpus: ComprehensiveCorpus,
                      structure: ExtractedStructure,
                      written: WrittenDocumentation,
                      final: FinalMetadata) -> FinalDocument:
    """Merge the three stage outputs with theme, citations and research stats."""
    if isinstance(final.sections, list) and final.sections:
        sections = final.sections
    elif isinstance(written.sections, list):
        sections = written.sections
    else:
        sections = []

    meta = _dict_or_empty(final.metadata)
    title = meta.get('title') or (written.title if isinstance(written.title, str) else '') or DEFAULT_TITLE
    description = meta.get('description') or (written.description if isinstance(written.description, str) else '')

    return FinalDocument(
        title=title,
        description=description,
        sections=sections,
        metadata=meta,
        searchability=_dict_or_empty(final.searchability),
        validation=_dict_or_empty(final.validation),
        theme=extract_theme(p.content for p in corpus.pages),
        citations=collect_citations(structure.source_citations, corpus.urls()),
        research_stats={
            'pages_analyzed': len(corpus.pages),
            'external_sources': corpus.research.total_sources,
            'total_words': corpus.total_words,
            'code_examples': corpus.code_examples,
            'images': corpus.image_count,
            'quality_score': corpus.research.quality_score,
            'provider_counts': dict(corpus.research.provider_counts),
        },
    )


class SynthesisOrchestrator:
    """Drives the structure, writing and metadata stages for one corpus."""

    def __init__(self, client: GenerativeClient, max_repairs: int = None, temperature: float = None):
        self.client = client
        self.max_repairs = max_repairs if max_repairs is not None else pipeline_config.get('synthesis.max_repairs', 2)
        self.temperature = temperature
        self.state = SynthesisState.STRUCTURE_EXTRACTION
        self.history: List[SynthesisState] = []

    def _transition(self, state: SynthesisState) -> None:
        self.history.append(self.state)
        self.state = state

    def _fail(self, message: str) -> SynthesisError:
        stage = self.state.value
        logger.error(f"Synthesis stage {stage} failed: {message}")
        self._transition(SynthesisState.FAILED)
        return SynthesisError(stage, message)

    async def _complete(self, messages: List[Dict[str, str]]) -> str:
        return await self.client.complete(messages, temperature=self.temperature)

    async def _run_stage(self, messages: List[Dict[str, str]], output_type) -> StageOutput:
        stage = self.state.value
        start = time.time()
        try:
            content = await self._complete(messages)
        except GenerationError as e:
            raise self._fail(str(e)) from e

        result = await parse_with_repair(
            content,
            self._complete,
            max_repairs=self.max_repairs,
            on_attempt=lambda ok: record_repair_attempt(stage, ok),
        )
        record_stage_duration(stage, time.time() - start)
        if not result.ok:
            raise self._fail(f"invalid JSON after {result.attempts} repair attempts: {result.error}")
        if result.attempts:
            logger.info(f"Stage {stage} recovered after {result.attempts} repair attempts")
        return output_type.from_payload(result.value)

    async def run(self, corpus: ComprehensiveCorpus) -> FinalDocument:
        """Run all stages; raises SynthesisError on terminal failure."""
        self.state = SynthesisState.STRUCTURE_EXTRACTION
        self.history = []
        complexity = corpus.complexity
        logger.info(
            f"Synthesizing {corpus.product_name}: {len(corpus.pages)} pages, "
            f"{corpus.research.total_sources} sources, {complexity} complexity"
        )

        structure = await self._run_stage(
            structure_messages(corpus.to_payload(pipeline_config.get_synthesis_limits(complexity)), complexity),
            ExtractedStructure,
        )

        self._transition(SynthesisState.WRITING)
        written = await self._run_stage(writing_messages(structure.to_payload()), WrittenDocumentation)

        self._transition(SynthesisState.METADATA)
        final = await self._run_stage(
            metadata_messages(written.to_payload(), corpus.base_url, len(corpus.pages),
                              corpus.research.total_sources),
            FinalMetadata,
        )

        self._transition(SynthesisState.DONE)
        document = assemble_document(corpus, structure, written, final)
        logger.info(f"Assembled '{document.title}' with {len(document.sections)} sections")
        return document
