"""End-to-end documentation generation for one URL.

SSRF guard, discovery, extraction and research in parallel, three-stage
synthesis, then a single write to the document store.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from config.settings import Settings
from observability.logging import get_structured_logger
from observability.prometheus_metrics import record_pages_extracted, record_pipeline_run
from pipelines.concurrency import RateLimiter
from pipelines.discovery import SiteDiscovery, UNKNOWN_PRODUCT
from pipelines.extraction import ContentExtractor
from pipelines.fetcher import PageFetcher
from pipelines.security import normalize_target_url
from research.aggregator import ResearchAggregator
from research.providers import default_providers
from storage.documents import DocumentStore, SQLDocumentStore

from .llm import GenerativeClient
from .orchestrator import ComprehensiveCorpus, FinalDocument, SynthesisError, SynthesisOrchestrator

logger = get_structured_logger(__name__)


@dataclass
class PipelineResult:
    document_id: int
    document: FinalDocument


class DocumentationPipeline:
    """Runs discovery, extraction, research and synthesis, then persists once."""

    def __init__(self,
                 fetcher,
                 client: GenerativeClient,
                 store: DocumentStore,
                 settings: Settings = None,
                 discovery: SiteDiscovery = None,
                 extractor: ContentExtractor = None,
                 aggregator: ResearchAggregator = None):
        self.settings = settings or Settings()
        self.fetcher = fetcher
        self.client = client
        self.store = store
        self.discovery = discovery or SiteDiscovery(fetcher, probe_timeout=self.settings.request_timeout)
        self.extractor = extractor or ContentExtractor(fetcher, RateLimiter(self.settings.crawl_delay))
        self.aggregator = aggregator or ResearchAggregator(default_providers(fetcher, self.settings))

    @classmethod
    def from_settings(cls, settings: Settings = None, store: DocumentStore = None) -> 'DocumentationPipeline':
        settings = settings or Settings.from_env()
        return cls(
            fetcher=PageFetcher(request_timeout=settings.request_timeout),
            client=GenerativeClient(settings),
            store=store or SQLDocumentStore(settings.database_url),
            settings=settings,
        )

    async def close(self) -> None:
        close = getattr(self.fetcher, 'close', None)
        if close is not None:
            await close()
        await self.client.close()

    async def build_corpus(self, base_url: str) -> ComprehensiveCorpus:
        """Discovery, then extraction and research concurrently."""
        log = logger.bind(url=base_url)
        structure = await self.discovery.discover(base_url)
        if structure.is_degraded:
            log.warning("Discovery degraded; continuing with an empty site structure")

        research_name = structure.product_name
        if research_name == UNKNOWN_PRODUCT:
            research_name = urlparse(base_url).hostname or base_url

        with log.timed("Corpus built", product=structure.product_name) as stats:
            pages, research = await asyncio.gather(
                self.extractor.extract_site(structure),
                self.aggregator.gather(research_name, base_url),
            )
            stats.update(pages=len(pages), sources=research.total_sources)
        record_pages_extracted(len(pages))
        return ComprehensiveCorpus(
            product_name=structure.product_name,
            base_url=base_url,
            pages=pages,
            research=research,
        )

    async def run(self, url: str, user_id: Optional[str] = None) -> PipelineResult:
        """Generate and persist documentation for url.

        Raises:
            SSRFError: If the URL is blocked
            SynthesisError: If a synthesis stage fails terminally
        """
        base_url = normalize_target_url(url)
        log = logger.bind(url=base_url, user_id=user_id)
        start = time.time()
        log.info("Documentation run started")

        corpus = await self.build_corpus(base_url)
        orchestrator = SynthesisOrchestrator(
            self.client,
            max_repairs=self.settings.max_repairs,
            temperature=self.settings.llm_temperature,
        )
        try:
            document = await orchestrator.run(corpus)
        except SynthesisError as e:
            record_pipeline_run('failed')
            log.error("Documentation run failed", stage=e.stage, error=e.message)
            raise

        stored = await asyncio.to_thread(
            self.store.create_document,
            url=base_url,
            title=document.title,
            content=document.to_dict(),
            user_id=user_id,
        )
        record_pipeline_run('success')
        log.info("Documentation run finished", document_id=stored.id,
                 duration=round(time.time() - start, 2))
        return PipelineResult(document_id=stored.id, document=document)
