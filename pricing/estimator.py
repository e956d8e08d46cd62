"""Complexity estimation and instant pricing quotes.

A shorter pipeline than full generation: a sitemap or link-count page
estimate, a couple of presence probes against research providers, and a
technical-complexity read of the homepage. The URL must pass the SSRF guard
before any request is made.
"""

import asyncio
import logging
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from config.pipeline_loader import pipeline_config
from config.settings import Settings
from observability.prometheus_metrics import record_quote
from pipelines.concurrency import soft_fail
from pipelines.fetcher import PageFetcher
from pipelines.security import normalize_target_url
from pipelines.sitemap import extract_locs
from research.providers import GitHubIssuesProvider, StackExchangeProvider

logger = logging.getLogger(__name__)

BASE_PRICE = 300
PRICE_PER_RESOURCE = 5
PRICE_CAP = 5000
FREE_RESOURCE_THRESHOLD = 20
CURRENCY = 'USD'


class ComplexityFactors(BaseModel):
    """Signals gathered about a site before quoting."""
    page_count: int = 0
    estimated_pages: int = 0
    has_github: bool = False
    github_repo_count: int = 0
    has_stack_overflow: bool = False
    stack_overflow_questions: int = 0
    has_youtube: bool = False
    youtube_videos: int = 0
    has_reddit: bool = False
    reddit_discussions: int = 0
    domain_authority: str = 'medium'
    content_depth: str = 'shallow'
    technical_complexity: str = 'simple'
    total_resources: int = 0
    complexity_tier: str = 'Low'

    @property
    def has_external_presence(self) -> bool:
        return self.has_github or self.has_stack_overflow or self.has_youtube or self.has_reddit


class PricingQuote(BaseModel):
    base_price: float
    complexity_factors: ComplexityFactors
    breakdown: Dict[str, float] = Field(default_factory=dict)
    estimated_total: float
    is_free: bool = False
    free_reason: Optional[str] = None
    currency: str = CURRENCY


def content_depth(pages: int) -> str:
    if pages > 20:
        return 'deep'
    if pages > 10:
        return 'medium'
    return 'shallow'


def complexity_tier(total_resources: int) -> Tuple[str, float]:
    if total_resources > 200:
        return 'High', 2.0
    if total_resources > 50:
        return 'Medium', 1.5
    return 'Low', 1.0


def calculate_pricing(factors: ComplexityFactors) -> PricingQuote:
    """Quote = 300 + resources x 5 x tier multiplier, capped, with a free tier for tiny sites."""
    total = (factors.estimated_pages + factors.stack_overflow_questions + factors.github_repo_count
             + factors.youtube_videos + factors.reddit_discussions)
    tier, multiplier = complexity_tier(total)

    resource_value = total * PRICE_PER_RESOURCE
    raw = BASE_PRICE + resource_value * multiplier
    base_price = min(raw, PRICE_CAP)
    is_free = total < FREE_RESOURCE_THRESHOLD and not factors.has_external_presence

    if is_free:
        breakdown = {'base_pages': 0, 'external_research': 0, 'complexity': 0}
    else:
        breakdown = {
            'base_pages': BASE_PRICE,
            'external_research': resource_value,
            'complexity': resource_value * (multiplier - 1),
        }
        if raw > PRICE_CAP:
            breakdown['cap_discount'] = -(raw - PRICE_CAP)

    return PricingQuote(
        base_price=base_price,
        complexity_factors=factors.model_copy(update={'total_resources': total, 'complexity_tier': tier}),
        breakdown=breakdown,
        estimated_total=0 if is_free else base_price,
        is_free=is_free,
        free_reason=f"Starter project ({total} resources) - FREE!" if is_free else None,
        currency=CURRENCY,
    )


def classify_technical_complexity(html: str) -> str:
    """simple / moderate / complex from API wording, code samples and script count."""
    if not html:
        return 'simple'
    soup = BeautifulSoup(html, 'html.parser')
    lowered = html.lower()
    has_api = any(k in lowered for k in pipeline_config.get('pricing.api_keywords', ['api', 'endpoint']))
    has_code = bool(soup.select('pre code')) or len(soup.find_all('code')) > pipeline_config.get('pricing.min_inline_code', 5)
    many_scripts = len(soup.select('script[src]')) > pipeline_config.get('pricing.min_external_scripts', 3)

    if has_api and has_code and many_scripts:
        return 'complex'
    if has_api or has_code:
        return 'moderate'
    return 'simple'


def count_homepage_links(html: str, base_url: str) -> int:
    soup = BeautifulSoup(html, 'html.parser')
    count = 0
    for a in soup.find_all('a', href=True):
        href = a['href']
        if href.startswith('/') or href.startswith(base_url):
            count += 1
    return count


class ComplexityEstimator:
    """Builds a PricingQuote for a URL without running synthesis."""

    def __init__(self, fetcher=None, settings: Settings = None,
                 github: GitHubIssuesProvider = None, stackexchange: StackExchangeProvider = None):
        self.settings = settings or Settings()
        self.fetcher = fetcher or PageFetcher(request_timeout=self.settings.request_timeout)
        self.timeout = self.settings.request_timeout
        self.github = github or GitHubIssuesProvider(self.fetcher, self.settings)
        self.stackexchange = stackexchange or StackExchangeProvider(self.fetcher, self.settings)

    async def estimate_page_count(self, base_url: str, homepage: Optional[str]) -> int:
        """Sitemap size, else a clamped homepage link count, else a default."""
        sitemap = await soft_fail(
            self.fetcher.get_text(base_url.rstrip('/') + '/sitemap.xml', timeout=self.timeout),
            default=None, label='estimator sitemap',
        )
        locs = extract_locs(sitemap) if sitemap else []
        if locs:
            return len(locs)
        if homepage is None:
            return pipeline_config.get('pricing.default_page_estimate', 10)
        low, high = pipeline_config.get('pricing.link_estimate_bounds', [5, 100])
        return min(max(count_homepage_links(homepage, base_url), low), high)

    async def check_external_resources(self, base_url: str) -> Dict[str, int]:
        term = (urlparse(base_url).hostname or '').lower()
        if term.startswith('www.'):
            term = term[4:]
        term = term.split('.')[0]
        cap = pipeline_config.get('pricing.github_repo_cap', 10)
        github, questions = await asyncio.gather(
            soft_fail(self.github.count_repositories(term, cap=cap), default=0, label='github presence'),
            soft_fail(self.stackexchange.count_questions(term), default=0, label='stackoverflow presence'),
        )
        return {'github_repo_count': github, 'stack_overflow_questions': questions}

    async def analyze(self, url: str) -> PricingQuote:
        """Analyze url and return a quote. Raises SSRFError before any request."""
        base_url = normalize_target_url(url)
        logger.info(f"Analyzing complexity for {base_url}")

        homepage = await soft_fail(self.fetcher.get_text(base_url, timeout=self.timeout),
                                   default=None, label='estimator homepage')
        pages, external = await asyncio.gather(
            self.estimate_page_count(base_url, homepage),
            self.check_external_resources(base_url),
        )

        factors = ComplexityFactors(
            page_count=pages,
            estimated_pages=pages,
            has_github=external['github_repo_count'] > 0,
            github_repo_count=external['github_repo_count'],
            has_stack_overflow=external['stack_overflow_questions'] > 0,
            stack_overflow_questions=external['stack_overflow_questions'],
            content_depth=content_depth(pages),
            technical_complexity=classify_technical_complexity(homepage or ''),
        )
        quote = calculate_pricing(factors)
        record_quote(quote.complexity_factors.complexity_tier, quote.is_free)
        logger.info(f"Quote for {base_url}: {quote.estimated_total} {quote.currency} "
                    f"(pages={pages}, free={quote.is_free})")
        return quote

    async def _analyze_once(self, url: str) -> PricingQuote:
        try:
            return await self.analyze(url)
        finally:
            close = getattr(self.fetcher, 'close', None)
            if close is not None:
                await close()

    def estimate(self, url: str) -> PricingQuote:
        """Synchronous entry point; runs its own event loop."""
        return asyncio.run(self._analyze_once(url))


def estimate(url: str, settings: Settings = None) -> PricingQuote:
    return ComplexityEstimator(settings=settings or Settings.from_env()).estimate(url)
