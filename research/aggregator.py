"""External research aggregation.

Providers run concurrently, each behind `soft_fail`. Results are concatenated
in provider priority order and deduplicated by normalized URL, so the
earlier provider keeps a shared URL.
"""

import asyncio
import logging
from typing import Dict, List, Sequence

from config.pipeline_loader import pipeline_config
from observability.prometheus_metrics import record_provider_result
from pipelines.concurrency import soft_fail

from .models import ResearchBundle, ResearchResult, normalize_url
from .providers import ResearchProvider

logger = logging.getLogger(__name__)


def deduplicate(results: Sequence[ResearchResult]) -> List[ResearchResult]:
    """Keep the first result for each normalized URL."""
    seen = set()
    unique = []
    for result in results:
        key = normalize_url(result.url)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique


def quality_score(results: Sequence[ResearchResult],
                  trust_weight: float = None,
                  engagement_weight: float = None,
                  engagement_norm: float = None) -> float:
    """Weighted mean trust plus normalized mean engagement; 0 when empty."""
    if not results:
        return 0.0
    trust_weight = trust_weight if trust_weight is not None else pipeline_config.get('research.trust_weight', 0.7)
    engagement_weight = (engagement_weight if engagement_weight is not None
                         else pipeline_config.get('research.engagement_weight', 0.3))
    engagement_norm = engagement_norm or pipeline_config.get('research.engagement_norm', 5000)

    mean_trust = sum(r.trust_score for r in results) / len(results)
    mean_engagement = sum(r.engagement for r in results) / len(results)
    normalized = min(mean_engagement / engagement_norm, 1.0)
    return round(trust_weight * mean_trust + engagement_weight * normalized, 4)


class ResearchAggregator:
    """Fans out to research providers and merges their results."""

    def __init__(self, providers: Sequence[ResearchProvider], limit: int = None):
        self.providers = list(providers)
        self.limit = limit or pipeline_config.get('research.max_results_per_provider', 10)

    async def _run_provider(self, provider: ResearchProvider, product_name: str,
                            base_url: str) -> List[ResearchResult]:
        if not provider.configured:
            logger.warning(f"Research provider {provider.name} is not configured; skipping")
            record_provider_result(provider.name, 0, failure='unconfigured')
            return []

        def on_failure(e: BaseException) -> None:
            record_provider_result(provider.name, 0, failure=type(e).__name__)

        return await soft_fail(
            provider.search(product_name, base_url, self.limit),
            default=[],
            label=f"research provider {provider.name}",
            on_failure=on_failure,
        )

    async def gather(self, product_name: str, base_url: str) -> ResearchBundle:
        """Query every provider and return a deduplicated, scored bundle."""
        batches = await asyncio.gather(*(
            self._run_provider(p, product_name, base_url) for p in self.providers
        ))

        owner = {}
        concatenated = []
        for provider, batch in zip(self.providers, batches):
            for result in batch:
                owner[id(result)] = provider.name
                concatenated.append(result)

        results = deduplicate(concatenated)
        counts: Dict[str, int] = {p.name: 0 for p in self.providers}
        for result in results:
            counts[owner[id(result)]] += 1

        for name, count in counts.items():
            if count:
                record_provider_result(name, count)

        bundle = ResearchBundle(results=results, quality_score=quality_score(results), provider_counts=counts)
        logger.info(
            f"Research for {product_name}: {bundle.total_sources} sources "
            f"(quality {bundle.quality_score:.2f}, {counts})"
        )
        return bundle
