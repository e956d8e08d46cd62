"""Sitemap resolution for site discovery.

`<loc>` entries are pulled out with a regular expression rather than an XML
parser, so malformed XML simply yields no matches.
"""

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlparse

from config.pipeline_loader import pipeline_config

from .concurrency import fan_out, soft_fail
from .heuristics import dedupe, is_doc_like, same_site, strip_www

logger = logging.getLogger(__name__)

LOC_PATTERN = re.compile(r'<loc>\s*([^<]+?)\s*</loc>', re.IGNORECASE)


def extract_locs(xml: str) -> List[str]:
    """Return every `<loc>` value in document order."""
    return [m.strip() for m in LOC_PATTERN.findall(xml or '')]


def filter_sitemap_urls(locs: Iterable[str], root_url: str, max_urls: int = 200) -> List[str]:
    """Keep same-site, documentation-like URLs, capped at max_urls."""
    base_host = strip_www(urlparse(root_url).hostname or '')
    kept = []
    for loc in locs:
        if same_site(loc, base_host) and is_doc_like(loc):
            kept.append(loc)
            if len(kept) >= max_urls:
                break
    return kept


class SitemapResolver:
    """Fetches sitemap.xml / sitemap_index.xml for a root and alternate hosts."""

    def __init__(self, fetcher, timeout: Optional[float] = None,
                 max_urls: int = None, concurrency: int = None):
        self.fetcher = fetcher
        self.timeout = timeout
        self.max_urls = max_urls or pipeline_config.get('sitemap.max_urls', 200)
        self.paths = pipeline_config.get('sitemap.paths', ['/sitemap.xml', '/sitemap_index.xml'])
        self.concurrency = concurrency or pipeline_config.get('discovery.probe_concurrency', 5)

    def _roots(self, base_url: str, extra_hosts: Iterable[str]) -> List[str]:
        scheme = urlparse(base_url).scheme or 'https'
        return dedupe([base_url] + [f"{scheme}://{host}" for host in extra_hosts])

    async def _fetch_one(self, target: str, root: str) -> List[str]:
        xml = await soft_fail(
            self.fetcher.get_text(target, timeout=self.timeout),
            default=None,
            label=f"sitemap {target}",
        )
        if not xml:
            return []
        return filter_sitemap_urls(extract_locs(xml), root, self.max_urls)

    async def resolve(self, base_url: str, extra_hosts: Iterable[str] = ()) -> List[str]:
        """Return deduplicated documentation URLs from every root's sitemaps."""
        combos = [
            (urljoin(root.rstrip('/') + '/', path.lstrip('/')), root)
            for root in self._roots(base_url, extra_hosts)
            for path in self.paths
        ]

        async def worker(combo):
            target, root = combo
            return await self._fetch_one(target, root)

        results = await fan_out(combos, worker, self.concurrency)
        urls = dedupe(u for batch in results for u in batch)[:self.max_urls]
        if urls:
            logger.info(f"Sitemaps yielded {len(urls)} documentation URLs for {base_url}")
        return urls
