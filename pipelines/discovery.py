"""Site discovery: resolve a base URL into candidate documentation pages.

Every step is independently soft-failed. When the homepage itself cannot be
fetched, discovery returns a degraded structure rather than aborting, so the
run still reaches synthesis.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup

from config.pipeline_loader import pipeline_config

from .concurrency import fan_out, soft_fail
from .heuristics import dedupe, strip_www
from .sitemap import SitemapResolver

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"
NAV_SELECTOR = 'nav a, header a, .menu a, .navigation a, .navbar a'


@dataclass(frozen=True)
class SiteStructure:
    """Candidate documentation URLs found for one site."""
    product_name: str
    base_url: str
    valid_doc_paths: Tuple[str, ...] = ()
    nav_links: Tuple[str, ...] = ()
    all_internal_links: Tuple[str, ...] = ()
    sitemap_urls: Tuple[str, ...] = ()
    discovered_hosts: Tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return self.product_name == UNKNOWN_PRODUCT and not any(
            (self.valid_doc_paths, self.nav_links, self.all_internal_links, self.sitemap_urls)
        )

    def to_dict(self) -> dict:
        return {
            'product_name': self.product_name,
            'base_url': self.base_url,
            'valid_doc_paths': list(self.valid_doc_paths),
            'nav_links': list(self.nav_links),
            'all_internal_links': list(self.all_internal_links),
            'sitemap_urls': list(self.sitemap_urls),
            'discovered_hosts': list(self.discovered_hosts),
        }


def _clean_link(href: str, base_url: str) -> Optional[str]:
    """Absolute http(s) URL without fragment, or None."""
    if not href:
        return None
    href = href.strip()
    if href.startswith(('mailto:', 'javascript:', 'tel:', '#')):
        return None
    try:
        parsed = urlparse(urljoin(base_url, href))
    except ValueError:
        return None
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    return urlunparse(parsed._replace(fragment=''))


def extract_product_name(soup: BeautifulSoup) -> str:
    """Title text before a `|` separator, else the first h1."""
    if soup.title and soup.title.string:
        name = soup.title.get_text().split('|')[0].strip()
        if name:
            return name
    h1 = soup.find('h1')
    if h1:
        name = h1.get_text(strip=True)
        if name:
            return name
    return UNKNOWN_PRODUCT


def extract_internal_links(soup: BeautifulSoup, base_url: str, limit: int = 200) -> List[str]:
    """Links on exactly the base URL's host, deduplicated and capped."""
    host = urlparse(base_url).hostname
    links = []
    for a in soup.find_all('a', href=True):
        link = _clean_link(a['href'], base_url)
        if link and urlparse(link).hostname == host:
            links.append(link)
    return dedupe(links)[:limit]


def extract_nav_links(soup: BeautifulSoup, base_url: str, keywords: List[str]) -> List[str]:
    """Links from navigation containers whose href mentions a nav keyword."""
    links = []
    for a in soup.select(NAV_SELECTOR):
        href = a.get('href') or ''
        if any(k in href.lower() for k in keywords):
            link = _clean_link(href, base_url)
            if link:
                links.append(link)
    return dedupe(links)


class SiteDiscovery:
    """Discovers documentation candidates for a product website."""

    def __init__(self, fetcher, sitemap_resolver: SitemapResolver = None,
                 probe_timeout: Optional[float] = None, concurrency: int = None):
        self.fetcher = fetcher
        self.sitemap_resolver = sitemap_resolver or SitemapResolver(fetcher, timeout=probe_timeout)
        self.probe_timeout = probe_timeout
        self.concurrency = concurrency or pipeline_config.get('discovery.probe_concurrency', 5)
        self.doc_paths = pipeline_config.get('discovery.doc_paths', [])
        self.subdomains = pipeline_config.get('discovery.subdomains', [])
        self.nav_keywords = pipeline_config.get('heuristics.nav_keywords', [])
        self.max_internal_links = pipeline_config.get('discovery.max_internal_links', 200)

    async def _probe(self, url: str) -> Optional[str]:
        found = await soft_fail(self.fetcher.exists(url, timeout=self.probe_timeout),
                                default=False, label=f"probe {url}")
        return url if found else None

    async def probe_subdomains(self, base_url: str) -> List[str]:
        """Return hosts like docs.example.com that answer with a 2xx."""
        parsed = urlparse(base_url)
        base_host = strip_www(parsed.hostname or '')
        if not base_host:
            return []
        candidates = [f"{parsed.scheme}://{sub}.{base_host}/" for sub in self.subdomains]
        results = await fan_out(candidates, self._probe, self.concurrency)
        return [urlparse(u).netloc for u in results if u]

    async def probe_doc_paths(self, roots: List[str]) -> List[str]:
        """Return root × doc-path URLs that exist."""
        candidates = [urljoin(root.rstrip('/') + '/', path.lstrip('/'))
                      for root in roots for path in self.doc_paths]
        results = await fan_out(candidates, self._probe, self.concurrency)
        return dedupe(u for u in results if u)

    async def discover(self, base_url: str) -> SiteStructure:
        """Resolve base_url into a SiteStructure."""
        html = await soft_fail(self.fetcher.get_text(base_url), default=None,
                               label=f"homepage {base_url}")
        if not html:
            logger.warning(f"Homepage fetch failed for {base_url}; continuing with an empty site structure")
            return SiteStructure(product_name=UNKNOWN_PRODUCT, base_url=base_url)

        try:
            soup = BeautifulSoup(html, 'html.parser')
        except Exception as e:
            logger.warning(f"Failed to parse homepage {base_url}: {e}")
            return SiteStructure(product_name=UNKNOWN_PRODUCT, base_url=base_url)

        product_name = extract_product_name(soup)
        logger.info(f"Analyzing {product_name} at {base_url}")

        hosts = await self.probe_subdomains(base_url)
        if hosts:
            logger.info(f"Discovered {len(hosts)} subdomains: {', '.join(hosts[:3])}")

        scheme = urlparse(base_url).scheme or 'https'
        roots = [base_url] + [f"{scheme}://{h}" for h in hosts]
        valid_paths = await self.probe_doc_paths(roots)
        logger.info(f"Found {len(valid_paths)} documentation paths")

        internal_links = extract_internal_links(soup, base_url, self.max_internal_links)
        nav_links = extract_nav_links(soup, base_url, self.nav_keywords)

        sitemap_urls = await soft_fail(self.sitemap_resolver.resolve(base_url, hosts),
                                       default=[], label=f"sitemaps {base_url}")

        return SiteStructure(
            product_name=product_name,
            base_url=base_url,
            valid_doc_paths=tuple(valid_paths),
            nav_links=tuple(nav_links),
            all_internal_links=tuple(internal_links[:self.max_internal_links]),
            sitemap_urls=tuple(sitemap_urls[:self.sitemap_resolver.max_urls]),
            discovered_hosts=tuple(hosts),
        )
