"""Content extraction for discovered documentation pages.

Pages are fetched one at a time behind a rate limiter. Failed pages are
skipped, so the returned list keeps candidate order with gaps closed.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from trafilatura import extract

from config.pipeline_loader import pipeline_config

from .concurrency import RateLimiter, soft_fail
from .discovery import SiteStructure
from .heuristics import dedupe, is_doc_like

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = pipeline_config.get('extraction.max_content_chars', 5000)
CODE_SELECTOR = 'pre code, pre, .code-block, .highlight'
CONTENT_SELECTOR = 'main, article, .content, .post-content, .entry-content'
LANGUAGE_CLASS = re.compile(r'language-(\w+)')
WHITESPACE = re.compile(r'\s+')


@dataclass
class ExtractedPage:
    url: str
    title: str
    content: str
    excerpt: str = ''
    code_blocks: List[Dict[str, str]] = field(default_factory=list)
    images: List[Dict[str, str]] = field(default_factory=list)
    headings: List[Dict[str, Any]] = field(default_factory=list)
    word_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'title': self.title,
            'content': self.content,
            'excerpt': self.excerpt,
            'code_blocks': self.code_blocks,
            'images': self.images,
            'headings': self.headings,
            'word_count': self.word_count,
        }


def build_candidate_urls(structure: SiteStructure) -> List[str]:
    """Merge discovery's URL sets into one ordered, doc-like candidate list."""
    merged = dedupe(
        list(structure.valid_doc_paths)
        + list(structure.nav_links)
        + list(structure.sitemap_urls)
        + list(structure.all_internal_links)
    )
    return [u for u in merged if is_doc_like(u)]


def _code_blocks(soup: BeautifulSoup, min_chars: int) -> List[Dict[str, str]]:
    blocks = []
    seen = set()
    for el in soup.select(CODE_SELECTOR):
        code = el.get_text().strip()
        if len(code) < min_chars or code in seen:
            continue
        seen.add(code)
        classes = ' '.join(el.get('class') or [])
        if el.name == 'pre' and not classes:
            inner = el.find('code')
            if inner is not None:
                classes = ' '.join(inner.get('class') or [])
        match = LANGUAGE_CLASS.search(classes)
        blocks.append({'language': match.group(1) if match else 'text', 'code': code})
    return blocks


def _images(soup: BeautifulSoup, url: str, exclude: List[str], limit: int) -> List[Dict[str, str]]:
    images = []
    for img in soup.find_all('img'):
        src = img.get('src')
        if not src or src.startswith('data:'):
            continue
        lowered = src.lower()
        if any(word in lowered for word in exclude):
            continue
        images.append({'src': urljoin(url, src), 'alt': img.get('alt') or ''})
        if len(images) >= limit:
            break
    return images


def _headings(soup: BeautifulSoup) -> List[Dict[str, Any]]:
    headings = []
    for h in soup.find_all(['h1', 'h2', 'h3', 'h4']):
        text = h.get_text(strip=True)
        if text:
            headings.append({'level': int(h.name[1]), 'text': text})
    return headings


def _main_text(soup: BeautifulSoup, html: str) -> str:
    container = soup.select_one(CONTENT_SELECTOR)
    if container is not None:
        text = container.get_text(' ')
    else:
        text = extract(html) or ''
        if len(text.strip()) < 40 and soup.body is not None:
            text = soup.body.get_text(' ')
    return WHITESPACE.sub(' ', text).strip()


def parse_page(url: str, html: str, max_chars: int = None) -> ExtractedPage:
    """Parse one HTML document into an ExtractedPage."""
    max_chars = max_chars or MAX_CONTENT_CHARS
    soup = BeautifulSoup(html, 'html.parser')

    title = ''
    if soup.title and soup.title.string:
        title = soup.title.get_text(strip=True)
    if not title:
        h1 = soup.find('h1')
        title = h1.get_text(strip=True) if h1 else ''
    title = title or 'Untitled'

    meta = soup.find('meta', attrs={'name': 'description'})
    excerpt = (meta.get('content') or '').strip() if meta else ''

    code_blocks = _code_blocks(soup, pipeline_config.get('extraction.min_code_chars', 10))
    images = _images(
        soup, url,
        pipeline_config.get('heuristics.image_exclude', ['logo', 'icon', 'avatar']),
        pipeline_config.get('extraction.max_images_per_page', 20),
    )
    headings = _headings(soup)

    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    text = _main_text(soup, html)

    return ExtractedPage(
        url=url,
        title=title,
        content=text[:max_chars],
        excerpt=excerpt or text[:200],
        code_blocks=code_blocks,
        images=images,
        headings=headings,
        word_count=len(text.split()),
    )


class ContentExtractor:
    """Sequential, rate-limited extraction over candidate URLs."""

    def __init__(self, fetcher, rate_limiter: Optional[RateLimiter] = None,
                 first_pass: int = None, second_pass_end: int = None, min_pages: int = None):
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter or RateLimiter(
            pipeline_config.get('extraction.request_delay', 0.5))
        self.first_pass = first_pass or pipeline_config.get('extraction.first_pass', 60)
        self.second_pass_end = second_pass_end or pipeline_config.get('extraction.second_pass_end', 200)
        self.min_pages = min_pages or pipeline_config.get('extraction.min_pages', 15)

    async def _extract_one(self, url: str) -> Optional[ExtractedPage]:
        await self.rate_limiter.wait()
        html = await soft_fail(self.fetcher.get_text(url), default=None, label=f"fetch {url}")
        if not html:
            return None
        try:
            return parse_page(url, html)
        except Exception as e:
            logger.warning(f"Failed to parse {url}: {e}")
            return None

    async def extract_batch(self, urls: List[str]) -> List[ExtractedPage]:
        """Extract pages in input order; failures are omitted."""
        pages = []
        for url in urls:
            page = await self._extract_one(url)
            if page is not None:
                pages.append(page)
        return pages

    async def extract(self, candidates: List[str]) -> List[ExtractedPage]:
        """Two-pass extraction: the first slice, then more if under the page target."""
        pages = await self.extract_batch(candidates[:self.first_pass])
        logger.info(f"Extracted {len(pages)} of {min(len(candidates), self.first_pass)} candidate pages")

        if len(pages) < self.min_pages and len(candidates) > self.first_pass:
            extra = await self.extract_batch(candidates[self.first_pass:self.second_pass_end])
            logger.info(f"Second pass extracted {len(extra)} additional pages")
            pages.extend(extra)

        if len(pages) < self.min_pages:
            logger.warning(f"Only {len(pages)} pages extracted; below target of {self.min_pages}")
        return pages

    async def extract_site(self, structure: SiteStructure) -> List[ExtractedPage]:
        return await self.extract(build_candidate_urls(structure))
