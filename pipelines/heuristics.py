"""URL heuristics shared by discovery, sitemap resolution and extraction."""

import re
from typing import Iterable, Optional, Pattern
from urllib.parse import urlparse

from config.pipeline_loader import pipeline_config

_pattern_cache = {}


def _keyword_pattern(keywords: Iterable[str]) -> Pattern:
    key = tuple(keywords)
    if key not in _pattern_cache:
        _pattern_cache[key] = re.compile('|'.join(re.escape(k) for k in key), re.IGNORECASE)
    return _pattern_cache[key]


def strip_www(host: str) -> str:
    host = (host or '').lower()
    return host[4:] if host.startswith('www.') else host


def is_doc_like(url: str, keywords: Optional[Iterable[str]] = None) -> bool:
    """Return True if the URL's host or path looks documentation-relevant."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.netloc:
        return False

    words = list(keywords) if keywords is not None else pipeline_config.get_doc_keywords()
    if not words:
        return False
    pattern = _keyword_pattern(words)
    return bool(pattern.search(parsed.path or '') or pattern.search(parsed.netloc))


def same_site(url: str, base_host: str) -> bool:
    """True if url's host equals base_host or is one of its subdomains."""
    try:
        host = strip_www(urlparse(url).hostname or '')
    except ValueError:
        return False
    base = strip_www(base_host)
    if not host or not base:
        return False
    return host == base or host.endswith('.' + base)


def dedupe(urls: Iterable[str]) -> list:
    """Drop duplicates while keeping first-seen order."""
    seen = set()
    out = []
    for u in urls:
        if u not in seen:
            seen.add(u)
            out.append(u)
    return out
