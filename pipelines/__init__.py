"""Pipelines package for Sitescribe.

Provides URL heuristics, SSRF protection, page fetching, sitemap resolution,
site discovery and content extraction.
"""

from .concurrency import RateLimiter, fan_out, soft_fail
from .discovery import SiteDiscovery, SiteStructure, UNKNOWN_PRODUCT
from .extraction import ContentExtractor, ExtractedPage, build_candidate_urls, parse_page
from .fetcher import FetchError, PageFetcher
from .heuristics import dedupe, is_doc_like, same_site
from .security import SSRFError, check_url_ssrf, normalize_target_url, validate_url_security
from .sitemap import SitemapResolver

__all__ = [
    # Combinators
    'RateLimiter',
    'fan_out',
    'soft_fail',

    # Discovery
    'SiteDiscovery',
    'SiteStructure',
    'UNKNOWN_PRODUCT',
    'SitemapResolver',

    # Extraction
    'ContentExtractor',
    'ExtractedPage',
    'build_candidate_urls',
    'parse_page',

    # Fetching
    'FetchError',
    'PageFetcher',

    # Heuristics
    'dedupe',
    'is_doc_like',
    'same_site',

    # Security
    'SSRFError',
    'check_url_ssrf',
    'normalize_target_url',
    'validate_url_security',
]
