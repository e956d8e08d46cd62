"""External research providers.

Each provider wraps one community-knowledge API behind the shared
`PageFetcher`. Providers raise freely (`FetchError`,
`ProviderConfigurationError`); the aggregator owns the soft-fail policy.
"""

import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from config.pipeline_loader import pipeline_config
from config.settings import Settings
from pipelines.concurrency import fan_out

from .models import DiscussionPost, IssueThread, QAAnswer, ResearchResult, SearchResult, VideoResult
from .trust import discussion_trust, domain_trust, issue_trust, qa_trust, video_trust

logger = logging.getLogger(__name__)

SERPAPI_URL = 'https://serpapi.com/search'
BRAVE_URL = 'https://api.search.brave.com/res/v1/web/search'
STACKEXCHANGE_URL = 'https://api.stackexchange.com/2.3'
GITHUB_API_URL = 'https://api.github.com'
YOUTUBE_API_URL = 'https://www.googleapis.com/youtube/v3'
REDDIT_URL = 'https://www.reddit.com'

SNIPPET_CHARS = 500


class ProviderConfigurationError(Exception):
    """Raised when a provider is called without its credential."""
    pass


def _plain_text(html: str, limit: int = SNIPPET_CHARS) -> str:
    text = BeautifulSoup(html or '', 'html.parser').get_text(' ')
    return re.sub(r'\s+', ' ', text).strip()[:limit]


def _domain(url: str) -> str:
    try:
        return (urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


class ResearchProvider:
    """Base class for research providers."""

    name = 'provider'

    def __init__(self, fetcher, settings: Settings = None, timeout: Optional[float] = None):
        self.fetcher = fetcher
        self.settings = settings or Settings()
        self.timeout = timeout or self.settings.request_timeout

    @property
    def configured(self) -> bool:
        return True

    def _require_configured(self) -> None:
        if not self.configured:
            raise ProviderConfigurationError(f"{self.name} provider has no credential configured")

    async def search(self, product_name: str, base_url: str, limit: int = 10) -> List[ResearchResult]:
        raise NotImplementedError


class WebSearchProvider(ResearchProvider):
    """General web search: SerpAPI first, Brave as fallback, per query."""

    name = 'web'

    @property
    def configured(self) -> bool:
        return bool(self.settings.serpapi_key or self.settings.brave_api_key)

    def _backends(self) -> List[Callable[[str, int], Awaitable[List[SearchResult]]]]:
        backends = []
        if self.settings.serpapi_key:
            backends.append(self._search_serpapi)
        if self.settings.brave_api_key:
            backends.append(self._search_brave)
        return backends

    async def _search_serpapi(self, query: str, limit: int) -> List[SearchResult]:
        data = await self.fetcher.get_json(
            SERPAPI_URL,
            params={'api_key': self.settings.serpapi_key, 'q': query, 'num': str(limit), 'engine': 'google'},
            timeout=self.timeout,
        )
        results = []
        for index, item in enumerate(data.get('organic_results') or []):
            url = item.get('link') or ''
            if not url:
                continue
            results.append(SearchResult(
                url=url,
                title=item.get('title') or '',
                snippet=item.get('snippet') or '',
                source='serpapi',
                trust_score=domain_trust(url),
                position=item.get('position') or index + 1,
                domain=_domain(url),
            ))
        return results

    async def _search_brave(self, query: str, limit: int) -> List[SearchResult]:
        data = await self.fetcher.get_json(
            BRAVE_URL,
            params={'q': query, 'count': str(min(limit, 20))},
            headers={'Accept': 'application/json', 'X-Subscription-Token': self.settings.brave_api_key},
            timeout=self.timeout,
        )
        results = []
        for index, item in enumerate((data.get('web') or {}).get('results') or []):
            url = item.get('url') or ''
            if not url:
                continue
            results.append(SearchResult(
                url=url,
                title=item.get('title') or '',
                snippet=item.get('description') or '',
                source='brave',
                trust_score=domain_trust(url),
                position=index + 1,
                domain=_domain(url),
            ))
        return results

    async def search_query(self, query: str, limit: int = 10) -> List[SearchResult]:
        """Try each configured backend in order until one returns results."""
        self._require_configured()
        for backend in self._backends():
            try:
                results = await backend(query, limit)
            except Exception as e:
                logger.warning(f"Web search backend {backend.__name__} failed for {query!r}: {e}")
                continue
            if results:
                return results
            logger.debug(f"Web search backend {backend.__name__} returned nothing for {query!r}")
        return []

    async def search(self, product_name: str, base_url: str, limit: int = 10) -> List[ResearchResult]:
        self._require_configured()
        templates = pipeline_config.get('research.search_queries', ['"{product}" documentation'])
        queries = [t.format(product=product_name) for t in templates]
        batches = await fan_out(queries, lambda q: self.search_query(q, limit), concurrency=len(queries))
        merged = [r for batch in batches for r in batch]
        return merged[:limit]


class StackExchangeProvider(ResearchProvider):
    """Stack Overflow questions; works without a key at a lower quota."""

    name = 'stackexchange'

    def _params(self, **params) -> Dict[str, Any]:
        params.setdefault('site', 'stackoverflow')
        if self.settings.stackexchange_key:
            params['key'] = self.settings.stackexchange_key
        return params

    async def search(self, product_name: str, base_url: str, limit: int = 10) -> List[ResearchResult]:
        data = await self.fetcher.get_json(
            f"{STACKEXCHANGE_URL}/search/advanced",
            params=self._params(q=product_name, sort='relevance', order='desc',
                                pagesize=str(limit), filter='withbody'),
            timeout=self.timeout,
        )
        results = []
        for item in (data.get('items') or [])[:limit]:
            score = item.get('score') or 0
            answers = item.get('answer_count') or 0
            views = item.get('view_count') or 0
            accepted = bool(item.get('accepted_answer_id'))
            results.append(QAAnswer(
                url=item.get('link') or '',
                title=item.get('title') or '',
                snippet=_plain_text(item.get('body', '')),
                source='stackoverflow',
                trust_score=qa_trust(score, answers, views, accepted),
                engagement=float(views),
                score=score,
                answer_count=answers,
                view_count=views,
                is_answered=bool(item.get('is_answered')),
                tags=list(item.get('tags') or []),
            ))
        return [r for r in results if r.url]

    async def count_questions(self, term: str) -> int:
        """Number of Stack Overflow questions with `term` in the title (one page)."""
        data = await self.fetcher.get_json(
            f"{STACKEXCHANGE_URL}/search",
            params=self._params(order='desc', sort='activity', intitle=term),
            timeout=self.timeout,
        )
        return len(data.get('items') or [])


class GitHubIssuesProvider(ResearchProvider):
    """GitHub issue search. Unauthenticated calls are allowed but heavily limited."""

    name = 'github'

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/vnd.github+json'}
        if self.settings.github_token:
            headers['Authorization'] = f"Bearer {self.settings.github_token}"
        return headers

    async def search(self, product_name: str, base_url: str, limit: int = 10) -> List[ResearchResult]:
        data = await self.fetcher.get_json(
            f"{GITHUB_API_URL}/search/issues",
            params={'q': f'"{product_name}" is:issue', 'sort': 'comments', 'order': 'desc',
                    'per_page': str(limit)},
            headers=self._headers(),
            timeout=self.timeout,
        )
        results = []
        for item in (data.get('items') or [])[:limit]:
            comments = item.get('comments') or 0
            state = item.get('state') or 'open'
            results.append(IssueThread(
                url=item.get('html_url') or '',
                title=item.get('title') or '',
                snippet=(item.get('body') or '')[:SNIPPET_CHARS],
                source='github',
                trust_score=issue_trust(comments, state),
                engagement=float(comments),
                state=state,
                comments=comments,
                labels=[label.get('name', '') for label in item.get('labels') or [] if isinstance(label, dict)],
            ))
        return [r for r in results if r.url]

    async def count_repositories(self, term: str, cap: int = 10) -> int:
        """Repository search hit count, capped."""
        data = await self.fetcher.get_json(
            f"{GITHUB_API_URL}/search/repositories",
            params={'q': term, 'per_page': '5'},
            headers=self._headers(),
            timeout=self.timeout,
        )
        return min(int(data.get('total_count') or 0), cap)


class YouTubeProvider(ResearchProvider):
    name = 'youtube'

    @property
    def configured(self) -> bool:
        return bool(self.settings.youtube_api_key)

    async def search(self, product_name: str, base_url: str, limit: int = 10) -> List[ResearchResult]:
        self._require_configured()
        key = self.settings.youtube_api_key
        found = await self.fetcher.get_json(
            f"{YOUTUBE_API_URL}/search",
            params={'part': 'snippet', 'q': f"{product_name} tutorial", 'maxResults': str(limit),
                    'type': 'video', 'key': key},
            timeout=self.timeout,
        )
        ids = [(item.get('id') or {}).get('videoId') for item in found.get('items') or []]
        ids = [i for i in ids if i]
        if not ids:
            return []

        details = await self.fetcher.get_json(
            f"{YOUTUBE_API_URL}/videos",
            params={'part': 'snippet,statistics', 'id': ','.join(ids), 'key': key},
            timeout=self.timeout,
        )
        results = []
        for video in (details.get('items') or [])[:limit]:
            snippet = video.get('snippet') or {}
            stats = video.get('statistics') or {}
            views = int(stats.get('viewCount') or 0)
            likes = int(stats.get('likeCount') or 0)
            results.append(VideoResult(
                url=f"https://www.youtube.com/watch?v={video.get('id')}",
                title=snippet.get('title') or '',
                snippet=(snippet.get('description') or '')[:SNIPPET_CHARS],
                source='youtube',
                trust_score=video_trust(views, likes),
                engagement=float(views),
                views=views,
                likes=likes,
                channel=snippet.get('channelTitle') or '',
            ))
        return results


class RedditProvider(ResearchProvider):
    """Reddit search through the public JSON listing."""

    name = 'reddit'

    async def search(self, product_name: str, base_url: str, limit: int = 10) -> List[ResearchResult]:
        data = await self.fetcher.get_json(
            f"{REDDIT_URL}/search.json",
            params={'q': product_name, 'sort': 'relevance', 'limit': str(limit), 't': 'year'},
            timeout=self.timeout,
        )
        children = (data.get('data') or {}).get('children') or []
        results = []
        for child in children[:limit]:
            post = child.get('data') or {}
            permalink = post.get('permalink')
            if not permalink:
                continue
            upvotes = post.get('ups') or 0
            comments = post.get('num_comments') or 0
            results.append(DiscussionPost(
                url=f"https://www.reddit.com{permalink}",
                title=post.get('title') or '',
                snippet=(post.get('selftext') or '')[:SNIPPET_CHARS],
                source='reddit',
                trust_score=discussion_trust(upvotes, comments),
                engagement=float(upvotes),
                upvotes=upvotes,
                comments=comments,
                subreddit=post.get('subreddit') or '',
            ))
        return results


def default_providers(fetcher, settings: Settings = None) -> List[ResearchProvider]:
    """Providers in fixed priority order: web, Q&A, issues, video, discussion."""
    settings = settings or Settings()
    return [
        WebSearchProvider(fetcher, settings),
        StackExchangeProvider(fetcher, settings),
        GitHubIssuesProvider(fetcher, settings),
        YouTubeProvider(fetcher, settings),
        RedditProvider(fetcher, settings),
    ]
