"""Data models for external research results."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List
from urllib.parse import urlparse


def normalize_url(url: str) -> str:
    """Canonical form used for deduplication.

    Lowercases scheme and host, drops `www.`, query, fragment and a trailing
    slash.
    """
    try:
        parsed = urlparse((url or '').strip())
    except ValueError:
        return (url or '').strip().lower()
    host = (parsed.hostname or '').lower()
    if host.startswith('www.'):
        host = host[4:]
    path = (parsed.path or '').rstrip('/')
    return f"{host}{path}".lower()


@dataclass
class ResearchResult:
    url: str
    title: str
    snippet: str = ''
    source: str = ''
    trust_score: float = 0.5
    engagement: float = 0.0
    kind: str = 'search'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SearchResult(ResearchResult):
    position: int = 0
    domain: str = ''
    kind: str = 'search'


@dataclass
class QAAnswer(ResearchResult):
    score: int = 0
    answer_count: int = 0
    view_count: int = 0
    is_answered: bool = False
    tags: List[str] = field(default_factory=list)
    kind: str = 'qa'


@dataclass
class IssueThread(ResearchResult):
    state: str = 'open'
    comments: int = 0
    labels: List[str] = field(default_factory=list)
    kind: str = 'issue'


@dataclass
class VideoResult(ResearchResult):
    views: int = 0
    likes: int = 0
    channel: str = ''
    kind: str = 'video'


@dataclass
class DiscussionPost(ResearchResult):
    upvotes: int = 0
    comments: int = 0
    subreddit: str = ''
    kind: str = 'discussion'


@dataclass
class ResearchBundle:
    results: List[ResearchResult] = field(default_factory=list)
    quality_score: float = 0.0
    provider_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def total_sources(self) -> int:
        return sum(self.provider_counts.values())

    def urls(self) -> List[str]:
        return [r.url for r in self.results]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [r.to_dict() for r in self.results],
            'quality_score': self.quality_score,
            'total_sources': self.total_sources,
            'provider_counts': dict(self.provider_counts),
        }
