"""External research aggregation for Sitescribe."""

from .aggregator import ResearchAggregator, deduplicate, quality_score
from .models import (
    DiscussionPost,
    IssueThread,
    QAAnswer,
    ResearchBundle,
    ResearchResult,
    SearchResult,
    VideoResult,
    normalize_url,
)
from .providers import (
    GitHubIssuesProvider,
    ProviderConfigurationError,
    RedditProvider,
    ResearchProvider,
    StackExchangeProvider,
    WebSearchProvider,
    YouTubeProvider,
    default_providers,
)

__all__ = [
    'ResearchAggregator',
    'deduplicate',
    'quality_score',
    'DiscussionPost',
    'IssueThread',
    'QAAnswer',
    'ResearchBundle',
    'ResearchResult',
    'SearchResult',
    'VideoResult',
    'normalize_url',
    'GitHubIssuesProvider',
    'ProviderConfigurationError',
    'RedditProvider',
    'ResearchProvider',
    'StackExchangeProvider',
    'WebSearchProvider',
    'YouTubeProvider',
    'default_providers',
]
