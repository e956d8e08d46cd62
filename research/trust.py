"""Heuristic trust scores for research results.

Scores start from a per-kind base and add bonuses from configured bands.
A band list holds `[threshold, bonus]` pairs; the first threshold strictly
exceeded by the value applies. Results are clamped to [0, 1].
"""

from typing import Any, Dict, Iterable, Optional, Sequence
from urllib.parse import urlparse

from config.pipeline_loader import pipeline_config


def band_bonus(value: float, bands: Iterable[Sequence[float]]) -> float:
    for threshold, bonus in bands or []:
        if value > threshold:
            return bonus
    return 0.0


def _clamp(score: float) -> float:
    return round(max(0.0, min(score, 1.0)), 4)


def _bands(kind: str, bands: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return bands if bands is not None else pipeline_config.get_trust_bands(kind)


def qa_trust(score: int, answers: int, views: int, accepted: bool,
             bands: Dict[str, Any] = None) -> float:
    b = _bands('qa', bands)
    total = b.get('base', 0.5)
    total += band_bonus(score, b.get('score'))
    total += band_bonus(answers, b.get('answers'))
    total += band_bonus(views, b.get('views'))
    if accepted:
        total += b.get('accepted_bonus', 0.0)
    return _clamp(total)


def issue_trust(comments: int, state: str, bands: Dict[str, Any] = None) -> float:
    b = _bands('issue', bands)
    total = b.get('base', 0.6) + band_bonus(comments, b.get('comments'))
    if state == 'closed':
        total += b.get('closed_bonus', 0.0)
    return _clamp(total)


def video_trust(views: int, likes: int, dislikes: int = 0, bands: Dict[str, Any] = None) -> float:
    b = _bands('video', bands)
    total = b.get('base', 0.5)
    bonus = band_bonus(views, b.get('views'))
    if bonus:
        total += bonus
    elif views < b.get('low_views', 1000):
        total -= b.get('low_views_penalty', 0.0)
    reactions = likes + dislikes
    if reactions > 0:
        total += band_bonus(likes / reactions, b.get('like_ratio'))
    return _clamp(total)


def discussion_trust(upvotes: int, comments: int, bands: Dict[str, Any] = None) -> float:
    b = _bands('discussion', bands)
    total = b.get('base', 0.5)
    total += band_bonus(upvotes, b.get('upvotes'))
    total += band_bonus(comments, b.get('comments'))
    return _clamp(total)


def domain_trust(url: str, accepted: bool = False, bands: Dict[str, Any] = None) -> float:
    """Trust for a plain web search hit, judged by its domain."""
    b = _bands('web', bands)
    try:
        domain = (urlparse(url).hostname or '').lower()
    except ValueError:
        domain = ''

    if any(word in domain for word in ('docs', 'documentation', 'developer', 'api')):
        return b.get('official_docs', 0.95)
    if 'stackoverflow.com' in domain:
        if accepted:
            return b.get('stackoverflow_accepted', 0.9)
        return b.get('stackoverflow_default', 0.7)
    if 'github.com' in domain:
        return b.get('github', 0.75)
    if 'youtube.com' in domain:
        return b.get('youtube', 0.7)
    if any(blog in domain for blog in b.get('blog_domains', [])):
        return b.get('blog', 0.65)
    return b.get('unknown', 0.4)
