"""Configuration loader for pipeline heuristics.

Keyword sets, probe lists, caps and trust bands used by discovery,
extraction and research are plain configuration. Defaults live here and can
be overridden from a YAML file.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    'user_agent': (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36'
    ),
    'heuristics': {
        'doc_keywords': [
            'doc', 'help', 'support', 'guide', 'tutorial', 'api', 'developer',
            'faq', 'question', 'blog', 'article', 'changelog', 'release',
            'update', 'resource', 'learn', 'integration', 'pricing',
            'security', 'status', 'knowledge', 'kb', 'community', 'forum',
        ],
        'nav_keywords': ['doc', 'help', 'support', 'guide', 'tutorial', 'blog', 'api'],
        'image_exclude': ['logo', 'icon', 'avatar'],
    },
    'discovery': {
        'doc_paths': [
            '/docs', '/documentation', '/help', '/support', '/help-center',
            '/blog', '/articles', '/api', '/api-docs', '/developers',
            '/guides', '/tutorials', '/getting-started', '/faq', '/questions',
            '/changelog', '/updates', '/releases', '/resources', '/learn',
            '/community', '/forum', '/knowledge-base', '/kb', '/integrations',
        ],
        'subdomains': [
            'docs', 'help', 'support', 'developer', 'dev', 'community',
            'forum', 'api', 'blog',
        ],
        'probe_concurrency': 5,
        'max_internal_links': 200,
    },
    'sitemap': {
        'paths': ['/sitemap.xml', '/sitemap_index.xml'],
        'max_urls': 200,
    },
    'extraction': {
        'max_content_chars': 5000,
        'first_pass': 60,
        'second_pass_end': 200,
        'min_pages': 15,
        'min_code_chars': 10,
        'max_images_per_page': 20,
        'request_delay': 0.5,
    },
    'research': {
        'max_results_per_provider': 10,
        'search_queries': [
            '"{product}" documentation',
            '"{product}" tutorial getting started',
            '"{product}" common issues troubleshooting',
        ],
        'engagement_norm': 5000,
        'trust_weight': 0.7,
        'engagement_weight': 0.3,
        # Bands are (threshold, bonus) pairs checked in order; first match wins.
        'trust_bands': {
            'qa': {
                'base': 0.5,
                'score': [[10, 0.3], [5, 0.2], [0, 0.1]],
                'answers': [[5, 0.3], [2, 0.2], [0, 0.1]],
                'views': [[1000, 0.2], [500, 0.1]],
                'accepted_bonus': 0.2,
            },
            'issue': {
                'base': 0.6,
                'comments': [[10, 0.2], [3, 0.1]],
                'closed_bonus': 0.1,
            },
            'video': {
                'base': 0.5,
                'views': [[1000000, 0.3], [100000, 0.2], [10000, 0.1]],
                'low_views': 1000,
                'low_views_penalty': 0.2,
                'like_ratio': [[0.9, 0.2], [0.8, 0.1]],
            },
            'discussion': {
                'base': 0.5,
                'upvotes': [[100, 0.3], [50, 0.2], [10, 0.1]],
                'comments': [[20, 0.2], [5, 0.1]],
            },
            'web': {
                'official_docs': 0.95,
                'stackoverflow_accepted': 0.9,
                'stackoverflow_default': 0.7,
                'github': 0.75,
                'youtube': 0.7,
                'blog': 0.65,
                'unknown': 0.4,
                'blog_domains': ['dev.to', 'medium.com', 'smashingmagazine.com', 'css-tricks.com'],
            },
        },
    },
    'pricing': {
        'api_keywords': ['api', 'endpoint'],
        'min_inline_code': 5,
        'min_external_scripts': 3,
        'link_estimate_bounds': [5, 100],
        'default_page_estimate': 10,
        'github_repo_cap': 10,
    },
    'synthesis': {
        'max_repairs': 2,
        # Per product complexity: pages and research results sent to stage 1.
        'limits': {
            'small': {'pages': 5, 'research': 15, 'truncate': 1000},
            'medium': {'pages': 8, 'research': 30, 'truncate': 1000},
            'large': {'pages': 10, 'research': 45, 'truncate': 1000},
        },
    },
}


class PipelineConfig:
    """Pipeline configuration manager."""

    def __init__(self, config_path: str = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config = self._load_config()

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        possible_paths = [
            os.environ.get('SITESCRIBE_PIPELINE_CONFIG'),
            os.path.join(os.getcwd(), 'config', 'pipeline.yaml'),
            os.path.join(Path(__file__).parent, 'pipeline.yaml'),
            os.path.join(os.path.expanduser('~'), '.sitescribe', 'pipeline.yaml'),
        ]

        for path in possible_paths:
            if path and os.path.exists(path):
                return path

        return os.path.join(Path(__file__).parent, 'pipeline.yaml')

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults."""
        config = copy.deepcopy(DEFAULT_CONFIG)

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    file_config = yaml.safe_load(f) or {}
                config = self._deep_merge(config, file_config)
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load pipeline config from {self.config_path}: {e}; using defaults")
        else:
            logger.debug(f"Pipeline config file not found at {self.config_path}, using defaults")

        return config

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        value = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_user_agent(self) -> str:
        return self.get('user_agent', DEFAULT_CONFIG['user_agent'])

    def get_doc_keywords(self) -> List[str]:
        return list(self.get('heuristics.doc_keywords', []))

    def get_trust_bands(self, kind: str) -> Dict[str, Any]:
        return self.get(f'research.trust_bands.{kind}', {})

    def get_synthesis_limits(self, complexity: str) -> Dict[str, int]:
        limits = self.get('synthesis.limits', {})
        return limits.get(complexity) or limits.get('medium', {'pages': 8, 'research': 30, 'truncate': 1000})

    def reload(self, config_path: Optional[str] = None) -> None:
        """Reload configuration from disk."""
        if config_path:
            self.config_path = config_path
        self._config = self._load_config()


# Global pipeline configuration instance
pipeline_config = PipelineConfig()
