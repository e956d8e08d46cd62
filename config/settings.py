"""Runtime settings for Sitescribe.

Credentials and service endpoints come from the environment. A missing
provider credential is not an error here: the provider that needs it
degrades to an empty result list at call time.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in {'1', 'true', 'yes', 'on'}


class Settings(BaseModel):
    """Service settings."""

    # Generative-text service (OpenAI-compatible)
    openai_api_key: Optional[str] = Field(default=None, description="API key for the generative-text service")
    llm_base_url: Optional[str] = Field(default=None, description="Override base URL for OpenAI-compatible providers")
    llm_model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    llm_temperature: float = Field(default=0.3, description="Sampling temperature for all stages")
    llm_timeout: float = Field(default=90.0, description="Per-request timeout in seconds")
    max_repairs: int = Field(default=2, description="JSON repair requests allowed per stage")

    # Research providers
    serpapi_key: Optional[str] = None
    brave_api_key: Optional[str] = None
    github_token: Optional[str] = None
    stackexchange_key: Optional[str] = None
    youtube_api_key: Optional[str] = None

    # Crawling
    request_timeout: float = Field(default=5.0, description="Timeout for page and provider requests")
    crawl_delay: float = Field(default=0.5, description="Delay between sequential page fetches")

    # Persistence
    database_url: str = Field(default="sqlite:///sitescribe.db", description="SQLAlchemy database URL")

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> 'Settings':
        """Create settings from environment variables."""
        return cls(
            openai_api_key=os.getenv('OPENAI_API_KEY') or None,
            llm_base_url=os.getenv('SITESCRIBE_LLM_BASE_URL') or None,
            llm_model=os.getenv('SITESCRIBE_LLM_MODEL', 'gpt-4o-mini'),
            llm_temperature=_env_float('SITESCRIBE_LLM_TEMPERATURE', '0.3'),
            llm_timeout=_env_float('SITESCRIBE_LLM_TIMEOUT', '90'),
            max_repairs=int(os.getenv('SITESCRIBE_MAX_REPAIRS', '2')),
            serpapi_key=os.getenv('SERPAPI_KEY') or None,
            brave_api_key=os.getenv('BRAVE_API_KEY') or None,
            github_token=os.getenv('GITHUB_TOKEN') or None,
            stackexchange_key=os.getenv('STACKEXCHANGE_API_KEY') or None,
            youtube_api_key=os.getenv('YOUTUBE_API_KEY') or None,
            request_timeout=_env_float('SITESCRIBE_REQUEST_TIMEOUT', '5'),
            crawl_delay=_env_float('SITESCRIBE_CRAWL_DELAY', '0.5'),
            database_url=os.getenv('SITESCRIBE_DATABASE_URL', 'sqlite:///sitescribe.db'),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_json=_env_bool('LOG_JSON'),
        )
