"""Generative-text client for the synthesis stages.

Wraps an OpenAI-compatible chat completions endpoint in strict JSON mode.
Transport retries are disabled: a non-2xx or network failure surfaces as
`GenerationError` and the calling stage fails at once.
"""

import logging
from typing import Dict, List, Optional

import openai

from config.settings import Settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when the generative service rejects or fails a request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GenerativeClient:
    """Chat completions in JSON response mode."""

    def __init__(self, settings: Settings = None, client: openai.AsyncOpenAI = None):
        self.settings = settings or Settings()
        self.model = self.settings.llm_model
        self.temperature = self.settings.llm_temperature
        self._client = client

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.llm_base_url,
                timeout=self.settings.llm_timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, messages: List[Dict[str, str]], temperature: Optional[float] = None) -> str:
        """Send one request and return `choices[0].message.content`."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                response_format={'type': 'json_object'},
            )
        except openai.APIStatusError as e:
            raise GenerationError(f"Generative service returned HTTP {e.status_code}: {e.message}",
                                  status=e.status_code) from e
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise GenerationError(f"Generative service unreachable: {e}") from e
        except openai.OpenAIError as e:
            raise GenerationError(f"Generative service error: {e}") from e

        if not response.choices:
            raise GenerationError("Generative service returned no choices")
        return response.choices[0].message.content or ''

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
