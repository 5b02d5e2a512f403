"""
LLM Client

Thin wrapper around the OpenAI-compatible Groq chat completion endpoint.
Translates SDK errors into the application's error types so routes can map
them onto HTTP responses.
"""

import logging
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI

from learnverse_tutor.config import Settings
from learnverse_tutor.errors import ConfigurationError, UpstreamAPIError, UpstreamAuthError

logger = logging.getLogger(__name__)


class LLMClient:
    """Chat completion client used by every server-side service."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        if client is None:
            if not settings.groq_api_key:
                raise ConfigurationError("GROQ_API_KEY not found in environment variables")
            client = AsyncOpenAI(api_key=settings.groq_api_key, base_url=settings.groq_base_url)
        self.client = client
        self.model = settings.model

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """
        Run one chat completion.

        Args:
            messages: Role-tagged messages, system prompt first
            temperature: Sampling temperature
            max_tokens: Completion length limit

        Returns:
            Stripped completion text

        Raises:
            UpstreamAuthError: API key rejected
            UpstreamAPIError: Any other API failure or an empty completion
        """
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.AuthenticationError as e:
            logger.error(f"❌ [LLMClient] Authentication failed: {e}")
            raise UpstreamAuthError("Invalid API key", status_code=401) from e
        except openai.APIStatusError as e:
            logger.error(f"❌ [LLMClient] API error {e.status_code}: {e}")
            raise UpstreamAPIError(f"Groq API error: {e.status_code}", status_code=e.status_code) from e
        except openai.APIError as e:
            logger.error(f"❌ [LLMClient] Request failed: {e}")
            raise UpstreamAPIError(f"Groq API error: {e}") from e

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        if not content:
            raise UpstreamAPIError("Invalid response format from Groq API")
        return content.strip()

    async def close(self) -> None:
        await self.client.close()
