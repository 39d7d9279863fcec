from __future__ import annotations
import logging

from openai import OpenAI, OpenAIError

from app.config import settings
from app.errors import UpstreamError

logger = logging.getLogger(__name__)

SYSTEM_MSG = (
    "You extract structured job postings from web search results. "
    "Follow the requested output format exactly and add no commentary."
)


class CompletionClient:
    """Prompt in, text out. No retries: a failed call fails the request."""

    def __init__(
        self,
        api_key: str | None,
        model: str = settings.LLM_MODEL,
        temperature: float = settings.LLM_TEMPERATURE,
        timeout: float = settings.REQUEST_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._client: OpenAI | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def complete(self, prompt: str) -> str:
        logger.info("Calling %s to parse search results", self.model)
        try:
            resp = self._get_client().chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": SYSTEM_MSG},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as e:
            logger.error("Completion call failed: %s", e)
            raise UpstreamError(f"Language model error: {e}") from e

        text = (resp.choices[0].message.content or "") if resp.choices else ""
        logger.debug("Raw completion (first 500 chars): %s", text[:500])
        return text


def get_completion_client() -> CompletionClient:
    return CompletionClient(settings.OPENAI_API_KEY)
