from __future__ import annotations
import logging

import requests

from app.config import settings
from app.schemas import SearchResult

logger = logging.getLogger(__name__)

# Biases the engine toward postings rather than salary guides and articles.
QUERY_SUFFIX = " job openings"


class GoogleSearchClient:
    """Thin client over the Google Custom Search JSON API."""

    def __init__(
        self,
        api_key: str | None,
        cx: str | None,
        base_url: str = settings.GOOGLE_SEARCH_URL,
        num: int = settings.SEARCH_RESULT_COUNT,
        timeout: float = settings.REQUEST_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.cx = cx
        self.base_url = base_url
        self.num = num
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.cx)

    def search(self, query: str) -> list[SearchResult]:
        """Return up to ``num`` results, or [] when the call fails for any reason."""
        params = {
            "key": self.api_key,
            "cx": self.cx,
            "q": query + QUERY_SUFFIX,
            "num": self.num,
        }
        try:
            r = requests.get(self.base_url, params=params, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Google search failed for %r: %s", query, e)
            return []

        results: list[SearchResult] = []
        for item in data.get("items") or []:
            link = item.get("link")
            if not link:
                continue
            results.append(
                SearchResult(
                    title=item.get("title") or "",
                    link=link,
                    snippet=item.get("snippet") or "",
                )
            )
        logger.info("Google search returned %d results for %r", len(results), query)
        return results[: self.num]


def get_search_client() -> GoogleSearchClient:
    return GoogleSearchClient(settings.GOOGLE_SEARCH_API_KEY, settings.GOOGLE_SEARCH_CX)
