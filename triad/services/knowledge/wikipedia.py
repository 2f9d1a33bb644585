"""
Wikipedia knowledge source.

Search uses the MediaWiki REST search endpoint; article lookups use the
page summary endpoint of the REST content API.
"""

import time
from typing import Optional
from urllib.parse import quote

import httpx

from triad.config import get_settings
from triad.services.knowledge.base import KnowledgeSource
from triad.services.knowledge.models import ArticleCandidate
from triad.utils.exceptions import (
    KnowledgeSourceConnectionError,
    KnowledgeSourceError,
    KnowledgeSourceTimeoutError,
)
from triad.utils.logging import get_logger
from triad.utils.retry import with_retry

logger = get_logger(__name__)

_TRANSIENT = (KnowledgeSourceTimeoutError, KnowledgeSourceConnectionError)


class WikipediaService(KnowledgeSource):
    """
    Wikipedia lookups over httpx.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.knowledge.base_url
        self.timeout = timeout or settings.knowledge.timeout
        self.max_results = max_results or settings.knowledge.max_results
        self.user_agent = settings.knowledge.user_agent
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, target: str, params: Optional[dict] = None) -> Optional[dict]:
        """GET a JSON document; None on 404."""
        try:
            client = await self._get_client()
            response = await client.get(path, params=params)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Wikipedia timeout for: {target}")
            raise KnowledgeSourceTimeoutError(target, self.timeout) from e
        except httpx.ConnectError as e:
            logger.error(f"Cannot connect to Wikipedia at {self.base_url}")
            raise KnowledgeSourceConnectionError("Wikipedia", str(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Wikipedia HTTP error: {e.response.status_code}")
            raise KnowledgeSourceError(
                f"Lookup failed with status {e.response.status_code}",
                code="KNOWLEDGE_HTTP_ERROR",
                details=f"Target: {target}",
            ) from e
        except ValueError as e:
            raise KnowledgeSourceError(
                f"Invalid response body: {e}",
                code="KNOWLEDGE_DECODE_ERROR",
            ) from e

    @with_retry(max_attempts=2, base_delay=0.5, exceptions=_TRANSIENT)
    async def search(self, query: str, limit: Optional[int] = None) -> list[ArticleCandidate]:
        start_time = time.time()
        limit = limit or self.max_results

        data = await self._get(
            "/w/rest.php/v1/search/page",
            target=query,
            params={"q": query, "limit": limit},
        )
        pages = (data or {}).get("pages") or []
        results = [ArticleCandidate.from_raw(p) for p in pages[:limit]]

        logger.info(
            f"Search complete: '{query}' -> {len(results)} results "
            f"in {time.time() - start_time:.2f}s"
        )
        return results

    @with_retry(max_attempts=2, base_delay=0.5, exceptions=_TRANSIENT)
    async def fetch_summary(self, title: str) -> Optional[str]:
        data = await self._get(
            f"/api/rest_v1/page/summary/{quote(title, safe='')}",
            target=title,
        )
        if data is None:
            logger.info(f"Article not found: '{title}'")
            return None
        return data.get("extract") or ""

    async def health_check(self) -> bool:
        """Check if Wikipedia is reachable."""
        try:
            client = await self._get_client()
            response = await client.get("/w/rest.php/v1/search/page", params={"q": "test", "limit": 1})
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"Wikipedia health check failed: {e}")
            return False
