"""
Elasticsearch Store Client

Fetches the raw deployment documents stored for an environment.
Talks to the Elasticsearch REST API through httpx; no SDK needed for a
single exact-match search.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .config import StoreConfig

logger = logging.getLogger("deploywatch.store")

# Key under each hit's _source holding the per-project deployment map
DOCUMENT_FIELD = "apps_v2"


class StoreError(Exception):
    """Error fetching documents from the store."""
    pass


class RecordStore(Protocol):
    """Anything that returns raw deployment documents for an environment."""

    async def fetch(self, environment: str) -> List[Dict[str, Any]]:
        ...


class ElasticsearchStore:
    """
    Read-only client for the deployment index.

    The HTTP client is created lazily on first use and reused for every
    later query. httpx.AsyncClient pools connections and is safe to share
    between concurrent tasks on the same event loop.

    Usage:
        store = ElasticsearchStore(config.store)
        documents = await store.fetch("staging")
        await store.close()
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize store client.

        Args:
            config: Store host, port, index, logging toggle and timeout
            transport: Optional httpx transport (used by tests)
        """
        self._config = config or StoreConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def endpoint(self) -> str:
        return self._config.url

    @property
    def index(self) -> str:
        return self._config.index

    def _ensure_client(self) -> httpx.AsyncClient:
        """Lazily create the HTTP client"""
        if self._client is None:
            event_hooks = {}
            if self._config.log:
                event_hooks = {
                    "request": [self._log_request],
                    "response": [self._log_response],
                }
            self._client = httpx.AsyncClient(
                base_url=self._config.url,
                timeout=httpx.Timeout(self._config.timeout),
                transport=self._transport,
                event_hooks=event_hooks,
            )
            logger.info("Store client ready (%s, index: %s)", self._config.url, self._config.index)
        return self._client

    @staticmethod
    async def _log_request(request: httpx.Request) -> None:
        logger.debug("ES request: %s %s %s", request.method, request.url, request.content.decode("utf-8", "replace"))

    @staticmethod
    async def _log_response(response: httpx.Response) -> None:
        logger.debug("ES response: %s %s", response.status_code, response.request.url)

    async def fetch(self, environment: str) -> List[Dict[str, Any]]:
        """
        Fetch all deployment documents stored for an environment.

        Args:
            environment: Environment identifier (the document _id)

        Returns:
            List of raw documents (project -> grouping -> attributes)

        Raises:
            StoreError: On connection failure, timeout or an error response
        """
        client = self._ensure_client()
        body = {"query": {"match": {"_id": environment}}}

        try:
            response = await client.post(f"/{self._config.index}/_search", json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise StoreError(f"timeout searching {self._config.index}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise StoreError(f"search failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StoreError(f"connection to {self._config.url} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"invalid search response: {e}") from e

        return self.parse_hits(payload)

    @staticmethod
    def parse_hits(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Extract the per-project document of every hit"""
        documents = []
        for hit in payload.get("hits", {}).get("hits", []):
            document = (hit.get("_source") or {}).get(DOCUMENT_FIELD)
            if isinstance(document, dict):
                documents.append(document)
            else:
                logger.debug("Skipping hit %s without %s", hit.get("_id"), DOCUMENT_FIELD)
        return documents

    async def close(self) -> None:
        """Close the HTTP client if it was created"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
