"""REST client for the search service (indexes, documents, knowledge sources and bases).

One ``httpx.Client`` per engine, reused across calls. HTTP failures are mapped
onto the engine's error taxonomy here so callers never see raw httpx errors:

- 404 -> ResourceNotFound
- 408/429/5xx, timeouts, connection errors -> UpstreamFailure(transient=True)
- any other 4xx -> UpstreamFailure(transient=False)
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from claim_knowledge.errors import ResourceNotFound, UpstreamFailure
from claim_knowledge.utils.retry import RETRYABLE_STATUS_CODES

logger = logging.getLogger(__name__)

# Max characters of an error body carried into exception messages
_ERROR_BODY_LIMIT = 500


def _error_message(response: httpx.Response) -> str:
    """Extract the service error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:_ERROR_BODY_LIMIT]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])[:_ERROR_BODY_LIMIT]
    return response.text[:_ERROR_BODY_LIMIT]


class SearchServiceClient:
    """Thin wrapper over the search service REST API."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        api_version: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            endpoint: Service URL, e.g. https://<name>.search.windows.net
            api_key: Admin API key
            api_version: REST API version sent on every request
            timeout: Per-request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self._http = httpx.Client(
            base_url=self.endpoint,
            headers={"api-key": api_key, "Content-Type": "application/json"},
            params={"api-version": api_version},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SearchServiceClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        allowed: tuple[int, ...] = (),
    ) -> httpx.Response:
        """Send a request and map failures; statuses in ``allowed`` are returned as-is."""
        logger.debug("%s %s", method, path)
        try:
            response = self._http.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamFailure(
                f"Search service timed out on {method} {path}: {e}", transient=True
            ) from e
        except httpx.TransportError as e:
            raise UpstreamFailure(
                f"Search service unreachable on {method} {path}: {e}", transient=True
            ) from e

        status = response.status_code
        if response.is_success or status in allowed:
            return response
        message = _error_message(response)
        if status == 404:
            raise ResourceNotFound(path, f"Not found: {method} {path}: {message}")
        raise UpstreamFailure(
            f"Search service returned {status} on {method} {path}: {message}",
            status_code=status,
            transient=status in RETRYABLE_STATUS_CODES,
        )

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamFailure(
                f"Search service returned invalid JSON ({response.status_code})",
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            raise UpstreamFailure(
                f"Search service returned unexpected payload type {type(body).__name__}",
                status_code=response.status_code,
            )
        return body

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def get_index(self, name: str) -> dict[str, Any]:
        """Fetch an index definition. Raises ResourceNotFound if absent."""
        return self._json(self._request("GET", f"/indexes/{quote(name)}"))

    def create_index(self, definition: dict[str, Any]) -> bool:
        """Create an index only if absent.

        Uses ``If-None-Match: *`` so a concurrent creator wins cleanly.

        Returns:
            True if created, False if another writer created it first.
        """
        name = definition["name"]
        response = self._request(
            "PUT",
            f"/indexes/{quote(name)}",
            json=definition,
            headers={"If-None-Match": "*"},
            allowed=(412,),
        )
        return response.status_code != 412

    # ------------------------------------------------------------------
    # Knowledge sources and bases (create-or-update)
    # ------------------------------------------------------------------

    def put_knowledge_source(self, definition: dict[str, Any]) -> dict[str, Any]:
        name = definition["name"]
        return self._json(self._request("PUT", f"/knowledgesources/{quote(name)}", json=definition))

    def put_knowledge_base(self, definition: dict[str, Any]) -> dict[str, Any]:
        name = definition["name"]
        return self._json(self._request("PUT", f"/knowledgebases/{quote(name)}", json=definition))

    def retrieve(self, knowledge_base: str, body: dict[str, Any]) -> dict[str, Any]:
        """Run agentic retrieval against a knowledge base."""
        return self._json(
            self._request("POST", f"/knowledgebases/{quote(knowledge_base)}/retrieve", json=body)
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upload_documents(self, index: str, documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Upload (upsert by key) documents in one batch.

        Returns:
            Per-document results as reported by the service.

        Raises:
            UpstreamFailure: If the service rejected any document.
        """
        body = {"value": [{"@search.action": "upload", **doc} for doc in documents]}
        response = self._request(
            "POST", f"/indexes/{quote(index)}/docs/index", json=body, allowed=(207,)
        )
        results = self._json(response).get("value", [])
        failed = [r for r in results if not r.get("status", False)]
        if failed or response.status_code == 207:
            detail = "; ".join(
                f"{r.get('key')}: {r.get('errorMessage') or r.get('statusCode')}" for r in failed
            )
            raise UpstreamFailure(
                f"{len(failed)} of {len(documents)} documents rejected by index {index!r}: {detail}",
                status_code=response.status_code,
            )
        return results

    def search(self, index: str, body: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a search query and return the matching documents."""
        response = self._request("POST", f"/indexes/{quote(index)}/docs/search", json=body)
        return list(self._json(response).get("value", []))
