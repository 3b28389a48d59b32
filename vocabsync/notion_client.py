"""Notion REST API client for the vocabulary database."""

from typing import Any, Optional

import httpx

import config
from vocabsync.retry import is_transient_http_error


class StoreError(Exception):
    """Raised when a document store call fails."""

    pass


class StoreUnavailable(StoreError):
    """Raised on connection failures, timeouts and 5xx responses."""

    pass


class StoreRequestError(StoreError):
    """Raised when the store rejects a request (4xx)."""

    def __init__(self, message: str, status: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status = status
        self.code = code


class StoreNotFound(StoreRequestError):
    """Raised when the database or page does not exist (404)."""

    pass


def is_transient_store_error(exc: BaseException) -> bool:
    return isinstance(exc, StoreUnavailable)


def _rejection(method: str, path: str, response: httpx.Response) -> StoreRequestError:
    """Build the error for a 4xx response, keeping Notion's error code."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    message = body.get("message") or response.text[:500]
    error_cls = StoreNotFound if response.status_code == 404 else StoreRequestError
    return error_cls(
        f"Notion {method} {path} returned {response.status_code}: {message}",
        status=response.status_code,
        code=body.get("code"),
    )


class NotionClient:
    """Minimal synchronous client bound to one Notion database."""

    def __init__(
        self,
        token: str,
        database_id: str,
        http_client: Optional[httpx.Client] = None,
        base_url: str = config.NOTION_API_URL,
        notion_version: str = config.NOTION_VERSION,
        timeout: float = config.NOTION_TIMEOUT,
    ):
        self.database_id = database_id
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        }

    @classmethod
    def from_env(cls) -> "NotionClient":
        """Build a client from NOTION_TOKEN and NOTION_DATABASE_ID."""
        return cls(
            token=config.require_env(config.NOTION_TOKEN_ENV),
            database_id=config.require_env(config.NOTION_DATABASE_ID_ENV),
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "NotionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict[str, Any]:
        """
        Send one request and decode the JSON body.

        Raises:
            StoreUnavailable: Transport failure or 5xx response
            StoreNotFound: 404 response
            StoreRequestError: Any other 4xx response or an unusable body
            StoreError: Any other client-side failure
        """
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(method, url, json=payload, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            if is_transient_http_error(e):
                raise StoreUnavailable(f"Notion {method} {path} failed: {e}") from e
            if isinstance(e, httpx.HTTPStatusError):
                raise _rejection(method, path, e.response) from e
            raise StoreError(f"Notion {method} {path} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise StoreRequestError(
                f"Notion {method} {path} returned a non-JSON body",
                status=response.status_code,
            ) from e

    def retrieve_database(self) -> dict[str, Any]:
        return self._request("GET", f"/databases/{self.database_id}")

    def query_database(
        self,
        filter: dict | None = None,
        sorts: list[dict] | None = None,
        page_size: int = 100,
        start_cursor: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"page_size": page_size}
        if filter:
            payload["filter"] = filter
        if sorts:
            payload["sorts"] = sorts
        if start_cursor:
            payload["start_cursor"] = start_cursor
        return self._request("POST", f"/databases/{self.database_id}/query", payload)

    def create_page(self, properties: dict[str, Any]) -> dict[str, Any]:
        payload = {
            "parent": {"database_id": self.database_id},
            "properties": properties,
        }
        return self._request("POST", "/pages", payload)

    def retrieve_page(self, page_id: str) -> dict[str, Any]:
        return self._request("GET", f"/pages/{page_id}")

    def update_page(self, page_id: str, properties: dict[str, Any]) -> dict[str, Any]:
        return self._request("PATCH", f"/pages/{page_id}", {"properties": properties})
