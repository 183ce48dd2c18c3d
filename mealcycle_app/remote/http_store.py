"""HTTP/JSON remote document store."""

import json
import socket
from typing import Any, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode, urlparse
from urllib.request import Request, urlopen

from ..errors import ConfigurationError, RemoteStoreError, TransientStoreError
from ..logging.config import get_logger
from ..sync.models import PendingOperation
from .base import RemoteStore


class HttpRemoteStore(RemoteStore):
    """
    Document store reached over a small REST API.

    GET  {base_url}/{collection}/{id}            -> document or 404
    GET  {base_url}/{collection}?field=value      -> {"documents": [...]}
    POST {base_url}/batch {"operations": [...]}   -> 2xx when applied atomically
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        headers: Optional[dict[str, str]] = None
    ):
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Invalid URL: {base_url}")

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.headers = headers or {}
        self.logger = get_logger(__name__).bind(store="http", base_url=self.base_url)

    def get_document(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        url = f"{self.base_url}/{quote(collection)}/{quote(document_id)}"
        try:
            return self._request("GET", url, operation="get")
        except RemoteStoreError as e:
            if e.status_code == 404:
                return None
            raise

    def query_documents(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        url = f"{self.base_url}/{quote(collection)}?{urlencode({field: value})}"
        body = self._request("GET", url, operation="query") or {}
        return list(body.get("documents", []))

    def commit_batch(self, operations: Sequence[PendingOperation]) -> None:
        payload = {"operations": [op.to_dict() for op in operations]}
        self._request("POST", f"{self.base_url}/batch", operation="commit", body=payload)
        self.logger.info("Batch committed", batch_size=len(operations))

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        body: Optional[dict[str, Any]] = None
    ) -> Optional[Any]:
        """Send one request, mapping failures onto the store error taxonomy."""
        headers = {
            'Accept': 'application/json',
            'User-Agent': 'mealcycle-app/1.0'
        }
        data = None
        if body is not None:
            try:
                data = json.dumps(body).encode('utf-8')
            except (TypeError, ValueError) as e:
                raise RemoteStoreError(f"JSON encoding error: {e}", operation=operation)
            headers['Content-Type'] = 'application/json'
            headers['Content-Length'] = str(len(data))
        headers.update(self.headers)

        req = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                raw = response.read().decode('utf-8')
                return json.loads(raw) if raw else None

        except HTTPError as e:
            error_msg = f"HTTP {e.code}: {e.reason}"
            self.logger.warning(
                "Remote store HTTP error",
                operation=operation,
                error_code=e.code,
                error_reason=str(e.reason)
            )
            # Server errors are retryable, client errors are not
            if e.code >= 500:
                raise TransientStoreError(error_msg, status_code=e.code, operation=operation)
            raise RemoteStoreError(error_msg, status_code=e.code, operation=operation)

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning(
                "Remote store network error",
                operation=operation,
                error=str(e)
            )
            raise TransientStoreError(f"Network error: {e}", operation=operation)

        except json.JSONDecodeError as e:
            raise RemoteStoreError(f"Invalid JSON response: {e}", operation=operation)

    def health_check(self) -> bool:
        """Check if the endpoint is reachable."""
        try:
            parsed = urlparse(self.base_url)
            req = Request(f"{parsed.scheme}://{parsed.netloc}", method='HEAD')
            with urlopen(req, timeout=5) as response:
                return 200 <= response.getcode() < 400

        except Exception as e:
            self.logger.warning("Health check failed", error=str(e))
            return False
