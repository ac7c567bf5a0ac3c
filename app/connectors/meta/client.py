"""AdWizard — Facebook Graph API Client.

Handles authentication, error extraction, bounded retries for idempotent
reads, and pagination. Writes are never retried.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.core.logging import get_logger

logger = get_logger("meta.client")

RETRYABLE_METHODS = frozenset({"GET"})


class FacebookAPIError(Exception):
    """Raised when the Graph API returns an error."""

    def __init__(self, message: str, status_code: int = 0, error_code: int = 0):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


def _error_from_body(body: Any) -> Optional[Dict[str, Any]]:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return None


class FacebookClient:
    """Async HTTP client for the Facebook Graph API."""

    def __init__(
        self,
        access_token: str = "",
        ad_account_id: str = "",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        base_url: Optional[str] = None,
    ):
        self.access_token = access_token
        self.ad_account_id = ad_account_id
        self.base_url = base_url or settings.graph_base
        self.max_retries = max_retries or settings.graph_max_retries
        self.retry_base_delay = (
            settings.graph_retry_base_delay
            if retry_base_delay is None
            else retry_base_delay
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def account_path(self) -> str:
        return f"act_{self.ad_account_id}"

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "FacebookClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── Core Request Method ──

    async def request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json_body: Dict[str, Any] | None = None,
        retry: Optional[bool] = None,
        authenticate: bool = True,
    ) -> Dict[str, Any]:
        """Make a Graph API call and return the decoded JSON body.

        ``path`` may be a relative Graph path or an absolute URL (paging links).
        Retries apply only to idempotent methods and only when ``retry`` is
        not disabled.
        """
        params = dict(params or {})
        if authenticate and "access_token" not in params:
            params["access_token"] = self.access_token
        url = path if path.startswith("http") else self.url(path)
        if retry is None:
            retry = method.upper() in RETRYABLE_METHODS
        attempts = self.max_retries if retry else 1

        client = await self._get_client()

        for attempt in range(1, attempts + 1):
            started = time.monotonic()
            try:
                resp = await client.request(method, url, params=params, json=json_body)
            except httpx.RequestError as e:
                if attempt < attempts:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                if attempts > 1:
                    raise FacebookAPIError(
                        f"Connection failed after {attempts} attempts: {e}"
                    ) from e
                raise FacebookAPIError(f"Connection failed: {e}") from e

            duration_ms = round((time.monotonic() - started) * 1000, 1)
            logger.debug(
                f"{method} {path} -> {resp.status_code}",
                extra={
                    "endpoint": path,
                    "status_code": resp.status_code,
                    "duration_ms": duration_ms,
                },
            )

            retryable_status = resp.status_code == 429 or resp.status_code >= 500
            if retryable_status and attempt < attempts:
                wait = self.retry_base_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Graph API returned {resp.status_code}. Retrying in {wait}s "
                    f"(attempt {attempt}/{attempts})"
                )
                await asyncio.sleep(wait)
                continue

            try:
                body = resp.json()
            except ValueError:
                body = {}

            error = _error_from_body(body)
            if error is not None or resp.is_error:
                error = error or {}
                message = error.get("message") or f"HTTP {resp.status_code} from Graph API"
                logger.error(
                    f"Graph API error on {method} {path}: {message}",
                    extra={"endpoint": path, "status_code": resp.status_code},
                )
                raise FacebookAPIError(
                    message, resp.status_code, int(error.get("code", 0) or 0)
                )

            if not isinstance(body, dict):
                raise FacebookAPIError(
                    f"Unexpected Graph API response from {path}", resp.status_code
                )
            return body

        raise FacebookAPIError("Max retries exhausted")

    async def get(self, path: str, params: Dict[str, Any] | None = None, **kwargs):
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json_body: Dict[str, Any], **kwargs):
        return await self.request("POST", path, json_body=json_body, **kwargs)

    async def delete(self, path: str, **kwargs):
        return await self.request("DELETE", path, **kwargs)

    # ── Pagination ──

    async def paginated_get(
        self,
        path: str,
        params: Dict[str, Any] | None = None,
        max_pages: int = 50,
    ) -> List[Dict[str, Any]]:
        """Fetch all pages of a paginated endpoint."""
        all_data: List[Dict[str, Any]] = []
        current = path

        for page in range(max_pages):
            # Paging links already embed the query string, token included
            result = await self.request(
                "GET",
                current,
                params if page == 0 else None,
                authenticate=page == 0,
            )
            all_data.extend(result.get("data", []))

            next_url = result.get("paging", {}).get("next")
            if not next_url:
                break
            current = next_url

        logger.info(f"Fetched {len(all_data)} records from {path}")
        return all_data
