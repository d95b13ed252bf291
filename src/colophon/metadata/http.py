# ABOUTME: JSON-over-HTTP client used by the GraphQL metadata repository.
# ABOUTME: Retries transient statuses with backoff or Retry-After; the transport is injectable.

import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_MAX_RETRY_AFTER = 60.0


class MetadataFetchError(Exception):
    """Raised when a metadata API request fails or returns something unusable."""


@runtime_checkable
class HttpClient(Protocol):
    """Anything that can POST a JSON body and hand back the decoded JSON reply."""

    def post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]: ...


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds from a numeric Retry-After header, capped; None if absent or a date."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return min(max(float(raw), 0.0), _MAX_RETRY_AFTER)
    except ValueError:
        return None


class ColophonHttpClient:
    """httpx-backed HttpClient for the metadata GraphQL API.

    Only 429 and 5xx responses are retried, with exponential backoff unless
    the server sends a numeric Retry-After. Anything else that is not a 200
    with a JSON body fails on the first attempt.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 5,
        retry_delay: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"User-Agent": "colophon/0.1.0", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(headers=headers, timeout=timeout, transport=transport)
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    def post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST payload as JSON and return the decoded reply.

        Raises:
            MetadataFetchError: On transport errors, non-retryable statuses,
                undecodable bodies, or when retries run out.
        """
        response = self._send(url, payload)
        for attempt in range(self._max_retries):
            if response.status_code not in _RETRYABLE_STATUS_CODES:
                break
            delay = _retry_after(response)
            if delay is None:
                delay = self._retry_delay * (2**attempt)
            logger.warning(
                "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                response.status_code, url, delay, attempt + 1, self._max_retries,
            )
            time.sleep(delay)
            response = self._send(url, payload)

        if response.status_code in _RETRYABLE_STATUS_CODES:
            raise MetadataFetchError(
                f"HTTP {response.status_code} from {url} "
                f"after {self._max_retries + 1} attempts"
            )
        if response.status_code != 200:
            raise MetadataFetchError(f"HTTP {response.status_code} from {url}")
        try:
            return response.json()
        except ValueError as exc:
            raise MetadataFetchError(f"Invalid JSON from {url}") from exc

    def _send(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            return self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise MetadataFetchError(f"Request failed: {url}: {exc}") from exc

    def close(self) -> None:
        self._client.close()
