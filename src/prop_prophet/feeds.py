"""Feed adapters: local JSON files and HTTP feeds with a cached fallback."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from prop_prophet import __version__
from prop_prophet.errors import FeedError, InputError
from prop_prophet.storage import atomic_write_text

logger = logging.getLogger(__name__)


class RetryableStatusError(RuntimeError):
    """Raised for retryable status codes."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"retryable status {response.status_code}")


@dataclass(frozen=True)
class FeedPayload:
    data: Any
    source: str
    stale: bool


def load_json_feed(path: Path) -> Any:
    """Read a required JSON feed file; unreadable or malformed input aborts the run."""
    if not path.exists():
        raise FileNotFoundError(f"missing feed file: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InputError(f"invalid feed file {path}: {exc}") from exc


def _wait_with_backoff(backoff_s: float):
    def _wait(retry_state) -> float:
        return min(backoff_s * 2 ** (retry_state.attempt_number - 1), 30.0)

    return _wait


def fetch_json(
    url: str,
    *,
    client: httpx.Client,
    retries: int = 3,
    backoff_s: float = 1.0,
) -> Any:
    headers = {
        "User-Agent": f"Mozilla/5.0 (compatible; prop-prophet/{__version__})",
        "Accept": "application/json;q=0.9,*/*;q=0.8",
    }
    response: httpx.Response | None = None
    for attempt in Retrying(
        stop=stop_after_attempt(max(1, retries)),
        retry=retry_if_exception_type((RetryableStatusError, httpx.TransportError)),
        wait=_wait_with_backoff(backoff_s),
        reraise=True,
    ):
        with attempt:
            response = client.get(url, headers=headers, follow_redirects=True)
            if response.status_code == 429 or 500 <= response.status_code <= 599:
                raise RetryableStatusError(response)
            response.raise_for_status()
    if response is None:
        raise FeedError(f"{url} returned no response")
    return response.json()


def load_or_fetch_feed(
    url: str,
    *,
    cache_path: Path,
    client: httpx.Client | None = None,
    timeout_s: float = 12.0,
    retries: int = 3,
    backoff_s: float = 1.0,
) -> FeedPayload:
    """Fetch a JSON feed and refresh its cache; fall back to the cache (stale) on failure."""
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout_s)
    try:
        data = fetch_json(url, client=http, retries=retries, backoff_s=backoff_s)
    except (httpx.HTTPError, RetryableStatusError, ValueError) as exc:
        if not cache_path.exists():
            raise FeedError(f"feed fetch failed and no cache exists: {url}: {exc}") from exc
        logger.warning("feed fetch failed, using stale cache %s: %s", cache_path, exc)
        return FeedPayload(data=load_json_feed(cache_path), source=str(cache_path), stale=True)
    finally:
        if owns_client:
            http.close()

    atomic_write_text(cache_path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return FeedPayload(data=data, source=url, stale=False)
