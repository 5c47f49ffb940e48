"""
Host process API operations.

Handles requests to the running library host:
- Headers and base URL discovery
- Retry logic for transient failures
- Listening statistics for the listen-time sort

Statistics are only an input to sorting, so fetch failures are reported and
degrade to an empty lookup instead of propagating.
"""

from __future__ import annotations

import os
import time
from typing import Any, Callable, Dict, Iterable, Optional

import requests
from dotenv import load_dotenv

from recordgrid.errors import HostApiError

load_dotenv()

DEFAULT_HOST_URL = "http://127.0.0.1:47615"
DEFAULT_USER_AGENT = "RecordGrid/1.0"
# Served by an HTTP shim in front of the host's listening-stats channel
STATS_PATH = "/albums/listening-stats"


def get_host_url(arg_url: Optional[str] = None) -> Optional[str]:
    """Host base URL from args or environment; None when neither is set."""
    url = arg_url or os.getenv("RECORDGRID_HOST_URL")
    return url.strip().rstrip("/") if url else None


def host_headers(user_agent: Optional[str] = None) -> Dict[str, str]:
    return {
        "User-Agent": user_agent or os.getenv("RECORDGRID_USER_AGENT") or DEFAULT_USER_AGENT,
        "Accept": "application/json",
    }


def _should_retry(status: int) -> bool:
    return status == 429 or 500 <= status < 600


def _retry_sleep_seconds(resp: Any, attempt: int, backoff: float) -> float:
    retry_after = resp.headers.get("Retry-After")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            pass
    return min(backoff * (2 ** attempt), 10.0)


def api_get(url: str, headers: Optional[Dict[str, str]] = None,
            params: Optional[Dict[str, str]] = None,
            retries: int = 3, backoff: float = 1.0,
            timeout: float = 30) -> requests.Response:
    """GET with retries on 429, 5xx and network errors.

    Raises:
        HostApiError: for non-retryable HTTP errors, or when retries run out
            on an HTTP error.
        requests.RequestException: when retries run out on a network error.
    """
    last_error: Optional[Exception] = None
    for attempt in range(retries):
        try:
            resp = requests.get(url, headers=headers, params=params, timeout=timeout)
        except requests.RequestException as e:
            last_error = e
            time.sleep(min(backoff * (2 ** attempt), 10.0))
            continue
        status = resp.status_code
        if status < 400:
            return resp
        if _should_retry(status):
            time.sleep(_retry_sleep_seconds(resp, attempt, backoff))
            last_error = HostApiError(f"Transient host error {status}", status)
            continue
        raise HostApiError(f"Host API error {status}: {resp.text[:200]}", status)
    if last_error:
        raise last_error
    raise HostApiError("Host request failed after retries")


def normalize_listen_stats(data: Any) -> Dict[str, Dict[str, int]]:
    """Coerce a stats payload into ``{id: {"total_seconds", "listen_count"}}``.

    Accepts the keyed form ``{"id": {...}}`` or a list of rows carrying
    ``album_id``. Entries that are not mappings are dropped.
    """
    if isinstance(data, list):
        data = {row.get("album_id"): row for row in data if isinstance(row, dict)}
    if not isinstance(data, dict):
        return {}
    stats: Dict[str, Dict[str, int]] = {}
    for key, entry in data.items():
        if key is None or not isinstance(entry, dict):
            continue
        try:
            stats[str(key)] = {
                "total_seconds": int(entry.get("total_seconds") or 0),
                "listen_count": int(entry.get("listen_count") or 0),
            }
        except (TypeError, ValueError):
            continue
    return stats


def fetch_listen_stats(
    base_url: str,
    record_ids: Iterable[object],
    headers: Optional[Dict[str, str]] = None,
    log_callback: Optional[Callable[[str], None]] = None,
    retries: int = 3,
) -> Dict[object, Dict[str, int]]:
    """Fetch listening stats for ``record_ids`` from the host.

    Results are keyed by the caller's ids. Errors are passed to
    ``log_callback`` and give ``{}``.
    """
    by_text = {str(i): i for i in record_ids}
    if not by_text:
        return {}
    url = f"{base_url.rstrip('/')}{STATS_PATH}"
    try:
        resp = api_get(url, headers=headers or host_headers(),
                       params={"ids": ",".join(by_text)}, retries=retries)
        raw = normalize_listen_stats(resp.json())
    except (requests.RequestException, HostApiError, ValueError) as e:
        if log_callback:
            log_callback(f"Error fetching listening stats: {e}")
        return {}
    stats = {by_text[k]: v for k, v in raw.items() if k in by_text}
    if log_callback:
        log_callback(f"Listening stats for {len(stats)}/{len(by_text)} records")
    return stats
