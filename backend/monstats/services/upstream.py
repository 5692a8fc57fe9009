from __future__ import annotations
import asyncio
import logging
from typing import Callable, Optional

import httpx

from monstats.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


class UpstreamError(Exception):
    """Transient failure talking to a third-party data source."""


class NoActivityError(Exception):
    """The transaction source has no transactions at all for this wallet."""


def backoff_delay(attempt: int) -> float:
    """1s, 2s, 4s ... capped at upstream_backoff_max_seconds."""
    return min(
        settings.upstream_backoff_base_seconds * (2 ** (attempt - 1)),
        settings.upstream_backoff_max_seconds,
    )


async def get_json_with_retry(
    url: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    label: str = "upstream",
    validate: Optional[Callable[[dict], None]] = None,
) -> dict:
    """GET ``url`` and decode JSON, retrying transient failures with exponential backoff.

    ``validate`` may inspect the decoded body and raise UpstreamError to have
    an API-level error (e.g. a rate-limit message inside a 200) retried.
    Cancellation is never retried: asyncio.CancelledError is not an Exception
    subclass and propagates straight out of the loop.
    """
    max_attempts = settings.upstream_max_attempts
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            async with httpx.AsyncClient(
                timeout=settings.upstream_timeout_seconds, transport=transport
            ) as client:
                resp = await client.get(url, params=params or {}, headers=headers or {})
            if resp.status_code in RETRYABLE_STATUS:
                raise UpstreamError(f"{label} HTTP {resp.status_code}")
            resp.raise_for_status()
            data = resp.json()
            if validate is not None:
                validate(data)
            return data
        except httpx.HTTPStatusError as e:
            # 4xx other than the retryable ones will not get better on retry
            raise UpstreamError(f"{label} HTTP {e.response.status_code}") from e
        except (httpx.TransportError, UpstreamError, ValueError) as e:
            last_error = e
            if attempt == max_attempts:
                break
            delay = backoff_delay(attempt)
            logger.warning(
                f"{label} attempt {attempt}/{max_attempts} failed: {e}; retrying in {delay}s"
            )
            await asyncio.sleep(delay)

    raise UpstreamError(f"{label} failed after {max_attempts} attempts: {last_error}") from last_error
