"""Readiness probe for the application under test."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


async def wait_for_server(
    url: str,
    *,
    timeout_s: float = 30.0,
    interval_s: float = 0.5,
    request_timeout_s: float = 2.0,
    client: Optional[httpx.AsyncClient] = None,
    sleep_fn: SleepFn | None = None,
) -> bool:
    """Poll ``url`` until it answers with a status below 500.

    Returns ``False`` when ``timeout_s`` elapses first. Connection errors and
    server errors are retried.
    """

    sleep = sleep_fn or asyncio.sleep
    owns_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True, timeout=request_timeout_s)
    deadline = time.monotonic() + timeout_s
    attempts = 0
    try:
        while True:
            attempts += 1
            try:
                response = await http.get(url)
                if response.status_code < 500:
                    logger.info("Server %s ready (status %d)", url, response.status_code)
                    return True
                logger.debug("Server %s answered %d, retrying", url, response.status_code)
            except httpx.HTTPError as exc:
                logger.debug("Server %s not reachable yet: %s", url, exc)
            if time.monotonic() >= deadline:
                logger.warning("Server %s not ready after %d attempts", url, attempts)
                return False
            await sleep(interval_s)
    finally:
        if owns_client:
            await http.aclose()


__all__ = ["wait_for_server"]
