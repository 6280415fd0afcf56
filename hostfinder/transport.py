"""
Retrying HTTP transport on top of playwright's APIRequestContext.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from playwright.async_api import APIRequestContext, Error as PlaywrightError, async_playwright

from .config import FinderConfig
from .errors import TransportError

logger = logging.getLogger(__name__)

# Headers for emulating a browser
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"macOS"',
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}


class Transport:
    """
    GET requests with timeout, retry count and exponential backoff.

    Every failure (network error, timeout, non-2xx status) is retried until
    max_retries attempts are used, then TransportError is raised.
    """

    def __init__(self, request_context: APIRequestContext, config: FinderConfig):
        self._ctx = request_context
        self.timeout_ms = config.timeout_ms
        self.max_retries = config.max_retries
        self.backoff_base = config.backoff_base
        self.backoff_cap = config.backoff_cap

    def backoff_delay(self, attempt: int) -> float:
        return min(self.backoff_base * (2 ** attempt), self.backoff_cap)

    async def get_text(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        last_error = "no attempts made"
        for attempt in range(1, self.max_retries + 1):
            try:
                resp = await self._ctx.get(url, params=params, headers=headers, timeout=self.timeout_ms)
                try:
                    if not resp.ok:
                        raise PlaywrightError(f"HTTP {resp.status} {resp.status_text}")
                    return await resp.text()
                finally:
                    await resp.dispose()
            except PlaywrightError as e:
                last_error = e.message
                logger.warning(f"  Request failed (attempt {attempt}/{self.max_retries}): {last_error}")
                if attempt == self.max_retries:
                    break
                delay = self.backoff_delay(attempt)
                logger.debug(f"  Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)
        raise TransportError(url, last_error)


@asynccontextmanager
async def open_transport(config: FinderConfig) -> AsyncIterator[Transport]:
    """Start playwright and yield a Transport bound to a fresh request context."""
    async with async_playwright() as p:
        ctx_kwargs = {"extra_http_headers": BROWSER_HEADERS}
        if config.proxy:
            ctx_kwargs["proxy"] = config.proxy.as_playwright()
            logger.info(f">>> Proxy enabled: {config.proxy.host}:{config.proxy.port}")
        else:
            logger.info(">>> Proxy disabled.")
        request_context = await p.request.new_context(**ctx_kwargs)
        try:
            yield Transport(request_context, config)
        finally:
            await request_context.dispose()
