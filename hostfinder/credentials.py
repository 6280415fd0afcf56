"""
Access key bootstrap from the site's landing page.
"""
import asyncio
import logging
import re
from typing import Optional

from .config import FinderConfig
from .errors import CredentialError, TransportError
from .transport import Transport
from .utils import mask_key

logger = logging.getLogger(__name__)

API_KEY_RE = re.compile(r'"api_config":\{"key":"(.+?)"')


def extract_api_key(html: str) -> Optional[str]:
    m = API_KEY_RE.search(html or "")
    return m.group(1) if m else None


class CredentialProvider:
    """
    Holds the current access key and re-obtains it on demand.

    refresh() is serialized: callers pass the key that failed for them, and
    if someone else already replaced it they get the new one without
    another fetch.
    """

    def __init__(self, transport: Transport, config: FinderConfig):
        self.transport = transport
        self.config = config
        self._token: Optional[str] = None
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    @property
    def token(self) -> Optional[str]:
        return self._token

    async def acquire(self) -> str:
        logger.info(">>> Fetching new API key...")
        try:
            html = await self.transport.get_text(self.config.base_url)
        except TransportError as e:
            raise CredentialError(f"Landing page unreachable: {e}") from e

        key = extract_api_key(html)
        if not key:
            raise CredentialError("API key not found in landing page")
        self._token = key
        logger.info(f">>> API key obtained: {mask_key(key)}")
        return key

    async def refresh(self, stale_token: Optional[str]) -> str:
        async with self._lock:
            if self._token is not None and self._token != stale_token:
                return self._token
            key = await self.acquire()
            self.refresh_count += 1
            return key
