"""
Host profile resolution with credential recovery.
"""
import logging
from enum import Enum
from typing import Iterable, List, Optional

from .api import AirbnbClient
from .config import FinderConfig
from .credentials import CredentialProvider
from .errors import CredentialError, HostFetchError
from .models import Host
from .utils import polite_sleep

logger = logging.getLogger(__name__)


class CredentialState(Enum):
    ACTIVE = "active"
    DEGRADED = "degraded"
    REFRESHING = "refreshing"


class HostResolver:
    """
    Fetches host profiles one at a time.

    Consecutive failures move the resolver from ACTIVE to DEGRADED; at
    failure_threshold it refreshes the access key and returns to ACTIVE.
    Any successful fetch resets the counter.
    """

    def __init__(self, client: AirbnbClient, credentials: CredentialProvider, config: FinderConfig):
        self.client = client
        self.credentials = credentials
        self.config = config
        self.state = CredentialState.ACTIVE
        self.consecutive_failures = 0
        self.refreshes = 0
        self.failed_ids: List[str] = []
        self.stopped_early = False

    async def resolve(self, host_ids: Iterable[str]) -> List[Host]:
        ids = list(host_ids)
        hosts: List[Host] = []
        agencies = 0

        for index, host_id in enumerate(ids, 1):
            logger.info(f"  [{index}/{len(ids)}] Fetching profile for host {host_id}...")
            host = await self.fetch_host(host_id)
            if host is None:
                self.failed_ids.append(host_id)
                continue
            hosts.append(host)

            if host.is_agency:
                agencies += 1
                logger.info(f"    -> Found agency: {host.name} ({host.listing_count} listings)")
                cap = self.config.debug_max_agencies
                if cap is not None and agencies >= cap:
                    logger.info(f">>> DEBUG MODE: Reached {agencies} agencies, stopping host profile fetching")
                    self.stopped_early = True
                    break

        if self.failed_ids:
            logger.warning(f">>> {len(self.failed_ids)} host profiles could not be fetched")
        return hosts

    async def fetch_host(self, host_id: str) -> Optional[Host]:
        for _ in range(self.config.host_fetch_attempts):
            api_key = self.credentials.token
            try:
                user = await self.client.get_user(host_id, api_key)
            except HostFetchError as e:
                logger.warning(f"    -> Error: {e}")
                await self._on_failure(api_key)
                await polite_sleep(self.config.delay_range)
                continue

            self._on_success()
            await polite_sleep(self.config.delay_range)
            try:
                return Host.from_profile(user, self.config.agency_threshold, self.config.base_url)
            except (TypeError, ValueError) as e:
                # Malformed records are omitted, not retried
                logger.warning(f"    -> Unreadable profile for host {host_id}: {e}")
                return None
        return None

    def _on_success(self) -> None:
        self.consecutive_failures = 0
        self.state = CredentialState.ACTIVE

    async def _on_failure(self, stale_key: Optional[str]) -> None:
        self.consecutive_failures += 1
        self.state = CredentialState.DEGRADED
        if self.consecutive_failures < self.config.failure_threshold:
            return

        self.state = CredentialState.REFRESHING
        logger.info(f"    Refreshing API key after {self.consecutive_failures} consecutive errors...")
        try:
            await self.credentials.refresh(stale_key)
        except CredentialError as e:
            # Counter stays at threshold so the next failure tries again
            logger.error(f"    Failed to refresh API key: {e}")
            self.state = CredentialState.DEGRADED
            return
        self.refreshes += 1
        self.consecutive_failures = 0
        self.state = CredentialState.ACTIVE
