"""
Core orchestration: key -> polygon -> grid -> listings -> hosts -> report.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .api import AirbnbClient
from .config import FinderConfig
from .credentials import CredentialProvider
from .discovery import DiscoveryStats, ListingDiscoverer
from .export import save_hosts
from .geo import GeoResolver
from .grid import GridPlanner
from .hosts import HostResolver
from .models import DiscoveryState, Host
from .transport import Transport, open_transport
from .utils import safe_location_name

logger = logging.getLogger(__name__)


@dataclass
class FindResult:
    listing_ids: Set[str] = field(default_factory=set)
    host_ids: Set[str] = field(default_factory=set)
    hosts: List[Host] = field(default_factory=list)
    discovery: DiscoveryStats = field(default_factory=DiscoveryStats)
    out_path: Optional[str] = None

    @property
    def agencies(self) -> List[Host]:
        return [h for h in self.hosts if h.is_agency]


def default_out_path(location_query: str, config: FinderConfig) -> str:
    return os.path.join(config.output_dir, f"{safe_location_name(location_query)}_hosts.csv")


async def run_pipeline(
    location_query: str,
    config: FinderConfig,
    transport: Transport,
    out_path: Optional[str] = None,
) -> FindResult:
    """Run every stage against an already open transport."""
    credentials = CredentialProvider(transport, config)
    await credentials.acquire()
    polygon = await GeoResolver(transport, config).resolve(location_query)

    planner = GridPlanner(config)
    tasks = planner.plan(polygon)

    client = AirbnbClient(transport, config)
    if config.debug_max_listings is not None:
        logger.info(f">>> DEBUG MODE: Will stop after finding {config.debug_max_listings} listings")

    logger.info("--- Stage 1: Discovering listings ---")
    discoverer = ListingDiscoverer(client, credentials, planner, config, DiscoveryState())
    listing_ids, host_ids = await discoverer.discover(tasks)
    result = FindResult(listing_ids=listing_ids, host_ids=host_ids, discovery=discoverer.stats)

    if discoverer.stats.tasks_skipped:
        logger.warning(
            f">>> Coverage warning: {discoverer.stats.tasks_skipped} of "
            f"{discoverer.stats.tasks_run} searches failed and were skipped"
        )

    if config.listings_only:
        logger.info("--- Stage 2: Skipped (listings-only mode) ---")
        logger.info(f">>> Summary: Found {len(listing_ids)} unique listings and {len(host_ids)} unique hosts")
        return result

    logger.info("--- Stage 2: Fetching host profiles ---")
    resolver = HostResolver(client, credentials, config)
    # Discovery order keeps the report stable between runs
    result.hosts = await resolver.resolve(discoverer.state.host_ids)

    logger.info("--- Stage 3: Saving results ---")
    if not result.hosts:
        logger.warning(">>> No hosts were found.")
        return result

    result.out_path = out_path or default_out_path(location_query, config)
    save_hosts(result.hosts, result.out_path)
    logger.info(
        f">>> Identified {len(result.agencies)} potential agencies "
        f"(>= {config.agency_threshold} listings) among {len(result.hosts)} hosts "
        f"from {len(listing_ids)} listings."
    )
    return result


async def run_find_hosts(
    location_query: str,
    config: FinderConfig,
    out_path: Optional[str] = None,
) -> FindResult:
    """Open a playwright request context and run the whole pipeline in it."""
    async with open_transport(config) as transport:
        return await run_pipeline(location_query, config, transport, out_path)
