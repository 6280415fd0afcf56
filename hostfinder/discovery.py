"""
Listing discovery over a queue of (cell, price band) search tasks.

Each task pages through the capped search endpoint. Tasks that turn up many
new listings are refined: the cell is split into four smaller cells, and a
band that hit the result cap is halved. Refined tasks go back on the same
queue, so the run ends when the queue drains.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from .api import AirbnbClient
from .config import FinderConfig
from .credentials import CredentialProvider
from .errors import CredentialError, SearchRequestError
from .grid import GridPlanner, cell_bbox
from .models import DiscoveryState, SearchCell, SearchTask
from .utils import polite_sleep

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryStats:
    tasks_run: int = 0
    tasks_skipped: int = 0
    cells_densified: int = 0
    bands_split: int = 0
    stopped_early: bool = False


class ListingDiscoverer:
    def __init__(
        self,
        client: AirbnbClient,
        credentials: CredentialProvider,
        planner: GridPlanner,
        config: FinderConfig,
        state: Optional[DiscoveryState] = None,
    ):
        self.client = client
        self.credentials = credentials
        self.planner = planner
        self.config = config
        self.state = state if state is not None else DiscoveryState()
        self.stats = DiscoveryStats()
        self._densified: Set[SearchCell] = set()
        self._consecutive_failures = 0
        self._stopped = False

    async def discover(self, tasks: Iterable[SearchTask]) -> Tuple[Set[str], Set[str]]:
        """Run every task (and the follow-ups they spawn); return listing and host ids."""
        queue: asyncio.Queue = asyncio.Queue()
        for task in tasks:
            queue.put_nowait(task)

        workers = [asyncio.create_task(self._worker(queue)) for _ in range(self.config.workers)]
        joiner = asyncio.create_task(queue.join())
        try:
            done, _ = await asyncio.wait([joiner, *workers], return_when=asyncio.FIRST_COMPLETED)
            for finished in done:
                if finished is not joiner:
                    # A worker only returns by raising
                    finished.result()
        finally:
            joiner.cancel()
            for w in workers:
                w.cancel()
            await asyncio.gather(joiner, *workers, return_exceptions=True)

        logger.info(
            f">>> Discovery finished: {len(self.state.listings)} listings, "
            f"{len(self.state.host_ids)} hosts, {self.stats.tasks_run} searches "
            f"({self.stats.tasks_skipped} skipped)"
        )
        return self.state.listing_ids, self.state.host_id_set

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            task = await queue.get()
            try:
                if self._stopped:
                    continue
                # Follow-ups are only queued once their parent is finished
                for follow_up in await self.run_task(task):
                    queue.put_nowait(follow_up)
            finally:
                queue.task_done()

    async def run_task(self, task: SearchTask) -> List[SearchTask]:
        """Search one (cell, band); return the follow-up tasks it calls for."""
        self.stats.tasks_run += 1
        logger.info(f"  [{self.stats.tasks_run}] Searching {task.describe()}...")

        api_key = self.credentials.token
        try:
            new_count = await self._collect(task, api_key)
        except SearchRequestError as e:
            self.stats.tasks_skipped += 1
            logger.warning(f"    -> Skipping area due to error: {e}")
            await self._on_failure(api_key)
            await polite_sleep(self.config.delay_range)
            return []

        self._consecutive_failures = 0
        if new_count > 0:
            logger.info(f"    -> Found {new_count} new listings. Total unique: {len(self.state.listings)}")

        follow_ups = self.follow_ups(task, new_count)

        cap = self.config.debug_max_listings
        if cap is not None and len(self.state.listings) >= cap:
            logger.info(f">>> DEBUG MODE: Reached {len(self.state.listings)} listings, stopping discovery")
            self._stopped = True
            self.stats.stopped_early = True
            follow_ups = []

        await polite_sleep(self.config.delay_range)
        return follow_ups

    async def _collect(self, task: SearchTask, api_key: str) -> int:
        bbox = cell_bbox(task.cell)
        new_count = 0
        offset = 0
        for _ in range(self.config.max_pages):
            page = await self.client.search(bbox, task.band.min, task.band.max, offset, api_key)
            for item in page.items:
                if await self.state.record(item.listing_id, item.host_id):
                    new_count += 1
            if not page.has_next_page:
                break
            offset += self.config.page_size
            await polite_sleep(self.config.delay_range)
        return new_count

    def follow_ups(self, task: SearchTask, new_count: int) -> List[SearchTask]:
        cell, band = task.cell, task.band
        tasks: List[SearchTask] = []

        if (new_count >= self.config.density_threshold
                and self.planner.can_subdivide(cell)
                and cell not in self._densified):
            self._densified.add(cell)
            children = self.planner.subdivide(cell)
            self.stats.cells_densified += 1
            logger.info(
                f"    High density area ({new_count} listings): subdividing into "
                f"{len(children)} areas ({cell.radius_km / 2}km radius each)"
            )
            for child in children:
                tasks.extend(self.planner.tasks_for(child))

        if new_count >= self.config.result_cap and self.planner.can_split(band):
            low, high = band.split()
            self.stats.bands_split += 1
            logger.info(
                f"    Hit listing limit ({new_count}). Splitting price range "
                f"{band.min:.0f}-{band.max:.0f} at {low.max:.0f}"
            )
            tasks.append(SearchTask(cell, low))
            tasks.append(SearchTask(cell, high))

        return tasks

    async def _on_failure(self, stale_key: Optional[str]) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures < self.config.failure_threshold:
            return
        logger.info(f"    Refreshing API key after {self._consecutive_failures} consecutive errors...")
        try:
            await self.credentials.refresh(stale_key)
            self._consecutive_failures = 0
        except CredentialError as e:
            logger.error(f"    Failed to refresh API key: {e}")
