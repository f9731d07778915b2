"""
Data scheduler - one interval job per feed, plus the solar merge hook.
"""

import asyncio
from typing import Any, Callable, Iterable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from skywave.analysis.merge import HAMQSL_SLOT, NOAA_SLOT, SolarIndicesMerger
from skywave.datasource.base import ResilientDataSource
from skywave.datastore.repositories import SolarIndicesRepository
from skywave.models.propagation import SolarIndices
from skywave.utils import safe_job_wrapper


class DataScheduler:
    """
    Runs every registered feed's fetch on its own refresh interval.

    Each feed gets exactly one job with max_instances=1, so a slot only ever
    has one writer. After either solar provider refreshes, the merge runs
    and, when a session factory is set, the merged record is stored.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None):
        self.scheduler = scheduler or AsyncIOScheduler()
        self._is_running = False
        self._sources: dict[str, ResilientDataSource] = {}

        self._merger: SolarIndicesMerger | None = None
        self._merge_trigger_ids: set[str] = {NOAA_SLOT, HAMQSL_SLOT}
        self._session_factory: Callable[[], Any] | None = None
        self.latest_solar: SolarIndices | None = None

    @property
    def sources(self) -> list[ResilientDataSource]:
        return list(self._sources.values())

    def register(self, source: ResilientDataSource) -> None:
        if source.service_id in self._sources:
            logger.warning(f"Replacing registered source '{source.service_id}'")
        self._sources[source.service_id] = source

    def register_all(self, sources: Iterable[ResilientDataSource]) -> None:
        for source in sources:
            self.register(source)

    def set_merge(
        self,
        merger: SolarIndicesMerger,
        session_factory: Callable[[], Any] | None = None,
        trigger_ids: Iterable[str] | None = None,
    ) -> None:
        """Run `merger` after the listed feeds refresh; persist if a session factory is given."""
        self._merger = merger
        self._session_factory = session_factory
        if trigger_ids is not None:
            self._merge_trigger_ids = set(trigger_ids)

    @safe_job_wrapper
    async def refresh_source(self, service_id: str) -> None:
        """Fetch one feed, then run the merge hook if that feed feeds it."""
        source = self._sources[service_id]
        result = await source.fetch()
        if result.is_stale:
            logger.warning(f"{service_id}: serving fallback data from {result.source}")

        if self._merger is not None and service_id in self._merge_trigger_ids:
            try:
                await self._merge_and_persist()
            except Exception as e:
                logger.error(f"Solar merge after {service_id} refresh failed: {e}")

    async def _merge_and_persist(self) -> None:
        merged = self._merger.merge_from_cache()
        self.latest_solar = merged
        if merged is None or self._session_factory is None:
            return

        async with self._session_factory() as session:
            repo = SolarIndicesRepository(session)
            await repo.save(merged)
            await session.commit()
        logger.debug(f"Stored merged solar indices from {merged.source}")

    def start(self) -> None:
        """Add one interval job per feed and start the scheduler."""
        if self._is_running:
            logger.warning("DataScheduler is already running")
            return

        for service_id, source in self._sources.items():
            self.scheduler.add_job(
                self.refresh_source,
                trigger="interval",
                seconds=source.refresh_interval.total_seconds(),
                args=[service_id],
                id=f"{service_id}_fetch",
                name=f"{source.source_label} Fetcher",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info(
                f"{service_id} job: every {source.refresh_interval.total_seconds() / 60:g} min"
            )

        self.scheduler.start()
        self._is_running = True
        logger.info(f"DataScheduler started with {len(self._sources)} feeds")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._is_running:
            return
        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("DataScheduler stopped")

    def is_running(self) -> bool:
        return self._is_running

    async def fetch_all_now(self) -> None:
        """Fetch every feed once, concurrently."""
        logger.info("Running initial data fetch for all sources...")
        if self._sources:
            results = await asyncio.gather(
                *(self.refresh_source(service_id) for service_id in self._sources),
                return_exceptions=True,
            )
            for service_id, result in zip(self._sources, results):
                if isinstance(result, Exception):
                    logger.error(f"Initial fetch of {service_id} failed: {result}")
        logger.info("Initial data fetch complete")

    def get_status(self) -> dict[str, Any]:
        """Get scheduler status."""
        jobs = []
        if self._is_running:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                    }
                )
        return {
            "running": self._is_running,
            "jobs": jobs,
            "sources": {
                service_id: source.get_status()
                for service_id, source in self._sources.items()
            },
        }
