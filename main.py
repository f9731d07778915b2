"""
Skywave entry point.
Starts every feed on its own schedule and keeps the cache slots warm.
"""

import asyncio
import sys

from loguru import logger

from skywave.analysis.dashboard import DashboardService
from skywave.analysis.merge import SolarIndicesMerger
from skywave.datasource.activations import PotaSource, SotaSource
from skywave.datasource.base import ResilientDataSource
from skywave.datasource.contests import ContestCalendarSource
from skywave.datasource.meteors import MeteorShowerSource
from skywave.datasource.propagation import (
    HamQslBandSource,
    HamQslSolarSource,
    NoaaSolarSource,
)
from skywave.datasource.scheduler import DataScheduler
from skywave.datastore.engine import close_db, get_session_factory, init_db
from skywave.services.client import ServiceClient, close_service_client, get_service_client
from skywave.settings import global_settings


def build_sources(client: ServiceClient) -> list[ResilientDataSource]:
    """One adapter per upstream feed, all sharing `client`."""
    return [
        NoaaSolarSource(client),
        HamQslSolarSource(client),
        HamQslBandSource(client),
        PotaSource(client),
        SotaSource(client),
        ContestCalendarSource(client),
        MeteorShowerSource(client),
    ]


async def main() -> None:
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())
    logger.info("Starting skywave...")

    client = get_service_client()
    sources = build_sources(client)
    scheduler = DataScheduler()
    scheduler.register_all(sources)

    session_factory = None
    try:
        if global_settings.persist_snapshots:
            logger.info("Initializing database...")
            await init_db()
            session_factory = get_session_factory()
            logger.info("Database initialized successfully")

        scheduler.set_merge(SolarIndicesMerger(client.cache), session_factory)
        scheduler.start()
        await scheduler.fetch_all_now()

        dashboard = DashboardService(client.cache, sources)
        for card in dashboard.cards():
            logger.info(f"[{card.hotness}] {card.title} (priority {card.priority})")

        logger.info("skywave is running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(60)

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    except Exception as e:
        logger.error(f"Error in main loop: {e}")
    finally:
        scheduler.stop()
        await close_service_client()
        if session_factory is not None:
            logger.info("Closing database connections...")
            await close_db()
        logger.info("skywave stopped")


if __name__ == "__main__":
    asyncio.run(main())
