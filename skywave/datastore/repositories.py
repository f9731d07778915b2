"""
Repository layer - data access for stored snapshots.
"""

from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from skywave.datastore.models import SolarIndicesDB
from skywave.models.propagation import SolarIndices
from skywave.utils import utcnow


class SolarIndicesRepository:
    """Solar index snapshot repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(
        self, indices: SolarIndices, recorded_at: datetime | None = None
    ) -> SolarIndicesDB:
        """Add a snapshot; the caller's session commits it."""
        row = SolarIndicesDB.from_model(indices, recorded_at)
        self.session.add(row)
        await self.session.flush()
        logger.debug(f"Saved solar snapshot from {indices.source}")
        return row

    async def latest_by_source(self, source: str) -> SolarIndices | None:
        """Most recently recorded snapshot with exactly this source label."""
        result = await self.session.execute(
            select(SolarIndicesDB)
            .where(SolarIndicesDB.source == source)
            .order_by(desc(SolarIndicesDB.recorded_at), desc(SolarIndicesDB.id))
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return row.to_model() if row else None

    async def latest(self) -> SolarIndices | None:
        """Most recently recorded snapshot from any source."""
        result = await self.session.execute(
            select(SolarIndicesDB)
            .order_by(desc(SolarIndicesDB.recorded_at), desc(SolarIndicesDB.id))
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return row.to_model() if row else None

    async def prune(self, keep_days: int = 7) -> None:
        """Delete snapshots recorded more than `keep_days` ago."""
        cutoff = utcnow() - timedelta(days=keep_days)
        await self.session.execute(
            delete(SolarIndicesDB).where(SolarIndicesDB.recorded_at < cutoff)
        )
        await self.session.flush()
