"""
Database models.
SQLAlchemy 2.0 declarative mapping.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from skywave.models.propagation import SolarIndices
from skywave.utils import ensure_utc, utcnow


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""

    pass


class SolarIndicesDB(Base):
    """Solar index snapshots, merged or per provider."""

    __tablename__ = "solar_indices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    solar_flux_index: Mapped[float] = mapped_column(Float, nullable=False)
    a_index: Mapped[int] = mapped_column(Integer, nullable=False)
    k_index: Mapped[int] = mapped_column(Integer, nullable=False)
    sunspot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    observed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (Index("idx_solar_source_recorded", "source", "recorded_at"),)

    @classmethod
    def from_model(
        cls, indices: SolarIndices, recorded_at: datetime | None = None
    ) -> "SolarIndicesDB":
        return cls(
            source=indices.source,
            solar_flux_index=indices.solar_flux_index,
            a_index=indices.a_index,
            k_index=indices.k_index,
            sunspot_number=indices.sunspot_number,
            observed_at=indices.timestamp,
            recorded_at=recorded_at or utcnow(),
        )

    def to_model(self) -> SolarIndices:
        # SQLite hands back naive datetimes
        return SolarIndices(
            solar_flux_index=self.solar_flux_index,
            a_index=self.a_index,
            k_index=self.k_index,
            sunspot_number=self.sunspot_number,
            timestamp=ensure_utc(self.observed_at),
            source=self.source,
        )

    def __repr__(self) -> str:
        return (
            f"<SolarIndices(source={self.source}, sfi={self.solar_flux_index}, "
            f"k={self.k_index}, a={self.a_index})>"
        )
