"""SQLAlchemy models and async engine manager for nest-heating."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, select
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MASTER_SCHEDULE_NUMBER = 0


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all ORM models."""


def utcnow() -> datetime:
    return datetime.now(UTC)


class Schedule(Base):
    """A timed heating rule, or the master override when ``schedule_number`` is 0."""

    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    schedule_number: Mapped[int] = mapped_column(Integer(), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    hour: Mapped[int | None] = mapped_column(Integer())
    minute: Mapped[int | None] = mapped_column(Integer())
    eco_mode: Mapped[bool] = mapped_column(Boolean(), default=False)
    temperature: Mapped[float | None] = mapped_column(Float())
    # Master record only
    day_temp: Mapped[float | None] = mapped_column(Float())
    night_temp: Mapped[float | None] = mapped_column(Float())
    active: Mapped[bool] = mapped_column(Boolean(), default=True)
    override: Mapped[bool] = mapped_column(Boolean(), default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class DeviceReading(Base):
    """One append-only poll of one thermostat."""

    __tablename__ = "device_readings"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    device_id: Mapped[str] = mapped_column(String(255), nullable=False)
    device: Mapped[str] = mapped_column(String(128), nullable=False)
    location: Mapped[str | None] = mapped_column(String(128))
    temperature_c: Mapped[float | None] = mapped_column(Float())
    humidity: Mapped[float | None] = mapped_column(Float())
    connectivity: Mapped[str | None] = mapped_column(String(32))
    mode: Mapped[str | None] = mapped_column(String(32))
    eco_mode: Mapped[bool | None] = mapped_column(Boolean())
    set_point_c: Mapped[float | None] = mapped_column(Float())
    hvac_status: Mapped[str | None] = mapped_column(String(32))


# ============================================================================
# Global engine and session management
# ============================================================================

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


_db_logger = logging.getLogger(__name__)


def get_engine() -> AsyncEngine:
    """Get the global async engine."""
    global _engine
    if _engine is None:
        from nest_heating.config import get_settings

        settings = get_settings()

        _db_logger.info(
            "Creating engine -> %s:%s/%s",
            settings.db_host,
            settings.db_port,
            settings.db_name,
        )

        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            future=True,
            pool_size=5,
            max_overflow=10,
        )
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the global session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def init_db() -> None:
    """Create all tables and seed the master record when it is missing."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_maker()() as session:
        result = await session.execute(
            select(Schedule).where(Schedule.schedule_number == MASTER_SCHEDULE_NUMBER)
        )
        if result.scalar_one_or_none() is None:
            session.add(
                Schedule(
                    schedule_number=MASTER_SCHEDULE_NUMBER,
                    name="Master",
                    eco_mode=False,
                    day_temp=19.0,
                    night_temp=16.0,
                    active=True,
                )
            )
            await session.commit()
            _db_logger.info("Seeded master schedule record")


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
