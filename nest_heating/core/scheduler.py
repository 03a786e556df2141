"""Daily heating jobs derived from the schedule store.

The job set is never edited in place: every ``rebuild()`` reads the store,
builds a fresh tuple of :class:`RegisteredJob` and swaps it into APScheduler
in one step. The store stays the source of truth.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]

from nest_heating.config import SETTINGS, Settings
from nest_heating.errors import ConfigError, StoreError, ValidationError
from nest_heating.integrations.context_oracles import ContextOracles
from nest_heating.models.schemas import MasterOverride, ScheduleEntry
from nest_heating.models.stores import ScheduleStore

from .decision_engine import DecisionEngine, HeatingState

logger = logging.getLogger(__name__)

JOB_ID_PREFIX = "heating-schedule-"


@dataclass(frozen=True, slots=True)
class RegisteredJob:
    """A qualified schedule entry, captured by value at rebuild time."""

    hour: int
    minute: int
    description: str
    schedule_number: int
    eco_mode: bool
    temperature: float | None = None

    @property
    def job_id(self) -> str:
        return f"{JOB_ID_PREFIX}{self.schedule_number}"

    @property
    def intent(self) -> HeatingState:
        if self.eco_mode:
            return HeatingState.eco()
        return HeatingState.heat(self.temperature)


class HeatingScheduler:
    """Own the registered heating jobs and fire them through the engine."""

    def __init__(
        self,
        aps_scheduler: AsyncIOScheduler,
        *,
        store: ScheduleStore,
        oracles: ContextOracles,
        engine: DecisionEngine,
        settings: Settings = SETTINGS,
    ) -> None:
        self._aps = aps_scheduler
        self._store = store
        self._oracles = oracles
        self._engine = engine
        self._settings = settings
        self._tz = ZoneInfo(settings.time_zone)
        self._jobs: tuple[RegisteredJob, ...] = ()
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def jobs(self) -> tuple[RegisteredJob, ...]:
        return self._jobs

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    async def rebuild(self) -> bool:
        """Re-derive the job set from the store and publish it.

        Returns ``True`` when a new set was published, ``False`` when the
        store could not be read (previous jobs kept) or a newer rebuild
        superseded this one.
        """
        self._generation += 1
        generation = self._generation

        async with self._lock:
            if generation != self._generation:
                logger.debug("Rebuild %d superseded before start", generation)
                return False

            try:
                entries = await self._store.list_schedules()
            except StoreError as exc:
                logger.error(
                    "Schedule rebuild aborted, keeping %d job(s): %s", len(self._jobs), exc
                )
                return False

            jobs = await self._derive_jobs(entries)

            if generation != self._generation:
                logger.debug("Rebuild %d superseded, discarding", generation)
                return False

            self._publish(jobs)
            return True

    async def _derive_jobs(self, entries: list[ScheduleEntry]) -> tuple[RegisteredJob, ...]:
        try:
            master_eco = MasterOverride.from_entries(entries).eco_mode
        except ConfigError as exc:
            logger.warning("%s, treating master eco mode as off", exc)
            master_eco = False

        if master_eco:
            logger.info("Master eco mode active, skipping schedule setup")
            return ()

        candidates: list[ScheduleEntry] = []
        for entry in entries:
            if entry.is_master or not entry.active:
                continue
            try:
                entry.check_trigger()
            except ValidationError as exc:
                logger.error("Skipping schedule: %s", exc)
                continue
            candidates.append(entry)

        if not candidates:
            return ()

        on_holiday, at_home, kids_at_home = await asyncio.gather(
            self._oracles.on_holiday_today(),
            self._oracles.at_home_today(),
            self._oracles.kids_at_home_today(),
        )

        jobs: list[RegisteredJob] = []
        for entry in candidates:
            # a holiday registers every job in eco, override conditions aside
            if entry.override and on_holiday is not True:
                if at_home is True:
                    logger.info("At home, skipping schedule: %s", entry.name)
                    continue
                if (
                    self._settings.school_return_pattern in entry.name
                    and kids_at_home is False
                ):
                    logger.info("Kids not at home, skipping schedule: %s", entry.name)
                    continue

            assert entry.hour is not None and entry.minute is not None  # noqa: S101
            jobs.append(
                RegisteredJob(
                    hour=entry.hour,
                    minute=entry.minute,
                    description=entry.name,
                    schedule_number=entry.schedule_number,
                    eco_mode=True if on_holiday is True else entry.eco_mode,
                    temperature=entry.temperature,
                )
            )
        return tuple(sorted(jobs, key=lambda job: (job.hour, job.minute, job.schedule_number)))

    def _publish(self, jobs: tuple[RegisteredJob, ...]) -> None:
        for existing in self._aps.get_jobs():
            if existing.id.startswith(JOB_ID_PREFIX):
                self._aps.remove_job(existing.id)
        for job in jobs:
            self._aps.add_job(
                self._fire,
                CronTrigger(hour=job.hour, minute=job.minute, timezone=self._tz),
                args=[job],
                id=job.job_id,
                name=job.description,
                replace_existing=True,
            )
        self._jobs = jobs
        logger.info("Registered %d heating schedule(s)", len(jobs))

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def forecast_contradicts(self, job: RegisteredJob, forecast_high: float | None) -> bool:
        if forecast_high is None:
            return False
        cosy = self._settings.cosy_outside_temp_c
        if forecast_high < cosy and job.eco_mode:
            return True
        return forecast_high >= cosy and not job.eco_mode

    async def _fire(self, job: RegisteredJob) -> None:
        logger.info("Running heating schedule: %s", job.description)
        forecast_high = await self._oracles.forecast_high_today()
        if self.forecast_contradicts(job, forecast_high):
            logger.info(
                "Forecast high %.1fC contradicts %s, not running",
                forecast_high,
                job.description,
            )
            return
        await self._engine.apply_to_thermostats(job.intent, schedule_driven=True)

    def intent_at(self, now: datetime) -> RegisteredJob | None:
        """Return the job most recently due at *now*, wrapping to yesterday."""
        if not self._jobs:
            return None
        current = (now.hour, now.minute)
        due = [job for job in self._jobs if (job.hour, job.minute) <= current]
        return due[-1] if due else self._jobs[-1]


__all__ = ["JOB_ID_PREFIX", "HeatingScheduler", "RegisteredJob"]
