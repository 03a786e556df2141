"""Heating decision rules and the orchestrator that feeds them.

``decide`` is pure: given a thermostat snapshot, the master override and
today's context it returns a :class:`Decision`. Rules are evaluated in
priority order and the first match wins:

1. master eco mode on
2. holiday today
3. occupant away today, inside the away-eco window
4. forecast agrees with the current schedule intent
5. live indoor temperature against the master set-point

:class:`DecisionEngine` gathers the inputs (store and oracles, never cached
beyond one call) and routes ``command`` outcomes through the dispatcher.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from nest_heating.config import SETTINGS, Settings
from nest_heating.errors import ConfigError, DeviceError, NoDataError, StoreError
from nest_heating.integrations.context_oracles import ContextOracles, ContextSnapshot
from nest_heating.integrations.device_adapter import Device, DeviceAdapter
from nest_heating.models.enums import DecisionOutcome, DecisionRule, EcoMode
from nest_heating.models.schemas import MasterOverride
from nest_heating.models.stores import ScheduleStore

if TYPE_CHECKING:
    from nest_heating.core.dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HeatingState:
    """Desired thermostat state; ``heat_temperature`` only applies with eco off."""

    eco_mode: bool
    heat_temperature: float | None = None

    @classmethod
    def eco(cls) -> HeatingState:
        return cls(eco_mode=True)

    @classmethod
    def heat(cls, temperature: float | None) -> HeatingState:
        return cls(eco_mode=False, heat_temperature=temperature)


@dataclass(frozen=True, slots=True)
class Decision:
    outcome: DecisionOutcome
    state: HeatingState | None
    rule: DecisionRule | None
    reason: str

    @property
    def is_command(self) -> bool:
        return self.outcome == DecisionOutcome.command


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------


def _in_night_window(hour: int, settings: Settings) -> bool:
    start, end = settings.night_start_hour, settings.night_end_hour
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def master_temperature(master: MasterOverride, now: datetime, settings: Settings) -> float:
    """Return the set-point rule 5 heats to.

    Raises:
        ConfigError: If the master record carries no usable temperature.
    """
    temperature = master.day_temperature
    if settings.night_setback_enabled and _in_night_window(now.hour, settings):
        temperature = master.night_temperature
    if temperature is None:
        raise ConfigError("Master record has no temperature set")
    return temperature


def coldest_indoor_temperature(context: ContextSnapshot, settings: Settings) -> int:
    """Floor of the lowest indoor reading outside the excluded locations.

    Raises:
        NoDataError: If nothing is left once excluded locations are dropped.
    """
    excluded = {name.casefold() for name in settings.excluded_location_names}
    temperatures = [
        reading.temperature_c
        for reading in context.indoor_readings
        if reading.location.casefold() not in excluded
    ]
    if not temperatures:
        raise NoDataError("No indoor temperature readings available")
    return math.floor(min(temperatures))


def _matches(current: Device | None, state: HeatingState) -> bool:
    if current is None or current.eco_mode is None:
        return False
    if current.eco_mode != EcoMode.from_bool(state.eco_mode):
        return False
    if state.eco_mode or state.heat_temperature is None:
        return True
    return current.set_point_c == state.heat_temperature


def _resolve(
    current: Device | None,
    master: MasterOverride,
    context: ContextSnapshot,
    intent: HeatingState | None,
    schedule_driven: bool,
    settings: Settings,
) -> tuple[HeatingState, DecisionRule, str]:
    hour = context.now.hour

    if context.on_holiday_today is True:
        return HeatingState.eco(), DecisionRule.holiday, "On holiday today"

    if (
        context.at_home_today is False
        and settings.away_eco_start_hour <= hour <= settings.away_eco_end_hour
    ):
        return HeatingState.eco(), DecisionRule.away_today, "Nobody home today"

    if intent is not None:
        forecast = context.forecast_high_c
        cosy = settings.cosy_outside_temp_c
        if forecast is None and schedule_driven:
            state = HeatingState.eco() if intent.eco_mode else intent
            return state, DecisionRule.schedule, "Following schedule, no forecast available"
        if forecast is not None and forecast < cosy and not intent.eco_mode:
            return (
                HeatingState.heat(intent.heat_temperature),
                DecisionRule.weather,
                f"Forecast high {forecast:.1f}C below {cosy:.1f}C, keeping heating on",
            )
        if forecast is not None and forecast >= cosy and intent.eco_mode:
            return (
                HeatingState.eco(),
                DecisionRule.weather,
                f"Forecast high {forecast:.1f}C at or above {cosy:.1f}C, keeping eco on",
            )

    target = master_temperature(master, context.now, settings)
    coldest = coldest_indoor_temperature(context, settings)
    if coldest < target:
        return (
            HeatingState.heat(target),
            DecisionRule.indoor_temperature,
            f"Coldest room {coldest}C below {target:.1f}C",
        )
    return (
        HeatingState.eco(),
        DecisionRule.indoor_temperature,
        f"Coldest room {coldest}C at or above {target:.1f}C",
    )


def decide(
    current: Device | None,
    master: MasterOverride,
    context: ContextSnapshot,
    intent: HeatingState | None = None,
    *,
    schedule_driven: bool = False,
    settings: Settings = SETTINGS,
) -> Decision:
    """Compute the desired heating state for one thermostat.

    ``intent`` is the schedule entry in force (the firing one when
    ``schedule_driven``, otherwise the most recent one). A lack of indoor data
    is reported as a ``no_data`` decision, never as a command.

    Raises:
        ConfigError: If rule 5 is reached without a master temperature.
    """
    if master.eco_mode:
        state = HeatingState.eco()
        if current is not None and current.eco_mode == EcoMode.on:
            return Decision(
                DecisionOutcome.no_op, state, DecisionRule.master_eco, "Master eco mode on"
            )
        return Decision(
            DecisionOutcome.command, state, DecisionRule.master_eco, "Master eco mode on"
        )

    try:
        state, rule, reason = _resolve(
            current, master, context, intent, schedule_driven, settings
        )
    except NoDataError as exc:
        return Decision(DecisionOutcome.no_data, None, None, str(exc))

    if _matches(current, state):
        return Decision(DecisionOutcome.no_op, state, rule, f"{reason}; already in state")
    return Decision(DecisionOutcome.command, state, rule, reason)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class DecisionEngine:
    """Gather inputs, run :func:`decide` and dispatch the result."""

    def __init__(
        self,
        *,
        store: ScheduleStore,
        oracles: ContextOracles,
        adapter: DeviceAdapter,
        dispatcher: CommandDispatcher,
        settings: Settings = SETTINGS,
    ) -> None:
        self._store = store
        self._oracles = oracles
        self._adapter = adapter
        self._dispatcher = dispatcher
        self._settings = settings

    async def gather(self) -> tuple[MasterOverride, ContextSnapshot]:
        """Read the master record and a fresh context snapshot.

        Raises:
            StoreError: If the schedule store cannot be read.
            ConfigError: If there is no master record.
        """
        entries = await self._store.list_schedules()
        master = MasterOverride.from_entries(entries)
        context = await self._oracles.snapshot()
        return master, context

    async def evaluate(
        self,
        device: Device,
        intent: HeatingState | None = None,
        *,
        schedule_driven: bool = False,
        master: MasterOverride | None = None,
        context: ContextSnapshot | None = None,
    ) -> Decision | None:
        """Decide for *device* and dispatch a ``command`` outcome.

        Returns ``None`` when the master record is unusable.

        Raises:
            StoreError: If inputs had to be gathered and the store failed.
            DeviceError: If the dispatcher could not apply the command.
        """
        try:
            if master is None or context is None:
                master, context = await self.gather()
            decision = decide(
                device,
                master,
                context,
                intent,
                schedule_driven=schedule_driven,
                settings=self._settings,
            )
        except ConfigError as exc:
            logger.error("Cannot decide for %s: %s", device.device_id, exc)
            return None

        if decision.outcome == DecisionOutcome.no_data:
            logger.info("No data for %s, leaving as is: %s", device.device_id, decision.reason)
        elif decision.outcome == DecisionOutcome.no_op:
            logger.debug("No change for %s: %s", device.device_id, decision.reason)
        else:
            assert decision.state is not None  # noqa: S101 - command always has a state
            logger.info(
                "Decision for %s [%s]: %s", device.device_id, decision.rule, decision.reason
            )
            await self._dispatcher.apply(device.device_id, decision.state, current=device)
        return decision

    async def apply_to_thermostats(
        self,
        intent: HeatingState | None = None,
        *,
        schedule_driven: bool = False,
    ) -> list[Decision]:
        """Evaluate every thermostat, isolating device failures."""
        try:
            thermostats = await self._adapter.list_thermostats()
            master, context = await self.gather()
        except DeviceError as exc:
            logger.error("Unable to list thermostats: %s", exc)
            return []
        except (StoreError, ConfigError) as exc:
            logger.error("Unable to gather decision inputs: %s", exc)
            return []

        decisions: list[Decision] = []
        for device in thermostats:
            try:
                decision = await self.evaluate(
                    device,
                    intent,
                    schedule_driven=schedule_driven,
                    master=master,
                    context=context,
                )
            except DeviceError as exc:
                logger.error("Failed to update %s: %s", device.device_id, exc)
                continue
            if decision is not None:
                decisions.append(decision)
        return decisions


__all__ = [
    "Decision",
    "DecisionEngine",
    "HeatingState",
    "coldest_indoor_temperature",
    "decide",
    "master_temperature",
]
