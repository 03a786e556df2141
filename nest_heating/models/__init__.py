"""Persistence models, schemas and stores for nest-heating."""

from __future__ import annotations

from .database import MASTER_SCHEDULE_NUMBER, Base, DeviceReading, Schedule
from .enums import (
    DecisionOutcome,
    DecisionRule,
    DeviceKind,
    DispatchOutcome,
    EcoMode,
    ReportDuration,
)
from .schemas import MasterOverride, ScheduleEntry
from .stores import ReadingStore, ScheduleStore, SqlReadingStore, SqlScheduleStore

__all__ = [
    "MASTER_SCHEDULE_NUMBER",
    "Base",
    "DecisionOutcome",
    "DecisionRule",
    "DeviceKind",
    "DeviceReading",
    "DispatchOutcome",
    "EcoMode",
    "MasterOverride",
    "ReadingStore",
    "Schedule",
    "ScheduleEntry",
    "ScheduleStore",
    "SqlReadingStore",
    "SqlScheduleStore",
]
