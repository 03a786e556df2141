"""Core heating logic: decisions, dispatch, scheduling and ingestion."""

from .decision_engine import Decision, DecisionEngine, HeatingState, decide
from .dispatcher import CommandDispatcher, DispatchResult
from .ingestion import TelemetryIngestor
from .scheduler import HeatingScheduler, RegisteredJob

__all__ = [
    "CommandDispatcher",
    "Decision",
    "DecisionEngine",
    "DispatchResult",
    "HeatingScheduler",
    "HeatingState",
    "RegisteredJob",
    "TelemetryIngestor",
    "decide",
]
