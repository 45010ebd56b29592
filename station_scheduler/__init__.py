"""
Station Scheduling Engine.
Assigns tournament matches to game stations within a time window.
"""

from .models import (
    Station,
    Match,
    SchedulingConstraint,
    ScheduleSlot,
    ScheduleConflict,
    ScheduleResult,
    SchedulingConfig,
    OptimizationGoal,
)
from .services import SchedulingEngine, build_roster_resolver

__all__ = [
    "Station",
    "Match",
    "SchedulingConstraint",
    "ScheduleSlot",
    "ScheduleConflict",
    "ScheduleResult",
    "SchedulingConfig",
    "OptimizationGoal",
    "SchedulingEngine",
    "build_roster_resolver",
]
