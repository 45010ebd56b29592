"""
Data models for the scheduling engine.
"""

from .models import (
    ConstraintType,
    ConstraintPriority,
    SlotStatus,
    ConflictType,
    ConflictSeverity,
    TimeWindow,
    Station,
    Match,
    SchedulingConstraint,
    PlayerAvailability,
    ScheduleSlot,
    ScheduleConflict,
    ScheduleUpdate,
    ScheduleItem,
    ScheduleResult,
)
from .config import (
    Algorithm,
    OptimizationGoalType,
    OptimizationGoal,
    SchedulingConfig,
)

__all__ = [
    "ConstraintType",
    "ConstraintPriority",
    "SlotStatus",
    "ConflictType",
    "ConflictSeverity",
    "TimeWindow",
    "Station",
    "Match",
    "SchedulingConstraint",
    "PlayerAvailability",
    "ScheduleSlot",
    "ScheduleConflict",
    "ScheduleUpdate",
    "ScheduleItem",
    "ScheduleResult",
    "Algorithm",
    "OptimizationGoalType",
    "OptimizationGoal",
    "SchedulingConfig",
]
