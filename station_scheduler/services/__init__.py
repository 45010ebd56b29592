"""
Services for scheduling, conflict detection, scoring and re-scheduling.
"""

from .engine import SchedulingEngine, STRATEGIES
from .players import PlayerDirectory, build_roster_resolver
from .overlap_index import OverlapIndex
from .conflicts import ConflictDetector
from .greedy import GreedyScheduler
from .backtracking import BacktrackingScheduler
from .csp import ConstraintSatisfactionScheduler
from .genetic import GeneticScheduler
from .scorer import ScheduleScorer
from .rescheduler import DelayRescheduler

__all__ = [
    "SchedulingEngine",
    "STRATEGIES",
    "PlayerDirectory",
    "build_roster_resolver",
    "OverlapIndex",
    "ConflictDetector",
    "GreedyScheduler",
    "BacktrackingScheduler",
    "ConstraintSatisfactionScheduler",
    "GeneticScheduler",
    "ScheduleScorer",
    "DelayRescheduler",
]
