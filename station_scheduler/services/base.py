"""
Common interface of the scheduling strategies.
"""

from dataclasses import dataclass
from typing import List, Sequence

from station_scheduler.models import ScheduleItem, SchedulingConstraint
from station_scheduler.services.run_context import RunContext


@dataclass
class StrategyOutcome:
    backtrack_count: int = 0
    iterations: int = 0


class SchedulingStrategy:
    """
    A search strategy places prioritized matches into a RunContext.

    On return, context.schedule holds the placed slots and context.conflicts
    holds a conflict for every match that could not be placed validly.
    """

    name = ""

    def schedule(self, context: RunContext, items: List[ScheduleItem],
                 constraints: Sequence[SchedulingConstraint]) -> StrategyOutcome:
        raise NotImplementedError
