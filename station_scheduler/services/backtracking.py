"""
Depth-first backtracking over (grid time x station) placements.

The search keeps an explicit stack of candidate iterators, one per match
level, instead of recursing. Advancing a level places a slot; exhausting a
level pops it and undoes the placement made by the level below.
"""

from typing import Iterator, List, Sequence

from station_scheduler.core.logging_config import get_logger
from station_scheduler.models import (
    ConflictSeverity, ScheduleItem, ScheduleSlot, SchedulingConstraint
)
from station_scheduler.services.base import SchedulingStrategy, StrategyOutcome
from station_scheduler.services.run_context import RunContext

logger = get_logger(__name__)


class BacktrackingScheduler(SchedulingStrategy):
    """
    Exhaustive search in match priority order. Stops at the first complete
    assignment, or when the iteration budget or deadline runs out; in the
    latter cases the deepest partial assignment found is kept and the unplaced
    tail of the match list is reported as critical conflicts.
    """

    name = "backtracking"

    def schedule(self, context: RunContext, items: List[ScheduleItem],
                 constraints: Sequence[SchedulingConstraint]) -> StrategyOutcome:
        config = context.config
        outcome = StrategyOutcome()
        best: List[ScheduleSlot] = []
        stack: List[Iterator[ScheduleSlot]] = []
        if items:
            stack.append(iter(context.candidate_slots(items[0].match)))

        exhausted_budget = False
        while stack:
            if outcome.iterations >= config.max_iterations or context.deadline_passed():
                exhausted_budget = True
                break

            placed = None
            for slot in stack[-1]:
                outcome.iterations += 1
                if context.is_valid_slot(slot, constraints):
                    placed = slot
                    break

            if placed is not None:
                context.place(placed)
                if len(context.schedule) > len(best):
                    best = list(context.schedule)
                if len(context.schedule) == len(items):
                    break
                stack.append(iter(context.candidate_slots(items[len(context.schedule)].match)))
            else:
                stack.pop()
                if context.schedule:
                    context.remove(context.schedule[-1])
                    outcome.backtrack_count += 1

        if len(context.schedule) < len(items):
            if exhausted_budget:
                logger.warning(f"Backtracking stopped after {outcome.iterations} iterations "
                               f"({context.elapsed_seconds():.1f}s)")
            context.reset()
            for slot in best:
                context.place(slot)
            for item in items[len(best):]:
                context.report_unplaced(
                    item.match, ConflictSeverity.CRITICAL,
                    f"Unable to schedule match {item.match.id} with backtracking",
                )

        logger.debug(f"Backtracking placed {len(context.schedule)}/{len(items)} matches, "
                     f"{outcome.backtrack_count} backtracks")
        return outcome
