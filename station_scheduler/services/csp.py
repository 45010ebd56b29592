"""
Constraint-satisfaction scheduling.

Every match is a variable whose domain is the set of (grid time x compatible
station) slots. Domains are first made node-consistent (time ranges, player
availability), then arc-consistent with AC-3 over the hard binary
constraints, and finally searched depth-first with forward checking, always
branching on the match with the fewest remaining values.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

from station_scheduler.core.logging_config import get_logger
from station_scheduler.models import (
    ConflictSeverity, ScheduleItem, ScheduleSlot, SchedulingConstraint
)
from station_scheduler.services.base import SchedulingStrategy, StrategyOutcome
from station_scheduler.services.constraints import is_binary, pair_satisfies, slot_in_range
from station_scheduler.services.run_context import RunContext

logger = get_logger(__name__)

Domains = Dict[str, List[ScheduleSlot]]


@dataclass
class _SearchState:
    order: Dict[str, int]
    binary: Dict[str, List[SchedulingConstraint]]
    best: List[ScheduleSlot] = field(default_factory=list)
    exhausted: bool = False


@dataclass
class _Frame:
    variable: str
    values: Iterator[ScheduleSlot]
    remaining: List[str]
    placed: Optional[ScheduleSlot] = None
    pruned: Optional[Dict[str, List[ScheduleSlot]]] = None


class ConstraintSatisfactionScheduler(SchedulingStrategy):
    """Arc consistency followed by forward-checking backtracking search."""

    name = "constraint_satisfaction"

    def schedule(self, context: RunContext, items: List[ScheduleItem],
                 constraints: Sequence[SchedulingConstraint]) -> StrategyOutcome:
        outcome = StrategyOutcome()
        hard = [c for c in constraints if c.is_hard]
        match_ids = [item.match.id for item in items]

        domains = self.initialize_domains(context, items, hard)
        binary = self._binary_constraints(match_ids, hard)
        self.apply_arc_consistency(domains, binary)

        empty = [item for item in items if not domains[item.match.id]]
        for item in empty:
            context.report_unplaced(
                item.match, ConflictSeverity.CRITICAL,
                f"No station/time for match {item.match.id} is consistent with its constraints",
            )
            del domains[item.match.id]

        state = _SearchState(
            order={match_id: position for position, match_id in enumerate(match_ids)},
            binary=binary,
        )
        if domains and not self._search(context, domains, hard, state, outcome):
            if state.exhausted:
                logger.warning(f"CSP search stopped after {outcome.iterations} iterations "
                               f"({context.elapsed_seconds():.1f}s)")
            context.reset()
            for slot in state.best:
                context.place(slot)
            placed = {slot.match_id for slot in state.best}
            for item in items:
                if item.match.id in domains and item.match.id not in placed:
                    context.report_unplaced(
                        item.match, ConflictSeverity.CRITICAL,
                        f"Unable to schedule match {item.match.id} with constraint satisfaction",
                    )

        logger.debug(f"CSP placed {len(context.schedule)}/{len(items)} matches, "
                     f"{outcome.backtrack_count} backtracks")
        return outcome

    def initialize_domains(self, context: RunContext, items: List[ScheduleItem],
                           hard: Sequence[SchedulingConstraint]) -> Domains:
        """Full grid x station domains, reduced by unary constraints."""
        domains: Domains = {}
        for item in items:
            values = []
            for slot in context.candidate_slots(item.match):
                if not all(slot_in_range(c, slot) for c in hard if c.involves(slot.match_id)):
                    continue
                if context.config.respect_availability and context.detector.availability_conflicts(slot):
                    continue
                values.append(slot)
            domains[item.match.id] = values
        return domains

    def apply_arc_consistency(self, domains: Domains,
                              binary: Dict[str, List[SchedulingConstraint]]) -> bool:
        """
        AC-3. Removes every value of a match that has no supporting value in
        a related match's domain under some hard binary constraint.

        Returns:
            False when a domain was wiped out
        """
        queue = deque(self._arcs(domains, binary))
        consistent = True
        while queue:
            match_a, match_b, constraint = queue.popleft()
            if self._revise(domains, match_a, match_b, constraint):
                if not domains[match_a]:
                    consistent = False
                    continue
                for other_constraint in binary.get(match_a, []):
                    for match_c in other_constraint.match_ids:
                        if match_c not in (match_a, match_b) and match_c in domains:
                            queue.append((match_c, match_a, other_constraint))
        return consistent

    def _revise(self, domains: Domains, match_a: str, match_b: str,
                constraint: SchedulingConstraint) -> bool:
        supported = [
            value for value in domains[match_a]
            if any(pair_satisfies(constraint, value, other) for other in domains[match_b])
        ]
        if len(supported) == len(domains[match_a]):
            return False
        domains[match_a] = supported
        return True

    def _arcs(self, domains: Domains, binary: Dict[str, List[SchedulingConstraint]]):
        arcs = []
        for match_a, related in binary.items():
            for constraint in related:
                for match_b in constraint.match_ids:
                    if match_b != match_a and match_b in domains:
                        arcs.append((match_a, match_b, constraint))
        return arcs

    def _binary_constraints(self, match_ids: List[str],
                            hard: Sequence[SchedulingConstraint]) -> Dict[str, List[SchedulingConstraint]]:
        known = set(match_ids)
        binary: Dict[str, List[SchedulingConstraint]] = {}
        for constraint in hard:
            involved = [m for m in constraint.match_ids if m in known]
            if not is_binary(constraint) or len(involved) < 2:
                continue
            for match_id in involved:
                binary.setdefault(match_id, []).append(constraint)
        return binary

    def _search(self, context: RunContext, domains: Domains, hard: Sequence[SchedulingConstraint],
                state: _SearchState, outcome: StrategyOutcome) -> bool:
        """
        Depth-first search over an explicit stack of frames, one per assigned
        match. Re-entering a frame undoes its placement and restores the
        domains its forward check pruned before trying the next value.
        """
        stack = [self._frame(domains, list(domains), state)]
        while stack:
            if outcome.iterations >= context.config.max_iterations or context.deadline_passed():
                state.exhausted = True
                return False

            frame = stack[-1]
            if frame.placed is not None:
                domains.update(frame.pruned)
                context.remove(frame.placed)
                frame.placed = frame.pruned = None
                outcome.backtrack_count += 1

            for value in frame.values:
                outcome.iterations += 1
                if not context.is_valid_slot(value, hard):
                    continue

                context.place(value)
                if len(context.schedule) > len(state.best):
                    state.best = list(context.schedule)

                pruned = self._forward_check(context, value, domains, frame.remaining, state)
                if pruned is None:
                    context.remove(value)
                    outcome.backtrack_count += 1
                    continue
                frame.placed, frame.pruned = value, pruned
                break

            if frame.placed is None:
                stack.pop()
            elif not frame.remaining:
                return True
            else:
                stack.append(self._frame(domains, frame.remaining, state))

        return False

    def _frame(self, domains: Domains, unassigned: List[str], state: _SearchState) -> _Frame:
        # Most constrained variable first, priority order breaks ties
        variable = min(unassigned, key=lambda m: (len(domains[m]), state.order[m]))
        return _Frame(
            variable=variable,
            values=iter(list(domains[variable])),
            remaining=[m for m in unassigned if m != variable],
        )

    def _forward_check(self, context: RunContext, value: ScheduleSlot, domains: Domains,
                       remaining: List[str], state: _SearchState) -> Optional[Dict[str, List[ScheduleSlot]]]:
        """
        Drop values of unassigned matches that clash with the new assignment.

        Returns:
            The previous domains of every pruned match, or None on a wipe-out
            (domains are already restored in that case)
        """
        related = state.binary.get(value.match_id, [])
        pruned: Dict[str, List[ScheduleSlot]] = {}
        for match_id in remaining:
            constraints = [c for c in related if c.involves(match_id)]
            kept = [
                other for other in domains[match_id]
                if self._compatible(context, value, other, constraints)
            ]
            if len(kept) < len(domains[match_id]):
                pruned[match_id] = domains[match_id]
                domains[match_id] = kept
                if not kept:
                    domains.update(pruned)
                    return None
        return pruned

    def _compatible(self, context: RunContext, value: ScheduleSlot, other: ScheduleSlot,
                    constraints: List[SchedulingConstraint]) -> bool:
        if context.detector.slots_conflict(value, other) is not None:
            return False
        return all(pair_satisfies(c, value, other) for c in constraints)
