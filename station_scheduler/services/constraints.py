"""
Constraint evaluation.

Pure functions deciding whether a candidate slot, together with the slots
already placed, satisfies a scheduling constraint. Binary checks compare the
candidate with every placed slot of another match named by the constraint;
time_range is unary.
"""

from itertools import combinations
from typing import Callable, Dict, Iterable, List, Sequence

from station_scheduler.models import (
    ConstraintType, ScheduleSlot, SchedulingConstraint
)


def _ordered(constraint: SchedulingConstraint, slot: ScheduleSlot, other: ScheduleSlot):
    """Return (earlier-listed, later-listed) slots for a positional constraint."""
    if constraint.match_ids.index(slot.match_id) < constraint.match_ids.index(other.match_id):
        return slot, other
    return other, slot


def _before(constraint, slot, other) -> bool:
    first, second = _ordered(constraint, slot, other)
    return first.end_time <= second.start_time


def _after(constraint, slot, other) -> bool:
    first, second = _ordered(constraint, slot, other)
    return first.start_time >= second.end_time


def _same_time(constraint, slot, other) -> bool:
    return slot.start_time == other.start_time


def _different_time(constraint, slot, other) -> bool:
    return not slot.overlaps_with(other)


def _same_station(constraint, slot, other) -> bool:
    return slot.station_id == other.station_id


def _different_station(constraint, slot, other) -> bool:
    return slot.station_id != other.station_id


PAIR_CHECKS: Dict[ConstraintType, Callable[[SchedulingConstraint, ScheduleSlot, ScheduleSlot], bool]] = {
    ConstraintType.BEFORE: _before,
    ConstraintType.AFTER: _after,
    ConstraintType.SAME_TIME: _same_time,
    ConstraintType.DIFFERENT_TIME: _different_time,
    ConstraintType.SAME_STATION: _same_station,
    ConstraintType.DIFFERENT_STATION: _different_station,
}


def is_binary(constraint: SchedulingConstraint) -> bool:
    return constraint.type in PAIR_CHECKS


def slot_in_range(constraint: SchedulingConstraint, slot: ScheduleSlot) -> bool:
    """Unary check; only time_range constraints restrict a lone slot."""
    if constraint.type != ConstraintType.TIME_RANGE or constraint.value is None:
        return True
    return constraint.value.contains(slot.start_time, slot.end_time)


def pair_satisfies(constraint: SchedulingConstraint, slot: ScheduleSlot, other: ScheduleSlot) -> bool:
    """Check a binary constraint between two slots of distinct constrained matches."""
    check = PAIR_CHECKS.get(constraint.type)
    if check is None or slot.match_id == other.match_id:
        return True
    return check(constraint, slot, other)


def check_constraint(slot: ScheduleSlot, schedule: Iterable[ScheduleSlot],
                     constraint: SchedulingConstraint) -> bool:
    """Whether placing slot next to the given schedule keeps the constraint satisfied."""
    if not constraint.involves(slot.match_id):
        return True
    if not slot_in_range(constraint, slot):
        return False
    for other in schedule:
        if other.match_id == slot.match_id or not constraint.involves(other.match_id):
            continue
        if not pair_satisfies(constraint, slot, other):
            return False
    return True


def satisfies_constraints(slot: ScheduleSlot, schedule: Iterable[ScheduleSlot],
                          constraints: Iterable[SchedulingConstraint]) -> bool:
    """Hard constraints only; soft violations never invalidate a slot."""
    schedule = list(schedule)
    for constraint in constraints:
        if constraint.is_hard and not check_constraint(slot, schedule, constraint):
            return False
    return True


def schedule_satisfies(schedule: Sequence[ScheduleSlot], constraint: SchedulingConstraint) -> bool:
    """Whether a complete (or partial) schedule satisfies a constraint as a whole."""
    slots = [slot for slot in schedule if constraint.involves(slot.match_id)]
    if not all(slot_in_range(constraint, slot) for slot in slots):
        return False
    return all(pair_satisfies(constraint, a, b) for a, b in combinations(slots, 2))


def violated_constraints(schedule: Sequence[ScheduleSlot],
                         constraints: Iterable[SchedulingConstraint]) -> List[SchedulingConstraint]:
    return [c for c in constraints if not schedule_satisfies(schedule, c)]
