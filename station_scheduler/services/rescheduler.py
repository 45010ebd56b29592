"""
Delay handling for an already generated schedule.

The delayed slot is shifted by the delay; later slots, in placement order,
are shifted by the same amount whenever they now conflict with a slot placed
before them or break a hard constraint with one. This is a uniform cascade,
not a minimal-disruption repair.
"""

from typing import List, Sequence, Tuple

from station_scheduler.core.exceptions import InvalidSchedulingInputError, SlotNotFoundError
from station_scheduler.core.logging_config import get_logger
from station_scheduler.models import (
    ScheduleConflict, ScheduleSlot, ScheduleUpdate, SchedulingConstraint
)
from station_scheduler.services.conflicts import ConflictDetector
from station_scheduler.services.constraints import satisfies_constraints

logger = get_logger(__name__)


class DelayRescheduler:

    def __init__(self, detector: ConflictDetector, constraints: Sequence[SchedulingConstraint] = ()):
        self.detector = detector
        self.constraints = list(constraints)

    def apply_delay(self, schedule: Sequence[ScheduleSlot], slot_id: str,
                    delay_minutes: int, reason: str = "") -> Tuple[List[ScheduleSlot], ScheduleUpdate]:
        """
        Shift a slot and cascade the shift downstream.

        Args:
            schedule: Slots in placement order
            slot_id: Slot that is running late
            delay_minutes: Minutes to push the slot back (>= 0)
            reason: Free text stored on the update record

        Returns:
            (new slot list in the same order, update record with one
            cascading update per downstream slot that was moved)
        """
        if delay_minutes < 0:
            raise InvalidSchedulingInputError(f"Delay must not be negative, got {delay_minutes}")

        position = next((i for i, slot in enumerate(schedule) if slot.id == slot_id), None)
        if position is None:
            raise SlotNotFoundError(slot_id)

        slots = list(schedule)
        delayed = slots[position]
        slots[position] = delayed.shifted(delay_minutes)
        update = self._update(delayed, slots[position], reason or f"Delayed by {delay_minutes} minutes")

        if delay_minutes:
            for i in range(position + 1, len(slots)):
                slot = slots[i]
                if not self._needs_shift(slot, slots[:i]):
                    continue
                slots[i] = slot.shifted(delay_minutes)
                update.cascading_updates.append(
                    self._update(slot, slots[i], f"Cascaded from slot {slot_id}")
                )

        end_time = self.detector.config.end_time
        overrun = [slot.id for slot in slots if slot.end_time > end_time]
        if overrun:
            logger.warning(f"Slots past the window end after delay: {', '.join(overrun)}")

        logger.info(f"Delayed slot {slot_id} by {delay_minutes} minutes, "
                    f"{len(update.cascading_updates)} downstream slots shifted")
        return slots, update

    def final_conflicts(self, slots: Sequence[ScheduleSlot]) -> List[ScheduleConflict]:
        return self.detector.schedule_conflicts(slots, self.constraints)

    def _needs_shift(self, slot: ScheduleSlot, earlier: List[ScheduleSlot]) -> bool:
        if self.detector.detect(slot, earlier):
            return True
        return not satisfies_constraints(slot, earlier, self.constraints)

    def _update(self, before: ScheduleSlot, after: ScheduleSlot, reason: str) -> ScheduleUpdate:
        return ScheduleUpdate(
            tournament_id=before.tournament_id,
            update_type="delay",
            reason=reason,
            affected_slot_ids=[before.id],
            affected_match_ids=[before.match_id],
            previous_values=[{"start_time": before.start_time, "end_time": before.end_time}],
            new_values=[{"start_time": after.start_time, "end_time": after.end_time}],
        )
