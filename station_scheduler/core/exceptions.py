"""
Exceptions raised for caller misuse of the scheduling engine.
Infeasible schedules are never raised; they are reported as conflicts.
"""


class SchedulingError(Exception):
    """Base class for scheduling engine errors."""

    pass


class SlotNotFoundError(SchedulingError, LookupError):
    """Raised when a schedule slot id is not part of the current schedule."""

    def __init__(self, slot_id: str):
        super().__init__(f"Slot {slot_id} not found")
        self.slot_id = slot_id


class InvalidSchedulingInputError(SchedulingError, ValueError):
    """Raised when matches, constraints or arguments are malformed."""

    pass
