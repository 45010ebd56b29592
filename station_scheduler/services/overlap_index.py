"""
Time-interval index over placed schedule slots.

Slots are kept sorted by start time next to a running maximum of their end
times. An overlap query bisects twice: once on the start times to drop every
slot starting at or after the query end, and once on the running maximum to
drop the prefix whose slots all end at or before the query start. Only the
slice between the two cut points is scanned.
"""

from bisect import bisect_left, bisect_right, insort
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Tuple

from station_scheduler.models import ScheduleSlot


class OverlapIndex:
    """Sorted-array interval index answering [start, end) overlap queries."""

    def __init__(self, slots: Iterable[ScheduleSlot] = ()):
        self._keys: List[Tuple[datetime, str]] = []
        self._slots: Dict[str, ScheduleSlot] = {}
        self._max_ends: List[datetime] = []
        for slot in slots:
            self.insert(slot)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, slot_id: str) -> bool:
        return slot_id in self._slots

    def __iter__(self) -> Iterator[ScheduleSlot]:
        for _, slot_id in self._keys:
            yield self._slots[slot_id]

    def clear(self):
        self._keys.clear()
        self._slots.clear()
        self._max_ends.clear()

    def insert(self, slot: ScheduleSlot):
        if slot.id in self._slots:
            self.remove(slot.id)
        key = (slot.start_time, slot.id)
        insort(self._keys, key)
        self._slots[slot.id] = slot
        self._refresh_max_ends(bisect_left(self._keys, key))

    def remove(self, slot_id: str) -> bool:
        slot = self._slots.pop(slot_id, None)
        if slot is None:
            return False
        position = bisect_left(self._keys, (slot.start_time, slot_id))
        del self._keys[position]
        self._refresh_max_ends(position)
        return True

    def overlapping(self, start: datetime, end: datetime) -> List[ScheduleSlot]:
        """All indexed slots whose interval intersects [start, end)."""
        upper = bisect_left(self._keys, (end,))
        lower = bisect_right(self._max_ends, start, 0, upper)
        result = []
        for _, slot_id in self._keys[lower:upper]:
            slot = self._slots[slot_id]
            if slot.end_time > start:
                result.append(slot)
        return result

    def is_station_free(self, station_id: str, start: datetime, end: datetime) -> bool:
        return not any(slot.station_id == station_id for slot in self.overlapping(start, end))

    def _refresh_max_ends(self, position: int):
        del self._max_ends[position:]
        running = self._max_ends[-1] if self._max_ends else None
        for _, slot_id in self._keys[position:]:
            end = self._slots[slot_id].end_time
            if running is None or end > running:
                running = end
            self._max_ends.append(running)
