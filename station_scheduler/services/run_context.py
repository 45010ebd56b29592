"""
Mutable state of a single scheduling run.

A RunContext is created by the engine for every generate/reschedule call and
discarded afterwards, so one engine instance never carries placed slots or
conflicts from one run into the next.
"""

import time
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, List, Mapping, Optional, Sequence

from station_scheduler.models import (
    ConflictSeverity, ConflictType, Match, PlayerAvailability, ScheduleConflict,
    ScheduleSlot, SchedulingConfig, SchedulingConstraint, SlotStatus, Station
)
from station_scheduler.services.conflicts import ConflictDetector
from station_scheduler.services.constraints import satisfies_constraints
from station_scheduler.services.overlap_index import OverlapIndex
from station_scheduler.services.players import PlayerDirectory


class RunContext:
    """Placed slots, overlap index and accumulated conflicts for one run."""

    def __init__(self, config: SchedulingConfig, stations: Sequence[Station],
                 players: PlayerDirectory,
                 availability: Optional[Mapping[str, PlayerAvailability]] = None):
        self.config = config
        self.stations = list(stations)
        self.players = players
        self.detector = ConflictDetector(config, players, availability)

        self.schedule: List[ScheduleSlot] = []
        self.index = OverlapIndex()
        self.conflicts: List[ScheduleConflict] = []
        self.station_usage = Counter()
        self.started_at = time.perf_counter()

    def reset(self):
        self.schedule = []
        self.index.clear()
        self.station_usage.clear()

    # Deadline -----------------------------------------------------------

    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self.started_at

    def deadline_passed(self) -> bool:
        return self.elapsed_seconds() >= self.config.time_limit_seconds

    # Slot construction --------------------------------------------------

    def create_slot(self, match: Match, station: Station, start_time: datetime) -> ScheduleSlot:
        duration = self.config.match_duration
        return ScheduleSlot(
            id=f"slot-{match.id}",
            tournament_id=match.tournament_id,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=duration),
            duration=duration,
            station_id=station.id,
            station_name=station.name,
            match_id=match.id,
            round=match.round,
            status=SlotStatus.SCHEDULED,
            buffer_before=self.config.buffer_time,
            buffer_after=self.config.buffer_time,
        )

    def compatible_stations(self, match: Match) -> List[Station]:
        return [station for station in self.stations if station.supports(match.game_type)]

    def candidate_slots(self, match: Match) -> Iterable[ScheduleSlot]:
        """Every (grid time x compatible station) slot for a match, time-major."""
        stations = self.compatible_stations(match)
        for start_time in self.config.time_grid():
            for station in stations:
                yield self.create_slot(match, station, start_time)

    # Placement ----------------------------------------------------------

    def place(self, slot: ScheduleSlot):
        self.schedule.append(slot)
        self.index.insert(slot)
        self.station_usage[slot.station_id] += 1

    def remove(self, slot: ScheduleSlot):
        self.schedule.remove(slot)
        self.index.remove(slot.id)
        self.station_usage[slot.station_id] -= 1

    def is_station_free(self, station: Station, start_time: datetime) -> bool:
        buffer = timedelta(minutes=self.config.buffer_time)
        end_time = start_time + timedelta(minutes=self.config.match_duration)
        return self.index.is_station_free(station.id, start_time - buffer, end_time + buffer)

    def concurrency_allows(self, slot: ScheduleSlot) -> bool:
        limit = self.detector.concurrency_limit()
        if limit is None:
            return True
        running = [other for other in self.index.overlapping(slot.start_time, slot.end_time) if other.id != slot.id]
        return len(running) < limit

    def in_window(self, slot: ScheduleSlot) -> bool:
        return self.config.start_time <= slot.start_time and slot.end_time <= self.config.end_time

    def detect_conflicts(self, slot: ScheduleSlot) -> List[ScheduleConflict]:
        return self.detector.detect(slot, self.schedule, self.index)

    def is_valid_slot(self, slot: ScheduleSlot, constraints: Sequence[SchedulingConstraint]) -> bool:
        if not self.in_window(slot) or not self.concurrency_allows(slot):
            return False
        if self.detect_conflicts(slot):
            return False
        return satisfies_constraints(slot, self.schedule, constraints)

    # Reporting ----------------------------------------------------------

    def report_unplaced(self, match: Match, severity: ConflictSeverity, description: str,
                        blocking: Sequence[ScheduleSlot] = ()):
        self.conflicts.append(ScheduleConflict(
            type=ConflictType.STATION_OVERLAP,
            severity=severity,
            tournament_id=match.tournament_id,
            affected_slot_ids=[slot.id for slot in blocking],
            affected_match_ids=[match.id] + [slot.match_id for slot in blocking],
            affected_station_ids=sorted({slot.station_id for slot in blocking}),
            description=description,
        ))
