"""
Conflict detection for candidate and placed schedule slots.
Combines the overlap index with player lookups, rest rules and availability.
"""

import math
from datetime import timedelta
from itertools import combinations
from typing import Iterable, List, Mapping, Optional, Sequence

from station_scheduler.models import (
    ConflictSeverity, ConflictType, PlayerAvailability, ScheduleConflict,
    ScheduleSlot, SchedulingConfig, SchedulingConstraint
)
from station_scheduler.services.constraints import violated_constraints
from station_scheduler.services.overlap_index import OverlapIndex
from station_scheduler.services.players import PlayerDirectory


def rest_gap_minutes(slot: ScheduleSlot, other: ScheduleSlot) -> float:
    """Minutes between two slots; negative when they overlap."""
    gap = max(other.start_time - slot.end_time, slot.start_time - other.end_time)
    return gap.total_seconds() / 60


class ConflictDetector:
    """
    Produces typed conflicts for a slot against already placed slots:
    station overlap (buffer included), player double booking,
    insufficient rest and, optionally, player availability.
    """

    def __init__(self, config: SchedulingConfig, players: PlayerDirectory,
                 availability: Optional[Mapping[str, PlayerAvailability]] = None):
        self.config = config
        self.players = players
        self.availability = dict(availability or {})
        self.buffer = timedelta(minutes=config.buffer_time)

    def detect(self, slot: ScheduleSlot, existing: Sequence[ScheduleSlot],
               index: Optional[OverlapIndex] = None) -> List[ScheduleConflict]:
        """
        Detect every conflict the slot would have with the existing slots.

        Args:
            slot: Candidate slot
            existing: Slots already placed
            index: Overlap index over the existing slots (built on demand when omitted)

        Returns:
            List of conflicts, empty when the slot can be placed
        """
        if index is None:
            index = OverlapIndex(existing)

        conflicts = []
        players = self.players.players_for(slot.match_id)

        # Player double-booking
        if players:
            for other in index.overlapping(slot.start_time, slot.end_time):
                if other.id == slot.id:
                    continue
                common = players & self.players.players_for(other.match_id)
                if common:
                    conflicts.append(self._double_booking(slot, other, common))

        # Station overlap
        station_slots = [
            other for other in index.overlapping(slot.start_time - self.buffer, slot.end_time + self.buffer)
            if other.station_id == slot.station_id and other.id != slot.id
        ]
        if station_slots:
            conflicts.append(self._station_overlap(slot, station_slots))

        # Rest time
        conflicts.extend(self._rest_conflicts(slot, existing, players))

        # Availability
        if self.config.respect_availability:
            conflicts.extend(self.availability_conflicts(slot))

        return conflicts

    def slots_conflict(self, slot: ScheduleSlot, other: ScheduleSlot) -> Optional[ConflictType]:
        """Pairwise check used when scoring whole candidate schedules."""
        if slot.station_id == other.station_id and self._station_clash(slot, other):
            return ConflictType.STATION_OVERLAP
        if self.players.shared_players(slot.match_id, other.match_id):
            gap = rest_gap_minutes(slot, other)
            if gap < 0:
                return ConflictType.PLAYER_DOUBLE_BOOKED
            if gap < self.config.min_rest_time:
                return ConflictType.INSUFFICIENT_REST
        return None

    def pair_conflict(self, slot: ScheduleSlot, other: ScheduleSlot) -> Optional[ScheduleConflict]:
        conflict_type = self.slots_conflict(slot, other)
        if conflict_type == ConflictType.STATION_OVERLAP:
            return self._station_overlap(slot, [other])
        if conflict_type == ConflictType.PLAYER_DOUBLE_BOOKED:
            return self._double_booking(slot, other, self.players.shared_players(slot.match_id, other.match_id))
        if conflict_type == ConflictType.INSUFFICIENT_REST:
            common = sorted(self.players.shared_players(slot.match_id, other.match_id))
            return self._insufficient_rest(slot, other, common, rest_gap_minutes(slot, other))
        return None

    def availability_conflicts(self, slot: ScheduleSlot) -> List[ScheduleConflict]:
        unavailable = [
            player_id for player_id in sorted(self.players.players_for(slot.match_id))
            if player_id in self.availability
            and not self.availability[player_id].allows(slot.start_time, slot.end_time)
        ]
        if not unavailable:
            return []
        return [ScheduleConflict(
            type=ConflictType.AVAILABILITY_VIOLATION,
            severity=ConflictSeverity.ERROR,
            tournament_id=slot.tournament_id,
            affected_slot_ids=[slot.id],
            affected_match_ids=[slot.match_id],
            affected_player_ids=unavailable,
            description=f"Players {', '.join(unavailable)} are not available "
                        f"{slot.start_time:%H:%M}-{slot.end_time:%H:%M}",
        )]

    def concurrency_limit(self) -> Optional[int]:
        if not self.config.allow_concurrent_matches:
            return 1
        return self.config.max_concurrent_matches

    def concurrency_conflicts(self, slots: Sequence[ScheduleSlot]) -> List[ScheduleConflict]:
        """Slots that start while the concurrent-match limit is already reached."""
        limit = self.concurrency_limit()
        if limit is None:
            return []
        conflicts = []
        for slot in slots:
            running = [
                other for other in slots
                if other is not slot and other.start_time <= slot.start_time < other.end_time
            ]
            if len(running) >= limit:
                conflicts.append(ScheduleConflict(
                    type=ConflictType.STATION_OVERLAP,
                    severity=ConflictSeverity.ERROR,
                    tournament_id=slot.tournament_id,
                    affected_slot_ids=[slot.id] + [other.id for other in running],
                    affected_match_ids=[slot.match_id] + [other.match_id for other in running],
                    affected_station_ids=sorted({slot.station_id} | {other.station_id for other in running}),
                    description=f"Concurrent match limit of {limit} exceeded at {slot.start_time:%H:%M}",
                ))
        return conflicts

    def schedule_conflicts(self, slots: Sequence[ScheduleSlot],
                           constraints: Sequence[SchedulingConstraint] = ()) -> List[ScheduleConflict]:
        """
        Every conflict of a complete schedule: one per clashing pair, the
        concurrency limit, availability and each violated hard constraint.
        """
        conflicts = []
        for slot, other in combinations(slots, 2):
            conflict = self.pair_conflict(slot, other)
            if conflict is not None:
                conflicts.append(conflict)
        conflicts.extend(self.concurrency_conflicts(slots))
        if self.config.respect_availability:
            for slot in slots:
                conflicts.extend(self.availability_conflicts(slot))
        conflicts.extend(self.constraint_conflicts(slots, constraints))
        return conflicts

    def constraint_conflicts(self, slots: Sequence[ScheduleSlot],
                             constraints: Sequence[SchedulingConstraint]) -> List[ScheduleConflict]:
        conflicts = []
        for constraint in violated_constraints(slots, constraints):
            if not constraint.is_hard:
                continue
            involved = [slot for slot in slots if constraint.involves(slot.match_id)]
            conflicts.append(ScheduleConflict(
                type=ConflictType.CONSTRAINT_VIOLATION,
                severity=ConflictSeverity.ERROR,
                tournament_id=involved[0].tournament_id if involved else "",
                affected_slot_ids=[slot.id for slot in involved],
                affected_match_ids=[slot.match_id for slot in involved],
                affected_station_ids=sorted({slot.station_id for slot in involved}),
                description=f"Hard constraint {constraint.id} ({constraint.type.value}) is violated",
            ))
        return conflicts

    def _station_clash(self, slot: ScheduleSlot, other: ScheduleSlot) -> bool:
        return (slot.start_time < other.end_time + self.buffer
                and other.start_time < slot.end_time + self.buffer)

    def _rest_conflicts(self, slot: ScheduleSlot, existing: Iterable[ScheduleSlot],
                        players) -> List[ScheduleConflict]:
        conflicts = []
        min_rest = self.config.min_rest_time
        if not min_rest:
            return conflicts

        for player_id in sorted(players):
            for other in existing:
                if other.id == slot.id or player_id not in self.players.players_for(other.match_id):
                    continue
                gap = rest_gap_minutes(slot, other)
                if 0 <= gap < min_rest:
                    conflicts.append(self._insufficient_rest(slot, other, [player_id], gap))
        return conflicts

    def _double_booking(self, slot, other, common) -> ScheduleConflict:
        common = sorted(common)
        return ScheduleConflict(
            type=ConflictType.PLAYER_DOUBLE_BOOKED,
            severity=ConflictSeverity.ERROR,
            tournament_id=slot.tournament_id,
            affected_slot_ids=[slot.id, other.id],
            affected_match_ids=[slot.match_id, other.match_id],
            affected_player_ids=common,
            description=f"Players {', '.join(common)} are double-booked",
        )

    def _station_overlap(self, slot, station_slots) -> ScheduleConflict:
        return ScheduleConflict(
            type=ConflictType.STATION_OVERLAP,
            severity=ConflictSeverity.ERROR,
            tournament_id=slot.tournament_id,
            affected_slot_ids=[slot.id] + [other.id for other in station_slots],
            affected_match_ids=[slot.match_id] + [other.match_id for other in station_slots],
            affected_station_ids=[slot.station_id],
            description=f"Station {slot.station_name or slot.station_id} is already booked",
        )

    def _insufficient_rest(self, slot, other, player_ids, gap) -> ScheduleConflict:
        delay = math.ceil(self.config.min_rest_time - gap)
        return ScheduleConflict(
            type=ConflictType.INSUFFICIENT_REST,
            severity=ConflictSeverity.WARNING,
            tournament_id=slot.tournament_id,
            affected_slot_ids=[slot.id, other.id],
            affected_match_ids=[slot.match_id, other.match_id],
            affected_player_ids=list(player_ids),
            description=f"Player {', '.join(player_ids)} has insufficient rest time ({math.floor(gap)} minutes)",
            suggested_resolution=f"Delay match by {delay} minutes",
        )
