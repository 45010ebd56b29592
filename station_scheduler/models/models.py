"""
Data models for the Station Scheduling Engine.
Defines all data structures used throughout the engine.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConstraintType(Enum):
    BEFORE = "before"
    AFTER = "after"
    SAME_TIME = "same_time"
    DIFFERENT_TIME = "different_time"
    SAME_STATION = "same_station"
    DIFFERENT_STATION = "different_station"
    TIME_RANGE = "time_range"

class ConstraintPriority(Enum):
    HARD = "hard"
    SOFT = "soft"

class SlotStatus(Enum):
    AVAILABLE = "available"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ConflictType(Enum):
    STATION_OVERLAP = "station_overlap"
    PLAYER_DOUBLE_BOOKED = "player_double_booked"
    INSUFFICIENT_REST = "insufficient_rest"
    AVAILABILITY_VIOLATION = "availability_violation"
    CONSTRAINT_VIOLATION = "constraint_violation"

class ConflictSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime
    note: str = ""

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    is_active: bool = True
    game_types: FrozenSet[str] = frozenset()
    capacity: Optional[int] = None
    location: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "game_types", frozenset(self.game_types))

    def supports(self, game_type: Optional[str]) -> bool:
        """A station without listed game types hosts anything."""
        if not game_type or not self.game_types:
            return True
        return game_type in self.game_types


@dataclass(frozen=True)
class Match:
    id: str
    tournament_id: str
    team_a_id: str
    team_b_id: str
    game_type: Optional[str] = None
    round: int = 1
    status: str = "upcoming"
    team_a_score: int = 0
    team_b_score: int = 0

    def __str__(self):
        return f"{self.team_a_id} vs {self.team_b_id} (round {self.round})"


@dataclass(frozen=True)
class SchedulingConstraint:
    id: str
    type: ConstraintType
    match_ids: Tuple[str, ...]
    priority: ConstraintPriority = ConstraintPriority.HARD
    value: Optional[TimeWindow] = None
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "type", ConstraintType(self.type))
        object.__setattr__(self, "priority", ConstraintPriority(self.priority))
        object.__setattr__(self, "match_ids", tuple(self.match_ids))

    @property
    def is_hard(self) -> bool:
        return self.priority == ConstraintPriority.HARD

    def involves(self, match_id: str) -> bool:
        return match_id in self.match_ids


@dataclass(frozen=True)
class PlayerAvailability:
    player_id: str
    available_windows: Tuple[TimeWindow, ...] = ()
    unavailable_windows: Tuple[TimeWindow, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "available_windows", tuple(self.available_windows))
        object.__setattr__(self, "unavailable_windows", tuple(self.unavailable_windows))

    def allows(self, start: datetime, end: datetime) -> bool:
        if any(window.overlaps(start, end) for window in self.unavailable_windows):
            return False
        if self.available_windows:
            return any(window.contains(start, end) for window in self.available_windows)
        return True


@dataclass
class ScheduleSlot:
    id: str
    tournament_id: str
    start_time: datetime
    end_time: datetime
    duration: int  # minutes
    station_id: str
    match_id: str
    station_name: str = ""
    round: int = 1
    status: SlotStatus = SlotStatus.SCHEDULED
    buffer_before: int = 0
    buffer_after: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __str__(self):
        return f"{self.match_id} at {self.station_name or self.station_id} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def overlaps_with(self, other: 'ScheduleSlot') -> bool:
        return self.start_time < other.end_time and other.start_time < self.end_time

    def moved(self, start_time: Optional[datetime] = None, station: Optional[Station] = None) -> 'ScheduleSlot':
        """Copy of this slot at a new start time and/or station. End time follows the duration."""
        start = start_time if start_time is not None else self.start_time
        changes = {
            "start_time": start,
            "end_time": start + timedelta(minutes=self.duration),
            "updated_at": utcnow(),
        }
        if station is not None:
            changes["station_id"] = station.id
            changes["station_name"] = station.name
        return replace(self, **changes)

    def shifted(self, minutes: int) -> 'ScheduleSlot':
        return self.moved(start_time=self.start_time + timedelta(minutes=minutes))


@dataclass
class ScheduleConflict:
    type: ConflictType
    severity: ConflictSeverity
    tournament_id: str
    description: str
    affected_slot_ids: List[str] = field(default_factory=list)
    affected_match_ids: List[str] = field(default_factory=list)
    affected_player_ids: List[str] = field(default_factory=list)
    affected_station_ids: List[str] = field(default_factory=list)
    suggested_resolution: Optional[str] = None
    is_resolved: bool = False
    id: str = field(default_factory=lambda: f"conflict-{uuid.uuid4().hex[:12]}")
    detected_at: datetime = field(default_factory=utcnow)


@dataclass
class ScheduleUpdate:
    tournament_id: str
    update_type: str
    reason: str
    affected_slot_ids: List[str] = field(default_factory=list)
    affected_match_ids: List[str] = field(default_factory=list)
    previous_values: List[Dict] = field(default_factory=list)
    new_values: List[Dict] = field(default_factory=list)
    cascading_updates: List['ScheduleUpdate'] = field(default_factory=list)
    updated_by: str = "scheduler"
    updated_at: datetime = field(default_factory=utcnow)
    auto_generated: bool = True


@dataclass
class ScheduleItem:
    """A match queued for placement, with the constraints that mention it."""
    match: Match
    priority: int
    constraints: List[SchedulingConstraint] = field(default_factory=list)


@dataclass
class ScheduleResult:
    success: bool
    schedule: List[ScheduleSlot] = field(default_factory=list)
    conflicts: List[ScheduleConflict] = field(default_factory=list)
    total_duration: float = 0.0  # minutes
    station_utilization: Dict[str, float] = field(default_factory=dict)
    average_player_wait_time: float = 0.0  # minutes
    max_player_wait_time: float = 0.0  # minutes
    score: float = 0.0
    score_breakdown: Dict[str, float] = field(default_factory=dict)
    goal_score: float = 0.0
    soft_violations: int = 0
    algorithm_used: str = ""
    generation_time: float = 0.0  # milliseconds
    iterations: int = 0
    backtrack_count: int = 0
    updates: List[ScheduleUpdate] = field(default_factory=list)

    def get_slot_for_match(self, match_id: str) -> Optional[ScheduleSlot]:
        for slot in self.schedule:
            if slot.match_id == match_id:
                return slot
        return None

    def get_slots_by_station(self, station_id: str) -> List[ScheduleSlot]:
        return [slot for slot in self.schedule if slot.station_id == station_id]

    def get_conflicts_by_type(self, conflict_type: ConflictType) -> List[ScheduleConflict]:
        return [conflict for conflict in self.conflicts if conflict.type == conflict_type]

    def get_summary(self) -> str:
        summary = f"Schedule Valid: {self.success}\n"
        summary += f"Algorithm: {self.algorithm_used}\n"
        summary += f"Slots: {len(self.schedule)}\n"
        summary += f"Conflicts: {len(self.conflicts)}\n"
        summary += f"Soft Violations: {self.soft_violations}\n"
        summary += f"Score: {self.score:.2f}\n"
        return summary
