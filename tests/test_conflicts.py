"""
Tests for conflict detection.
"""

from station_scheduler.models import (
    ConflictSeverity, ConflictType, PlayerAvailability, SchedulingConstraint, TimeWindow
)
from station_scheduler.services.conflicts import ConflictDetector, rest_gap_minutes
from station_scheduler.services.players import PlayerDirectory

from conftest import at, make_slot


def shared_player_directory():
    """m1 and m2 share player p1; m3 shares nobody."""
    players = {"m1": {"p1", "p2"}, "m2": {"p1", "p3"}, "m3": {"p9"}}
    return PlayerDirectory(lambda match_id: players.get(match_id, ()))


def types(conflicts):
    return sorted(conflict.type.value for conflict in conflicts)


def test_rest_gap():
    first = make_slot("m1", "bp-1", 0)
    assert rest_gap_minutes(first, make_slot("m2", "bp-2", 40)) == 10
    assert rest_gap_minutes(make_slot("m2", "bp-2", 40), first) == 10
    assert rest_gap_minutes(first, make_slot("m2", "bp-2", 20)) < 0


def test_station_overlap_includes_buffer(make_config):
    detector = ConflictDetector(make_config(), PlayerDirectory(lambda match_id: ()))
    existing = [make_slot("m1", "bp-1", 0)]

    conflicts = detector.detect(make_slot("m2", "bp-1", 32), existing)
    assert types(conflicts) == ["station_overlap"]
    assert conflicts[0].affected_match_ids == ["m2", "m1"]
    assert conflicts[0].severity == ConflictSeverity.ERROR

    assert detector.detect(make_slot("m2", "bp-1", 35), existing) == []
    assert detector.detect(make_slot("m2", "bp-2", 0), existing) == []


def test_player_double_booking(make_config):
    detector = ConflictDetector(make_config(), shared_player_directory())
    conflicts = detector.detect(make_slot("m2", "bp-2", 10), [make_slot("m1", "bp-1", 0)])

    assert types(conflicts) == ["player_double_booked"]
    assert conflicts[0].affected_player_ids == ["p1"]
    assert conflicts[0].affected_slot_ids == ["slot-m2", "slot-m1"]


def test_insufficient_rest_is_a_warning_with_suggestion(make_config):
    detector = ConflictDetector(make_config(min_rest_time=15), shared_player_directory())
    conflicts = detector.detect(make_slot("m2", "bp-2", 40), [make_slot("m1", "bp-1", 0)])

    assert types(conflicts) == ["insufficient_rest"]
    assert conflicts[0].severity == ConflictSeverity.WARNING
    assert conflicts[0].suggested_resolution == "Delay match by 5 minutes"

    assert detector.detect(make_slot("m2", "bp-2", 45), [make_slot("m1", "bp-1", 0)]) == []


def test_no_conflicts_without_shared_players(make_config):
    detector = ConflictDetector(make_config(), shared_player_directory())
    assert detector.detect(make_slot("m3", "bp-2", 0), [make_slot("m1", "bp-1", 0)]) == []


def test_availability(make_config):
    availability = {"p1": PlayerAvailability(player_id="p1", unavailable_windows=[TimeWindow(at(0), at(20))])}
    players = shared_player_directory()

    detector = ConflictDetector(make_config(), players, availability)
    conflicts = detector.detect(make_slot("m1", "bp-1", 0), [])
    assert types(conflicts) == ["availability_violation"]
    assert conflicts[0].affected_player_ids == ["p1"]

    ignoring = ConflictDetector(make_config(respect_availability=False), players, availability)
    assert ignoring.detect(make_slot("m1", "bp-1", 0), []) == []


def test_pairwise_checks(make_config):
    detector = ConflictDetector(make_config(), shared_player_directory())
    m1 = make_slot("m1", "bp-1", 0)

    assert detector.slots_conflict(m1, make_slot("m3", "bp-1", 20)) == ConflictType.STATION_OVERLAP
    assert detector.slots_conflict(m1, make_slot("m2", "bp-2", 20)) == ConflictType.PLAYER_DOUBLE_BOOKED
    assert detector.slots_conflict(m1, make_slot("m2", "bp-2", 35)) == ConflictType.INSUFFICIENT_REST
    assert detector.slots_conflict(m1, make_slot("m2", "bp-2", 50)) is None
    assert detector.pair_conflict(m1, make_slot("m2", "bp-2", 50)) is None
    assert detector.pair_conflict(m1, make_slot("m3", "bp-1", 20)).type == ConflictType.STATION_OVERLAP


def test_concurrency_limit(make_config):
    slots = [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-2", 10), make_slot("m3", "fc-1", 60)]
    players = PlayerDirectory(lambda match_id: ())

    assert ConflictDetector(make_config(), players).concurrency_limit() is None
    assert ConflictDetector(make_config(), players).concurrency_conflicts(slots) == []

    serial = ConflictDetector(make_config(allow_concurrent_matches=False), players)
    assert serial.concurrency_limit() == 1
    conflicts = serial.concurrency_conflicts(slots)
    assert len(conflicts) == 1
    assert conflicts[0].affected_match_ids == ["m2", "m1"]

    pairs = ConflictDetector(make_config(max_concurrent_matches=2), players)
    assert pairs.concurrency_conflicts(slots) == []


def test_schedule_conflicts_cover_pairs_and_hard_constraints(make_config):
    detector = ConflictDetector(make_config(), shared_player_directory())
    slots = [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-2", 10), make_slot("m3", "bp-1", 35)]
    constraints = [
        SchedulingConstraint(id="c1", type="before", match_ids=["m3", "m1"]),
        SchedulingConstraint(id="c2", type="same_station", match_ids=["m1", "m3"], priority="soft"),
    ]

    conflicts = detector.schedule_conflicts(slots, constraints)

    assert types(conflicts) == ["constraint_violation", "player_double_booked"]
    violation = conflicts[-1]
    assert violation.severity == ConflictSeverity.ERROR
    assert violation.affected_match_ids == ["m1", "m3"]
    assert violation.affected_station_ids == ["bp-1"]
    assert "c1" in violation.description
