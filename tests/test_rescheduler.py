"""
Tests for delay re-scheduling.
"""

import pytest

from station_scheduler.core.exceptions import InvalidSchedulingInputError, SlotNotFoundError
from station_scheduler.models import ConflictType, Match, SchedulingConstraint, Station, TimeWindow
from station_scheduler.services.conflicts import ConflictDetector
from station_scheduler.services.players import PlayerDirectory
from station_scheduler.services.rescheduler import DelayRescheduler

from conftest import at, make_slot


@pytest.fixture
def rescheduler(make_config):
    players = {"m1": {"p1"}, "m2": {"p2"}, "m3": {"p1"}}
    detector = ConflictDetector(make_config(end_time=at(240)), PlayerDirectory(lambda match_id: players[match_id]))
    return DelayRescheduler(detector)


def schedule():
    """m2 follows m1 on bp-1; m3 shares a player with m1 on another station."""
    return [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-1", 35), make_slot("m3", "bp-2", 50)]


def test_delay_cascades(rescheduler):
    slots, update = rescheduler.apply_delay(schedule(), "slot-m1", 10)

    assert [slot.start_time for slot in slots] == [at(10), at(45), at(60)]
    assert update.update_type == "delay"
    assert update.affected_slot_ids == ["slot-m1"]
    assert update.previous_values == [{"start_time": at(0), "end_time": at(30)}]
    assert update.new_values == [{"start_time": at(10), "end_time": at(40)}]
    assert [u.affected_slot_ids for u in update.cascading_updates] == [["slot-m2"], ["slot-m3"]]
    assert rescheduler.final_conflicts(slots) == []


def test_unaffected_slots_stay(rescheduler):
    slots, update = rescheduler.apply_delay(schedule(), "slot-m2", 20)

    assert [slot.start_time for slot in slots] == [at(0), at(55), at(50)]
    assert update.cascading_updates == []


def test_delay_never_moves_slots_earlier(rescheduler):
    original = schedule()
    slots, _ = rescheduler.apply_delay(original, "slot-m1", 25)

    for before, after in zip(original, slots):
        assert after.start_time >= before.start_time
        assert after.end_time - after.start_time == before.end_time - before.start_time


def test_zero_delay_is_idempotent(rescheduler):
    original = schedule()
    slots, update = rescheduler.apply_delay(original, "slot-m2", 0)

    assert [(s.id, s.station_id, s.start_time, s.end_time) for s in slots] == \
           [(s.id, s.station_id, s.start_time, s.end_time) for s in original]
    assert update.cascading_updates == []


def test_unknown_slot(rescheduler):
    with pytest.raises(SlotNotFoundError, match="slot-m9"):
        rescheduler.apply_delay(schedule(), "slot-m9", 10)


def test_negative_delay(rescheduler):
    with pytest.raises(InvalidSchedulingInputError):
        rescheduler.apply_delay(schedule(), "slot-m1", -5)


def test_engine_reschedule(make_engine, matches, resolver):
    engine = make_engine(resolver, end_time=at(180))
    result = engine.generate_schedule(matches)
    assert result.success

    delayed = engine.reschedule_for_delay("slot-m1", 15)
    assert delayed.get_slot_for_match("m1").start_time == at(15)
    assert delayed.get_slot_for_match("m2").start_time == at(0)
    assert len(delayed.updates) == 1
    assert delayed.success
    assert delayed.algorithm_used == "greedy"

    # the delayed schedule becomes the base of the next delay
    again = engine.reschedule_for_delay("slot-m1", 5)
    assert again.get_slot_for_match("m1").start_time == at(20)


def test_engine_reschedule_without_schedule(make_engine):
    with pytest.raises(SlotNotFoundError):
        make_engine().reschedule_for_delay("slot-m1", 5)


def test_engine_reschedule_cascade(make_engine):
    station_list = [Station(id="s1", name="Station 1")]
    matches = [
        Match(id=f"m{i}", tournament_id="cup", team_a_id=f"a{i}", team_b_id=f"b{i}")
        for i in range(1, 4)
    ]
    engine = make_engine(station_list=station_list, end_time=at(180))
    engine.generate_schedule(matches)

    result = engine.reschedule_for_delay("slot-m1", 10)
    assert [slot.start_time for slot in result.schedule] == [at(10), at(45), at(80)]
    assert len(result.updates[0].cascading_updates) == 2
    assert result.success


def test_delay_shifts_slots_that_break_hard_constraints(make_config):
    """m2 shares nothing with m1 but must start after m1 ends."""
    detector = ConflictDetector(make_config(end_time=at(240)), PlayerDirectory(lambda match_id: ()))
    before = SchedulingConstraint(id="c1", type="before", match_ids=["m1", "m2"])
    rescheduler = DelayRescheduler(detector, [before])

    slots, update = rescheduler.apply_delay(
        [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-2", 35)], "slot-m1", 30
    )

    assert [slot.start_time for slot in slots] == [at(30), at(65)]
    assert [u.affected_slot_ids for u in update.cascading_updates] == [["slot-m2"]]
    assert rescheduler.final_conflicts(slots) == []


def test_unrepairable_constraint_is_reported(make_config):
    detector = ConflictDetector(make_config(end_time=at(240)), PlayerDirectory(lambda match_id: ()))
    window = SchedulingConstraint(id="c1", type="time_range", match_ids=["m1"], value=TimeWindow(at(0), at(40)))
    rescheduler = DelayRescheduler(detector, [window])

    slots, _ = rescheduler.apply_delay([make_slot("m1", "bp-1", 0)], "slot-m1", 30)
    conflicts = rescheduler.final_conflicts(slots)

    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.CONSTRAINT_VIOLATION
    assert conflicts[0].affected_slot_ids == ["slot-m1"]
    assert "c1" in conflicts[0].description


def test_engine_delay_keeps_hard_constraints(make_engine):
    station_list = [Station(id="s1", name="Station 1"), Station(id="s2", name="Station 2")]
    matches = [
        Match(id=f"m{i}", tournament_id="cup", team_a_id=f"a{i}", team_b_id=f"b{i}")
        for i in range(1, 3)
    ]
    constraints = [
        SchedulingConstraint(id="c1", type="before", match_ids=["m1", "m2"]),
        SchedulingConstraint(id="c2", type="different_station", match_ids=["m1", "m2"]),
    ]
    engine = make_engine(algorithm="backtracking", station_list=station_list, end_time=at(120))
    assert engine.generate_schedule(matches, constraints).success

    result = engine.reschedule_for_delay("slot-m1", 30)
    m1 = result.get_slot_for_match("m1")
    m2 = result.get_slot_for_match("m2")

    assert m1.end_time <= m2.start_time
    assert m1.station_id != m2.station_id
    assert len(result.updates[0].cascading_updates) == 1
    assert result.get_conflicts_by_type(ConflictType.CONSTRAINT_VIOLATION) == []
    assert result.success


def test_zero_delay_keeps_unplaced_conflicts(make_engine):
    """A single station fits only one of the two matches."""
    station_list = [Station(id="s1", name="Station 1")]
    matches = [
        Match(id=f"m{i}", tournament_id="cup", team_a_id=f"a{i}", team_b_id=f"b{i}")
        for i in range(1, 3)
    ]
    engine = make_engine(station_list=station_list, end_time=at(35))
    generated = engine.generate_schedule(matches)
    assert len(generated.schedule) == 1
    assert len(generated.conflicts) == 1

    result = engine.reschedule_for_delay(generated.schedule[0].id, 0)

    def summary(conflicts):
        return sorted((c.type.value, tuple(c.affected_match_ids)) for c in conflicts)

    assert summary(result.conflicts) == summary(generated.conflicts)
    assert not result.success

    # still carried after the delayed schedule becomes the new base
    again = engine.reschedule_for_delay(generated.schedule[0].id, 0)
    assert summary(again.conflicts) == summary(generated.conflicts)
