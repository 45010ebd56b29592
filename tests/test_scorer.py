"""
Tests for schedule scoring.
"""

import pytest

from station_scheduler.models import (
    ConflictSeverity, ConflictType, OptimizationGoal, ScheduleConflict, SchedulingConstraint
)
from station_scheduler.services.players import PlayerDirectory
from station_scheduler.services.scorer import ScheduleScorer

from conftest import at, make_slot


def conflict():
    return ScheduleConflict(
        type=ConflictType.STATION_OVERLAP,
        severity=ConflictSeverity.ERROR,
        tournament_id="cup",
        description="overlap",
    )


@pytest.fixture
def scorer(make_config, stations):
    players = {"m1": {"p1"}, "m2": {"p1"}, "m3": {"p1"}}
    return ScheduleScorer(make_config(end_time=at(180)), stations,
                          PlayerDirectory(lambda match_id: players.get(match_id, ())))


def test_score_formula(scorer):
    assert scorer.schedule_score([], 0) == 100
    assert scorer.schedule_score([conflict(), conflict()], 0) == 80
    # 10 minutes over the wait threshold costs 5 points
    assert scorer.schedule_score([], 40) == 95
    assert scorer.schedule_score([], 0, soft_violations=3) == 94
    assert scorer.schedule_score([conflict()] * 20, 0) == 0


def test_player_wait_times(scorer):
    schedule = [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-2", 50), make_slot("m3", "bp-1", 120)]
    average, maximum = scorer.player_wait_times(schedule)

    assert average == pytest.approx(30.0)
    assert maximum == pytest.approx(40.0)
    assert scorer.player_wait_times(schedule[:1]) == (0.0, 0.0)


def test_duration_and_utilization(scorer):
    schedule = [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-1", 35), make_slot("m3", "fc-1", 0)]

    assert scorer.total_duration(schedule) == 65
    utilization = scorer.station_utilization(schedule)
    assert utilization["bp-1"] == pytest.approx(60 / 65)
    assert utilization["bp-2"] == 0
    assert utilization["fc-1"] == pytest.approx(30 / 65)
    assert scorer.total_duration([]) == 0


def test_goal_breakdown(make_config, stations):
    goals = [
        OptimizationGoal(type="minimize_total_time", weight=0.5),
        OptimizationGoal(type="balance_station_load", weight=0.25),
        OptimizationGoal(type="minimize_conflicts", weight=0.25),
    ]
    scorer = ScheduleScorer(make_config(optimization_goals=goals), stations, PlayerDirectory(lambda match_id: ()))
    # span 35 against an ideal of 2 x 35: capped at 100
    schedule = [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-2", 5)]

    breakdown = scorer.score_breakdown(schedule, [conflict()], 0)
    assert breakdown["minimize_total_time"] == pytest.approx(50.0)
    # loads 1, 1, 0: variance 2/9
    assert breakdown["balance_station_load"] == pytest.approx((100 - 20 / 9) * 0.25)
    assert breakdown["minimize_conflicts"] == pytest.approx(20.0)
    assert scorer.goal_score(breakdown) == pytest.approx(sum(breakdown.values()))


def test_station_usage_goal(make_config, stations):
    goals = [OptimizationGoal(type="maximize_station_usage", weight=1.0)]
    scorer = ScheduleScorer(make_config(optimization_goals=goals), stations, PlayerDirectory(lambda match_id: ()))
    schedule = [make_slot("m1", "bp-1", 0), make_slot("m3", "fc-1", 0)]

    # two of three stations busy half of the 60 minute window
    assert scorer.score_maximize_station_usage(schedule) == pytest.approx(100 / 3)


def test_build_result(scorer):
    soft = SchedulingConstraint(id="c1", type="same_station", match_ids=["m1", "m2"], priority="soft")
    schedule = [make_slot("m1", "bp-1", 0), make_slot("m2", "bp-2", 50)]
    result = scorer.build_result(schedule, [], expected_matches=2, constraints=[soft], backtrack_count=3)

    assert result.success
    assert result.soft_violations == 1
    assert result.score == pytest.approx(98.0)
    assert result.total_duration == 80
    assert result.average_player_wait_time == 20
    assert result.backtrack_count == 3
    assert set(result.score_breakdown) == {
        "minimize_total_time", "maximize_station_usage", "minimize_player_wait", "balance_station_load"
    }

    incomplete = scorer.build_result(schedule, [], expected_matches=3)
    assert not incomplete.success
