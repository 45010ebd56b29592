"""Shared fixtures for the scheduling engine tests."""

from datetime import datetime, timedelta

import pytest

from station_scheduler.models import Match, ScheduleSlot, SchedulingConfig, Station
from station_scheduler.services import SchedulingEngine, build_roster_resolver
from station_scheduler.services.players import PlayerDirectory

WINDOW_START = datetime(2026, 3, 14, 10, 0)


def at(minutes: int) -> datetime:
    """Time relative to the start of the scheduling window."""
    return WINDOW_START + timedelta(minutes=minutes)


def make_slot(match_id: str, station_id: str, start_minutes: int, duration: int = 30) -> ScheduleSlot:
    start = at(start_minutes)
    return ScheduleSlot(
        id=f"slot-{match_id}",
        tournament_id="cup",
        start_time=start,
        end_time=start + timedelta(minutes=duration),
        duration=duration,
        station_id=station_id,
        station_name=station_id.upper(),
        match_id=match_id,
    )


@pytest.fixture
def make_config():
    """Config factory: a 60 minute window, 30 minute matches, 5 minute buffer."""
    def factory(**overrides):
        values = {
            "start_time": WINDOW_START,
            "end_time": at(60),
            "match_duration": 30,
            "buffer_time": 5,
            "min_rest_time": 15,
        }
        values.update(overrides)
        return SchedulingConfig(**values)
    return factory


@pytest.fixture
def stations():
    return [
        Station(id="bp-1", name="Beer Pong 1", game_types={"beer-pong"}),
        Station(id="bp-2", name="Beer Pong 2", game_types={"beer-pong"}),
        Station(id="fc-1", name="Flip Cup 1", game_types={"flip-cup"}),
    ]


@pytest.fixture
def matches():
    return [
        Match(id="m1", tournament_id="cup", team_a_id="t1", team_b_id="t2", game_type="beer-pong"),
        Match(id="m2", tournament_id="cup", team_a_id="t3", team_b_id="t4", game_type="beer-pong"),
        Match(id="m3", tournament_id="cup", team_a_id="t5", team_b_id="t6", game_type="flip-cup"),
    ]


@pytest.fixture
def rosters():
    return {
        "t1": ["p1", "p2"],
        "t2": ["p3", "p4"],
        "t3": ["p5", "p6"],
        "t4": ["p7", "p8"],
        "t5": ["p9", "p10"],
        "t6": ["p11", "p12"],
    }


@pytest.fixture
def resolver(matches, rosters):
    return build_roster_resolver(matches, rosters)


@pytest.fixture
def players(resolver):
    return PlayerDirectory(resolver)


@pytest.fixture
def make_engine(make_config, stations):
    """Engine factory; resolver defaults to nobody playing anywhere."""
    def factory(resolver=None, station_list=None, **config_overrides):
        engine = SchedulingEngine(make_config(**config_overrides), resolver or (lambda match_id: ()))
        engine.initialize_stations(stations if station_list is None else station_list)
        return engine
    return factory
