"""
Schedule quality metrics and scoring.
"""

from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

from station_scheduler.core.config import (
    SCORE_CONFLICT_PENALTY, SCORE_WAIT_THRESHOLD_MINUTES, SCORE_WAIT_PENALTY,
    GOAL_LOAD_VARIANCE_PENALTY, GOAL_CONFLICT_PENALTY
)
from station_scheduler.models import (
    OptimizationGoalType, ScheduleConflict, ScheduleResult, ScheduleSlot,
    SchedulingConfig, SchedulingConstraint, Station
)
from station_scheduler.services.constraints import violated_constraints
from station_scheduler.services.players import PlayerDirectory


class ScheduleScorer:
    """
    Computes the metrics of a ScheduleResult from slots, conflicts and config.

    Overall score:
        100 - 10 x conflicts - max(0, average wait - 30) x 0.5
            - soft_constraint_penalty x soft violations, clamped to [0, 100]

    Each configured optimization goal is scored 0-100, multiplied by its
    weight and reported in the breakdown; goal_score is the weighted average.
    """

    def __init__(self, config: SchedulingConfig, stations: Sequence[Station], players: PlayerDirectory):
        self.config = config
        self.stations = list(stations)
        self.players = players

    def build_result(self, schedule: List[ScheduleSlot], conflicts: List[ScheduleConflict],
                     expected_matches: int, constraints: Sequence[SchedulingConstraint] = (),
                     backtrack_count: int = 0, iterations: int = 0) -> ScheduleResult:
        average_wait, max_wait = self.player_wait_times(schedule)
        soft_violations = len([c for c in violated_constraints(schedule, constraints) if not c.is_hard])
        breakdown = self.score_breakdown(schedule, conflicts, average_wait)

        return ScheduleResult(
            success=not conflicts and len(schedule) == expected_matches,
            schedule=list(schedule),
            conflicts=list(conflicts),
            total_duration=self.total_duration(schedule),
            station_utilization=self.station_utilization(schedule),
            average_player_wait_time=average_wait,
            max_player_wait_time=max_wait,
            score=self.schedule_score(conflicts, average_wait, soft_violations),
            score_breakdown=breakdown,
            goal_score=self.goal_score(breakdown),
            soft_violations=soft_violations,
            algorithm_used=self.config.algorithm.value,
            iterations=iterations,
            backtrack_count=backtrack_count,
        )

    # Metrics ------------------------------------------------------------

    def total_duration(self, schedule: Sequence[ScheduleSlot]) -> float:
        """Minutes from the earliest start to the latest end."""
        if not schedule:
            return 0.0
        start = min(slot.start_time for slot in schedule)
        end = max(slot.end_time for slot in schedule)
        return (end - start).total_seconds() / 60

    def station_utilization(self, schedule: Sequence[ScheduleSlot]) -> Dict[str, float]:
        """Share of the schedule span each station spends hosting matches."""
        span = self.total_duration(schedule)
        utilization = {}
        for station in self.stations:
            used = sum(slot.duration for slot in schedule if slot.station_id == station.id)
            utilization[station.id] = used / span if span > 0 else 0.0
        return utilization

    def player_wait_times(self, schedule: Sequence[ScheduleSlot]) -> Tuple[float, float]:
        """Average and maximum idle minutes between a player's consecutive matches."""
        slots_by_player = defaultdict(list)
        for slot in schedule:
            for player_id in self.players.players_for(slot.match_id):
                slots_by_player[player_id].append(slot)

        waits = []
        for slots in slots_by_player.values():
            slots.sort(key=lambda s: s.start_time)
            for previous, current in zip(slots, slots[1:]):
                gap = (current.start_time - previous.end_time).total_seconds() / 60
                waits.append(max(0.0, gap))

        if not waits:
            return 0.0, 0.0
        return sum(waits) / len(waits), max(waits)

    # Scores -------------------------------------------------------------

    def schedule_score(self, conflicts: Sequence[ScheduleConflict], average_wait: float,
                       soft_violations: int = 0) -> float:
        score = 100.0
        score -= len(conflicts) * SCORE_CONFLICT_PENALTY
        if average_wait > SCORE_WAIT_THRESHOLD_MINUTES:
            score -= (average_wait - SCORE_WAIT_THRESHOLD_MINUTES) * SCORE_WAIT_PENALTY
        score -= soft_violations * self.config.soft_constraint_penalty
        return min(100.0, max(0.0, score))

    def score_breakdown(self, schedule: Sequence[ScheduleSlot], conflicts: Sequence[ScheduleConflict],
                        average_wait: float) -> Dict[str, float]:
        breakdown = {}
        for goal in self.config.optimization_goals:
            if goal.type == OptimizationGoalType.MINIMIZE_TOTAL_TIME:
                raw = self.score_minimize_total_time(schedule)
            elif goal.type == OptimizationGoalType.MAXIMIZE_STATION_USAGE:
                raw = self.score_maximize_station_usage(schedule)
            elif goal.type == OptimizationGoalType.MINIMIZE_PLAYER_WAIT:
                raw = max(0.0, 100.0 - average_wait)
            elif goal.type == OptimizationGoalType.BALANCE_STATION_LOAD:
                raw = self.score_balance_station_load(schedule)
            else:
                raw = max(0.0, 100.0 - len(conflicts) * GOAL_CONFLICT_PENALTY)
            breakdown[goal.type.value] = raw * goal.weight
        return breakdown

    def goal_score(self, breakdown: Dict[str, float]) -> float:
        weights = {goal.type.value: goal.weight for goal in self.config.optimization_goals}
        total_weight = sum(weights.values())
        if total_weight <= 0:
            return 0.0
        return sum(breakdown.values()) / total_weight

    def score_minimize_total_time(self, schedule: Sequence[ScheduleSlot]) -> float:
        if not schedule:
            return 0.0
        total = self.total_duration(schedule)
        ideal = len(schedule) * (self.config.match_duration + self.config.buffer_time)
        return min(100.0, max(0.0, 100.0 - ((total - ideal) / ideal) * 100.0))

    def score_maximize_station_usage(self, schedule: Sequence[ScheduleSlot]) -> float:
        """Average share of the whole window each active station is busy."""
        if not self.stations:
            return 0.0
        window = self.config.window_minutes
        utilization = [
            sum(slot.duration for slot in schedule if slot.station_id == station.id) / window
            for station in self.stations
        ]
        return min(100.0, sum(utilization) / len(utilization) * 100.0)

    def score_balance_station_load(self, schedule: Sequence[ScheduleSlot]) -> float:
        if not self.stations:
            return 0.0
        loads = [len([s for s in schedule if s.station_id == station.id]) for station in self.stations]
        average = sum(loads) / len(loads)
        variance = sum((load - average) ** 2 for load in loads) / len(loads)
        return max(0.0, 100.0 - variance * GOAL_LOAD_VARIANCE_PENALTY)
