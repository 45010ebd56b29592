"""
Scheduling engine: validates input, prioritizes matches, runs the configured
strategy and scores the outcome.
"""

import time
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Type

from station_scheduler.core.config import PRIORITY_WEIGHTS
from station_scheduler.core.exceptions import InvalidSchedulingInputError
from station_scheduler.core.logging_config import get_logger
from station_scheduler.models import (
    Algorithm, ConstraintType, Match, PlayerAvailability, ScheduleConflict, ScheduleItem,
    ScheduleResult, ScheduleSlot, SchedulingConfig, SchedulingConstraint, Station
)
from station_scheduler.services.backtracking import BacktrackingScheduler
from station_scheduler.services.base import SchedulingStrategy
from station_scheduler.services.conflicts import ConflictDetector
from station_scheduler.services.csp import ConstraintSatisfactionScheduler
from station_scheduler.services.genetic import GeneticScheduler
from station_scheduler.services.greedy import GreedyScheduler
from station_scheduler.services.players import PlayerDirectory, PlayerResolver
from station_scheduler.services.rescheduler import DelayRescheduler
from station_scheduler.services.run_context import RunContext
from station_scheduler.services.scorer import ScheduleScorer

logger = get_logger(__name__)

STRATEGIES: Dict[Algorithm, Type[SchedulingStrategy]] = {
    Algorithm.GREEDY: GreedyScheduler,
    Algorithm.BACKTRACKING: BacktrackingScheduler,
    Algorithm.CONSTRAINT_SATISFACTION: ConstraintSatisfactionScheduler,
    Algorithm.GENETIC: GeneticScheduler,
}


class SchedulingEngine:
    """
    Entry point of the package.

    Stations and player availability are set once; every generate_schedule
    call then builds its own RunContext, so results never leak between runs.
    The last generated schedule is kept for reschedule_for_delay. An engine
    instance must not be shared between concurrent calls.

    Example:
        engine = SchedulingEngine(config, build_roster_resolver(matches, rosters))
        engine.initialize_stations(stations)
        result = engine.generate_schedule(matches, constraints)
    """

    def __init__(self, config: SchedulingConfig, player_resolver: PlayerResolver):
        self.config = config
        self.player_resolver = player_resolver
        self.stations: List[Station] = []
        self.availability: Dict[str, PlayerAvailability] = {}

        self._matches: List[Match] = []
        self._constraints: List[SchedulingConstraint] = []
        self._schedule: List[ScheduleSlot] = []
        self._unplaced_conflicts: List[ScheduleConflict] = []

    def initialize_stations(self, stations: Iterable[Station]):
        """Keep the active stations; inactive ones never receive matches."""
        stations = list(stations)
        self.stations = [station for station in stations if station.is_active]
        logger.debug(f"Initialized {len(self.stations)} active stations "
                     f"({len(stations) - len(self.stations)} inactive skipped)")

    def set_player_availability(self, availability: Iterable[PlayerAvailability]):
        self.availability = {entry.player_id: entry for entry in availability}

    def generate_schedule(self, matches: Sequence[Match],
                          constraints: Optional[Sequence[SchedulingConstraint]] = None) -> ScheduleResult:
        """
        Schedule matches onto the active stations.

        Args:
            matches: Matches to place
            constraints: Hard and soft scheduling constraints

        Returns:
            ScheduleResult; infeasible matches appear as conflicts

        Raises:
            InvalidSchedulingInputError: duplicate match ids, constraints on
                unknown matches or time_range constraints without a window
        """
        matches = list(matches)
        constraints = list(constraints or [])
        self.validate_input(matches, constraints)

        started = time.perf_counter()
        algorithm = self.config.algorithm
        logger.info(f"Generating schedule with {algorithm.value}: "
                    f"{len(matches)} matches, {len(self.stations)} stations, {len(constraints)} constraints")

        context = self._new_context()
        items = self.prioritize_matches(matches, constraints)
        strategy = STRATEGIES[algorithm]()
        outcome = strategy.schedule(context, items, constraints)

        result = self._scorer(context.players).build_result(
            context.schedule, context.conflicts, len(matches), constraints,
            backtrack_count=outcome.backtrack_count, iterations=outcome.iterations,
        )
        result.generation_time = (time.perf_counter() - started) * 1000
        result.algorithm_used = algorithm.value

        self._matches = matches
        self._constraints = constraints
        self._schedule = list(result.schedule)
        self._unplaced_conflicts = self._conflicts_for_unplaced(result)

        logger.info(f"Schedule generated: {len(result.schedule)}/{len(matches)} slots, "
                    f"{len(result.conflicts)} conflicts, score {result.score:.1f}, "
                    f"{result.generation_time:.0f}ms")
        if not result.success:
            logger.warning(f"Schedule incomplete: {len(result.conflicts)} conflicts")
        return result

    def reschedule_for_delay(self, slot_id: str, delay_minutes: int, reason: str = "") -> ScheduleResult:
        """
        Push a slot back and cascade the delay through the last schedule.

        Raises:
            SlotNotFoundError: slot_id is not in the last generated schedule
            InvalidSchedulingInputError: delay_minutes is negative
        """
        started = time.perf_counter()
        players = PlayerDirectory(self.player_resolver)
        detector = ConflictDetector(self.config, players, self.availability)
        rescheduler = DelayRescheduler(detector, self._constraints)

        slots, update = rescheduler.apply_delay(self._schedule, slot_id, delay_minutes, reason)
        conflicts = self._unplaced_conflicts + rescheduler.final_conflicts(slots)

        result = self._scorer(players).build_result(
            slots, conflicts, len(self._matches), self._constraints,
        )
        result.generation_time = (time.perf_counter() - started) * 1000
        result.updates = [update]

        self._schedule = list(slots)
        return result

    # Input handling -----------------------------------------------------

    def validate_input(self, matches: Sequence[Match], constraints: Sequence[SchedulingConstraint]):
        counts = Counter(match.id for match in matches)
        duplicates = sorted(match_id for match_id, count in counts.items() if count > 1)
        if duplicates:
            raise InvalidSchedulingInputError(f"Duplicate match ids: {', '.join(duplicates)}")

        for constraint in constraints:
            unknown = [match_id for match_id in constraint.match_ids if match_id not in counts]
            if unknown:
                raise InvalidSchedulingInputError(
                    f"Constraint {constraint.id} references unknown matches: {', '.join(unknown)}"
                )
            if constraint.type == ConstraintType.TIME_RANGE and constraint.value is None:
                raise InvalidSchedulingInputError(f"Constraint {constraint.id} has no time range")

    def prioritize_matches(self, matches: Sequence[Match],
                           constraints: Sequence[SchedulingConstraint]) -> List[ScheduleItem]:
        """Higher rounds and more hard-constrained matches come first; input order breaks ties."""
        items = []
        for match in matches:
            related = [c for c in constraints if c.involves(match.id)]
            hard_count = len([c for c in related if c.is_hard])
            priority = match.round * PRIORITY_WEIGHTS["round"] + hard_count * PRIORITY_WEIGHTS["hard_constraint"]
            items.append(ScheduleItem(match=match, priority=priority, constraints=related))

        items.sort(key=lambda item: item.priority, reverse=True)
        return items

    def _conflicts_for_unplaced(self, result: ScheduleResult) -> List[ScheduleConflict]:
        """Conflicts naming a match that has no slot; a delay cannot recompute them."""
        placed = {slot.match_id for slot in result.schedule}
        return [
            conflict for conflict in result.conflicts
            if any(match_id not in placed for match_id in conflict.affected_match_ids)
        ]

    def _new_context(self) -> RunContext:
        return RunContext(self.config, self.stations, PlayerDirectory(self.player_resolver), self.availability)

    def _scorer(self, players: PlayerDirectory) -> ScheduleScorer:
        return ScheduleScorer(self.config, self.stations, players)
