"""
Greedy scheduling: place each match at the first time a station can take it.
"""

from datetime import datetime, timedelta
from typing import List, Sequence

from station_scheduler.core.config import GREEDY_ATTEMPTS_PER_STATION
from station_scheduler.core.logging_config import get_logger
from station_scheduler.models import (
    ConflictSeverity, Match, ScheduleItem, SchedulingConstraint, Station
)
from station_scheduler.services.base import SchedulingStrategy, StrategyOutcome
from station_scheduler.services.run_context import RunContext

logger = get_logger(__name__)


class GreedyScheduler(SchedulingStrategy):
    """
    Baseline strategy. Scans forward from the window start in buffer-sized
    steps; at each step the free compatible stations are tried in preference
    order, then least-used first. Running past the window end wraps the scan
    back to the start and counts as a backtrack. A match that cannot be placed
    within stations * GREEDY_ATTEMPTS_PER_STATION steps is reported as a
    station_overlap error and the next match is tried.
    """

    name = "greedy"

    def schedule(self, context: RunContext, items: List[ScheduleItem],
                 constraints: Sequence[SchedulingConstraint]) -> StrategyOutcome:
        config = context.config
        duration = timedelta(minutes=config.match_duration)
        max_attempts = len(context.stations) * GREEDY_ATTEMPTS_PER_STATION
        current_time = config.start_time
        outcome = StrategyOutcome()

        for item in items:
            match = item.match
            scheduled = False
            attempts = 0

            while not scheduled and attempts < max_attempts:
                attempts += 1
                outcome.iterations += 1

                if current_time + duration > config.end_time:
                    current_time = config.start_time
                    outcome.backtrack_count += 1

                for station in self._free_stations(context, match, current_time):
                    slot = context.create_slot(match, station, current_time)
                    if context.is_valid_slot(slot, constraints):
                        context.place(slot)
                        scheduled = True
                        break

                if not scheduled:
                    current_time += config.scan_step

            if not scheduled:
                compatible = {station.id for station in context.compatible_stations(match)}
                blocking = [slot for slot in context.schedule if slot.station_id in compatible]
                logger.warning(f"Greedy could not place match {match.id} after {attempts} attempts")
                context.report_unplaced(
                    match, ConflictSeverity.ERROR,
                    f"Unable to schedule match {match.id}",
                    blocking,
                )

        logger.debug(f"Greedy placed {len(context.schedule)}/{len(items)} matches, "
                     f"{outcome.backtrack_count} wrap-arounds")
        return outcome

    def _free_stations(self, context: RunContext, match: Match, start_time: datetime) -> List[Station]:
        preferred = context.config.station_preferences.get(match.id, [])

        def rank(station: Station):
            preference = preferred.index(station.id) if station.id in preferred else len(preferred)
            return preference, context.station_usage[station.id]

        free = [
            station for station in context.compatible_stations(match)
            if context.is_station_free(station, start_time)
        ]
        return sorted(free, key=rank)
