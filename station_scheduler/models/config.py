"""
Scheduling run configuration.
Validated once per run; a malformed configuration raises pydantic.ValidationError.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from station_scheduler.core.config import (
    DEFAULT_ALGORITHM, MATCH_DURATION_MINUTES, BUFFER_MINUTES, MIN_REST_MINUTES,
    POPULATION_SIZE, GENERATIONS, MUTATION_RATE, TOURNAMENT_SIZE, RANDOM_SEED,
    MAX_ITERATIONS, TIMEOUT_SECONDS, SOFT_CONSTRAINT_PENALTY,
    DEFAULT_OPTIMIZATION_GOALS
)


class Algorithm(str, Enum):
    GREEDY = "greedy"
    BACKTRACKING = "backtracking"
    CONSTRAINT_SATISFACTION = "constraint_satisfaction"
    GENETIC = "genetic"


class OptimizationGoalType(str, Enum):
    MINIMIZE_TOTAL_TIME = "minimize_total_time"
    MAXIMIZE_STATION_USAGE = "maximize_station_usage"
    MINIMIZE_PLAYER_WAIT = "minimize_player_wait"
    BALANCE_STATION_LOAD = "balance_station_load"
    MINIMIZE_CONFLICTS = "minimize_conflicts"


class OptimizationGoal(BaseModel):
    """A weighted scoring dimension."""
    model_config = ConfigDict(frozen=True)

    type: OptimizationGoalType
    weight: float = Field(1.0, ge=0.0, le=1.0)


def _default_goals() -> List[OptimizationGoal]:
    return [OptimizationGoal(**goal) for goal in DEFAULT_OPTIMIZATION_GOALS]


class SchedulingConfig(BaseModel):
    """Configuration for one scheduling run."""
    model_config = ConfigDict(frozen=True)

    algorithm: Algorithm = Algorithm(DEFAULT_ALGORITHM)

    # Time constraints
    start_time: datetime
    end_time: datetime
    match_duration: int = Field(MATCH_DURATION_MINUTES, gt=0)
    buffer_time: int = Field(BUFFER_MINUTES, ge=0)

    # Station constraints
    allow_concurrent_matches: bool = True
    max_concurrent_matches: Optional[int] = Field(None, ge=1)
    station_preferences: Dict[str, List[str]] = Field(default_factory=dict)

    # Player constraints
    min_rest_time: int = Field(MIN_REST_MINUTES, ge=0)
    respect_availability: bool = True

    # Optimization goals
    optimization_goals: List[OptimizationGoal] = Field(default_factory=_default_goals)
    soft_constraint_penalty: float = Field(SOFT_CONSTRAINT_PENALTY, ge=0.0)

    # Search tuning
    random_seed: int = RANDOM_SEED
    population_size: int = Field(POPULATION_SIZE, ge=2)
    generations: int = Field(GENERATIONS, ge=1)
    mutation_rate: float = Field(MUTATION_RATE, ge=0.0, le=1.0)
    tournament_size: int = Field(TOURNAMENT_SIZE, ge=1)
    max_iterations: int = Field(MAX_ITERATIONS, ge=1)
    time_limit_seconds: float = Field(TIMEOUT_SECONDS, gt=0)

    @model_validator(mode="after")
    def check_window(self) -> "SchedulingConfig":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def window_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60

    @property
    def slot_increment(self) -> timedelta:
        """Spacing of the regular time grid used by the search strategies."""
        return timedelta(minutes=self.match_duration + self.buffer_time)

    @property
    def scan_step(self) -> timedelta:
        """Step used by the greedy forward scan."""
        return timedelta(minutes=self.buffer_time or self.match_duration)

    def time_grid(self) -> List[datetime]:
        """Start times on the regular grid whose matches end inside the window."""
        times = []
        duration = timedelta(minutes=self.match_duration)
        current = self.start_time
        while current + duration <= self.end_time:
            times.append(current)
            current += self.slot_increment
        return times
