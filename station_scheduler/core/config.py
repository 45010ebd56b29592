"""
Configuration constants for the Station Scheduling Engine.
All configurable settings are defined here.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Algorithm selection
DEFAULT_ALGORITHM = os.getenv("SCHEDULER_ALGORITHM", "greedy")

# Match Time Rules (minutes)
MATCH_DURATION_MINUTES = int(os.getenv("SCHEDULER_MATCH_DURATION", "30"))
BUFFER_MINUTES = int(os.getenv("SCHEDULER_BUFFER_MINUTES", "5"))
MIN_REST_MINUTES = int(os.getenv("SCHEDULER_MIN_REST_MINUTES", "15"))

# Greedy: attempts allowed per active station before a match is given up
GREEDY_ATTEMPTS_PER_STATION = 10

# Match prioritization
PRIORITY_WEIGHTS = {
    "round": 100,            # Later rounds are placed first
    "hard_constraint": 50,   # Each hard constraint touching the match
}

# Genetic algorithm settings
POPULATION_SIZE = int(os.getenv("SCHEDULER_POPULATION_SIZE", "50"))
GENERATIONS = int(os.getenv("SCHEDULER_GENERATIONS", "100"))
MUTATION_RATE = float(os.getenv("SCHEDULER_MUTATION_RATE", "0.1"))
TOURNAMENT_SIZE = 3
RANDOM_SEED = int(os.getenv("SCHEDULER_RANDOM_SEED", "42"))

# Genetic fitness
FITNESS_BASE = 100.0
FITNESS_CONFLICT_PENALTY = 10.0
FITNESS_VIOLATION_PENALTY = 5.0

# Optimization Settings
MAX_ITERATIONS = int(os.getenv("SCHEDULER_MAX_ITERATIONS", "10000"))
TIMEOUT_SECONDS = float(os.getenv("SCHEDULER_TIMEOUT_SECONDS", "300"))  # 5 minutes

# Schedule score
SCORE_CONFLICT_PENALTY = 10.0
SCORE_WAIT_THRESHOLD_MINUTES = 30.0
SCORE_WAIT_PENALTY = 0.5
SOFT_CONSTRAINT_PENALTY = float(os.getenv("SCHEDULER_SOFT_CONSTRAINT_PENALTY", "2.0"))

# Per-goal scoring
GOAL_LOAD_VARIANCE_PENALTY = 10.0
GOAL_CONFLICT_PENALTY = 20.0

# Default optimization goals (weights 0-1)
DEFAULT_OPTIMIZATION_GOALS = [
    {"type": "minimize_total_time", "weight": 0.3},
    {"type": "maximize_station_usage", "weight": 0.3},
    {"type": "minimize_player_wait", "weight": 0.2},
    {"type": "balance_station_load", "weight": 0.2},
]

# Logging
LOG_LEVEL = os.getenv("SCHEDULER_LOG_LEVEL", "INFO")
