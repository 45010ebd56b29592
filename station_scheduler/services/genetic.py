"""
Genetic algorithm scheduling.

An individual is a complete schedule: one slot per match, in match priority
order. Fitness = 100 - 10 x conflicts - 5 x constraint violations, floored at
zero. Each generation keeps its best individual and refills the population
with single-point crossover children of tournament-selected parents, some of
which are mutated by moving one slot to another station or time.
"""

import random
from datetime import datetime
from itertools import combinations
from typing import Dict, List, Sequence

from station_scheduler.core.config import (
    FITNESS_BASE, FITNESS_CONFLICT_PENALTY, FITNESS_VIOLATION_PENALTY
)
from station_scheduler.core.logging_config import get_logger
from station_scheduler.models import (
    ConflictSeverity, Match, ScheduleItem,
    ScheduleSlot, SchedulingConstraint, Station
)
from station_scheduler.services.base import SchedulingStrategy, StrategyOutcome
from station_scheduler.services.constraints import violated_constraints
from station_scheduler.services.run_context import RunContext

logger = get_logger(__name__)

Individual = List[ScheduleSlot]


class GeneticScheduler(SchedulingStrategy):
    """Population search seeded from config.random_seed; deterministic per seed."""

    name = "genetic"

    def schedule(self, context: RunContext, items: List[ScheduleItem],
                 constraints: Sequence[SchedulingConstraint]) -> StrategyOutcome:
        config = context.config
        outcome = StrategyOutcome()
        rng = random.Random(config.random_seed)
        times = config.time_grid()

        stations_by_match: Dict[str, List[Station]] = {}
        matches: List[Match] = []
        for item in items:
            stations = context.compatible_stations(item.match)
            if stations and times:
                stations_by_match[item.match.id] = stations
                matches.append(item.match)
            else:
                context.report_unplaced(
                    item.match, ConflictSeverity.CRITICAL,
                    f"No compatible station or start time for match {item.match.id}",
                )
        if not matches:
            return outcome

        population = [
            self.random_individual(context, matches, stations_by_match, times, rng)
            for _ in range(config.population_size)
        ]

        for generation in range(config.generations):
            fitness = [self.evaluate_fitness(context, individual, constraints) for individual in population]
            elite = max(range(len(population)), key=lambda i: fitness[i])
            if fitness[elite] >= FITNESS_BASE:
                logger.debug(f"Genetic search found a conflict-free schedule in generation {generation}")
                break
            if context.deadline_passed():
                logger.warning(f"Genetic search stopped at generation {generation} ({context.elapsed_seconds():.1f}s)")
                break

            selected = self.tournament_selection(population, fitness, rng, config.tournament_size)
            children = self.crossover(selected, rng, len(population) - 1)
            children = self.mutate(children, stations_by_match, times, rng, config.mutation_rate)
            population = [population[elite]] + children
            outcome.iterations += 1

        best = self.select_best(context, population, constraints)
        for slot in best:
            context.place(slot)
        context.conflicts.extend(context.detector.schedule_conflicts(best, constraints))

        logger.debug(f"Genetic best individual: {len(best)} slots, "
                     f"fitness {self.evaluate_fitness(context, best, constraints):.1f}")
        return outcome

    # Population ---------------------------------------------------------

    def random_individual(self, context: RunContext, matches: List[Match],
                          stations_by_match: Dict[str, List[Station]],
                          times: List[datetime], rng: random.Random) -> Individual:
        return [
            context.create_slot(match, rng.choice(stations_by_match[match.id]), rng.choice(times))
            for match in matches
        ]

    def evaluate_fitness(self, context: RunContext, individual: Individual,
                         constraints: Sequence[SchedulingConstraint]) -> float:
        conflicts = self.count_conflicts(context, individual)
        violations = len(violated_constraints(individual, constraints))
        fitness = FITNESS_BASE - conflicts * FITNESS_CONFLICT_PENALTY - violations * FITNESS_VIOLATION_PENALTY
        return max(0.0, fitness)

    def count_conflicts(self, context: RunContext, individual: Individual) -> int:
        detector = context.detector
        count = sum(
            1 for slot, other in combinations(individual, 2)
            if detector.slots_conflict(slot, other) is not None
        )
        count += len(detector.concurrency_conflicts(individual))
        if context.config.respect_availability:
            count += sum(len(detector.availability_conflicts(slot)) for slot in individual)
        return count

    def select_best(self, context: RunContext, population: List[Individual],
                    constraints: Sequence[SchedulingConstraint]) -> Individual:
        best_fitness = -1.0
        best_individual: Individual = []
        for individual in population:
            fitness = self.evaluate_fitness(context, individual, constraints)
            if fitness > best_fitness:
                best_fitness = fitness
                best_individual = individual
        return best_individual

    # Operators ----------------------------------------------------------

    def tournament_selection(self, population: List[Individual], fitness: List[float],
                             rng: random.Random, tournament_size: int) -> List[Individual]:
        selected = []
        while len(selected) < len(population) / 2:
            tournament = [rng.randrange(len(population)) for _ in range(tournament_size)]
            winner = tournament[0]
            for current in tournament[1:]:
                if fitness[current] > fitness[winner]:
                    winner = current
            selected.append(population[winner])
        return selected

    def crossover(self, parents: List[Individual], rng: random.Random, count: int) -> List[Individual]:
        offspring = []
        i = 0
        while len(offspring) < count:
            parent1 = parents[i % len(parents)]
            parent2 = parents[(i + 1) % len(parents)]
            point = rng.randrange(len(parent1))
            offspring.append(parent1[:point] + parent2[point:])
            offspring.append(parent2[:point] + parent1[point:])
            i += 2
        return offspring[:count]

    def mutate(self, population: List[Individual], stations_by_match: Dict[str, List[Station]],
               times: List[datetime], rng: random.Random, rate: float) -> List[Individual]:
        mutated = []
        for individual in population:
            if rng.random() < rate:
                individual = self.mutate_individual(individual, stations_by_match, times, rng)
            mutated.append(individual)
        return mutated

    def mutate_individual(self, individual: Individual, stations_by_match: Dict[str, List[Station]],
                          times: List[datetime], rng: random.Random) -> Individual:
        mutated = list(individual)
        index = rng.randrange(len(mutated))
        slot = mutated[index]
        if rng.random() < 0.5:
            mutated[index] = slot.moved(station=rng.choice(stations_by_match[slot.match_id]))
        else:
            mutated[index] = slot.moved(start_time=rng.choice(times))
        return mutated
