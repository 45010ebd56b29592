"""
Match -> player resolution.

The engine cannot know who plays in a match; the host injects a resolver
callable. PlayerDirectory memoizes it for the duration of one run.
"""

from typing import Callable, Dict, FrozenSet, Iterable, Mapping

from station_scheduler.models import Match

PlayerResolver = Callable[[str], Iterable[str]]


def build_roster_resolver(matches: Iterable[Match],
                          rosters: Mapping[str, Iterable[str]]) -> PlayerResolver:
    """
    Build a resolver from team rosters.

    Args:
        matches: Matches whose teams should be resolved
        rosters: Team id -> player ids on that team

    Returns:
        Callable returning the union of both teams' players for a match id
    """
    players_by_match: Dict[str, FrozenSet[str]] = {}
    for match in matches:
        players = set(rosters.get(match.team_a_id, ()))
        players.update(rosters.get(match.team_b_id, ()))
        players_by_match[match.id] = frozenset(players)

    def resolve(match_id: str) -> FrozenSet[str]:
        return players_by_match.get(match_id, frozenset())

    return resolve


class PlayerDirectory:
    """Caches resolver lookups; one instance per scheduling run."""

    def __init__(self, resolver: PlayerResolver):
        self._resolver = resolver
        self._cache: Dict[str, FrozenSet[str]] = {}

    def players_for(self, match_id: str) -> FrozenSet[str]:
        players = self._cache.get(match_id)
        if players is None:
            players = frozenset(self._resolver(match_id))
            self._cache[match_id] = players
        return players

    def shared_players(self, match_a: str, match_b: str) -> FrozenSet[str]:
        if match_a == match_b:
            return frozenset()
        return self.players_for(match_a) & self.players_for(match_b)
