"""Tie-breaking for tournament standings.

Teams are grouped by total points; within a group the cascade is:

1. Total speaker scores (differences under 0.1 are not significant)
2. Head-to-head result, if the two teams shared a completed room
3. Number of 1st places
4. Number of 2nd places
5. Coin toss, seeded so that reruns on the same results agree
"""

import logging
import random
from dataclasses import dataclass
from functools import cmp_to_key

from formats import DebateFormat
from .models import Room, StandingsEntry, Team

logger = logging.getLogger(__name__)

SPEAKS_SLACK = 0.1

RULE_SPEAKS = "speaks"
RULE_HEAD_TO_HEAD = "head_to_head"
RULE_FIRSTS = "first_places"
RULE_SECONDS = "second_places"
RULE_COIN_TOSS = "coin_toss"


@dataclass
class _Candidate:
    """A team plus the placement stats the cascade reads."""

    team: Team
    places: dict[int, int]
    wins: int
    losses: int
    coin: float

    @property
    def name(self) -> str:
        return self.team.name

    def places_at(self, rank: int) -> int:
        return self.places.get(rank, 0)


def head_to_head(team_a: Team, team_b: Team, history: list[Room]) -> int:
    """Compare two teams on the first completed room they shared.

    Returns -1 if ``team_a`` ranked higher, 1 if ``team_b`` did, and 0 if
    they never met (no signal) or the ranks are missing.
    """
    for room in history:
        rank_a = room.rank_of(team_a.id)
        rank_b = room.rank_of(team_b.id)
        if rank_a is None or rank_b is None:
            continue
        if rank_a < rank_b:
            return -1
        if rank_b < rank_a:
            return 1
        return 0
    return 0


def coin_toss_seed(tournament_id: int | None, history: list[Room]) -> str:
    """Seed the coin toss on the tournament and how many results exist."""
    return f"{tournament_id}:{len(history)}"


class TieBreakResolver:
    """Produces a total order over teams with tie-break explanations."""

    def __init__(self, debate_format: DebateFormat):
        self.format = debate_format

    def rank(
        self,
        teams: list[Team],
        match_history: list[Room],
        seed: str | int | None = None,
    ) -> list[StandingsEntry]:
        """Rank teams by points, breaking ties with the cascade.

        ``match_history`` holds the completed rooms with results. The
        coin toss draws one value per team, in team-id order, from a
        generator seeded with ``seed``.
        """
        if not teams:
            return []

        history = [room for room in match_history if room.has_results]
        candidates = self._build_candidates(teams, history, seed)

        point_groups: dict[int, list[_Candidate]] = {}
        for candidate in candidates:
            point_groups.setdefault(candidate.team.total_points, []).append(candidate)

        ordered: list[tuple[_Candidate, str | None, str | None]] = []
        for points in sorted(point_groups, reverse=True):
            group = point_groups[points]
            if len(group) == 1:
                ordered.append((group[0], None, None))
                continue
            ordered.extend(self._break_ties(group, history))

        standings = []
        for position, (candidate, rule, info) in enumerate(ordered, start=1):
            standings.append(
                StandingsEntry(
                    rank=position,
                    team=candidate.team,
                    first_places=candidate.places_at(1),
                    second_places=candidate.places_at(2),
                    third_places=candidate.places_at(3),
                    fourth_places=candidate.places_at(4),
                    wins=candidate.wins,
                    losses=candidate.losses,
                    tie_break_rule=rule,
                    tie_info=info,
                )
            )
        return standings

    def _build_candidates(
        self, teams: list[Team], history: list[Room], seed: str | int | None
    ) -> list[_Candidate]:
        rng = random.Random(seed)
        coins = {
            team.id: rng.random()
            for team in sorted(teams, key=lambda t: (t.id is None, t.id or 0))
        }

        candidates = []
        for team in teams:
            places: dict[int, int] = {}
            wins = losses = 0
            for room in history:
                rank = room.rank_of(team.id)
                if rank is None:
                    continue
                places[rank] = places.get(rank, 0) + 1
                if self.format.is_win(rank):
                    wins += 1
                else:
                    losses += 1
            candidates.append(
                _Candidate(
                    team=team,
                    places=places,
                    wins=wins,
                    losses=losses,
                    coin=coins[team.id],
                )
            )
        return candidates

    def _compare(
        self, a: _Candidate, b: _Candidate, history: list[Room]
    ) -> tuple[int, str]:
        """Cascade comparator; negative means ``a`` ranks above ``b``."""
        speaks_diff = round(b.team.total_speaks - a.team.total_speaks, 6)
        if abs(speaks_diff) >= SPEAKS_SLACK:
            return (1 if speaks_diff > 0 else -1), RULE_SPEAKS

        h2h = head_to_head(a.team, b.team, history)
        if h2h != 0:
            return h2h, RULE_HEAD_TO_HEAD

        first_diff = b.places_at(1) - a.places_at(1)
        if first_diff != 0:
            return first_diff, RULE_FIRSTS

        second_diff = b.places_at(2) - a.places_at(2)
        if second_diff != 0:
            return second_diff, RULE_SECONDS

        if a.coin == b.coin:
            return 0, RULE_COIN_TOSS
        return (-1 if a.coin > b.coin else 1), RULE_COIN_TOSS

    def _break_ties(
        self, group: list[_Candidate], history: list[Room]
    ) -> list[tuple[_Candidate, str | None, str | None]]:
        def compare(a: _Candidate, b: _Candidate) -> int:
            return self._compare(a, b, history)[0]

        ranked = sorted(group, key=cmp_to_key(compare))

        # Explain each team against its nearest rival: the team directly
        # below for the winner of each adjacent pair, the team above otherwise.
        rules: dict[int, str] = {}
        infos: dict[int, str] = {}
        for upper, lower in zip(ranked, ranked[1:]):
            _, rule = self._compare(upper, lower, history)
            if rule == RULE_COIN_TOSS:
                logger.warning(
                    f"Coin toss decided {upper.name} over {lower.name}"
                )
            for index, text in (
                (id(upper), self._describe(rule, upper, lower, won=True)),
                (id(lower), self._describe(rule, lower, upper, won=False)),
            ):
                if index not in rules:
                    rules[index] = rule
                    infos[index] = text

        return [(c, rules.get(id(c)), infos.get(id(c))) for c in ranked]

    @staticmethod
    def _describe(rule: str, team: _Candidate, rival: _Candidate, won: bool) -> str:
        if rule == RULE_SPEAKS:
            return "Higher speaker scores" if won else f"Lower speaker scores than {rival.name}"
        if rule == RULE_HEAD_TO_HEAD:
            return f"Beat {rival.name} head-to-head" if won else f"Lost to {rival.name} head-to-head"
        if rule == RULE_FIRSTS:
            qualifier = "More" if won else "Fewer"
            return f"{qualifier} 1st places ({team.places_at(1)} vs {rival.places_at(1)})"
        if rule == RULE_SECONDS:
            qualifier = "More" if won else "Fewer"
            return f"{qualifier} 2nd places ({team.places_at(2)} vs {rival.places_at(2)})"
        return "Coin toss"
