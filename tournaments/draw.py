"""Draw generation: who debates whom in a round.

Round 1 is a random draw, kept best-of-N by institution clashes. Later
rounds are power-paired: teams on equal points are drawn together, with
a bounded local repair pass to split same-institution teams.
"""

import logging
import random
from dataclasses import dataclass, field

from formats import DebateFormat
from .exceptions import PreconditionError
from .models import Room, RoomSlot, Team

logger = logging.getLogger(__name__)


def normalize_institution(institution: str | None) -> str:
    """Institution key used for conflict matching."""
    return (institution or "").strip().lower()


def same_institution(team_a: Team, team_b: Team) -> bool:
    """Check if two teams are from the same institution."""
    inst_a = normalize_institution(team_a.institution)
    inst_b = normalize_institution(team_b.institution)
    return bool(inst_a) and inst_a == inst_b


def count_institution_conflicts(room_teams: list[Team]) -> int:
    """Count same-institution pairs seated together."""
    conflicts = 0
    for i in range(len(room_teams)):
        for j in range(i + 1, len(room_teams)):
            if same_institution(room_teams[i], room_teams[j]):
                conflicts += 1
    return conflicts


def _first_conflict(room_teams: list[Team]) -> tuple[int, int] | None:
    for i in range(len(room_teams)):
        for j in range(i + 1, len(room_teams)):
            if same_institution(room_teams[i], room_teams[j]):
                return i, j
    return None


@dataclass
class Pairing:
    """Room membership before it is persisted."""

    groups: list[list[Team]]
    leftover: list[Team] = field(default_factory=list)
    conflicts: int = 0


class PairingGenerator:
    """Partitions eligible teams into rooms for one round."""

    def __init__(
        self,
        debate_format: DebateFormat,
        rng: random.Random | None = None,
        round_one_attempts: int = 10,
        swap_attempts_per_room: int = 5,
    ):
        self.format = debate_format
        self.rng = rng or random.Random()
        self.round_one_attempts = round_one_attempts
        self.swap_attempts_per_room = swap_attempts_per_room

    @property
    def room_arity(self) -> int:
        return self.format.room_arity

    def generate_draw(
        self,
        round_number: int,
        eligible_teams: list[Team],
        tournament_id: int,
        round_id: int,
        prep_duration: float = 900.0,
        speech_duration: float = 420.0,
    ) -> tuple[list[Room], Pairing]:
        """Build room drafts for a round.

        Returns the rooms (not yet persisted, no judges) and the pairing
        that produced them, which carries leftover teams and the clash
        count.
        """
        if len(eligible_teams) < self.room_arity:
            raise PreconditionError(
                f"Not enough teams. Need at least {self.room_arity} teams, "
                f"found {len(eligible_teams)}",
                reason="insufficient_teams",
            )

        if round_number == 1:
            pairing = self.random_pairing(eligible_teams)
        else:
            pairing = self.power_pairing(eligible_teams)

        rooms = [
            self._build_room(
                groups,
                index + 1,
                tournament_id,
                round_id,
                prep_duration,
                speech_duration,
            )
            for index, groups in enumerate(pairing.groups)
        ]

        if pairing.leftover:
            logger.warning(
                f"{len(pairing.leftover)} team(s) left without a room in round "
                f"{round_number}: {[t.name for t in pairing.leftover]}"
            )

        logger.info(
            f"Generated round {round_number} draw: {len(rooms)} rooms, "
            f"{pairing.conflicts} institution clash(es)"
        )
        return rooms, pairing

    def random_pairing(self, teams: list[Team]) -> Pairing:
        """Random draw, keeping the attempt with the fewest clashes."""
        best: Pairing | None = None

        for attempt in range(self.round_one_attempts):
            shuffled = list(teams)
            self.rng.shuffle(shuffled)
            groups, leftover = self._partition(shuffled)
            conflicts = sum(count_institution_conflicts(g) for g in groups)

            if best is None or conflicts < best.conflicts:
                best = Pairing(groups=groups, leftover=leftover, conflicts=conflicts)

            if conflicts == 0:
                logger.debug(f"Clash-free round 1 draw found on attempt {attempt + 1}")
                break

        assert best is not None
        return best

    def power_pairing(self, teams: list[Team]) -> Pairing:
        """Pair teams on equal points, repairing institution clashes locally."""
        ordered = sorted(
            teams, key=lambda t: (t.total_points, t.total_speaks), reverse=True
        )

        # Tie buckets on points, each shuffled into the pool in order
        brackets: list[list[Team]] = []
        for team in ordered:
            if brackets and brackets[-1][0].total_points == team.total_points:
                brackets[-1].append(team)
            else:
                brackets.append([team])

        pool: list[Team] = []
        bracket_of: dict[int, int] = {}
        for index, bracket in enumerate(brackets):
            shuffled = list(bracket)
            self.rng.shuffle(shuffled)
            pool.extend(shuffled)
            for team in shuffled:
                bracket_of[id(team)] = index

        room_count = len(pool) // self.room_arity
        for room_index in range(room_count):
            self._repair_room(pool, room_index, bracket_of)

        groups, leftover = self._partition(pool)
        conflicts = sum(count_institution_conflicts(g) for g in groups)
        return Pairing(groups=groups, leftover=leftover, conflicts=conflicts)

    def _repair_room(
        self, pool: list[Team], room_index: int, bracket_of: dict[int, int]
    ) -> None:
        """Swap clashing teams in one room with teams later in the pool.

        Earlier rooms are already settled, so only later pool members are
        swap candidates. Candidates from the same points bracket are
        preferred.
        """
        start = room_index * self.room_arity
        end = start + self.room_arity

        for _ in range(self.swap_attempts_per_room):
            room = pool[start:end]
            clash = _first_conflict(room)
            if clash is None:
                return

            _, j = clash
            clashing = room[j]
            others = [t for k, t in enumerate(room) if k != j]
            candidates = [
                idx
                for idx in range(end, len(pool))
                if not any(same_institution(pool[idx], other) for other in others)
            ]
            if not candidates:
                if end < len(pool):
                    # Nothing clash-free; shake the room and try again
                    swap_idx = self.rng.randrange(end, len(pool))
                    pool[start + j], pool[swap_idx] = pool[swap_idx], pool[start + j]
                    continue
                logger.debug(f"No swap candidates for room {room_index + 1}")
                return

            same_bracket = [
                idx
                for idx in candidates
                if bracket_of[id(pool[idx])] == bracket_of[id(clashing)]
            ]
            swap_idx = (same_bracket or candidates)[0]
            logger.debug(
                f"Room {room_index + 1}: swapping {clashing.name} with {pool[swap_idx].name}"
            )
            pool[start + j], pool[swap_idx] = pool[swap_idx], pool[start + j]

    def _partition(self, teams: list[Team]) -> tuple[list[list[Team]], list[Team]]:
        """Split teams into full rooms in order; the remainder is left over."""
        full = len(teams) - len(teams) % self.room_arity
        groups = [
            teams[i : i + self.room_arity] for i in range(0, full, self.room_arity)
        ]
        return groups, teams[full:]

    def _build_room(
        self,
        room_teams: list[Team],
        room_number: int,
        tournament_id: int,
        round_id: int,
        prep_duration: float,
        speech_duration: float,
    ) -> Room:
        assignments = self.format.get_position_assignments([t.id for t in room_teams])
        return Room(
            tournament_id=tournament_id,
            round_id=round_id,
            room_name=f"Room {room_number}",
            slots=[
                RoomSlot(team_id=team_id, position=position)
                for team_id, position in assignments
            ],
            prep_duration=prep_duration,
            speech_duration=speech_duration,
            total_speeches=self.format.total_speeches,
        )
