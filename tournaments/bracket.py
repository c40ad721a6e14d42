"""Break calculation and elimination bracket seeding.

British Parliamentary brackets follow the usual tab convention:

    2 teams   -> grand final
    3 teams   -> one semifinal, fourth seat a placeholder
    4-7 teams -> one semifinal seated 1, 4, 2, 3
    8+ teams  -> quarterfinals {1, 4, 5, 8} and {2, 3, 6, 7}

Two-team formats use a classic single-elimination bracket of the largest
power of two that fits, capped at quarterfinals, seeded so that the top
two seeds can only meet in the final.
"""

import logging

from formats import DebateFormat
from .exceptions import PreconditionError
from .models import (
    BreakAnnouncement,
    Room,
    RoomSlot,
    RoundType,
    StandingsEntry,
    Team,
)

logger = logging.getLogger(__name__)

MAX_BRACKET_ROUNDS = 3  # quarterfinals, semifinals, grand final

# Seed numbers (1-based) per BP room, in seat order
BP_QUARTERFINAL_SEEDS = [[1, 4, 5, 8], [2, 3, 6, 7]]
BP_COMBINED_SEEDS = [1, 4, 2, 3]

ROUND_LABELS = {
    RoundType.BREAK: "Quarterfinal",
    RoundType.SEMI: "Semifinal",
    RoundType.FINAL: "Grand Final",
}

NEXT_ROUND = {
    RoundType.BREAK: RoundType.SEMI,
    RoundType.SEMI: RoundType.FINAL,
}

# A seat group lists team ids in seat order; None marks a placeholder seat
SeatGroup = list[int | None]


def standard_seed_order(size: int) -> list[int]:
    """Seed order for a single-elimination bracket of ``size`` teams.

    Adjacent pairs form the first-round matches: for 8 teams that is
    (1, 8), (4, 5), (2, 7), (3, 6).
    """
    order = [1]
    while len(order) < size:
        mirror = 2 * len(order) + 1
        order = [seed for s in order for seed in (s, mirror - s)]
    return order


def _largest_power_of_two(n: int) -> int:
    size = 1
    while size * 2 <= n:
        size *= 2
    return size


def ranked_team_ids(room: Room) -> list[int]:
    """Real teams of a room by room rank, best first."""
    slots = [s for s in room.slots if not s.is_placeholder and s.team_id is not None]
    return [s.team_id for s in sorted(slots, key=lambda s: s.rank or 99)]


class BracketBuilder:
    """Seeds elimination rounds for one debate format."""

    def __init__(self, debate_format: DebateFormat):
        self.format = debate_format

    def calculate_break(
        self, standings: list[StandingsEntry], break_size: int
    ) -> BreakAnnouncement:
        """Slice the top ``break_size`` teams off tie-broken standings."""
        if not standings:
            raise PreconditionError("No teams found in tournament", reason="no_teams")

        breaking = standings[: min(break_size, len(standings))]
        cutoff = breaking[-1].team
        logger.info(
            f"Break of {len(breaking)} from {len(standings)} teams; cutoff "
            f"{cutoff.total_points} points / {cutoff.total_speaks} speaks"
        )
        return BreakAnnouncement(
            breaking_teams=breaking,
            break_size=break_size,
            total_teams=len(standings),
            cutoff_points=cutoff.total_points,
            cutoff_speaks=cutoff.total_speaks,
        )

    def first_elimination(self, seeded: list[Team]) -> tuple[RoundType, list[SeatGroup]]:
        """Seat the breaking teams, best seed first, into the opening round."""
        if len(seeded) < 2:
            raise PreconditionError(
                f"At least 2 breaking teams are needed, found {len(seeded)}",
                reason="insufficient_teams",
            )
        ids = [team.id for team in seeded]
        if self.format.room_arity == 4:
            return self._bp_opening(ids)
        return self._knockout_opening(ids)

    def _bp_opening(self, ids: list[int]) -> tuple[RoundType, list[SeatGroup]]:
        count = len(ids)
        if count == 2:
            return RoundType.FINAL, [[ids[0], ids[1], None, None]]
        if count == 3:
            return RoundType.SEMI, [[ids[0], ids[1], ids[2], None]]
        if count < 8:
            return RoundType.SEMI, [[ids[seed - 1] for seed in BP_COMBINED_SEEDS]]
        return RoundType.BREAK, [
            [ids[seed - 1] for seed in room] for room in BP_QUARTERFINAL_SEEDS
        ]

    def _knockout_opening(self, ids: list[int]) -> tuple[RoundType, list[SeatGroup]]:
        arity = self.format.room_arity
        max_size = arity ** MAX_BRACKET_ROUNDS
        size = _largest_power_of_two(min(len(ids), max_size))
        if size < len(ids):
            logger.info(f"Bracket of {size}; seeds {size + 1}-{len(ids)} do not advance")

        order = [ids[seed - 1] for seed in standard_seed_order(size)]
        groups: list[SeatGroup] = [order[i : i + arity] for i in range(0, size, arity)]

        if len(groups) == 1:
            return RoundType.FINAL, groups
        if len(groups) == 2:
            return RoundType.SEMI, groups
        return RoundType.BREAK, groups

    def advancing_teams(self, rooms: list[Room]) -> list[int]:
        """Top teams of each room, room by room, in room-rank order."""
        advancing: list[int] = []
        for room in rooms:
            if not room.has_results:
                raise PreconditionError(
                    f"{room.room_name} has no results yet", reason="round_not_completed"
                )
            advancing.extend(ranked_team_ids(room)[: self.format.advancing_per_room])
        return advancing

    def next_round(
        self, source_type: RoundType, source_rooms: list[Room]
    ) -> tuple[RoundType, list[SeatGroup]]:
        """Seat the teams progressing from a completed elimination round."""
        target = NEXT_ROUND.get(source_type)
        if target is None:
            raise PreconditionError(
                f"No round follows a {source_type.value} round", reason="invalid_round_type"
            )
        if not source_rooms:
            raise PreconditionError("Source round has no rooms", reason="no_rooms")

        ordered_rooms = sorted(source_rooms, key=lambda r: r.id or 0)
        if target == RoundType.FINAL and len(ordered_rooms) == 1:
            # The whole semifinal room goes through to the final
            if not ordered_rooms[0].has_results:
                raise PreconditionError(
                    f"{ordered_rooms[0].room_name} has no results yet",
                    reason="round_not_completed",
                )
            teams: list[int] = ranked_team_ids(ordered_rooms[0])
        else:
            teams = self.advancing_teams(ordered_rooms)

        if len(teams) < 2:
            raise PreconditionError(
                f"Only {len(teams)} team(s) advanced", reason="insufficient_teams"
            )

        arity = self.format.room_arity
        groups: list[SeatGroup] = []
        for start in range(0, len(teams), arity):
            group: SeatGroup = list(teams[start : start + arity])
            group.extend([None] * (arity - len(group)))
            groups.append(group)
        return target, groups

    def build_rooms(
        self,
        groups: list[SeatGroup],
        round_type: RoundType,
        tournament_id: int,
        round_id: int,
        prep_duration: float,
        speech_duration: float,
    ) -> list[Room]:
        label = ROUND_LABELS.get(round_type, "Room")
        rooms = []
        for index, group in enumerate(groups, start=1):
            name = label if len(groups) == 1 else f"{label} {index}"
            slots = [
                RoomSlot(team_id=team_id, position=position, is_placeholder=team_id is None)
                for team_id, position in zip(group, self.format.positions)
            ]
            rooms.append(
                Room(
                    tournament_id=tournament_id,
                    round_id=round_id,
                    room_name=name,
                    slots=slots,
                    prep_duration=prep_duration,
                    speech_duration=speech_duration,
                    total_speeches=self.format.total_speeches,
                )
            )
        return rooms

    @staticmethod
    def champion(final_rooms: list[Room]) -> int:
        """Rank-1 team of the completed grand final."""
        for room in final_rooms:
            if not room.has_results:
                continue
            for slot in room.slots:
                if slot.rank == 1 and not slot.is_placeholder and slot.team_id is not None:
                    return slot.team_id
        raise PreconditionError(
            "Grand final has no recorded winner", reason="no_champion"
        )
