"""Base classes and interfaces for debate formats."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SpeechSlot:
    """One entry of a format's speaking order."""

    speech_number: int
    position: str
    seat_index: int  # index into the team's ordered member list
    name: str


class DebateFormat(ABC):
    """Abstract base class for tournament debate formats.

    A format fixes the room arity, seat labels, the speaking order, the
    rank-to-points table and the default speaker score range.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Format code (``BP`` or ``AP``)."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable format name."""
        pass

    @property
    @abstractmethod
    def positions(self) -> list[str]:
        """Seat labels in draw order."""
        pass

    @property
    @abstractmethod
    def speakers_per_team(self) -> int:
        pass

    @abstractmethod
    def get_speech_order(self) -> list[SpeechSlot]:
        """Canonical speaking order, speech number 1 first."""
        pass

    @abstractmethod
    def get_points_table(self) -> dict[int, int]:
        """Map of room rank to team points."""
        pass

    @abstractmethod
    def is_win(self, rank: int) -> bool:
        """Whether finishing at ``rank`` counts as a win."""
        pass

    @property
    def room_arity(self) -> int:
        """Number of teams seated in one room."""
        return len(self.positions)

    @property
    def total_speeches(self) -> int:
        return len(self.get_speech_order())

    @property
    def default_speaker_score_range(self) -> tuple[float, float]:
        return (70.0, 80.0)

    @property
    def default_judges_per_room(self) -> int:
        return 1

    @property
    def advancing_per_room(self) -> int:
        """Teams that progress from each elimination room."""
        return max(1, self.room_arity // 2)

    def speech_at(self, speech_number: int) -> SpeechSlot | None:
        """Look up the speaking slot for a 1-based speech number."""
        order = self.get_speech_order()
        if 1 <= speech_number <= len(order):
            return order[speech_number - 1]
        return None

    def points_for_rank(self, rank: int) -> int:
        return self.get_points_table().get(rank, 0)

    def get_position_assignments(self, team_ids: list[int]) -> list[tuple[int, str]]:
        """Seat teams in the given order."""
        if len(team_ids) != self.room_arity:
            raise ValueError(
                f"{self.name} rooms seat {self.room_arity} teams, got {len(team_ids)}"
            )
        return list(zip(team_ids, self.positions))
