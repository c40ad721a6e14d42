"""Debate tab engine: draws, judge allocation, results, standings and the break.

Only models and errors are exported here; import ``TournamentManager`` from
``tournaments.manager``.
"""

from .exceptions import (
    AuthorizationError,
    BallotValidationError,
    NotFoundError,
    PreconditionError,
    TabError,
)
from .models import (
    Ballot,
    BallotStatus,
    Judge,
    Room,
    RoomSlot,
    RoomStatus,
    Round,
    RoundStatus,
    RoundType,
    Team,
    TeamStatus,
    Tournament,
    TournamentFormat,
    TournamentStatus,
)

__all__ = [
    "AuthorizationError",
    "BallotValidationError",
    "NotFoundError",
    "PreconditionError",
    "TabError",
    "Ballot",
    "BallotStatus",
    "Judge",
    "Room",
    "RoomSlot",
    "RoomStatus",
    "Round",
    "RoundStatus",
    "RoundType",
    "Team",
    "TeamStatus",
    "Tournament",
    "TournamentFormat",
    "TournamentStatus",
]
