"""Tournament API handlers.

Translates tab errors into HTTP responses; the routes live in
``web/endpoints/tournaments.py``.
"""

import logging
from typing import Any

from fastapi import HTTPException

from .exceptions import AuthorizationError, NotFoundError, TabError
from .manager import TournamentManager
from .models import (
    BallotPayload,
    DirectResultRequest,
    JudgeRegistration,
    TeamRegistration,
    TournamentCreateRequest,
)

logger = logging.getLogger(__name__)

# Precondition reasons that describe a conflicting concurrent or repeated write
CONFLICT_REASONS = {
    "draw_exists",
    "already_generated",
    "results_recorded",
    "ballot_submitted",
    "concurrent_update",
}


def http_error(error: TabError) -> HTTPException:
    """Map a tab error to an HTTP error carrying its reason."""
    if isinstance(error, NotFoundError):
        status_code = 404
    elif isinstance(error, AuthorizationError):
        status_code = 403
    elif error.reason in CONFLICT_REASONS:
        status_code = 409
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=error.to_dict())


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


class TournamentAPI:
    """FastAPI endpoint handlers for tournament operations."""

    def __init__(self, tournament_manager: TournamentManager):
        self.manager = tournament_manager

    def _run(self, action: str, operation, *args, **kwargs) -> Any:
        try:
            return operation(*args, **kwargs)
        except TabError as e:
            logger.info(f"{action} rejected: {e.reason}: {e.message}")
            raise http_error(e)
        except Exception as e:
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Internal server error")

    # Tournaments and rosters

    async def create_tournament(
        self, request: TournamentCreateRequest, actor_id: str | None
    ) -> dict[str, Any]:
        if not actor_id:
            raise HTTPException(
                status_code=403,
                detail={"reason": "not_authorized", "message": "X-Actor-Id header required"},
            )
        tournament = self._run(
            "create tournament", self.manager.create_tournament, request, actor_id
        )
        return {
            "tournament": _dump(tournament),
            "message": f"Tournament '{tournament.name}' created successfully",
        }

    async def get_tournament(self, tournament_id: int) -> dict[str, Any]:
        tournament = self._run("get tournament", self.manager.get_tournament, tournament_id)
        rounds = self._run("list rounds", self.manager.db.get_rounds, tournament_id)
        return {"tournament": _dump(tournament), "rounds": _dump(rounds)}

    async def register_team(
        self, tournament_id: int, registration: TeamRegistration, actor_id: str | None
    ) -> dict[str, Any]:
        team = self._run(
            "register team", self.manager.register_team, tournament_id, registration, actor_id
        )
        return {"team": _dump(team)}

    async def list_teams(self, tournament_id: int) -> dict[str, Any]:
        teams = self._run("list teams", self.manager.get_teams, tournament_id)
        return {"teams": _dump(teams), "count": len(teams)}

    async def withdraw_team(
        self, tournament_id: int, team_id: int, actor_id: str | None
    ) -> dict[str, Any]:
        team = self._run(
            "withdraw team", self.manager.withdraw_team, tournament_id, team_id, actor_id
        )
        return {"team": _dump(team)}

    async def register_judge(
        self, tournament_id: int, registration: JudgeRegistration, actor_id: str | None
    ) -> dict[str, Any]:
        judge = self._run(
            "register judge", self.manager.register_judge, tournament_id, registration, actor_id
        )
        return {"judge": _dump(judge)}

    async def list_judges(self, tournament_id: int) -> dict[str, Any]:
        judges = self._run("list judges", self.manager.get_judges, tournament_id)
        return {"judges": _dump(judges), "count": len(judges)}

    async def set_judge_availability(
        self, tournament_id: int, judge_id: int, available: bool, actor_id: str | None
    ) -> dict[str, Any]:
        judge = self._run(
            "set judge availability",
            self.manager.set_judge_availability,
            tournament_id,
            judge_id,
            available,
            actor_id,
        )
        return {"judge": _dump(judge)}

    # Draws

    async def generate_draw(
        self, tournament_id: int, round_number: int, actor_id: str | None
    ) -> dict[str, Any]:
        result = self._run(
            "generate draw", self.manager.generate_draw, tournament_id, round_number, actor_id
        )
        return _dump(result)

    async def delete_draw(self, round_id: int, actor_id: str | None) -> dict[str, Any]:
        deleted = self._run("delete draw", self.manager.delete_draw, round_id, actor_id)
        return {"round_id": round_id, "deleted_rooms": deleted}

    async def get_draw(self, round_id: int) -> dict[str, Any]:
        return _dump(self._run("get draw", self.manager.get_draw, round_id))

    async def get_team_rooms(self, team_id: int) -> dict[str, Any]:
        rooms = self._run("get team rooms", self.manager.get_team_rooms, team_id)
        return {"rooms": _dump(rooms), "count": len(rooms)}

    async def get_judge_rooms(self, judge_id: int) -> dict[str, Any]:
        rooms = self._run("get judge rooms", self.manager.get_judge_rooms, judge_id)
        return {"rooms": _dump(rooms), "count": len(rooms)}

    # Rooms

    async def start_prep(self, room_id: int, actor_id: str | None) -> dict[str, Any]:
        room = self._run("start prep", self.manager.start_prep, room_id, actor_id)
        return {"room": _dump(room)}

    async def start_debate(self, room_id: int, actor_id: str | None) -> dict[str, Any]:
        room = self._run("start debate", self.manager.start_debate, room_id, actor_id)
        return {"room": _dump(room)}

    async def advance_room_clock(
        self, room_id: int, expected_speech_number: int | None = None
    ) -> dict[str, Any]:
        room = self._run(
            "advance room clock",
            self.manager.advance_room_clock,
            room_id,
            expected_speech_number,
        )
        return {"room": _dump(room)}

    async def mark_judging(self, room_id: int, actor_id: str | None) -> dict[str, Any]:
        room = self._run("mark judging", self.manager.mark_judging, room_id, actor_id)
        return {"room": _dump(room)}

    async def cancel_room(self, room_id: int, actor_id: str | None) -> dict[str, Any]:
        room = self._run("cancel room", self.manager.cancel_room, room_id, actor_id)
        return {"room": _dump(room)}

    # Ballots and results

    async def get_or_create_ballot(
        self, room_id: int, judge_id: int, actor_id: str | None
    ) -> dict[str, Any]:
        ballot = self._run(
            "open ballot", self.manager.get_or_create_ballot, room_id, judge_id, actor_id
        )
        return {"ballot": _dump(ballot)}

    async def save_ballot_draft(
        self, room_id: int, judge_id: int, payload: BallotPayload, actor_id: str | None
    ) -> dict[str, Any]:
        ballot = self._run(
            "save ballot",
            self.manager.save_ballot_draft,
            room_id,
            judge_id,
            payload,
            actor_id,
        )
        return {"ballot": _dump(ballot)}

    async def submit_ballot(
        self, room_id: int, judge_id: int, payload: BallotPayload, actor_id: str | None
    ) -> dict[str, Any]:
        submission = self._run(
            "submit ballot",
            self.manager.submit_ballot,
            room_id,
            judge_id,
            payload,
            actor_id,
        )
        return _dump(submission)

    async def get_ballot_status(self, room_id: int) -> dict[str, Any]:
        summary = self._run("get ballot status", self.manager.get_ballot_status, room_id)
        payload = _dump(summary)
        payload["progress"] = summary.progress
        return payload

    async def list_room_ballots(self, room_id: int, actor_id: str | None) -> dict[str, Any]:
        ballots = self._run(
            "list ballots", self.manager.list_room_ballots, room_id, actor_id
        )
        return {"ballots": _dump(ballots), "count": len(ballots)}

    async def enter_results(
        self,
        room_id: int,
        request: DirectResultRequest,
        actor_id: str | None,
        judge_id: int | None = None,
    ) -> dict[str, Any]:
        room = self._run(
            "enter results", self.manager.enter_results, room_id, request, actor_id, judge_id
        )
        return {"room": _dump(room), "message": "Results recorded"}

    # Standings and bracket

    async def get_standings(self, tournament_id: int) -> dict[str, Any]:
        standings = self._run("get standings", self.manager.get_standings, tournament_id)
        return {"standings": _dump(standings), "count": len(standings)}

    async def get_speaker_standings(self, tournament_id: int) -> dict[str, Any]:
        speakers = self._run(
            "get speaker standings", self.manager.get_speaker_standings, tournament_id
        )
        return {"speakers": _dump(speakers), "count": len(speakers)}

    async def announce_break(self, tournament_id: int, actor_id: str | None) -> dict[str, Any]:
        return _dump(
            self._run("announce break", self.manager.announce_break, tournament_id, actor_id)
        )

    async def generate_quarterfinals(
        self, tournament_id: int, actor_id: str | None
    ) -> dict[str, Any]:
        return _dump(
            self._run(
                "generate quarterfinals",
                self.manager.generate_quarterfinals,
                tournament_id,
                actor_id,
            )
        )

    async def generate_semifinals(
        self, tournament_id: int, round_id: int, actor_id: str | None
    ) -> dict[str, Any]:
        return _dump(
            self._run(
                "generate semifinals",
                self.manager.generate_semifinals,
                tournament_id,
                round_id,
                actor_id,
            )
        )

    async def generate_grand_final(
        self, tournament_id: int, round_id: int, actor_id: str | None
    ) -> dict[str, Any]:
        return _dump(
            self._run(
                "generate grand final",
                self.manager.generate_grand_final,
                tournament_id,
                round_id,
                actor_id,
            )
        )

    async def get_bracket(self, tournament_id: int) -> dict[str, Any]:
        return _dump(self._run("get bracket", self.manager.get_bracket, tournament_id))

    async def complete_tournament(
        self, tournament_id: int, actor_id: str | None
    ) -> dict[str, Any]:
        tournament = self._run(
            "complete tournament", self.manager.complete_tournament, tournament_id, actor_id
        )
        return {
            "tournament": _dump(tournament),
            "champion_team_id": tournament.champion_team_id,
        }
