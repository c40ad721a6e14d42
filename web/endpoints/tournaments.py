"""Tournament tab endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel

from config.settings import get_default_config
from tournaments.api import TournamentAPI
from tournaments.manager import TournamentManager
from tournaments.models import (
    BallotPayload,
    DirectResultRequest,
    JudgeRegistration,
    TeamRegistration,
    TournamentCreateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

tournament_api: TournamentAPI | None = None


def get_tournament_api() -> TournamentAPI:
    """Get or create the tournament API instance."""
    global tournament_api
    if tournament_api is None:
        config = get_default_config()
        tournament_api = TournamentAPI(TournamentManager(config=config))
        logger.info(f"Tournament API ready on {config.system.database_path}")
    return tournament_api


class AvailabilityUpdate(BaseModel):
    available: bool


ActorId = Annotated[str | None, Header(alias="X-Actor-Id")]


# Tournaments and rosters


@router.post("/tournaments")
async def create_tournament(
    request: TournamentCreateRequest,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.create_tournament(request, actor_id)


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_tournament(tournament_id)


@router.post("/tournaments/{tournament_id}/teams")
async def register_team(
    tournament_id: int,
    registration: TeamRegistration,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.register_team(tournament_id, registration, actor_id)


@router.get("/tournaments/{tournament_id}/teams")
async def list_teams(tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.list_teams(tournament_id)


@router.post("/tournaments/{tournament_id}/teams/{team_id}/withdraw")
async def withdraw_team(
    tournament_id: int,
    team_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.withdraw_team(tournament_id, team_id, actor_id)


@router.post("/tournaments/{tournament_id}/judges")
async def register_judge(
    tournament_id: int,
    registration: JudgeRegistration,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.register_judge(tournament_id, registration, actor_id)


@router.get("/tournaments/{tournament_id}/judges")
async def list_judges(tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.list_judges(tournament_id)


@router.put("/tournaments/{tournament_id}/judges/{judge_id}/availability")
async def set_judge_availability(
    tournament_id: int,
    judge_id: int,
    update: AvailabilityUpdate,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.set_judge_availability(tournament_id, judge_id, update.available, actor_id)


# Draws


@router.post("/tournaments/{tournament_id}/rounds/{round_number}/draw")
async def generate_draw(
    tournament_id: int,
    round_number: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.generate_draw(tournament_id, round_number, actor_id)


@router.get("/rounds/{round_id}/draw")
async def get_draw(round_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_draw(round_id)


@router.get("/teams/{team_id}/rooms")
async def get_team_rooms(team_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_team_rooms(team_id)


@router.get("/judges/{judge_id}/rooms")
async def get_judge_rooms(judge_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_judge_rooms(judge_id)


@router.delete("/rounds/{round_id}/draw")
async def delete_draw(
    round_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.delete_draw(round_id, actor_id)


# Room clock


@router.post("/rooms/{room_id}/prep")
async def start_prep(
    room_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.start_prep(room_id, actor_id)


@router.post("/rooms/{room_id}/start")
async def start_debate(
    room_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.start_debate(room_id, actor_id)


@router.post("/rooms/{room_id}/advance")
async def advance_room_clock(
    room_id: int,
    expected_speech_number: int | None = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    """Polled by clients; safe to call at any cadence."""
    return await api.advance_room_clock(room_id, expected_speech_number)


@router.post("/rooms/{room_id}/judging")
async def mark_judging(
    room_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.mark_judging(room_id, actor_id)


@router.post("/rooms/{room_id}/cancel")
async def cancel_room(
    room_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.cancel_room(room_id, actor_id)


# Ballots and results


@router.post("/rooms/{room_id}/ballots/{judge_id}")
async def get_or_create_ballot(
    room_id: int,
    judge_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.get_or_create_ballot(room_id, judge_id, actor_id)


@router.put("/rooms/{room_id}/ballots/{judge_id}")
async def save_ballot_draft(
    room_id: int,
    judge_id: int,
    payload: BallotPayload,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.save_ballot_draft(room_id, judge_id, payload, actor_id)


@router.post("/rooms/{room_id}/ballots/{judge_id}/submit")
async def submit_ballot(
    room_id: int,
    judge_id: int,
    payload: BallotPayload,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.submit_ballot(room_id, judge_id, payload, actor_id)


@router.get("/rooms/{room_id}/ballot-status")
async def get_ballot_status(room_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_ballot_status(room_id)


@router.get("/rooms/{room_id}/ballots")
async def list_room_ballots(
    room_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.list_room_ballots(room_id, actor_id)


@router.post("/rooms/{room_id}/results")
async def enter_results(
    room_id: int,
    request: DirectResultRequest,
    judge_id: int | None = None,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.enter_results(room_id, request, actor_id, judge_id)


# Standings and bracket


@router.get("/tournaments/{tournament_id}/standings")
async def get_standings(tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_standings(tournament_id)


@router.get("/tournaments/{tournament_id}/speakers")
async def get_speaker_standings(
    tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)
):
    return await api.get_speaker_standings(tournament_id)


@router.post("/tournaments/{tournament_id}/break")
async def announce_break(
    tournament_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.announce_break(tournament_id, actor_id)


@router.post("/tournaments/{tournament_id}/quarterfinals")
async def generate_quarterfinals(
    tournament_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.generate_quarterfinals(tournament_id, actor_id)


@router.post("/tournaments/{tournament_id}/rounds/{round_id}/semifinals")
async def generate_semifinals(
    tournament_id: int,
    round_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.generate_semifinals(tournament_id, round_id, actor_id)


@router.post("/tournaments/{tournament_id}/rounds/{round_id}/grand-final")
async def generate_grand_final(
    tournament_id: int,
    round_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.generate_grand_final(tournament_id, round_id, actor_id)


@router.get("/tournaments/{tournament_id}/bracket")
async def get_bracket(tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_bracket(tournament_id)


@router.post("/tournaments/{tournament_id}/complete")
async def complete_tournament(
    tournament_id: int,
    actor_id: ActorId = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.complete_tournament(tournament_id, actor_id)
