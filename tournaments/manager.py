"""Tournament orchestration: rosters, draws, room clocks, results and the break."""

import logging
import random
from datetime import datetime
from typing import Callable

from config.settings import AppConfig
from formats import DebateFormat, format_registry
from judges.allocation import JudgeAllocator
from rooms.clock import RoomClock
from .bracket import BracketBuilder
from .database import TournamentDatabaseManager
from .draw import PairingGenerator
from .exceptions import AuthorizationError, NotFoundError, PreconditionError
from .models import (
    ELIMINATION_ROUND_TYPES,
    Ballot,
    BallotPayload,
    BallotStatus,
    BallotStatusSummary,
    BallotSubmission,
    BracketData,
    BreakAnnouncement,
    BreakCategory,
    DirectResultRequest,
    DrawResult,
    Judge,
    JudgeRegistration,
    Room,
    RoomStatus,
    Round,
    RoundStatus,
    RoundType,
    RoundWithRooms,
    SpeakerStandingsEntry,
    StandingsEntry,
    Team,
    TeamRegistration,
    TeamStatus,
    Tournament,
    TournamentCreateRequest,
    TournamentStatus,
)
from .results import (
    ResultsService,
    slots_from_entries,
    summarize_ballots,
    validate_ballot,
)
from .speakers import rank_speakers
from .tiebreak import TieBreakResolver, coin_toss_seed

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (TournamentStatus.COMPLETED, TournamentStatus.CANCELLED)


class TournamentManager:
    """Entry point for every tab operation.

    Organizer-only operations take an ``actor_id`` and compare it with the
    tournament's organizer before anything else is loaded. Identity itself
    is established by the caller.
    """

    def __init__(
        self,
        db_path: str | None = None,
        config: AppConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
    ):
        self.config = config or AppConfig()
        self.db = TournamentDatabaseManager(db_path or self.config.system.database_path)
        self.clock = clock
        self.rng = rng or random.Random(self.config.tab.draw_seed)
        self.results = ResultsService(self.db, clock)

    # Lookups

    def _require_tournament(self, tournament_id: int) -> Tournament:
        tournament = self.db.get_tournament(tournament_id)
        if tournament is None:
            raise NotFoundError(f"Tournament {tournament_id} not found")
        return tournament

    def _require_round(self, round_id: int) -> Round:
        round_ = self.db.get_round(round_id)
        if round_ is None:
            raise NotFoundError(f"Round {round_id} not found")
        return round_

    def _require_room(self, room_id: int) -> Room:
        room = self.db.get_room(room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    def _authorize(self, tournament_id: int, actor_id: str | None) -> Tournament:
        """Load the tournament and check the actor organizes it."""
        tournament = self._require_tournament(tournament_id)
        if actor_id is None or actor_id != tournament.organizer_id:
            raise AuthorizationError(
                f"Only the organizer of tournament {tournament_id} can do this"
            )
        return tournament

    @staticmethod
    def _require_open(tournament: Tournament) -> None:
        if tournament.status in CLOSED_STATUSES:
            raise PreconditionError(
                f"Tournament {tournament.id} is {tournament.status.value}",
                reason="tournament_closed",
            )

    @staticmethod
    def _format(tournament: Tournament) -> DebateFormat:
        return format_registry.get_format(tournament.format.value)

    def _teams_by_id(self, tournament_id: int) -> dict[int, Team]:
        return {team.id: team for team in self.db.get_teams(tournament_id)}

    def _members_by_team(self, room: Room) -> dict[int, list[str]]:
        teams = self._teams_by_id(room.tournament_id)
        return {tid: teams[tid].members for tid in room.team_ids if tid in teams}

    def _panel_size(self, tournament: Tournament) -> int:
        return min(tournament.judges_per_room, self.config.tab.max_judges_per_room)

    # Tournaments and rosters

    def create_tournament(
        self, request: TournamentCreateRequest, organizer_id: str
    ) -> Tournament:
        """Create a tournament and its preliminary rounds."""
        debate_format = format_registry.get_format(request.format.value)
        low, high = debate_format.default_speaker_score_range
        score_min = request.speaker_score_min if request.speaker_score_min is not None else low
        score_max = request.speaker_score_max if request.speaker_score_max is not None else high
        if score_min >= score_max:
            raise PreconditionError(
                f"Speaker score range {score_min}-{score_max} is empty",
                reason="invalid_score_range",
            )

        tournament = Tournament(
            name=request.name,
            format=request.format,
            organizer_id=organizer_id,
            status=TournamentStatus.REGISTRATION,
            number_of_rounds=request.number_of_rounds,
            breaking_teams=request.breaking_teams or self.config.tab.default_breaking_teams,
            speaker_score_min=score_min,
            speaker_score_max=score_max,
            judges_per_room=request.judges_per_room or debate_format.default_judges_per_room,
            created_at=self.clock(),
        )
        return self.db.create_tournament(tournament)

    def get_tournament(self, tournament_id: int) -> Tournament:
        return self._require_tournament(tournament_id)

    def register_team(
        self, tournament_id: int, registration: TeamRegistration, actor_id: str
    ) -> Team:
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)

        debate_format = self._format(tournament)
        if len(registration.members) < debate_format.speakers_per_team:
            raise PreconditionError(
                f"{debate_format.name} teams need {debate_format.speakers_per_team} "
                f"speakers, got {len(registration.members)}",
                reason="team_too_small",
            )

        team = self.db.add_team(
            Team(
                tournament_id=tournament_id,
                name=registration.name,
                institution=registration.institution,
                members=registration.members,
                status=registration.status,
            )
        )
        logger.info(f"Registered team {team.name} ({team.id}) in tournament {tournament_id}")
        return team

    def withdraw_team(self, tournament_id: int, team_id: int, actor_id: str) -> Team:
        self._authorize(tournament_id, actor_id)
        team = self.db.get_team(team_id)
        if team is None or team.tournament_id != tournament_id:
            raise NotFoundError(f"Team {team_id} not found in tournament {tournament_id}")

        self.db.update_team_status(team_id, TeamStatus.WITHDRAWN)
        logger.info(f"Withdrew team {team.name} ({team_id})")
        return team.model_copy(update={"status": TeamStatus.WITHDRAWN})

    def get_teams(self, tournament_id: int) -> list[Team]:
        self._require_tournament(tournament_id)
        return self.db.get_teams(tournament_id)

    def register_judge(
        self, tournament_id: int, registration: JudgeRegistration, actor_id: str
    ) -> Judge:
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)

        judge = self.db.add_judge(
            Judge(tournament_id=tournament_id, **registration.model_dump())
        )
        logger.info(f"Registered judge {judge.name} ({judge.id}) in tournament {tournament_id}")
        return judge

    def set_judge_availability(
        self, tournament_id: int, judge_id: int, available: bool, actor_id: str
    ) -> Judge:
        self._authorize(tournament_id, actor_id)
        judge = self.db.get_judge(judge_id)
        if judge is None or judge.tournament_id != tournament_id:
            raise NotFoundError(f"Judge {judge_id} not found in tournament {tournament_id}")

        self.db.set_judge_availability(judge_id, available)
        return judge.model_copy(update={"available": available})

    def get_judges(self, tournament_id: int) -> list[Judge]:
        self._require_tournament(tournament_id)
        return self.db.get_judges(tournament_id)

    # Draws

    def generate_draw(
        self, tournament_id: int, round_number: int, actor_id: str
    ) -> DrawResult:
        """Pair the confirmed teams for a preliminary round and seat judges."""
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)

        round_ = self.db.get_round_by_number(tournament_id, round_number)
        if round_ is None:
            raise NotFoundError(
                f"Round {round_number} not found in tournament {tournament_id}"
            )
        if round_.round_type != RoundType.PRELIMINARY:
            raise PreconditionError(
                f"Round {round_number} is an elimination round", reason="invalid_round_type"
            )
        if self.db.get_rooms(round_.id):
            raise PreconditionError(
                f"Draw already exists for round {round_number}", reason="draw_exists"
            )
        if round_number > 1:
            previous = self.db.get_round_by_number(tournament_id, round_number - 1)
            if previous is None or previous.status != RoundStatus.COMPLETED:
                raise PreconditionError(
                    f"Round {round_number - 1} must be completed first",
                    reason="round_not_completed",
                )

        debate_format = self._format(tournament)
        timing = self.config.timing.for_format(debate_format.name)
        teams = self.db.get_teams(tournament_id, TeamStatus.CONFIRMED)

        generator = PairingGenerator(
            debate_format,
            rng=self.rng,
            round_one_attempts=self.config.tab.round_one_draw_attempts,
            swap_attempts_per_room=self.config.tab.swap_attempts_per_room,
        )
        rooms, pairing = generator.generate_draw(
            round_number,
            teams,
            tournament_id,
            round_.id,
            prep_duration=timing.prep_duration,
            speech_duration=timing.speech_duration,
        )

        report = JudgeAllocator(self.rng).allocate_judges(
            rooms,
            self.db.get_judges(tournament_id, available_only=True),
            self._panel_size(tournament),
            {team.id: team for team in teams},
        )
        warnings = list(report.warnings)
        if pairing.leftover:
            warnings.append(f"leftover_teams:{len(pairing.leftover)}")

        stored = self.db.insert_draw(round_.id, rooms, self.clock())
        if tournament.status in (TournamentStatus.DRAFT, TournamentStatus.REGISTRATION):
            self.db.update_tournament_status(tournament_id, TournamentStatus.ONGOING)

        return DrawResult(
            round=self._require_round(round_.id),
            rooms=stored,
            leftover_team_ids=[team.id for team in pairing.leftover],
            institution_conflicts=pairing.conflicts,
            warnings=warnings,
        )

    def delete_draw(self, round_id: int, actor_id: str) -> int:
        """Discard a preliminary round's draw so it can be generated again."""
        round_ = self._require_round(round_id)
        self._authorize(round_.tournament_id, actor_id)
        if round_.round_type != RoundType.PRELIMINARY:
            raise PreconditionError(
                "Elimination rounds cannot be redrawn", reason="invalid_round_type"
            )
        return self.db.delete_draw(round_id)

    def get_draw(self, round_id: int) -> RoundWithRooms:
        round_ = self._require_round(round_id)
        return RoundWithRooms(round=round_, rooms=self.db.get_rooms(round_id))

    def get_team_rooms(self, team_id: int) -> list[Room]:
        """Every room the team has been drawn into, in round order."""
        team = self.db.get_team(team_id)
        if team is None:
            raise NotFoundError(f"Team {team_id} not found")
        return [
            room for room in self.db.get_tournament_rooms(team.tournament_id)
            if team_id in room.team_ids
        ]

    def get_judge_rooms(self, judge_id: int) -> list[Room]:
        """Every room the judge sits on, in round order."""
        judge = self.db.get_judge(judge_id)
        if judge is None:
            raise NotFoundError(f"Judge {judge_id} not found")
        return [
            room for room in self.db.get_tournament_rooms(judge.tournament_id)
            if judge_id in room.judge_ids
        ]

    # Room clock

    def _room_clock(self, room: Room) -> RoomClock:
        tournament = self._require_tournament(room.tournament_id)
        return RoomClock(self._format(tournament), self.clock)

    def _authorize_room(self, room_id: int, actor_id: str) -> Room:
        room = self._require_room(room_id)
        self._authorize(room.tournament_id, actor_id)
        return room

    def _save_clock(self, room: Room, expected: Room) -> None:
        if not self.db.update_room_clock(
            room, expected.status, expected.current_speech_number
        ):
            raise PreconditionError(
                f"{room.room_name} changed while updating; reload and retry",
                reason="concurrent_update",
            )

    def start_prep(self, room_id: int, actor_id: str) -> Room:
        room = self._authorize_room(room_id, actor_id)
        before = room.model_copy()
        self._room_clock(room).start_prep(room)
        self._save_clock(room, before)
        self.db.update_round_status(
            room.round_id, RoundStatus.IN_PROGRESS, only_from=RoundStatus.SCHEDULED
        )
        return room

    def start_debate(self, room_id: int, actor_id: str) -> Room:
        room = self._authorize_room(room_id, actor_id)
        before = room.model_copy()
        self._room_clock(room).start_debate(room, self._members_by_team(room))
        self._save_clock(room, before)
        return room

    def advance_room_clock(
        self, room_id: int, expected_speech_number: int | None = None
    ) -> Room:
        """Idempotent poke from a polling client.

        Without ``expected_speech_number`` only transitions whose deadline
        has passed are applied. With it, that speech is ended now, unless
        the room has already moved past it.
        """
        room = self._require_room(room_id)
        clock = self._room_clock(room)
        members = self._members_by_team(room)

        if expected_speech_number is None:
            updated, transitions = clock.tick(room, members)
        else:
            updated = room.model_copy(deep=True)
            transition = clock.advance_turn(
                updated, members, expected_speech_number=expected_speech_number
            )
            transitions = [transition] if transition else []

        if not transitions:
            return room
        if not self.db.update_room_clock(
            updated, room.status, room.current_speech_number
        ):
            logger.debug(f"{room.room_name}: clock already advanced by another caller")
            return self._require_room(room_id)
        return updated

    def mark_judging(self, room_id: int, actor_id: str) -> Room:
        room = self._authorize_room(room_id, actor_id)
        before = room.model_copy()
        self._room_clock(room).mark_judging(room)
        self._save_clock(room, before)
        return room

    def cancel_room(self, room_id: int, actor_id: str) -> Room:
        room = self._authorize_room(room_id, actor_id)
        before = room.model_copy()
        self._room_clock(room).cancel(room)
        if not self.db.cancel_room(room, before.status):
            raise PreconditionError(
                f"{room.room_name} changed while cancelling; reload and retry",
                reason="concurrent_update",
            )
        return room

    # Ballots and results

    def _require_assigned(self, room: Room, judge_id: int) -> None:
        if judge_id not in room.judge_ids:
            raise AuthorizationError(
                f"Judge {judge_id} is not assigned to {room.room_name}",
                reason="judge_not_assigned",
            )

    def _authorize_judge(self, room_id: int, judge_id: int, actor_id: str | None) -> Room:
        """Load the room and check the actor may act as ``judge_id`` in it.

        The judge's own identity qualifies, as does the tournament organizer.
        """
        if actor_id is None:
            raise AuthorizationError("An actor identity is required")
        room = self._require_room(room_id)
        self._require_assigned(room, judge_id)

        tournament = self._require_tournament(room.tournament_id)
        if actor_id == tournament.organizer_id:
            return room
        judge = self.db.get_judge(judge_id)
        if judge is None or judge.user_id is None or judge.user_id != actor_id:
            raise AuthorizationError(f"Caller is not judge {judge_id}")
        return room

    def _open_ballot(self, room: Room, judge_id: int) -> Ballot:
        ballot, created = self.db.get_or_create_ballot(
            Ballot(
                room_id=room.id,
                judge_id=judge_id,
                tournament_id=room.tournament_id,
                is_chair_ballot=judge_id == room.chair_id,
                last_saved_at=self.clock(),
            )
        )
        if created:
            logger.info(f"Created ballot for judge {judge_id} in {room.room_name}")
        return ballot

    def get_or_create_ballot(self, room_id: int, judge_id: int, actor_id: str | None) -> Ballot:
        room = self._authorize_judge(room_id, judge_id, actor_id)
        return self._open_ballot(room, judge_id)

    @staticmethod
    def _merge_payload(ballot: Ballot, payload: BallotPayload) -> Ballot:
        updates = {
            name: getattr(payload, name)
            for name in BallotPayload.model_fields
            if getattr(payload, name) is not None
        }
        return ballot.model_copy(update=updates, deep=True)

    def _validate(self, ballot: Ballot, room: Room, complete: bool) -> None:
        tournament = self._require_tournament(room.tournament_id)
        validate_ballot(
            ballot,
            room,
            self._teams_by_id(room.tournament_id),
            self._format(tournament),
            (tournament.speaker_score_min, tournament.speaker_score_max),
            complete=complete,
        )

    def save_ballot_draft(
        self, room_id: int, judge_id: int, payload: BallotPayload, actor_id: str | None
    ) -> Ballot:
        room = self._authorize_judge(room_id, judge_id, actor_id)
        ballot = self._open_ballot(room, judge_id)
        if ballot.status != BallotStatus.DRAFT:
            raise PreconditionError(
                "Ballot has already been submitted", reason="ballot_submitted"
            )

        ballot = self._merge_payload(ballot, payload)
        ballot.last_saved_at = self.clock()
        self._validate(ballot, room, complete=False)

        if not self.db.save_ballot(ballot):
            raise PreconditionError(
                "Ballot has already been submitted", reason="ballot_submitted"
            )
        return ballot

    def submit_ballot(
        self, room_id: int, judge_id: int, payload: BallotPayload, actor_id: str | None
    ) -> BallotSubmission:
        """Validate and freeze a judge's ballot.

        Once every seated judge has submitted, the room is aggregated.
        Concurrent last submissions may both attempt it; only one applies.
        """
        room = self._authorize_judge(room_id, judge_id, actor_id)
        ballot = self._open_ballot(room, judge_id)
        if ballot.status != BallotStatus.DRAFT:
            raise PreconditionError(
                "Ballot has already been submitted", reason="ballot_submitted"
            )
        if room.has_results:
            raise PreconditionError(
                f"{room.room_name} already has results", reason="results_recorded"
            )
        if room.status == RoomStatus.CANCELLED:
            raise PreconditionError(f"{room.room_name} is cancelled", reason="room_cancelled")

        ballot = self._merge_payload(ballot, payload)
        self._validate(ballot, room, complete=True)

        now = self.clock()
        ballot.status = BallotStatus.SUBMITTED
        ballot.submitted_at = now
        ballot.last_saved_at = now
        if not self.db.save_ballot(ballot, submit=True):
            raise PreconditionError(
                "Ballot has already been submitted", reason="ballot_submitted"
            )
        logger.info(f"Judge {judge_id} submitted ballot for {room.room_name}")

        ballots = self.db.get_ballots(room_id)
        summary = summarize_ballots(room, ballots)
        aggregated = False
        if summary.is_complete:
            tournament = self._require_tournament(room.tournament_id)
            aggregated = self.results.aggregate(
                self._require_room(room_id), ballots, self._format(tournament)
            )

        return BallotSubmission(
            ballot=ballot,
            all_ballots_submitted=summary.is_complete,
            aggregated=aggregated,
            progress=summary.progress,
        )

    def get_ballot_status(self, room_id: int) -> BallotStatusSummary:
        room = self._require_room(room_id)
        return summarize_ballots(room, self.db.get_ballots(room_id))

    def list_room_ballots(self, room_id: int, actor_id: str) -> list[Ballot]:
        self._authorize_room(room_id, actor_id)
        return self.db.get_ballots(room_id)

    def enter_results(
        self,
        room_id: int,
        request: DirectResultRequest,
        actor_id: str | None,
        judge_id: int | None = None,
    ) -> Room:
        """Record a room's result directly, bypassing ballots.

        Allowed for the organizer, or for a judge seated in the room acting
        under their own identity.
        """
        if judge_id is not None:
            room = self._authorize_judge(room_id, judge_id, actor_id)
        else:
            room = self._authorize_room(room_id, actor_id)

        if room.has_results:
            raise PreconditionError(
                f"{room.room_name} already has results", reason="results_recorded"
            )

        tournament = self._require_tournament(room.tournament_id)
        debate_format = self._format(tournament)
        slots = slots_from_entries(
            room,
            request.results,
            self._teams_by_id(room.tournament_id),
            debate_format,
            (tournament.speaker_score_min, tournament.speaker_score_max),
        )
        entered_by = f"judge:{judge_id}" if judge_id is not None else actor_id
        if not self.results.apply_result(
            room, slots, debate_format, entered_by, request.feedback
        ):
            raise PreconditionError(
                f"{room.room_name} already has results", reason="results_recorded"
            )
        return self._require_room(room_id)

    # Standings and elimination rounds

    def _rank_teams(self, tournament: Tournament, teams: list[Team]) -> list[StandingsEntry]:
        history = self.db.get_result_rooms(tournament.id)
        resolver = TieBreakResolver(self._format(tournament))
        return resolver.rank(teams, history, seed=coin_toss_seed(tournament.id, history))

    def get_standings(self, tournament_id: int) -> list[StandingsEntry]:
        tournament = self._require_tournament(tournament_id)
        teams = self.db.get_teams(tournament_id, TeamStatus.CONFIRMED)
        return self._rank_teams(tournament, teams)

    def get_speaker_standings(self, tournament_id: int) -> list[SpeakerStandingsEntry]:
        """Speaker tab over the preliminary rounds."""
        self._require_tournament(tournament_id)
        rooms = [
            room for room in self.db.get_tournament_rooms(tournament_id, RoundType.PRELIMINARY)
            if room.has_results
        ]
        teams = self.db.get_teams(tournament_id, TeamStatus.CONFIRMED)
        return rank_speakers(teams, rooms)

    def _elimination_rounds(self, tournament_id: int) -> list[Round]:
        return [
            r for r in self.db.get_rounds(tournament_id)
            if r.round_type in ELIMINATION_ROUND_TYPES
        ]

    def announce_break(self, tournament_id: int, actor_id: str) -> BreakAnnouncement:
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)
        if self._elimination_rounds(tournament_id):
            raise PreconditionError(
                "Elimination rounds have already been generated", reason="already_generated"
            )

        builder = BracketBuilder(self._format(tournament))
        announcement = builder.calculate_break(
            self.get_standings(tournament_id), tournament.breaking_teams
        )
        self.db.mark_breaking(
            tournament_id,
            [entry.team.id for entry in announcement.breaking_teams],
            BreakCategory.OPEN.value,
        )
        return announcement

    def _seat_elimination(
        self,
        tournament: Tournament,
        round_type: RoundType,
        groups: list[list[int | None]],
        source_round_id: int | None,
    ) -> RoundWithRooms:
        debate_format = self._format(tournament)
        timing = self.config.timing.for_format(debate_format.name)
        rooms = BracketBuilder(debate_format).build_rooms(
            groups,
            round_type,
            tournament.id,
            0,
            prep_duration=timing.prep_duration,
            speech_duration=timing.speech_duration,
        )

        report = JudgeAllocator(self.rng).allocate_judges(
            rooms,
            self.db.get_judges(tournament.id, available_only=True),
            self._panel_size(tournament),
            self._teams_by_id(tournament.id),
        )
        for warning in report.warnings:
            logger.warning(f"{round_type.value} allocation: {warning}")

        round_, stored = self.db.create_elimination_round(
            tournament.id, round_type, rooms, self.clock(), source_round_id=source_round_id
        )
        return RoundWithRooms(round=round_, rooms=stored)

    def generate_quarterfinals(self, tournament_id: int, actor_id: str) -> RoundWithRooms:
        """Seed the opening elimination round from the announced break.

        Small breaks open straight at the semifinal or the grand final.
        """
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)

        breaking = [
            team for team in self.db.get_teams(tournament_id, TeamStatus.CONFIRMED)
            if team.is_breaking(BreakCategory.OPEN)
        ]
        if not breaking:
            raise PreconditionError(
                "The break has not been announced", reason="break_not_announced"
            )

        seeded = [entry.team for entry in self._rank_teams(tournament, breaking)]
        round_type, groups = BracketBuilder(self._format(tournament)).first_elimination(seeded)
        return self._seat_elimination(tournament, round_type, groups, None)

    def _generate_from(
        self,
        tournament_id: int,
        source_round_id: int,
        actor_id: str,
        source_type: RoundType,
    ) -> RoundWithRooms:
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)

        source = self._require_round(source_round_id)
        if source.tournament_id != tournament_id:
            raise NotFoundError(
                f"Round {source_round_id} not found in tournament {tournament_id}"
            )
        if source.round_type != source_type:
            raise PreconditionError(
                f"Round {source.round_number} is a {source.round_type.value} round, "
                f"expected {source_type.value}",
                reason="invalid_round_type",
            )
        if source.status != RoundStatus.COMPLETED:
            raise PreconditionError(
                f"Round {source.round_number} must be completed first",
                reason="round_not_completed",
            )

        round_type, groups = BracketBuilder(self._format(tournament)).next_round(
            source_type, self.db.get_rooms(source_round_id)
        )
        return self._seat_elimination(tournament, round_type, groups, source_round_id)

    def generate_semifinals(
        self, tournament_id: int, quarterfinal_round_id: int, actor_id: str
    ) -> RoundWithRooms:
        return self._generate_from(
            tournament_id, quarterfinal_round_id, actor_id, RoundType.BREAK
        )

    def generate_grand_final(
        self, tournament_id: int, semifinal_round_id: int, actor_id: str
    ) -> RoundWithRooms:
        return self._generate_from(
            tournament_id, semifinal_round_id, actor_id, RoundType.SEMI
        )

    def get_bracket(self, tournament_id: int) -> BracketData:
        tournament = self._require_tournament(tournament_id)
        bracket = BracketData(tournament=tournament)

        for round_ in self._elimination_rounds(tournament_id):
            rooms = self.db.get_rooms(round_.id)
            view = RoundWithRooms(round=round_, rooms=rooms)
            if round_.round_type == RoundType.BREAK:
                bracket.quarterfinals = view
            elif round_.round_type == RoundType.SEMI:
                bracket.semifinals = view
            elif round_.round_type == RoundType.FINAL:
                bracket.grand_final = view
                if round_.status == RoundStatus.COMPLETED:
                    try:
                        bracket.champion_team_id = BracketBuilder.champion(rooms)
                    except PreconditionError:
                        logger.warning(f"Final of tournament {tournament_id} has no winner")
        return bracket

    def complete_tournament(self, tournament_id: int, actor_id: str) -> Tournament:
        """Crown the grand final winner and close the tournament."""
        tournament = self._authorize(tournament_id, actor_id)
        self._require_open(tournament)

        finals = [
            r for r in self._elimination_rounds(tournament_id)
            if r.round_type == RoundType.FINAL
        ]
        if not finals or finals[-1].status != RoundStatus.COMPLETED:
            raise PreconditionError(
                "The grand final must be completed first", reason="final_not_completed"
            )

        champion_id = BracketBuilder.champion(self.db.get_rooms(finals[-1].id))
        now = self.clock()
        self.db.update_tournament_status(
            tournament_id,
            TournamentStatus.COMPLETED,
            champion_team_id=champion_id,
            completed_at=now,
        )
        logger.info(f"Tournament {tournament_id} completed; champion team {champion_id}")
        return self._require_tournament(tournament_id)
