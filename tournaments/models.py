"""Tournament system data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class TournamentFormat(Enum):
    """Supported debate formats."""

    BP = "BP"  # British Parliamentary, 4 teams per room
    AP = "AP"  # Asian Parliamentary, 2 teams per room


class TournamentStatus(Enum):
    """Tournament lifecycle status."""

    DRAFT = "draft"
    REGISTRATION = "registration"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TeamStatus(Enum):
    """Team registration status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    WITHDRAWN = "withdrawn"


class BreakCategory(Enum):
    """Break categories a team can qualify for."""

    OPEN = "open"
    NOVICE = "novice"
    ESL = "esl"


class ExperienceTier(Enum):
    """Judge experience tiers, lowest first."""

    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    EXPERIENCED = "experienced"
    SENIOR = "senior"


class RoundType(Enum):
    """Round types. ``BREAK`` is the first elimination round."""

    PRELIMINARY = "preliminary"
    BREAK = "break"
    SEMI = "semi"
    FINAL = "final"


class RoundStatus(Enum):
    """Round lifecycle status."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RoomStatus(Enum):
    """Room (single debate) lifecycle status."""

    SCHEDULED = "scheduled"
    PREP = "prep"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    JUDGING = "judging"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BallotStatus(Enum):
    """Ballot status."""

    DRAFT = "draft"
    SUBMITTED = "submitted"


ELIMINATION_ROUND_TYPES = (RoundType.BREAK, RoundType.SEMI, RoundType.FINAL)


class Tournament(BaseModel):
    """Complete tournament information."""

    id: int | None = None
    name: str
    format: TournamentFormat
    organizer_id: str
    status: TournamentStatus = TournamentStatus.DRAFT
    number_of_rounds: int = 5
    breaking_teams: int = 8
    speaker_score_min: float = 70.0
    speaker_score_max: float = 80.0
    judges_per_room: int = 3
    champion_team_id: int | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class Team(BaseModel):
    """A registered team and its running totals."""

    id: int | None = None
    tournament_id: int
    name: str
    institution: str = ""
    members: list[str] = Field(default_factory=list)  # ordered speaker ids
    status: TeamStatus = TeamStatus.CONFIRMED
    total_points: int = 0
    total_speaks: float = 0.0
    breaks: dict[str, bool] = Field(default_factory=dict)  # BreakCategory value -> flag

    def is_breaking(self, category: BreakCategory = BreakCategory.OPEN) -> bool:
        return self.breaks.get(category.value, False)


class Judge(BaseModel):
    """An adjudicator in the tournament judge pool."""

    id: int | None = None
    tournament_id: int
    name: str
    user_id: str | None = None  # external identity the judge acts under
    institution: str = ""
    experience: ExperienceTier = ExperienceTier.NOVICE
    conflict_institutions: list[str] = Field(default_factory=list)
    available: bool = True


class Round(BaseModel):
    """A tournament round."""

    id: int | None = None
    tournament_id: int
    round_number: int
    round_type: RoundType = RoundType.PRELIMINARY
    status: RoundStatus = RoundStatus.SCHEDULED
    motion_id: str | None = None  # owned by the motion service
    total_debates: int = 0
    completed_debates: int = 0
    is_draw_released: bool = False
    draw_released_at: datetime | None = None


class SpeakerScore(BaseModel):
    """One speaker's score, either from a single ballot or aggregated."""

    speaker_id: str
    team_id: int
    score: float


class RoomSlot(BaseModel):
    """One seat in a room.

    Placeholder slots fill seats in small elimination rooms; they never
    carry a team or a result.
    """

    team_id: int | None = None
    position: str
    is_placeholder: bool = False
    rank: int | None = None
    points: int | None = None
    total_speaks: float | None = None
    speaker_scores: list[SpeakerScore] = Field(default_factory=list)


class Room(BaseModel):
    """A single debate instance."""

    id: int | None = None
    tournament_id: int
    round_id: int
    room_name: str
    slots: list[RoomSlot]
    judge_ids: list[int] = Field(default_factory=list)
    chair_id: int | None = None
    status: RoomStatus = RoomStatus.SCHEDULED
    # Timing, durations in seconds
    prep_start_time: datetime | None = None
    prep_duration: float = 900.0
    debate_start_time: datetime | None = None
    speech_duration: float = 420.0
    total_speeches: int = 0
    current_speech_number: int = 1
    current_speaker: str | None = None
    speech_deadline: datetime | None = None
    # Results
    has_results: bool = False
    results_entered_by: str | None = None
    results_entered_at: datetime | None = None
    feedback: str = ""

    @property
    def team_ids(self) -> list[int]:
        """Ids of the real (non-placeholder) teams, in seat order."""
        return [
            slot.team_id
            for slot in self.slots
            if not slot.is_placeholder and slot.team_id is not None
        ]

    def slot_for_team(self, team_id: int) -> RoomSlot | None:
        for slot in self.slots:
            if slot.team_id == team_id and not slot.is_placeholder:
                return slot
        return None

    def rank_of(self, team_id: int) -> int | None:
        slot = self.slot_for_team(team_id)
        return slot.rank if slot else None


class TeamRanking(BaseModel):
    """A judge's rank for one team."""

    team_id: int
    rank: int = Field(..., ge=1)


class TeamFeedback(BaseModel):
    """Judge feedback addressed to one team."""

    team_id: int
    strengths: str = ""
    weaknesses: str = ""
    advice: str = ""


class Ballot(BaseModel):
    """One judge's scoring submission for a room."""

    id: int | None = None
    room_id: int
    judge_id: int
    tournament_id: int
    rankings: list[TeamRanking] = Field(default_factory=list)
    speaker_scores: list[SpeakerScore] = Field(default_factory=list)
    team_feedback: list[TeamFeedback] = Field(default_factory=list)
    overall_feedback: str = ""
    status: BallotStatus = BallotStatus.DRAFT
    is_chair_ballot: bool = False
    submitted_at: datetime | None = None
    last_saved_at: datetime | None = None

    def rank_for(self, team_id: int) -> int | None:
        for ranking in self.rankings:
            if ranking.team_id == team_id:
                return ranking.rank
        return None


# Request and result models


class TournamentCreateRequest(BaseModel):
    """Request to create a new tournament."""

    name: str = Field(..., description="Tournament name")
    format: TournamentFormat = Field(..., description="BP or AP")
    number_of_rounds: int = Field(default=5, ge=1, description="Preliminary rounds")
    breaking_teams: int | None = Field(
        default=None, ge=2, description="Teams that advance to elimination rounds"
    )
    speaker_score_min: float | None = Field(default=None, description="Lowest legal speaker score")
    speaker_score_max: float | None = Field(default=None, description="Highest legal speaker score")
    judges_per_room: int | None = Field(default=None, ge=1, description="Ideal panel size")


class TeamRegistration(BaseModel):
    """Request to register a team."""

    name: str
    institution: str = ""
    members: list[str] = Field(..., min_length=1)
    status: TeamStatus = TeamStatus.CONFIRMED

    @field_validator("members")
    @classmethod
    def validate_members(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("Team members must be distinct")
        return v


class JudgeRegistration(BaseModel):
    """Request to register a judge."""

    name: str
    user_id: str | None = Field(None, description="External identity of the judge")
    institution: str = ""
    experience: ExperienceTier = ExperienceTier.NOVICE
    conflict_institutions: list[str] = Field(default_factory=list)
    available: bool = True


class BallotPayload(BaseModel):
    """Ballot contents sent by a judge."""

    rankings: list[TeamRanking] | None = None
    speaker_scores: list[SpeakerScore] | None = None
    team_feedback: list[TeamFeedback] | None = None
    overall_feedback: str | None = None


class TeamResultEntry(BaseModel):
    """Direct result entry for one team."""

    team_id: int
    rank: int = Field(..., ge=1)
    speaker_scores: list[SpeakerScore] = Field(default_factory=list)


class DirectResultRequest(BaseModel):
    """Results entered directly by an organizer or judge, bypassing ballots."""

    results: list[TeamResultEntry]
    feedback: str = ""


class DrawResult(BaseModel):
    """Outcome of a draw generation."""

    round: Round
    rooms: list[Room]
    leftover_team_ids: list[int] = Field(default_factory=list)
    institution_conflicts: int = 0
    warnings: list[str] = Field(default_factory=list)


class BallotStatusSummary(BaseModel):
    """Ballot submission progress for a room."""

    room_id: int
    submitted_count: int
    total_judges: int
    remaining: int
    is_complete: bool
    ballots: list[dict[str, object]] = Field(default_factory=list)

    @property
    def progress(self) -> str:
        return f"{self.submitted_count}/{self.total_judges}"


class BallotSubmission(BaseModel):
    """Outcome of a ballot submission."""

    ballot: Ballot
    all_ballots_submitted: bool
    aggregated: bool
    progress: str


class StandingsEntry(BaseModel):
    """A team's place in the tie-broken standings."""

    rank: int
    team: Team
    first_places: int = 0
    second_places: int = 0
    third_places: int = 0
    fourth_places: int = 0
    wins: int = 0
    losses: int = 0
    tie_break_rule: str | None = None
    tie_info: str | None = None


class SpeakerStandingsEntry(BaseModel):
    """A speaker's place on the speaker tab."""

    rank: int
    speaker_id: str
    team_id: int
    team_name: str
    institution: str = ""
    total_score: float
    average_score: float
    speeches: int


class BreakAnnouncement(BaseModel):
    """Result of calculating the break."""

    breaking_teams: list[StandingsEntry]
    break_size: int
    total_teams: int
    cutoff_points: int
    cutoff_speaks: float


class RoundWithRooms(BaseModel):
    """A round together with its rooms."""

    round: Round
    rooms: list[Room]


class BracketData(BaseModel):
    """Elimination bracket view."""

    tournament: Tournament
    quarterfinals: RoundWithRooms | None = None
    semifinals: RoundWithRooms | None = None
    grand_final: RoundWithRooms | None = None
    champion_team_id: int | None = None


class ClockTransition(BaseModel):
    """One state change applied by the room clock."""

    from_status: RoomStatus
    to_status: RoomStatus
    speech_number: int | None = None
    speaker: str | None = None
    at: datetime
