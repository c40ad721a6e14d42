"""Ballot validation, aggregation and the single result write path.

Both multi-judge ballot aggregation and direct result entry end in
``ResultsService.apply_result``, which is the only code that touches team
totals. The write is guarded by the room's ``has_results`` flag, so a
trigger that fires twice changes nothing the second time.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from formats import DebateFormat
from rooms.clock import RoomClock
from .exceptions import BallotValidationError, PreconditionError
from .models import (
    Ballot,
    BallotStatus,
    BallotStatusSummary,
    Room,
    RoomSlot,
    RoomStatus,
    SpeakerScore,
    Team,
    TeamRanking,
    TeamResultEntry,
)

if TYPE_CHECKING:
    from .database import TournamentDatabaseManager

logger = logging.getLogger(__name__)


def seated_speaker_count(team: Team, debate_format: DebateFormat) -> int:
    """Speakers a team fields in one room."""
    return min(len(team.members), debate_format.speakers_per_team)


def _validate_rankings(
    rankings: list[TeamRanking], room: Room, complete: bool
) -> None:
    team_ids = room.team_ids
    expected = len(team_ids)

    if complete and len(rankings) != expected:
        raise BallotValidationError(
            f"Expected {expected} rankings, got {len(rankings)}", field="rankings"
        )

    seen_teams: set[int] = set()
    seen_ranks: set[int] = set()
    for ranking in rankings:
        if ranking.team_id not in team_ids:
            raise BallotValidationError(
                f"Team {ranking.team_id} is not debating in {room.room_name}",
                field="rankings",
            )
        if ranking.team_id in seen_teams:
            raise BallotValidationError(
                f"Team {ranking.team_id} is ranked more than once", field="rankings"
            )
        if ranking.rank in seen_ranks:
            raise BallotValidationError(
                f"Rank {ranking.rank} is assigned more than once",
                field="rankings",
                reason="duplicate_ranks",
            )
        if ranking.rank > expected:
            raise BallotValidationError(
                f"Rank {ranking.rank} is outside 1..{expected}",
                field="rankings",
                reason="rank_out_of_range",
            )
        seen_teams.add(ranking.team_id)
        seen_ranks.add(ranking.rank)


def _validate_speaker_scores(
    scores: list[SpeakerScore],
    room: Room,
    teams_by_id: dict[int, Team],
    score_range: tuple[float, float],
) -> None:
    low, high = score_range
    seen: set[str] = set()
    for score in scores:
        if score.team_id not in room.team_ids:
            raise BallotValidationError(
                f"Team {score.team_id} is not debating in {room.room_name}",
                field="speaker_scores",
            )
        team = teams_by_id.get(score.team_id)
        if team is None or score.speaker_id not in team.members:
            raise BallotValidationError(
                f"Speaker {score.speaker_id} is not a member of team {score.team_id}",
                field="speaker_scores",
            )
        if score.speaker_id in seen:
            raise BallotValidationError(
                f"Speaker {score.speaker_id} is scored more than once",
                field="speaker_scores",
            )
        if not low <= score.score <= high:
            raise BallotValidationError(
                f"Score {score.score} for {score.speaker_id} must be between {low} and {high}",
                field="score",
                reason="score_out_of_range",
            )
        seen.add(score.speaker_id)


def validate_ballot(
    ballot: Ballot,
    room: Room,
    teams_by_id: dict[int, Team],
    debate_format: DebateFormat,
    score_range: tuple[float, float],
    complete: bool = True,
) -> None:
    """Check a ballot against the room it scores.

    With ``complete=False`` (drafts) only what is present is checked:
    missing rankings and speakers are allowed, duplicates and
    out-of-range values are not.
    """
    _validate_rankings(ballot.rankings, room, complete)
    _validate_speaker_scores(ballot.speaker_scores, room, teams_by_id, score_range)

    if not complete:
        return

    expected_speakers = sum(
        seated_speaker_count(teams_by_id[tid], debate_format)
        for tid in room.team_ids
        if tid in teams_by_id
    )
    if len(ballot.speaker_scores) != expected_speakers:
        raise BallotValidationError(
            f"Expected {expected_speakers} speaker scores, got {len(ballot.speaker_scores)}",
            field="speaker_scores",
        )


def check_rank_permutation(slots: list[RoomSlot]) -> None:
    """Ranks of real teams must be exactly 1..N."""
    ranks = sorted(s.rank for s in slots if not s.is_placeholder and s.rank is not None)
    real = [s for s in slots if not s.is_placeholder and s.team_id is not None]
    if ranks != list(range(1, len(real) + 1)):
        raise BallotValidationError(
            f"Ranks {ranks} are not a permutation of 1..{len(real)}",
            field="rankings",
            reason="invalid_rank_permutation",
        )


def _chair_ballot(room: Room, ballots: list[Ballot]) -> Ballot | None:
    for ballot in ballots:
        if ballot.is_chair_ballot:
            return ballot
    for ballot in ballots:
        if ballot.judge_id == room.chair_id:
            return ballot
    return None


def _score_slots(
    room: Room,
    order: list[int],
    speaker_scores: dict[int, list[SpeakerScore]],
    debate_format: DebateFormat,
) -> list[RoomSlot]:
    rank_of = {team_id: index for index, team_id in enumerate(order, start=1)}
    slots = []
    for slot in room.slots:
        updated = slot.model_copy(deep=True)
        if not slot.is_placeholder and slot.team_id is not None:
            scores = speaker_scores.get(slot.team_id, [])
            updated.rank = rank_of[slot.team_id]
            updated.points = debate_format.points_for_rank(updated.rank)
            updated.speaker_scores = scores
            updated.total_speaks = round(sum(s.score for s in scores), 1)
        slots.append(updated)
    return slots


def aggregate_ballots(
    room: Room, ballots: list[Ballot], debate_format: DebateFormat
) -> list[RoomSlot]:
    """Combine submitted ballots into the room's final slots.

    Teams are ordered by mean rank across ballots. Equal means are
    separated by the chair's ranking, then by seat order. Each speaker's
    score is the mean of their scores, rounded to one decimal.
    """
    if not ballots:
        raise PreconditionError(
            f"No ballots to aggregate for {room.room_name}", reason="no_ballots"
        )

    team_ids = room.team_ids
    chair = _chair_ballot(room, ballots)

    mean_ranks: dict[int, float] = {}
    for team_id in team_ids:
        ranks = [b.rank_for(team_id) for b in ballots]
        ranks = [r for r in ranks if r is not None]
        mean_ranks[team_id] = sum(ranks) / len(ranks) if ranks else float("inf")

    def order_key(team_id: int) -> tuple[float, float, int]:
        chair_rank = chair.rank_for(team_id) if chair else None
        return (
            mean_ranks[team_id],
            chair_rank if chair_rank is not None else float("inf"),
            team_ids.index(team_id),
        )

    order = sorted(team_ids, key=order_key)

    collected: dict[tuple[int, str], list[float]] = {}
    for ballot in ballots:
        for score in ballot.speaker_scores:
            collected.setdefault((score.team_id, score.speaker_id), []).append(score.score)

    speaker_scores: dict[int, list[SpeakerScore]] = {}
    for (team_id, speaker_id), values in collected.items():
        speaker_scores.setdefault(team_id, []).append(
            SpeakerScore(
                speaker_id=speaker_id,
                team_id=team_id,
                score=round(sum(values) / len(values), 1),
            )
        )

    logger.debug(f"{room.room_name}: mean ranks {mean_ranks}, final order {order}")
    return _score_slots(room, order, speaker_scores, debate_format)


def slots_from_entries(
    room: Room,
    entries: list[TeamResultEntry],
    teams_by_id: dict[int, Team],
    debate_format: DebateFormat,
    score_range: tuple[float, float],
) -> list[RoomSlot]:
    """Build final slots from directly entered ranks and scores."""
    rankings = [TeamRanking(team_id=e.team_id, rank=e.rank) for e in entries]
    _validate_rankings(rankings, room, complete=True)
    scores = [s for e in entries for s in e.speaker_scores]
    _validate_speaker_scores(scores, room, teams_by_id, score_range)

    order = [e.team_id for e in sorted(entries, key=lambda e: e.rank)]
    speaker_scores: dict[int, list[SpeakerScore]] = {}
    for score in scores:
        speaker_scores.setdefault(score.team_id, []).append(score)
    return _score_slots(room, order, speaker_scores, debate_format)


def summarize_ballots(room: Room, ballots: list[Ballot]) -> BallotStatusSummary:
    """Submission progress against the judges seated in the room."""
    assigned = set(room.judge_ids)
    submitted = [
        b for b in ballots if b.status == BallotStatus.SUBMITTED and b.judge_id in assigned
    ]
    total = len(room.judge_ids)
    return BallotStatusSummary(
        room_id=room.id,
        submitted_count=len(submitted),
        total_judges=total,
        remaining=max(0, total - len(submitted)),
        is_complete=total > 0 and len(submitted) >= total,
        ballots=[
            {
                "judge_id": b.judge_id,
                "status": b.status.value,
                "is_chair_ballot": b.is_chair_ballot,
                "submitted_at": b.submitted_at.isoformat() if b.submitted_at else None,
            }
            for b in ballots
        ],
    )


class ResultsService:
    """The one place that finalizes a room and updates team totals."""

    def __init__(
        self,
        db: "TournamentDatabaseManager",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.clock = clock

    def apply_result(
        self,
        room: Room,
        slots: list[RoomSlot],
        debate_format: DebateFormat,
        entered_by: str,
        feedback: str = "",
    ) -> bool:
        """Write a final result for ``room``.

        Returns False, without touching anything, if the room already
        has results.
        """
        if room.status == RoomStatus.CANCELLED:
            raise PreconditionError(
                f"{room.room_name} is cancelled", reason="room_cancelled"
            )
        if room.has_results:
            logger.warning(f"{room.room_name} already has results; ignoring")
            return False

        check_rank_permutation(slots)
        now = self.clock()

        updated = room.model_copy(deep=True)
        updated.slots = slots
        updated.has_results = True
        updated.results_entered_by = entered_by
        updated.results_entered_at = now
        updated.feedback = feedback
        RoomClock(debate_format, self.clock).complete(updated, now)

        increments = {
            slot.team_id: (slot.points or 0, slot.total_speaks or 0.0)
            for slot in slots
            if not slot.is_placeholder and slot.team_id is not None
        }

        applied = self.db.apply_room_result(updated, increments)
        if applied:
            points = {tid: pts for tid, (pts, _) in increments.items()}
            logger.info(
                f"Results applied for {room.room_name} (room {room.id}) "
                f"by {entered_by}: points {points}"
            )
        else:
            logger.warning(
                f"{room.room_name} (room {room.id}) was finalized concurrently; "
                "totals left unchanged"
            )
        return applied

    def aggregate(
        self, room: Room, ballots: list[Ballot], debate_format: DebateFormat
    ) -> bool:
        """Aggregate submitted ballots once every seated judge has filed."""
        submitted = [
            b for b in ballots
            if b.status == BallotStatus.SUBMITTED and b.judge_id in room.judge_ids
        ]
        if not room.judge_ids or len(submitted) < len(room.judge_ids):
            return False
        slots = aggregate_ballots(room, submitted, debate_format)
        return self.apply_result(room, slots, debate_format, entered_by="ballots")
