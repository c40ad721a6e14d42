"""Tests for ballot validation and aggregation."""

import pytest

from conftest import make_room, make_team
from tournaments.exceptions import BallotValidationError, PreconditionError
from tournaments.models import (
    Ballot,
    BallotStatus,
    SpeakerScore,
    TeamRanking,
    TeamResultEntry,
)
from tournaments.results import (
    aggregate_ballots,
    check_rank_permutation,
    slots_from_entries,
    summarize_ballots,
    validate_ballot,
)

BP_POSITIONS = ["OG", "OO", "CG", "CO"]
SCORE_RANGE = (70.0, 80.0)


@pytest.fixture
def teams_by_id():
    return {i: make_team(i) for i in range(1, 5)}


@pytest.fixture
def room():
    room = make_room([1, 2, 3, 4], BP_POSITIONS)
    room.judge_ids = [10, 11, 12]
    room.chair_id = 10
    return room


def make_ballot(judge_id: int, ranks: dict[int, int], score: float = 75.0,
                scores: dict[str, float] | None = None, chair: bool = False) -> Ballot:
    scores = scores or {}
    speaker_scores = [
        SpeakerScore(
            speaker_id=f"t{team_id}s{n}",
            team_id=team_id,
            score=scores.get(f"t{team_id}s{n}", score),
        )
        for team_id in ranks
        for n in (1, 2)
    ]
    return Ballot(
        room_id=1,
        judge_id=judge_id,
        tournament_id=1,
        rankings=[TeamRanking(team_id=t, rank=r) for t, r in ranks.items()],
        speaker_scores=speaker_scores,
        status=BallotStatus.SUBMITTED,
        is_chair_ballot=chair,
    )


# Validation


def test_valid_ballot_passes(room, teams_by_id, bp_format) -> None:
    ballot = make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4})

    validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)


def test_duplicate_ranks_rejected(room, teams_by_id, bp_format) -> None:
    ballot = make_ballot(10, {1: 1, 2: 1, 3: 3, 4: 4})

    with pytest.raises(BallotValidationError) as exc_info:
        validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)

    assert exc_info.value.field == "rankings"
    assert exc_info.value.reason == "duplicate_ranks"


def test_rank_out_of_range_rejected(room, teams_by_id, bp_format) -> None:
    ballot = make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 5})

    with pytest.raises(BallotValidationError) as exc_info:
        validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)

    assert exc_info.value.reason == "rank_out_of_range"


def test_score_out_of_range_rejected(room, teams_by_id, bp_format) -> None:
    """Scores outside the tournament range name the score field."""
    ballot = make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4}, scores={"t3s2": 85.0})

    with pytest.raises(BallotValidationError) as exc_info:
        validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)

    assert exc_info.value.field == "score"
    assert exc_info.value.reason == "score_out_of_range"
    assert exc_info.value.to_dict()["field"] == "score"


def test_missing_rankings_rejected_on_submit(room, teams_by_id, bp_format) -> None:
    ballot = make_ballot(10, {1: 1, 2: 2, 3: 3})

    with pytest.raises(BallotValidationError) as exc_info:
        validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)

    assert exc_info.value.field == "rankings"


def test_missing_speaker_scores_rejected_on_submit(room, teams_by_id, bp_format) -> None:
    ballot = make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4})
    ballot.speaker_scores = ballot.speaker_scores[:-1]

    with pytest.raises(BallotValidationError) as exc_info:
        validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)

    assert exc_info.value.field == "speaker_scores"


def test_unknown_speaker_rejected(room, teams_by_id, bp_format) -> None:
    ballot = make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4})
    ballot.speaker_scores[0] = SpeakerScore(speaker_id="ringer", team_id=1, score=75.0)

    with pytest.raises(BallotValidationError) as exc_info:
        validate_ballot(ballot, room, teams_by_id, bp_format, SCORE_RANGE)

    assert exc_info.value.field == "speaker_scores"


def test_draft_allows_partial_ballot(room, teams_by_id, bp_format) -> None:
    """Drafts may be incomplete but not inconsistent."""
    draft = make_ballot(10, {1: 2})
    validate_ballot(draft, room, teams_by_id, bp_format, SCORE_RANGE, complete=False)

    bad_draft = make_ballot(10, {1: 2, 2: 2})
    with pytest.raises(BallotValidationError):
        validate_ballot(bad_draft, room, teams_by_id, bp_format, SCORE_RANGE, complete=False)


def test_rank_permutation_ignores_placeholders(bp_format) -> None:
    final = make_room([5, 6, None, None], BP_POSITIONS, ranks=[2, 1, 0, 0])
    check_rank_permutation(final.slots)

    broken = make_room([1, 2, 3, 4], BP_POSITIONS, ranks=[1, 2, 2, 4])
    with pytest.raises(BallotValidationError) as exc_info:
        check_rank_permutation(broken.slots)
    assert exc_info.value.reason == "invalid_rank_permutation"


# Aggregation


def test_unanimous_panel(room, bp_format) -> None:
    ballots = [make_ballot(j, {1: 2, 2: 1, 3: 4, 4: 3}) for j in (10, 11, 12)]

    slots = aggregate_ballots(room, ballots, bp_format)

    assert [(s.team_id, s.rank, s.points) for s in slots] == [
        (1, 2, 2), (2, 1, 3), (3, 4, 0), (4, 3, 1)
    ]
    assert slots[0].total_speaks == 150.0


def test_mean_rank_orders_teams(room, bp_format) -> None:
    """A split panel is resolved by mean rank."""
    ballots = [
        make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4}),
        make_ballot(11, {1: 2, 2: 1, 3: 3, 4: 4}),
        make_ballot(12, {1: 1, 2: 3, 3: 2, 4: 4}),
    ]

    slots = aggregate_ballots(room, ballots, bp_format)

    # means: 1 -> 1.33, 2 -> 2.0, 3 -> 2.67, 4 -> 4.0
    assert [s.rank for s in slots] == [1, 2, 3, 4]


def test_equal_mean_ranks_use_chair_ballot(room, bp_format) -> None:
    """Equal means are settled by the chair's ranking, every time."""
    chair = make_ballot(10, {1: 1, 2: 3, 3: 2, 4: 4}, chair=True)
    wing = make_ballot(11, {1: 1, 2: 2, 3: 3, 4: 4})

    first = aggregate_ballots(room, [wing, chair], bp_format)
    second = aggregate_ballots(room, [chair, wing], bp_format)

    # teams 2 and 3 both average 2.5; the chair put team 3 ahead
    assert [s.rank for s in first] == [1, 3, 2, 4]
    assert [s.rank for s in second] == [1, 3, 2, 4]


def test_equal_mean_ranks_without_chair_use_seat_order(room, bp_format) -> None:
    room.chair_id = None
    ballots = [
        make_ballot(10, {1: 1, 2: 3, 3: 2, 4: 4}),
        make_ballot(11, {1: 1, 2: 2, 3: 3, 4: 4}),
    ]

    slots = aggregate_ballots(room, ballots, bp_format)

    assert [s.rank for s in slots] == [1, 2, 3, 4]


def test_speaker_scores_averaged(room, bp_format) -> None:
    ballots = [
        make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4}, scores={"t1s1": 75.0}),
        make_ballot(11, {1: 1, 2: 2, 3: 3, 4: 4}, scores={"t1s1": 76.0}),
        make_ballot(12, {1: 1, 2: 2, 3: 3, 4: 4}, scores={"t1s1": 76.0}),
    ]

    slots = aggregate_ballots(room, ballots, bp_format)

    scores = {s.speaker_id: s.score for s in slots[0].speaker_scores}
    assert scores["t1s1"] == pytest.approx(75.7)
    assert scores["t1s2"] == pytest.approx(75.0)
    assert slots[0].total_speaks == pytest.approx(150.7)


def test_no_ballots(room, bp_format) -> None:
    with pytest.raises(PreconditionError) as exc_info:
        aggregate_ballots(room, [], bp_format)
    assert exc_info.value.reason == "no_ballots"


def test_direct_entry_slots(room, teams_by_id, bp_format) -> None:
    entries = [
        TeamResultEntry(team_id=4, rank=1),
        TeamResultEntry(team_id=3, rank=2),
        TeamResultEntry(team_id=2, rank=3),
        TeamResultEntry(
            team_id=1,
            rank=4,
            speaker_scores=[SpeakerScore(speaker_id="t1s1", team_id=1, score=71.5)],
        ),
    ]

    slots = slots_from_entries(room, entries, teams_by_id, bp_format, SCORE_RANGE)

    assert [(s.team_id, s.rank, s.points) for s in slots] == [
        (1, 4, 0), (2, 3, 1), (3, 2, 2), (4, 1, 3)
    ]
    assert slots[0].total_speaks == 71.5


def test_ballot_summary_counts_assigned_submissions(room) -> None:
    submitted = make_ballot(10, {1: 1, 2: 2, 3: 3, 4: 4})
    draft = make_ballot(11, {1: 1})
    draft.status = BallotStatus.DRAFT
    stranger = make_ballot(99, {1: 1, 2: 2, 3: 3, 4: 4})

    summary = summarize_ballots(room, [submitted, draft, stranger])

    assert summary.submitted_count == 1
    assert summary.remaining == 2
    assert summary.progress == "1/3"
    assert not summary.is_complete
