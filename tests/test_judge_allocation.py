"""Tests for judge allocation."""

import random

from conftest import make_judge, make_room, make_team
from judges.allocation import JudgeAllocator, conflict_institutions, has_conflict
from tournaments.models import ExperienceTier

BP_POSITIONS = ["OG", "OO", "CG", "CO"]


def _two_rooms():
    teams = {i: make_team(i) for i in range(1, 9)}
    rooms = [
        make_room([1, 2, 3, 4], BP_POSITIONS, room_id=1),
        make_room([5, 6, 7, 8], BP_POSITIONS, room_id=2),
    ]
    return rooms, teams


def test_conflicted_judge_not_seated() -> None:
    """A judge never sits in a room with a team from a conflicted institution."""
    rooms, teams = _two_rooms()
    judges = [
        make_judge(1, conflicts=["Uni 1"]),
        make_judge(2),
    ]

    JudgeAllocator(random.Random(0)).allocate_judges(rooms, judges, 1, teams)

    assert 1 not in rooms[0].judge_ids
    assert rooms[0].judge_ids == [2]
    assert rooms[1].judge_ids and rooms[1].judge_ids[0] in (1, 2)


def test_own_institution_is_a_conflict() -> None:
    judge = make_judge(1, institution="Uni 3")

    assert conflict_institutions(judge) == {"uni 3"}
    assert has_conflict(judge, [make_team(3)])
    assert not has_conflict(judge, [make_team(4)])


def test_senior_judge_chairs() -> None:
    """The first judge taken for a room chairs it, seniors first."""
    rooms, teams = _two_rooms()
    judges = [
        make_judge(1, experience=ExperienceTier.NOVICE),
        make_judge(2, experience=ExperienceTier.SENIOR),
        make_judge(3, experience=ExperienceTier.INTERMEDIATE),
    ]

    report = JudgeAllocator(random.Random(0)).allocate_judges(rooms, judges, 3, teams)

    assert rooms[0].chair_id == 2
    assert rooms[0].judge_ids == [2, 3, 1]
    assert report.assigned["Room 1"] == [2, 3, 1]
    assert report.warnings == []


def test_no_duplicate_judge_in_room() -> None:
    rooms, teams = _two_rooms()
    judges = [make_judge(1), make_judge(2)]

    JudgeAllocator(random.Random(0)).allocate_judges(rooms, judges, 3, teams)

    for room in rooms:
        assert len(room.judge_ids) == len(set(room.judge_ids))
        assert len(room.judge_ids) <= 2


def test_empty_pool_warns() -> None:
    """No judges leaves rooms unjudged with a warning instead of failing."""
    rooms, teams = _two_rooms()

    report = JudgeAllocator(random.Random(0)).allocate_judges(rooms, [], 3, teams)

    assert report.warnings == ["no_judges_available"]
    assert all(room.judge_ids == [] and room.chair_id is None for room in rooms)


def test_unavailable_judges_skipped() -> None:
    rooms, teams = _two_rooms()
    judges = [make_judge(1, available=False)]

    report = JudgeAllocator(random.Random(0)).allocate_judges(rooms, judges, 1, teams)

    assert report.warnings == ["no_judges_available"]


def test_fully_conflicted_room_warns() -> None:
    """A room every judge is conflicted with gets none and is reported."""
    rooms, teams = _two_rooms()
    judges = [make_judge(1, conflicts=["Uni 2"]), make_judge(2, institution="Uni 4")]

    report = JudgeAllocator(random.Random(0)).allocate_judges(rooms, judges, 2, teams)

    assert rooms[0].judge_ids == []
    assert rooms[0].chair_id is None
    assert "no_eligible_judge:Room 1" in report.warnings
    assert sorted(rooms[1].judge_ids) == [1, 2]
