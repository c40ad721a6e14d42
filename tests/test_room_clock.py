"""Tests for the room state machine and speaking clock."""

from datetime import timedelta

import pytest

from conftest import FakeClock, make_room
from rooms.clock import RoomClock
from tournaments.exceptions import PreconditionError
from tournaments.models import RoomStatus

BP_POSITIONS = ["OG", "OO", "CG", "CO"]
MEMBERS = {1: ["og1", "og2"], 2: ["oo1", "oo2"], 3: ["cg1", "cg2"], 4: ["co1", "co2"]}


@pytest.fixture
def room_clock(bp_format, clock: FakeClock) -> RoomClock:
    return RoomClock(bp_format, clock)


@pytest.fixture
def room():
    return make_room([1, 2, 3, 4], BP_POSITIONS)


def _run_to_first_speech(room_clock: RoomClock, room, clock: FakeClock) -> None:
    room_clock.start_prep(room)
    clock.advance(room.prep_duration)
    room_clock.start_debate(room, MEMBERS)


def test_prep_then_debate(room_clock, room, clock) -> None:
    transition = room_clock.start_prep(room)

    assert transition.to_status == RoomStatus.PREP
    assert room.status == RoomStatus.PREP
    assert room.prep_start_time == clock.now
    assert room.total_speeches == 8

    room_clock.start_debate(room, MEMBERS)

    assert room.status == RoomStatus.IN_PROGRESS
    assert room.current_speech_number == 1
    assert room.current_speaker == "og1"
    assert room.speech_deadline == clock.now + timedelta(seconds=420)


def test_speakers_follow_bp_order(room_clock, room, clock) -> None:
    _run_to_first_speech(room_clock, room, clock)
    speakers = [room.current_speaker]

    for _ in range(7):
        room_clock.advance_turn(room, MEMBERS)
        speakers.append(room.current_speaker)

    assert speakers == ["og1", "oo1", "og2", "oo2", "cg1", "co1", "cg2", "co2"]


def test_last_speech_moves_to_submitted(room_clock, room, clock) -> None:
    """Advancing past the final speech closes the floor."""
    _run_to_first_speech(room_clock, room, clock)
    room.current_speech_number = 8

    transition = room_clock.advance_turn(room, MEMBERS)

    assert transition.to_status == RoomStatus.SUBMITTED
    assert room.status == RoomStatus.SUBMITTED
    assert room.current_speaker is None
    assert room.speech_deadline is None


def test_duplicate_advance_is_noop(room_clock, room, clock) -> None:
    """Two pokes for the same speech advance once."""
    _run_to_first_speech(room_clock, room, clock)

    first = room_clock.advance_turn(room, MEMBERS, expected_speech_number=1)
    second = room_clock.advance_turn(room, MEMBERS, expected_speech_number=1)

    assert first is not None
    assert second is None
    assert room.current_speech_number == 2


def test_expected_advance_after_close_is_noop(room_clock, room) -> None:
    assert room_clock.advance_turn(room, MEMBERS, expected_speech_number=3) is None
    with pytest.raises(PreconditionError) as exc_info:
        room_clock.advance_turn(room, MEMBERS)
    assert exc_info.value.reason == "illegal_transition"


def test_tick_before_deadline_does_nothing(room_clock, room, clock) -> None:
    _run_to_first_speech(room_clock, room, clock)
    clock.advance(419)

    updated, transitions = room_clock.tick(room, MEMBERS)

    assert transitions == []
    assert updated.current_speech_number == 1


def test_tick_after_deadline_advances_once(room_clock, room, clock) -> None:
    """A late tick advances one speech and leaves the input room untouched."""
    _run_to_first_speech(room_clock, room, clock)
    clock.advance(3 * 420)

    updated, transitions = room_clock.tick(room, MEMBERS)

    assert len(transitions) == 1
    assert updated.current_speech_number == 2
    assert updated.current_speaker == "oo1"
    assert room.current_speech_number == 1

    _, none_due = room_clock.tick(updated, MEMBERS)
    assert none_due == []

    clock.advance(420)
    again, more = room_clock.tick(updated, MEMBERS)
    assert len(more) == 1
    assert again.current_speech_number == 3


def test_tick_ends_prep(room_clock, room, clock) -> None:
    room_clock.start_prep(room)
    clock.advance(899)
    _, transitions = room_clock.tick(room, MEMBERS)
    assert transitions == []

    clock.advance(1)
    updated, transitions = room_clock.tick(room, MEMBERS)

    assert [t.to_status for t in transitions] == [RoomStatus.IN_PROGRESS]
    assert updated.current_speaker == "og1"


def test_placeholder_seat_has_no_speaker(room_clock, clock) -> None:
    final = make_room([1, 2, None, None], BP_POSITIONS)
    _run_to_first_speech(room_clock, final, clock)

    for _ in range(4):
        room_clock.advance_turn(final, MEMBERS)

    assert final.current_speech_number == 5
    assert final.current_speaker is None


def test_short_team_has_no_speaker(room_clock, room, clock) -> None:
    members = dict(MEMBERS)
    members[2] = ["oo1"]
    _run_to_first_speech(room_clock, room, clock)

    room_clock.advance_turn(room, members)
    room_clock.advance_turn(room, members)
    room_clock.advance_turn(room, members)

    assert room.current_speech_number == 4
    assert room.current_speaker is None


def test_illegal_transitions(room_clock, room) -> None:
    with pytest.raises(PreconditionError):
        room_clock.start_debate(room, MEMBERS)
    with pytest.raises(PreconditionError):
        room_clock.mark_judging(room)

    room_clock.start_prep(room)
    with pytest.raises(PreconditionError):
        room_clock.start_prep(room)


def test_judging_complete_and_cancel(room_clock, room, clock) -> None:
    _run_to_first_speech(room_clock, room, clock)
    room.current_speech_number = 8
    room_clock.advance_turn(room, MEMBERS)

    room_clock.mark_judging(room)
    assert room.status == RoomStatus.JUDGING

    room_clock.complete(room)
    assert room.status == RoomStatus.COMPLETED

    with pytest.raises(PreconditionError):
        room_clock.cancel(room)


def test_complete_from_scheduled(room_clock, room) -> None:
    """Results can close a room that never ran on the clock."""
    transition = room_clock.complete(room)

    assert transition.from_status == RoomStatus.SCHEDULED
    assert room.status == RoomStatus.COMPLETED


def test_ap_speaking_order(ap_format, clock) -> None:
    room_clock = RoomClock(ap_format, clock)
    room = make_room([1, 2], ["Proposition", "Opposition"])
    members = {1: ["p1", "p2", "p3"], 2: ["o1", "o2", "o3"]}
    room_clock.start_prep(room)
    room_clock.start_debate(room, members)
    speakers = [room.current_speaker]

    for _ in range(5):
        room_clock.advance_turn(room, members)
        speakers.append(room.current_speaker)
    room_clock.advance_turn(room, members)

    assert speakers == ["p1", "o1", "p2", "o2", "p3", "o3"]
    assert room.status == RoomStatus.SUBMITTED
