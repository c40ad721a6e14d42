"""Room state machine.

    scheduled -> prep -> in-progress -> submitted | judging -> completed

Deadlines are not events. Callers poll ``tick`` at whatever cadence they
like; each transition checks the room's current state first, so repeated
or late calls never double-advance.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from formats import DebateFormat
from tournaments.exceptions import PreconditionError
from tournaments.models import ClockTransition, Room, RoomStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (RoomStatus.COMPLETED, RoomStatus.CANCELLED)


def _illegal(room: Room, action: str) -> PreconditionError:
    return PreconditionError(
        f"Cannot {action} {room.room_name} while it is {room.status.value}",
        reason="illegal_transition",
    )


class RoomClock:
    """Drives a room through its lifecycle and speaking order."""

    def __init__(
        self,
        debate_format: DebateFormat,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.format = debate_format
        self.clock = clock

    def speaker_for(
        self, room: Room, speech_number: int, members_by_team: dict[int, list[str]]
    ) -> str | None:
        """Resolve the member due to give ``speech_number``.

        Returns None for placeholder seats or teams short of members.
        """
        speech = self.format.speech_at(speech_number)
        if speech is None:
            return None
        for slot in room.slots:
            if slot.position != speech.position:
                continue
            if slot.is_placeholder or slot.team_id is None:
                return None
            members = members_by_team.get(slot.team_id, [])
            if speech.seat_index < len(members):
                return members[speech.seat_index]
            return None
        return None

    def start_prep(self, room: Room, now: datetime | None = None) -> ClockTransition:
        if room.status != RoomStatus.SCHEDULED:
            raise _illegal(room, "start prep for")
        now = now or self.clock()

        room.status = RoomStatus.PREP
        room.prep_start_time = now
        room.total_speeches = self.format.total_speeches

        logger.info(f"{room.room_name}: prep started")
        return ClockTransition(
            from_status=RoomStatus.SCHEDULED, to_status=RoomStatus.PREP, at=now
        )

    def start_debate(
        self,
        room: Room,
        members_by_team: dict[int, list[str]],
        now: datetime | None = None,
    ) -> ClockTransition:
        if room.status != RoomStatus.PREP or room.prep_start_time is None:
            raise _illegal(room, "start the debate in")
        now = now or self.clock()

        room.status = RoomStatus.IN_PROGRESS
        room.debate_start_time = now
        room.current_speech_number = 1
        room.current_speaker = self.speaker_for(room, 1, members_by_team)
        room.speech_deadline = now + timedelta(seconds=room.speech_duration)

        logger.info(f"{room.room_name}: debate started, first speaker {room.current_speaker}")
        return ClockTransition(
            from_status=RoomStatus.PREP,
            to_status=RoomStatus.IN_PROGRESS,
            speech_number=1,
            speaker=room.current_speaker,
            at=now,
        )

    def advance_turn(
        self,
        room: Room,
        members_by_team: dict[int, list[str]],
        now: datetime | None = None,
        expected_speech_number: int | None = None,
    ) -> ClockTransition | None:
        """Move to the next speech.

        With ``expected_speech_number`` the advance only happens if the
        room is still on that speech, so duplicate pokes are no-ops.
        """
        if room.status != RoomStatus.IN_PROGRESS:
            if expected_speech_number is not None:
                return None
            raise _illegal(room, "advance the speech in")
        if (
            expected_speech_number is not None
            and room.current_speech_number != expected_speech_number
        ):
            logger.debug(
                f"{room.room_name}: already past speech {expected_speech_number}"
            )
            return None

        now = now or self.clock()
        total = room.total_speeches or self.format.total_speeches
        room.current_speech_number += 1

        if room.current_speech_number > total:
            room.status = RoomStatus.SUBMITTED
            room.current_speaker = None
            room.speech_deadline = None
            logger.info(f"{room.room_name}: all {total} speeches delivered")
            return ClockTransition(
                from_status=RoomStatus.IN_PROGRESS,
                to_status=RoomStatus.SUBMITTED,
                speech_number=room.current_speech_number,
                at=now,
            )

        room.current_speaker = self.speaker_for(
            room, room.current_speech_number, members_by_team
        )
        room.speech_deadline = now + timedelta(seconds=room.speech_duration)
        return ClockTransition(
            from_status=RoomStatus.IN_PROGRESS,
            to_status=RoomStatus.IN_PROGRESS,
            speech_number=room.current_speech_number,
            speaker=room.current_speaker,
            at=now,
        )

    def mark_judging(self, room: Room, now: datetime | None = None) -> ClockTransition:
        if room.status not in (RoomStatus.SUBMITTED, RoomStatus.IN_PROGRESS):
            raise _illegal(room, "move to judging")
        now = now or self.clock()
        previous = room.status

        room.status = RoomStatus.JUDGING
        room.current_speaker = None
        room.speech_deadline = None

        logger.info(f"{room.room_name}: judging")
        return ClockTransition(from_status=previous, to_status=RoomStatus.JUDGING, at=now)

    def complete(self, room: Room, now: datetime | None = None) -> ClockTransition:
        """Close the room once its result is final.

        Results may arrive for a room that never ran on the clock, so any
        live state is accepted.
        """
        if room.status in TERMINAL_STATUSES:
            raise _illegal(room, "complete")
        now = now or self.clock()
        previous = room.status
        if previous not in (RoomStatus.SUBMITTED, RoomStatus.JUDGING):
            logger.info(f"{room.room_name}: completed directly from {previous.value}")

        room.status = RoomStatus.COMPLETED
        room.current_speaker = None
        room.speech_deadline = None
        return ClockTransition(from_status=previous, to_status=RoomStatus.COMPLETED, at=now)

    def cancel(self, room: Room, now: datetime | None = None) -> ClockTransition:
        if room.status in TERMINAL_STATUSES:
            raise _illegal(room, "cancel")
        now = now or self.clock()
        previous = room.status

        room.status = RoomStatus.CANCELLED
        room.current_speaker = None
        room.speech_deadline = None

        logger.info(f"{room.room_name}: cancelled from {previous.value}")
        return ClockTransition(from_status=previous, to_status=RoomStatus.CANCELLED, at=now)

    def tick(
        self,
        room: Room,
        members_by_team: dict[int, list[str]],
        now: datetime | None = None,
    ) -> tuple[Room, list[ClockTransition]]:
        """Apply whatever transitions the clock makes due at ``now``.

        Works on a copy; the input room is left untouched. At most one
        prep expiry and one speech advance happen per call.
        """
        now = now or self.clock()
        updated = room.model_copy(deep=True)
        transitions: list[ClockTransition] = []

        if updated.status == RoomStatus.PREP and updated.prep_start_time is not None:
            prep_end = updated.prep_start_time + timedelta(seconds=updated.prep_duration)
            if now >= prep_end:
                transitions.append(self.start_debate(updated, members_by_team, now))

        if (
            updated.status == RoomStatus.IN_PROGRESS
            and updated.speech_deadline is not None
            and now >= updated.speech_deadline
            and not transitions
        ):
            transition = self.advance_turn(
                updated,
                members_by_team,
                now,
                expected_speech_number=updated.current_speech_number,
            )
            if transition is not None:
                transitions.append(transition)

        return updated, transitions
