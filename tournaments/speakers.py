"""Speaker tab built from the speaker scores recorded on finished rooms."""

import logging

from .models import Room, SpeakerStandingsEntry, Team

logger = logging.getLogger(__name__)


def rank_speakers(teams: list[Team], rooms: list[Room]) -> list[SpeakerStandingsEntry]:
    """Rank every speaker of ``teams`` by average score.

    Equal averages fall back to the total. Speakers level on both share a
    rank, and the next rank skips accordingly. Speakers without a scored
    speech are listed last with zeros.
    """
    scores: dict[tuple[int, str], list[float]] = {}
    for room in rooms:
        for slot in room.slots:
            for score in slot.speaker_scores:
                scores.setdefault((score.team_id, score.speaker_id), []).append(score.score)

    entries = []
    for team in teams:
        for speaker_id in team.members:
            values = scores.get((team.id, speaker_id), [])
            total = round(sum(values), 1)
            entries.append(
                SpeakerStandingsEntry(
                    rank=0,
                    speaker_id=speaker_id,
                    team_id=team.id,
                    team_name=team.name,
                    institution=team.institution,
                    total_score=total,
                    average_score=round(total / len(values), 2) if values else 0.0,
                    speeches=len(values),
                )
            )

    entries.sort(key=lambda e: (e.speeches == 0, -e.average_score, -e.total_score, e.speaker_id))
    previous = None
    for position, entry in enumerate(entries, start=1):
        level = (entry.average_score, entry.total_score, entry.speeches == 0)
        entry.rank = previous[1] if previous and previous[0] == level else position
        previous = (level, entry.rank)

    logger.debug(f"Speaker tab: {len(entries)} speakers over {len(rooms)} rooms")
    return entries
