"""Asian Parliamentary format: two teams, three speakers each."""

from .base import DebateFormat, SpeechSlot


class AsianParliamentaryFormat(DebateFormat):
    """Proposition against Opposition with a single winner."""

    _SPEECH_ORDER = [
        SpeechSlot(1, "Proposition", 0, "Prime Minister"),
        SpeechSlot(2, "Opposition", 0, "Leader of the Opposition"),
        SpeechSlot(3, "Proposition", 1, "Deputy Prime Minister"),
        SpeechSlot(4, "Opposition", 1, "Deputy Leader of the Opposition"),
        SpeechSlot(5, "Proposition", 2, "Government Whip"),
        SpeechSlot(6, "Opposition", 2, "Opposition Whip"),
    ]

    @property
    def name(self) -> str:
        return "AP"

    @property
    def display_name(self) -> str:
        return "Asian Parliamentary"

    @property
    def positions(self) -> list[str]:
        return ["Proposition", "Opposition"]

    @property
    def speakers_per_team(self) -> int:
        return 3

    @property
    def default_speaker_score_range(self) -> tuple[float, float]:
        return (65.0, 100.0)

    def get_speech_order(self) -> list[SpeechSlot]:
        return list(self._SPEECH_ORDER)

    def get_points_table(self) -> dict[int, int]:
        return {1: 1, 2: 0}

    def is_win(self, rank: int) -> bool:
        return rank == 1
