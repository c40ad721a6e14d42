"""British Parliamentary format: four teams, two speakers each."""

from .base import DebateFormat, SpeechSlot


class BritishParliamentaryFormat(DebateFormat):
    """Opening/Closing Government and Opposition, ranked 1st to 4th."""

    _SPEECH_ORDER = [
        SpeechSlot(1, "OG", 0, "Prime Minister"),
        SpeechSlot(2, "OO", 0, "Leader of the Opposition"),
        SpeechSlot(3, "OG", 1, "Deputy Prime Minister"),
        SpeechSlot(4, "OO", 1, "Deputy Leader of the Opposition"),
        SpeechSlot(5, "CG", 0, "Member of the Government"),
        SpeechSlot(6, "CO", 0, "Member of the Opposition"),
        SpeechSlot(7, "CG", 1, "Government Whip"),
        SpeechSlot(8, "CO", 1, "Opposition Whip"),
    ]

    @property
    def name(self) -> str:
        return "BP"

    @property
    def display_name(self) -> str:
        return "British Parliamentary"

    @property
    def positions(self) -> list[str]:
        return ["OG", "OO", "CG", "CO"]

    @property
    def speakers_per_team(self) -> int:
        return 2

    @property
    def default_judges_per_room(self) -> int:
        return 3

    def get_speech_order(self) -> list[SpeechSlot]:
        return list(self._SPEECH_ORDER)

    def get_points_table(self) -> dict[int, int]:
        return {1: 3, 2: 2, 3: 1, 4: 0}

    def is_win(self, rank: int) -> bool:
        # 2nd place still takes points in BP
        return rank <= 2
