"""Tests for debate format definitions and the format registry."""

import pytest

from formats import format_registry


def test_bp_speech_order_alternates_benches(bp_format) -> None:
    """BP speaks OG, OO, OG, OO, CG, CO, CG, CO."""
    order = [(s.position, s.seat_index) for s in bp_format.get_speech_order()]

    assert order == [
        ("OG", 0), ("OO", 0), ("OG", 1), ("OO", 1),
        ("CG", 0), ("CO", 0), ("CG", 1), ("CO", 1),
    ]
    assert bp_format.total_speeches == 8
    assert bp_format.room_arity == 4


def test_ap_speech_order_uses_three_speakers(ap_format) -> None:
    """AP alternates Proposition and Opposition through three speakers."""
    order = [(s.position, s.seat_index) for s in ap_format.get_speech_order()]

    assert order == [
        ("Proposition", 0), ("Opposition", 0),
        ("Proposition", 1), ("Opposition", 1),
        ("Proposition", 2), ("Opposition", 2),
    ]
    assert ap_format.speakers_per_team == 3
    assert ap_format.default_speaker_score_range == (65.0, 100.0)


def test_points_tables(bp_format, ap_format) -> None:
    """Ranks map to 3/2/1/0 in BP and 1/0 in AP."""
    assert [bp_format.points_for_rank(r) for r in (1, 2, 3, 4)] == [3, 2, 1, 0]
    assert [ap_format.points_for_rank(r) for r in (1, 2)] == [1, 0]
    assert bp_format.is_win(2) and not bp_format.is_win(3)
    assert ap_format.is_win(1) and not ap_format.is_win(2)


def test_speech_at_out_of_range(bp_format) -> None:
    assert bp_format.speech_at(0) is None
    assert bp_format.speech_at(9) is None
    assert bp_format.speech_at(5).position == "CG"


def test_position_assignments_require_full_room(bp_format) -> None:
    """Seating fewer teams than the room holds is rejected."""
    assert bp_format.get_position_assignments([4, 3, 2, 1]) == [
        (4, "OG"), (3, "OO"), (2, "CG"), (1, "CO")
    ]
    with pytest.raises(ValueError):
        bp_format.get_position_assignments([1, 2, 3])


def test_advancing_per_room(bp_format, ap_format) -> None:
    assert bp_format.advancing_per_room == 2
    assert ap_format.advancing_per_room == 1


def test_registry_lookup() -> None:
    """Known codes resolve; unknown ones raise."""
    assert format_registry.get_format("BP").display_name == "British Parliamentary"
    assert sorted(format_registry.list_formats()) == ["AP", "BP"]
    assert format_registry.get_format_descriptions()["AP"]["total_speeches"] == 6

    with pytest.raises(ValueError):
        format_registry.get_format("WSDC")
