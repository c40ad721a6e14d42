"""HTTP tests for the tab endpoints."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import ORGANIZER
from tournaments.api import TournamentAPI
from web.api import app
from web.endpoints.tournaments import get_tournament_api

pytestmark = pytest.mark.integration

HEADERS = {"X-Actor-Id": ORGANIZER}


@pytest.fixture
def client(manager) -> Iterator[TestClient]:
    """Test client bound to the temporary-database manager."""
    api = TournamentAPI(manager)
    app.dependency_overrides[get_tournament_api] = lambda: api
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_tournament(client: TestClient, teams: int = 4) -> int:
    response = client.post(
        "/api/tournaments",
        json={"name": "City Open", "format": "BP", "number_of_rounds": 2},
        headers=HEADERS,
    )
    assert response.status_code == 200
    tournament_id = response.json()["tournament"]["id"]
    for n in range(1, teams + 1):
        response = client.post(
            f"/api/tournaments/{tournament_id}/teams",
            json={"name": f"Team {n}", "institution": f"Uni {n}", "members": [f"s{n}a", f"s{n}b"]},
            headers=HEADERS,
        )
        assert response.status_code == 200
    return tournament_id


def test_health_and_formats(client) -> None:
    assert client.get("/api/health").json() == {"isAlive": True}
    formats = client.get("/api/formats").json()["formats"]
    assert set(formats) == {"BP", "AP"}


def test_create_requires_actor(client) -> None:
    response = client.post("/api/tournaments", json={"name": "Anon", "format": "AP"})

    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "not_authorized"


def test_get_tournament_lists_rounds(client) -> None:
    tournament_id = _create_tournament(client)

    body = client.get(f"/api/tournaments/{tournament_id}").json()

    assert body["tournament"]["status"] == "registration"
    assert [r["round_number"] for r in body["rounds"]] == [1, 2]


def test_unknown_tournament_is_404(client) -> None:
    response = client.get("/api/tournaments/404")

    assert response.status_code == 404
    assert response.json()["detail"]["reason"] == "not_found"


def test_non_organizer_is_403(client) -> None:
    tournament_id = _create_tournament(client)

    response = client.post(
        f"/api/tournaments/{tournament_id}/rounds/1/draw",
        headers={"X-Actor-Id": "intruder"},
    )

    assert response.status_code == 403


def test_repeat_draw_is_409(client) -> None:
    tournament_id = _create_tournament(client)

    first = client.post(f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS)
    second = client.post(f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS)

    assert first.status_code == 200
    assert len(first.json()["rooms"]) == 1
    assert "no_judges_available" in first.json()["warnings"]
    assert second.status_code == 409
    assert second.json()["detail"]["reason"] == "draw_exists"


def test_invalid_result_is_400_with_field(client) -> None:
    tournament_id = _create_tournament(client)
    draw = client.post(f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS).json()
    room = draw["rooms"][0]
    team_ids = [slot["team_id"] for slot in room["slots"]]

    response = client.post(
        f"/api/rooms/{room['id']}/results",
        json={"results": [{"team_id": tid, "rank": 1} for tid in team_ids]},
        headers=HEADERS,
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["reason"] == "duplicate_ranks"
    assert detail["field"] == "rankings"


def test_results_then_standings(client) -> None:
    tournament_id = _create_tournament(client)
    draw = client.post(f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS).json()
    room = draw["rooms"][0]
    team_ids = [slot["team_id"] for slot in room["slots"]]
    results = {"results": [{"team_id": tid, "rank": n} for n, tid in enumerate(team_ids, 1)]}

    recorded = client.post(f"/api/rooms/{room['id']}/results", json=results, headers=HEADERS)
    repeated = client.post(f"/api/rooms/{room['id']}/results", json=results, headers=HEADERS)

    assert recorded.status_code == 200
    assert recorded.json()["room"]["status"] == "completed"
    assert repeated.status_code == 409

    standings = client.get(f"/api/tournaments/{tournament_id}/standings").json()
    assert [entry["team"]["id"] for entry in standings["standings"]] == team_ids
    assert standings["standings"][0]["team"]["total_points"] == 3


def test_room_clock_endpoints(client) -> None:
    tournament_id = _create_tournament(client)
    draw = client.post(f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS).json()
    room_id = draw["rooms"][0]["id"]

    assert client.post(f"/api/rooms/{room_id}/prep", headers=HEADERS).status_code == 200
    started = client.post(f"/api/rooms/{room_id}/start", headers=HEADERS).json()["room"]
    assert started["status"] == "in-progress"

    first = client.post(f"/api/rooms/{room_id}/advance?expected_speech_number=1").json()
    second = client.post(f"/api/rooms/{room_id}/advance?expected_speech_number=1").json()
    assert first["room"]["current_speech_number"] == 2
    assert second["room"]["current_speech_number"] == 2

    again = client.post(f"/api/rooms/{room_id}/prep", headers=HEADERS)
    assert again.status_code == 400
    assert again.json()["detail"]["reason"] == "illegal_transition"


def test_judge_results_need_judge_identity(client) -> None:
    tournament_id = _create_tournament(client)
    judge = client.post(
        f"/api/tournaments/{tournament_id}/judges",
        json={"name": "Judge A", "user_id": "judge-a", "institution": "Panel U"},
        headers=HEADERS,
    ).json()["judge"]
    room = client.post(
        f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS
    ).json()["rooms"][0]
    assert room["judge_ids"] == [judge["id"]]
    team_ids = [slot["team_id"] for slot in room["slots"]]
    results = {"results": [{"team_id": tid, "rank": n} for n, tid in enumerate(team_ids, 1)]}
    url = f"/api/rooms/{room['id']}/results?judge_id={judge['id']}"

    anonymous = client.post(url, json=results)
    impostor = client.post(url, json=results, headers={"X-Actor-Id": "judge-b"})
    ballot = client.post(f"/api/rooms/{room['id']}/ballots/{judge['id']}")

    assert anonymous.status_code == 403
    assert impostor.status_code == 403
    assert ballot.status_code == 403
    teams = client.get(f"/api/tournaments/{tournament_id}/teams").json()["teams"]
    assert all(team["total_points"] == 0 for team in teams)

    recorded = client.post(url, json=results, headers={"X-Actor-Id": "judge-a"})
    assert recorded.status_code == 200
    assert recorded.json()["room"]["results_entered_by"] == f"judge:{judge['id']}"


def test_speaker_tab_and_room_lookups(client) -> None:
    tournament_id = _create_tournament(client)
    room = client.post(
        f"/api/tournaments/{tournament_id}/rounds/1/draw", headers=HEADERS
    ).json()["rooms"][0]
    team_ids = [slot["team_id"] for slot in room["slots"]]

    speakers = client.get(f"/api/tournaments/{tournament_id}/speakers").json()
    team_rooms = client.get(f"/api/teams/{team_ids[0]}/rooms").json()

    assert speakers["count"] == 8
    assert all(s["speeches"] == 0 for s in speakers["speakers"])
    assert [r["id"] for r in team_rooms["rooms"]] == [room["id"]]
    assert client.get("/api/judges/999/rooms").status_code == 404
