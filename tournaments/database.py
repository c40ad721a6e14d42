"""Tab database operations.

Reads go through ``_get_connection``. Every write runs inside
``_transaction``, which takes SQLite's write lock up front (``BEGIN
IMMEDIATE``), so check-then-write sequences such as "no draw exists yet"
or "room has no results yet" cannot interleave across processes.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from .exceptions import NotFoundError, PreconditionError
from .models import (
    ELIMINATION_ROUND_TYPES,
    Ballot,
    BallotStatus,
    ExperienceTier,
    Judge,
    Room,
    RoomSlot,
    RoomStatus,
    Round,
    RoundStatus,
    RoundType,
    SpeakerScore,
    Team,
    TeamFeedback,
    TeamRanking,
    TeamStatus,
    Tournament,
    TournamentFormat,
    TournamentStatus,
)
from .schema import SchemaManager

logger = logging.getLogger(__name__)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _dump(items: list[Any]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items])


class TournamentDatabaseManager:
    """Manages SQLite storage for tournaments, rosters, draws and ballots."""

    def __init__(self, db_path: str = "tournaments.db", timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.schema_manager = SchemaManager()
        self._init_database()

    def _init_database(self) -> None:
        if not self.schema_manager.validate_schema_files():
            raise RuntimeError("Database schema validation failed - missing schema files")

        with self._get_connection() as conn:
            self.schema_manager.initialize_database_schema(conn.cursor())
        logger.info(f"Tab database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(
                self.db_path, timeout=self.timeout, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            if conn and conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error(f"Tab database error: {e}")
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one write transaction holding the write lock."""
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    # Row mapping

    @staticmethod
    def _row_to_tournament(row: sqlite3.Row) -> Tournament:
        return Tournament(
            id=row["id"],
            name=row["name"],
            format=TournamentFormat(row["format"]),
            organizer_id=row["organizer_id"],
            status=TournamentStatus(row["status"]),
            number_of_rounds=row["number_of_rounds"],
            breaking_teams=row["breaking_teams"],
            speaker_score_min=row["speaker_score_min"],
            speaker_score_max=row["speaker_score_max"],
            judges_per_room=row["judges_per_room"],
            champion_team_id=row["champion_team_id"],
            created_at=_dt(row["created_at"]),
            completed_at=_dt(row["completed_at"]),
        )

    @staticmethod
    def _row_to_team(row: sqlite3.Row) -> Team:
        return Team(
            id=row["id"],
            tournament_id=row["tournament_id"],
            name=row["name"],
            institution=row["institution"],
            members=json.loads(row["members"]),
            status=TeamStatus(row["status"]),
            total_points=row["total_points"],
            total_speaks=row["total_speaks"],
            breaks=json.loads(row["breaks"]),
        )

    @staticmethod
    def _row_to_judge(row: sqlite3.Row) -> Judge:
        return Judge(
            id=row["id"],
            tournament_id=row["tournament_id"],
            name=row["name"],
            user_id=row["user_id"],
            institution=row["institution"],
            experience=ExperienceTier(row["experience"]),
            conflict_institutions=json.loads(row["conflict_institutions"]),
            available=bool(row["available"]),
        )

    @staticmethod
    def _row_to_round(row: sqlite3.Row) -> Round:
        return Round(
            id=row["id"],
            tournament_id=row["tournament_id"],
            round_number=row["round_number"],
            round_type=RoundType(row["round_type"]),
            status=RoundStatus(row["status"]),
            motion_id=row["motion_id"],
            total_debates=row["total_debates"],
            completed_debates=row["completed_debates"],
            is_draw_released=bool(row["is_draw_released"]),
            draw_released_at=_dt(row["draw_released_at"]),
        )

    @staticmethod
    def _row_to_room(row: sqlite3.Row) -> Room:
        return Room(
            id=row["id"],
            tournament_id=row["tournament_id"],
            round_id=row["round_id"],
            room_name=row["room_name"],
            slots=[RoomSlot.model_validate(s) for s in json.loads(row["slots"])],
            judge_ids=json.loads(row["judge_ids"]),
            chair_id=row["chair_id"],
            status=RoomStatus(row["status"]),
            prep_start_time=_dt(row["prep_start_time"]),
            prep_duration=row["prep_duration"],
            debate_start_time=_dt(row["debate_start_time"]),
            speech_duration=row["speech_duration"],
            total_speeches=row["total_speeches"],
            current_speech_number=row["current_speech_number"],
            current_speaker=row["current_speaker"],
            speech_deadline=_dt(row["speech_deadline"]),
            has_results=bool(row["has_results"]),
            results_entered_by=row["results_entered_by"],
            results_entered_at=_dt(row["results_entered_at"]),
            feedback=row["feedback"],
        )

    @staticmethod
    def _row_to_ballot(row: sqlite3.Row) -> Ballot:
        return Ballot(
            id=row["id"],
            room_id=row["room_id"],
            judge_id=row["judge_id"],
            tournament_id=row["tournament_id"],
            rankings=[TeamRanking.model_validate(r) for r in json.loads(row["rankings"])],
            speaker_scores=[
                SpeakerScore.model_validate(s) for s in json.loads(row["speaker_scores"])
            ],
            team_feedback=[
                TeamFeedback.model_validate(f) for f in json.loads(row["team_feedback"])
            ],
            overall_feedback=row["overall_feedback"],
            status=BallotStatus(row["status"]),
            is_chair_ballot=bool(row["is_chair_ballot"]),
            submitted_at=_dt(row["submitted_at"]),
            last_saved_at=_dt(row["last_saved_at"]),
        )

    # Tournaments

    def create_tournament(self, tournament: Tournament) -> Tournament:
        """Insert a tournament together with its preliminary rounds."""
        created_at = tournament.created_at or datetime.now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO tournaments (
                    name, format, organizer_id, status, number_of_rounds,
                    breaking_teams, speaker_score_min, speaker_score_max,
                    judges_per_room, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tournament.name,
                    tournament.format.value,
                    tournament.organizer_id,
                    tournament.status.value,
                    tournament.number_of_rounds,
                    tournament.breaking_teams,
                    tournament.speaker_score_min,
                    tournament.speaker_score_max,
                    tournament.judges_per_room,
                    _ts(created_at),
                ),
            )
            tournament_id = cursor.lastrowid
            if tournament_id is None:
                raise RuntimeError("Failed to get tournament ID from database")

            conn.executemany(
                "INSERT INTO rounds (tournament_id, round_number, round_type) VALUES (?, ?, ?)",
                [
                    (tournament_id, number, RoundType.PRELIMINARY.value)
                    for number in range(1, tournament.number_of_rounds + 1)
                ],
            )

        logger.info(f"Created tournament {tournament_id}: {tournament.name}")
        return tournament.model_copy(update={"id": tournament_id, "created_at": created_at})

    def get_tournament(self, tournament_id: int) -> Tournament | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM tournaments WHERE id = ?", (tournament_id,)
            ).fetchone()
            return self._row_to_tournament(row) if row else None

    def update_tournament_status(
        self, tournament_id: int, status: TournamentStatus, **kwargs: Any
    ) -> bool:
        """Update tournament status and optional champion/completion fields."""
        set_clauses = ["status = ?"]
        params: list[Any] = [status.value]

        if "champion_team_id" in kwargs:
            set_clauses.append("champion_team_id = ?")
            params.append(kwargs["champion_team_id"])

        if "completed_at" in kwargs:
            set_clauses.append("completed_at = ?")
            params.append(_ts(kwargs["completed_at"]))

        params.append(tournament_id)

        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE tournaments SET {', '.join(set_clauses)} WHERE id = ?", params
            )
            updated = cursor.rowcount > 0

        if updated:
            logger.info(f"Updated tournament {tournament_id} status to {status.value}")
        return updated

    # Teams

    def add_team(self, team: Team) -> Team:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO teams (tournament_id, name, institution, members, status, breaks)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    team.tournament_id,
                    team.name,
                    team.institution,
                    json.dumps(team.members),
                    team.status.value,
                    json.dumps(team.breaks),
                ),
            )
            team_id = cursor.lastrowid
        return team.model_copy(update={"id": team_id})

    def get_team(self, team_id: int) -> Team | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
            return self._row_to_team(row) if row else None

    def get_teams(
        self, tournament_id: int, status: TeamStatus | None = None
    ) -> list[Team]:
        with self._get_connection() as conn:
            if status is not None:
                rows = conn.execute(
                    "SELECT * FROM teams WHERE tournament_id = ? AND status = ? ORDER BY id",
                    (tournament_id, status.value),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM teams WHERE tournament_id = ? ORDER BY id",
                    (tournament_id,),
                ).fetchall()
            return [self._row_to_team(row) for row in rows]

    def update_team_status(self, team_id: int, status: TeamStatus) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE teams SET status = ? WHERE id = ?", (status.value, team_id)
            )
            return cursor.rowcount > 0

    def mark_breaking(self, tournament_id: int, team_ids: list[int], category: str) -> None:
        """Flag exactly ``team_ids`` as breaking in ``category``.

        Flags left by an earlier announcement are cleared in the same
        transaction.
        """
        chosen = set(team_ids)
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, breaks FROM teams WHERE tournament_id = ?", (tournament_id,)
            ).fetchall()
            for row in rows:
                breaks = json.loads(row["breaks"])
                breaking = row["id"] in chosen
                if breaks.get(category, False) == breaking:
                    continue
                if breaking:
                    breaks[category] = True
                else:
                    breaks.pop(category, None)
                conn.execute(
                    "UPDATE teams SET breaks = ? WHERE id = ?",
                    (json.dumps(breaks), row["id"]),
                )

    # Judges

    def add_judge(self, judge: Judge) -> Judge:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO judges (
                    tournament_id, name, user_id, institution, experience,
                    conflict_institutions, available
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    judge.tournament_id,
                    judge.name,
                    judge.user_id,
                    judge.institution,
                    judge.experience.value,
                    json.dumps(judge.conflict_institutions),
                    judge.available,
                ),
            )
            judge_id = cursor.lastrowid
        return judge.model_copy(update={"id": judge_id})

    def get_judge(self, judge_id: int) -> Judge | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM judges WHERE id = ?", (judge_id,)).fetchone()
            return self._row_to_judge(row) if row else None

    def get_judges(self, tournament_id: int, available_only: bool = False) -> list[Judge]:
        query = "SELECT * FROM judges WHERE tournament_id = ?"
        if available_only:
            query += " AND available = 1"
        with self._get_connection() as conn:
            rows = conn.execute(query + " ORDER BY id", (tournament_id,)).fetchall()
            return [self._row_to_judge(row) for row in rows]

    def set_judge_availability(self, judge_id: int, available: bool) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE judges SET available = ? WHERE id = ?", (available, judge_id)
            )
            return cursor.rowcount > 0

    # Rounds

    def get_round(self, round_id: int) -> Round | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM rounds WHERE id = ?", (round_id,)).fetchone()
            return self._row_to_round(row) if row else None

    def get_round_by_number(self, tournament_id: int, round_number: int) -> Round | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM rounds WHERE tournament_id = ? AND round_number = ?",
                (tournament_id, round_number),
            ).fetchone()
            return self._row_to_round(row) if row else None

    def get_rounds(self, tournament_id: int) -> list[Round]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM rounds WHERE tournament_id = ? ORDER BY round_number",
                (tournament_id,),
            ).fetchall()
            return [self._row_to_round(row) for row in rows]

    def get_latest_round(self, tournament_id: int) -> Round | None:
        rounds = self.get_rounds(tournament_id)
        return rounds[-1] if rounds else None

    def update_round_status(
        self,
        round_id: int,
        status: RoundStatus,
        only_from: RoundStatus | None = None,
    ) -> bool:
        query = "UPDATE rounds SET status = ? WHERE id = ?"
        params: list[Any] = [status.value, round_id]
        if only_from is not None:
            query += " AND status = ?"
            params.append(only_from.value)
        with self._transaction() as conn:
            return conn.execute(query, params).rowcount > 0

    # Draws and rooms

    def _insert_rooms(
        self, conn: sqlite3.Connection, round_id: int, rooms: list[Room]
    ) -> list[Room]:
        stored = []
        for room in rooms:
            cursor = conn.execute(
                """
                INSERT INTO rooms (
                    tournament_id, round_id, room_name, slots, judge_ids, chair_id,
                    status, prep_duration, speech_duration, total_speeches,
                    current_speech_number
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    room.tournament_id,
                    round_id,
                    room.room_name,
                    _dump(room.slots),
                    json.dumps(room.judge_ids),
                    room.chair_id,
                    room.status.value,
                    room.prep_duration,
                    room.speech_duration,
                    room.total_speeches,
                    room.current_speech_number,
                ),
            )
            stored.append(
                room.model_copy(update={"id": cursor.lastrowid, "round_id": round_id})
            )
        return stored

    def insert_draw(
        self, round_id: int, rooms: list[Room], released_at: datetime
    ) -> list[Room]:
        """Persist a draw; refuses if the round already has rooms."""
        with self._transaction() as conn:
            existing = conn.execute(
                "SELECT COUNT(*) FROM rooms WHERE round_id = ?", (round_id,)
            ).fetchone()[0]
            if existing:
                raise PreconditionError(
                    f"Draw already exists for round {round_id}", reason="draw_exists"
                )

            stored = self._insert_rooms(conn, round_id, rooms)
            conn.execute(
                """
                UPDATE rounds
                SET total_debates = ?, completed_debates = 0,
                    is_draw_released = 1, draw_released_at = ?
                WHERE id = ?
                """,
                (len(stored), _ts(released_at), round_id),
            )

        logger.info(f"Stored draw for round {round_id}: {len(stored)} rooms")
        return stored

    def create_elimination_round(
        self,
        tournament_id: int,
        round_type: RoundType,
        rooms: list[Room],
        released_at: datetime,
        source_round_id: int | None = None,
    ) -> tuple[Round, list[Room]]:
        """Insert the next elimination round and its rooms atomically.

        Without ``source_round_id`` this is the opening elimination round
        and no elimination round may exist yet. With it, the source must
        still be the latest round, so a second generation from the same
        source is refused.
        """
        with self._transaction() as conn:
            latest = conn.execute(
                """
                SELECT * FROM rounds WHERE tournament_id = ?
                ORDER BY round_number DESC LIMIT 1
                """,
                (tournament_id,),
            ).fetchone()

            if source_round_id is None:
                placeholders = ", ".join("?" for _ in ELIMINATION_ROUND_TYPES)
                elimination = conn.execute(
                    f"""
                    SELECT COUNT(*) FROM rounds
                    WHERE tournament_id = ? AND round_type IN ({placeholders})
                    """,
                    (tournament_id, *[t.value for t in ELIMINATION_ROUND_TYPES]),
                ).fetchone()[0]
                if elimination:
                    raise PreconditionError(
                        "Elimination rounds have already been generated",
                        reason="already_generated",
                    )
            elif latest is None or latest["id"] != source_round_id:
                raise PreconditionError(
                    f"Round {source_round_id} has already been followed by another round",
                    reason="already_generated",
                )

            round_number = latest["round_number"] + 1 if latest else 1
            cursor = conn.execute(
                """
                INSERT INTO rounds (
                    tournament_id, round_number, round_type, status,
                    total_debates, is_draw_released, draw_released_at
                ) VALUES (?, ?, ?, ?, ?, 1, ?)
                """,
                (
                    tournament_id,
                    round_number,
                    round_type.value,
                    RoundStatus.SCHEDULED.value,
                    len(rooms),
                    _ts(released_at),
                ),
            )
            round_id = cursor.lastrowid
            stored = self._insert_rooms(conn, round_id, rooms)
            row = conn.execute("SELECT * FROM rounds WHERE id = ?", (round_id,)).fetchone()

        logger.info(
            f"Created {round_type.value} round {round_number} for tournament "
            f"{tournament_id} with {len(stored)} rooms"
        )
        return self._row_to_round(row), stored

    def delete_draw(self, round_id: int) -> int:
        """Remove a round's rooms and ballots and reset the round."""
        with self._transaction() as conn:
            round_row = conn.execute(
                "SELECT * FROM rounds WHERE id = ?", (round_id,)
            ).fetchone()
            if round_row is None:
                raise NotFoundError(f"Round {round_id} not found")

            with_results = conn.execute(
                "SELECT COUNT(*) FROM rooms WHERE round_id = ? AND has_results = 1",
                (round_id,),
            ).fetchone()[0]
            if with_results:
                raise PreconditionError(
                    f"Round {round_id} already has results in {with_results} room(s)",
                    reason="results_recorded",
                )

            conn.execute(
                "DELETE FROM ballots WHERE room_id IN (SELECT id FROM rooms WHERE round_id = ?)",
                (round_id,),
            )
            deleted = conn.execute(
                "DELETE FROM rooms WHERE round_id = ?", (round_id,)
            ).rowcount
            conn.execute(
                """
                UPDATE rounds
                SET status = ?, total_debates = 0, completed_debates = 0,
                    is_draw_released = 0, draw_released_at = NULL
                WHERE id = ?
                """,
                (RoundStatus.SCHEDULED.value, round_id),
            )

        logger.info(f"Deleted draw for round {round_id}: {deleted} rooms")
        return deleted

    def get_room(self, room_id: int) -> Room | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM rooms WHERE id = ?", (room_id,)).fetchone()
            return self._row_to_room(row) if row else None

    def get_rooms(self, round_id: int) -> list[Room]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM rooms WHERE round_id = ? ORDER BY id", (round_id,)
            ).fetchall()
            return [self._row_to_room(row) for row in rows]

    def get_tournament_rooms(
        self, tournament_id: int, round_type: RoundType | None = None
    ) -> list[Room]:
        """Every room of a tournament, in round order."""
        query = """
            SELECT rooms.* FROM rooms
            JOIN rounds ON rounds.id = rooms.round_id
            WHERE rooms.tournament_id = ?
        """
        params: tuple = (tournament_id,)
        if round_type is not None:
            query += " AND rounds.round_type = ?"
            params += (round_type.value,)
        with self._get_connection() as conn:
            rows = conn.execute(
                query + " ORDER BY rounds.round_number, rooms.id", params
            ).fetchall()
            return [self._row_to_room(row) for row in rows]

    def get_result_rooms(self, tournament_id: int) -> list[Room]:
        """Rooms with recorded results, in the order they were drawn."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT rooms.* FROM rooms
                JOIN rounds ON rounds.id = rooms.round_id
                WHERE rooms.tournament_id = ? AND rooms.has_results = 1
                ORDER BY rounds.round_number, rooms.id
                """,
                (tournament_id,),
            ).fetchall()
            return [self._row_to_room(row) for row in rows]

    def update_room_clock(
        self, room: Room, expected_status: RoomStatus, expected_speech_number: int
    ) -> bool:
        """Compare-and-set the clock fields of a room.

        Only succeeds if the stored room is still in ``expected_status``
        on ``expected_speech_number``.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE rooms
                SET status = ?, prep_start_time = ?, debate_start_time = ?,
                    total_speeches = ?, current_speech_number = ?,
                    current_speaker = ?, speech_deadline = ?
                WHERE id = ? AND status = ? AND current_speech_number = ?
                """,
                (
                    room.status.value,
                    _ts(room.prep_start_time),
                    _ts(room.debate_start_time),
                    room.total_speeches,
                    room.current_speech_number,
                    room.current_speaker,
                    _ts(room.speech_deadline),
                    room.id,
                    expected_status.value,
                    expected_speech_number,
                ),
            )
            return cursor.rowcount > 0

    def cancel_room(self, room: Room, expected_status: RoomStatus) -> bool:
        """Cancel a room and drop it from its round's debate count."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE rooms SET status = ?, current_speaker = NULL, speech_deadline = NULL
                WHERE id = ? AND status = ? AND has_results = 0
                """,
                (RoomStatus.CANCELLED.value, room.id, expected_status.value),
            )
            if cursor.rowcount == 0:
                return False

            conn.execute(
                "UPDATE rounds SET total_debates = total_debates - 1 WHERE id = ?",
                (room.round_id,),
            )
            # A round whose rooms were all cancelled is finished too
            conn.execute(
                """
                UPDATE rounds SET status = ?
                WHERE id = ? AND completed_debates >= total_debates
                """,
                (RoundStatus.COMPLETED.value, room.round_id),
            )
        logger.info(f"Cancelled {room.room_name} (room {room.id})")
        return True

    def apply_room_result(
        self, room: Room, increments: dict[int, tuple[int, float]]
    ) -> bool:
        """Finalize a room and add its points and speaks to team totals.

        The room is claimed with ``has_results = 0`` as the guard, in the
        same transaction as the team and round updates. Returns False if
        another writer got there first.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE rooms
                SET has_results = 1, slots = ?, status = ?, current_speaker = NULL,
                    speech_deadline = NULL, results_entered_by = ?,
                    results_entered_at = ?, feedback = ?
                WHERE id = ? AND has_results = 0
                """,
                (
                    _dump(room.slots),
                    room.status.value,
                    room.results_entered_by,
                    _ts(room.results_entered_at),
                    room.feedback,
                    room.id,
                ),
            )
            if cursor.rowcount == 0:
                return False

            for team_id, (points, speaks) in increments.items():
                conn.execute(
                    """
                    UPDATE teams
                    SET total_points = total_points + ?,
                        total_speaks = ROUND(total_speaks + ?, 1)
                    WHERE id = ?
                    """,
                    (points, speaks, team_id),
                )

            conn.execute(
                "UPDATE rounds SET completed_debates = completed_debates + 1 WHERE id = ?",
                (room.round_id,),
            )
            conn.execute(
                """
                UPDATE rounds SET status = ?
                WHERE id = ? AND total_debates > 0 AND completed_debates >= total_debates
                """,
                (RoundStatus.COMPLETED.value, room.round_id),
            )
        return True

    # Ballots

    def get_ballot(self, room_id: int, judge_id: int) -> Ballot | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM ballots WHERE room_id = ? AND judge_id = ?",
                (room_id, judge_id),
            ).fetchone()
            return self._row_to_ballot(row) if row else None

    def get_ballots(self, room_id: int) -> list[Ballot]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM ballots WHERE room_id = ? ORDER BY id", (room_id,)
            ).fetchall()
            return [self._row_to_ballot(row) for row in rows]

    def get_or_create_ballot(self, ballot: Ballot) -> tuple[Ballot, bool]:
        """Return the (room, judge) ballot, creating the draft if missing."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO ballots (
                    room_id, judge_id, tournament_id, status, is_chair_ballot, last_saved_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    ballot.room_id,
                    ballot.judge_id,
                    ballot.tournament_id,
                    BallotStatus.DRAFT.value,
                    ballot.is_chair_ballot,
                    _ts(ballot.last_saved_at),
                ),
            )
            created = cursor.rowcount > 0
            row = conn.execute(
                "SELECT * FROM ballots WHERE room_id = ? AND judge_id = ?",
                (ballot.room_id, ballot.judge_id),
            ).fetchone()
        return self._row_to_ballot(row), created

    def save_ballot(self, ballot: Ballot, submit: bool = False) -> bool:
        """Write ballot contents; only drafts can be written.

        With ``submit`` the ballot is frozen in the same statement.
        """
        status = BallotStatus.SUBMITTED if submit else BallotStatus.DRAFT
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE ballots
                SET rankings = ?, speaker_scores = ?, team_feedback = ?,
                    overall_feedback = ?, status = ?, submitted_at = ?, last_saved_at = ?
                WHERE id = ? AND status = ?
                """,
                (
                    _dump(ballot.rankings),
                    _dump(ballot.speaker_scores),
                    _dump(ballot.team_feedback),
                    ballot.overall_feedback,
                    status.value,
                    _ts(ballot.submitted_at),
                    _ts(ballot.last_saved_at),
                    ballot.id,
                    BallotStatus.DRAFT.value,
                ),
            )
            return cursor.rowcount > 0
