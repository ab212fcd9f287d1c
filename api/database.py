"""
SQLite storage for games, their action log and final results.
"""
import json
import os
import sqlite3
import threading
from typing import Any, Dict, List, Optional, Tuple

from engine import GameState, deserialize_game_state, serialize_game_state

from .config import get_database_path
from .monitoring import track_database_operation

# One connection per (process, thread); sqlite3 connections are not shared across threads
_connection_cache = {}
_connection_lock = threading.Lock()

GAME_STATUS_WAITING = "waiting"
GAME_STATUS_IN_PROGRESS = "in_progress"
GAME_STATUS_FINISHED = "finished"

# League points by finishing rank, 1st to 8th
RANK_POINTS = [50, 30, 20, 10, 5, 0, -5, -10]


def get_db_connection() -> sqlite3.Connection:
    """Get this thread's connection, opening it on first use."""
    cache_key = (os.getpid(), threading.get_ident())

    with _connection_lock:
        if cache_key not in _connection_cache:
            conn = sqlite3.connect(str(get_database_path()), timeout=30.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            _connection_cache[cache_key] = conn
        return _connection_cache[cache_key]


def close_all_connections() -> None:
    """Close every cached connection, e.g. before switching database files."""
    with _connection_lock:
        for conn in _connection_cache.values():
            conn.close()
        _connection_cache.clear()


def init_db():
    """Create tables and indexes if they do not exist."""
    conn = get_db_connection()
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS games (
            id TEXT PRIMARY KEY,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            status TEXT NOT NULL DEFAULT 'waiting',
            metadata TEXT,
            current_state_json TEXT,
            deck_json TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS steps (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            game_id TEXT NOT NULL,
            step_idx INTEGER NOT NULL,
            player_id TEXT,
            action_json TEXT NOT NULL,
            state_after_json TEXT NOT NULL,
            dice_roll INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (game_id) REFERENCES games(id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS game_results (
            game_id TEXT NOT NULL,
            player_id TEXT NOT NULL,
            player_name TEXT NOT NULL,
            rank INTEGER NOT NULL,
            victory_points INTEGER NOT NULL,
            points INTEGER NOT NULL,
            PRIMARY KEY (game_id, player_id)
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_status ON games(status)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_steps_game_step ON steps(game_id, step_idx)")

    conn.commit()


@track_database_operation("insert", "games")
def create_game(game_id: str, metadata: Dict[str, Any], status: str = GAME_STATUS_WAITING) -> None:
    conn = get_db_connection()
    conn.execute(
        "INSERT INTO games (id, status, metadata) VALUES (?, ?, ?)",
        (game_id, status, json.dumps(metadata)),
    )
    conn.commit()


@track_database_operation("select", "games")
def get_game(game_id: str) -> Optional[sqlite3.Row]:
    """Get a game record by ID."""
    conn = get_db_connection()
    return conn.execute("SELECT * FROM games WHERE id = ?", (game_id,)).fetchone()


@track_database_operation("select", "games")
def list_games(status: Optional[str] = None) -> List[sqlite3.Row]:
    """Games newest first, optionally filtered by status."""
    conn = get_db_connection()
    if status:
        return conn.execute(
            "SELECT * FROM games WHERE status = ? ORDER BY created_at DESC", (status,)
        ).fetchall()
    return conn.execute("SELECT * FROM games ORDER BY created_at DESC").fetchall()


@track_database_operation("update", "games")
def update_game_metadata(game_id: str, metadata: Dict[str, Any]) -> None:
    conn = get_db_connection()
    conn.execute("UPDATE games SET metadata = ? WHERE id = ?", (json.dumps(metadata), game_id))
    conn.commit()


@track_database_operation("update", "games")
def update_game_status(game_id: str, status: str) -> None:
    conn = get_db_connection()
    conn.execute("UPDATE games SET status = ? WHERE id = ?", (status, game_id))
    conn.commit()


@track_database_operation("update", "games")
def save_game_state(game_id: str, state_json: Dict[str, Any], deck_cards: List[str]) -> None:
    """Store the latest state snapshot and the remaining draw pile."""
    conn = get_db_connection()
    conn.execute(
        "UPDATE games SET current_state_json = ?, deck_json = ? WHERE id = ?",
        (json.dumps(state_json), json.dumps(deck_cards), game_id),
    )
    conn.commit()


@track_database_operation("delete", "games")
def delete_game(game_id: str) -> None:
    """Delete a game with its steps and results."""
    conn = get_db_connection()
    conn.execute("DELETE FROM steps WHERE game_id = ?", (game_id,))
    conn.execute("DELETE FROM game_results WHERE game_id = ?", (game_id,))
    conn.execute("DELETE FROM games WHERE id = ?", (game_id,))
    conn.commit()


@track_database_operation("insert", "steps")
def add_step(
    game_id: str,
    player_id: str,
    action_json: Dict[str, Any],
    state_after_json: Dict[str, Any],
    dice_roll: Optional[int] = None,
) -> int:
    """Append one applied action to the game's log and return its index."""
    conn = get_db_connection()
    row = conn.execute(
        "SELECT COALESCE(MAX(step_idx) + 1, 0) FROM steps WHERE game_id = ?", (game_id,)
    ).fetchone()
    step_idx = row[0]
    conn.execute(
        """
        INSERT INTO steps (game_id, step_idx, player_id, action_json, state_after_json, dice_roll)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (game_id, step_idx, player_id, json.dumps(action_json), json.dumps(state_after_json), dice_roll),
    )
    conn.commit()
    return step_idx


@track_database_operation("select", "steps")
def get_steps(game_id: str) -> List[sqlite3.Row]:
    """Get all steps for a game, ordered by step_idx."""
    conn = get_db_connection()
    return conn.execute(
        "SELECT * FROM steps WHERE game_id = ? ORDER BY step_idx ASC", (game_id,)
    ).fetchall()


def get_step_count(game_id: str) -> int:
    conn = get_db_connection()
    row = conn.execute("SELECT COUNT(*) FROM steps WHERE game_id = ?", (game_id,)).fetchone()
    return row[0] if row else 0


def rank_points(rank: int) -> int:
    """League points for a 1-based finishing rank."""
    if 1 <= rank <= len(RANK_POINTS):
        return RANK_POINTS[rank - 1]
    return RANK_POINTS[-1]


@track_database_operation("insert", "game_results")
def save_game_results(game_id: str, standings: List[Tuple[str, str, int]]) -> None:
    """Record the ranking; `standings` is (player_id, name, victory_points), best first."""
    conn = get_db_connection()
    conn.executemany(
        """
        INSERT OR REPLACE INTO game_results
            (game_id, player_id, player_name, rank, victory_points, points)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [
            (game_id, player_id, name, rank, victory_points, rank_points(rank))
            for rank, (player_id, name, victory_points) in enumerate(standings, start=1)
        ],
    )
    conn.commit()


@track_database_operation("select", "game_results")
def get_game_results(game_id: str) -> List[sqlite3.Row]:
    conn = get_db_connection()
    return conn.execute(
        "SELECT * FROM game_results WHERE game_id = ? ORDER BY rank ASC", (game_id,)
    ).fetchall()


class DatabaseGameStore:
    """Loads and saves running games for the GameManager."""

    def load_game(self, game_id: str) -> Optional[Tuple[GameState, List[str]]]:
        row = get_game(game_id)
        if row is None or not row["current_state_json"]:
            return None
        state = deserialize_game_state(json.loads(row["current_state_json"]))
        cards = json.loads(row["deck_json"]) if row["deck_json"] else []
        return state, cards

    def save_game(self, game_id: str, state: GameState, deck_cards: List[str]) -> None:
        save_game_state(game_id, serialize_game_state(state), deck_cards)
