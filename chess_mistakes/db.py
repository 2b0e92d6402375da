"""Report cache for the player mistake analysis."""

import hashlib
from contextlib import contextmanager
from typing import Iterable

import psycopg
from psycopg.types.json import Jsonb

from chess_mistakes.config import get_database_url
from chess_mistakes.models import SourceKind

MAX_CACHED_REPORTS = 50

SOURCE_KINDS: tuple[SourceKind, ...] = ("local", "lichess", "chesscom")

SCHEMA = """
CREATE TABLE IF NOT EXISTS player_reports (
    player_name TEXT NOT NULL,
    source_kind TEXT NOT NULL,
    content_hash TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    result JSONB NOT NULL,
    PRIMARY KEY (player_name, source_kind, content_hash)
)
"""


@contextmanager
def get_connection():
    """Context manager for database connections."""
    conn = psycopg.connect(get_database_url())
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def ensure_schema(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(SCHEMA)


def content_hash(pgn_texts: Iterable[str], fingerprint: str = "") -> str:
    """
    SHA-256 of the batch texts joined with NUL.
    A non-empty fingerprint (e.g. serialized options) is appended after another NUL.
    """
    payload = "\0".join(pgn_texts)
    if fingerprint:
        payload = f"{payload}\0{fingerprint}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _check_source_kind(source_kind: str) -> None:
    if source_kind not in SOURCE_KINDS:
        raise ValueError(f"source_kind must be one of {', '.join(SOURCE_KINDS)}, got {source_kind!r}")


def get_cached_report(
    conn: psycopg.Connection, player_name: str, source_kind: SourceKind, digest: str
) -> dict | None:
    _check_source_kind(source_kind)
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT result FROM player_reports
            WHERE player_name = %s AND source_kind = %s AND content_hash = %s
            """,
            (player_name, source_kind, digest),
        )
        row = cur.fetchone()
    return row[0] if row else None


def save_report(
    conn: psycopg.Connection,
    player_name: str,
    source_kind: SourceKind,
    digest: str,
    result: dict,
) -> None:
    """
    Store a report. Older entries for the same player and source are replaced,
    and the table is pruned to the newest MAX_CACHED_REPORTS rows.
    """
    _check_source_kind(source_kind)
    with conn.cursor() as cur:
        cur.execute(
            "DELETE FROM player_reports WHERE player_name = %s AND source_kind = %s",
            (player_name, source_kind),
        )
        cur.execute(
            """
            INSERT INTO player_reports (player_name, source_kind, content_hash, result)
            VALUES (%s, %s, %s, %s)
            """,
            (player_name, source_kind, digest, Jsonb(result)),
        )
        cur.execute(
            """
            DELETE FROM player_reports
            WHERE (player_name, source_kind, content_hash) NOT IN (
                SELECT player_name, source_kind, content_hash
                FROM player_reports
                ORDER BY created_at DESC
                LIMIT %s
            )
            """,
            (MAX_CACHED_REPORTS,),
        )
