"""Tests for db.py"""

from unittest.mock import MagicMock

import pytest

from chess_mistakes.db import (
    MAX_CACHED_REPORTS,
    content_hash,
    ensure_schema,
    get_cached_report,
    save_report,
)


@pytest.fixture
def mock_db_conn():
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value.__enter__ = MagicMock(return_value=cursor)
    conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    return conn, cursor


def test_content_hash_is_stable_and_order_sensitive():
    assert content_hash(["a", "b"]) == content_hash(["a", "b"])
    assert content_hash(["a", "b"]) != content_hash(["b", "a"])
    assert content_hash(["ab"]) != content_hash(["a", "b"])
    assert len(content_hash([])) == 64


def test_content_hash_includes_fingerprint():
    assert content_hash(["a"], "x") != content_hash(["a"])
    assert content_hash(["a"], "") == content_hash(["a"])


def test_ensure_schema_creates_table(mock_db_conn):
    conn, cursor = mock_db_conn
    ensure_schema(conn)
    sql = cursor.execute.call_args[0][0]
    assert "CREATE TABLE IF NOT EXISTS player_reports" in sql
    assert "PRIMARY KEY (player_name, source_kind, content_hash)" in sql


def test_get_cached_report_hit_and_miss(mock_db_conn):
    conn, cursor = mock_db_conn
    cursor.fetchone.return_value = ({"player_name": "alice"},)
    assert get_cached_report(conn, "alice", "local", "abc") == {"player_name": "alice"}
    assert cursor.execute.call_args[0][1] == ("alice", "local", "abc")

    cursor.fetchone.return_value = None
    assert get_cached_report(conn, "alice", "local", "abc") is None


def test_save_report_replaces_and_prunes(mock_db_conn):
    conn, cursor = mock_db_conn
    save_report(conn, "alice", "lichess", "abc", {"mistakes": []})

    statements = [c[0][0] for c in cursor.execute.call_args_list]
    assert len(statements) == 3
    assert statements[0].startswith("DELETE FROM player_reports WHERE player_name")
    assert "INSERT INTO player_reports" in statements[1]
    assert "LIMIT" in statements[2]
    assert cursor.execute.call_args_list[2][0][1] == (MAX_CACHED_REPORTS,)


def test_unknown_source_kind_rejected(mock_db_conn):
    conn, _ = mock_db_conn
    with pytest.raises(ValueError):
        save_report(conn, "alice", "fics", "abc", {})
    with pytest.raises(ValueError):
        get_cached_report(conn, "alice", "fics", "abc")


@pytest.mark.integration
def test_round_trip_against_live_database():
    from chess_mistakes.db import get_connection

    digest = content_hash(["integration-test"])
    with get_connection() as conn:
        ensure_schema(conn)
        save_report(conn, "integration-player", "local", digest, {"ok": True})
        assert get_cached_report(conn, "integration-player", "local", digest) == {"ok": True}
        conn.rollback()
