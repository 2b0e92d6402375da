"""Tests for cli.py"""

import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chess_mistakes.cli import main
from chess_mistakes.config import DEFAULT_OPTIONS
from chess_mistakes.db import content_hash


@pytest.fixture
def pgn_file(tmp_path, blunder_pgn):
    path = tmp_path / "games.pgn"
    path.write_text(blunder_pgn)
    return path


def test_missing_pgn_file_exits_1(tmp_path, capsys):
    assert main(["--pgn", str(tmp_path / "nope.pgn"), "--player", "Alice"]) == 1
    assert "not found" in capsys.readouterr().err


def test_player_required_with_pgn(pgn_file):
    with pytest.raises(SystemExit):
        main(["--pgn", str(pgn_file)])


def test_writes_report_to_output_file(pgn_file, tmp_path, capsys):
    out = tmp_path / "report.json"
    assert main(["--pgn", str(pgn_file), "--player", "Alice", "--output", str(out)]) == 0

    data = json.loads(out.read_text())
    assert data["player_name"] == "Alice"
    assert len(data["mistakes"]) == 1
    assert "1/1 games matched Alice, 1 mistakes." in capsys.readouterr().err


def test_prints_report_to_stdout(pgn_file, capsys):
    assert main(["--pgn", str(pgn_file), "--player", "Alice"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["mistakes"][0]["played_san"] == "Qh5"


def test_threshold_flags(pgn_file, capsys):
    assert main(["--pgn", str(pgn_file), "--player", "Alice", "--cp-blunder", "400"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["mistakes"][0]["severity"] == "mistake"


def test_invalid_thresholds_exit_2(pgn_file, capsys):
    assert main(["--pgn", str(pgn_file), "--player", "Alice", "--cp-mistake", "10"]) == 2
    assert "invalid options" in capsys.readouterr().err


def test_boolean_flag(tmp_path, capsys, hopeless_pgn):
    path = tmp_path / "g.pgn"
    path.write_text(hopeless_pgn.replace("-9.5", "-1.0"))
    assert main(["--pgn", str(path), "--player", "Alice", "--no-allow-symbol-only"]) == 0
    assert json.loads(capsys.readouterr().out)["mistakes"] == []


def test_workers_use_an_executor(pgn_file, capsys):
    with patch("chess_mistakes.cli.ProcessPoolExecutor", ThreadPoolExecutor):
        assert main(["--pgn", str(pgn_file), "--player", "Alice", "--workers", "2"]) == 0
    assert len(json.loads(capsys.readouterr().out)["mistakes"]) == 1


def test_lichess_download(blunder_pgn, capsys):
    with patch("chess_mistakes.cli.download_games", new=AsyncMock(return_value=blunder_pgn)) as download:
        assert main(["--lichess-user", "alice", "--max-games", "5"]) == 0
    assert download.call_args[0][0] == "alice"
    assert download.call_args[1]["max_games"] == 5
    assert json.loads(capsys.readouterr().out)["player_name"] == "alice"


def test_parallel_enqueues_task(pgn_file, capsys):
    with patch("chess_mistakes.celery_app.analyze_batch_task") as task:
        task.delay.return_value.id = "task-123"
        assert main(["--pgn", str(pgn_file), "--player", "Alice", "--parallel"]) == 0
    args = task.delay.call_args[0]
    assert args[1:3] == ("Alice", "local")
    assert args[3]["cp_blunder"] == 250
    assert capsys.readouterr().out.strip() == "task-123"


def test_cache_hit_prints_cached_report(pgn_file, capsys):
    with patch("chess_mistakes.cli.get_connection") as get_conn, \
         patch("chess_mistakes.cli.ensure_schema"), \
         patch("chess_mistakes.cli.get_cached_report", return_value={"cached": True}), \
         patch("chess_mistakes.cli.save_report") as save:
        get_conn.return_value.__enter__.return_value = MagicMock()
        assert main(["--pgn", str(pgn_file), "--player", "Alice", "--cache"]) == 0
    assert json.loads(capsys.readouterr().out) == {"cached": True}
    save.assert_not_called()


def test_cache_miss_saves_report(pgn_file):
    with patch("chess_mistakes.cli.get_connection") as get_conn, \
         patch("chess_mistakes.cli.ensure_schema"), \
         patch("chess_mistakes.cli.get_cached_report", return_value=None), \
         patch("chess_mistakes.cli.save_report") as save:
        get_conn.return_value.__enter__.return_value = MagicMock()
        assert main(["--pgn", str(pgn_file), "--player", "Alice", "--cache"]) == 0
    save.assert_called_once()
    assert save.call_args[0][1:3] == ("Alice", "local")


def test_cache_key_matches_celery_and_api_for_several_files(tmp_path, blunder_pgn, escalation_pgn):
    first = tmp_path / "a.pgn"
    second = tmp_path / "b.pgn"
    first.write_text(blunder_pgn)
    second.write_text(escalation_pgn)
    with patch("chess_mistakes.cli.get_connection") as get_conn, \
         patch("chess_mistakes.cli.ensure_schema"), \
         patch("chess_mistakes.cli.get_cached_report", return_value=None), \
         patch("chess_mistakes.cli.save_report") as save:
        get_conn.return_value.__enter__.return_value = MagicMock()
        assert main(["--pgn", str(first), str(second), "--player", "Alice", "--cache"]) == 0
    joined = blunder_pgn + "\n\n" + escalation_pgn
    assert save.call_args[0][3] == content_hash([joined], DEFAULT_OPTIONS.fingerprint())
