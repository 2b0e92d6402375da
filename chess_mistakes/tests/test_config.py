"""Tests for config.py"""

import pytest

from chess_mistakes.config import (
    DEFAULT_OPTIONS,
    AnalysisOptions,
    get_log_level,
    options_from_env,
)


def test_defaults():
    assert (DEFAULT_OPTIONS.cp_inaccuracy, DEFAULT_OPTIONS.cp_mistake, DEFAULT_OPTIONS.cp_blunder) == (50, 120, 250)
    assert DEFAULT_OPTIONS.hopeless_cp == 900
    assert DEFAULT_OPTIONS.hopeless_margin_cp == 50
    assert DEFAULT_OPTIONS.validate() is DEFAULT_OPTIONS


@pytest.mark.parametrize(
    "overrides",
    [
        {"cp_inaccuracy": 0},
        {"cp_mistake": 40},
        {"cp_blunder": 120},
        {"max_siblings_per_ply": -1},
        {"mate_score": 500},
    ],
)
def test_invalid_options_rejected(overrides):
    with pytest.raises(ValueError):
        DEFAULT_OPTIONS.with_overrides(**overrides)


def test_unknown_option_rejected():
    with pytest.raises(TypeError):
        DEFAULT_OPTIONS.with_overrides(cp_whatever=1)


def test_with_overrides_ignores_none_and_copies():
    options = DEFAULT_OPTIONS.with_overrides(cp_blunder=300, cp_mistake=None)
    assert options.cp_blunder == 300
    assert options.cp_mistake == 120
    assert DEFAULT_OPTIONS.cp_blunder == 250


def test_fingerprint_changes_with_options():
    assert DEFAULT_OPTIONS.fingerprint() == AnalysisOptions().fingerprint()
    assert DEFAULT_OPTIONS.fingerprint() != DEFAULT_OPTIONS.with_overrides(cp_blunder=300).fingerprint()


def test_options_from_env():
    options = options_from_env(
        {
            "CHESS_MISTAKES_CP_BLUNDER": "300",
            "CHESS_MISTAKES_ALLOW_SYMBOL_ONLY": "no",
            "CHESS_MISTAKES_CONTEXT_PLIES": "",
            "UNRELATED": "1",
        }
    )
    assert options.cp_blunder == 300
    assert options.allow_symbol_only is False
    assert options.context_plies == 8


def test_options_from_env_rejects_garbage():
    with pytest.raises(ValueError):
        options_from_env({"CHESS_MISTAKES_CP_BLUNDER": "lots"})
    with pytest.raises(ValueError):
        options_from_env({"CHESS_MISTAKES_ALLOW_SYMBOL_ONLY": "maybe"})


def test_log_level_from_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert get_log_level() == "WARNING"
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert get_log_level() == "DEBUG"
