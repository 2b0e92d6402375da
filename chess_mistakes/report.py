"""Report assembly: run the walker over a batch and package the result."""

import json
import logging
from concurrent.futures import Executor
from itertools import repeat

from chess_mistakes.aggregator import build_global_stats, build_opening_stats
from chess_mistakes.classifier import infer_theme
from chess_mistakes.config import DEFAULT_OPTIONS, AnalysisOptions
from chess_mistakes.models import AnalysisResult, AnalysisStats, GameAnalysis, ParsedGame, PlayerMistake
from chess_mistakes.pgn_reader import read_games
from chess_mistakes.walker import analyze_game

logger = logging.getLogger(__name__)


def sort_mistakes(mistakes: list[PlayerMistake]) -> list[PlayerMistake]:
    """Largest evaluation loss first. Stable, so ties keep input order."""
    return sorted(mistakes, key=lambda m: -(m.cp_loss_abs or 0))


def assemble(
    player_name: str,
    analyses: list[GameAnalysis],
    total_games: int,
    options: AnalysisOptions = DEFAULT_OPTIONS,
) -> AnalysisResult:
    """Theme pass, ordering and aggregation over per-game results."""
    mistakes = []
    for analysis in sorted(analyses, key=lambda a: a.index):
        mistakes.extend(analysis.mistakes)
    for m in mistakes:
        m.theme = infer_theme(m, options)
    mistakes = sort_mistakes(mistakes)

    return AnalysisResult(
        player_name=player_name,
        total_games_parsed=total_games,
        games_matched_player=sum(1 for a in analyses if a.matched),
        mistakes=mistakes,
        stats=AnalysisStats(
            by_opening=build_opening_stats(mistakes, options),
            summary=build_global_stats(mistakes, options),
        ),
    )


def analyze_games(
    games: list[ParsedGame],
    player_name: str,
    options: AnalysisOptions = DEFAULT_OPTIONS,
    executor: Executor | None = None,
) -> AnalysisResult:
    """Analyze parsed games, optionally fanning the per-game walk out over an executor."""
    options.validate()
    indexes = range(len(games))
    if executor is None:
        analyses = [analyze_game(g, i, player_name, options) for g, i in zip(games, indexes)]
    else:
        analyses = list(executor.map(analyze_game, games, indexes, repeat(player_name), repeat(options)))
    result = assemble(player_name, analyses, len(games), options)
    logger.info(
        "%s: %d games, %d matched, %d mistakes",
        player_name,
        result.total_games_parsed,
        result.games_matched_player,
        len(result.mistakes),
    )
    return result


def analyze_pgn(
    pgn_text: str,
    player_name: str,
    options: AnalysisOptions = DEFAULT_OPTIONS,
    executor: Executor | None = None,
) -> AnalysisResult:
    """Full pipeline from raw PGN text to a sorted, aggregated report."""
    return analyze_games(read_games(pgn_text), player_name, options, executor)


def to_json(result: AnalysisResult, indent: int | None = 2) -> str:
    return json.dumps(result.to_dict(), sort_keys=True, indent=indent, ensure_ascii=False)
