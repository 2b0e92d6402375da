"""Evaluation extraction from PGN comments.

Engine output is embedded in comments as ``[%eval 0.35]`` (pawns),
``[%eval 0.35,24]`` (pawns with search depth) or ``[%eval #-3]`` (forced mate).
Values are read White-relative and converted to the tracked player's
perspective only where two evaluations are compared.
"""

import math
import re
from typing import Iterable

import chess
import chess.engine

from chess_mistakes.models import Color

MATE_SCORE = 100_000
MAX_MATE_DISTANCE = 999

EVAL_RE = re.compile(r"\[%eval\s+(#?[+-]?[0-9.]+)(?:\s*,\s*\d+)?\s*\]")


def score_to_cp(score: chess.engine.PovScore, mate_score: int = MATE_SCORE) -> int:
    """Centipawns from White's perspective. Mates saturate near +/-mate_score."""
    return score.white().score(mate_score=mate_score)


def parse_eval_token(token: str, mate_score: int = MATE_SCORE) -> int | None:
    """Convert one %eval value to White-relative centipawns."""
    if token.startswith("#"):
        body = token[1:]
        try:
            moves = int(body)
        except ValueError:
            return None
        sign = -1 if body.startswith("-") else 1
        distance = min(abs(moves), MAX_MATE_DISTANCE)
        if distance == 0:
            return sign * mate_score
        score = chess.engine.PovScore(chess.engine.Mate(sign * distance), chess.WHITE)
        return score_to_cp(score, mate_score)

    try:
        pawns = float(token)
    except ValueError:
        return None
    if not math.isfinite(pawns):
        return None
    score = chess.engine.PovScore(chess.engine.Cp(round(pawns * 100)), chess.WHITE)
    return score_to_cp(score, mate_score)


def eval_cp_white(comments: Iterable[str] | None, mate_score: int = MATE_SCORE) -> int | None:
    """First evaluation found in the comments, or None."""
    for comment in comments or ():
        match = EVAL_RE.search(comment)
        if not match:
            continue
        cp = parse_eval_token(match.group(1), mate_score)
        if cp is not None:
            return cp
    return None


def cp_to_player(cp_white: int, player_color: Color) -> int:
    return cp_white if player_color == "white" else -cp_white
