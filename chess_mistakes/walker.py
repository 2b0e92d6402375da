"""Mainline traversal of a single game.

Walks the mainline ply by ply on a python-chess board, classifies every move
of the tracked player and links each flagged move to the opponent's reply.
All board access of the analysis happens here.
"""

import logging
from collections import deque
from dataclasses import dataclass

import chess

from chess_mistakes.classifier import MoveEvidence, classify_move, reclassify_after_reply
from chess_mistakes.config import DEFAULT_OPTIONS, AnalysisOptions
from chess_mistakes.evaluation import cp_to_player, eval_cp_white
from chess_mistakes.features import material_in_pawns, positional_features, undeveloped_minors
from chess_mistakes.models import (
    AlternativeSuggestion,
    Color,
    GameAnalysis,
    GameIdentity,
    MistakeFlags,
    MoveTree,
    ParsedGame,
    PlayerMistake,
)
from chess_mistakes.notation import (
    chess_color,
    color_name,
    detect_player_color,
    format_variation_line,
    glyph_flags,
    move_label,
    sanitize_san,
)
from chess_mistakes.pgn_reader import game_identity

logger = logging.getLogger(__name__)

SAN_ERRORS = (chess.InvalidMoveError, chess.IllegalMoveError, chess.AmbiguousMoveError)


@dataclass
class PendingReply:
    """The one flagged record still waiting for the opponent's answer."""

    record: int
    material_baseline: int


def build_alternatives(
    tree: MoveTree,
    parent: int,
    mover: Color,
    move_number: int,
    player_color: Color,
    played_cp_after: int | None,
    options: AnalysisOptions = DEFAULT_OPTIONS,
) -> list[AlternativeSuggestion]:
    """One suggestion per sibling of the mainline move played from parent."""
    out = []
    for sibling in tree.siblings_of_mainline(parent)[: options.max_siblings_per_ply]:
        node = tree.node(sibling)
        cp_white = eval_cp_white(node.comments, options.mate_score)
        if cp_white is None:
            cp_white = eval_cp_white(node.starting_comments, options.mate_score)
        cp_player = cp_to_player(cp_white, player_color) if cp_white is not None else None
        gain = None
        if cp_player is not None and played_cp_after is not None:
            gain = cp_player - played_cp_after
        out.append(
            AlternativeSuggestion(
                san=sanitize_san(node.san),
                line=format_variation_line(tree, sibling, mover, move_number, options.max_variation_plies),
                cp_after_player=cp_player,
                gain_cp_vs_played=gain,
            )
        )
    return out


def choose_best_alternative(candidates: list[AlternativeSuggestion]) -> AlternativeSuggestion | None:
    """Highest evaluation wins, first on ties. Without evaluations, the first sibling."""
    if not candidates:
        return None
    with_eval = [c for c in candidates if c.cp_after_player is not None]
    if with_eval:
        return max(with_eval, key=lambda c: c.cp_after_player)
    return candidates[0]


def _attach_reply(
    mistake: PlayerMistake,
    pending: PendingReply,
    board: chess.Board,
    tracked: chess.Color,
    reply_san: str,
    reply_label: str,
    is_capture: bool,
    gives_check: bool,
    options: AnalysisOptions,
) -> None:
    loss = pending.material_baseline - material_in_pawns(board, tracked)
    mistake.opponent_reply_san = reply_san
    mistake.opponent_reply_move_label = reply_label
    mistake.fen_after_opponent_reply = board.fen()
    mistake.flags.opp_replied_with_capture = is_capture
    mistake.flags.opp_replied_with_check = gives_check
    mistake.flags.material_loss_soon_pawns = max(loss, 0)

    kind, severity, escalated = reclassify_after_reply(
        mistake.kind,
        mistake.severity,
        mistake.cp_loss_abs,
        mistake.flags.material_loss_soon_pawns,
        is_capture or gives_check,
        options,
    )
    mistake.kind = kind
    mistake.severity = severity
    mistake.flags.material_escalated = escalated


def walk_mainline(
    tree: MoveTree,
    board: chess.Board,
    identity: GameIdentity,
    player_name: str,
    player_color: Color,
    options: AnalysisOptions = DEFAULT_OPTIONS,
) -> list[PlayerMistake]:
    """Flag the tracked player's mainline moves. The board is advanced in place."""
    tracked = chess_color(player_color)
    mate_score = options.mate_score
    context: deque[str] = deque(maxlen=options.context_plies)
    mistakes: list[PlayerMistake] = []
    pending: PendingReply | None = None

    last_cp_white = eval_cp_white(tree.node(MoveTree.ROOT).comments, mate_score)
    parent = MoveTree.ROOT
    ply = 0

    while True:
        current = tree.mainline_child(parent)
        if current is None:
            break
        node = tree.node(current)

        mover = color_name(board.turn)
        is_player = board.turn == tracked
        move_number = board.fullmove_number
        fen_before = board.fen()
        san = sanitize_san(node.san)

        cp_before_white = eval_cp_white(node.starting_comments, mate_score)
        if cp_before_white is None:
            cp_before_white = last_cp_white

        has_question, has_double, has_exclamation = glyph_flags(node.san, node.nags)

        features_before = None
        und_before = 0
        if is_player:
            features_before = positional_features(board, tracked)
            und_before = undeveloped_minors(board, tracked)

        try:
            move = board.parse_san(san)
        except SAN_ERRORS as e:
            logger.warning("Game %d ply %d: cannot apply %r: %s", identity.index, ply, san, e)
            board.push(chess.Move.null())
            cp_after_white = eval_cp_white(node.comments, mate_score)
            if cp_after_white is not None:
                last_cp_white = cp_after_white
            if not is_player:
                pending = None
            context.append(san)
            parent = current
            ply += 1
            continue

        is_capture = board.is_capture(move)
        gives_check = board.gives_check(move)
        board.push(move)
        fen_after = board.fen()

        cp_after_white = eval_cp_white(node.comments, mate_score)
        if cp_after_white is not None:
            last_cp_white = cp_after_white

        if not is_player:
            if pending is not None:
                _attach_reply(
                    mistakes[pending.record],
                    pending,
                    board,
                    tracked,
                    san,
                    move_label(move_number, mover, san),
                    is_capture,
                    gives_check,
                    options,
                )
                pending = None
            context.append(san)
            parent = current
            ply += 1
            continue

        cp_before = cp_to_player(cp_before_white, player_color) if cp_before_white is not None else None
        cp_after = cp_to_player(cp_after_white, player_color) if cp_after_white is not None else None
        und_after = undeveloped_minors(board, tracked)
        opening_phase = ply < options.opening_phase_plies

        alternatives = build_alternatives(tree, parent, mover, move_number, player_color, cp_after, options)
        best = choose_best_alternative(alternatives)

        evidence = MoveEvidence(
            played_san=san,
            cp_before=cp_before,
            cp_after=cp_after,
            opening_phase=opening_phase,
            has_question_mark=has_question,
            has_double_question=has_double,
            undeveloped_before=und_before,
            undeveloped_after=und_after,
            best_alternative=best,
            alternatives=tuple(alternatives),
        )
        decision = classify_move(evidence, options)

        if decision is not None:
            context_before = list(context)
            mistakes.append(
                PlayerMistake(
                    game=identity,
                    player_name=player_name,
                    player_color=player_color,
                    ply=ply,
                    move_number=move_number,
                    mover=mover,
                    move_label=move_label(move_number, mover, san),
                    played_san=san,
                    fen_before=fen_before,
                    fen_after=fen_after,
                    kind=decision.kind,
                    severity=decision.severity,
                    flags=MistakeFlags(
                        has_question_mark=has_question,
                        has_double_question=has_double,
                        has_exclamation=has_exclamation,
                        opening_phase=opening_phase,
                        undeveloped_minors_before=und_before,
                        undeveloped_minors_after=und_after,
                        features_before=features_before,
                        features_after=positional_features(board, tracked),
                    ),
                    san_context_before=context_before,
                    cp_before_player=cp_before,
                    cp_after_player=cp_after,
                    cp_swing_player=evidence.cp_swing,
                    cp_loss_abs=decision.cp_loss_abs,
                    best_alternative=best,
                    alternative_candidates=alternatives[: options.max_alternative_candidates],
                    scheme_signature=" ".join(context_before[-options.scheme_plies:]) if options.scheme_plies else "",
                )
            )
            pending = PendingReply(
                record=len(mistakes) - 1,
                material_baseline=material_in_pawns(board, tracked),
            )

        context.append(san)
        parent = current
        ply += 1

    return mistakes


def analyze_game(
    game: ParsedGame,
    index: int,
    player_name: str,
    options: AnalysisOptions = DEFAULT_OPTIONS,
) -> GameAnalysis:
    """Match the player against the headers and walk the game if they took part."""
    identity = game_identity(game.headers, index)
    player_color = detect_player_color(player_name, identity.white, identity.black)
    if player_color is None:
        logger.debug("Game %d: %r matches neither side", index, player_name)
        return GameAnalysis(index=index, matched=False)

    analysis = GameAnalysis(index=index, matched=True, player_color=player_color)
    try:
        board = chess.Board(game.starting_fen) if game.starting_fen else chess.Board()
    except ValueError as e:
        logger.warning("Game %d: invalid start position %r: %s", index, game.starting_fen, e)
        return analysis

    analysis.mistakes = walk_mainline(game.tree, board, identity, player_name, player_color, options)
    logger.debug("Game %d: %d flagged moves for %s", index, len(analysis.mistakes), player_color)
    return analysis
