"""Positional features of a board, from one side's point of view.

All functions are pure over a ``chess.Board``. Ranks and files use the
python-chess 0-7 coordinates.
"""

import chess

from chess_mistakes.models import (
    DevelopmentFeatures,
    KingSafety,
    PawnStructure,
    PositionalFeatures,
    SpaceFeatures,
)

PIECE_VALUES = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}

MINOR_HOME_SQUARES = {
    chess.WHITE: (chess.B1, chess.G1, chess.C1, chess.F1),
    chess.BLACK: (chess.B8, chess.G8, chess.C8, chess.F8),
}

CASTLED_KING_SQUARES = {
    chess.WHITE: (chess.G1, chess.C1),
    chess.BLACK: (chess.G8, chess.C8),
}

# Shield squares for a castled king: (kingside, queenside)
CASTLED_SHIELDS = {
    chess.WHITE: ((chess.F2, chess.G2, chess.H2), (chess.A2, chess.B2, chess.C2)),
    chess.BLACK: ((chess.F7, chess.G7, chess.H7), (chess.A7, chess.B7, chess.C7)),
}

EXTENDED_CENTER = (
    chess.C4, chess.D4, chess.E4, chess.F4,
    chess.C5, chess.D5, chess.E5, chess.F5,
)

QUEEN_HOME = {chess.WHITE: chess.D1, chess.BLACK: chess.D8}


def material_in_pawns(board: chess.Board, color: chess.Color) -> int:
    return sum(
        len(board.pieces(piece_type, color)) * value
        for piece_type, value in PIECE_VALUES.items()
    )


def undeveloped_minors(board: chess.Board, color: chess.Color) -> int:
    """Knights and bishops still standing on their home squares."""
    count = 0
    for square in MINOR_HOME_SQUARES[color]:
        piece = board.piece_at(square)
        if piece and piece.color == color and piece.piece_type in (chess.KNIGHT, chess.BISHOP):
            count += 1
    return count


def pawn_counts_by_file(board: chess.Board, color: chess.Color) -> list[int]:
    counts = [0] * 8
    for square in board.pieces(chess.PAWN, color):
        counts[chess.square_file(square)] += 1
    return counts


def is_castled_king_square(color: chess.Color, king_square: int | None) -> bool:
    return king_square is not None and king_square in CASTLED_KING_SQUARES[color]


def _own_pawn_on(board: chess.Board, square: int, color: chess.Color) -> bool:
    return board.piece_at(square) == chess.Piece(chess.PAWN, color)


def king_shield(board: chess.Board, color: chess.Color, king_square: int | None) -> int:
    """Own pawns sheltering the king: castled shield squares, else the three squares ahead."""
    if king_square is None:
        return 0
    if is_castled_king_square(color, king_square):
        kingside, queenside = CASTLED_SHIELDS[color]
        shield = kingside if chess.square_file(king_square) == 6 else queenside
        return sum(1 for square in shield if _own_pawn_on(board, square, color))

    forward_rank = chess.square_rank(king_square) + (1 if color == chess.WHITE else -1)
    if not 0 <= forward_rank <= 7:
        return 0
    file = chess.square_file(king_square)
    count = 0
    for f in (file - 1, file, file + 1):
        if 0 <= f <= 7 and _own_pawn_on(board, chess.square(f, forward_rank), color):
            count += 1
    return count


def has_enemy_heavy_xray(board: chess.Board, king_square: int, color: chess.Color) -> bool:
    """An enemy rook or queen is the first piece met along the king's file."""
    file = chess.square_file(king_square)
    rank = chess.square_rank(king_square)
    for step in (1, -1):
        r = rank + step
        while 0 <= r <= 7:
            piece = board.piece_at(chess.square(file, r))
            if piece is None:
                r += step
                continue
            if piece.color != color and piece.piece_type in (chess.ROOK, chess.QUEEN):
                return True
            break
    return False


def king_safety(board: chess.Board, color: chess.Color) -> KingSafety:
    king_square = board.king(color)
    if king_square is None:
        return KingSafety()

    white_files = pawn_counts_by_file(board, chess.WHITE)
    black_files = pawn_counts_by_file(board, chess.BLACK)
    file = chess.square_file(king_square)

    return KingSafety(
        castled=is_castled_king_square(color, king_square),
        shield=king_shield(board, color, king_square),
        on_open_file=white_files[file] + black_files[file] == 0,
        xray_heavy=has_enemy_heavy_xray(board, king_square, color),
    )


def pawn_structure(board: chess.Board, color: chess.Color) -> PawnStructure:
    pawns = list(board.pieces(chess.PAWN, color))
    by_file = pawn_counts_by_file(board, color)

    islands = 0
    in_island = False
    for count in by_file:
        if count and not in_island:
            islands += 1
        in_island = count > 0

    doubled = sum(max(0, count - 1) for count in by_file)

    isolated = 0
    for f, count in enumerate(by_file):
        if not count:
            continue
        left = by_file[f - 1] if f > 0 else 0
        right = by_file[f + 1] if f < 7 else 0
        if not left and not right:
            isolated += count

    # Most advanced enemy pawn per file, seen from the enemy's side
    enemy_max = [-1] * 8
    enemy_min = [8] * 8
    for square in board.pieces(chess.PAWN, not color):
        f, r = chess.square_file(square), chess.square_rank(square)
        enemy_max[f] = max(enemy_max[f], r)
        enemy_min[f] = min(enemy_min[f], r)

    passed = 0
    for square in pawns:
        f, r = chess.square_file(square), chess.square_rank(square)
        blocked = False
        for ff in (f - 1, f, f + 1):
            if not 0 <= ff <= 7:
                continue
            if color == chess.WHITE and enemy_max[ff] > r:
                blocked = True
            elif color == chess.BLACK and enemy_min[ff] < r:
                blocked = True
            if blocked:
                break
        if not blocked:
            passed += 1

    return PawnStructure(islands=islands, isolated=isolated, doubled=doubled, passed=passed)


def _in_enemy_half(square: int, color: chess.Color) -> bool:
    rank = chess.square_rank(square)
    return rank >= 4 if color == chess.WHITE else rank <= 3


def space_features(board: chess.Board, color: chess.Color) -> SpaceFeatures:
    center_presence = 0
    for square in EXTENDED_CENTER:
        piece = board.piece_at(square)
        if piece and piece.color == color:
            center_presence += 1
    pawns_forward = sum(1 for sq in board.pieces(chess.PAWN, color) if _in_enemy_half(sq, color))
    pieces_forward = sum(
        1
        for piece_type in (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN)
        for sq in board.pieces(piece_type, color)
        if _in_enemy_half(sq, color)
    )
    return SpaceFeatures(center_presence=center_presence, space_score=pawns_forward * 2 + pieces_forward)


def queen_moved(board: chess.Board, color: chess.Color) -> bool:
    queens = board.pieces(chess.QUEEN, color)
    if not queens:
        return False
    return QUEEN_HOME[color] not in queens


def development_features(board: chess.Board, color: chess.Color) -> DevelopmentFeatures:
    developed = 4 - undeveloped_minors(board, color)
    castled = is_castled_king_square(color, board.king(color))

    central_advanced = 0
    for square in board.pieces(chess.PAWN, color):
        if chess.square_file(square) not in (2, 3, 4, 5):
            continue
        rank = chess.square_rank(square)
        if (color == chess.WHITE and rank >= 2) or (color == chess.BLACK and rank <= 5):
            central_advanced += 1

    return DevelopmentFeatures(
        score=developed * 2 + (2 if castled else 0) + central_advanced,
        developed_minors=developed,
        castled=castled,
        queen_moved=queen_moved(board, color),
    )


def positional_features(board: chess.Board, color: chess.Color) -> PositionalFeatures:
    return PositionalFeatures(
        king=king_safety(board, color),
        pawns=pawn_structure(board, color),
        space=space_features(board, color),
        development=development_features(board, color),
    )
