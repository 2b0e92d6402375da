"""SAN, NAG and player-name helpers shared by the walker and classifier."""

import re

import chess

from chess_mistakes.models import Color, MoveTree

# Numeric Annotation Glyphs: ?=2, ??=4, ?!=6 and !=1, !!=3, !?=5
NEGATIVE_NAGS = frozenset({2, 4, 6})
POSITIVE_NAGS = frozenset({1, 3, 5})
DOUBLE_QUESTION_NAG = 4

_TRAILING_GLYPHS = re.compile(r"[!?]+$")
_NAME_PUNCTUATION = re.compile(r"[.,;:_\-]+")
_WHITESPACE = re.compile(r"\s+")

CENTRAL_FILES = frozenset("cdef")
FLANK_FILES = frozenset("abgh")


def sanitize_san(san: str) -> str:
    """Strip trailing !/? glyphs, keep check and mate markers."""
    return _TRAILING_GLYPHS.sub("", san.strip())


def glyph_flags(raw_san: str, nags) -> tuple[bool, bool, bool]:
    """(has_question_mark, has_double_question, has_exclamation) from SAN suffix and NAGs."""
    nag_set = set(nags or ())
    has_question = "?" in raw_san or bool(nag_set & NEGATIVE_NAGS)
    has_double = "??" in raw_san or DOUBLE_QUESTION_NAG in nag_set
    has_exclamation = "!" in raw_san or bool(nag_set & POSITIVE_NAGS)
    return has_question, has_double, has_exclamation


def is_capture_san(san: str) -> bool:
    return "x" in san


def is_check_san(san: str) -> bool:
    return "+" in san or "#" in san


def is_castling_san(san: str) -> bool:
    return san.rstrip("+#") in ("O-O", "O-O-O", "0-0", "0-0-0")


def is_developing_piece_move(san: str) -> bool:
    return san[:1] in ("N", "B")


def is_pawn_move(san: str) -> bool:
    return bool(san) and san[0] in "abcdefgh"


def is_central_pawn_move(san: str) -> bool:
    return is_pawn_move(san) and san[0] in CENTRAL_FILES


def is_flank_pawn_move(san: str) -> bool:
    return is_pawn_move(san) and san[0] in FLANK_FILES


def looks_like_opening_principle_violation(san: str) -> bool:
    """Early queen, rook or king moves and flank pawn pushes."""
    if is_castling_san(san) or is_developing_piece_move(san):
        return False
    if san[:1] in ("Q", "R", "K"):
        return True
    return is_flank_pawn_move(san)


def is_clearly_non_developing_move(san: str) -> bool:
    """Queen moves and non-central pawn moves."""
    if is_castling_san(san) or is_developing_piece_move(san):
        return False
    if san.startswith("Q"):
        return True
    return is_pawn_move(san) and not is_central_pawn_move(san)


def color_name(color: chess.Color) -> Color:
    return "white" if color == chess.WHITE else "black"


def chess_color(color: Color) -> chess.Color:
    return chess.WHITE if color == "white" else chess.BLACK


def other_color(color: Color) -> Color:
    return "black" if color == "white" else "white"


def move_label(move_number: int, mover: Color, san: str) -> str:
    if mover == "white":
        return f"{move_number}. {san}"
    return f"{move_number}... {san}"


def format_variation_line(
    tree: MoveTree,
    start: int,
    mover: Color,
    move_number: int,
    max_plies: int,
) -> str:
    """Numbered SAN text following a variation's own mainline from start."""
    parts = [f"{move_number}." if mover == "white" else f"{move_number}..."]
    index: int | None = start
    for i in range(max_plies):
        if index is None:
            break
        if i and mover == "white":
            parts.append(f"{move_number}.")
        parts.append(sanitize_san(tree.node(index).san))
        index = tree.mainline_child(index)
        if mover == "black":
            move_number += 1
        mover = other_color(mover)
    return _WHITESPACE.sub(" ", " ".join(parts)).strip()


def normalize_name(name: str | None) -> str:
    lowered = (name or "").lower()
    return _WHITESPACE.sub(" ", _NAME_PUNCTUATION.sub(" ", lowered)).strip()


def detect_player_color(player_name: str, white: str | None, black: str | None) -> Color | None:
    """Which side the player is on, or None when neither header plausibly names them."""
    player = normalize_name(player_name)
    if not player:
        return None
    w = normalize_name(white)
    b = normalize_name(black)

    if w and (player in w or w in player):
        return "white"
    if b and (player in b or b in player):
        return "black"

    tokens = [t for t in player.split(" ") if t]
    if w and any(t in w for t in tokens):
        return "white"
    if b and any(t in b for t in tokens):
        return "black"
    return None
