"""Tests for notation.py"""

import chess

from chess_mistakes.models import MoveTree
from chess_mistakes.notation import (
    color_name,
    detect_player_color,
    format_variation_line,
    glyph_flags,
    is_castling_san,
    is_clearly_non_developing_move,
    looks_like_opening_principle_violation,
    move_label,
    normalize_name,
    sanitize_san,
)


def test_sanitize_keeps_check_markers():
    assert sanitize_san("Qxf7#!!") == "Qxf7#"
    assert sanitize_san(" Nf3?! ") == "Nf3"
    assert sanitize_san("O-O+") == "O-O+"


def test_glyph_flags_from_suffix_and_nags():
    assert glyph_flags("Nf3??", []) == (True, True, False)
    assert glyph_flags("Nf3", [4]) == (True, True, False)
    assert glyph_flags("Nf3", [6]) == (True, False, False)
    assert glyph_flags("Nf3", [1]) == (False, False, True)
    assert glyph_flags("Nf3", None) == (False, False, False)


def test_castling_detection():
    assert is_castling_san("O-O")
    assert is_castling_san("O-O-O+")
    assert not is_castling_san("Kg1")


def test_opening_principle_shapes():
    assert looks_like_opening_principle_violation("Qh5")
    assert looks_like_opening_principle_violation("Rb1")
    assert looks_like_opening_principle_violation("Ke2")
    assert looks_like_opening_principle_violation("h4")
    assert not looks_like_opening_principle_violation("e4")
    assert not looks_like_opening_principle_violation("Nf3")
    assert not looks_like_opening_principle_violation("O-O")


def test_non_developing_shapes():
    assert is_clearly_non_developing_move("Qd3")
    assert is_clearly_non_developing_move("a3")
    assert not is_clearly_non_developing_move("d4")
    assert not is_clearly_non_developing_move("Bc4")
    assert not is_clearly_non_developing_move("Rb1")


def test_move_label():
    assert move_label(12, "white", "Nf3") == "12. Nf3"
    assert move_label(12, "black", "Nf6") == "12... Nf6"


def test_color_name():
    assert color_name(chess.WHITE) == "white"
    assert color_name(chess.BLACK) == "black"


def test_format_variation_line_numbers_moves():
    tree = MoveTree()
    a = tree.add_child(MoveTree.ROOT, "Nxe4")
    b = tree.add_child(a, "Qe2")
    c = tree.add_child(b, "d5")
    tree.add_child(c, "d3")
    assert format_variation_line(tree, a, "black", 5, 3) == "5... Nxe4 6. Qe2 d5"
    assert format_variation_line(tree, a, "black", 5, 10) == "5... Nxe4 6. Qe2 d5 7. d3"


def test_format_variation_line_follows_variation_mainline():
    tree = MoveTree()
    a = tree.add_child(MoveTree.ROOT, "Nf3!")
    tree.add_child(a, "Nc6")
    tree.add_child(a, "d6")
    assert format_variation_line(tree, a, "white", 2, 10) == "2. Nf3 Nc6"


def test_normalize_name():
    assert normalize_name("  Carlsen,  Magnus ") == "carlsen magnus"
    assert normalize_name(None) == ""


def test_player_matched_by_token_overlap():
    assert detect_player_color("magnus carlsen", "Carlsen, Magnus", "Nepomniachtchi, Ian") == "white"


def test_player_matched_by_substring():
    assert detect_player_color("DrNykterstein", "Someone", "drnykterstein") == "black"


def test_white_wins_ties():
    assert detect_player_color("alice", "Alice", "Alice") == "white"


def test_unmatched_and_empty_player():
    assert detect_player_color("zed", "Alice", "Bob") is None
    assert detect_player_color("", "Alice", "Bob") is None
    assert detect_player_color("alice", None, None) is None
