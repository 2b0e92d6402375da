"""Pytest configuration."""

import os

import pytest


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: mark test as requiring a live database (skipped in CI by default)"
    )


os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/chess_mistakes?user=postgres&password=postgres")


def make_pgn(movetext: str, **headers) -> str:
    """Helper: PGN text with the given headers (keyword names map to tag names)."""
    tags = {"Event": "Casual", "Site": "https://lichess.org/abcd1234", "White": "Alice", "Black": "Bob", "Result": "*"}
    tags.update(headers)
    header_text = "\n".join(f'[{k} "{v}"]' for k, v in tags.items())
    return f"{header_text}\n\n{movetext}\n"


def mainline_sans(tree) -> list[str]:
    """Helper: SAN of every mainline node of a MoveTree."""
    sans = []
    index = tree.mainline_child(tree.ROOT)
    while index is not None:
        sans.append(tree.node(index).san)
        index = tree.mainline_child(index)
    return sans


# Qh5 drops 300 cp for White; the sibling 2. Nf3 keeps +2.0
BLUNDER_MOVES = (
    "1. e4 { [%eval 0.3] } 1... e5 { [%eval 2.5] } "
    "2. Qh5 { [%eval -0.5] } ( 2. Nf3 { [%eval 2.0] } ) 2... Nc6 { [%eval -0.4] } *"
)

# 3. Ng5 is a mild inaccuracy until Black's queen takes the knight
ESCALATION_MOVES = (
    "1. e4 { [%eval 0.3] } 1... e6 { [%eval 0.3] } 2. Nf3 { [%eval 0.3] } "
    "2... d5 { [%eval 0.4] } 3. Ng5 { [%eval -0.3] } 3... Qxg5 { [%eval -3.5] } *"
)

HOPELESS_MOVES = (
    "1. e4 { [%eval -9.5] } 1... e5 { [%eval -9.5] } 2. Nf3?? { [%eval -9.5] } 2... Nc6 *"
)


@pytest.fixture
def blunder_pgn() -> str:
    return make_pgn(BLUNDER_MOVES, ECO="C20", Opening="King's Pawn Game: Wayward Queen Attack")


@pytest.fixture
def escalation_pgn() -> str:
    return make_pgn(ESCALATION_MOVES, ECO="C00", Opening="French Defense: Knight Variation")


@pytest.fixture
def hopeless_pgn() -> str:
    return make_pgn(HOPELESS_MOVES)
