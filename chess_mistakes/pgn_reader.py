"""PGN batch reading.

Wraps ``chess.pgn`` and flattens each game into a ``MoveTree`` arena so the
walker never holds references into python-chess nodes.
"""

import io
import logging
from urllib.parse import urlparse

import chess
import chess.pgn

from chess_mistakes.models import GameIdentity, MoveTree, ParsedGame

logger = logging.getLogger(__name__)

PLACEHOLDER_HEADERS = {
    "Event": "?",
    "Site": "?",
    "Date": "????.??.??",
    "Round": "?",
    "White": "?",
    "Black": "?",
    "Result": "*",
}

_UNKNOWN_HEADER_VALUES = {"", "?", "????.??.??"}


def _comment_texts(comment: str) -> list[str]:
    return [comment] if comment else []


def _is_blank(game: chess.pgn.Game) -> bool:
    if game.variations or game.errors:
        return False
    return dict(game.headers) == PLACEHOLDER_HEADERS


def _read_all(pgn_text: str) -> list[chess.pgn.Game]:
    games = []
    stream = io.StringIO(pgn_text)
    while True:
        game = chess.pgn.read_game(stream)
        if game is None:
            break
        if _is_blank(game):
            continue
        games.append(game)
    return games


def placeholder_wrap(pgn_text: str) -> str:
    """Prefix bare move text with the Seven Tag Roster placeholders."""
    tags = "\n".join(f'[{name} "{value}"]' for name, value in PLACEHOLDER_HEADERS.items())
    return f"{tags}\n\n{pgn_text.strip()}\n"


def _read_with_fallback(pgn_text: str) -> list[chess.pgn.Game]:
    if not pgn_text or not pgn_text.strip():
        return []
    games = _read_all(pgn_text)
    if not games:
        logger.debug("No games read, retrying with placeholder headers")
        games = _read_all(placeholder_wrap(pgn_text))
    return games


def flatten(game: chess.pgn.Game) -> MoveTree:
    """Copy a python-chess game tree into an index-addressed arena.

    Children keep their order, so index 0 of every child list is the mainline.
    """
    tree = MoveTree()
    root = tree.node(MoveTree.ROOT)
    root.comments = _comment_texts(game.comment)

    stack = [(game, MoveTree.ROOT, game.board())]
    while stack:
        pgn_node, index, board = stack.pop()
        pending = []
        for child in pgn_node.variations:
            san = board.san(child.move)
            child_index = tree.add_child(
                index,
                san,
                nags=sorted(child.nags),
                comments=_comment_texts(child.comment),
                starting_comments=_comment_texts(child.starting_comment),
            )
            child_board = board.copy(stack=False)
            child_board.push(child.move)
            pending.append((child, child_index, child_board))
        stack.extend(reversed(pending))
    return tree


def _to_parsed(game: chess.pgn.Game, index: int) -> ParsedGame:
    headers = dict(PLACEHOLDER_HEADERS)
    headers.update(game.headers)
    errors = [str(e) for e in game.errors]
    for error in errors:
        logger.warning("Game %d: PGN parser error: %s", index, error)

    starting_fen = headers.get("FEN") or None
    try:
        tree = flatten(game)
    except ValueError as e:
        # game.board() rejects an invalid FEN header; the walker reports it again
        logger.warning("Game %d: cannot set up start position: %s", index, e)
        tree = MoveTree()
    return ParsedGame(headers=headers, tree=tree, starting_fen=starting_fen, errors=errors)


def read_games(pgn_text: str) -> list[ParsedGame]:
    """Parse every game in a PGN batch."""
    games = _read_with_fallback(pgn_text)
    logger.debug("Read %d games", len(games))
    return [_to_parsed(game, i) for i, game in enumerate(games)]


def _header(headers: dict[str, str], name: str) -> str | None:
    value = (headers.get(name) or "").strip()
    if value in _UNKNOWN_HEADER_VALUES:
        return None
    return value


def extract_source_name(site: str | None, event: str | None = None) -> str:
    """Human label of the platform a game came from.

    Site wins over Event; a plain label that names no known platform is
    returned as written.
    """
    value = (site or "").strip() or (event or "").strip()
    if not value:
        return "Unknown"
    lowered = value.lower()
    if "chess.com" in lowered:
        return "Chess.com"
    if "lichess" in lowered:
        return "Lichess"
    parsed = urlparse(value)
    if parsed.scheme in ("http", "https") and parsed.hostname:
        hostname = parsed.hostname
        return hostname[4:] if hostname.startswith("www.") else hostname
    return value


def game_identity(headers: dict[str, str], index: int) -> GameIdentity:
    site = _header(headers, "Site")
    event = _header(headers, "Event")
    return GameIdentity(
        index=index,
        source=extract_source_name(site, event),
        site=site,
        event=event,
        date=_header(headers, "Date"),
        round=_header(headers, "Round"),
        white=_header(headers, "White"),
        black=_header(headers, "Black"),
        result=_header(headers, "Result"),
        eco=_header(headers, "ECO"),
        opening=_header(headers, "Opening"),
        variation=_header(headers, "Variation"),
    )
