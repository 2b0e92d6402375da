"""Data models for the player mistake report."""

from dataclasses import asdict, dataclass, field
from typing import ClassVar, Literal

Color = Literal["white", "black"]

MistakeKind = Literal[
    "tactical_blunder",
    "tactical_mistake",
    "tactical_inaccuracy",
    "material_blunder",
    "opening_principle",
    "piece_inactivity",
    "positional_misplay",
    "unknown",
]

Severity = Literal["blunder", "mistake", "inaccuracy", "info"]

Theme = Literal[
    "missed_tactic",
    "hanging_material",
    "king_exposed",
    "development",
    "space",
    "pawn_structure",
    "plan",
    "unknown",
]

SourceKind = Literal["local", "lichess", "chesscom"]

MISTAKE_KINDS: tuple[MistakeKind, ...] = (
    "tactical_blunder",
    "tactical_mistake",
    "tactical_inaccuracy",
    "material_blunder",
    "opening_principle",
    "piece_inactivity",
    "positional_misplay",
    "unknown",
)

TACTICAL_KINDS: frozenset[MistakeKind] = frozenset(
    {"tactical_blunder", "tactical_mistake", "tactical_inaccuracy"}
)

SEVERITIES: tuple[Severity, ...] = ("blunder", "mistake", "inaccuracy", "info")

THEMES: tuple[Theme, ...] = (
    "missed_tactic",
    "hanging_material",
    "king_exposed",
    "development",
    "space",
    "pawn_structure",
    "plan",
    "unknown",
)


@dataclass(frozen=True)
class GameIdentity:
    """Per-game header metadata. Created once per parsed game."""

    index: int
    source: str = "Unknown"
    site: str | None = None
    event: str | None = None
    date: str | None = None
    round: str | None = None
    white: str | None = None
    black: str | None = None
    result: str | None = None
    eco: str | None = None
    opening: str | None = None
    variation: str | None = None


@dataclass
class MoveTreeNode:
    """One ply. children[0] continues the line, children[1:] are same-ply alternatives."""

    san: str = ""
    nags: list[int] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    starting_comments: list[str] = field(default_factory=list)
    children: list[int] = field(default_factory=list)


@dataclass
class MoveTree:
    """Arena of move nodes addressed by index. Node 0 is the root and carries no move."""

    ROOT: ClassVar[int] = 0

    nodes: list[MoveTreeNode] = field(default_factory=lambda: [MoveTreeNode()])

    def add_child(
        self,
        parent: int,
        san: str,
        *,
        nags: list[int] | None = None,
        comments: list[str] | None = None,
        starting_comments: list[str] | None = None,
    ) -> int:
        """Append a node under parent and return its index."""
        self.nodes.append(
            MoveTreeNode(
                san=san,
                nags=list(nags or []),
                comments=list(comments or []),
                starting_comments=list(starting_comments or []),
            )
        )
        index = len(self.nodes) - 1
        self.nodes[parent].children.append(index)
        return index

    def node(self, index: int) -> MoveTreeNode:
        return self.nodes[index]

    def mainline_child(self, index: int) -> int | None:
        children = self.nodes[index].children
        return children[0] if children else None

    def siblings_of_mainline(self, parent: int) -> list[int]:
        """Alternatives to the mainline move played from parent."""
        return self.nodes[parent].children[1:]


@dataclass
class ParsedGame:
    """A game as read from PGN: headers, starting FEN and the move arena."""

    headers: dict[str, str]
    tree: MoveTree
    starting_fen: str | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class KingSafety:
    castled: bool = False
    shield: int = 0
    on_open_file: bool = False
    xray_heavy: bool = False


@dataclass
class PawnStructure:
    islands: int = 0
    isolated: int = 0
    doubled: int = 0
    passed: int = 0


@dataclass
class SpaceFeatures:
    center_presence: int = 0
    space_score: int = 0


@dataclass
class DevelopmentFeatures:
    score: int = 0
    developed_minors: int = 0
    castled: bool = False
    queen_moved: bool = False


@dataclass
class PositionalFeatures:
    """Tracked-player features of one board snapshot."""

    king: KingSafety = field(default_factory=KingSafety)
    pawns: PawnStructure = field(default_factory=PawnStructure)
    space: SpaceFeatures = field(default_factory=SpaceFeatures)
    development: DevelopmentFeatures = field(default_factory=DevelopmentFeatures)


@dataclass
class AlternativeSuggestion:
    """A same-ply sibling of the played move."""

    san: str
    line: str
    cp_after_player: int | None = None
    gain_cp_vs_played: int | None = None


@dataclass
class MistakeFlags:
    has_question_mark: bool = False
    has_double_question: bool = False
    has_exclamation: bool = False
    opening_phase: bool = False
    undeveloped_minors_before: int | None = None
    undeveloped_minors_after: int | None = None
    opp_replied_with_capture: bool | None = None
    opp_replied_with_check: bool | None = None
    material_loss_soon_pawns: int | None = None
    material_escalated: bool = False
    features_before: PositionalFeatures | None = None
    features_after: PositionalFeatures | None = None


@dataclass
class PlayerMistake:
    """One flagged move of the tracked player."""

    game: GameIdentity
    player_name: str
    player_color: Color
    ply: int
    move_number: int
    mover: Color
    move_label: str
    played_san: str
    fen_before: str
    fen_after: str
    kind: MistakeKind
    severity: Severity
    flags: MistakeFlags = field(default_factory=MistakeFlags)
    san_context_before: list[str] = field(default_factory=list)
    cp_before_player: int | None = None
    cp_after_player: int | None = None
    cp_swing_player: int | None = None
    cp_loss_abs: int | None = None
    opponent_reply_san: str | None = None
    opponent_reply_move_label: str | None = None
    fen_after_opponent_reply: str | None = None
    best_alternative: AlternativeSuggestion | None = None
    alternative_candidates: list[AlternativeSuggestion] = field(default_factory=list)
    theme: Theme | None = None
    scheme_signature: str = ""


@dataclass
class GameAnalysis:
    """Walker output for a single game."""

    index: int
    matched: bool
    player_color: Color | None = None
    mistakes: list[PlayerMistake] = field(default_factory=list)


@dataclass
class FrequentMistake:
    ply: int
    move_number: int
    played_san: str
    kind: MistakeKind
    theme: Theme
    count: int
    avg_cp_loss_abs: float | None = None


@dataclass
class OpeningStats:
    """Aggregation bucket keyed by player color and base opening name."""

    key: str
    player_color: Color
    games: int
    plies_analyzed: int
    issue_counts: dict[str, int]
    theme_counts: dict[str, int]
    frequent_mistakes: list[FrequentMistake] = field(default_factory=list)
    eco: str | None = None
    opening: str | None = None


@dataclass
class SchemeCount:
    scheme_signature: str
    count: int


@dataclass
class GlobalStats:
    issue_counts: dict[str, int]
    theme_counts: dict[str, int]
    severity_counts: dict[str, int]
    most_common_schemes: list[SchemeCount] = field(default_factory=list)


@dataclass
class AnalysisStats:
    by_opening: list[OpeningStats]
    summary: GlobalStats


@dataclass
class AnalysisResult:
    """Top-level report for one player over one batch of games."""

    player_name: str
    total_games_parsed: int
    games_matched_player: int
    mistakes: list[PlayerMistake]
    stats: AnalysisStats

    def to_dict(self) -> dict:
        return asdict(self)
