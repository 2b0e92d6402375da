"""Mistake classification and theme inference.

Pure functions over evidence the walker has already extracted. Nothing here
touches a board, so every rule can be exercised with hand-built evidence.
"""

from dataclasses import dataclass, field

from chess_mistakes.config import DEFAULT_OPTIONS, AnalysisOptions
from chess_mistakes.models import (
    TACTICAL_KINDS,
    AlternativeSuggestion,
    MistakeKind,
    PlayerMistake,
    Severity,
    Theme,
)
from chess_mistakes.notation import (
    is_capture_san,
    is_castling_san,
    is_check_san,
    is_clearly_non_developing_move,
    looks_like_opening_principle_violation,
)

KING_THEME_MIN_LOSS = 30
STRUCTURE_THEME_MIN_LOSS = 40
DEVELOPMENT_THEME_MIN_LOSS = 30
SPACE_THEME_MIN_LOSS = 40


@dataclass(frozen=True)
class MoveEvidence:
    """Everything the classifier needs about one tracked-player move.

    Evaluations are player-relative centipawns.
    """

    played_san: str
    cp_before: int | None = None
    cp_after: int | None = None
    opening_phase: bool = False
    has_question_mark: bool = False
    has_double_question: bool = False
    undeveloped_before: int = 0
    undeveloped_after: int = 0
    best_alternative: AlternativeSuggestion | None = None
    alternatives: tuple[AlternativeSuggestion, ...] = field(default_factory=tuple)

    @property
    def cp_swing(self) -> int | None:
        if self.cp_before is None or self.cp_after is None:
            return None
        return self.cp_after - self.cp_before

    @property
    def cp_loss(self) -> int:
        swing = self.cp_swing
        return -swing if swing is not None and swing < 0 else 0

    @property
    def alt_gain(self) -> int:
        best = self.best_alternative
        if best is None or best.gain_cp_vs_played is None or best.gain_cp_vs_played <= 0:
            return 0
        return best.gain_cp_vs_played

    @property
    def has_negative_glyph(self) -> bool:
        return self.has_question_mark or self.has_double_question


@dataclass(frozen=True)
class Classification:
    kind: MistakeKind
    severity: Severity
    cp_loss_abs: int | None


def severity_for_loss(loss: int, options: AnalysisOptions = DEFAULT_OPTIONS) -> Severity:
    if loss >= options.cp_blunder:
        return "blunder"
    if loss >= options.cp_mistake:
        return "mistake"
    if loss >= options.cp_inaccuracy:
        return "inaccuracy"
    return "info"


def tactical_kind_for(severity: Severity) -> MistakeKind:
    if severity == "blunder":
        return "tactical_blunder"
    if severity == "mistake":
        return "tactical_mistake"
    return "tactical_inaccuracy"


def is_hopeless(evidence: MoveEvidence, options: AnalysisOptions = DEFAULT_OPTIONS) -> bool:
    """Already lost before the move, and no visible alternative climbs out."""
    if evidence.cp_before is None or evidence.cp_before > -options.hopeless_cp:
        return False
    escape_floor = -options.hopeless_cp + options.hopeless_margin_cp
    return not any(
        alt.cp_after_player is not None and alt.cp_after_player > escape_floor
        for alt in evidence.alternatives
    )


def _inaccuracy_band_kind(evidence: MoveEvidence, options: AnalysisOptions) -> MistakeKind:
    san = evidence.played_san
    minors_home = evidence.undeveloped_after >= options.min_undeveloped_minors

    if (
        evidence.opening_phase
        and minors_home
        and evidence.undeveloped_after >= evidence.undeveloped_before
        and looks_like_opening_principle_violation(san)
    ):
        return "opening_principle"

    if (
        evidence.opening_phase
        and evidence.cp_loss >= options.min_strategic_loss_cp
        and minors_home
        and is_clearly_non_developing_move(san)
    ):
        return "piece_inactivity"

    best = evidence.best_alternative
    if best is not None and evidence.alt_gain >= options.min_alt_gain_cp:
        if is_capture_san(best.san) or is_check_san(best.san):
            return "tactical_inaccuracy"

    return "positional_misplay"


def classify_move(
    evidence: MoveEvidence, options: AnalysisOptions = DEFAULT_OPTIONS
) -> Classification | None:
    """Decide (kind, severity) for a move, or None when nothing should be reported.

    Rules are tried in order and the first match wins.
    """
    loss = evidence.cp_loss
    alt_gain = evidence.alt_gain

    if is_hopeless(evidence, options):
        return None

    if loss < options.cp_inaccuracy and evidence.has_negative_glyph and options.allow_symbol_only:
        return Classification("positional_misplay", "inaccuracy", (loss or alt_gain) or None)

    if loss >= options.cp_blunder:
        return Classification("tactical_blunder", "blunder", loss)
    if loss >= options.cp_mistake:
        return Classification("tactical_mistake", "mistake", loss)
    if loss >= options.cp_inaccuracy:
        return Classification(_inaccuracy_band_kind(evidence, options), "inaccuracy", loss)

    # The played move had no evaluation but a sibling shows a clear improvement.
    if evidence.cp_swing is None and alt_gain >= options.min_alt_gain_cp:
        return Classification("positional_misplay", "inaccuracy", alt_gain)

    return None


def reclassify_after_reply(
    kind: MistakeKind,
    severity: Severity,
    cp_loss_abs: int | None,
    material_loss: int,
    forcing_reply: bool,
    options: AnalysisOptions = DEFAULT_OPTIONS,
) -> tuple[MistakeKind, Severity, bool]:
    """Adjust a record once the opponent's reply is known.

    Returns (kind, severity, escalated) where escalated marks a material-loss
    escalation.
    """
    if material_loss >= options.material_loss_escalation_pawns:
        return "material_blunder", "blunder", True
    if (
        kind == "positional_misplay"
        and forcing_reply
        and (cp_loss_abs or 0) >= options.cp_inaccuracy
    ):
        return tactical_kind_for(severity), severity, False
    return kind, severity, False


def _worse(before, after) -> bool:
    return before is not None and after is not None and after > before


def infer_theme(mistake: PlayerMistake, options: AnalysisOptions = DEFAULT_OPTIONS) -> Theme:
    """Thematic cause of a finished record, from its positional feature deltas."""
    loss = mistake.cp_loss_abs or 0
    flags = mistake.flags
    before = flags.features_before
    after = flags.features_after

    if mistake.kind == "material_blunder" or (flags.material_loss_soon_pawns or 0) >= options.material_loss_escalation_pawns:
        return "hanging_material"

    if before is not None and after is not None:
        king_worsened = (
            after.king.shield < before.king.shield
            or (not before.king.xray_heavy and after.king.xray_heavy)
            or (not before.king.on_open_file and after.king.on_open_file)
        )
    else:
        king_worsened = False
    if bool(flags.opp_replied_with_check):
        king_worsened = True
    if king_worsened and loss >= KING_THEME_MIN_LOSS:
        return "king_exposed"

    if before is not None and after is not None:
        structure_worsened = (
            _worse(before.pawns.islands, after.pawns.islands)
            or _worse(before.pawns.isolated, after.pawns.isolated)
            or _worse(before.pawns.doubled, after.pawns.doubled)
        )
        if structure_worsened and loss >= STRUCTURE_THEME_MIN_LOSS:
            return "pawn_structure"

        development_stalled = (
            flags.opening_phase
            and after.development.score <= before.development.score
            and (flags.undeveloped_minors_after or 0) >= options.min_undeveloped_minors
            and not is_castling_san(mistake.played_san)
            and is_clearly_non_developing_move(mistake.played_san)
        )
        if development_stalled and loss >= DEVELOPMENT_THEME_MIN_LOSS:
            return "development"

        lost_center = after.space.center_presence + 1 <= before.space.center_presence
        lost_space = after.space.space_score + 1 <= before.space.space_score
        if (lost_center or lost_space) and loss >= SPACE_THEME_MIN_LOSS:
            return "space"

    if mistake.kind in TACTICAL_KINDS:
        return "missed_tactic"
    return "unknown" if mistake.kind == "unknown" else "plan"
