"""Configuration for the mistake report.

Analysis thresholds live in ``AnalysisOptions``. Process settings (database,
broker, API token, log level) are read from the environment.
"""

import json
import os
from dataclasses import asdict, dataclass, fields, replace

ENV_PREFIX = "CHESS_MISTAKES_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AnalysisOptions:
    """Tunable constants of the walker, classifier and aggregator."""

    max_variation_plies: int = 10
    opening_phase_plies: int = 20

    # Player-perspective centipawn bands, strictly ascending.
    cp_inaccuracy: int = 50
    cp_mistake: int = 120
    cp_blunder: int = 250

    min_alt_gain_cp: int = 80
    min_strategic_loss_cp: int = 50

    hopeless_cp: int = 900
    hopeless_margin_cp: int = 50

    min_undeveloped_minors: int = 3
    allow_symbol_only: bool = True
    max_siblings_per_ply: int = 10
    max_alternative_candidates: int = 3
    context_plies: int = 8
    material_loss_escalation_pawns: int = 2

    frequent_mistakes_limit: int = 15
    common_schemes_limit: int = 20
    scheme_plies: int = 12

    mate_score: int = 100_000

    def validate(self) -> "AnalysisOptions":
        if not 0 < self.cp_inaccuracy < self.cp_mistake < self.cp_blunder:
            raise ValueError(
                "severity thresholds must satisfy 0 < cp_inaccuracy < cp_mistake < cp_blunder, "
                f"got {self.cp_inaccuracy}/{self.cp_mistake}/{self.cp_blunder}"
            )
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is int and value < 0:
                raise ValueError(f"{f.name} must not be negative, got {value}")
        if self.mate_score <= self.hopeless_cp:
            raise ValueError("mate_score must exceed hopeless_cp")
        return self

    def with_overrides(self, **overrides) -> "AnalysisOptions":
        """Copy with the given options replaced. None values are ignored."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise TypeError(f"unknown analysis options: {', '.join(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()

    def to_dict(self) -> dict:
        return asdict(self)

    def fingerprint(self) -> str:
        """Stable text form, part of the report cache key."""
        return json.dumps(self.to_dict(), sort_keys=True)


DEFAULT_OPTIONS = AnalysisOptions()


def _parse_env_value(name: str, raw: str, kind: type):
    if kind is bool:
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"{name}: expected a boolean, got {raw!r}")
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name}: expected an integer, got {raw!r}") from None


def options_from_env(environ: dict[str, str] | None = None) -> AnalysisOptions:
    """Build options from CHESS_MISTAKES_<OPTION> variables."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for f in fields(AnalysisOptions):
        env_name = ENV_PREFIX + f.name.upper()
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        overrides[f.name] = _parse_env_value(env_name, raw, f.type)
    return DEFAULT_OPTIONS.with_overrides(**overrides)


def get_database_url() -> str:
    """Report cache connection string."""
    return os.environ.get(
        "DATABASE_URL",
        "postgresql://localhost:5432/chess_mistakes?user=postgres&password=postgres",
    )


def get_redis_url() -> str:
    return os.environ.get("REDIS_URL", "redis://localhost:6379/0")


def get_lichess_token() -> str | None:
    return os.environ.get("LICHESS_TOKEN") or None


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "WARNING").upper()
