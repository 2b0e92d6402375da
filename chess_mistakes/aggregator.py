"""Grouping of flagged moves by opening and player color."""

import re
from collections import Counter
from dataclasses import dataclass, field

from chess_mistakes.config import DEFAULT_OPTIONS, AnalysisOptions
from chess_mistakes.models import (
    MISTAKE_KINDS,
    SEVERITIES,
    THEMES,
    Color,
    FrequentMistake,
    GlobalStats,
    OpeningStats,
    PlayerMistake,
    SchemeCount,
)

_BASE_SEPARATORS = re.compile(r"[,:;(]")
_APOSTROPHES = re.compile(r"[’']")
_ID_PUNCTUATION = re.compile(r"[.,;:!?\"()\[\]{}]")
_ID_DASHES = re.compile(r"[_\-]+")
_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def base_opening_name(opening: str | None) -> str:
    """Opening label with the variation detail stripped.

    >>> base_opening_name("Italian Game, Two Knights Defense")
    'Italian Game'
    """
    if not opening:
        return ""
    name = _BASE_SEPARATORS.split(opening.strip(), maxsplit=1)[0]
    name = name.split(" - ")[0]
    name = name.split(" / ")[0]
    return name.strip()


def normalize_opening_id(base: str) -> str:
    lowered = _APOSTROPHES.sub("", base.lower())
    lowered = _ID_PUNCTUATION.sub(" ", lowered)
    lowered = _ID_DASHES.sub(" ", lowered)
    return _WHITESPACE.sub(" ", lowered).strip()


def normalize_eco(eco: str | None) -> str:
    return _NON_ALNUM.sub("", (eco or "").strip().upper())


def pick_better_display(current: str | None, candidate: str | None) -> str | None:
    """Prefer a capitalised name, then a clearly longer one."""
    current = (current or "").strip()
    candidate = (candidate or "").strip()
    if not candidate:
        return current or None
    if not current:
        return candidate
    if not any(c.isupper() for c in current) and any(c.isupper() for c in candidate):
        return candidate
    if len(candidate) > len(current) + 2:
        return candidate
    return current


def opening_key(color: Color, opening: str | None, eco: str | None) -> tuple[str, str]:
    """(bucket key, grouping id) for a game's headers."""
    primary = normalize_opening_id(base_opening_name(opening)) or normalize_eco(eco) or "?"
    return f"{color}|{primary}", primary


def zero_counts(keys) -> dict[str, int]:
    return {k: 0 for k in keys}


@dataclass
class _Bucket:
    key: str
    player_color: Color
    opening_id: str
    display: str | None = None
    ecos: set[str] = field(default_factory=set)
    games: set[int] = field(default_factory=set)
    plies_analyzed: int = 0
    issue_counts: dict[str, int] = field(default_factory=lambda: zero_counts(MISTAKE_KINDS))
    theme_counts: dict[str, int] = field(default_factory=lambda: zero_counts(THEMES))
    # (ply, move_number, san, kind, theme) -> [count, loss_sum, loss_seen]
    signatures: dict[tuple, list] = field(default_factory=dict)


def _theme_of(mistake: PlayerMistake) -> str:
    return mistake.theme or "unknown"


def _frequent(bucket: _Bucket, limit: int) -> list[FrequentMistake]:
    rows = []
    for (ply, move_number, san, kind, theme), (count, loss_sum, seen) in bucket.signatures.items():
        rows.append(
            FrequentMistake(
                ply=ply,
                move_number=move_number,
                played_san=san,
                kind=kind,
                theme=theme,
                count=count,
                avg_cp_loss_abs=loss_sum / seen if seen else None,
            )
        )
    rows.sort(key=lambda r: (-r.count, -(r.avg_cp_loss_abs or 0)))
    return rows[:limit]


def build_opening_stats(
    mistakes: list[PlayerMistake], options: AnalysisOptions = DEFAULT_OPTIONS
) -> list[OpeningStats]:
    """Aggregate mistakes into per-(color, base opening) buckets."""
    buckets: dict[str, _Bucket] = {}

    for m in mistakes:
        key, primary = opening_key(m.player_color, m.game.opening, m.game.eco)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(key=key, player_color=m.player_color, opening_id=primary)

        eco = normalize_eco(m.game.eco)
        if eco:
            bucket.ecos.add(eco)
        bucket.display = pick_better_display(bucket.display, base_opening_name(m.game.opening))
        bucket.games.add(m.game.index)
        bucket.plies_analyzed += 1

        theme = _theme_of(m)
        bucket.issue_counts[m.kind] += 1
        bucket.theme_counts[theme] += 1

        signature = (m.ply, m.move_number, m.played_san, m.kind, theme)
        entry = bucket.signatures.setdefault(signature, [0, 0, 0])
        entry[0] += 1
        if m.cp_loss_abs is not None:
            entry[1] += m.cp_loss_abs
            entry[2] += 1

    result = []
    for bucket in buckets.values():
        eco = next(iter(bucket.ecos)) if len(bucket.ecos) == 1 else None
        display = bucket.display or eco or (bucket.opening_id if bucket.opening_id != "?" else None)
        result.append(
            OpeningStats(
                key=bucket.key,
                player_color=bucket.player_color,
                games=len(bucket.games),
                plies_analyzed=bucket.plies_analyzed,
                issue_counts=bucket.issue_counts,
                theme_counts=bucket.theme_counts,
                frequent_mistakes=_frequent(bucket, options.frequent_mistakes_limit),
                eco=eco,
                opening=display,
            )
        )

    result.sort(
        key=lambda s: (
            0 if s.player_color == "white" else 1,
            -s.games,
            (s.opening or s.eco or "").lower(),
        )
    )
    return result


def build_global_stats(
    mistakes: list[PlayerMistake], options: AnalysisOptions = DEFAULT_OPTIONS
) -> GlobalStats:
    issue_counts = zero_counts(MISTAKE_KINDS)
    theme_counts = zero_counts(THEMES)
    severity_counts = zero_counts(SEVERITIES)
    schemes: Counter[str] = Counter()

    for m in mistakes:
        issue_counts[m.kind] += 1
        theme_counts[_theme_of(m)] += 1
        severity_counts[m.severity] += 1
        schemes[m.scheme_signature] += 1

    # Counter.most_common keeps first-seen order among equal counts
    most_common = [
        SchemeCount(scheme_signature=s, count=c)
        for s, c in schemes.most_common(options.common_schemes_limit)
    ]
    return GlobalStats(
        issue_counts=issue_counts,
        theme_counts=theme_counts,
        severity_counts=severity_counts,
        most_common_schemes=most_common,
    )

