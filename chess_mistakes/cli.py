#!/usr/bin/env python3
"""
Player mistake report from annotated PGN.

Usage:
  chess-mistakes --pgn games/*.pgn --player "Carlsen, Magnus" --output report.json
  chess-mistakes --lichess-user DrNykterstein --max-games 50 --cache
  chess-mistakes --pgn games.pgn --player alice --cp-blunder 300 --workers 4
  chess-mistakes --pgn games.pgn --player alice --parallel   # enqueue on Celery
"""

import argparse
import asyncio
import json
import logging
import sys
from concurrent.futures import ProcessPoolExecutor
from dataclasses import fields
from pathlib import Path

import httpx

from chess_mistakes.config import AnalysisOptions, get_lichess_token, get_log_level, options_from_env
from chess_mistakes.db import content_hash, ensure_schema, get_cached_report, get_connection, save_report
from chess_mistakes.lichess_client import RateLimitedError, download_games
from chess_mistakes.report import analyze_pgn, to_json


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chess-mistakes", description="Find a player's recurring mistakes")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--pgn", nargs="+", type=Path, help="Annotated PGN file paths")
    source.add_argument("--lichess-user", help="Download this user's games from Lichess")
    parser.add_argument("--player", help="Tracked player name (default: the Lichess user)")
    parser.add_argument("--max-games", type=int, default=100, help="Games to download from Lichess")
    parser.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--cache", action="store_true", help="Read and write the report cache")
    parser.add_argument("--workers", type=int, default=0, help="Analyze games in N processes")
    parser.add_argument("--parallel", action="store_true", help="Enqueue a Celery task and print its id")

    thresholds = parser.add_argument_group("analysis options")
    for f in fields(AnalysisOptions):
        flag = "--" + f.name.replace("_", "-")
        if f.type is bool:
            thresholds.add_argument(flag, dest=f.name, action=argparse.BooleanOptionalAction, default=None)
        else:
            thresholds.add_argument(flag, dest=f.name, type=int, default=None, help=f"default: {f.default}")
    return parser


def load_pgn_files(paths: list[Path]) -> list[str]:
    return [p.read_text(encoding="utf-8", errors="replace") for p in paths]


def write_output(text: str, output: Path | None) -> None:
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=get_log_level(), format="%(levelname)s %(name)s: %(message)s")

    player = args.player or args.lichess_user
    if not player:
        parser.error("--player is required with --pgn")

    try:
        options = options_from_env().with_overrides(
            **{f.name: getattr(args, f.name) for f in fields(AnalysisOptions)}
        )
    except ValueError as e:
        print(f"Error: invalid options: {e}", file=sys.stderr)
        return 2

    if args.pgn:
        for path in args.pgn:
            if not path.exists():
                print(f"Error: {path} not found", file=sys.stderr)
                return 1
        texts = load_pgn_files(args.pgn)
        source_kind = "local"
    else:
        print(f"Downloading up to {args.max_games} games of {args.lichess_user}...", file=sys.stderr)
        try:
            texts = [asyncio.run(download_games(args.lichess_user, get_lichess_token(), max_games=args.max_games))]
        except (httpx.HTTPError, RateLimitedError) as e:
            print(f"Error: Lichess download failed: {e}", file=sys.stderr)
            return 1
        source_kind = "lichess"

    pgn_text = "\n\n".join(texts)

    if args.parallel:
        from chess_mistakes.celery_app import analyze_batch_task
        task = analyze_batch_task.delay(pgn_text, player, source_kind, options.to_dict())
        print(f"Enqueued {task.id}", file=sys.stderr)
        print(task.id)
        return 0

    digest = content_hash([pgn_text], options.fingerprint())
    if args.cache:
        with get_connection() as conn:
            ensure_schema(conn)
            cached = get_cached_report(conn, player, source_kind, digest)
        if cached is not None:
            print("Using cached report.", file=sys.stderr)
            write_output(json.dumps(cached, sort_keys=True, indent=2, ensure_ascii=False), args.output)
            return 0

    if args.workers > 1:
        with ProcessPoolExecutor(max_workers=args.workers) as executor:
            result = analyze_pgn(pgn_text, player, options, executor)
    else:
        result = analyze_pgn(pgn_text, player, options)

    if args.cache:
        with get_connection() as conn:
            save_report(conn, player, source_kind, digest, result.to_dict())

    write_output(to_json(result), args.output)
    print(
        f"{result.games_matched_player}/{result.total_games_parsed} games matched {player}, "
        f"{len(result.mistakes)} mistakes.",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
