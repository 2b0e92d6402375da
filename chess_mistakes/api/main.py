"""
FastAPI surface for the player mistake report.

Endpoints:
  POST /analyze  - Analyze a PGN batch for one player
  GET /health  - Liveness probe
"""

from typing import Literal

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from chess_mistakes.config import DEFAULT_OPTIONS
from chess_mistakes.db import content_hash, ensure_schema, get_cached_report, get_connection, save_report
from chess_mistakes.report import analyze_pgn

app = FastAPI(title="Chess Mistakes API", version="1.0.0")


class AnalyzeRequest(BaseModel):
    pgn: str
    player: str
    source_kind: Literal["local", "lichess", "chesscom"] = "local"
    use_cache: bool = False
    options: dict[str, int | bool] | None = None


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/analyze")
def analyze(req: AnalyzeRequest):
    """Analyze the batch, reading and writing the report cache when asked."""
    if not req.player.strip():
        raise HTTPException(status_code=422, detail="player must not be empty")
    try:
        options = DEFAULT_OPTIONS.with_overrides(**(req.options or {}))
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid options: {e}")

    if not req.use_cache:
        return analyze_pgn(req.pgn, req.player, options).to_dict()

    digest = content_hash([req.pgn], options.fingerprint())
    with get_connection() as conn:
        ensure_schema(conn)
        cached = get_cached_report(conn, req.player, req.source_kind, digest)
        if cached is not None:
            return cached
        result = analyze_pgn(req.pgn, req.player, options).to_dict()
        save_report(conn, req.player, req.source_kind, digest, result)
    return result
