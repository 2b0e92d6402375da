"""Download a user's annotated games from Lichess.

Games are requested as PGN with engine evaluations and opening names, which
is exactly the input the analysis expects.

  LICHESS_TOKEN=xxx  # optional, raises the rate limit
"""

import asyncio
import logging

import httpx

from chess_mistakes.config import get_lichess_token

logger = logging.getLogger(__name__)

LICHESS_GAMES_API = "https://lichess.org/api/games/user/{username}"
RATE_LIMIT_RETRY_SECONDS = 2


class RateLimitedError(Exception):
    """Lichess answered HTTP 429."""


def concurrency_limit(token: str | None) -> int:
    return 8 if token else 1


async def fetch_user_games(
    username: str,
    session: httpx.AsyncClient,
    token: str | None = None,
    max_games: int | None = 100,
    rated: bool | None = None,
    perf_type: str | None = None,
) -> str:
    """Fetch a user's games as one PGN text."""
    params = {
        "evals": "true",
        "opening": "true",
        "literate": "false",
        "clocks": "false",
    }
    if max_games is not None:
        params["max"] = str(max_games)
    if rated is not None:
        params["rated"] = "true" if rated else "false"
    if perf_type:
        params["perfType"] = perf_type

    headers = {"Accept": "application/x-chess-pgn"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    resp = await session.get(LICHESS_GAMES_API.format(username=username), params=params, headers=headers)
    if resp.status_code == 429:
        raise RateLimitedError(f"Rate limited (429) fetching {username}")
    resp.raise_for_status()
    return resp.text


async def fetch_many(
    usernames: list[str],
    session: httpx.AsyncClient,
    token: str | None = None,
    semaphore: asyncio.Semaphore | None = None,
    **kwargs,
) -> dict[str, str]:
    """Fetch several users concurrently. A rate-limited user is retried once."""
    if semaphore is None:
        semaphore = asyncio.Semaphore(concurrency_limit(token))

    async def fetch_one(username: str) -> str:
        async with semaphore:
            try:
                return await fetch_user_games(username, session, token, **kwargs)
            except RateLimitedError as e:
                logger.warning("%s, retrying in %ds", e, RATE_LIMIT_RETRY_SECONDS)
                await asyncio.sleep(RATE_LIMIT_RETRY_SECONDS)
                return await fetch_user_games(username, session, token, **kwargs)

    texts = await asyncio.gather(*(fetch_one(u) for u in usernames))
    return dict(zip(usernames, texts))


async def download_games(username: str, token: str | None = None, **kwargs) -> str:
    """One-shot helper with its own HTTP client."""
    token = token if token is not None else get_lichess_token()
    async with httpx.AsyncClient(timeout=30.0) as session:
        games = await fetch_many([username], session, token, **kwargs)
    return games[username]
