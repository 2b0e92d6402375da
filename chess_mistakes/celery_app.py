"""Celery application for batch mistake analysis on workers."""

from celery import Celery

from chess_mistakes.config import DEFAULT_OPTIONS, get_redis_url

REDIS_URL = get_redis_url()

app = Celery("chess_mistakes", broker=REDIS_URL, backend=REDIS_URL)
app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)


@app.task(bind=True, max_retries=3)
def analyze_batch_task(self, pgn_text: str, player_name: str, source_kind: str = "local", options: dict | None = None):
    """Celery task: analyze one PGN batch and store the report in the cache."""
    from chess_mistakes.db import content_hash, ensure_schema, get_connection, save_report
    from chess_mistakes.report import analyze_pgn

    opts = DEFAULT_OPTIONS.with_overrides(**(options or {}))
    try:
        result = analyze_pgn(pgn_text, player_name, opts).to_dict()
        digest = content_hash([pgn_text], opts.fingerprint())
        with get_connection() as conn:
            ensure_schema(conn)
            save_report(conn, player_name, source_kind, digest, result)
        return result
    except Exception as exc:
        raise self.retry(exc=exc, countdown=5)
