from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable
from uuid import UUID

from docrev.config import get_settings
from docrev.core.documents.entities import DocumentSnapshot
from docrev.core.documents.repository import DocumentRepository
from docrev.utils.exceptions import ConcurrencyConflictException

logger = logging.getLogger(__name__)


def backoff_delay_s(attempt: int, *, base_delay_ms: int, max_delay_ms: int) -> float:
    """Exponential backoff for the given 1-based attempt, capped, with 0..25% jitter."""
    base = max(0.0, base_delay_ms / 1000.0)
    cap = max(base, max_delay_ms / 1000.0)
    delay = min(cap, base * (2 ** (attempt - 1)))
    # Small jitter (0..25%) to avoid thundering herd.
    return delay * (1.0 + 0.25 * random.random())


async def update_with_retry(
    repository: DocumentRepository,
    document_id: UUID,
    mutate: Callable[[DocumentSnapshot], str | None],
    *,
    attempts: int | None = None,
    base_delay_ms: int | None = None,
    max_delay_ms: int | None = None,
) -> DocumentSnapshot:
    """Re-read, apply `mutate`, and conditionally write until one write wins.

    Opt-in caller-side policy; the repository itself never retries. Each retry
    re-reads the document so `mutate` always sees the latest committed payload.
    Only conflicts are retried: NotFoundException and BackendUnavailableException
    propagate immediately. After `attempts` conflicts the last one propagates.
    """
    settings = get_settings()
    attempts = settings.CONFLICT_RETRY_ATTEMPTS if attempts is None else attempts
    base_delay_ms = settings.CONFLICT_RETRY_BASE_DELAY_MS if base_delay_ms is None else base_delay_ms
    max_delay_ms = settings.CONFLICT_RETRY_MAX_DELAY_MS if max_delay_ms is None else max_delay_ms
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    attempt = 0
    while True:
        snapshot = await repository.get(document_id)
        try:
            return await repository.update(snapshot.with_text(mutate(snapshot)))
        except ConcurrencyConflictException:
            attempt += 1
            if attempt >= attempts:
                raise

            delay = backoff_delay_s(attempt, base_delay_ms=base_delay_ms, max_delay_ms=max_delay_ms)
            logger.warning(
                "event=document.update_retry id=%s attempt=%s/%s delay_s=%.3f",
                document_id,
                attempt,
                attempts,
                delay,
            )
            await asyncio.sleep(delay)
