from __future__ import annotations

from prometheus_client import Counter


DOCUMENT_EVENTS_TOTAL = Counter(
    "docrev_document_events_total",
    "Document store events",
    ["event", "result"],
)
