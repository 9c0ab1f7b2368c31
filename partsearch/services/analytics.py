"""Best-effort search analytics.

Each successful search is reported to an AnalyticsSink. The production sink
writes one search_logs row in its own session; a failing write is logged and
never reaches the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from partsearch.models import SearchLog
from partsearch.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


class AnalyticsSink(Protocol):
    async def record(self, query_params: dict[str, Any], results_count: int) -> None: ...


class NullSink:
    """Sink that drops every record."""

    async def record(self, query_params: dict[str, Any], results_count: int) -> None:
        return None


class SearchLogSink:
    """Writes search calls to the search_logs table."""

    async def record(self, query_params: dict[str, Any], results_count: int) -> None:
        model_ids = query_params.get("model_ids") or []
        log = SearchLog(
            search_query=query_params.get("q") or None,
            manufacturer_id=query_params.get("manufacturer_id"),
            category_id=query_params.get("category_id"),
            model_ids=",".join(str(m) for m in model_ids) or None,
            sort_option=query_params.get("sort"),
            page=query_params.get("page", 1),
            page_size=query_params.get("page_size", 10),
            results_count=results_count,
        )
        async with get_session() as session:
            session.add(log)


async def report_search(sink: AnalyticsSink, query_params: dict[str, Any], results_count: int) -> None:
    """Send one record to the sink, swallowing any failure."""
    try:
        await sink.record(query_params, results_count)
    except Exception:
        logger.exception(f"[analytics] search log write failed results_count={results_count}")
