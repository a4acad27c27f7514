"""Fetch trace spans from the LLM Tracer API.

Thin async client used by the command line tool. The graph pipeline itself
never performs I/O.
"""

import os
import logging
from typing import Any, Dict, List, Mapping

import httpx
from dotenv import load_dotenv, find_dotenv

from .models import Span

load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

API_URL = os.getenv("TRACER_API_URL", "http://localhost:8001")
API_KEY = os.getenv("TRACER_API_KEY", "")

# Default timeouts for API requests (seconds)
DEFAULT_TIMEOUT = 30.0
HEALTH_TIMEOUT = 5.0


def _get_headers() -> Dict[str, str]:
    """Authenticate with the project API key the tracer service issued."""
    return {"X-API-Key": API_KEY}


async def get_trace_detail(trace_id: str) -> Dict[str, Any]:
    """Download the trace detail payload that the graph is built from.

    The payload's ``spans`` list is what ``spans_from_trace_detail`` turns
    into root spans; the rest of the payload is passed through untouched.

    Raises
    ------
    httpx.HTTPStatusError
        If the trace does not exist or the API rejects the key.
    httpx.RequestError
        If the tracer service cannot be reached.
    """
    url = f"{API_URL}/api/traces/{trace_id}"
    logger.debug(f"Fetching spans for trace {trace_id} from {url}")
    async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
        resp = await client.get(url, headers=_get_headers())
        resp.raise_for_status()
        return resp.json()


async def check_health() -> bool:
    """True if the tracer service answers its unauthenticated ``/health`` endpoint."""
    try:
        async with httpx.AsyncClient(timeout=HEALTH_TIMEOUT) as client:
            resp = await client.get(f"{API_URL}/health")
    except httpx.RequestError as e:
        # timeouts are RequestErrors too
        logger.debug(f"Tracer service unreachable at {API_URL}: {e}")
        return False
    return resp.status_code == 200


def spans_from_trace_detail(payload: Mapping[str, Any]) -> List[Span]:
    """Build root spans from a trace detail payload.

    The tracer service returns spans as a flat list linked by
    ``parent_span_id``; other backends nest them under ``child_spans``.
    Nested payloads are returned as-is. Flat payloads are linked into trees,
    with spans whose parent is missing becoming roots.

    Parameters
    ----------
    payload : Mapping[str, Any]
        Trace detail response with a ``spans`` list.

    Returns
    -------
    List[Span]
        Root spans in payload order.
    """
    raw_spans = payload.get("spans") or []
    spans = [Span.model_validate(raw) for raw in raw_spans]

    if any(span.child_spans for span in spans):
        return spans

    span_map: Dict[str, Span] = {span.span_id: span for span in spans}
    roots: List[Span] = []

    # link children to parents
    for span in spans:
        parent_id = span.parent_span_id
        if parent_id and parent_id in span_map and parent_id != span.span_id:
            span_map[parent_id].child_spans.append(span)
        else:
            roots.append(span)

    if span_map and not roots:
        logger.warning("Trace detail has no root span; parent links form a cycle")
    return roots
