"""Span category detection from names and attributes.

Rules are checked in a fixed order and the first match wins:

    llm -> agent -> batch -> conversation -> pipeline -> worker -> api -> generic

The order matters: an ``agent`` span that carries a ``gen_ai.*`` attribute is
an LLM call, and a ``batch`` span that happens to set ``http.method`` is
still a batch.
"""

import re
from typing import Any, Dict, Mapping, Optional

from .models import Span, SpanCategory

# Visual styling per category.
#
# Each category maps to a dict containing:
#     - label: Badge text
#     - color: Border and accent color (hex)
#     - icon: Lucide icon name
#     - bg: Background color (hex)
SPAN_CATEGORY_STYLES: Dict[str, Dict[str, str]] = {
    "llm": {"label": "LLM", "color": "#3B82F6", "icon": "brain", "bg": "#EFF6FF"},
    "agent": {"label": "AGENT", "color": "#8B5CF6", "icon": "bot", "bg": "#F5F3FF"},
    "batch": {"label": "BATCH", "color": "#F59E0B", "icon": "layers", "bg": "#FFFBEB"},
    "conversation": {"label": "CONVERSATION", "color": "#EC4899", "icon": "messages-square", "bg": "#FDF2F8"},
    "pipeline": {"label": "PIPELINE", "color": "#06B6D4", "icon": "workflow", "bg": "#ECFEFF"},
    "worker": {"label": "WORKER", "color": "#EAB308", "icon": "cpu", "bg": "#FEFCE8"},
    "api": {"label": "API", "color": "#10B981", "icon": "globe", "bg": "#ECFDF5"},
    "generic": {"label": "SPAN", "color": "#6B7280", "icon": "circle", "bg": "#F9FAFB"},
}

SPAN_CATEGORY_LABELS: Dict[str, str] = {
    category: style["label"] for category, style in SPAN_CATEGORY_STYLES.items()
}
SPAN_CATEGORY_COLORS: Dict[str, str] = {
    category: style["color"] for category, style in SPAN_CATEGORY_STYLES.items()
}

LLM_ATTRIBUTE_PREFIXES = ("gen_ai.", "llm.")
LLM_SPAN_TYPES = {"llm", "generation"}
LLM_NAME_PATTERN = re.compile(
    r"^(llm|openai|anthropic|azure_openai|gemini|vertex|bedrock|cohere|mistral|ollama)(?:[._\-\s:/]|$)"
    r"|^(?:chat|completions?)(?:[.:/]|$)"
    r"|chat\.completions|completions?\.create|messages\.create|generate_content"
)

CONVERSATION_PATTERN = re.compile(r"conversation|^turn[_\-\s]?\d+$|chat[_\-\s]session")

KNOWN_PIPELINE_OPERATIONS = {
    "pipeline",
    "workflow",
    "etl",
    "ingest",
    "extract",
    "transform",
    "load",
    "preprocess",
    "postprocess",
}

WORKER_PATTERN = re.compile(r"^worker(?:[_\-\s.:]?\d+)?$|^worker[_\-.:]|[_\-.]worker(?:[_\-]?\d+)?$")

HTTP_ATTRIBUTE_KEYS = {
    "http.method",
    "http.url",
    "http.route",
    "http.status_code",
    "http.target",
    "http.request.method",
    "http.response.status_code",
    "url.full",
    "url.path",
}


def _has_llm_signal(name: str, attributes: Mapping[str, Any]) -> bool:
    if any(key.startswith(LLM_ATTRIBUTE_PREFIXES) for key in attributes):
        return True
    if str(attributes.get("brokle.span.type", "")).lower() in LLM_SPAN_TYPES:
        return True
    return bool(LLM_NAME_PATTERN.search(name))


def detect_span_category(
    name: Optional[str],
    attributes: Optional[Mapping[str, Any]] = None,
) -> SpanCategory:
    """Classify a span by its name and attributes.

    Parameters
    ----------
    name : Optional[str]
        Span name. Matching is case-insensitive.
    attributes : Optional[Mapping[str, Any]]
        Flat OTEL style attribute map (e.g. ``{"http.method": "GET"}``).

    Returns
    -------
    SpanCategory
        One of llm, agent, batch, conversation, pipeline, worker, api, generic.
    """
    normalized = (name or "").strip().lower()
    attrs = attributes or {}

    if _has_llm_signal(normalized, attrs):
        return "llm"
    if normalized.startswith("agent"):
        return "agent"
    if normalized.startswith("batch"):
        return "batch"
    if CONVERSATION_PATTERN.search(normalized):
        return "conversation"
    if normalized in KNOWN_PIPELINE_OPERATIONS or normalized.startswith("pipeline"):
        return "pipeline"
    if WORKER_PATTERN.search(normalized):
        return "worker"
    if any(key in HTTP_ATTRIBUTE_KEYS for key in attrs):
        return "api"
    return "generic"


def span_signal_attributes(span: Span) -> Dict[str, Any]:
    """Attributes of ``span`` plus its materialized gen_ai/type columns.

    Backends often strip ``gen_ai.*`` keys from the attribute map once they
    are materialized into columns; this puts them back for detection.
    """
    attrs: Dict[str, Any] = dict(span.attributes)
    materialized = {
        "gen_ai.request.model": span.gen_ai_request_model or span.model_name,
        "gen_ai.provider.name": span.gen_ai_provider_name or span.provider_name,
        "gen_ai.operation.name": span.gen_ai_operation_name,
        "gen_ai.usage.input_tokens": span.gen_ai_usage_input_tokens,
        "gen_ai.usage.output_tokens": span.gen_ai_usage_output_tokens,
        "brokle.span.type": span.span_type,
    }
    for key, value in materialized.items():
        if value is not None and key not in attrs:
            attrs[key] = value
    return attrs


def detect_category_for_span(span: Span) -> SpanCategory:
    """Classify a span using its name, attributes and materialized columns."""
    return detect_span_category(span.span_name, span_signal_attributes(span))
