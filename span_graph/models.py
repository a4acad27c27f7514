"""Data models for span graphs"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
import json
import logging

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    FieldSerializationInfo,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from . import config

logger = logging.getLogger(__name__)

# Synthetic node ids, never valid span ids
START_NODE_ID = "__start__"
END_NODE_ID = "__end__"

# Graphs with more nodes than this are worth an overview mini-map
MINIMAP_NODE_THRESHOLD = 15

SpanCategory = Literal[
    "llm", "agent", "batch", "conversation", "pipeline", "worker", "api", "generic"
]
LayoutMode = Literal["dagre", "physics"]


class Span(BaseModel):
    """One recorded unit of work within a trace, possibly with nested child spans.

    Accepts both snake_case and camelCase keys, and the field names used by
    the LLM Tracer service (``name``, ``model``, ``tokens_input``,
    ``tokens_output``, ``cost_usd``, ``duration_ms``, ``error``).
    """

    model_config = ConfigDict(
        populate_by_name=True,  # snake_case names are accepted next to the camelCase aliases
        alias_generator=to_camel,
        protected_namespaces=(),
    )

    # OTEL identifiers
    span_id: str = Field(..., min_length=1)
    trace_id: str = ""
    parent_span_id: Optional[str] = None
    project_id: str = ""

    span_name: str = Field(
        "Unnamed Span",
        validation_alias=AliasChoices("span_name", "spanName", "name"),
    )
    span_kind: int = 0

    # Timing
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # Nanoseconds (OTLP)

    # Status: 0=UNSET, 1=OK, 2=ERROR
    status_code: int = 0
    status_message: Optional[str] = None
    has_error: bool = False

    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("attributes", "span_attributes", "spanAttributes"),
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)
    input: Optional[Any] = None
    output: Optional[Any] = None

    # Materialized gen_ai.* columns
    gen_ai_operation_name: Optional[str] = None
    gen_ai_provider_name: Optional[str] = None
    gen_ai_request_model: Optional[str] = None
    gen_ai_usage_input_tokens: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "gen_ai_usage_input_tokens", "genAiUsageInputTokens", "tokens_input"
        ),
    )
    gen_ai_usage_output_tokens: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "gen_ai_usage_output_tokens", "genAiUsageOutputTokens", "tokens_output"
        ),
    )

    model_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("model_name", "modelName", "model")
    )
    provider_name: Optional[str] = None
    span_type: Optional[str] = None

    usage_details: Optional[Dict[str, float]] = None
    total_cost: Optional[float] = Field(
        None, validation_alias=AliasChoices("total_cost", "totalCost", "cost_usd")
    )

    # Relationships (recursive)
    child_spans: List["Span"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def derive_missing_fields(cls, data: Any) -> Any:
        """Fill ``has_error`` and ``duration`` from the fields that imply them."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        if data.get("has_error") is None and data.get("hasError") is None:
            status = data.get("status_code", data.get("statusCode"))
            data["has_error"] = status == 2 or bool(data.get("error"))

        # The tracer service reports milliseconds, OTLP uses nanoseconds
        if data.get("duration") is None and data.get("duration_ms") is not None:
            try:
                data["duration"] = int(float(data["duration_ms"]) * 1_000_000)
            except (ValueError, TypeError):
                logger.warning(f"Ignoring invalid duration_ms: {data['duration_ms']!r}")
        return data

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_datetime(cls, v):
        """Parse ISO strings and treat naive datetimes as UTC."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            try:
                # trailing Z is shorthand for UTC
                v = datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                # left for pydantic to reject or coerce
                return v
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("attributes", "metadata", mode="before")
    @classmethod
    def parse_json_mapping(cls, v):
        """Decode attribute payloads that arrive as JSON strings."""
        if v is None:
            return {}
        if isinstance(v, str):
            if not v.strip():
                return {}
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse span attributes: {e}")
                return {}
            if not isinstance(parsed, dict):
                logger.warning(f"Expected a JSON object for span attributes, got {type(parsed).__name__}")
                return {}
            return parsed
        return v

    @field_validator("child_spans", mode="before")
    @classmethod
    def default_child_spans(cls, v):
        return [] if v is None else v

    @property
    def effective_end_time(self) -> datetime:
        """End time, or start time for spans that never ended (point events)."""
        return self.end_time if self.end_time is not None else self.start_time

    @property
    def duration_ns(self) -> Optional[int]:
        """Duration in nanoseconds, computed from the timestamps when not reported."""
        if self.duration:
            return self.duration
        if self.end_time is None:
            return None
        delta = self.end_time - self.start_time
        return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def dump_span_without_children(span: Span, info: FieldSerializationInfo) -> Dict[str, Any]:
    """Dump a span referenced from the graph without its ``child_spans``.

    Every span already appears once in the flat node and step lists, so
    nesting the subtree again would grow the output with the square of the
    tree depth.
    """
    return span.model_dump(
        mode=info.mode,
        by_alias=info.by_alias,
        exclude_none=info.exclude_none,
        exclude={"child_spans"},
    )


class StepGroup(BaseModel):
    """Spans whose time intervals overlap, i.e. ran concurrently."""

    step: int = Field(..., ge=0)
    spans: List[Span] = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime

    @field_serializer("spans")
    def serialize_spans(self, spans: List[Span], info: FieldSerializationInfo) -> List[Dict[str, Any]]:
        return [dump_span_without_children(span, info) for span in spans]

    @property
    def span_ids(self) -> List[str]:
        return [span.span_id for span in self.spans]

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000


# =============================================================================
# RENDER MODELS
# =============================================================================

class RenderModel(BaseModel):
    """Base for models handed to the rendering layer.

    ``model_dump(by_alias=True)`` produces the camelCase keys a React Flow
    style renderer expects.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        protected_namespaces=(),
    )


class Position(RenderModel):
    x: float = 0.0
    y: float = 0.0


class EdgeStyle(RenderModel):
    stroke_width: float = 1.5
    stroke_dasharray: Optional[str] = None


class GraphEdge(RenderModel):
    """Directed edge between two node ids.

    Ids are derived from ``(source, target)`` so rebuilding the graph from
    the same spans yields the same ids.
    """

    id: str
    source: str
    target: str
    type: str = "smoothstep"
    animated: bool = False
    style: EdgeStyle = Field(default_factory=EdgeStyle)


class SpanNodeData(RenderModel):
    span: Span
    category: SpanCategory
    label: str
    duration: Optional[str] = None
    tokens: Optional[int] = None
    cost: Optional[float] = None
    has_error: bool = False
    is_selected: bool = False
    model: Optional[str] = None
    status_code: str = "UNSET"

    @field_serializer("span")
    def serialize_span(self, span: Span, info: FieldSerializationInfo) -> Dict[str, Any]:
        return dump_span_without_children(span, info)


class SystemNodeData(RenderModel):
    type: Literal["start", "end"]
    label: str


class GraphNode(RenderModel):
    """A positioned node. Position is a ``(0, 0)`` placeholder until laid out."""

    id: str
    type: str
    position: Position = Field(default_factory=Position)

    def with_position(self, x: float, y: float) -> "GraphNode":
        """Return a copy placed at ``(x, y)``."""
        return self.model_copy(update={"position": Position(x=x, y=y)})


class SpanNode(GraphNode):
    type: Literal["span"] = "span"
    data: SpanNodeData


class SystemNode(GraphNode):
    type: Literal["system"] = "system"
    data: SystemNodeData


AnyNode = Annotated[Union[SpanNode, SystemNode], Field(discriminator="type")]


class LayoutOptions(BaseModel):
    """Options that select edges, system nodes and the layout engine.

    Frozen so that it can take part in a memoization key.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        frozen=True,
        validate_default=True,
    )

    layout_mode: LayoutMode = Field(default_factory=lambda: config.DEFAULT_LAYOUT_MODE)
    show_system_nodes: bool = Field(default_factory=lambda: config.DEFAULT_SHOW_SYSTEM_NODES)
    group_by_step: bool = Field(default_factory=lambda: config.DEFAULT_GROUP_BY_STEP)
    # Seeds the physics layout; ignored by dagre
    seed: Optional[int] = None


class GraphLayoutResult(RenderModel):
    nodes: List[AnyNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    steps: List[StepGroup] = Field(default_factory=list)

    @computed_field
    @property
    def show_minimap(self) -> bool:
        return len(self.nodes) > MINIMAP_NODE_THRESHOLD
