"""Temporal grouping of spans into parallel execution steps."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from .models import GraphEdge, Span, StepGroup

logger = logging.getLogger(__name__)


def build_step_groups(spans: Sequence[Span]) -> List[StepGroup]:
    """Cluster spans whose time intervals overlap into numbered steps.

    Single greedy pass over the spans sorted by start time. A span joins the
    open group when it starts strictly before the group's running end time;
    otherwise it opens the next step. A span starting exactly at the running
    end time therefore begins a new step. Spans without an end time count as
    point events at their start time.

    Parameters
    ----------
    spans : Sequence[Span]
        Flat list of spans.

    Returns
    -------
    List[StepGroup]
        Groups in increasing ``step`` order. Together they contain every
        input span exactly once.
    """
    if not spans:
        return []

    # sorted() is stable, so ties keep their input order
    sorted_spans = sorted(spans, key=lambda s: s.start_time)

    groups: List[StepGroup] = []
    current_group: List[Span] = []
    current_end_time: Optional[datetime] = None

    for span in sorted_spans:
        span_end = span.effective_end_time
        if not current_group or span.start_time < current_end_time:
            current_group.append(span)
            current_end_time = (
                span_end if current_end_time is None else max(current_end_time, span_end)
            )
            continue

        groups.append(_close_group(len(groups), current_group, current_end_time))
        current_group = [span]
        current_end_time = span_end

    groups.append(_close_group(len(groups), current_group, current_end_time))

    logger.debug(f"Grouped {len(spans)} spans into {len(groups)} steps")
    return groups


def _close_group(step: int, spans: List[Span], end_time: datetime) -> StepGroup:
    return StepGroup(
        step=step,
        spans=spans,
        start_time=min(span.start_time for span in spans),
        end_time=end_time,
    )


def build_step_edges(groups: Sequence[StepGroup]) -> List[GraphEdge]:
    """Connect every span of each step to every span of the next step.

    This drops the call hierarchy in favour of execution order, at the cost of
    ``len(step_i) * len(step_i+1)`` edges per transition.
    """
    edges: List[GraphEdge] = []
    for current, following in zip(groups, groups[1:]):
        for source in current.spans:
            for target in following.spans:
                edges.append(
                    GraphEdge(
                        id=f"step-{source.span_id}-{target.span_id}",
                        source=source.span_id,
                        target=target.span_id,
                    )
                )
    return edges
