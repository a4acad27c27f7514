"""Command line entry point: lay out the spans of a trace as a graph.

Examples
--------
    span-graph trace.json --layout physics --seed 7
    span-graph --trace-id 3f2c... --no-group-by-step -o graph.json
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

import httpx

from . import api, config
from .models import LayoutOptions, Span
from .pipeline import build_graph_layout

logger = logging.getLogger(__name__)


def load_spans_file(path: str) -> List[Span]:
    """Read root spans from a JSON file (``-`` for stdin).

    The document may be a list of spans or a trace detail object with a
    ``spans`` key, flat or nested.
    """
    if path == "-":
        document: Any = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)

    if isinstance(document, list):
        document = {"spans": document}
    if not isinstance(document, dict):
        raise ValueError("Expected a JSON list of spans or an object with a 'spans' key")
    return api.spans_from_trace_detail(document)


def fetch_spans(trace_id: str) -> List[Span]:
    """Fetch a trace from the tracer API and return its root spans."""
    payload = asyncio.run(api.get_trace_detail(trace_id))
    return api.spans_from_trace_detail(payload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="span-graph",
        description="Lay out the spans of a trace as a positioned graph (JSON).",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "input",
        nargs="?",
        help="JSON file with spans, or - for stdin")
    source.add_argument(
        "--trace-id",
        help="Fetch spans of this trace from the tracer API (TRACER_API_URL)")
    parser.add_argument(
        "--layout",
        choices=["dagre", "physics"],
        default=config.DEFAULT_LAYOUT_MODE,
        help="Layout engine")
    parser.add_argument(
        "--no-system-nodes",
        action="store_true",
        help="Omit the __start__/__end__ nodes")
    parser.add_argument(
        "--no-group-by-step",
        action="store_true",
        help="Connect spans by hierarchy instead of execution steps")
    parser.add_argument(
        "--selected",
        default=None,
        help="Span id to mark as selected")
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the physics layout")
    parser.add_argument(
        "--camel-case",
        action="store_true",
        help="Emit camelCase keys for React Flow style renderers")
    parser.add_argument(
        "-o", "--output",
        default="-",
        help="Output file, - for stdout (default)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))

    try:
        spans = fetch_spans(args.trace_id) if args.trace_id else load_spans_file(args.input)
        options = LayoutOptions(
            layout_mode=args.layout,
            show_system_nodes=not args.no_system_nodes,
            group_by_step=not args.no_group_by_step,
            seed=args.seed,
        )
        result = build_graph_layout(spans, args.selected, options)
    except (OSError, ValueError, httpx.HTTPError) as e:
        # json.JSONDecodeError and pydantic's ValidationError are ValueErrors
        print(f"span-graph: {e}", file=sys.stderr)
        return 1

    output = result.model_dump_json(indent=2, by_alias=args.camel_case)
    if args.output == "-":
        print(output)
    else:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        logger.info(f"Wrote {len(result.nodes)} nodes and {len(result.edges)} edges to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
