"""CLI entrypoint for checking, compiling and replaying survey graphs."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .compiler import compile_graph, dump_runtime_json
from .config import get_settings
from .core.exceptions import ConfigurationError, SurveyFlowException
from .execution.traversal import DagTraversalEngine
from .utils.logging import configure_logging, get_logger
from .validation.workflow_validator import WorkflowValidator, split_design

logger = get_logger(__name__)


def _load_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _write_json(payload: Any, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)


def cmd_validate(args: argparse.Namespace) -> int:
    nodes, edges = split_design(_load_json(args.design))
    validator = WorkflowValidator()
    result = validator.validate(nodes, edges)

    if args.json:
        _write_json(result.to_dict(), None)
    elif result.errors:
        print(validator.format_errors(result.errors))
    else:
        print("Workflow is valid.")
    return 0 if result.is_valid else 1


def cmd_compile(args: argparse.Namespace) -> int:
    nodes, edges = split_design(_load_json(args.design))
    _write_json(dump_runtime_json(compile_graph(nodes, edges)), args.output)
    return 0


def _engine_for(design_path: str) -> DagTraversalEngine:
    nodes, edges = split_design(_load_json(design_path))
    return DagTraversalEngine(compile_graph(nodes, edges))


def cmd_path(args: argparse.Namespace) -> int:
    engine = _engine_for(args.design)
    trace = engine.trace(_load_json(args.responses))
    if args.json:
        _write_json(trace.to_dict(), None)
    else:
        for node_id in trace.path_ids:
            print(node_id)
    return 0


def cmd_next(args: argparse.Namespace) -> int:
    engine = _engine_for(args.design)
    next_node = engine.get_next_node(args.node_id, _load_json(args.responses))
    print(next_node.id if next_node is not None else "")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surveyflow", description="Survey graph tooling")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Override SURVEYFLOW_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check a design graph before publishing")
    validate.add_argument("design", help="Design JSON with 'nodes' and 'edges'")
    validate.add_argument("--json", action="store_true", help="Print the result as JSON")
    validate.set_defaults(func=cmd_validate)

    compile_ = subparsers.add_parser("compile", help="Compile a design graph to runtime JSON")
    compile_.add_argument("design", help="Design JSON with 'nodes' and 'edges'")
    compile_.add_argument("-o", "--output", help="Write runtime JSON here instead of stdout")
    compile_.set_defaults(func=cmd_compile)

    path = subparsers.add_parser("path", help="Print the path taken for a set of answers")
    path.add_argument("design", help="Design JSON with 'nodes' and 'edges'")
    path.add_argument("responses", help="Responses JSON keyed by node id")
    path.add_argument("--json", action="store_true", help="Print the full trace as JSON")
    path.set_defaults(func=cmd_path)

    next_ = subparsers.add_parser("next", help="Print the node shown after NODE_ID")
    next_.add_argument("design", help="Design JSON with 'nodes' and 'edges'")
    next_.add_argument("node_id", help="Id of the node just answered")
    next_.add_argument("responses", help="Responses JSON keyed by node id")
    next_.set_defaults(func=cmd_next)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    configure_logging(level=args.log_level or settings.log_level, json_logs=settings.json_logs)

    try:
        return args.func(args)
    except (SurveyFlowException, PydanticValidationError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 2
    except (OSError, json.JSONDecodeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
