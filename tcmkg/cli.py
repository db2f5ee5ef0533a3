"""tcmkg CLI — run graph analyses from the command line.

Usage:
    tcmkg demo                                   # Print the demo dataset
    tcmkg cooccur --container-type 证候 --item-type 症状 --metrics
    tcmkg run hierarchical --container-type 证候 --item-type 症状 \
        --param distanceType=euclidean --param method=complete
    tcmkg run kmeans --data graph.json --param targetType=中药 --param k=2
    tcmkg run centrality --top 5
    tcmkg serve --port 8000

Data files are JSON ``{"entities": [...], "relations": [...]}``. Without
``--data`` the demo dataset is used.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ALGORITHMS = ["hierarchical", "kmeans", "community", "association", "centrality"]


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tcmkg",
        description="tcmkg: knowledge graph analytics",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command")

    # run
    run = subparsers.add_parser("run", help="Run one analysis algorithm")
    run.add_argument("algorithm", choices=ALGORITHMS, help="Algorithm to run")
    run.add_argument("--data", "-d", help="Entity/relation JSON file (default: demo data)")
    run.add_argument(
        "--param", "-p", action="append", default=[], metavar="KEY=VALUE",
        help="Algorithm parameter, repeatable (camelCase or snake_case keys)",
    )
    run.add_argument("--container-type", help="Container type for the co-occurrence graph")
    run.add_argument("--item-type", help="Item type for the co-occurrence graph")
    run.add_argument("--top", type=int, help="Truncate centrality rankings to N entries")
    run.add_argument(
        "--format", "-f", default="json", choices=["json", "csv", "newick"],
        help="Output format (csv: association rules, newick: hierarchical tree)",
    )
    run.add_argument("--output", "-o", help="Write output to file instead of stdout")

    # cooccur
    co = subparsers.add_parser("cooccur", help="Build a co-occurrence graph")
    co.add_argument("--data", "-d", help="Entity/relation JSON file (default: demo data)")
    co.add_argument("--container-type", required=True, help="Container entity type")
    co.add_argument("--item-type", required=True, help="Item entity type")
    co.add_argument("--metrics", action="store_true", help="Annotate node metrics and graph metadata")
    co.add_argument("--backbone", type=float, default=0.0, help="Drop links lighter than this weight")
    co.add_argument("--output", "-o", help="Write output to file instead of stdout")

    # demo
    subparsers.add_parser("demo", help="Print the demo dataset")

    # serve
    srv = subparsers.add_parser("serve", help="Start the HTTP API")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    # Logging
    from tcmkg.config.settings import settings

    level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Dispatch
    try:
        if args.command == "run":
            _cmd_run(args)
        elif args.command == "cooccur":
            _cmd_cooccur(args)
        elif args.command == "demo":
            _cmd_demo()
        elif args.command == "serve":
            _cmd_serve(args)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
    except Exception as exc:
        logger.error("Error: %s", exc)
        if args.verbose:
            raise
        sys.exit(1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_raw(path: str | None):
    from tcmkg.data.demo_graph import get_demo_graph
    from tcmkg.graph.models import RawGraph

    if not path:
        return get_demo_graph()
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return RawGraph.from_dict(payload)


def _parse_param_args(pairs: list[str]) -> dict[str, Any]:
    """``key=value`` strings to a dict. Values are JSON when they parse."""
    params: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid --param {pair!r}; expected KEY=VALUE")
        key, raw_value = pair.split("=", 1)
        try:
            value = json.loads(raw_value)
        except json.JSONDecodeError:
            value = raw_value
        params[key.strip()] = value
    return params


def _emit(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        print(f"Written to {output}")
    else:
        print(text)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_run(args: argparse.Namespace) -> None:
    """Run one algorithm and print its result."""
    from tcmkg.config.settings import settings
    from tcmkg.graph.centrality import CentralityRankings
    from tcmkg.graph.engine import AnalysisEngine, HierarchicalResult
    from tcmkg.graph.association import AssociationResult
    from tcmkg.graph.exporters import dendrogram_to_newick, rules_to_csv

    raw = _load_raw(args.data)
    params = _parse_param_args(args.param)

    engine = AnalysisEngine(settings)
    result = engine.run(
        args.algorithm, raw, params=params,
        container_type=args.container_type, item_type=args.item_type,
    )

    if isinstance(result, CentralityRankings):
        result = result.top(args.top if args.top is not None else settings.CENTRALITY_TOP_N)

    if args.format == "newick":
        if not isinstance(result, HierarchicalResult):
            raise ValueError("newick output is only available for hierarchical")
        text = dendrogram_to_newick(result.tree)
    elif args.format == "csv":
        if not isinstance(result, AssociationResult):
            raise ValueError("csv output is only available for association")
        text = rules_to_csv(result.rules)
    else:
        text = _dump(result.to_dict())

    _emit(text, args.output)


def _cmd_cooccur(args: argparse.Namespace) -> None:
    """Build (and optionally annotate) a co-occurrence graph."""
    from tcmkg.graph.cooccurrence import build_cooccurrence_graph
    from tcmkg.graph.metrics import annotate_metrics, extract_backbone, graph_metadata

    raw = _load_raw(args.data)
    graph = build_cooccurrence_graph(raw.entities, raw.relations, args.container_type, args.item_type)
    graph = extract_backbone(graph, args.backbone)

    if args.metrics:
        annotate_metrics(graph)
        graph.metadata.update(graph_metadata(graph))

    _emit(_dump(graph.to_dict()), args.output)


def _cmd_demo() -> None:
    """Print the demo dataset."""
    from tcmkg.data.demo_graph import get_demo_payload

    print(_dump(get_demo_payload()))


def _cmd_serve(args: argparse.Namespace) -> None:
    """Start the HTTP API with uvicorn."""
    import uvicorn

    print(f"Starting tcmkg API on http://{args.host}:{args.port}")
    uvicorn.run("tcmkg.api.app:create_app", factory=True, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
