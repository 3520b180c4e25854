"""CLI entrypoint and helpers for building a GEOM graph snapshot."""

import argparse
import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

from dotenv import load_dotenv

from .errors import GeomGraphError
from .graph_model import Graph
from .graph_orchestrator import GraphOrchestrator
from .metadata import ClassRegistry
from .phases import (
    DocumentParsingPhase,
    GraphBuildingPhase,
    RecordDecodingPhase,
    ValidationPhase,
)
from .pipeline import PipelinePhase, PipelineRunner

logger = logging.getLogger(__name__)

DEFAULT_SYSCTL_NAME = "kern.geom.confxml"


def build_default_phases(registry: Optional[ClassRegistry] = None) -> List[PipelinePhase]:
    return [
        DocumentParsingPhase(),
        RecordDecodingPhase(registry),
        GraphBuildingPhase(),
        ValidationPhase(),
    ]


def run_pipeline(document: Union[str, bytes], registry: Optional[ClassRegistry] = None) -> Dict[str, Any]:
    initial_context: Dict[str, Any] = {
        "document": document,
        "orchestrator": GraphOrchestrator(),
    }
    runner = PipelineRunner(phases=build_default_phases(registry))
    return runner.run(initial_context)


def build_graph(document: Union[str, bytes], registry: Optional[ClassRegistry] = None) -> Graph:
    """Build one immutable snapshot from a ``kern.geom.confxml`` document."""
    return run_pipeline(document, registry)["graph"]


def read_confxml(path: Optional[str] = None, sysctl_name: Optional[str] = None) -> str:
    """Read the configuration document from a file, or from sysctl(8) when no path is given."""
    if path:
        return Path(path).read_text(encoding="utf-8")
    name = sysctl_name or os.getenv("GEOM_SYSCTL_NAME", DEFAULT_SYSCTL_NAME)
    completed = subprocess.run(
        ["sysctl", "-n", name],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


def render_tree(graph: Graph, stream: TextIO, root_name: Optional[str] = None) -> int:
    roots = graph.roots()
    if root_name:
        roots = [root for root in roots if root.name == root_name]
    for root in roots:
        for _, edge, geom in graph.descendants_of(root.id):
            indent = "  " * (geom.rank - 1)
            via = f" <- {edge.name}" if edge is not None else ""
            stream.write(f"{indent}{geom.name} [{geom.class_name}, rank {geom.rank}]{via}\n")
    return len(roots)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print the GEOM storage topology as a tree or JSON.")
    parser.add_argument(
        "--input-path",
        default=os.getenv("GEOM_CONFXML_PATH", ""),
        help="Path to a saved kern.geom.confxml document (default: query sysctl).",
    )
    parser.add_argument("--json", action="store_true", help="Print the graph snapshot as JSON.")
    parser.add_argument("--root", default="", help="Only print the tree below the root with this name.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("GEOM_GRAPH_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)

    try:
        document = read_confxml(args.input_path or None)
        graph = build_graph(document)
    except (OSError, subprocess.CalledProcessError, GeomGraphError) as error:
        logger.error("Cannot build GEOM graph: %s", error)
        return 1

    if args.json:
        json.dump(graph.to_json(), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
        return 0

    printed = render_tree(graph, sys.stdout, root_name=args.root or None)
    if args.root and not printed:
        logger.error("No root geom named %s", args.root)
        return 1
    return 0
