"""Typed, traversable snapshots of the FreeBSD GEOM storage topology."""

from .cli import build_graph, read_confxml, run_pipeline
from .document import Element, parse_document
from .errors import (
    GeomGraphError,
    GeomReferenceError,
    MalformedDocument,
    RecordDecodeError,
    UnknownIdentifier,
)
from .graph_model import Consumer, Edge, Geom, Graph, Provider
from .graph_orchestrator import GraphOrchestrator
from .metadata import (
    DEFAULT_REGISTRY,
    OPAQUE_TAG,
    ClassMetadata,
    ClassRegistry,
    DiskMetadata,
    LabelMetadata,
    MemoryDiskMetadata,
    OpaqueMetadata,
    PartEntryMetadata,
    PartScheme,
    PartState,
    PartTableMetadata,
    build_default_registry,
)
from .pipeline import PipelinePhase, PipelineRunner
from .records import DecodedMesh, Mode, decode_mesh

__all__ = [
    "build_graph",
    "read_confxml",
    "run_pipeline",
    "Element",
    "parse_document",
    "GeomGraphError",
    "GeomReferenceError",
    "MalformedDocument",
    "RecordDecodeError",
    "UnknownIdentifier",
    "Consumer",
    "Edge",
    "Geom",
    "Graph",
    "Provider",
    "GraphOrchestrator",
    "DEFAULT_REGISTRY",
    "OPAQUE_TAG",
    "ClassMetadata",
    "ClassRegistry",
    "DiskMetadata",
    "LabelMetadata",
    "MemoryDiskMetadata",
    "OpaqueMetadata",
    "PartEntryMetadata",
    "PartScheme",
    "PartState",
    "PartTableMetadata",
    "build_default_registry",
    "PipelinePhase",
    "PipelineRunner",
    "DecodedMesh",
    "Mode",
    "decode_mesh",
]
