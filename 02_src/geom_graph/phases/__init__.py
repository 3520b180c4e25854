"""Pipeline phases turning a GEOM configuration document into a graph."""

from .decoding import RecordDecodingPhase
from .graph_builder import GraphBuildingPhase
from .parsing import DocumentParsingPhase
from .validation import ValidationPhase

__all__ = [
    "DocumentParsingPhase",
    "RecordDecodingPhase",
    "GraphBuildingPhase",
    "ValidationPhase",
]
