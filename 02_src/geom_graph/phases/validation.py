"""Validation and QA phase over a built graph."""

import logging
from typing import Any, Dict, List

from ..graph_model import Graph
from ..metadata import is_opaque
from ..pipeline import PipelinePhase

logger = logging.getLogger(__name__)


class ValidationPhase(PipelinePhase):
    phase_name = "validation"

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        graph: Graph = context["graph"]
        warnings: List[str] = []

        unreachable = [geom.name for geom in graph.unreachable()]
        if unreachable:
            warnings.append(f"{len(unreachable)} geoms are unreachable from any root")

        opaque_classes: List[str] = []
        for geom in graph.geoms.values():
            if is_opaque(geom.metadata) and geom.class_name not in opaque_classes:
                opaque_classes.append(geom.class_name)

        detached = [consumer.id for consumer in graph.consumers.values() if consumer.provider_id is None]
        if detached:
            warnings.append(f"{len(detached)} consumers are detached")

        for warning in warnings:
            logger.warning(warning)

        qa_report = {
            "geom_count": len(graph.geoms),
            "provider_count": len(graph.providers),
            "consumer_count": len(graph.consumers),
            "edge_count": len(graph.edges),
            "root_count": len(graph.root_ids),
            "unreachable_geoms": unreachable,
            "opaque_classes": opaque_classes,
            "warnings": warnings,
        }
        return {"validation_report": qa_report}
