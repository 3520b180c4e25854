"""Record decoding phase: element tree to flat class/geom/provider/consumer records."""

import logging
from typing import Any, Dict, Optional

from ..metadata import ClassRegistry
from ..pipeline import PipelinePhase
from ..records import MeshDecoder, opaque_class_names

logger = logging.getLogger(__name__)


class RecordDecodingPhase(PipelinePhase):
    phase_name = "decoding"

    def __init__(self, registry: Optional[ClassRegistry] = None) -> None:
        self._registry = registry

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        registry = context.get("registry") or self._registry
        mesh = MeshDecoder(registry).decode(context["element_tree"])
        opaque = opaque_class_names(mesh)
        if opaque:
            logger.info("Opaque metadata kept for classes: %s", ", ".join(opaque))
        return {"decoded_mesh": mesh}
