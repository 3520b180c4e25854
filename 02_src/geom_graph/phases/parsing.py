"""Document parsing phase."""

from typing import Any, Dict

from ..document import parse_document
from ..pipeline import PipelinePhase


class DocumentParsingPhase(PipelinePhase):
    phase_name = "parsing"

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        if "document" not in context:
            raise KeyError("Pipeline context has no 'document' to parse.")
        return {"element_tree": parse_document(context["document"])}
