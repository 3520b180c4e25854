"""Phase contract and sequential runner for the confxml snapshot pipeline."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List

logger = logging.getLogger(__name__)


class PipelinePhase(ABC):
    """One stage of turning a confxml document into a ``Graph``.

    A phase reads the keys earlier stages left in the context (``document``,
    ``element_tree``, ``decoded_mesh``, ``orchestrator``, ``graph``) and
    returns only the keys it adds.
    """

    phase_name: str

    @abstractmethod
    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class PipelineRunner:
    """Runs the snapshot phases in order, merging each phase's output into the context.

    Any exception raised by a phase aborts the run; no partial graph is
    returned.
    """

    def __init__(self, phases: Iterable[PipelinePhase]) -> None:
        self.phases: List[PipelinePhase] = list(phases)

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        current = dict(context)
        for phase in self.phases:
            logger.debug("Running phase '%s' with context keys %s", phase.phase_name, sorted(current))
            phase_result = phase.run(current)
            if not isinstance(phase_result, dict):
                raise TypeError(
                    f"Snapshot phase '{phase.phase_name}' returned {type(phase_result).__name__}; "
                    "it must return a dict of the context keys it adds."
                )
            current.update(phase_result)
        return current
