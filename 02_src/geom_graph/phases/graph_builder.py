"""Graph building phase powered by a LangGraph workflow."""

import logging
from typing import Any, Dict, List

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from ..graph_model import Graph
from ..graph_orchestrator import GraphOrchestrator
from ..pipeline import PipelinePhase
from ..records import DecodedMesh

logger = logging.getLogger(__name__)


class BuildState(TypedDict, total=False):
    mesh: DecodedMesh
    orchestrator: GraphOrchestrator
    geom_count: int
    edge_count: int
    root_ids: List[str]
    graph: Graph


class GraphBuildingPhase(PipelinePhase):
    phase_name = "graph_builder"

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        orchestrator = context.get("orchestrator") or GraphOrchestrator()
        workflow = self._build_workflow()
        result_state = workflow.invoke(
            {"mesh": context["decoded_mesh"], "orchestrator": orchestrator}
        )
        graph: Graph = result_state["graph"]
        logger.info(
            "Built graph: %d geoms, %d edges, %d roots",
            len(graph.geoms),
            result_state.get("edge_count", 0),
            len(graph.root_ids),
        )
        return {"graph": graph}

    def _build_workflow(self):
        graph = StateGraph(BuildState)
        graph.add_node("index_records", self._index_records)
        graph.add_node("link_consumers", self._link_consumers)
        graph.add_node("assign_ranks", self._assign_ranks)
        graph.add_node("freeze_graph", self._freeze_graph)
        graph.add_edge(START, "index_records")
        graph.add_edge("index_records", "link_consumers")
        graph.add_edge("link_consumers", "assign_ranks")
        graph.add_edge("assign_ranks", "freeze_graph")
        graph.add_edge("freeze_graph", END)
        return graph.compile()

    @staticmethod
    def _index_records(state: BuildState) -> Dict[str, Any]:
        mesh = state["mesh"]
        geom_count = state["orchestrator"].index_records(mesh.geoms, mesh.providers, mesh.consumers)
        return {"geom_count": geom_count}

    @staticmethod
    def _link_consumers(state: BuildState) -> Dict[str, Any]:
        return {"edge_count": state["orchestrator"].link_consumers()}

    @staticmethod
    def _assign_ranks(state: BuildState) -> Dict[str, Any]:
        return {"root_ids": state["orchestrator"].assign_ranks()}

    @staticmethod
    def _freeze_graph(state: BuildState) -> Dict[str, Any]:
        return {"graph": state["orchestrator"].to_graph()}
