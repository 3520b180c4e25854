"""Tests for reference resolution, roots and ranks."""
from __future__ import annotations

import pytest

from geom_graph import GeomReferenceError, GraphOrchestrator, OpaqueMetadata, build_graph, decode_mesh, parse_document

from conftest import (
    DEV_GEOM,
    DISK_GEOM,
    LABEL_GEOM,
    P1_PROVIDER,
    P2_PROVIDER,
    PART_GEOM,
    class_xml,
    consumer_xml,
    geom_xml,
    mesh_xml,
    provider_xml,
)


def _diamond() -> str:
    """disk0 feeds geoms A and B; geom C consumes both."""
    return mesh_xml(
        class_xml("0xc1", "DISK", geom_xml("0xd0", "disk0", provider_xml("0xp0", "disk0"))),
        class_xml(
            "0xc2", "SPLIT",
            geom_xml("0xa", "A", consumer_xml("0xka", "0xp0") + provider_xml("0xpa", "A")),
            geom_xml("0xb", "B", consumer_xml("0xkb", "0xp0") + provider_xml("0xpb", "B")),
        ),
        class_xml(
            "0xc3", "JOIN",
            geom_xml("0xc", "C", consumer_xml("0xkc1", "0xpa") + consumer_xml("0xkc2", "0xpb")),
        ),
    )


# ─────────────────────────────────────────────────────────
# Example topology
# ─────────────────────────────────────────────────────────


class TestSampleGraph:
    def test_roots(self, sample_graph):
        roots = sample_graph.roots()
        assert [root.id for root in roots] == [DISK_GEOM]
        assert roots[0].name == "ada0"
        assert roots[0].rank == 1

    def test_ranks(self, sample_graph):
        ranks = {geom.id: geom.rank for geom in sample_graph.geoms.values()}
        assert ranks == {DISK_GEOM: 1, PART_GEOM: 2, DEV_GEOM: 3, LABEL_GEOM: 3}

    def test_provider_attachment(self, sample_graph):
        part = sample_graph.geom(PART_GEOM)
        assert part.provider_ids == (P1_PROVIDER, P2_PROVIDER)
        p1 = sample_graph.provider(P1_PROVIDER)
        assert p1.geom_id == PART_GEOM
        assert [sample_graph.consumer(c).geom_id for c in p1.consumer_ids] == [DEV_GEOM]

    def test_unconsumed_provider_has_no_consumers(self, sample_graph):
        label = sample_graph.geom(LABEL_GEOM)
        (provider_id,) = label.provider_ids
        assert sample_graph.provider(provider_id).consumer_ids == ()

    def test_edge_count(self, sample_graph):
        assert len(sample_graph.edges) == 3

    def test_referential_closure(self, sample_graph):
        for provider in sample_graph.providers.values():
            assert provider.geom_id in sample_graph.geoms
        for consumer in sample_graph.consumers.values():
            if consumer.provider_id is not None:
                assert consumer.provider_id in sample_graph.providers

    def test_roots_have_no_inbound_edges(self, sample_graph):
        root_ids = {root.id for root in sample_graph.roots()}
        no_inbound = {geom_id for geom_id in sample_graph.geoms if not list(sample_graph.parent_edges_of(geom_id))}
        assert root_ids == no_inbound

    def test_rank_follows_minimal_parent(self, sample_graph):
        for edge in sample_graph.edges.values():
            parent = sample_graph.geom(edge.parent_id)
            child = sample_graph.geom(edge.child_id)
            assert child.rank <= parent.rank + 1


# ─────────────────────────────────────────────────────────
# Reference integrity
# ─────────────────────────────────────────────────────────


class TestReferenceErrors:
    def test_consumer_references_missing_provider(self):
        doc = mesh_xml(class_xml("0xc1", "DEV", geom_xml("0xg1", "x", consumer_xml("0xk1", "0xdead"))))
        with pytest.raises(GeomReferenceError) as excinfo:
            build_graph(doc)
        assert excinfo.value.identifier == "0xdead"
        assert excinfo.value.field == "consumer.provider"

    def test_provider_references_missing_geom(self):
        doc = mesh_xml(
            class_xml(
                "0xc1", "DEV",
                geom_xml("0xg1", "x", '<provider id="0xp1"><geom ref="0xnowhere"/><name>x</name></provider>'),
            )
        )
        with pytest.raises(GeomReferenceError) as excinfo:
            build_graph(doc)
        assert excinfo.value.identifier == "0xnowhere"
        assert excinfo.value.field == "provider.geom"

    def test_consumer_references_missing_geom(self):
        doc = mesh_xml(
            class_xml("0xc1", "DEV", geom_xml("0xg1", "x", consumer_xml("0xk1", None, geom_ref="0xnowhere")))
        )
        with pytest.raises(GeomReferenceError) as excinfo:
            build_graph(doc)
        assert excinfo.value.field == "consumer.geom"

    def test_self_loop(self):
        doc = mesh_xml(
            class_xml("0xc1", "LOOP", geom_xml("0xg1", "x", provider_xml("0xp1", "x") + consumer_xml("0xk1", "0xp1")))
        )
        with pytest.raises(GeomReferenceError) as excinfo:
            build_graph(doc)
        assert excinfo.value.identifier == "0xp1"
        assert "self loop" in str(excinfo.value)

    @pytest.mark.parametrize(
        "classes",
        [
            (class_xml("0xc1", "DEV", geom_xml("0xg1", "a"), geom_xml("0xg1", "b")),),
            (class_xml("0xc1", "DEV", geom_xml("0xg1", "a", provider_xml("0xp1", "a")),
                       geom_xml("0xg2", "b", provider_xml("0xp1", "b"))),),
            (class_xml("0xc1", "DEV", geom_xml("0xg1", "a", consumer_xml("0xk1")),
                       geom_xml("0xg2", "b", consumer_xml("0xk1"))),),
        ],
    )
    def test_duplicate_identifiers(self, classes):
        with pytest.raises(GeomReferenceError, match="duplicate"):
            build_graph(mesh_xml(*classes))

    def test_namespaces_may_share_identifiers(self):
        doc = mesh_xml(
            class_xml("0xc1", "DISK", geom_xml("0x1", "disk", provider_xml("0x1", "disk"))),
            class_xml("0xc2", "DEV", geom_xml("0x2", "dev", consumer_xml("0x1", "0x1"))),
        )
        graph = build_graph(doc)
        assert graph.geom("0x1").name == "disk"
        assert graph.provider("0x1").name == "disk"
        assert graph.consumer("0x1").geom_id == "0x2"
        assert graph.geom("0x2").rank == 2


# ─────────────────────────────────────────────────────────
# Roots and ranks on unusual shapes
# ─────────────────────────────────────────────────────────


class TestRanks:
    def test_diamond_rank(self):
        graph = build_graph(_diamond())
        assert [g.rank for g in graph.geoms.values()] == [1, 2, 2, 3]

    def test_shortest_path_wins(self):
        doc = mesh_xml(
            class_xml(
                "0xc1", "DISK",
                geom_xml("0xr1", "r1", provider_xml("0xpr1", "r1")),
                geom_xml("0xr2", "r2", provider_xml("0xpr2", "r2")),
            ),
            class_xml(
                "0xc2", "STACK",
                geom_xml("0xm", "mid", consumer_xml("0xkm", "0xpr2") + provider_xml("0xpm", "mid")),
                geom_xml("0xt", "top", consumer_xml("0xkt1", "0xpm") + consumer_xml("0xkt2", "0xpr1")),
            ),
        )
        graph = build_graph(doc)
        assert [root.name for root in graph.roots()] == ["r1", "r2"]
        assert graph.geom("0xt").rank == 2
        assert graph.geom("0xm").rank == 2

    def test_cycle_without_root_is_unreachable(self):
        doc = mesh_xml(
            class_xml("0xc1", "DISK", geom_xml("0xd", "disk")),
            class_xml(
                "0xc2", "CYCLE",
                geom_xml("0xx", "x", provider_xml("0xpx", "x") + consumer_xml("0xkx", "0xpy")),
                geom_xml("0xy", "y", provider_xml("0xpy", "y") + consumer_xml("0xky", "0xpx")),
            ),
        )
        graph = build_graph(doc)
        assert [root.name for root in graph.roots()] == ["disk"]
        assert graph.geom("0xx").rank == 0
        assert graph.geom("0xy").rank == 0
        assert [geom.name for geom in graph.unreachable()] == ["x", "y"]

    def test_unknown_class_builds(self):
        doc = mesh_xml(
            class_xml("0xc1", "DISK", geom_xml("0xd", "da0", provider_xml("0xpd", "da0"))),
            class_xml("0xc2", "ELI", geom_xml("0xe", "da0.eli", "<config><keylen>256</keylen></config>"
                                               + consumer_xml("0xke", "0xpd"))),
        )
        graph = build_graph(doc)
        eli = graph.geom("0xe")
        assert isinstance(eli.metadata, OpaqueMetadata)
        assert eli.metadata.fields == {"keylen": "256"}
        assert eli.rank == 2

    def test_empty_mesh(self):
        graph = build_graph("<mesh/>")
        assert graph.roots() == []
        assert len(graph.geoms) == 0


# ─────────────────────────────────────────────────────────
# Orchestrator step ordering
# ─────────────────────────────────────────────────────────


class TestGraphOrchestrator:
    def test_steps_must_run_in_order(self, sample_confxml):
        mesh = decode_mesh(parse_document(sample_confxml))
        orchestrator = GraphOrchestrator()
        orchestrator.index_records(mesh.geoms, mesh.providers, mesh.consumers)
        with pytest.raises(RuntimeError):
            orchestrator.assign_ranks()
        with pytest.raises(RuntimeError):
            orchestrator.to_graph()

    def test_manual_build(self, sample_confxml):
        mesh = decode_mesh(parse_document(sample_confxml))
        orchestrator = GraphOrchestrator()
        assert orchestrator.index_records(mesh.geoms, mesh.providers, mesh.consumers) == 4
        assert orchestrator.link_consumers() == 3
        assert orchestrator.assign_ranks() == [DISK_GEOM]
        assert orchestrator.children_of(PART_GEOM) == [DEV_GEOM, LABEL_GEOM]
        graph = orchestrator.to_graph()
        assert graph.geom(LABEL_GEOM).rank == 3
