"""Deterministic assembly of a validated graph from decoded records."""

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List

from .errors import GeomReferenceError
from .graph_model import Consumer, Edge, Geom, Graph, Provider
from .records import ConsumerRecord, GeomRecord, Identifier, ProviderRecord

logger = logging.getLogger(__name__)


class GraphOrchestrator:
    """Owns identifier indices and the integrity checks of one snapshot.

    Records are added in document order; ``link_consumers`` resolves the
    consumer → provider references into edges, ``assign_ranks`` computes the
    root set and ranks, and ``to_graph`` freezes the result.
    """

    def __init__(self) -> None:
        self._geoms: Dict[Identifier, GeomRecord] = {}
        self._providers: Dict[Identifier, ProviderRecord] = {}
        self._consumers: Dict[Identifier, ConsumerRecord] = {}
        self._geom_providers: Dict[Identifier, List[Identifier]] = {}
        self._geom_consumers: Dict[Identifier, List[Identifier]] = {}
        self._attached: Dict[Identifier, List[Identifier]] = {}
        self._inbound: Dict[Identifier, List[Identifier]] = {}
        self._edges: Dict[Identifier, Edge] = {}
        self._ranks: Dict[Identifier, int] = {}
        self._root_ids: List[Identifier] = []
        self._linked = False
        self._ranked = False

    # -- indexing ------------------------------------------------------------

    def add_geom(self, record: GeomRecord) -> None:
        if record.id in self._geoms:
            raise GeomReferenceError("geom.id", record.id, "duplicate identifier")
        self._geoms[record.id] = record
        self._geom_providers[record.id] = []
        self._geom_consumers[record.id] = []

    def add_provider(self, record: ProviderRecord) -> None:
        if record.id in self._providers:
            raise GeomReferenceError("provider.id", record.id, "duplicate identifier")
        if record.geom_id not in self._geoms:
            raise GeomReferenceError("provider.geom", record.geom_id)
        self._providers[record.id] = record
        self._geom_providers[record.geom_id].append(record.id)
        self._attached[record.id] = []

    def add_consumer(self, record: ConsumerRecord) -> None:
        if record.id in self._consumers:
            raise GeomReferenceError("consumer.id", record.id, "duplicate identifier")
        if record.geom_id not in self._geoms:
            raise GeomReferenceError("consumer.geom", record.geom_id)
        self._consumers[record.id] = record
        self._geom_consumers[record.geom_id].append(record.id)

    def index_records(
        self,
        geoms: Iterable[GeomRecord],
        providers: Iterable[ProviderRecord],
        consumers: Iterable[ConsumerRecord],
    ) -> int:
        for geom in geoms:
            self.add_geom(geom)
        for provider in providers:
            self.add_provider(provider)
        for consumer in consumers:
            self.add_consumer(consumer)
        return len(self._geoms)

    # -- edges ---------------------------------------------------------------

    def link_consumers(self) -> int:
        """Attach every consumer to its provider and record the induced edge."""
        for consumer in self._consumers.values():
            if consumer.provider_id is None:
                logger.debug("Consumer %s is detached", consumer.id)
                continue
            provider = self._providers.get(consumer.provider_id)
            if provider is None:
                raise GeomReferenceError("consumer.provider", consumer.provider_id)
            if provider.geom_id == consumer.geom_id:
                raise GeomReferenceError(
                    "consumer.provider", consumer.provider_id, f"self loop on geom {consumer.geom_id}"
                )

            self._attached[provider.id].append(consumer.id)
            self._inbound.setdefault(consumer.geom_id, []).append(consumer.id)
            self._edges[consumer.id] = Edge(
                parent_id=provider.geom_id,
                child_id=consumer.geom_id,
                provider_id=provider.id,
                consumer_id=consumer.id,
                name=provider.name,
                metadata=provider.metadata,
                consumer_metadata=consumer.metadata,
                mode=provider.mode,
                mediasize=provider.mediasize,
                sectorsize=provider.sectorsize,
                stripesize=provider.stripesize,
                stripeoffset=provider.stripeoffset,
            )
        self._linked = True
        return len(self._edges)

    def children_of(self, geom_id: Identifier) -> List[Identifier]:
        children: List[Identifier] = []
        for provider_id in self._geom_providers[geom_id]:
            for consumer_id in self._attached[provider_id]:
                children.append(self._consumers[consumer_id].geom_id)
        return children

    # -- ranks ---------------------------------------------------------------

    def assign_ranks(self) -> List[Identifier]:
        """Breadth-first rank propagation from every root at once.

        Roots are geoms without inbound edges, taken in document order, and
        start at rank 1. The first rank written to a geom is kept; geoms no
        root reaches stay at rank 0.
        """
        if not self._linked:
            raise RuntimeError("link_consumers() must run before assign_ranks().")

        self._root_ids = [geom_id for geom_id in self._geoms if not self._inbound.get(geom_id)]
        self._ranks = {geom_id: 0 for geom_id in self._geoms}
        queue: Deque[Identifier] = deque()
        for root_id in self._root_ids:
            self._ranks[root_id] = 1
            queue.append(root_id)

        while queue:
            geom_id = queue.popleft()
            next_rank = self._ranks[geom_id] + 1
            for child_id in self.children_of(geom_id):
                if self._ranks[child_id] == 0:
                    self._ranks[child_id] = next_rank
                    queue.append(child_id)

        unreachable = [geom_id for geom_id, rank in self._ranks.items() if rank == 0]
        if unreachable:
            logger.warning("%d geoms are not reachable from any root", len(unreachable))
        self._ranked = True
        return list(self._root_ids)

    # -- result --------------------------------------------------------------

    def to_graph(self) -> Graph:
        if not self._ranked:
            raise RuntimeError("assign_ranks() must run before to_graph().")

        geoms = {
            geom_id: Geom(
                id=record.id,
                name=record.name,
                class_name=record.class_name,
                metadata=record.metadata,
                provider_ids=tuple(self._geom_providers[geom_id]),
                consumer_ids=tuple(self._geom_consumers[geom_id]),
                rank=self._ranks[geom_id],
            )
            for geom_id, record in self._geoms.items()
        }
        providers = {
            provider_id: Provider(
                id=record.id,
                name=record.name,
                geom_id=record.geom_id,
                metadata=record.metadata,
                consumer_ids=tuple(self._attached[provider_id]),
                mode=record.mode,
                mediasize=record.mediasize,
                sectorsize=record.sectorsize,
                stripesize=record.stripesize,
                stripeoffset=record.stripeoffset,
            )
            for provider_id, record in self._providers.items()
        }
        consumers = {
            consumer_id: Consumer(
                id=record.id,
                geom_id=record.geom_id,
                provider_id=record.provider_id,
                metadata=record.metadata,
                mode=record.mode,
            )
            for consumer_id, record in self._consumers.items()
        }
        return Graph(
            geoms=geoms,
            providers=providers,
            consumers=consumers,
            edges=dict(self._edges),
            inbound={geom_id: tuple(ids) for geom_id, ids in self._inbound.items()},
            root_ids=tuple(self._root_ids),
        )
