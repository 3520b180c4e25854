"""Immutable GEOM graph snapshot and its traversal primitives."""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from .errors import UnknownIdentifier
from .metadata import Metadata
from .records import Identifier, Mode


@dataclass(frozen=True)
class Geom:
    id: Identifier
    name: str
    class_name: str
    metadata: Metadata
    provider_ids: Tuple[Identifier, ...] = ()
    consumer_ids: Tuple[Identifier, ...] = ()
    # Distance from the nearest root (root = 1); 0 when no root reaches the geom.
    rank: int = 0


@dataclass(frozen=True)
class Provider:
    id: Identifier
    name: str
    geom_id: Identifier
    metadata: Metadata
    consumer_ids: Tuple[Identifier, ...] = ()
    mode: Optional[Mode] = None
    mediasize: Optional[int] = None
    sectorsize: Optional[int] = None
    stripesize: Optional[int] = None
    stripeoffset: Optional[int] = None


@dataclass(frozen=True)
class Consumer:
    id: Identifier
    geom_id: Identifier
    provider_id: Optional[Identifier]
    metadata: Metadata
    mode: Optional[Mode] = None


@dataclass(frozen=True)
class Edge:
    """A consumer attached to a provider, seen as parent geom -> child geom.

    ``metadata`` is the provider's class-specific data (a partition entry, a
    disk identity, ...); ``consumer_metadata`` is the consumer's own.
    """

    parent_id: Identifier
    child_id: Identifier
    provider_id: Identifier
    consumer_id: Identifier
    name: str
    metadata: Metadata
    consumer_metadata: Metadata
    mode: Optional[Mode] = None
    mediasize: Optional[int] = None
    sectorsize: Optional[int] = None
    stripesize: Optional[int] = None
    stripeoffset: Optional[int] = None


@dataclass(frozen=True)
class Graph:
    """One snapshot of the GEOM topology.

    Geoms, providers and consumers are stored in document order and keyed by
    their identifiers; nothing holds a direct reference to another record.
    All query methods are read-only, and every traversal keeps its own
    cursor state, so one graph can be shared between threads.
    """

    geoms: Mapping[Identifier, Geom] = field(default_factory=dict, hash=False)
    providers: Mapping[Identifier, Provider] = field(default_factory=dict, hash=False)
    consumers: Mapping[Identifier, Consumer] = field(default_factory=dict, hash=False)
    edges: Mapping[Identifier, Edge] = field(default_factory=dict, hash=False)
    inbound: Mapping[Identifier, Tuple[Identifier, ...]] = field(default_factory=dict, hash=False)
    root_ids: Tuple[Identifier, ...] = ()

    def __post_init__(self) -> None:
        for name in ("geoms", "providers", "consumers", "edges", "inbound"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    # -- lookups -------------------------------------------------------------

    def geom(self, geom_id: Identifier) -> Geom:
        try:
            return self.geoms[geom_id]
        except KeyError:
            raise UnknownIdentifier("geom", geom_id) from None

    def provider(self, provider_id: Identifier) -> Provider:
        try:
            return self.providers[provider_id]
        except KeyError:
            raise UnknownIdentifier("provider", provider_id) from None

    def consumer(self, consumer_id: Identifier) -> Consumer:
        try:
            return self.consumers[consumer_id]
        except KeyError:
            raise UnknownIdentifier("consumer", consumer_id) from None

    def edge(self, consumer_id: Identifier) -> Edge:
        try:
            return self.edges[consumer_id]
        except KeyError:
            raise UnknownIdentifier("edge", consumer_id) from None

    def find_by_name(self, name: str, class_name: Optional[str] = None) -> List[Geom]:
        """Geom names are not unique, so every match is returned."""
        return [
            geom
            for geom in self.geoms.values()
            if geom.name == name and (class_name is None or geom.class_name == class_name)
        ]

    # -- queries -------------------------------------------------------------

    def roots(self) -> List[Geom]:
        return [self.geoms[geom_id] for geom_id in self.root_ids]

    def unreachable(self) -> List[Geom]:
        return [geom for geom in self.geoms.values() if geom.rank == 0]

    def child_edges_of(self, geom_id: Identifier) -> Iterator[Tuple[Identifier, Edge]]:
        """Yield ``(consumer_id, edge)`` for each edge leaving ``geom_id``.

        Edges come in provider document order, then consumer document order.
        """
        geom = self.geom(geom_id)
        return self._iter_child_edges(geom)

    def child_geoms_of(self, geom_id: Identifier) -> Iterator[Tuple[Identifier, Edge, Geom]]:
        geom = self.geom(geom_id)
        return (
            (consumer_id, edge, self.geoms[edge.child_id])
            for consumer_id, edge in self._iter_child_edges(geom)
        )

    def parent_edges_of(self, geom_id: Identifier) -> Iterator[Tuple[Identifier, Edge]]:
        self.geom(geom_id)
        return ((consumer_id, self.edges[consumer_id]) for consumer_id in self.inbound.get(geom_id, ()))

    def descendants_of(self, root_id: Identifier) -> Iterator[Tuple[Identifier, Optional[Edge], Geom]]:
        """Pre-order depth-first walk starting at ``root_id``.

        Yields ``(geom_id, edge, geom)``; the start geom comes first with
        ``edge=None``. A geom reachable over several paths is yielded once.
        """
        root = self.geom(root_id)
        return self._walk(root)

    def _iter_child_edges(self, geom: Geom) -> Iterator[Tuple[Identifier, Edge]]:
        for provider_id in geom.provider_ids:
            for consumer_id in self.providers[provider_id].consumer_ids:
                yield consumer_id, self.edges[consumer_id]

    def _walk(self, root: Geom) -> Iterator[Tuple[Identifier, Optional[Edge], Geom]]:
        visited: Set[Identifier] = set()
        stack: List[Tuple[Geom, Optional[Edge]]] = [(root, None)]
        while stack:
            geom, edge = stack.pop()
            if geom.id in visited:
                continue
            visited.add(geom.id)
            yield geom.id, edge, geom

            children = [
                (self.geoms[child_edge.child_id], child_edge)
                for _, child_edge in self._iter_child_edges(geom)
                if child_edge.child_id not in visited
            ]
            stack.extend(reversed(children))

    # -- export --------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        return {
            "roots": list(self.root_ids),
            "geoms": [_to_plain(geom) for geom in self.geoms.values()],
            "providers": [_to_plain(provider) for provider in self.providers.values()],
            "consumers": [_to_plain(consumer) for consumer in self.consumers.values()],
            "edges": [_to_plain(edge) for edge in self.edges.values()],
        }


def _to_plain(value: Any) -> Any:
    if isinstance(value, Mode):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {item.name: _to_plain(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Mapping):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_to_plain(item) for item in value]
    return value
