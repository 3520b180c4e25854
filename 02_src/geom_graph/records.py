"""Flat decoded records produced from the generic element tree."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .document import Element
from .errors import MalformedDocument, RecordDecodeError
from .metadata import (
    CONSUMER_RECORD,
    DEFAULT_REGISTRY,
    GEOM_RECORD,
    PROVIDER_RECORD,
    ClassRegistry,
    Metadata,
    collect_fields,
    is_opaque,
    parse_uint,
)

logger = logging.getLogger(__name__)

Identifier = str

_MODE_PATTERN = re.compile(r"^r(\d+)w(\d+)e(\d+)$")


@dataclass(frozen=True)
class Mode:
    """GEOM access reference counts, written as ``r1w1e3``."""

    read: int
    write: int
    exclusive: int

    @classmethod
    def parse(cls, text: str) -> "Mode":
        match = _MODE_PATTERN.match(text.strip())
        if match is None:
            raise ValueError(f"not an access mode: {text!r}")
        read, write, exclusive = (int(group) for group in match.groups())
        return cls(read=read, write=write, exclusive=exclusive)

    def __str__(self) -> str:
        return f"r{self.read}w{self.write}e{self.exclusive}"


@dataclass(frozen=True)
class ClassRecord:
    id: Identifier
    name: str


@dataclass(frozen=True)
class GeomRecord:
    id: Identifier
    name: str
    class_name: str
    metadata: Metadata
    provider_ids: Tuple[Identifier, ...] = ()
    consumer_ids: Tuple[Identifier, ...] = ()


@dataclass(frozen=True)
class ProviderRecord:
    id: Identifier
    name: str
    geom_id: Identifier
    class_name: str
    metadata: Metadata
    mode: Optional[Mode] = None
    mediasize: Optional[int] = None
    sectorsize: Optional[int] = None
    stripesize: Optional[int] = None
    stripeoffset: Optional[int] = None


@dataclass(frozen=True)
class ConsumerRecord:
    id: Identifier
    geom_id: Identifier
    provider_id: Optional[Identifier]
    class_name: str
    metadata: Metadata
    mode: Optional[Mode] = None


@dataclass(frozen=True)
class DecodedMesh:
    classes: Tuple[ClassRecord, ...] = ()
    geoms: Tuple[GeomRecord, ...] = ()
    providers: Tuple[ProviderRecord, ...] = ()
    consumers: Tuple[ConsumerRecord, ...] = ()


class MeshDecoder:
    """Walks ``<mesh>/<class>/<geom>/{<provider>,<consumer>}`` into flat records.

    The first malformed record aborts decoding of the whole document.
    """

    def __init__(self, registry: Optional[ClassRegistry] = None) -> None:
        self.registry = registry or DEFAULT_REGISTRY
        self._classes: List[ClassRecord] = []
        self._geoms: List[GeomRecord] = []
        self._providers: List[ProviderRecord] = []
        self._consumers: List[ConsumerRecord] = []

    def decode(self, root: Element) -> DecodedMesh:
        if root.tag != "mesh":
            raise MalformedDocument(f"Expected <mesh> root element, found <{root.tag}>.")

        self._classes, self._geoms, self._providers, self._consumers = [], [], [], []
        for class_element in root.find_all("class"):
            self._decode_class(class_element)

        logger.debug(
            "Decoded %d classes, %d geoms, %d providers, %d consumers",
            len(self._classes),
            len(self._geoms),
            len(self._providers),
            len(self._consumers),
        )
        return DecodedMesh(
            classes=tuple(self._classes),
            geoms=tuple(self._geoms),
            providers=tuple(self._providers),
            consumers=tuple(self._consumers),
        )

    def _decode_class(self, element: Element) -> None:
        class_id = self._require_attribute(element, "class", None, "id")
        class_name = self._require_text(element, "class", class_id, "name")
        self._classes.append(ClassRecord(id=class_id, name=class_name))
        if not self.registry.is_registered(class_name):
            logger.info("Class %s is not registered; its config blocks are kept opaque", class_name)

        for geom_element in element.find_all("geom"):
            self._decode_geom(geom_element, class_name)

    def _decode_geom(self, element: Element, class_name: str) -> None:
        geom_id = self._require_attribute(element, GEOM_RECORD, None, "id")
        name = self._require_text(element, GEOM_RECORD, geom_id, "name")
        metadata = self.registry.decode(
            class_name, GEOM_RECORD, collect_fields(element.find("config")), geom_id
        )

        providers = [
            self._decode_provider(child, class_name, geom_id) for child in element.find_all("provider")
        ]
        consumers = [
            self._decode_consumer(child, class_name, geom_id) for child in element.find_all("consumer")
        ]

        self._geoms.append(
            GeomRecord(
                id=geom_id,
                name=name,
                class_name=class_name,
                metadata=metadata,
                provider_ids=tuple(provider.id for provider in providers),
                consumer_ids=tuple(consumer.id for consumer in consumers),
            )
        )
        self._providers.extend(providers)
        self._consumers.extend(consumers)

    def _decode_provider(self, element: Element, class_name: str, geom_id: Identifier) -> ProviderRecord:
        provider_id = self._require_attribute(element, PROVIDER_RECORD, None, "id")
        name = self._require_text(element, PROVIDER_RECORD, provider_id, "name")
        metadata = self.registry.decode(
            class_name, PROVIDER_RECORD, collect_fields(element.find("config")), provider_id
        )
        return ProviderRecord(
            id=provider_id,
            name=name,
            geom_id=self._reference(element, "geom") or geom_id,
            class_name=class_name,
            metadata=metadata,
            mode=self._optional_mode(element, PROVIDER_RECORD, provider_id),
            mediasize=self._optional_uint(element, PROVIDER_RECORD, provider_id, "mediasize"),
            sectorsize=self._optional_uint(element, PROVIDER_RECORD, provider_id, "sectorsize"),
            stripesize=self._optional_uint(element, PROVIDER_RECORD, provider_id, "stripesize"),
            stripeoffset=self._optional_uint(element, PROVIDER_RECORD, provider_id, "stripeoffset"),
        )

    def _decode_consumer(self, element: Element, class_name: str, geom_id: Identifier) -> ConsumerRecord:
        consumer_id = self._require_attribute(element, CONSUMER_RECORD, None, "id")
        metadata = self.registry.decode(
            class_name, CONSUMER_RECORD, collect_fields(element.find("config")), consumer_id
        )
        return ConsumerRecord(
            id=consumer_id,
            geom_id=self._reference(element, "geom") or geom_id,
            provider_id=self._reference(element, "provider"),
            class_name=class_name,
            metadata=metadata,
            mode=self._optional_mode(element, CONSUMER_RECORD, consumer_id),
        )

    @staticmethod
    def _require_attribute(
        element: Element, record_kind: str, identifier: Optional[str], attribute: str
    ) -> str:
        value = element.attributes.get(attribute, "").strip()
        if not value:
            raise RecordDecodeError(record_kind, identifier, attribute, "missing attribute")
        return value

    @staticmethod
    def _require_text(element: Element, record_kind: str, identifier: str, tag: str) -> str:
        value = element.child_text(tag)
        if not value:
            raise RecordDecodeError(record_kind, identifier, tag, "missing element")
        return value

    @staticmethod
    def _reference(element: Element, tag: str) -> Optional[Identifier]:
        child = element.find(tag)
        if child is None:
            return None
        value = child.attributes.get("ref", "").strip()
        return value or None

    @staticmethod
    def _optional_uint(element: Element, record_kind: str, identifier: str, tag: str) -> Optional[int]:
        text = element.child_text(tag)
        if text is None:
            return None
        try:
            return parse_uint(text)
        except ValueError as error:
            raise RecordDecodeError(record_kind, identifier, tag, str(error)) from error

    @staticmethod
    def _optional_mode(element: Element, record_kind: str, identifier: str) -> Optional[Mode]:
        text = element.child_text("mode")
        if text is None:
            return None
        try:
            return Mode.parse(text)
        except ValueError as error:
            raise RecordDecodeError(record_kind, identifier, "mode", str(error)) from error


def decode_mesh(root: Element, registry: Optional[ClassRegistry] = None) -> DecodedMesh:
    return MeshDecoder(registry).decode(root)


def opaque_class_names(mesh: DecodedMesh) -> List[str]:
    names: List[str] = []
    for geom in mesh.geoms:
        if is_opaque(geom.metadata) and geom.class_name not in names:
            names.append(geom.class_name)
    return names
