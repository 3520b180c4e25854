"""Class-tagged metadata variants and the registry that decodes them.

Every geom, provider and consumer in the configuration document may carry a
``<config>`` block whose fields depend on the GEOM class that owns the record.
The registry resolves a class name to a decoder per record kind:

* a registered class with a schema for the record kind yields its typed
  variant (``PartTableMetadata``, ``PartEntryMetadata``, ...);
* a registered class without a schema yields ``ClassMetadata`` carrying the
  fields verbatim under the class tag;
* an unregistered class yields ``OpaqueMetadata`` tagged ``"opaque"``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .document import Element
from .errors import RecordDecodeError

logger = logging.getLogger(__name__)

OPAQUE_TAG = "opaque"

GEOM_RECORD = "geom"
PROVIDER_RECORD = "provider"
CONSUMER_RECORD = "consumer"
RECORD_KINDS = (GEOM_RECORD, PROVIDER_RECORD, CONSUMER_RECORD)

FieldValue = Union[str, Tuple[str, ...]]
RawFields = Dict[str, FieldValue]
# Read-only field bag stored on the decoded variants.
FrozenFields = Mapping[str, FieldValue]


def _frozen(raw: Optional[Mapping[str, FieldValue]] = None) -> FrozenFields:
    return MappingProxyType(dict(raw or {}))


class PartScheme(str, Enum):
    APM = "APM"
    BSD = "BSD"
    BSD64 = "BSD64"
    EBR = "EBR"
    GPT = "GPT"
    LDM = "LDM"
    MBR = "MBR"
    VTOC8 = "VTOC8"


class PartState(str, Enum):
    OK = "OK"
    CORRUPT = "CORRUPT"


@dataclass(frozen=True)
class PartTableMetadata:
    """Partition table configuration of a PART geom."""

    scheme: Union[PartScheme, str]
    entries: int
    first: Optional[int] = None
    last: Optional[int] = None
    fwsectors: Optional[int] = None
    fwheads: Optional[int] = None
    state: Union[PartState, str, None] = None
    modified: Optional[bool] = None
    extra: FrozenFields = field(default_factory=_frozen, hash=False)
    tag: str = field(default="PART", init=False)


@dataclass(frozen=True)
class PartEntryMetadata:
    """One partition entry, exposed as a provider of a PART geom."""

    index: int
    start: int
    end: int
    offset: int
    length: int
    type: str
    label: Optional[str] = None
    rawtype: Optional[str] = None
    rawuuid: Optional[str] = None
    efimedia: Optional[str] = None
    attrib: Tuple[str, ...] = ()
    extra: FrozenFields = field(default_factory=_frozen, hash=False)
    tag: str = field(default="PART", init=False)


@dataclass(frozen=True)
class DiskMetadata:
    fwheads: Optional[int] = None
    fwsectors: Optional[int] = None
    # None for drives reporting an unknown rate, 0 for non-rotating media.
    rotationrate: Optional[int] = None
    ident: Optional[str] = None
    lunid: Optional[str] = None
    descr: Optional[str] = None
    extra: FrozenFields = field(default_factory=_frozen, hash=False)
    tag: str = field(default="DISK", init=False)


@dataclass(frozen=True)
class LabelMetadata:
    index: int
    offset: int
    length: int
    seclength: int
    secoffset: int
    extra: FrozenFields = field(default_factory=_frozen, hash=False)
    tag: str = field(default="LABEL", init=False)


@dataclass(frozen=True)
class MemoryDiskMetadata:
    unit: Optional[int] = None
    type: Optional[str] = None
    access: Optional[str] = None
    file: Optional[str] = None
    label: Optional[str] = None
    length: Optional[int] = None
    extra: FrozenFields = field(default_factory=_frozen, hash=False)
    tag: str = field(default="MD", init=False)


@dataclass(frozen=True)
class ClassMetadata:
    """Registered class without a schema for this record kind."""

    tag: str
    fields: FrozenFields = field(default_factory=_frozen, hash=False)


@dataclass(frozen=True)
class OpaqueMetadata:
    class_name: str
    fields: FrozenFields = field(default_factory=_frozen, hash=False)
    tag: str = field(default=OPAQUE_TAG, init=False)


Metadata = Union[
    PartTableMetadata,
    PartEntryMetadata,
    DiskMetadata,
    LabelMetadata,
    MemoryDiskMetadata,
    ClassMetadata,
    OpaqueMetadata,
]


def collect_fields(config: Optional[Element]) -> RawFields:
    """Flatten a ``<config>`` block into an ordered field mapping.

    Values are kept as written, surrounding whitespace included. A field with
    element children keeps its content as markup. Repeated names collect
    their values into a tuple.
    """
    fields: RawFields = {}
    if config is None:
        return fields
    for child in config.children:
        if child.children:
            value = child.inner_markup or ""
        else:
            value = child.raw_text or ""
        previous = fields.get(child.tag)
        if previous is None:
            fields[child.tag] = value
        elif isinstance(previous, tuple):
            fields[child.tag] = previous + (value,)
        else:
            fields[child.tag] = (previous, value)
    return fields


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def parse_uint(text: str) -> int:
    value = text.strip()
    if value.lower().startswith("0x"):
        number = int(value[2:], 16)
    else:
        number = int(value, 10)
    if number < 0:
        raise ValueError(f"negative value {value!r}")
    return number


def parse_bool(text: str) -> bool:
    value = text.strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValueError(f"not a boolean: {text!r}")


def parse_rotation_rate(text: str) -> Optional[int]:
    if text.strip().lower() == "unknown":
        return None
    return parse_uint(text)


def _enum_or_verbatim(enum_type: Any) -> Callable[[str], Any]:
    def parse(text: str) -> Any:
        value = text.strip()
        try:
            return enum_type(value)
        except ValueError:
            logger.debug("Keeping unrecognised %s value %r verbatim", enum_type.__name__, value)
            return value

    return parse


def _text(text: str) -> str:
    return text.strip()


@dataclass(frozen=True)
class FieldSpec:
    name: str
    parser: Callable[[str], Any] = _text
    required: bool = False
    repeated: bool = False


@dataclass(frozen=True)
class ConfigSchema:
    variant: type
    fields: Tuple[FieldSpec, ...]

    def decode(self, raw: RawFields, record_kind: str, identifier: Optional[str]) -> Any:
        values: Dict[str, Any] = {}
        extra = dict(raw)
        for spec in self.fields:
            raw_value = extra.pop(spec.name, None)
            if raw_value is None:
                if spec.required:
                    raise RecordDecodeError(record_kind, identifier, spec.name, "missing required field")
                continue
            if spec.repeated:
                items = raw_value if isinstance(raw_value, tuple) else (raw_value,)
                values[spec.name] = tuple(items)
                continue
            if isinstance(raw_value, tuple):
                raise RecordDecodeError(record_kind, identifier, spec.name, "field repeated")
            try:
                values[spec.name] = spec.parser(raw_value)
            except ValueError as error:
                raise RecordDecodeError(record_kind, identifier, spec.name, str(error)) from error
        return self.variant(**values, extra=_frozen(extra))


PART_TABLE_SCHEMA = ConfigSchema(
    variant=PartTableMetadata,
    fields=(
        FieldSpec("scheme", _enum_or_verbatim(PartScheme), required=True),
        FieldSpec("entries", parse_uint, required=True),
        FieldSpec("first", parse_uint),
        FieldSpec("last", parse_uint),
        FieldSpec("fwsectors", parse_uint),
        FieldSpec("fwheads", parse_uint),
        FieldSpec("state", _enum_or_verbatim(PartState)),
        FieldSpec("modified", parse_bool),
    ),
)

PART_ENTRY_SCHEMA = ConfigSchema(
    variant=PartEntryMetadata,
    fields=(
        FieldSpec("index", parse_uint, required=True),
        FieldSpec("start", parse_uint, required=True),
        FieldSpec("end", parse_uint, required=True),
        FieldSpec("offset", parse_uint, required=True),
        FieldSpec("length", parse_uint, required=True),
        FieldSpec("type", required=True),
        FieldSpec("label"),
        FieldSpec("rawtype"),
        FieldSpec("rawuuid"),
        FieldSpec("efimedia"),
        FieldSpec("attrib", repeated=True),
    ),
)

DISK_SCHEMA = ConfigSchema(
    variant=DiskMetadata,
    fields=(
        FieldSpec("fwheads", parse_uint),
        FieldSpec("fwsectors", parse_uint),
        FieldSpec("rotationrate", parse_rotation_rate),
        FieldSpec("ident"),
        FieldSpec("lunid"),
        FieldSpec("descr"),
    ),
)

LABEL_SCHEMA = ConfigSchema(
    variant=LabelMetadata,
    fields=(
        FieldSpec("index", parse_uint, required=True),
        FieldSpec("offset", parse_uint, required=True),
        FieldSpec("length", parse_uint, required=True),
        FieldSpec("seclength", parse_uint, required=True),
        FieldSpec("secoffset", parse_uint, required=True),
    ),
)

MD_SCHEMA = ConfigSchema(
    variant=MemoryDiskMetadata,
    fields=(
        FieldSpec("unit", parse_uint),
        FieldSpec("type"),
        FieldSpec("access"),
        FieldSpec("file"),
        FieldSpec("label"),
        FieldSpec("length", parse_uint),
    ),
)


class ClassRegistry:
    """Maps GEOM class names to per-record-kind config schemas."""

    def __init__(self) -> None:
        self._classes: Dict[str, Dict[str, ConfigSchema]] = {}

    def register(
        self,
        class_name: str,
        geom: Optional[ConfigSchema] = None,
        provider: Optional[ConfigSchema] = None,
        consumer: Optional[ConfigSchema] = None,
    ) -> None:
        schemas = {
            kind: schema
            for kind, schema in ((GEOM_RECORD, geom), (PROVIDER_RECORD, provider), (CONSUMER_RECORD, consumer))
            if schema is not None
        }
        self._classes[class_name] = schemas

    def is_registered(self, class_name: str) -> bool:
        return class_name in self._classes

    def class_names(self) -> List[str]:
        return list(self._classes)

    def decode(
        self,
        class_name: str,
        record_kind: str,
        raw: RawFields,
        identifier: Optional[str] = None,
    ) -> Metadata:
        if record_kind not in RECORD_KINDS:
            raise ValueError(f"Unknown record kind: {record_kind}")
        schemas = self._classes.get(class_name)
        if schemas is None:
            return OpaqueMetadata(class_name=class_name, fields=_frozen(raw))
        schema = schemas.get(record_kind)
        if schema is None:
            return ClassMetadata(tag=class_name, fields=_frozen(raw))
        return schema.decode(raw, record_kind, identifier)


def build_default_registry(extra_classes: Iterable[str] = ()) -> ClassRegistry:
    registry = ClassRegistry()
    for class_name in ("FD", "RAID", "DEV", "VFS", "SWAP", "Flashmap"):
        registry.register(class_name)
    registry.register("DISK", provider=DISK_SCHEMA)
    registry.register("PART", geom=PART_TABLE_SCHEMA, provider=PART_ENTRY_SCHEMA)
    registry.register("LABEL", provider=LABEL_SCHEMA)
    registry.register("MD", provider=MD_SCHEMA)
    for class_name in extra_classes:
        registry.register(class_name)
    return registry


DEFAULT_REGISTRY = build_default_registry()


def is_opaque(metadata: Optional[Metadata]) -> bool:
    return isinstance(metadata, OpaqueMetadata)


def metadata_fields(metadata: Metadata) -> Mapping[str, Any]:
    """Return the decoded fields of a variant as a plain mapping."""
    if isinstance(metadata, (ClassMetadata, OpaqueMetadata)):
        return dict(metadata.fields)
    values = {
        name: getattr(metadata, name)
        for name in metadata.__dataclass_fields__
        if name not in ("extra", "tag")
    }
    values.update(metadata.extra)
    return values
