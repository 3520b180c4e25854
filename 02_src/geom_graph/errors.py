"""Error types raised while building or querying a GEOM graph."""

from typing import Optional


class GeomGraphError(Exception):
    """Base class for every error raised by the package."""


class MalformedDocument(GeomGraphError):
    """The configuration document is not well-formed markup."""


class RecordDecodeError(GeomGraphError):
    def __init__(self, record_kind: str, identifier: Optional[str], field: str, reason: str = "") -> None:
        self.record_kind = record_kind
        self.identifier = identifier
        self.field = field
        self.reason = reason
        message = f"Cannot decode {record_kind} {identifier or '<no id>'}: field '{field}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class GeomReferenceError(GeomGraphError):
    """A cross-reference does not resolve, is duplicated, or loops back on its own geom."""

    def __init__(self, field: str, identifier: Optional[str], reason: str = "unresolved") -> None:
        self.field = field
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Broken reference {field}={identifier!r}: {reason}")


class UnknownIdentifier(GeomGraphError, KeyError):
    def __init__(self, namespace: str, identifier: str) -> None:
        self.namespace = namespace
        self.identifier = identifier
        super().__init__(f"Unknown {namespace} identifier: {identifier!r}")

    def __str__(self) -> str:
        return str(self.args[0])
