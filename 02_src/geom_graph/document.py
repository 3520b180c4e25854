"""Generic XML element tree used as input to record decoding."""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple, Union
from xml.sax.saxutils import escape

from lxml import etree

from .errors import MalformedDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Element:
    """One markup element.

    ``text`` is the stripped leading text, or ``None`` when blank. ``raw_text``
    keeps that text exactly as written. ``inner_markup`` is only set on
    elements with element children and holds their content serialized back to
    markup.
    """

    tag: str
    attributes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    children: Tuple["Element", ...] = ()
    text: Optional[str] = None
    raw_text: Optional[str] = None
    inner_markup: Optional[str] = None

    def find(self, tag: str) -> Optional["Element"]:
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def find_all(self, tag: str) -> Iterator["Element"]:
        return (child for child in self.children if child.tag == tag)

    def child_text(self, tag: str) -> Optional[str]:
        child = self.find(tag)
        return child.text if child is not None else None


def _build_parser(encoding: Optional[str] = None) -> etree.XMLParser:
    return etree.XMLParser(
        encoding=encoding,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        recover=False,
    )


def parse_document(document: Union[str, bytes]) -> Element:
    """Parse raw markup into an ordered ``Element`` tree.

    Bytes are decoded as their XML declaration says. Text input is already
    decoded, so any declared encoding is overridden and the text is read as
    written. Raises ``MalformedDocument`` on empty, truncated, badly encoded
    or otherwise invalid input.
    """
    if isinstance(document, str):
        try:
            payload = document.encode("utf-8")
        except UnicodeEncodeError as error:
            raise MalformedDocument(f"Document is not encodable as UTF-8: {error}") from error
        parser = _build_parser(encoding="utf-8")
    else:
        payload = bytes(document)
        parser = _build_parser()

    if not payload.strip():
        raise MalformedDocument("Document is empty.")

    try:
        root = etree.fromstring(payload, parser=parser)
    except etree.XMLSyntaxError as error:
        raise MalformedDocument(f"Invalid document: {error}") from error

    tree = _convert(root)
    logger.debug("Parsed document with root <%s> and %d children", tree.tag, len(tree.children))
    return tree


def _convert(node: etree._Element) -> Element:
    elements = [child for child in node if isinstance(child.tag, str)]
    inner_markup = None
    if elements:
        inner_markup = escape(node.text or "") + "".join(
            etree.tostring(child, encoding="unicode", with_tail=True) for child in node
        )
    return Element(
        tag=etree.QName(node).localname,
        attributes=MappingProxyType({str(key): str(value) for key, value in node.attrib.items()}),
        children=tuple(_convert(child) for child in elements),
        text=(node.text or "").strip() or None,
        raw_text=node.text,
        inner_markup=inner_markup,
    )
