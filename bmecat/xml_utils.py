"""Path lookups on parsed BMECat trees.

All lookups take a context element and a relative XPath expression. Missing
nodes are never an error: text and attribute lookups return ``""``, typed
lookups return ``None``. Text that is present but cannot be parsed as the
requested type raises :class:`MalformedDocumentError`.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional

from lxml import etree

from .exceptions import MalformedDocumentError


def remove_namespaces(root):
    """
    Recursively remove namespaces from the XML tree.

    BMECat 2005 documents declare a default namespace while 1.2 documents
    usually don't; stripping it lets the same paths work on both.
    """
    for elem in root.iter():
        # Only process element nodes (skip comments, etc.)
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]
    etree.cleanup_namespaces(root)
    return root


def _first(node, path):
    matches = node.xpath(path)
    if not matches:
        return None
    return matches[0]


def node_as_string(node, path: str) -> str:
    """Return the text of the first element matching ``path``, or ``""``."""
    element = _first(node, path)
    if element is None:
        return ""
    if isinstance(element, str):
        # path ended in an attribute or text() selector
        return str(element).strip()
    return (element.text or "").strip()


def attribute_as_string(node, path: str, attribute: str) -> str:
    """Return ``attribute`` of the first element matching ``path``, or ``""``."""
    element = _first(node, path)
    if element is None or isinstance(element, str):
        return ""
    return element.get(attribute, "").strip()


class NodeList:
    """Lazy view of all elements matching a path below a context node.

    Each iteration runs the lookup again, so the view can be traversed more
    than once.
    """

    def __init__(self, node, path: str):
        self.node = node
        self.path = path

    def __iter__(self) -> Iterator:
        for element in self.node.xpath(self.path):
            if not isinstance(element, str):
                yield element

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return next(iter(self), None) is not None


def nodes(node, path: str) -> NodeList:
    return NodeList(node, path)


def _typed_text(node, path: str) -> Optional[str]:
    text = node_as_string(node, path)
    return text or None


def node_as_int(node, path: str) -> Optional[int]:
    """Return the integer value at ``path``, or ``None`` if it is absent."""
    text = _typed_text(node, path)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        raise MalformedDocumentError(f"Expected an integer at {path}, got {text!r}")


def node_as_decimal(node, path: str) -> Optional[Decimal]:
    """Return the decimal value at ``path``, or ``None`` if it is absent.

    Only the XML Schema lexical form is accepted (period as separator, no
    grouping), so ``"9,90"`` is rejected rather than misread.
    """
    text = _typed_text(node, path)
    if text is None:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise MalformedDocumentError(f"Expected a decimal at {path}, got {text!r}")
    if not value.is_finite():
        raise MalformedDocumentError(f"Expected a decimal at {path}, got {text!r}")
    return value


def node_as_datetime(node, path: str) -> Optional[datetime]:
    """Return the ISO 8601 timestamp at ``path``, or ``None`` if it is absent."""
    text = _typed_text(node, path)
    if text is None:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise MalformedDocumentError(f"Expected a timestamp at {path}, got {text!r}")
