"""Compose YAML source into a read-only, position-annotated node tree.

The tree is built from the ``ruamel.yaml`` event stream rather than from its
composer so that explicit tags, scalar styles and 1-based positions survive
verbatim. Decoding, value validation and error location all read from the
same tree.

Examples
--------
>>> from strictconf.nodes import NodeKind, compose
>>> root = compose("server:\\n  port: 8080\\n")
>>> root.kind is NodeKind.MAPPING
True
>>> port = root.find_value("server").find_value("port")
>>> (port.value, port.line, port.column)
('8080', 2, 9)
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import MarkedYAMLError
from ruamel.yaml.events import (
    AliasEvent,
    DocumentStartEvent,
    MappingEndEvent,
    MappingStartEvent,
    ScalarEvent,
    SequenceEndEvent,
    SequenceStartEvent,
)

from .errors import EmptyDocumentError, ErrorKind, MalformedDocumentError

logger = logging.getLogger(__name__)

NULL_LITERALS = frozenset({"~", "null", "Null", "NULL", ""})


class NodeKind(enum.Enum):
    """Shape of a composed node."""

    SCALAR = "scalar"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


class NodeStyle(enum.Flag):
    """Presentation details preserved from the source text."""

    PLAIN = 0
    TAGGED = enum.auto()
    DOUBLE_QUOTED = enum.auto()
    SINGLE_QUOTED = enum.auto()
    LITERAL = enum.auto()
    FOLDED = enum.auto()
    FLOW = enum.auto()


_SCALAR_STYLES: dict[str | None, NodeStyle] = {
    None: NodeStyle.PLAIN,
    "": NodeStyle.PLAIN,
    '"': NodeStyle.DOUBLE_QUOTED,
    "'": NodeStyle.SINGLE_QUOTED,
    "|": NodeStyle.LITERAL,
    ">": NodeStyle.FOLDED,
}


@dc.dataclass(frozen=True, slots=True)
class Node:
    """One node of a composed YAML document.

    Attributes
    ----------
    kind : NodeKind
        Scalar, mapping or sequence.
    line, column : int
        1-based position of the node's first character.
    value : str
        Literal text for scalars, empty for collections.
    style : NodeStyle
        Quoting, block and flow flags, plus ``TAGGED`` for explicit tags.
    tag : str or None
        The explicit tag when one was written.
    content : tuple[Node, ...]
        Children. Mappings alternate key and value nodes.
    """

    kind: NodeKind
    line: int
    column: int
    value: str = ""
    style: NodeStyle = NodeStyle.PLAIN
    tag: str | None = None
    content: tuple[Node, ...] = ()

    @property
    def is_quoted(self) -> bool:
        return bool(self.style & (NodeStyle.DOUBLE_QUOTED | NodeStyle.SINGLE_QUOTED))

    @property
    def is_plain(self) -> bool:
        """Return whether a scalar was written without quotes or block style."""
        untagged = self.style & ~NodeStyle.TAGGED
        return self.kind is NodeKind.SCALAR and untagged == NodeStyle.PLAIN

    @property
    def is_null(self) -> bool:
        """Return whether the node is a plain null literal in any spelling."""
        return self.is_plain and self.value in NULL_LITERALS

    def pairs(self) -> typ.Iterator[tuple[Node, Node]]:
        """Yield ``(key, value)`` node pairs of a mapping in document order."""
        if self.kind is not NodeKind.MAPPING:
            return
        for index in range(0, len(self.content) - 1, 2):
            yield self.content[index], self.content[index + 1]

    def find_value(self, key: str) -> Node | None:
        """Return the value node stored under the scalar ``key``."""
        for key_node, value_node in self.pairs():
            if key_node.kind is NodeKind.SCALAR and key_node.value == key:
                return value_node
        return None


class _Builder:
    """Assemble nodes from parser events."""

    def __init__(self) -> None:
        self.stack: list[tuple[dict[str, typ.Any], list[Node]]] = []
        self.root: Node | None = None
        self.documents = 0

    def feed(self, event: typ.Any) -> None:
        if isinstance(event, DocumentStartEvent):
            self.documents += 1
            if self.documents > 1:
                _raise_malformed(
                    event, "multiple documents in one source are not supported"
                )
        elif isinstance(event, AliasEvent):
            _raise_malformed(event, f"alias *{event.anchor} is not supported")
        elif isinstance(event, ScalarEvent):
            tag = _explicit_tag(event)
            style = _SCALAR_STYLES.get(event.style, NodeStyle.PLAIN)
            self._attach(
                Node(
                    NodeKind.SCALAR,
                    *_position(event),
                    value=event.value,
                    style=_tagged(style, tag),
                    tag=tag,
                )
            )
        elif isinstance(event, MappingStartEvent | SequenceStartEvent):
            kind = (
                NodeKind.MAPPING
                if isinstance(event, MappingStartEvent)
                else NodeKind.SEQUENCE
            )
            style = NodeStyle.FLOW if event.flow_style else NodeStyle.PLAIN
            tag = _explicit_tag(event)
            line, column = _position(event)
            header = {
                "kind": kind,
                "line": line,
                "column": column,
                "style": _tagged(style, tag),
                "tag": tag,
            }
            self.stack.append((header, []))
        elif isinstance(event, MappingEndEvent | SequenceEndEvent):
            header, children = self.stack.pop()
            self._attach(Node(content=tuple(children), **header))

    def _attach(self, node: Node) -> None:
        if self.stack:
            self.stack[-1][1].append(node)
        else:
            self.root = node


def compose(source: str | bytes) -> Node:
    """Parse ``source`` into the root :class:`Node` of its single document.

    Parameters
    ----------
    source : str or bytes
        YAML text. Bytes are decoded as UTF-8.

    Returns
    -------
    Node
        The document's root node.

    Raises
    ------
    EmptyDocumentError
        If the source holds no document, or only whitespace and comments.
    MalformedDocumentError
        If the text is not valid YAML, uses aliases, or holds more than one
        document.
    """
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"{ErrorKind.MALFORMED_DOCUMENT.value}: {exc}"
            raise MalformedDocumentError(msg) from exc
    if not source.strip():
        raise EmptyDocumentError(ErrorKind.EMPTY_DOCUMENT.value)

    builder = _Builder()
    try:
        for event in YAML(typ="safe", pure=True).parse(source):
            builder.feed(event)
    except MarkedYAMLError as exc:
        mark = exc.problem_mark or exc.context_mark
        line = mark.line + 1 if mark is not None else None
        column = mark.column + 1 if mark is not None else None
        problem = exc.problem or exc.context or str(exc)
        prefix = f"at {line}:{column}: " if line is not None else ""
        msg = f"{prefix}{ErrorKind.MALFORMED_DOCUMENT.value}: {problem}"
        raise MalformedDocumentError(msg, line=line, column=column) from exc

    root = builder.root
    if root is None or (root.is_null and root.value == ""):
        raise EmptyDocumentError(ErrorKind.EMPTY_DOCUMENT.value)
    logger.debug("Composed document with %s root", root.kind.value)
    return root


def _position(event: typ.Any) -> tuple[int, int]:
    mark = event.start_mark
    return mark.line + 1, mark.column + 1


def _explicit_tag(event: typ.Any) -> str | None:
    tag = event.tag
    return None if tag is None else str(tag)


def _tagged(style: NodeStyle, tag: str | None) -> NodeStyle:
    return style | NodeStyle.TAGGED if tag else style


def _raise_malformed(event: typ.Any, problem: str) -> typ.NoReturn:
    line, column = _position(event)
    msg = f"at {line}:{column}: {ErrorKind.MALFORMED_DOCUMENT.value}: {problem}"
    raise MalformedDocumentError(msg, line=line, column=column)


__all__ = ["NULL_LITERALS", "Node", "NodeKind", "NodeStyle", "compose"]
