"""
Schema graph IR
===============

Tagged node types for the named definitions of a schema document. Instances are
produced by `near_rpc.schema.parse.parse_schema`, inlined by the resolver, and
consumed by the validator compiler and the code emitter.

Every node carries a `kind` (`Kind`). Consumers dispatch on it with a table keyed
by `Kind` and check at import time that the table covers every member, so a new
kind cannot be added without deciding how each consumer handles it.

Nodes are frozen and hold tuples only, so resolved trees can be shared between
definitions without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterator, Mapping, Optional, Tuple, Union


class Kind(str, Enum):
    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    UNION = "union"
    INTERSECTION = "intersection"
    LITERAL = "literal"
    REF = "ref"
    OPEN = "open"


PRIMITIVE_TYPES = ("string", "integer", "number", "boolean", "null")


# -----------------
# Node types
# -----------------


@dataclass(frozen=True)
class Primitive:
    """
    Scalar type with optional JSON-Schema style constraints.

    `type` is one of PRIMITIVE_TYPES. Numeric bounds apply to integer/number,
    length and pattern to string. `format` is kept as declared.
    """

    kind: ClassVar[Kind] = Kind.PRIMITIVE

    type: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Optional[float] = None
    exclusive_maximum: Optional[float] = None
    multiple_of: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    format: Optional[str] = None


@dataclass(frozen=True)
class Field:
    """Named object member."""

    name: str
    schema: "SchemaNode"
    required: bool = False


@dataclass(frozen=True)
class ObjectDef:
    """
    Object with ordered fields.

    `additional`:
      - False: unknown keys are rejected (the default for parsed schemas)
      - True:  unknown keys are accepted as-is
      - node:  unknown keys are accepted, values checked against the node
    """

    kind: ClassVar[Kind] = Kind.OBJECT

    fields: Tuple[Field, ...] = ()
    additional: Union[bool, "SchemaNode"] = False

    def field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.required)


@dataclass(frozen=True)
class ArrayDef:
    kind: ClassVar[Kind] = Kind.ARRAY

    items: "SchemaNode"
    min_items: Optional[int] = None
    max_items: Optional[int] = None


@dataclass(frozen=True)
class UnionDef:
    """Accepts a value matching at least one variant. Zero variants rejects everything."""

    kind: ClassVar[Kind] = Kind.UNION

    variants: Tuple["SchemaNode", ...] = ()


@dataclass(frozen=True)
class IntersectionDef:
    """Value must satisfy every part."""

    kind: ClassVar[Kind] = Kind.INTERSECTION

    parts: Tuple["SchemaNode", ...] = ()


@dataclass(frozen=True)
class LiteralDef:
    kind: ClassVar[Kind] = Kind.LITERAL

    value: Any = None


@dataclass(frozen=True)
class RefDef:
    """Pointer to another named definition (by bare name, not JSON pointer)."""

    kind: ClassVar[Kind] = Kind.REF

    target: str


@dataclass(frozen=True)
class OpenMarker:
    """
    Accept-anything placeholder.

    `reason` records why: "cycle:<name>", "depth", "unconstrained", "unsupported:<what>".
    """

    kind: ClassVar[Kind] = Kind.OPEN

    reason: str = field(default="unconstrained", compare=False)


SchemaNode = Union[
    Primitive, ObjectDef, ArrayDef, UnionDef, IntersectionDef, LiteralDef, RefDef, OpenMarker
]

# A SchemaGraph maps definition name -> node (keys unique, read-only after build).
SchemaGraph = Mapping[str, SchemaNode]

# Resolved trees contain no RefDef nodes.
ResolvedSchema = SchemaNode

UNCONSTRAINED_OBJECT = ObjectDef(fields=(), additional=True)
EMPTY_OBJECT = ObjectDef(fields=(), additional=False)


# -----------------
# Traversal helpers
# -----------------


def children(node: SchemaNode) -> Tuple[SchemaNode, ...]:
    """Direct child nodes, in declaration order."""
    if isinstance(node, ObjectDef):
        out = tuple(f.schema for f in node.fields)
        if not isinstance(node.additional, bool):
            out += (node.additional,)
        return out
    if isinstance(node, ArrayDef):
        return (node.items,)
    if isinstance(node, UnionDef):
        return node.variants
    if isinstance(node, IntersectionDef):
        return node.parts
    return ()


def walk(node: SchemaNode) -> Iterator[SchemaNode]:
    """Depth-first iteration over `node` and all of its descendants."""
    stack = [node]
    while stack:
        cur = stack.pop()
        yield cur
        stack.extend(reversed(children(cur)))


def refs_of(node: SchemaNode) -> Tuple[str, ...]:
    """Names referenced anywhere under `node`, first occurrence order."""
    seen: dict = {}
    for n in walk(node):
        if isinstance(n, RefDef):
            seen.setdefault(n.target, None)
    return tuple(seen)


def is_open(node: SchemaNode) -> bool:
    return isinstance(node, OpenMarker)


__all__ = [
    "Kind",
    "PRIMITIVE_TYPES",
    "Primitive",
    "Field",
    "ObjectDef",
    "ArrayDef",
    "UnionDef",
    "IntersectionDef",
    "LiteralDef",
    "RefDef",
    "OpenMarker",
    "SchemaNode",
    "SchemaGraph",
    "ResolvedSchema",
    "UNCONSTRAINED_OBJECT",
    "EMPTY_OBJECT",
    "children",
    "walk",
    "refs_of",
    "is_open",
]
