"""
Schema pipeline: document -> graph -> resolved trees -> validators.
"""

from .compiler import ACCEPT_ANY, EMPTY_OBJECT, MAX_INTERSECTION_PRODUCT, Validator, compile_all, compile_schema
from .document import MethodDescriptor, SchemaDocument, bundled_document, load_document
from .model import (
    ArrayDef,
    Field,
    IntersectionDef,
    Kind,
    LiteralDef,
    ObjectDef,
    OpenMarker,
    Primitive,
    RefDef,
    SchemaGraph,
    SchemaNode,
    UnionDef,
)
from .parse import parse_definitions, parse_schema
from .resolver import MAX_DEPTH, resolve, resolve_one

__all__ = [
    "ACCEPT_ANY",
    "EMPTY_OBJECT",
    "MAX_DEPTH",
    "MAX_INTERSECTION_PRODUCT",
    "ArrayDef",
    "Field",
    "IntersectionDef",
    "Kind",
    "LiteralDef",
    "MethodDescriptor",
    "ObjectDef",
    "OpenMarker",
    "Primitive",
    "RefDef",
    "SchemaDocument",
    "SchemaGraph",
    "SchemaNode",
    "UnionDef",
    "Validator",
    "bundled_document",
    "compile_all",
    "compile_schema",
    "load_document",
    "parse_definitions",
    "parse_schema",
    "resolve",
    "resolve_one",
]
