"""
JSON Schema → schema IR

Turns one raw JSON-Schema object (as found under `components.schemas` of an
OpenRPC document) into a `SchemaNode`. The mapping is intentionally lenient:
anything this module does not understand becomes an `OpenMarker`, never an
exception, so one odd definition cannot block the rest of the document.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .model import (
    PRIMITIVE_TYPES,
    ArrayDef,
    Field,
    IntersectionDef,
    LiteralDef,
    ObjectDef,
    OpenMarker,
    Primitive,
    RefDef,
    SchemaNode,
    UnionDef,
)

log = logging.getLogger(__name__)

_REF_PREFIXES = ("#/components/schemas/", "#/definitions/", "#/$defs/")

# Keywords that constrain a value. A schema without any of these accepts anything.
_STRUCTURAL = {
    "$ref", "type", "properties", "additionalProperties", "required", "items",
    "minItems", "maxItems", "enum", "const", "oneOf", "anyOf", "allOf",
    "minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum", "multipleOf",
    "minLength", "maxLength", "pattern", "nullable",
}
_COMBINATORS = ("allOf", "oneOf", "anyOf")

_NUMERIC_KEYS = {
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusiveMinimum": "exclusive_minimum",
    "exclusiveMaximum": "exclusive_maximum",
    "multipleOf": "multiple_of",
}
_STRING_KEYS = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
}


def ref_name(ref: str) -> str:
    """"#/components/schemas/RpcBlockRequest" -> "RpcBlockRequest"."""
    for prefix in _REF_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref.rsplit("/", 1)[-1]


def parse_schema(raw: Any) -> SchemaNode:
    """Parse a raw JSON-Schema value into a schema node. Never raises."""
    if raw is True:
        return OpenMarker("unconstrained")
    if raw is False:
        return UnionDef(())
    if not isinstance(raw, Mapping):
        log.debug("schema is not an object (%s); treating as open", type(raw).__name__)
        return OpenMarker(f"unsupported:{type(raw).__name__}")

    if raw.get("nullable") is True:
        rest = {k: v for k, v in raw.items() if k != "nullable"}
        return UnionDef((parse_schema(rest), Primitive("null")))

    ref = raw.get("$ref")
    if isinstance(ref, str):
        return RefDef(ref_name(ref))

    if "const" in raw:
        return LiteralDef(raw["const"])

    enum = raw.get("enum")
    if isinstance(enum, list):
        literals = tuple(LiteralDef(v) for v in enum)
        return literals[0] if len(literals) == 1 else UnionDef(literals)

    for key in _COMBINATORS:
        if isinstance(raw.get(key), list):
            return _parse_combinator(raw)

    typ = raw.get("type")
    if isinstance(typ, list):
        variants = tuple(parse_schema({**raw, "type": t}) for t in typ)
        return variants[0] if len(variants) == 1 else UnionDef(variants)

    if typ == "object":
        return _parse_object(raw)
    if typ == "array":
        return _parse_array(raw)
    if typ in PRIMITIVE_TYPES:
        return _parse_primitive(typ, raw)
    if typ is not None:
        return OpenMarker(f"unsupported:type={typ}")

    if "properties" in raw or "additionalProperties" in raw or "required" in raw:
        return _parse_object(raw)
    if "items" in raw:
        return _parse_array(raw)
    if not _STRUCTURAL.intersection(raw):
        return OpenMarker("unconstrained")
    # bare constraints without a type, e.g. {"minimum": 0}
    if _NUMERIC_KEYS.keys() & raw.keys():
        return _parse_primitive("number", raw)
    if _STRING_KEYS.keys() & raw.keys():
        return _parse_primitive("string", raw)
    return OpenMarker("unconstrained")


def _parse_combinator(raw: Mapping[str, Any]) -> SchemaNode:
    parts: List[SchemaNode] = []
    for key in _COMBINATORS:
        items = raw.get(key)
        if not isinstance(items, list):
            continue
        nodes = tuple(parse_schema(x) for x in items)
        if key == "allOf":
            parts.extend(nodes)
        else:
            parts.append(nodes[0] if len(nodes) == 1 else UnionDef(nodes))

    # Structural keywords next to a combinator form an extra part.
    rest = {k: v for k, v in raw.items() if k not in _COMBINATORS}
    if _has_own_constraints(rest):
        parts.insert(0, parse_schema(rest))

    if len(parts) == 1:
        return parts[0]
    return IntersectionDef(tuple(parts))


def _has_own_constraints(rest: Mapping[str, Any]) -> bool:
    keys = _STRUCTURAL.intersection(rest)
    # "type": "object" alone next to a oneOf adds nothing the variants don't say.
    if keys == {"type"} and rest.get("type") == "object":
        return False
    return bool(keys)


def _parse_object(raw: Mapping[str, Any]) -> ObjectDef:
    props = raw.get("properties")
    required = raw.get("required")
    required_set = set(required) if isinstance(required, list) else set()

    fields: List[Field] = []
    if isinstance(props, Mapping):
        for name, sub in props.items():
            fields.append(Field(str(name), parse_schema(sub), str(name) in required_set))

    # Required names without a property schema still have to be present.
    declared = {f.name for f in fields}
    for name in required if isinstance(required, list) else ():
        if name not in declared:
            fields.append(Field(str(name), OpenMarker("unconstrained"), True))

    extra = raw.get("additionalProperties", False)
    additional: Any
    if extra is True or extra is False:
        additional = extra
    elif isinstance(extra, Mapping):
        additional = True if not extra else parse_schema(extra)
    else:
        additional = False
    return ObjectDef(tuple(fields), additional)


def _parse_array(raw: Mapping[str, Any]) -> ArrayDef:
    items = raw.get("items", True)
    min_items = _as_int(raw.get("minItems"))
    max_items = _as_int(raw.get("maxItems"))
    if isinstance(items, list):
        # Tuple form: fixed length, positions checked against the union of item schemas.
        nodes = tuple(parse_schema(x) for x in items)
        item: SchemaNode = nodes[0] if len(nodes) == 1 else UnionDef(nodes)
        if min_items is None:
            min_items = len(nodes)
        if max_items is None and raw.get("additionalItems") is False:
            max_items = len(nodes)
        return ArrayDef(item, min_items, max_items)
    return ArrayDef(parse_schema(items), min_items, max_items)


def _parse_primitive(typ: str, raw: Mapping[str, Any]) -> Primitive:
    kwargs: Dict[str, Any] = {}
    if typ in ("integer", "number"):
        for src, dst in _NUMERIC_KEYS.items():
            val = _as_number(raw.get(src))
            if val is not None:
                kwargs[dst] = val
        # draft-04 boolean exclusive bounds turn the plain bound exclusive
        if raw.get("exclusiveMinimum") is True and "minimum" in kwargs:
            kwargs["exclusive_minimum"] = kwargs.pop("minimum")
        if raw.get("exclusiveMaximum") is True and "maximum" in kwargs:
            kwargs["exclusive_maximum"] = kwargs.pop("maximum")
    if typ == "string":
        for src, dst in _STRING_KEYS.items():
            val = raw.get(src)
            if val is None:
                continue
            kwargs[dst] = val if dst == "pattern" else _as_int(val)
    fmt = raw.get("format")
    if isinstance(fmt, str):
        kwargs["format"] = fmt
    return Primitive(typ, **kwargs)


def _as_int(val: Any) -> Optional[int]:
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val
    if isinstance(val, float) and val.is_integer():
        return int(val)
    return None


def _as_number(val: Any) -> Optional[float]:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    return val


def parse_definitions(schemas: Mapping[str, Any]) -> Dict[str, SchemaNode]:
    """Parse every named definition of a `components.schemas` mapping."""
    return {str(name): parse_schema(raw) for name, raw in schemas.items()}


__all__ = ["parse_schema", "parse_definitions", "ref_name"]
