"""
Validator compiler
==================

Turns a resolved schema tree into a `Validator` backed by a pydantic v2
`TypeAdapter`.

Each node kind maps to a type annotation:

  primitive     -> str / int / bool / None / (int | float), with Field constraints
  object        -> functional TypedDict (extra="forbid" unless extra keys allowed),
                   or Dict[str, T] when the object declares no fields
  array         -> List[T] with min/max length
  union         -> Union[...]
  intersection  -> merged TypedDict(s) for object parts, chained checks otherwise
  literal       -> Literal[...] for strings, exact-equality check for the rest
  open          -> Any

Values are validated in pydantic strict mode, so "1" is never an integer and
1 is never a boolean.

Compilation never raises. If pydantic cannot build a validator for a tree (an
unsupported regex is the usual cause) the result is an accept-anything validator
flagged `fallback=True`, and a warning is logged.
"""

from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import AfterValidator, ConfigDict, Field as PydanticField, TypeAdapter, with_config
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError
from typing_extensions import Annotated, Literal, NotRequired, Required, TypedDict

from ..errors import Issue, PathItem, ValidationError
from .model import EMPTY_OBJECT as EMPTY_OBJECT_NODE
from .model import (
    ArrayDef,
    Field,
    IntersectionDef,
    Kind,
    LiteralDef,
    ObjectDef,
    OpenMarker,
    Primitive,
    ResolvedSchema,
    SchemaNode,
    UnionDef,
)

log = logging.getLogger(__name__)

MAX_INTERSECTION_PRODUCT = 256

# Integer formats that imply bounds.
_INT_FORMATS: Dict[str, Tuple[Optional[int], Optional[int]]] = {
    "int8": (-(2**7), 2**7 - 1),
    "int16": (-(2**15), 2**15 - 1),
    "int32": (-(2**31), 2**31 - 1),
    "int64": (-(2**63), 2**63 - 1),
    "uint": (0, None),
    "uint8": (0, 2**8 - 1),
    "uint16": (0, 2**16 - 1),
    "uint32": (0, 2**32 - 1),
    "uint64": (0, 2**64 - 1),
}

_IDENT_RE = re.compile(r"\W")


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Validator:
    """
    Compiled check bound to one resolved schema.

    `validate` returns the normalised value (plain dicts/lists, undeclared keys of
    strict objects rejected) or raises `ValidationError`. Instances are immutable
    and safe to share between concurrent calls.
    """

    name: str
    schema: ResolvedSchema = field(repr=False)
    annotation: Any = field(repr=False, compare=False)
    fallback: bool = False
    _adapter: TypeAdapter = field(repr=False, compare=False, default=None)  # type: ignore[assignment]

    def validate(self, value: Any) -> Any:
        try:
            return self._adapter.validate_python(value, strict=True)
        except PydanticValidationError as e:
            raise ValidationError(issues=issues_from_pydantic(e, value), schema=self.name) from e

    def check(self, value: Any) -> List[Issue]:
        try:
            self._adapter.validate_python(value, strict=True)
        except PydanticValidationError as e:
            return list(issues_from_pydantic(e, value))
        return []

    def accepts(self, value: Any) -> bool:
        return not self.check(value)


def issues_from_pydantic(exc: PydanticValidationError, value: Any) -> Tuple[Issue, ...]:
    """
    Convert pydantic errors into `Issue`s whose paths index into `value`.

    pydantic locations also contain union branch tags ("int", "function-after[...]",
    TypedDict names). Only the location items that are keys/indices of the value
    being walked are kept; a "missing" error additionally keeps its last item (the
    absent field name).
    """
    out: List[Issue] = []
    seen = set()
    for err in exc.errors(include_url=False):
        loc = err.get("loc", ())
        path: List[PathItem] = []
        cur = value
        for item in loc:
            if isinstance(cur, Mapping) and isinstance(item, str) and item in cur:
                path.append(item)
                cur = cur[item]
            elif isinstance(cur, list) and isinstance(item, int) and not isinstance(item, bool) and 0 <= item < len(cur):
                path.append(item)
                cur = cur[item]
        if err.get("type") == "missing" and loc and (not path or path[-1] != loc[-1]):
            path.append(loc[-1])
        issue = Issue(tuple(path), str(err.get("msg", "invalid value")), str(err.get("type", "invalid")))
        key = (issue.path, issue.reason)
        if key not in seen:
            seen.add(key)
            out.append(issue)
    return tuple(out)


# ---------------------------------------------------------------------------
# Annotation builder
# ---------------------------------------------------------------------------


def _raise_custom(code: str, template: str, **ctx: Any) -> None:
    raise PydanticCustomError(code, template, ctx)


def _reject_all(value: Any) -> Any:
    _raise_custom("never", "no value is allowed here")


def _equals(expected: Any) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        same_kind = isinstance(value, bool) == isinstance(expected, bool)
        if same_kind and value == expected and (value is None) == (expected is None):
            return value
        _raise_custom("literal_error", "Input should be {expected}", expected=repr(expected))
        return value  # pragma: no cover

    return check


def _chained(adapter: TypeAdapter, label: str) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        try:
            return adapter.validate_python(value, strict=True)
        except PydanticValidationError as e:
            detail = "; ".join(str(i) for i in issues_from_pydantic(e, value))
            _raise_custom("intersection", "{label} rejected: {detail}", label=label, detail=detail)
        return value  # pragma: no cover

    return check


def _extra_values(declared: Tuple[str, ...], adapter: TypeAdapter) -> Callable[[Any], Any]:
    def check(value: Dict[str, Any]) -> Dict[str, Any]:
        extras = {k: v for k, v in value.items() if k not in declared}
        if not extras:
            return value
        try:
            checked = adapter.validate_python(extras, strict=True)
        except PydanticValidationError as e:
            detail = "; ".join(str(i) for i in issues_from_pydantic(e, extras))
            _raise_custom("extra_invalid", "additional property rejected: {detail}", detail=detail)
        out = dict(value)
        out.update(checked)
        return out

    return check


def _constraints(**kwargs: Any) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


class _Compiler:
    """Builds annotations for one or more trees; shared subtrees are built once."""

    def __init__(self) -> None:
        # id(node) -> (node, annotation); the node is held so its id stays unique
        self._memo: Dict[int, Tuple[SchemaNode, Any]] = {}
        self._counter = itertools.count(1)

    def annotation(self, node: SchemaNode, name: str) -> Any:
        key = id(node)
        hit = self._memo.get(key)
        if hit is not None and hit[0] is node:
            return hit[1]
        ann = _BUILDERS[node.kind](self, node, name)
        self._memo[key] = (node, ann)
        return ann

    # --- scalars ---

    def _primitive(self, node: Primitive, name: str) -> Any:
        t = node.type
        if t == "null":
            return None
        if t == "boolean":
            return bool
        if t == "string":
            c = _constraints(min_length=node.min_length, max_length=node.max_length, pattern=node.pattern)
            return Annotated[str, PydanticField(**c)] if c else str
        if t == "integer":
            return self._int(node)
        if t == "number":
            c = self._numeric(node)
            if not c:
                return Union[int, float]
            return Union[Annotated[int, PydanticField(**c)], Annotated[float, PydanticField(**c)]]
        log.warning("schema %s: unknown primitive type %r; accepting any value", name, t)
        return Any

    def _int(self, node: Primitive) -> Any:
        c = self._numeric(node)
        lo, hi = _INT_FORMATS.get(node.format or "", (None, None))
        if lo is not None and (c.get("ge") is None or c["ge"] < lo):
            c["ge"] = lo
        if hi is not None and (c.get("le") is None or c["le"] > hi):
            c["le"] = hi
        return Annotated[int, PydanticField(**c)] if c else int

    @staticmethod
    def _numeric(node: Primitive) -> Dict[str, Any]:
        return _constraints(
            ge=node.minimum,
            le=node.maximum,
            gt=node.exclusive_minimum,
            lt=node.exclusive_maximum,
            multiple_of=node.multiple_of,
        )

    def _literal(self, node: LiteralDef, name: str) -> Any:
        if isinstance(node.value, str):
            return Literal[node.value]  # type: ignore[valid-type]
        return Annotated[Any, AfterValidator(_equals(node.value))]

    def _open(self, node: OpenMarker, name: str) -> Any:
        return Any

    def _ref(self, node: SchemaNode, name: str) -> Any:
        log.warning("schema %s: unresolved reference %r reached the compiler; accepting any value", name, node)
        return Any

    # --- containers ---

    def _object(self, node: ObjectDef, name: str) -> Any:
        extra = node.additional
        if not node.fields:
            if extra is False:
                return self._typed_dict(name, (), "forbid")
            if extra is True:
                return Dict[str, Any]
            return Dict[str, self.annotation(extra, f"{name}.*")]  # type: ignore[misc]

        td = self._typed_dict(name, node.fields, "forbid" if extra is False else "allow")
        if isinstance(extra, bool):
            return td
        declared = tuple(f.name for f in node.fields)
        extras = TypeAdapter(Dict[str, self.annotation(extra, f"{name}.*")])  # type: ignore[misc]
        return Annotated[td, AfterValidator(_extra_values(declared, extras))]

    def _typed_dict(self, name: str, fields: Tuple[Field, ...], extra: str) -> Any:
        members: Dict[str, Any] = {}
        for f in fields:
            ann = self.annotation(f.schema, f"{name}.{f.name}")
            members[f.name] = Required[ann] if f.required else NotRequired[ann]
        type_name = f"{_IDENT_RE.sub('_', name) or 'Object'}_{next(self._counter)}"
        td = TypedDict(type_name, members)  # type: ignore[operator]
        return with_config(ConfigDict(extra=extra))(td)

    def _array(self, node: ArrayDef, name: str) -> Any:
        item = self.annotation(node.items, f"{name}[]")
        c = _constraints(min_length=node.min_items, max_length=node.max_items)
        return Annotated[List[item], PydanticField(**c)] if c else List[item]  # type: ignore[valid-type]

    def _union(self, node: UnionDef, name: str) -> Any:
        if not node.variants:
            return Annotated[Any, AfterValidator(_reject_all)]
        anns = [self.annotation(v, name) for v in node.variants]
        if len(anns) == 1:
            return anns[0]
        return Union[tuple(anns)]  # type: ignore[return-value]

    def _intersection(self, node: IntersectionDef, name: str) -> Any:
        parts = _flatten_parts(node.parts)
        if not parts:
            return Any
        if len(parts) == 1:
            return self.annotation(parts[0], name)

        alternatives = [_object_alternatives(p) for p in parts]
        if all(a is not None for a in alternatives):
            combos = 1
            for a in alternatives:
                combos *= len(a)  # type: ignore[arg-type]
            if combos > MAX_INTERSECTION_PRODUCT:
                log.warning(
                    "schema %s: intersection expands to %d object shapes (limit %d); accepting any value",
                    name, combos, MAX_INTERSECTION_PRODUCT,
                )
                return Any
            merged = [_merge_objects(combo) for combo in itertools.product(*alternatives)]  # type: ignore[arg-type]
            return self._union(UnionDef(tuple(merged)), name)

        # Non-object parts: validate with the first, check the rest in order.
        base = self.annotation(parts[0], name)
        checks = [
            AfterValidator(_chained(TypeAdapter(self.annotation(p, name)), f"{name} part {i}"))
            for i, p in enumerate(parts[1:], start=2)
        ]
        return Annotated[(base, *checks)]  # type: ignore[return-value]


_BUILDERS: Dict[Kind, Callable[[_Compiler, Any, str], Any]] = {
    Kind.PRIMITIVE: _Compiler._primitive,
    Kind.OBJECT: _Compiler._object,
    Kind.ARRAY: _Compiler._array,
    Kind.UNION: _Compiler._union,
    Kind.INTERSECTION: _Compiler._intersection,
    Kind.LITERAL: _Compiler._literal,
    Kind.REF: _Compiler._ref,
    Kind.OPEN: _Compiler._open,
}

_unhandled = set(Kind) - set(_BUILDERS)
if _unhandled:  # pragma: no cover - guards new kinds
    raise RuntimeError(f"compiler has no builder for kinds: {sorted(k.value for k in _unhandled)}")


# --- intersection helpers ---


def _flatten_parts(parts: Tuple[SchemaNode, ...]) -> List[SchemaNode]:
    out: List[SchemaNode] = []
    for p in parts:
        if isinstance(p, IntersectionDef):
            out.extend(_flatten_parts(p.parts))
        elif isinstance(p, OpenMarker):
            continue
        else:
            out.append(p)
    return out


def _object_alternatives(node: SchemaNode) -> Optional[List[ObjectDef]]:
    """Object shapes `node` accepts, or None when it is not purely object-shaped."""
    if isinstance(node, ObjectDef):
        return [node]
    if isinstance(node, UnionDef) and node.variants:
        out: List[ObjectDef] = []
        for v in node.variants:
            sub = _object_alternatives(v)
            if sub is None:
                return None
            out.extend(sub)
        return out
    if isinstance(node, IntersectionDef):
        parts = _flatten_parts(node.parts)
        alts = [_object_alternatives(p) for p in parts]
        if not parts or any(a is None for a in alts):
            return None
        return [_merge_objects(c) for c in itertools.product(*alts)]  # type: ignore[arg-type]
    return None


def _merge_objects(objs: Tuple[ObjectDef, ...]) -> ObjectDef:
    order: List[str] = []
    schemas: Dict[str, List[SchemaNode]] = {}
    required: Dict[str, bool] = {}
    for obj in objs:
        for f in obj.fields:
            if f.name not in schemas:
                order.append(f.name)
                schemas[f.name] = []
                required[f.name] = False
            if not any(s is f.schema or s == f.schema for s in schemas[f.name]):
                schemas[f.name].append(f.schema)
            required[f.name] = required[f.name] or f.required

    fields = tuple(
        Field(n, schemas[n][0] if len(schemas[n]) == 1 else IntersectionDef(tuple(schemas[n])), required[n])
        for n in order
    )

    extras = [o.additional for o in objs]
    additional: Union[bool, SchemaNode]
    if any(e is False for e in extras):
        additional = False
    else:
        nodes = [e for e in extras if not isinstance(e, bool)]
        if not nodes:
            additional = True
        elif len(nodes) == 1:
            additional = nodes[0]
        else:
            additional = IntersectionDef(tuple(nodes))
    return ObjectDef(fields, additional)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _accept_any(name: str, schema: ResolvedSchema, fallback: bool) -> Validator:
    return Validator(name=name, schema=schema, annotation=Any, fallback=fallback, _adapter=TypeAdapter(Any))


def compile_schema(node: ResolvedSchema, name: str = "<anonymous>", *, _compiler: Optional[_Compiler] = None) -> Validator:
    """
    Compile one resolved tree. Never raises.

    On failure a warning is logged and an accept-anything validator with
    `fallback=True` is returned instead.
    """
    compiler = _compiler or _Compiler()
    try:
        ann = compiler.annotation(node, name)
        adapter = TypeAdapter(ann)
    except Exception as e:  # noqa: BLE001 - any build failure degrades to accept-anything
        log.warning("schema %s: could not compile a validator (%s: %s); accepting any value", name, type(e).__name__, e)
        return _accept_any(name, node, fallback=True)
    return Validator(name=name, schema=node, annotation=ann, fallback=False, _adapter=adapter)


def compile_all(resolved: Mapping[str, ResolvedSchema]) -> Dict[str, Validator]:
    """Compile every resolved definition. Fallbacks are counted in one summary line."""
    compiler = _Compiler()
    out = {name: compile_schema(node, name, _compiler=compiler) for name, node in resolved.items()}
    fallbacks = sorted(n for n, v in out.items() if v.fallback)
    if fallbacks:
        log.warning("%d of %d schemas compiled to accept-anything validators: %s", len(fallbacks), len(out), fallbacks)
    return out


ACCEPT_ANY = _accept_any("<any>", OpenMarker("unconstrained"), fallback=False)
EMPTY_OBJECT = compile_schema(EMPTY_OBJECT_NODE, "<no request>")

__all__ = [
    "MAX_INTERSECTION_PRODUCT",
    "Validator",
    "compile_schema",
    "compile_all",
    "issues_from_pydantic",
    "ACCEPT_ANY",
    "EMPTY_OBJECT",
]
