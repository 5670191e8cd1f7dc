"""
near_rpc.codegen
================

Emit a Python module of static type declarations from a schema document.

One declaration per named schema:

- objects with fields   -> `class Name(TypedDict)` (optional members wrapped in
                           `NotRequired[...]`)
- everything else       -> `Name: TypeAlias = ...`

References are emitted by name and left unevaluated (`from __future__ import
annotations` for class bodies, quoted alias values), so declaration order does
not matter and recursive schemas are legal. A `METHODS` table maps each method
name to its (request type, response type) names.

Quickstart
----------
    from near_rpc.codegen import render_module
    from near_rpc.schema import bundled_document

    src = render_module(bundled_document())
"""

from __future__ import annotations

import keyword
import logging
import re
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from .schema.document import SchemaDocument
from .schema.model import (
    ArrayDef,
    IntersectionDef,
    Kind,
    LiteralDef,
    ObjectDef,
    OpenMarker,
    Primitive,
    RefDef,
    SchemaNode,
    UnionDef,
)

log = logging.getLogger(__name__)

_PY_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_PRIMITIVES = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}


def _py_name(name: str) -> str:
    """Schema name -> importable identifier ("health.result" -> "health_result")."""
    ident = re.sub(r"\W", "_", name) or "Schema"
    if ident[0].isdigit():
        ident = f"_{ident}"
    if keyword.iskeyword(ident):
        ident = f"{ident}_"
    return ident


def _unique_names(names: List[str]) -> Dict[str, str]:
    seen: Dict[str, int] = {}
    out: Dict[str, str] = {}
    for n in names:
        base = _py_name(n)
        k = seen.get(base, 0)
        seen[base] = k + 1
        out[n] = base if k == 0 else f"{base}_{k}"
    return out


# ---------- Type expressions ----------------------------------------------------


class _Emitter:
    def __init__(self, names: Mapping[str, str]) -> None:
        self._names = names

    def expr(self, node: SchemaNode) -> str:
        return _EXPR[node.kind](self, node)

    def _primitive(self, node: Primitive) -> str:
        return _PRIMITIVES.get(node.type, "Any")

    def _literal(self, node: LiteralDef) -> str:
        if node.value is None:
            return "None"
        return f"Literal[{node.value!r}]"

    def _ref(self, node: RefDef) -> str:
        # unknown targets still get a name; the module then fails loudly on use
        return self._names.get(node.target, _py_name(node.target))

    def _open(self, node: OpenMarker) -> str:
        return "Any"

    def _object(self, node: ObjectDef) -> str:
        if isinstance(node.additional, bool) or node.fields:
            return "Dict[str, Any]"
        return f"Dict[str, {self.expr(node.additional)}]"

    def _array(self, node: ArrayDef) -> str:
        return f"List[{self.expr(node.items)}]"

    def _union(self, node: UnionDef) -> str:
        if not node.variants:
            return "NoReturn"
        literals = [v for v in node.variants if isinstance(v, LiteralDef) and v.value is not None]
        nullable = any(_is_null(v) for v in node.variants)
        if literals and len(literals) + int(nullable) == len(node.variants):
            out = "Literal[" + ", ".join(repr(v.value) for v in literals) + "]"
            return f"Optional[{out}]" if nullable else out

        parts: List[str] = []
        for v in node.variants:
            if _is_null(v):
                continue
            e = self.expr(v)
            if e not in parts:
                parts.append(e)
        if not parts:
            return "None"
        inner = parts[0] if len(parts) == 1 else "Union[" + ", ".join(parts) + "]"
        return f"Optional[{inner}]" if nullable else inner

    def _intersection(self, node: IntersectionDef) -> str:
        # typing has no intersection; every intersection in practice is object-shaped
        return "Dict[str, Any]"


def _is_null(node: SchemaNode) -> bool:
    return (isinstance(node, Primitive) and node.type == "null") or (
        isinstance(node, LiteralDef) and node.value is None
    )


_EXPR: Dict[Kind, Callable[[_Emitter, SchemaNode], str]] = {
    Kind.PRIMITIVE: _Emitter._primitive,
    Kind.LITERAL: _Emitter._literal,
    Kind.REF: _Emitter._ref,
    Kind.OPEN: _Emitter._open,
    Kind.OBJECT: _Emitter._object,
    Kind.ARRAY: _Emitter._array,
    Kind.UNION: _Emitter._union,
    Kind.INTERSECTION: _Emitter._intersection,
}

_unhandled = set(Kind) - set(_EXPR)
if _unhandled:  # pragma: no cover - guards new kinds
    raise RuntimeError(f"codegen has no emitter for kinds: {sorted(k.value for k in _unhandled)}")


# ---------- Declarations ----------------------------------------------------------

_HEADER = '''"""
Type declarations for {title} {version}

This file was generated by near_rpc.codegen.render_module.
Do not edit by hand.
"""

from __future__ import annotations

from typing import Any, Dict, List, NoReturn, Optional, Tuple, Union

from typing_extensions import Literal, NotRequired, TypeAlias, TypedDict
'''


def _declare(py: str, node: SchemaNode, em: _Emitter) -> str:
    if isinstance(node, ObjectDef) and node.fields:
        return _declare_typed_dict(py, node, em)
    if isinstance(node, ObjectDef) and node.additional is False:
        return f"\n\nclass {py}(TypedDict):\n    pass\n"
    return f"\n\n{py}: TypeAlias = {em.expr(node)!r}\n"


def _declare_typed_dict(py: str, node: ObjectDef, em: _Emitter) -> str:
    members: List[Tuple[str, str]] = []
    for f in node.fields:
        ann = em.expr(f.schema)
        members.append((f.name, ann if f.required else f"NotRequired[{ann}]"))

    if all(_PY_IDENT_RE.match(n) and not keyword.iskeyword(n) for n, _ in members):
        lines = [f"\n\nclass {py}(TypedDict):"]
        if node.additional is not False:
            lines.append("    # undeclared keys are allowed")
        lines.extend(f"    {n}: {ann}" for n, ann in members)
        return "\n".join(lines) + "\n"

    # member names that are not identifiers need the functional form
    body = ",\n".join(f"        {n!r}: {ann!r}" for n, ann in members)
    return f"\n\n{py} = TypedDict(\n    {py!r},\n    {{\n{body},\n    }},\n)\n"


def render_module(document: SchemaDocument) -> str:
    """Python source declaring every schema and the method table of `document`."""
    graph = document.graph()
    names = _unique_names(list(graph))
    em = _Emitter(names)

    src = _HEADER.format(title=document.title or "schema document", version=document.version).rstrip() + "\n"
    for name, node in graph.items():
        src += _declare(names[name], node, em)

    def type_name(schema: Optional[str]) -> Optional[str]:
        if schema is None:
            return None
        return names.get(schema, _py_name(schema))

    src += "\n\nMETHODS: Dict[str, Tuple[Optional[str], Optional[str]]] = {\n"
    for m in document.methods:
        src += f"    {m.name!r}: ({type_name(m.params_schema)!r}, {type_name(m.result_schema)!r}),\n"
    src += "}\n"

    exported = [names[n] for n in graph] + ["METHODS"]
    src += "\n__all__ = [\n" + "".join(f"    {n!r},\n" for n in exported) + "]\n"
    log.debug("rendered %d declarations and %d methods", len(graph), len(document.methods))
    return src


def write_module(document: SchemaDocument, path: Union[str, Path]) -> Path:
    """Render `document` and write it to `path` (parent directories are created)."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_module(document), encoding="utf-8")
    log.info("wrote %s", out)
    return out


__all__ = ["render_module", "write_module"]
