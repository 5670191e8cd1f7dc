"""
Reference resolution.

Inlines every `RefDef` of a schema graph so each named definition becomes a
self-contained tree:

- A ref whose target is already on the current resolution path (a cycle) becomes
  `OpenMarker("cycle:<name>")` instead of being unrolled again.
- More than `max_depth` nested ref expansions on one path become
  `OpenMarker("depth")`, cycle or not.
- A ref to a name missing from the graph becomes an unconstrained object.

Nothing here raises: every anomaly degrades to a permissive node. Expansions that
contained no cut are memoised per name. Expansions that did contain a cut are
memoised per (name, path names, depth), the only inputs a cut depends on. Either
way each subtree is built once and the resulting trees share structure.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from .model import (
    UNCONSTRAINED_OBJECT,
    ArrayDef,
    Field,
    IntersectionDef,
    Kind,
    ObjectDef,
    OpenMarker,
    RefDef,
    ResolvedSchema,
    SchemaGraph,
    SchemaNode,
    UnionDef,
)

log = logging.getLogger(__name__)

MAX_DEPTH = 20


class _Resolver:
    """One resolution pass over a read-only graph."""

    def __init__(self, graph: SchemaGraph, max_depth: int) -> None:
        self._graph = graph
        self._max_depth = max_depth
        # name -> fully inlined tree, only for expansions without cycle/depth cuts
        self._done: Dict[str, SchemaNode] = {}
        # (name, visiting, depth) -> tree for expansions that were cut somewhere below
        self._cut: Dict[Tuple[str, FrozenSet[str], int], SchemaNode] = {}
        self.missing: Dict[str, int] = {}

    def resolve_name(self, name: str) -> ResolvedSchema:
        if name in self._done:
            return self._done[name]
        node = self._graph.get(name)
        if node is None:
            self._note_missing(name)
            return UNCONSTRAINED_OBJECT
        out, cut = self._inline(node, frozenset((name,)), 0)
        if not cut:
            self._done[name] = out
        return out

    # Returns (inlined node, whether a cycle/depth cut happened underneath).
    def _inline(
        self, node: SchemaNode, visiting: FrozenSet[str], depth: int
    ) -> Tuple[SchemaNode, bool]:
        handler = _HANDLERS[node.kind]
        return handler(self, node, visiting, depth)

    def _ref(self, node: RefDef, visiting: FrozenSet[str], depth: int) -> Tuple[SchemaNode, bool]:
        name = node.target
        if name in visiting:
            return OpenMarker(f"cycle:{name}"), True
        if depth >= self._max_depth:
            return OpenMarker("depth"), True
        if name in self._done:
            return self._done[name], False
        key = (name, visiting, depth)
        if key in self._cut:
            return self._cut[key], True
        target = self._graph.get(name)
        if target is None:
            self._note_missing(name)
            return UNCONSTRAINED_OBJECT, False
        out, cut = self._inline(target, visiting | {name}, depth + 1)
        if not cut:
            self._done[name] = out
        else:
            self._cut[key] = out
        return out, cut

    def _object(self, node: ObjectDef, visiting: FrozenSet[str], depth: int) -> Tuple[SchemaNode, bool]:
        cut_any = False
        fields = []
        for f in node.fields:
            sub, cut = self._inline(f.schema, visiting, depth)
            cut_any = cut_any or cut
            fields.append(Field(f.name, sub, f.required))
        additional = node.additional
        if not isinstance(additional, bool):
            additional, cut = self._inline(additional, visiting, depth)
            cut_any = cut_any or cut
        return ObjectDef(tuple(fields), additional), cut_any

    def _array(self, node: ArrayDef, visiting: FrozenSet[str], depth: int) -> Tuple[SchemaNode, bool]:
        items, cut = self._inline(node.items, visiting, depth)
        return ArrayDef(items, node.min_items, node.max_items), cut

    def _union(self, node: UnionDef, visiting: FrozenSet[str], depth: int) -> Tuple[SchemaNode, bool]:
        variants, cut = self._inline_all(node.variants, visiting, depth)
        return UnionDef(variants), cut

    def _intersection(
        self, node: IntersectionDef, visiting: FrozenSet[str], depth: int
    ) -> Tuple[SchemaNode, bool]:
        parts, cut = self._inline_all(node.parts, visiting, depth)
        return IntersectionDef(parts), cut

    def _leaf(self, node: SchemaNode, visiting: FrozenSet[str], depth: int) -> Tuple[SchemaNode, bool]:
        return node, False

    def _inline_all(
        self, nodes: Tuple[SchemaNode, ...], visiting: FrozenSet[str], depth: int
    ) -> Tuple[Tuple[SchemaNode, ...], bool]:
        out = []
        cut_any = False
        for n in nodes:
            sub, cut = self._inline(n, visiting, depth)
            cut_any = cut_any or cut
            out.append(sub)
        return tuple(out), cut_any

    def _note_missing(self, name: str) -> None:
        if name not in self.missing:
            log.debug("unresolved schema reference %r; using an unconstrained object", name)
        self.missing[name] = self.missing.get(name, 0) + 1


_HANDLERS = {
    Kind.PRIMITIVE: _Resolver._leaf,
    Kind.LITERAL: _Resolver._leaf,
    Kind.OPEN: _Resolver._leaf,
    Kind.REF: _Resolver._ref,
    Kind.OBJECT: _Resolver._object,
    Kind.ARRAY: _Resolver._array,
    Kind.UNION: _Resolver._union,
    Kind.INTERSECTION: _Resolver._intersection,
}

_unhandled = set(Kind) - set(_HANDLERS)
if _unhandled:  # pragma: no cover - guards new kinds
    raise RuntimeError(f"resolver has no handler for kinds: {sorted(k.value for k in _unhandled)}")


def resolve(graph: SchemaGraph, *, max_depth: int = MAX_DEPTH) -> Dict[str, ResolvedSchema]:
    """Resolve every definition of `graph`. Returns name -> ref-free tree."""
    r = _Resolver(graph, max_depth)
    out = {name: r.resolve_name(name) for name in graph}
    if r.missing:
        log.debug("resolution finished with %d unresolved names: %s", len(r.missing), sorted(r.missing))
    return out


def resolve_one(name: str, graph: SchemaGraph, *, max_depth: int = MAX_DEPTH) -> ResolvedSchema:
    """Resolve a single named definition (unknown name -> unconstrained object)."""
    return _Resolver(graph, max_depth).resolve_name(name)


def resolve_node(
    node: SchemaNode, graph: SchemaGraph, *, max_depth: int = MAX_DEPTH, name: Optional[str] = None
) -> ResolvedSchema:
    """Resolve an anonymous node against `graph`."""
    visiting = frozenset((name,)) if name else frozenset()
    out, _ = _Resolver(graph, max_depth)._inline(node, visiting, 0)
    return out


def unresolved_names(graph: Mapping[str, SchemaNode]) -> Tuple[str, ...]:
    """Names referenced somewhere in `graph` but not defined in it."""
    from .model import refs_of

    seen = []
    for node in graph.values():
        for target in refs_of(node):
            if target not in graph and target not in seen:
                seen.append(target)
    return tuple(seen)


__all__ = ["MAX_DEPTH", "resolve", "resolve_one", "resolve_node", "unresolved_names"]
