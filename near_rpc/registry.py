"""
near_rpc.registry
=================

Method name -> (request validator, response validator) bindings, built once from
a schema document and read-only afterwards.

Design
------
- A method without a declared request schema is bound to the empty-object
  validator ("no request"); one without a result schema to the accept-anything
  validator.
- `EXPERIMENTAL_<x>` and `<x>` are treated as a legacy/successor alias pair, and
  callers can declare more with `aliases={alias: target}`. Every name of an alias
  group shares one `MethodBinding` object; the extra names are listed in its
  `aliases`. An alias pair that disagrees on schemas raises `AliasConflictError`
  while building.
- Distinct methods that happen to use the same schemas keep separate bindings
  over the same compiled validators.

    reg = default_registry()
    b = reg.lookup("EXPERIMENTAL_changes")
    assert b is reg.lookup("changes")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import AliasConflictError
from .schema.compiler import ACCEPT_ANY, EMPTY_OBJECT, Validator, compile_all, compile_schema
from .schema.document import MethodDescriptor, SchemaDocument, bundled_document
from .schema.model import UNCONSTRAINED_OBJECT
from .schema.resolver import resolve

log = logging.getLogger(__name__)

EXPERIMENTAL_PREFIX = "EXPERIMENTAL_"

# Successor names that do not follow the EXPERIMENTAL_ prefix convention.
NEAR_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "block_effects": "EXPERIMENTAL_changes_in_block",
    }
)

_UNRESOLVED = compile_schema(UNCONSTRAINED_OBJECT, "<unresolved>")

SchemaPair = Tuple[Optional[str], Optional[str]]


@dataclass(frozen=True)
class MethodBinding:
    """Validators for one method and the alias names that stand for it."""

    method_name: str
    request_schema: Optional[str]
    result_schema: Optional[str]
    request: Validator = field(repr=False)
    response: Validator = field(repr=False)
    aliases: Tuple[str, ...] = ()
    summary: str = ""

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.method_name,) + self.aliases

    @property
    def schemas(self) -> SchemaPair:
        return (self.request_schema, self.result_schema)


class MethodRegistry(MappingABC):
    """Read-only mapping: method name -> MethodBinding."""

    def __init__(self, bindings: Mapping[str, MethodBinding]) -> None:
        self._by_name = MappingProxyType(dict(bindings))

    def __getitem__(self, name: str) -> MethodBinding:
        return self._by_name[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __repr__(self) -> str:
        return f"MethodRegistry({len(self._by_name)} names, {len(self.bindings())} bindings)"

    def lookup(self, name: str) -> Optional[MethodBinding]:
        return self._by_name.get(name)

    @property
    def names(self) -> List[str]:
        return sorted(self._by_name)

    def bindings(self) -> Tuple[MethodBinding, ...]:
        """Distinct bindings, in first-registration order."""
        seen: Dict[int, MethodBinding] = {}
        for b in self._by_name.values():
            seen.setdefault(id(b), b)
        return tuple(seen.values())


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def _validator_for(
    schema: Optional[str], validators: Mapping[str, Validator], default: Validator
) -> Validator:
    if schema is None:
        return default
    v = validators.get(schema)
    if v is None:
        log.debug("schema %r has no compiled validator; using an unconstrained object", schema)
        return _UNRESOLVED
    return v


def _stable_name(names: List[str]) -> str:
    """Prefer the non-EXPERIMENTAL successor name as the binding's primary name."""
    for n in names:
        if not n.startswith(EXPERIMENTAL_PREFIX):
            return n
    return names[0]


def _alias_pairs(names: Iterable[str], aliases: Mapping[str, str]) -> List[Tuple[str, str]]:
    known = set(names)
    pairs = [
        (n, n[len(EXPERIMENTAL_PREFIX):])
        for n in known
        if n.startswith(EXPERIMENTAL_PREFIX) and n[len(EXPERIMENTAL_PREFIX):] in known
    ]
    pairs.extend(aliases.items())
    return sorted(pairs)


def _alias_groups(names: Iterable[str], pairs: List[Tuple[str, str]]) -> Dict[str, List[str]]:
    """name -> every name linked to it through alias pairs (the lists are shared)."""
    group_of: Dict[str, List[str]] = {n: [n] for n in names}
    for a, b in pairs:
        ga, gb = group_of[a], group_of[b]
        if ga is gb:
            continue
        ga.extend(gb)
        for n in gb:
            group_of[n] = ga
    return group_of


def build_registry(
    methods: Iterable[MethodDescriptor],
    validators: Mapping[str, Validator],
    *,
    aliases: Optional[Mapping[str, str]] = None,
) -> MethodRegistry:
    """
    Bind every method descriptor to its validator pair.

    Args:
        methods: method descriptors (name, params schema, result schema).
        validators: compiled validators by schema name.
        aliases: extra {alias: target} pairs. An alias absent from `methods` is
            added with the target's schemas.

    Raises:
        AliasConflictError: a name listed twice with different schemas, or an alias
            pair whose schemas differ.
        KeyError: an explicit alias points at an unknown method.
    """
    pairs: Dict[str, SchemaPair] = {}
    summaries: Dict[str, str] = {}
    for m in methods:
        pair = (m.params_schema, m.result_schema)
        if m.name in pairs and pairs[m.name] != pair:
            raise AliasConflictError(m.name, m.name, (pairs[m.name], pair))
        pairs[m.name] = pair
        summaries.setdefault(m.name, m.summary)

    explicit = dict(aliases or {})
    for alias, target in explicit.items():
        if target not in pairs:
            raise KeyError(f"alias {alias!r} points at unknown method {target!r}")
        if alias not in pairs:
            pairs[alias] = pairs[target]
            summaries[alias] = summaries.get(target, "")

    alias_pairs = _alias_pairs(pairs, explicit)
    for a, b in alias_pairs:
        if pairs[a] != pairs[b]:
            raise AliasConflictError(a, b, (pairs[a], pairs[b]))

    # One binding per alias group. Methods that merely use the same schemas get
    # their own binding over the same compiled validators.
    order = {n: i for i, n in enumerate(pairs)}
    groups = _alias_groups(pairs, alias_pairs)
    by_name: Dict[str, MethodBinding] = {}
    for name in pairs:
        if name in by_name:
            continue
        names = sorted(groups[name], key=order.__getitem__)
        primary = _stable_name(names)
        req, res = pairs[primary]
        binding = MethodBinding(
            method_name=primary,
            request_schema=req,
            result_schema=res,
            request=_validator_for(req, validators, EMPTY_OBJECT),
            response=_validator_for(res, validators, ACCEPT_ANY),
            aliases=tuple(n for n in names if n != primary),
            summary=summaries.get(primary, ""),
        )
        for n in names:
            by_name[n] = binding

    registry = MethodRegistry({n: by_name[n] for n in pairs})
    log.debug("built method registry: %r", registry)
    return registry


def registry_from_document(
    doc: SchemaDocument, *, aliases: Optional[Mapping[str, str]] = None
) -> MethodRegistry:
    """Resolve, compile and bind every method of `doc`."""
    resolved = resolve(doc.graph())
    validators = compile_all(resolved)
    return build_registry(doc.methods, validators, aliases=aliases)


@lru_cache(maxsize=1)
def default_registry() -> MethodRegistry:
    """Registry for the bundled NEAR document, built on first use."""
    return registry_from_document(bundled_document(), aliases=NEAR_ALIASES)


__all__ = [
    "EXPERIMENTAL_PREFIX",
    "NEAR_ALIASES",
    "MethodBinding",
    "MethodRegistry",
    "build_registry",
    "registry_from_document",
    "default_registry",
]
