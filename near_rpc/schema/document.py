"""
Schema document source
======================

Loads an OpenRPC-style document (methods + `components.schemas`) from a file,
a JSON string or an already-parsed mapping.

Only the outer shape of the document is checked (with `jsonschema`); the schema
definitions themselves are parsed leniently by `near_rpc.schema.parse` and never
fail the load.

    doc = load_document("openrpc.json")
    graph = doc.graph()              # read-only name -> SchemaNode
    for m in doc.methods:
        print(m.name, m.params_schema, m.result_schema)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import jsonschema
import yaml

from ..errors import SchemaDocumentError
from .model import SchemaGraph
from .parse import parse_definitions, parse_schema, ref_name

log = logging.getLogger(__name__)

BUNDLED_PATH = Path(__file__).resolve().parents[1] / "data" / "openrpc.json"

# Outer structure only. Schemas inside `components.schemas` may be anything.
_ENVELOPE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["methods"],
    "properties": {
        "openrpc": {"type": "string"},
        "info": {
            "type": "object",
            "properties": {"title": {"type": "string"}, "version": {"type": "string"}},
        },
        "methods": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "summary": {"type": "string"},
                    "params": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"name": {"type": "string"}, "schema": {}},
                        },
                    },
                    "result": {
                        "type": "object",
                        "properties": {"name": {"type": "string"}, "schema": {}},
                    },
                },
            },
        },
        "components": {
            "type": "object",
            "properties": {"schemas": {"type": "object"}},
        },
    },
}

Source = Union[str, Path, Mapping[str, Any]]


@dataclass(frozen=True)
class MethodDescriptor:
    """One method entry: schema names of its first parameter and of its result."""

    name: str
    params_schema: Optional[str] = None
    result_schema: Optional[str] = None
    summary: str = ""


@dataclass(frozen=True)
class SchemaDocument:
    title: str
    version: str
    schemas: Mapping[str, Any]
    methods: Tuple[MethodDescriptor, ...]
    source: Optional[str] = None
    # synthetic name -> raw inline schema of a method param/result
    inline: Mapping[str, Any] = field(default_factory=dict)
    _graph: Dict[str, SchemaGraph] = field(default_factory=dict, repr=False, compare=False)

    def graph(self) -> SchemaGraph:
        """Parsed schema graph (named + inline method schemas). Built once, read-only."""
        cached = self._graph.get("graph")
        if cached is None:
            nodes = parse_definitions(self.schemas)
            for name, raw in self.inline.items():
                nodes[name] = parse_schema(raw)
            cached = MappingProxyType(nodes)
            self._graph["graph"] = cached
        return cached

    def method(self, name: str) -> Optional[MethodDescriptor]:
        for m in self.methods:
            if m.name == name:
                return m
        return None

    @property
    def method_names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.methods)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_source(source: Source) -> Tuple[Any, Optional[str]]:
    if isinstance(source, Mapping):
        return json.loads(json.dumps(source)), None
    if isinstance(source, Path) or (isinstance(source, str) and not source.lstrip().startswith("{")):
        path = Path(source).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaDocumentError(f"cannot read schema document: {e}", source=str(path)) from e
        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(text), str(path)
            return json.loads(text), str(path)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise SchemaDocumentError(f"parse error: {e}", source=str(path)) from e
    if isinstance(source, str):
        try:
            return json.loads(source), None
        except json.JSONDecodeError as e:
            raise SchemaDocumentError(f"JSON parse error: {e}") from e
    raise SchemaDocumentError(f"unsupported schema document source: {type(source).__name__}")


def _check_envelope(raw: Any, source: Optional[str]) -> None:
    validator = jsonschema.Draft7Validator(_ENVELOPE_SCHEMA)
    errors = sorted(validator.iter_errors(raw), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.absolute_path) or "<root>"
        raise SchemaDocumentError(f"{where}: {first.message}", source=source)


def _schema_ref(holder: Any, synthetic: str, inline: Dict[str, Any]) -> Optional[str]:
    """Schema name for a param/result holder; inline schemas get `synthetic`."""
    if not isinstance(holder, Mapping) or "schema" not in holder:
        return None
    schema = holder["schema"]
    if isinstance(schema, Mapping) and isinstance(schema.get("$ref"), str) and len(schema) == 1:
        return ref_name(schema["$ref"])
    inline[synthetic] = schema
    return synthetic


def load_document(source: Source) -> SchemaDocument:
    """
    Load and structurally check a schema document.

    Raises:
        SchemaDocumentError: unreadable input, bad JSON/YAML, or a document whose
            outer structure is not an OpenRPC method list.
    """
    raw, origin = _read_source(source)
    _check_envelope(raw, origin)

    info = raw.get("info") or {}
    schemas = (raw.get("components") or {}).get("schemas") or {}
    inline: Dict[str, Any] = {}
    methods: List[MethodDescriptor] = []
    for entry in raw["methods"]:
        name = entry["name"]
        params = entry.get("params") or []
        methods.append(
            MethodDescriptor(
                name=name,
                params_schema=_schema_ref(params[0], f"{name}.params", inline) if params else None,
                result_schema=_schema_ref(entry.get("result"), f"{name}.result", inline),
                summary=str(entry.get("summary", "")),
            )
        )

    doc = SchemaDocument(
        title=str(info.get("title", "")),
        version=str(info.get("version", "")),
        schemas=MappingProxyType(dict(schemas)),
        methods=tuple(methods),
        source=origin,
        inline=MappingProxyType(inline),
    )
    log.debug(
        "loaded schema document %s: %d methods, %d schemas, %d inline",
        origin or "<memory>", len(doc.methods), len(schemas), len(inline),
    )
    return doc


@lru_cache(maxsize=1)
def bundled_document() -> SchemaDocument:
    """The NEAR JSON-RPC document shipped with the package."""
    return load_document(BUNDLED_PATH)


__all__ = [
    "BUNDLED_PATH",
    "MethodDescriptor",
    "SchemaDocument",
    "load_document",
    "bundled_document",
]
