from __future__ import annotations

import json

import pytest
import yaml

from near_rpc.errors import SchemaDocumentError
from near_rpc.schema.document import BUNDLED_PATH, bundled_document, load_document
from near_rpc.schema.model import ArrayDef, ObjectDef, Primitive

from rpc_helpers import MINI_DOC


def test_load_from_mapping(mini_doc):
    assert mini_doc.title == "mini"
    assert mini_doc.method_names == ("echo", "EXPERIMENTAL_echo", "height", "ping", "sum")
    echo = mini_doc.method("echo")
    assert (echo.params_schema, echo.result_schema) == ("EchoRequest", "EchoResponse")
    height = mini_doc.method("height")
    assert height.params_schema is None and height.result_schema == "Height"
    assert mini_doc.method("nope") is None


def test_inline_method_schemas_get_synthetic_names(mini_doc):
    s = mini_doc.method("sum")
    assert (s.params_schema, s.result_schema) == ("sum.params", "sum.result")
    graph = mini_doc.graph()
    assert graph["sum.params"] == ArrayDef(Primitive("integer"))
    assert graph["sum.result"] == Primitive("integer")
    assert isinstance(graph["EchoRequest"], ObjectDef)


def test_graph_is_built_once_and_read_only(mini_doc):
    g = mini_doc.graph()
    assert mini_doc.graph() is g
    with pytest.raises(TypeError):
        g["Extra"] = Primitive("string")  # type: ignore[index]


def test_load_from_json_string_and_files(tmp_path):
    from_text = load_document(json.dumps(MINI_DOC))
    assert from_text.method_names[0] == "echo"
    assert from_text.source is None

    json_path = tmp_path / "doc.json"
    json_path.write_text(json.dumps(MINI_DOC), encoding="utf-8")
    from_json = load_document(json_path)
    assert from_json.source == str(json_path)

    yaml_path = tmp_path / "doc.yaml"
    yaml_path.write_text(yaml.safe_dump(MINI_DOC), encoding="utf-8")
    from_yaml = load_document(str(yaml_path))
    assert from_yaml.method_names == from_json.method_names
    assert from_yaml.graph()["Height"] == from_json.graph()["Height"]


def test_mapping_source_is_copied():
    raw = json.loads(json.dumps(MINI_DOC))
    doc = load_document(raw)
    raw["components"]["schemas"]["Height"]["type"] = "string"
    assert doc.graph()["Height"].type == "integer"


@pytest.mark.parametrize(
    "raw, fragment",
    [
        ({"openrpc": "1.3.2"}, "methods"),
        ({"methods": {"echo": {}}}, "methods"),
        ({"methods": [{"summary": "no name"}]}, "name"),
        ({"methods": [{"name": ""}]}, "methods/0/name"),
    ],
)
def test_envelope_shape_is_checked(raw, fragment):
    with pytest.raises(SchemaDocumentError) as ei:
        load_document(raw)
    assert fragment in str(ei.value)


def test_unreadable_and_unparseable_sources(tmp_path):
    with pytest.raises(SchemaDocumentError) as ei:
        load_document(tmp_path / "missing.json")
    assert ei.value.source == str(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(SchemaDocumentError):
        load_document(broken)

    with pytest.raises(SchemaDocumentError):
        load_document('{"methods": [')


def test_bundled_document():
    doc = bundled_document()
    assert doc is bundled_document()
    assert doc.source == str(BUNDLED_PATH)
    assert len(doc.methods) == 33
    assert "status" in doc.method_names
    assert doc.method("block").params_schema == "RpcBlockRequest"
    assert doc.method("broadcast_tx_async").result_schema == "CryptoHash"
    assert not doc.inline
