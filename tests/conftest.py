from __future__ import annotations

import pytest

from near_rpc.config import ClientConfig
from near_rpc.registry import registry_from_document
from near_rpc.schema.document import load_document

from rpc_helpers import MINI_DOC, URL


@pytest.fixture()
def mini_doc():
    return load_document(MINI_DOC)


@pytest.fixture()
def mini_registry(mini_doc):
    return registry_from_document(mini_doc)


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(url=URL, timeout=2.0)
