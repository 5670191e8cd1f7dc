from __future__ import annotations

import pytest

from near_rpc.config import DEFAULT_TIMEOUT, MAINNET_URL, TESTNET_URL, ClientConfig
from near_rpc.version import __version__


def test_defaults():
    cfg = ClientConfig()
    assert cfg.url == MAINNET_URL
    assert cfg.timeout == DEFAULT_TIMEOUT
    assert cfg.validate_responses is True
    assert cfg.validate_requests is False
    assert cfg.headers["Content-Type"] == "application/json"
    assert __version__ in cfg.headers["User-Agent"]


def test_headers_are_merged_and_read_only():
    cfg = ClientConfig(headers={"X-Api-Key": "k"})
    assert cfg.headers["X-Api-Key"] == "k"
    assert cfg.headers["Accept"] == "application/json"
    with pytest.raises(TypeError):
        cfg.headers["X-Other"] = "v"  # type: ignore[index]


@pytest.mark.parametrize("kwargs", [{"url": "ftp://x"}, {"url": "rpc.mainnet.near.org"}, {"timeout": 0}, {"timeout": -1}])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ClientConfig(**kwargs)


def test_from_env(monkeypatch):
    monkeypatch.setenv("NEAR_RPC_URL", TESTNET_URL)
    monkeypatch.setenv("NEAR_RPC_TIMEOUT", "2.5")
    monkeypatch.setenv("NEAR_RPC_VALIDATE_RESPONSES", "off")
    monkeypatch.setenv("NEAR_RPC_VALIDATE_REQUESTS", "yes")
    monkeypatch.setenv("NEAR_RPC_HEADERS", '{"Authorization": "Bearer t"}')

    cfg = ClientConfig.from_env()
    assert cfg.url == TESTNET_URL
    assert cfg.timeout == 2.5
    assert cfg.validate_responses is False
    assert cfg.validate_requests is True
    assert cfg.headers["Authorization"] == "Bearer t"


def test_from_env_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("NEAR_RPC_URL", TESTNET_URL)
    cfg = ClientConfig.from_env(url="http://localhost:3030", timeout=None)
    assert cfg.url == "http://localhost:3030"
    assert cfg.timeout == DEFAULT_TIMEOUT


def test_from_env_defaults(monkeypatch):
    for name in ("URL", "TIMEOUT", "VALIDATE_RESPONSES", "VALIDATE_REQUESTS", "HEADERS"):
        monkeypatch.delenv(f"NEAR_RPC_{name}", raising=False)
    cfg = ClientConfig.from_env()
    assert cfg.url == MAINNET_URL
    assert cfg.validate_responses is True


@pytest.mark.parametrize("name, value", [("HEADERS", "not json"), ("HEADERS", "[1]"), ("VALIDATE_RESPONSES", "maybe")])
def test_from_env_rejects_bad_values(monkeypatch, name, value):
    monkeypatch.setenv(f"NEAR_RPC_{name}", value)
    with pytest.raises(ValueError):
        ClientConfig.from_env()


def test_with_overrides():
    base = ClientConfig(headers={"A": "1"})
    cfg = base.with_overrides(timeout=5, headers={"B": "2"}, validate_responses=None)
    assert cfg.timeout == 5.0
    assert cfg.headers["A"] == "1" and cfg.headers["B"] == "2"
    assert cfg.validate_responses is True
    assert base.timeout == DEFAULT_TIMEOUT
    with pytest.raises(TypeError):
        base.with_overrides(bogus=1)


def test_to_dict():
    d = ClientConfig(url="http://localhost:3030", timeout=3).to_dict()
    assert d["url"] == "http://localhost:3030"
    assert d["timeout"] == 3.0
    assert isinstance(d["headers"], dict)
