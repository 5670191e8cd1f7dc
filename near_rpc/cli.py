"""
near_rpc.cli
============

`near-rpc`: inspect the method registry, call a NEAR node, check values offline
and generate type declarations.

Examples
--------
    $ near-rpc methods
    $ near-rpc call status
    $ near-rpc --url https://rpc.testnet.near.org call block --params '{"finality": "final"}'
    $ near-rpc validate RpcGasPriceResponse '{"gas_price": "100000000"}'
    $ near-rpc codegen --out near_types.py

Configuration
-------------
- RPC URL   : `--url` or env `NEAR_RPC_URL` (default: mainnet)
- Timeout   : `--timeout` or env `NEAR_RPC_TIMEOUT` seconds
- Log level : `--log-level` or env `NEAR_RPC_LOG_LEVEL` (default: WARNING)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, NoReturn, Optional

import typer

from .client import NearRpcClient
from .codegen import write_module
from .config import ClientConfig
from .errors import NearRpcError, RpcFailure
from .registry import default_registry, registry_from_document
from .schema.compiler import compile_schema
from .schema.document import bundled_document, load_document
from .schema.resolver import resolve_one
from .version import __version__

log = logging.getLogger(__name__)

app = typer.Typer(
    name="near-rpc",
    help="Typed NEAR JSON-RPC client: list methods, call a node, validate values.",
    no_args_is_help=True,
    add_completion=False,
)

__all__ = ["app", "main"]


@dataclass
class Ctx:
    url: Optional[str]
    timeout: Optional[float]
    schema: Optional[Path]


def _print_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _parse_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"{what} is not valid JSON: {e}") from e


def _fail(err: Exception) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=1)


def _document(schema: Optional[Path]):
    return load_document(schema) if schema is not None else bundled_document()


@app.callback()
def _root(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, "--url", help="Node RPC URL.", envvar="NEAR_RPC_URL"),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-call timeout in seconds.", envvar="NEAR_RPC_TIMEOUT"
    ),
    schema: Optional[Path] = typer.Option(
        None, "--schema", help="OpenRPC document to use instead of the bundled one."
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Logging level.", envvar="NEAR_RPC_LOG_LEVEL"
    ),
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = Ctx(url=url, timeout=timeout, schema=schema)


@app.command("version")
def version() -> None:
    """Print the package version."""
    typer.echo(f"near-rpc {__version__}")


@app.command("methods")
def methods(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print as JSON."),
) -> None:
    """List every registered method with its request and result schemas."""
    c: Ctx = ctx.obj
    try:
        registry = registry_from_document(_document(c.schema)) if c.schema else default_registry()
    except NearRpcError as e:
        _fail(e)

    rows = []
    for name in registry.names:
        b = registry[name]
        rows.append(
            {
                "method": name,
                "request": b.request_schema,
                "result": b.result_schema,
                "shares_binding_with": [n for n in b.names if n != name],
            }
        )
    if as_json:
        _print_json(rows)
        return
    for r in rows:
        shared = f"  (= {', '.join(r['shares_binding_with'])})" if r["shares_binding_with"] else ""
        typer.echo(f"{r['method']:<40} {r['request'] or '-'} -> {r['result'] or '-'}{shared}")


@app.command("call")
def call(
    ctx: typer.Context,
    method: str = typer.Argument(..., help="RPC method name, e.g. status or block."),
    params: Optional[str] = typer.Option(None, "--params", "-p", help="Params as a JSON object."),
    no_validate: bool = typer.Option(False, "--no-validate", help="Skip response validation."),
    validate_request: bool = typer.Option(
        False, "--validate-request", help="Check params against the request schema before sending."
    ),
) -> None:
    """Call METHOD and print the JSON result."""
    c: Ctx = ctx.obj
    value = _parse_json(params, "--params") if params is not None else None
    try:
        config = ClientConfig.from_env(
            url=c.url,
            timeout=c.timeout,
            validate_responses=False if no_validate else None,
            validate_requests=True if validate_request else None,
        )
        registry = registry_from_document(_document(c.schema)) if c.schema else None
    except (ValueError, NearRpcError) as e:
        _fail(e)

    async def _run() -> Any:
        async with NearRpcClient(config, registry=registry) as client:
            return await client.call(method, value)

    try:
        result = asyncio.run(_run())
    except RpcFailure as e:
        log.debug("call failed", exc_info=True)
        _fail(e)
    _print_json(result)


@app.command("validate")
def validate(
    ctx: typer.Context,
    schema_name: str = typer.Argument(..., metavar="SCHEMA", help="Schema name, e.g. RpcBlockRequest."),
    value: str = typer.Argument(..., help="JSON value, or @path to read it from a file."),
) -> None:
    """Check a JSON value against a named schema offline and print any issues."""
    c: Ctx = ctx.obj
    text = Path(value[1:]).read_text(encoding="utf-8") if value.startswith("@") else value
    data = _parse_json(text, "VALUE")
    try:
        doc = _document(c.schema)
    except NearRpcError as e:
        _fail(e)
    graph = doc.graph()
    if schema_name not in graph:
        _fail(KeyError(f"unknown schema {schema_name!r}"))

    validator = compile_schema(resolve_one(schema_name, graph), schema_name)
    issues = validator.check(data)
    if not issues:
        typer.echo(f"ok: value matches {schema_name}")
        return
    for issue in issues:
        typer.echo(str(issue))
    raise typer.Exit(code=1)


@app.command("codegen")
def codegen(
    ctx: typer.Context,
    out: Path = typer.Option(..., "--out", "-o", help="Output .py file."),
    schema: Optional[Path] = typer.Option(None, "--schema", help="OpenRPC document (default: bundled)."),
) -> None:
    """Write TypedDict/alias declarations for every schema of the document."""
    c: Ctx = ctx.obj
    try:
        path = write_module(_document(schema or c.schema), out)
    except (NearRpcError, OSError) as e:
        _fail(e)
    typer.echo(f"wrote {path}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI. Returns an integer exit code."""
    try:
        rv = app(prog_name="near-rpc", standalone_mode=False, args=argv)
        # non-standalone click returns the exit code of typer.Exit instead of raising
        return rv if isinstance(rv, int) else 0
    except typer.Exit as e:
        return int(e.exit_code)
    except Exception as e:
        typer.echo(f"error: {e}", err=True)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
