"""Command-line interface for anycall."""

from __future__ import annotations

import json
import logging
import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from anycall import gen
from anycall.client import LineStream, invoke, resolve_method
from anycall.errors import InvocationError
from anycall.proto import SchemaRegistry, SerializationError, ServiceStub, Transport
from anycall.schema import SchemaError

schema_option = click.option(
    "--schema",
    "-s",
    "schema_file",
    required=True,
    envvar="ANYCALL_SCHEMA",
    type=click.Path(exists=True, dir_okay=False),
    help="Schema file describing the service (env: ANYCALL_SCHEMA)",
)


def _fail(error: Exception) -> NoReturn:
    Console(stderr=True, soft_wrap=True).print(f"[bold red]error:[/bold red] {escape(str(error))}")
    sys.exit(1)


def _load(schema_file: str) -> SchemaRegistry:
    try:
        return SchemaRegistry.from_file(schema_file)
    except SchemaError as e:
        _fail(e)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging")
def cli(verbose: bool) -> None:
    """Call any method of a schema-described RPC service."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True))],
    )


@cli.command()
@click.argument("host")
@click.argument("port", type=click.IntRange(1, 65535))
@click.argument("service")
@click.argument("method")
@schema_option
@click.option(
    "--timeout",
    default=1.0,
    show_default=True,
    type=click.FloatRange(min=0, min_open=True),
    envvar="ANYCALL_CONNECT_TIMEOUT",
    help="Connect timeout in seconds (env: ANYCALL_CONNECT_TIMEOUT)",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Fail instead of sending a call with a blank top-level argument",
)
def call(
    host: str, port: int, service: str, method: str, schema_file: str, timeout: float, strict: bool
) -> None:
    """Build the arguments of METHOD from stdin and call it on SERVICE at HOST:PORT.

    Each prompt reads one line, so a script of answers can be piped in.
    """
    registry = _load(schema_file)
    console = Console(soft_wrap=True)
    stdin = click.get_text_stream("stdin")
    lines = LineStream(stdin, console, echo=not stdin.isatty())

    try:
        # Unknown services, methods and parameter types fail before connecting
        resolve_method(registry, registry.service(service), method)
        with Transport(host, port, timeout).open(crc=registry.crc) as connection:
            stub = ServiceStub(connection, registry, service)
            invoke(stub, method, lines, strict=strict)
    except (InvocationError, SerializationError) as e:
        _fail(e)


@cli.command()
@schema_option
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(schema_file: str, output_json: bool) -> None:
    """Display the services and types declared in a schema."""
    registry = _load(schema_file)

    if output_json:
        print(json.dumps(registry.schema.to_dict(encode_json=True), indent=2))
    else:
        _output_plain(registry)


def _output_plain(registry: SchemaRegistry) -> None:
    """Output schema info using rich text formatting."""
    console = Console()

    for service in registry.services.values():
        console.print(f"[bold cyan]Service {escape(service.name)}[/bold cyan]")
        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        table.add_column("Method", style="white")
        table.add_column("Parameters", style="yellow")
        table.add_column("Returns", style="green")
        for method in service.methods:
            params = ", ".join(f"{p.name}: {p.type}" for p in method.params)
            returns = str(method.returns) if method.returns is not None else "void"
            table.add_row(escape(method.name), escape(params), escape(returns))
        console.print(table)
        console.print()

    console.print("[bold cyan]Types[/bold cyan]")
    types_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    types_table.add_column("Name", style="white")
    types_table.add_column("Kind", style="dim")
    types_table.add_column("Definition", style="yellow")
    for struct in registry.structs.values():
        members = ", ".join(f"{m.name}: {m.type}" for m in struct.members)
        types_table.add_row(escape(struct.name), "record", escape(members))
    for enum in registry.enums.values():
        types_table.add_row(escape(enum.name), f"enum ({enum.type.name})", " | ".join(enum.symbols))
    console.print(types_table)


@cli.command(name="gen")
@schema_option
@click.option("--output", "-o", "output_file", required=True, help="Output file")
def gen_client(schema_file: str, output_file: str) -> None:
    """Generate a typed Python client module for a schema."""
    with open(schema_file, encoding="utf-8") as f:
        text = f.read()
    try:
        generated_file = gen.render(SchemaRegistry.from_text(text).schema, text)
    except SchemaError as e:
        _fail(e)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
