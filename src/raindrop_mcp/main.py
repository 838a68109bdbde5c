import asyncio
import json
import logging
from enum import Enum
from typing import Any, Optional

import toon_format as toon
import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .api import RaindropAPI, RaindropError
from .config import Config, ConfigError, Settings, delete_config, load_settings, require_token, save_config
from .content import dump
from .server import RaindropRegistry
from .tools import TOOLS, ToolError
from .transports import run_http, run_stdio

app = typer.Typer(help="raindrop-mcp: Model Context Protocol server for Raindrop.io")
console = Console()
err_console = Console(stderr=True)


class OutputFormat(str, Enum):
    json = "json"
    toon = "toon"


class State:
    log_level: Optional[str] = None
    output_format: OutputFormat = OutputFormat.toon


state = State()


def configure_logging(level: str) -> None:
    """Log to stderr; stdout belongs to the stdio protocol stream."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # RaindropAPI logs its own calls at DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)


def output_data(data: Any):
    """Helper to output data in the selected format."""
    if state.output_format == OutputFormat.toon:
        print(toon.encode(data))
    else:
        print(json.dumps(data, indent=2))


def fail(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


def get_settings() -> Settings:
    try:
        settings = load_settings()
    except ValidationError as e:
        fail(f"Invalid configuration: {e}")
    configure_logging(state.log_level or settings.log_level)
    return settings


def get_token(settings: Settings) -> str:
    try:
        return require_token(settings)
    except ConfigError as e:
        fail(str(e))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    format: OutputFormat = typer.Option(
        OutputFormat.toon, "--format", "-f", help="Output format: toon (default, highest token efficiency) or json."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, ...)."),
):
    """
    raindrop-mcp: expose Raindrop.io to AI assistants over MCP.

    Without a sub-command the server speaks MCP over stdio.
    """
    state.output_format = format
    state.log_level = log_level
    if ctx.invoked_subcommand is None:
        stdio()


@app.command()
def stdio():
    """
    Serve MCP over stdin/stdout (for desktop assistants).

    Example: raindrop-mcp stdio
    """
    settings = get_settings()
    get_token(settings)
    run_stdio(settings)


@app.command()
def http(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HOST or 127.0.0.1)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: PORT or 3002)."),
    json_response: Optional[bool] = typer.Option(
        None, "--json-response/--sse-response", help="Answer streamable HTTP requests with JSON bodies."
    ),
):
    """
    Serve MCP over streamable HTTP (/mcp) and legacy SSE (/sse).

    Example: raindrop-mcp http --port 3002
    """
    settings = _override(get_settings(), host, port, json_response)
    get_token(settings)
    run_http(settings)


@app.command()
def sse(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HOST or 127.0.0.1)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: PORT or 3002)."),
):
    """
    Serve MCP over the legacy SSE transport only.

    Example: raindrop-mcp sse --port 3001
    """
    settings = _override(get_settings(), host, port, None)
    get_token(settings)
    run_http(settings, streamable=False)


def _override(settings: Settings, host: Optional[str], port: Optional[int], json_response: Optional[bool]) -> Settings:
    updates = {}
    if host is not None:
        updates["host"] = host
    if port is not None:
        updates["port"] = port
    if json_response is not None:
        updates["json_response"] = json_response
    return settings.model_copy(update=updates) if updates else settings


@app.command()
def login(token: str = typer.Option(..., prompt="Enter your Raindrop.io API Token", hide_input=True)):
    """
    Login with your Raindrop.io API token (verifies before saving).

    Example: raindrop-mcp login
    """

    async def verify():
        async with RaindropAPI(token) as api:
            return await api.get_user()

    rprint("Verifying token...")
    try:
        user = asyncio.run(verify())
    except RaindropError as e:
        fail(f"Token verification failed: {e}")
    save_config(Config(token=token))
    rprint(f"[bold green]Success![/bold green] Logged in as [bold]{user.display_name}[/bold].")


@app.command()
def logout():
    """
    Remove your stored credentials.

    Example: raindrop-mcp logout
    """
    delete_config()
    rprint("[bold yellow]Logged out.[/bold yellow] Credentials removed.")


@app.command()
def tools(pretty: bool = typer.Option(False, "--pretty", "-p", help="Display the catalogue as a table.")):
    """
    List the tools this server exposes.

    Example: raindrop-mcp tools --pretty
    """
    if pretty:
        table = Table(title=f"raindrop-mcp {__version__} tools")
        table.add_column("Tool", style="cyan")
        table.add_column("Category", style="green")
        table.add_column("Description", style="white")
        for spec in TOOLS.values():
            table.add_row(spec.name, spec.category, spec.description)
        console.print(table)
        return

    output_data(
        {
            "tools": [
                {
                    "name": spec.name,
                    "category": spec.category,
                    "readOnly": spec.read_only,
                    "description": spec.description,
                }
                for spec in TOOLS.values()
            ]
        }
    )


@app.command()
def call(
    tool: str = typer.Argument(..., help="Tool name, e.g. bookmark_search"),
    arguments: str = typer.Argument("{}", help="Tool arguments as a JSON object"),
):
    """
    Run a single tool locally and print its content blocks.

    Example: raindrop-mcp call bookmark_search '{"query": "python", "perPage": 5}'
    """
    try:
        args = json.loads(arguments)
    except json.JSONDecodeError:
        print(json.dumps({
            "error": "Invalid JSON input provided to command.",
            "status": 400,
            "hint": "Ensure your JSON data is valid and properly escaped for the shell.",
        }))
        raise typer.Exit(code=1)

    settings = get_settings()
    token = get_token(settings)

    async def run():
        async with RaindropAPI(token) as api:
            registry = RaindropRegistry(api)
            try:
                return await registry.call_tool(tool, args)
            finally:
                await registry.close()

    try:
        blocks = asyncio.run(run())
    except ToolError as e:
        print(json.dumps({"error": str(e), "hint": e.hint, "suggestions": e.suggestions or None}, indent=2))
        raise typer.Exit(code=1)

    output_data({"content": dump(blocks)})


if __name__ == "__main__":
    app()
