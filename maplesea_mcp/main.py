"""Command-line entry point.

``maplesea-mcp serve`` runs the MCP server on stdio (or HTTP with --port);
``maplesea-mcp health`` probes the upstream API once and prints a JSON report.
"""

import asyncio
import json
from typing import Annotated, Optional

import typer
import uvicorn

from maplesea_mcp.api.mcp_server import run_stdio
from maplesea_mcp.core.app_factory import create_app
from maplesea_mcp.core.config import settings
from maplesea_mcp.core.errors import ConfigurationAppError
from maplesea_mcp.core.logging import configure_logging
from maplesea_mcp.services.nexon_api_service import build_service

app = typer.Typer(
    name="maplesea-mcp",
    help="MapleStory SEA tools over the NEXON Open API, served via MCP (stdio) or HTTP.",
    add_completion=False,
)


@app.callback()
def main_callback(
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", envvar="NEXON_API_KEY", help="NEXON Open API key."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Verbose (DEBUG) logging."),
    ] = False,
) -> None:
    """Apply global options before any command runs."""
    if api_key:
        settings.nexon.api_key = api_key
    if debug:
        settings.app.debug = True
        settings.log.level = "DEBUG"
    configure_logging(settings.log)


def _config_error(exc: ConfigurationAppError) -> typer.Exit:
    typer.echo(json.dumps({"error": {"code": exc.code, "message": exc.message}}), err=True)
    return typer.Exit(code=2)


@app.command()
def serve(
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Serve HTTP on this port instead of MCP stdio."),
    ] = None,
    host: Annotated[str, typer.Option("--host", help="HTTP bind address.")] = "127.0.0.1",
) -> None:
    """Run the server (MCP over stdio unless --port is given)."""
    try:
        if port is None:
            asyncio.run(run_stdio(settings))
            return

        uvicorn.run(create_app(), host=host, port=port, log_config=None)
    except ConfigurationAppError as exc:
        raise _config_error(exc) from None


@app.command()
def health() -> None:
    """Probe the upstream API once; exit code 1 when unhealthy."""

    async def probe():
        service = build_service(settings)
        try:
            return await service.health_check()
        finally:
            await service.aclose()

    try:
        report = asyncio.run(probe())
    except ConfigurationAppError as exc:
        raise _config_error(exc) from None

    typer.echo(report.model_dump_json(indent=2))
    if report.status != "healthy":
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
