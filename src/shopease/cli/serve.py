"""shopease serve: run the cache admin API under uvicorn.

Host and port default to SHOPEASE_HOST / SHOPEASE_PORT.
"""

from __future__ import annotations

import typer
import uvicorn

from shopease.config import settings


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Listen port"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Restart on code changes"),
    log_level: str = typer.Option("info", "--log-level", "-l"),
) -> None:
    """Run the ShopEase cache API server."""
    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"Serving {settings.app_name} on {bind_host}:{bind_port}")

    uvicorn.run(
        "shopease.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=log_level.lower(),
    )
