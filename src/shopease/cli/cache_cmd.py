"""CLI commands for inspecting and invalidating the cache.

Usage:
    shopease key product-list -p page=2 -p category=Electronics
    shopease ttl
    shopease invalidate productChanged 42
    shopease invalidate orderChanged 1001 --user-id 7
    shopease invalidate invalidateAll
    shopease stats
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from shopease.cache.errors import ConfigurationError
from shopease.cache.invalidation import (
    InvalidationEngine,
    InvalidationEvent,
    InvalidationResult,
    resolve_kind,
)
from shopease.cache.keys import KeyBuilder
from shopease.cache.policy import TtlPolicy
from shopease.cache.service import CacheService
from shopease.cache.store import NullStore
from shopease.config import settings

# Backends whose entries live outside this process
SHARED_BACKENDS = frozenset({"redis"})


def _parse_params(pairs: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got {pair!r}")
        params[name.strip()] = value
    return params


def _key_builder() -> KeyBuilder:
    return KeyBuilder(TtlPolicy(settings.cache_ttl_overrides), namespace=settings.cache_namespace)


def key(
    category: str = typer.Argument(..., help="Resource category, e.g. product-list"),
    param: list[str] = typer.Option(
        [],
        "--param",
        "-p",
        help="Key parameter as name=value (repeatable)",
    ),
) -> None:
    """Print the cache key and TTL for a category and parameters."""
    try:
        cache_key = _key_builder().build(category, _parse_params(param))
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(cache_key.key)
    typer.echo(f"ttl={cache_key.ttl}s")


def ttl() -> None:
    """Show the TTL of every category."""
    table = Table(title="Cache TTL policy")
    table.add_column("Category")
    table.add_column("TTL (s)", justify="right")
    for category, seconds in _key_builder().policy.as_dict().items():
        table.add_row(category, str(seconds))
    Console().print(table)


def invalidate(
    event: str = typer.Argument(..., help="Event kind, e.g. productChanged or invalidateAll"),
    resource_id: str | None = typer.Argument(None, help="Identifier of the changed resource"),
    user_id: str | None = typer.Option(None, "--user-id", "-u", help="Owning user of an order"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the patterns without deleting anything"
    ),
) -> None:
    """Delete every cache entry affected by a resource change.

    Only a shared (redis) store can be invalidated from a separate process.
    Exits 1 when any pattern could not be deleted.
    """
    try:
        change = InvalidationEvent(resolve_kind(event), resource_id, user_id)
        patterns = InvalidationEngine(_key_builder(), NullStore()).patterns_for(change)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    for pattern in patterns:
        typer.echo(pattern)
    if dry_run:
        return

    if not settings.cache_enabled or settings.cache_backend not in SHARED_BACKENDS:
        backend = settings.cache_backend if settings.cache_enabled else "disabled"
        typer.echo(
            f"Error: cache backend {backend!r} is not shared with the running service, "
            "nothing to invalidate",
            err=True,
        )
        raise typer.Exit(code=1)

    result = asyncio.run(_invalidate(change))
    typer.echo(f"Deleted {result.deleted} keys")
    if not result.ok:
        for pattern in result.failed:
            typer.echo(f"FAILED {pattern}", err=True)
        typer.echo(
            f"Error: {len(result.failed)}/{len(result.patterns)} patterns not invalidated",
            err=True,
        )
        raise typer.Exit(code=1)


def stats() -> None:
    """Print store statistics and the TTL table as JSON."""
    typer.echo(json.dumps(asyncio.run(_stats()), indent=2, default=str))


async def _invalidate(change: InvalidationEvent) -> InvalidationResult:
    service = CacheService.from_settings(settings)
    try:
        return await service.invalidate_with_result(change)
    finally:
        await service.close()


async def _stats() -> dict[str, Any]:
    service = CacheService.from_settings(settings)
    try:
        return await service.stats()
    finally:
        await service.close()
