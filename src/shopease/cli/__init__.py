"""CLI commands for the ShopEase cache.

Provides command-line interface using Typer:
- shopease key: Show the cache key and TTL for a category
- shopease ttl: Show the TTL policy table
- shopease invalidate: Invalidate cache entries for a resource change
- shopease stats: Show cache store statistics
- shopease serve: Run the API server

Usage:
    shopease --help
    shopease key product-search -p query=Laptop -p min_price=10
    shopease invalidate productChanged 42
    shopease serve --port 4000
"""

import typer

from shopease.cli import cache_cmd
from shopease.cli.serve import serve

# Main CLI application
app = typer.Typer(
    name="shopease",
    help="ShopEase read-through cache layer",
    no_args_is_help=True,
)

app.command("key")(cache_cmd.key)
app.command("ttl")(cache_cmd.ttl)
app.command("invalidate")(cache_cmd.invalidate)
app.command("stats")(cache_cmd.stats)
app.command("serve")(serve)


@app.callback()
def callback() -> None:
    """ShopEase read-through cache layer."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
