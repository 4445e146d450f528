"""Tests for the shopease CLI."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from typer.testing import CliRunner

from shopease.cache.errors import StoreUnavailable
from shopease.cache.store import InMemoryStore
from shopease.cli import app
from shopease.config import settings

runner = CliRunner()


@pytest.fixture
def memory_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "cache_backend", "memory")
    monkeypatch.setattr(settings, "cache_namespace", "shopease")
    monkeypatch.setattr(settings, "cache_ttl_overrides", {})


@pytest.mark.usefixtures("memory_backend")
class TestKeyCommand:
    """Test key preview from the command line."""

    def test_product_detail(self) -> None:
        result = runner.invoke(app, ["key", "product-detail", "-p", "id=42"])

        assert result.exit_code == 0
        assert "shopease:product:42" in result.output
        assert "ttl=1800s" in result.output

    def test_multiple_params(self) -> None:
        result = runner.invoke(
            app, ["key", "order-list", "-p", "user_id=7", "--param", "status=pending"]
        )

        assert result.exit_code == 0
        assert "shopease:orders:user:7:status:pending:p1:l20" in result.output

    def test_unknown_category(self) -> None:
        result = runner.invoke(app, ["key", "widgets"])

        assert result.exit_code == 1

    def test_malformed_param(self) -> None:
        result = runner.invoke(app, ["key", "product-detail", "-p", "id"])

        assert result.exit_code != 0


@pytest.mark.usefixtures("memory_backend")
class TestTtlCommand:
    def test_lists_every_category(self) -> None:
        result = runner.invoke(app, ["ttl"])

        assert result.exit_code == 0
        assert "payment-status" in result.output
        assert "3600" in result.output


@pytest.mark.usefixtures("memory_backend")
class TestInvalidateCommand:
    """Test invalidation from the command line."""

    def test_dry_run_prints_patterns(self) -> None:
        result = runner.invoke(app, ["invalidate", "cartChanged", "7", "--dry-run"])

        assert result.exit_code == 0
        assert "shopease:cart:7:*" in result.output
        assert "Deleted" not in result.output

    def test_dry_run_lists_order_patterns(self) -> None:
        result = runner.invoke(
            app, ["invalidate", "orderChanged", "1001", "--user-id", "7", "--dry-run"]
        )

        assert result.exit_code == 0
        assert "shopease:user:7:order:*" in result.output

    def test_process_local_backend_refused(self) -> None:
        result = runner.invoke(app, ["invalidate", "cartChanged", "7"])

        assert result.exit_code == 1
        assert "not shared" in result.output
        assert "Deleted" not in result.output

    def test_disabled_cache_refused(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "cache_enabled", False)

        result = runner.invoke(app, ["invalidate", "cartChanged", "7"])

        assert result.exit_code == 1
        assert "disabled" in result.output

    def test_missing_resource_id(self) -> None:
        result = runner.invoke(app, ["invalidate", "productChanged", "--dry-run"])

        assert result.exit_code == 1

    def test_unknown_event(self) -> None:
        result = runner.invoke(app, ["invalidate", "productExploded", "1"])

        assert result.exit_code == 1


@pytest.mark.usefixtures("memory_backend")
class TestStatsCommand:
    def test_stats(self) -> None:
        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert '"backend": "memory"' in result.output
        assert '"namespace": "shopease"' in result.output


class SharedStore(InMemoryStore):
    """In-memory stand-in for a Redis store that outlives the command."""

    backend = "redis"

    def __init__(self, failing: str | None = None) -> None:
        super().__init__()
        self.failing = failing

    async def delete_pattern(self, pattern: str) -> int:
        if self.failing and self.failing in pattern:
            raise StoreUnavailable("delete_pattern", "connection reset")
        return await super().delete_pattern(pattern)

    async def close(self) -> None:
        pass


@pytest.fixture
def shared_store(monkeypatch: pytest.MonkeyPatch) -> SharedStore:
    store = SharedStore()
    monkeypatch.setattr(settings, "cache_enabled", True)
    monkeypatch.setattr(settings, "cache_backend", "redis")
    monkeypatch.setattr(settings, "cache_namespace", "shopease")
    monkeypatch.setattr(settings, "cache_ttl_overrides", {})
    monkeypatch.setattr("shopease.cache.service.build_store", lambda config: store)
    return store


class TestInvalidateSharedStore:
    """Invalidation against a store shared with the running service."""

    def _seed(self, store: SharedStore) -> None:
        for key in ("shopease:cart:7:items", "shopease:cart:7:total", "shopease:cart:8:items"):
            asyncio.run(store.set(key, b"[]", 60))

    def test_deletes_matching_keys(self, shared_store: SharedStore) -> None:
        self._seed(shared_store)

        result = runner.invoke(app, ["invalidate", "cartChanged", "7"])

        assert result.exit_code == 0
        assert "Deleted 2 keys" in result.output
        assert shared_store.keys() == ["shopease:cart:8:items"]

    def test_failed_pattern_exits_nonzero(self, shared_store: SharedStore) -> None:
        self._seed(shared_store)
        shared_store.failing = ":cart:"

        result = runner.invoke(app, ["invalidate", "cartChanged", "7"])

        assert result.exit_code == 1
        assert "FAILED shopease:cart:7:*" in result.output
        assert "1/1 patterns not invalidated" in result.output


class TestServeCommand:
    def test_runs_uvicorn_with_settings_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict[str, Any]] = []
        monkeypatch.setattr(
            "uvicorn.run", lambda target, **kwargs: calls.append(kwargs)
        )
        monkeypatch.setattr(settings, "port", 4000)

        result = runner.invoke(app, ["serve", "--host", "127.0.0.1", "--reload"])

        assert result.exit_code == 0
        assert calls == [
            {
                "factory": True,
                "host": "127.0.0.1",
                "port": 4000,
                "reload": True,
                "log_level": "info",
            }
        ]
