"""Tests for the catalog-cache command-line interface."""

from __future__ import annotations

import time
from pathlib import Path

import orjson
import pytest
from click.testing import CliRunner

from catalog_cache.cache.manager import CacheManager
from catalog_cache.cli.main import cli
from catalog_cache.core.config import CacheConfig
from catalog_cache.core.types import DataType


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CATALOG_CACHE_NAMESPACE", "CATALOG_CACHE_PATH", "CATALOG_API_URL", "CATALOG_API_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cache.sqlite3"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def seed(db_path: Path, entries, clock=time.time) -> None:
    cache = CacheManager(config=CacheConfig(storage_path=db_path, sweep_every_writes=0), clock=clock)
    try:
        for data_type, payload, params in entries:
            cache.set(data_type, payload, params)
    finally:
        cache.store.backend.close()


def three_hours_ago() -> float:
    return time.time() - 3 * 60 * 60


class TestCLI:
    """Tests for the click command group."""

    def test_help(self, runner: CliRunner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("stats", "clear", "sweep", "show", "invalidate"):
            assert command in result.output

    def test_stats(self, runner: CliRunner, db_path: Path):
        seed(db_path, [(DataType.CATEGORIES, {"success": True, "data": []}, None)])
        seed(db_path, [(DataType.SEARCH, "old", {"query": "q"})], clock=three_hours_ago)

        result = runner.invoke(cli, ["--db", str(db_path), "stats"])

        assert result.exit_code == 0
        assert "Total entries" in result.output
        assert "Health" in result.output
        assert "50%" in result.output

    def test_show(self, runner: CliRunner, db_path: Path):
        seed(db_path, [(DataType.PRODUCT_DETAIL, {"id": "42", "name": "Boot"}, {"id": "42"})])

        result = runner.invoke(cli, ["--db", str(db_path), "show", "productDetail", "-p", "id=42"])

        assert result.exit_code == 0
        assert orjson.loads(result.output) == {"id": "42", "name": "Boot"}

    def test_show_missing(self, runner: CliRunner, db_path: Path):
        result = runner.invoke(cli, ["--db", str(db_path), "show", "productDetail", "-p", "id=404"])
        assert result.exit_code == 1
        assert "No live entry" in result.output

    def test_show_bad_param(self, runner: CliRunner, db_path: Path):
        result = runner.invoke(cli, ["--db", str(db_path), "show", "productDetail", "-p", "id"])
        assert result.exit_code != 0
        assert "key=value" in result.output

    def test_show_unknown_type(self, runner: CliRunner, db_path: Path):
        result = runner.invoke(cli, ["--db", str(db_path), "show", "orders"])
        assert result.exit_code == 2

    def test_clear_type(self, runner: CliRunner, db_path: Path):
        seed(
            db_path,
            [
                (DataType.CATEGORIES, [], None),
                (DataType.PRODUCTS, [], {"query": ""}),
                (DataType.PRODUCTS, [], {"query": "page=2"}),
            ],
        )

        result = runner.invoke(cli, ["--db", str(db_path), "clear", "--type", "products"])

        assert result.exit_code == 0
        assert "Removed 2 entries" in result.output

    def test_clear_all(self, runner: CliRunner, db_path: Path):
        seed(db_path, [(DataType.CATEGORIES, [], None), (DataType.SEARCH, [], {"query": "q"})])

        result = runner.invoke(cli, ["--db", str(db_path), "clear"])

        assert "Removed 2 entries" in result.output

    def test_clear_respects_namespace(self, runner: CliRunner, db_path: Path):
        seed(db_path, [(DataType.CATEGORIES, [], None)])

        result = runner.invoke(cli, ["--db", str(db_path), "--namespace", "other_", "clear"])

        assert "Removed 0 entries" in result.output

    def test_sweep(self, runner: CliRunner, db_path: Path):
        seed(db_path, [(DataType.CATEGORIES, [], None)])
        seed(db_path, [(DataType.SEARCH, [], {"query": "q"})], clock=three_hours_ago)

        result = runner.invoke(cli, ["--db", str(db_path), "sweep"])

        assert result.exit_code == 0
        assert "Removed 1 expired entries" in result.output

    def test_invalidate_recipe(self, runner: CliRunner, db_path: Path):
        seed(
            db_path,
            [
                (DataType.PRODUCT_DETAIL, {}, {"id": "42"}),
                (DataType.PRODUCT_DETAIL, {}, {"id": "7"}),
            ],
        )

        result = runner.invoke(
            cli, ["--db", str(db_path), "invalidate", "product_mutation", "--product-id", "42"]
        )

        assert result.exit_code == 0
        assert "Removed 1 entries" in result.output

    def test_invalidate_unknown_recipe(self, runner: CliRunner, db_path: Path):
        result = runner.invoke(cli, ["--db", str(db_path), "invalidate", "everything"])
        assert result.exit_code == 2

    def test_invalid_env_config(self, runner: CliRunner, db_path: Path, monkeypatch):
        monkeypatch.setenv("CATALOG_API_TIMEOUT", "soon")
        result = runner.invoke(cli, ["--db", str(db_path), "stats"])
        assert result.exit_code == 1
        assert "Error:" in result.output
