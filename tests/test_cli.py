# File: tests/test_cli.py
"""Тесты для CLI (`adstxt_manager/cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `optimize`, `sellers`, `fetch`, `refresh`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json
import logging
import types
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

import adstxt_manager.cli as cli_module
from adstxt_manager.cli import cli
from adstxt_manager.errors import InvalidContentError
from adstxt_manager.models import CachedResource, CacheStatus, ResourceType
from adstxt_manager.optimizer import OptimizationResult
from adstxt_manager.orchestrator import OperationResult

OPTIMIZED = "# Advertising System Records\ngoogle.com, pub-1, DIRECT\n"


@pytest.fixture(autouse=True)
def reset_project_logger():
    """CLI перенастраивает логгер проекта; возвращаем его в исходное состояние."""
    yield
    lg = logging.getLogger("AdsTxtManager")
    lg.handlers.clear()
    lg.propagate = True
    lg.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def patch_start_optimize(monkeypatch):
    """Патчим start_optimize, чтобы не ходить в сеть."""
    calls = []

    async def fake_optimize(cfg, content, publisher_domain, level):
        calls.append((content, publisher_domain, level))
        if not content.strip():
            raise InvalidContentError("ads.txt content is empty")
        return OptimizationResult(
            optimized_content=OPTIMIZED,
            original_length=len(content),
            optimized_length=len(OPTIMIZED),
            optimization_level=level,
            categories={"other": 1, "confidential": 0, "missing_seller_id": 0, "no_seller_json": 0},
        )

    monkeypatch.setattr(cli_module, "start_optimize", fake_optimize)
    return calls


@pytest.fixture()
def ads_file(tmp_path):
    path = tmp_path / "ads.txt"
    path.write_text("google.com, pub-1, DIRECT\ngoogle.com, pub-1, DIRECT\n", encoding="utf-8")
    return path


@pytest.fixture()
def cfg_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"db_path": str(tmp_path / "cli.sqlite"), "concurrency_limit": 3}),
        encoding="utf-8",
    )
    return path


def test_cli_module_is_patchable():
    assert isinstance(cli_module, types.ModuleType)
    assert cli_module.cli is cli


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "AdsTxtManager" in result.output


def test_show_config(cfg_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["concurrency_limit"] == 3
    assert data["db_path"] == str(tmp_path / "cli.sqlite")


def test_db_option_overrides_config(cfg_file, tmp_path):
    runner = CliRunner()
    other = tmp_path / "other.sqlite"
    result = runner.invoke(cli, ["--config", str(cfg_file), "--db", str(other), "config"])
    assert result.exit_code == 0
    assert json.loads(result.output)["db_path"] == str(other)


def test_bad_config_reports_error(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("concurrency_limit: 0\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_optimize_stdout(cfg_file, ads_file, patch_start_optimize):
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "optimize", str(ads_file), "--domain", "example.com"]
    )
    assert result.exit_code == 0
    assert result.output == OPTIMIZED
    content, domain, level = patch_start_optimize[0]
    assert content.startswith("google.com, pub-1, DIRECT")
    assert domain == "example.com"
    assert level == "level2"


def test_optimize_level1(cfg_file, ads_file, patch_start_optimize):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "optimize", str(ads_file), "--level", "level1"])
    assert result.exit_code == 0
    assert patch_start_optimize[0][2] == "level1"


def test_optimize_json_file(cfg_file, ads_file, tmp_path):
    out = tmp_path / "reports" / "out.json"
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "optimize", str(ads_file), "--json", str(out)])
    assert result.exit_code == 0
    assert "JSON report:" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["optimized_content"] == OPTIMIZED
    assert data["categories"]["other"] == 1


def test_optimize_html_file(cfg_file, ads_file, tmp_path):
    out = tmp_path / "report.html"
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "optimize", str(ads_file), "--html", str(out)])
    assert result.exit_code == 0
    assert out.exists()
    html = out.read_text(encoding="utf-8")
    assert "google.com, pub-1, DIRECT" in html
    assert "level2" in html


def test_optimize_report_failure(cfg_file, ads_file, tmp_path, monkeypatch):
    def broken(result, path):
        raise OSError("disk full")

    monkeypatch.setattr(cli_module, "render_json", broken)
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "optimize", str(ads_file), "--json", str(tmp_path / "x.json")]
    )
    assert result.exit_code == 1
    assert "disk full" in result.output


def test_optimize_empty_file(cfg_file, tmp_path):
    empty = tmp_path / "empty.txt"
    empty.write_text("   \n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "optimize", str(empty)])
    assert result.exit_code == 1
    assert "Некорректный ads.txt" in result.output


def test_optimize_timeout(cfg_file, ads_file, monkeypatch):
    async def slow(cfg, content, publisher_domain, level):
        await asyncio.sleep(2)

    monkeypatch.setattr(cli_module, "start_optimize", slow)
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "optimize", str(ads_file), "--timeout", "0.2"]
    )
    assert result.exit_code != 0
    assert "не завершена" in result.output


def test_sellers_command(cfg_file, monkeypatch):
    seen = {}

    async def fake_lookup(cfg, domain, seller_ids):
        seen["args"] = (domain, seller_ids)
        return {
            "domain": domain,
            "cache_status": "success",
            "metadata": {"seller_count": 2},
            "summary": {"total_count": 2},
            "sellers": [{"account_id": "123", "found": True, "seller": {"seller_id": "123"}}],
        }

    monkeypatch.setattr(cli_module, "start_sellers_lookup", fake_lookup)
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "sellers", "openx.com", "-s", "123", "-s", "456"]
    )
    assert result.exit_code == 0
    assert seen["args"] == ("openx.com", ["123", "456"])
    assert json.loads(result.output)["sellers"][0]["found"] is True


def test_fetch_command(cfg_file, monkeypatch):
    async def fake_fetch(cfg, resource_type, domain):
        return CachedResource(
            resource_type=resource_type,
            domain=domain,
            content=None,
            status=CacheStatus.NOT_FOUND,
            status_code=404,
            error_message="sellers.json file not found",
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            url=f"https://{domain}/sellers.json",
        )

    monkeypatch.setattr(cli_module, "start_fetch", fake_fetch)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "fetch", "sellers_json", "Gone.test"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["resource_type"] == ResourceType.SELLERS_JSON.value
    assert data["domain"] == "gone.test"
    assert data["status"] == "not_found"
    assert data["status_code"] == 404


def test_fetch_rejects_unknown_type(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "fetch", "robots_txt", "a.test"])
    assert result.exit_code != 0


def test_refresh_command(cfg_file, monkeypatch):
    seen = {}

    async def fake_refresh(cfg, resource_type, ttl, limit):
        seen["args"] = (resource_type, ttl, limit)
        record = CachedResource(
            resource_type=resource_type,
            domain="openx.com",
            content="{}",
            status=CacheStatus.SUCCESS,
            status_code=200,
            error_message=None,
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        return [
            OperationResult("openx.com", value=record),
            OperationResult("broken.test", error=RuntimeError("store locked")),
        ]

    monkeypatch.setattr(cli_module, "start_refresh", fake_refresh)
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "refresh", "sellers_json", "--limit", "5", "--max-age", "6"]
    )
    assert result.exit_code == 0
    assert seen["args"] == (ResourceType.SELLERS_JSON, timedelta(hours=6), 5)
    data = json.loads(result.output)
    assert data["processed"] == 2
    assert data["results"] == [
        {"domain": "openx.com", "status": "success", "error": None},
        {"domain": "broken.test", "status": None, "error": "store locked"},
    ]


def test_refresh_defaults_to_config_ttl(cfg_file, monkeypatch):
    seen = {}

    async def fake_refresh(cfg, resource_type, ttl, limit):
        seen["args"] = (resource_type, ttl, limit)
        return []

    monkeypatch.setattr(cli_module, "start_refresh", fake_refresh)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "refresh", "ads_txt"])
    assert result.exit_code == 0
    assert seen["args"] == (ResourceType.ADS_TXT, None, 100)
    assert json.loads(result.output)["processed"] == 0
