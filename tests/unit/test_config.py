"""Unit tests for configuration loading and the CLI entry point."""

import json

import pytest
from unittest.mock import AsyncMock, patch

from ez_scan import main as cli
from ez_scan.config import config_from_env, default_config, load_config, merge_config
from ez_scan.core.models import ResultColumn, ScanResult, ScanRow

ENV_VARS = [
    "EZSCAN_BACKEND_URL", "EZSCAN_API_KEY", "EZSCAN_TIMEOUT", "EZSCAN_CACHE_TTL",
    "EZSCAN_MARKET", "EZSCAN_SYMBOLS", "EZSCAN_LOG_LEVEL", "EZSCAN_LOG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    def test_defaults(self):
        config = load_config()
        assert config == default_config()
        assert config["scan"]["market"] == "india"
        assert config["symbols"]["aliases"]["c"] == "close"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("EZSCAN_BACKEND_URL", "http://localhost:8080")
        monkeypatch.setenv("EZSCAN_TIMEOUT", "12.5")
        monkeypatch.setenv("EZSCAN_CACHE_TTL", "30")
        monkeypatch.setenv("EZSCAN_MARKET", "us")
        monkeypatch.setenv("EZSCAN_LOG_LEVEL", "debug")

        config = load_config()

        assert config["backend"]["url"] == "http://localhost:8080"
        assert config["backend"]["timeout"] == 12.5
        assert config["backend"]["path"] == "/scan"
        assert config["executor"] == {"timeout": 12.5, "cache_ttl": 30.0}
        assert config["scan"]["market"] == "us"
        assert config["logging"]["level"] == "DEBUG"

    def test_symbol_overrides_merge_with_defaults(self, monkeypatch):
        monkeypatch.setenv("EZSCAN_SYMBOLS", "c=last_price, vw=vwap")
        aliases = config_from_env()["symbols"]["aliases"]
        assert aliases["c"] == "last_price"
        assert aliases["vw"] == "vwap"
        assert aliases["o"] == "open"

    def test_empty_env_gives_empty_overrides(self):
        assert config_from_env() == {}

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("EZSCAN_MARKET", "us")
        config = load_config({"scan": {"market": "uk"}, "extra": 1})
        assert config["scan"]["market"] == "uk"
        assert config["extra"] == 1

    def test_merge_is_one_level_deep(self):
        base = {"backend": {"url": None, "path": "/scan"}}
        merged = merge_config(base, {"backend": {"url": "http://x"}})
        assert merged["backend"] == {"url": "http://x", "path": "/scan"}


class TestMain:
    @pytest.mark.asyncio
    async def test_usage(self):
        assert await cli.main([]) == 2

    @pytest.mark.asyncio
    async def test_missing_backend_url(self, tmp_path):
        path = tmp_path / "scan.json"
        path.write_text(json.dumps({"columns": []}))
        assert await cli.main([str(path)]) == 2

    @pytest.mark.asyncio
    async def test_bad_state_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EZSCAN_BACKEND_URL", "http://localhost:8080")
        path = tmp_path / "scan.json"
        path.write_text("{not json")
        assert await cli.main([str(path)]) == 2

    @pytest.mark.asyncio
    async def test_runs_scan(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("EZSCAN_BACKEND_URL", "http://localhost:8080")
        monkeypatch.setenv("EZSCAN_MARKET", "us")
        path = tmp_path / "scan.json"
        path.write_text(json.dumps({
            "columns": [{"id": "chg", "name": "Change", "type": "computed", "expression": "c - prv(c)"}],
        }))

        with patch("ez_scan.main.ScanExecutor.execute", new_callable=AsyncMock) as execute, \
                patch("ez_scan.main.HttpEvaluationBackend.close", new_callable=AsyncMock):
            execute.return_value = ScanResult(
                market="us",
                columns=[ResultColumn(id="chg", name="Change", type="computed")],
                rows=[ScanRow(ticker="TCS", values={"chg": 1.2345})],
            )
            code = await cli.main([str(path)])

        assert code == 0
        state = execute.await_args.args[0]
        assert state.market == "us"
        out = capsys.readouterr().out
        assert "TCS" in out
        assert "1.23" in out

    def test_read_state_keeps_explicit_market(self, tmp_path):
        path = tmp_path / "scan.json"
        path.write_text(json.dumps({"market": "india"}))
        assert cli.read_state(path, "us").market == "india"
