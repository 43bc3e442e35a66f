"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from hop.models import Server
from hop.registry import Registry
from hop.storage import ConfigStore


@pytest.fixture
def runner() -> CliRunner:
    """Provide Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a servers file inside a temporary directory."""
    path = tmp_path / "config" / "servers.json"
    monkeypatch.setenv("HOP_CONFIG", str(path))
    monkeypatch.delenv("HOP_SSH", raising=False)
    return path


@pytest.fixture
def store(config_path: Path) -> ConfigStore:
    return ConfigStore(config_path)


@pytest.fixture
def sample_servers_data() -> list[dict]:
    """Provide sample server data for tests."""
    return [
        {
            "name": "prod-db",
            "alias": "db1",
            "user": "forge",
            "host": "192.168.1.20",
            "port": 22,
        },
        {
            "name": "staging",
            "alias": None,
            "user": "deploy",
            "host": "staging.example.com",
            "port": 2222,
        },
        {
            "name": "web-1",
            "alias": "w1",
            "user": "root",
            "host": "10.0.0.5",
            "port": 22,
        },
    ]


@pytest.fixture
def servers_json_file(config_path: Path, sample_servers_data: list[dict]) -> Path:
    """Create servers.json file with sample data."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "version": 1,
        "servers": sample_servers_data,
    }
    config_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return config_path


@pytest.fixture
def registry(sample_servers_data: list[dict]) -> Registry:
    """In-memory registry with no store attached."""
    return Registry(Server.model_validate(item) for item in sample_servers_data)
