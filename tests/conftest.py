from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ramadan_cli import cache, config


@pytest.fixture(autouse=True)
def _isolated_paths(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(cache, "CACHE_DIR", tmp_path / "cache")
    monkeypatch.setattr(cache, "CACHE_PATH", tmp_path / "cache" / "schedule_cache.json")
    monkeypatch.setattr(config, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config" / "config.json")


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root_logger = logging.getLogger()
    httpx_logger = logging.getLogger("httpx")
    handlers, level, httpx_level = list(root_logger.handlers), root_logger.level, httpx_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    httpx_logger.setLevel(httpx_level)
