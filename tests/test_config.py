# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from tasktree.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_NAME", "LOG_LEVEL", "MAX_HISTORY_SIZE", "HISTORY_DISPLAY_COUNT", "DATA_DIR", "DB_PATH"):
        monkeypatch.delenv(f"TASKTREE_{name}", raising=False)

    s = Settings.from_env()
    assert s.app_name == "tasktree"
    assert s.max_history_size == 20
    assert s.history_display_count == 10
    assert s.db_path == Path(".local/tasktree") / "tasktree.sqlite3"


def test_env_overrides_and_bad_values(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKTREE_MAX_HISTORY_SIZE", "5")
    monkeypatch.setenv("TASKTREE_HISTORY_DISPLAY_COUNT", "0")
    monkeypatch.setenv("TASKTREE_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("TASKTREE_DB_PATH", raising=False)

    s = Settings.from_env()
    assert s.max_history_size == 5
    assert s.history_display_count == 10
    assert s.db_path == tmp_path / "tasktree.sqlite3"

    monkeypatch.setenv("TASKTREE_MAX_HISTORY_SIZE", "lots")
    assert Settings.from_env().max_history_size == 20
