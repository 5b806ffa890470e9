# ==============================
# Integration fixtures
# ==============================
from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def curae_test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Points the sqlite snapshot and storage dir at tmp_path via CURAE__ env overrides.
    Returns the sqlite path.
    """
    repo_root = Path(__file__).resolve().parents[2]
    storage_dir = tmp_path / "storage"
    sqlite_path = tmp_path / "integration.sqlite"

    monkeypatch.setenv("CURAE__APP__PATHS__REPO_ROOT", repo_root.as_posix())
    monkeypatch.setenv("CURAE__APP__PATHS__STORAGE_DIR", storage_dir.as_posix())
    monkeypatch.setenv("CURAE__STORE__BACKEND", "sqlite")
    monkeypatch.setenv("CURAE__STORE__DB_PATH", sqlite_path.as_posix())
    monkeypatch.setenv("CURAE__LOGGING__CONSOLE", "false")

    return sqlite_path
