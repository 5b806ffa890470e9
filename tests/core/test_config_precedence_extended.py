# ==============================
# Config Precedence Tests
# ==============================
from __future__ import annotations

import textwrap

import pytest

from curae.config.loader import load_settings


def _write_yaml(path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(body), encoding="utf-8")


def _base_configs(root):
    _write_yaml(root / "configs" / "app.yaml", """\
    app:
      env: stage
      paths:
        storage_dir: storage
    """)
    _write_yaml(root / "configs" / "engine.yaml", """\
    store:
      backend: memory
    ranking:
      candidate_multiplier: 4
      routine_categories: [cleanser, serum]
    chat:
      marketplace_name: Config Market
    """)
    _write_yaml(root / "configs" / "logging.yaml", "logging:\n  level: WARNING\n")


def test_defaults_without_config_files(tmp_path):
    settings = load_settings(repo_root=str(tmp_path), env={})
    assert settings.store.backend == "sqlite"
    assert settings.store.snapshot_key == "curae_vector_store"
    assert settings.store.snapshot_version == "1.0"
    assert settings.ranking.similarity_weight == 0.6
    assert settings.ranking.attribute_weight == 0.4
    assert settings.ranking.candidate_multiplier == 3
    assert settings.chat.default_limit == 4
    assert settings.repo_root_path() == tmp_path.resolve()


def test_config_precedence(tmp_path):
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    _base_configs(repo_root)

    settings = load_settings(repo_root=str(repo_root), env={})
    assert settings.app.env == "stage"
    assert settings.store.backend == "memory"
    assert settings.ranking.candidate_multiplier == 4
    assert settings.ranking.routine_categories == ["cleanser", "serum"]
    assert settings.chat.marketplace_name == "Config Market"
    assert settings.logging.level == "WARNING"

    env = {
        "CURAE__RANKING__CANDIDATE_MULTIPLIER": "5",
        "CURAE__RANKING__SURVEY_WEIGHT": "0.8",
        "CURAE__LOGGING__CONSOLE": "false",
        "UNRELATED": "x",
    }
    overridden = load_settings(repo_root=str(repo_root), env=env)
    assert overridden.ranking.candidate_multiplier == 5
    assert overridden.ranking.survey_weight == 0.8
    assert overridden.logging.console is False
    # untouched keys keep their yaml values
    assert overridden.chat.marketplace_name == "Config Market"


def test_invalid_config_raises_value_error(tmp_path):
    repo_root = tmp_path / "repo"
    _write_yaml(repo_root / "bad_configs" / "engine.yaml", """\
    ranking:
      candidate_multiplier: not-a-number
    """)
    with pytest.raises(ValueError) as excinfo:
        load_settings(repo_root=str(repo_root), configs_dir="bad_configs", env={})
    assert "Invalid configuration" in str(excinfo.value)

    with pytest.raises(ValueError):
        load_settings(repo_root=str(repo_root), env={"CURAE__RANKING__QUERY_WEIGHT": "-1"})
