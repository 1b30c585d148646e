"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from importprune import config
from importprune.config_manager import load_config, load_path_aliases
from importprune.errors import ConfigError


def test_defaults_without_config_files(temp_dir: Path):
    """Test defaults apply when no importprune.toml or tsconfig exists."""
    cfg = load_config(temp_dir)

    assert cfg.root == temp_dir
    assert cfg.include == list(config.DEFAULT_INCLUDE)
    assert cfg.aliases == {}
    assert cfg.shared_module_guard is True
    assert cfg.annotate_preserved is False
    assert cfg.backup_root == temp_dir / config.BACKUP_DIR_NAME


def test_tsconfig_aliases_with_comments(sample_project_path: Path):
    """Test the sample tsconfig (comments, trailing commas) yields the @/* alias."""
    cfg = load_config(sample_project_path)

    assert cfg.aliases == {"@/*": (sample_project_path / "src").resolve()}


def test_tsconfig_base_url(temp_dir: Path):
    tsconfig = {"compilerOptions": {"baseUrl": "src", "paths": {"@lib/*": ["lib/*"], "*": ["types/*"]}}}
    (temp_dir / "tsconfig.json").write_text(json.dumps(tsconfig))

    aliases = load_path_aliases(temp_dir, temp_dir / "tsconfig.json")

    assert aliases == {"@lib/*": temp_dir / "src" / "lib"}


def test_unparseable_tsconfig_yields_no_aliases(temp_dir: Path):
    (temp_dir / "tsconfig.json").write_text("{ not json")
    assert load_path_aliases(temp_dir, temp_dir / "tsconfig.json") == {}


def test_toml_overrides(temp_dir: Path):
    (temp_dir / "importprune.toml").write_text(
        "[analysis]\n"
        "workers = 2\n"
        "shared_module_guard = false\n"
        "exclude = [\"**/generated/**\"]\n"
        "\n"
        "[optimization]\n"
        "backup_dir = \"backups\"\n"
        "annotate_preserved = true\n"
        "\n"
        "[aliases]\n"
        "\"~/*\" = \"src/*\"\n"
    )

    cfg = load_config(temp_dir)

    assert cfg.workers == 2
    assert cfg.shared_module_guard is False
    assert cfg.exclude == ["**/generated/**"]
    assert cfg.annotate_preserved is True
    assert cfg.backup_root == temp_dir / "backups"
    assert cfg.aliases == {"~/*": temp_dir / "src"}


def test_invalid_toml_raises(temp_dir: Path):
    (temp_dir / "importprune.toml").write_text("[analysis\nworkers = ")

    with pytest.raises(ConfigError):
        load_config(temp_dir)


def test_missing_explicit_config_raises(temp_dir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_dir, temp_dir / "nope.toml")
