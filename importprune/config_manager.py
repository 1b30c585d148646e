"""Project configuration for importprune using TOML files and tsconfig.json."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from . import config
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class PruneConfig:
    """Effective settings for one analysis / optimization run."""
    root: Path
    include: List[str] = field(default_factory=lambda: list(config.DEFAULT_INCLUDE))
    exclude: List[str] = field(default_factory=lambda: list(config.DEFAULT_EXCLUDE))
    framework_essentials: List[str] = field(default_factory=lambda: list(config.FRAMEWORK_ESSENTIALS))
    side_effect_modules: List[str] = field(default_factory=lambda: list(config.SIDE_EFFECT_MODULES))
    stylesheet_extensions: List[str] = field(default_factory=lambda: list(config.STYLESHEET_EXTENSIONS))
    aliases: Dict[str, Path] = field(default_factory=dict)
    shared_module_guard: bool = True
    workers: int = config.DEFAULT_WORKERS
    backup_dir: Path = Path(config.BACKUP_DIR_NAME)
    annotate_preserved: bool = False

    @property
    def backup_root(self) -> Path:
        if self.backup_dir.is_absolute():
            return self.backup_dir
        return self.root / self.backup_dir


def load_config(root: Path, config_path: Optional[Path] = None) -> PruneConfig:
    """Build the configuration for *root*.

    Reads ``importprune.toml`` from the project root (or *config_path*) when
    present, then merges path aliases from ``tsconfig.json`` with the
    ``[aliases]`` table; entries from the TOML file win.

    Raises:
        ConfigError: if the TOML file exists but cannot be parsed.
    """
    root = Path(root).resolve()
    path = config_path or root / config.CONFIG_FILENAME
    data: Dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = toml.load(f)
        except (toml.TomlDecodeError, OSError) as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
        logger.debug("Loaded configuration from %s", path)
    elif config_path is not None:
        raise ConfigError(f"Configuration file not found: {config_path}")

    analysis = data.get("analysis", {})
    optimization = data.get("optimization", {})

    cfg = PruneConfig(root=root)
    for key in ("include", "exclude", "framework_essentials",
                "side_effect_modules", "stylesheet_extensions"):
        if key in analysis:
            setattr(cfg, key, [str(v) for v in analysis[key]])
    if "shared_module_guard" in analysis:
        cfg.shared_module_guard = bool(analysis["shared_module_guard"])
    if "workers" in analysis:
        cfg.workers = max(1, int(analysis["workers"]))
    if "backup_dir" in optimization:
        cfg.backup_dir = Path(optimization["backup_dir"])
    if "annotate_preserved" in optimization:
        cfg.annotate_preserved = bool(optimization["annotate_preserved"])

    tsconfig = analysis.get("tsconfig", config.TSCONFIG_FILENAME)
    cfg.aliases = load_path_aliases(root, root / tsconfig)
    for pattern, target in data.get("aliases", {}).items():
        cfg.aliases[pattern] = _alias_target(root, str(target))

    return cfg


def load_path_aliases(root: Path, tsconfig_path: Path) -> Dict[str, Path]:
    """Read ``compilerOptions.paths`` from a tsconfig file.

    Keys keep their tsconfig form (``"@/*"``); values are absolute target
    directories with the trailing ``/*`` removed. Only the first target of
    each pattern is used. A missing or unreadable file yields no aliases.
    """
    if not tsconfig_path.exists():
        return {}

    text = tsconfig_path.read_text(encoding="utf-8", errors="ignore")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = json.loads(_strip_json_comments(text))
        except json.JSONDecodeError as exc:
            logger.warning("Failed to parse %s: %s", tsconfig_path, exc)
            return {}

    options = data.get("compilerOptions") or {}
    base = root / options.get("baseUrl", ".")
    aliases: Dict[str, Path] = {}
    for pattern, targets in (options.get("paths") or {}).items():
        if not isinstance(targets, list) or not targets:
            continue
        if pattern in ("*", ""):
            continue
        aliases[pattern] = _alias_target(base, str(targets[0]))

    logger.info("Loaded %d path aliases from %s", len(aliases), tsconfig_path.name)
    return aliases


def _alias_target(base: Path, target: str) -> Path:
    cleaned = target[:-1] if target.endswith("*") else target
    cleaned = cleaned.rstrip("/") or "."
    return (base / cleaned).resolve()


_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.S)
_LINE_COMMENT = re.compile(r"^\s*//.*$", re.M)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _strip_json_comments(text: str) -> str:
    """Make tsconfig-flavoured JSON (comments, trailing commas) parseable."""
    text = _BLOCK_COMMENT.sub("", text)
    text = _LINE_COMMENT.sub("", text)
    return _TRAILING_COMMA.sub(r"\1", text)
