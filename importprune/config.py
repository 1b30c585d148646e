"""Default settings for import/export analysis and safe removal."""

from __future__ import annotations

import os
from typing import Dict, Set, Tuple

CONFIG_FILENAME = os.environ.get("IMPORTPRUNE_CONFIG", "importprune.toml")
TSCONFIG_FILENAME = "tsconfig.json"
BACKUP_DIR_NAME = ".backup-import-optimization"

# Grammar used for each source extension
LANGUAGE_MAP: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

# Appended to a resolved specifier, in order, when probing the file system.
PROBE_SUFFIXES: Tuple[str, ...] = (
    "",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    "/index.ts",
    "/index.tsx",
    "/index.js",
    "/index.jsx",
)

FRAMEWORK_ESSENTIALS: Tuple[str, ...] = (
    "react",
    "react-dom",
    "next",
    "next/server",
    "next/navigation",
    "next/headers",
    "@supabase/supabase-js",
    "@supabase/ssr",
)

SIDE_EFFECT_MODULES: Tuple[str, ...] = (
    "dotenv/config",
    "server-only",
    "@testing-library/jest-dom",
)

STYLESHEET_EXTENSIONS: Tuple[str, ...] = (".css", ".scss", ".sass", ".less")

DEFAULT_INCLUDE: Tuple[str, ...] = (
    "**/*.ts",
    "**/*.tsx",
    "**/*.js",
    "**/*.jsx",
)

DEFAULT_EXCLUDE: Tuple[str, ...] = (
    "**/*.d.ts",
    "**/*.test.*",
    "**/*.spec.*",
    "**/__tests__/**",
)

SKIP_DIRS: Set[str] = {
    "node_modules", ".git", ".next", ".nuxt", "dist", "build",
    "coverage", ".turbo", ".cache", "out",
    BACKUP_DIR_NAME,
}

DEFAULT_WORKERS = min(8, (os.cpu_count() or 1) + 4)
