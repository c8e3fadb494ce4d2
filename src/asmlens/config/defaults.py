"""Default configuration values and paths."""

from __future__ import annotations

from pathlib import Path

CONFIG_FILE_NAMES = [
    "asmlens.yaml",
    "asmlens.yml",
    ".asmlens.yaml",
    ".asmlens.yml",
]

CONFIG_ENV_VAR = "ASMLENS_CONFIG"

CONFIG_SEARCH_PATHS = [
    Path.cwd(),
    Path.home() / ".config" / "asmlens",
    Path.home(),
]

DEFAULT_CONTEXT = 3
DEFAULT_MAX_MATCHES = 10
DEFAULT_WORKERS = 1
DEFAULT_TEXT_SIZE = 12
