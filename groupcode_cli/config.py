"""Configuration paths and defaults for GroupCode."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("GROUPCODE_HOME", str(Path.home() / ".groupcode"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Per-workspace storage, created inside the scanned workspace root
STORE_DIR_NAME = ".groupcode"
GROUPS_FILE_NAME = "codegroups.json"
INDEX_FILE_NAME = "functionalities.json"
INDEX_VERSION = "1.0"

LANGUAGE_CONFIG_FILE = Path(__file__).parent / "languages.toml"

SKIP_DIRS = {
    "node_modules", ".git", STORE_DIR_NAME, "dist", "build", ".next", "out",
    "coverage", "venv", ".venv", "env", ".env", "bin", "obj", ".vs", ".idea",
    ".vscode", "tmp", "temp", ".cache", "__pycache__", ".tox",
    ".pytest_cache", ".mypy_cache",
}
SKIP_FILE_PATTERNS = ["*.min.js", "*.min.css", "*.map", ".DS_Store"]


def ensure_base_dirs() -> None:
    """Create the user-level config directory if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
