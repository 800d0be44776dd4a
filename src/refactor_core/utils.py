"""Shared utilities for refactor-core."""

from __future__ import annotations

from pathlib import Path


def snippet(source: str, lineno: int, max_len: int = 160) -> str:
    """Return the source line at lineno (1-based), stripped and truncated."""
    lines = source.splitlines()
    if 0 < lineno <= len(lines):
        return lines[lineno - 1].strip()[:max_len]
    return ""

# Directories to skip during source discovery
SKIP_DIRS = {
    ".git", "__pycache__", "node_modules", "venv", ".venv", "env",
    ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache", "dist",
    "build", ".eggs", ".nox", ".ipynb_checkpoints",
}

# Maximum file size to read
MAX_FILE_SIZE = 2 * 1024 * 1024  # 2 MB


def discover_python_files(root: Path) -> list[Path]:
    """Walk root for .py files, skipping ignored dirs and large files."""
    files: list[Path] = []
    for item in sorted(root.rglob("*.py")):
        if not item.is_file():
            continue
        rel_parts = item.relative_to(root).parts
        if any(part in SKIP_DIRS or part.endswith(".egg-info") for part in rel_parts):
            continue
        try:
            if item.stat().st_size > MAX_FILE_SIZE:
                continue
        except OSError:
            continue
        files.append(item)
    return files
