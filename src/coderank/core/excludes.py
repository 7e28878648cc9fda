"""Directory names skipped by workspace walks.

Used by the spatial analyzer (workspace file listings) and the temporal
analyzer (mtime refresh). Matching is on the bare directory name.

Tier 0 (HARDCODED_DIRS): VCS internals and coderank state. Always skipped.
Tier 1 (DEFAULT_PRUNABLE_DIRS): dependencies, caches, build outputs.
"""

from __future__ import annotations

HARDCODED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # coderank state
        ".coderank",
    )
)

DEFAULT_PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # JavaScript/Node.js
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        ".next",
        ".nuxt",
        ".turbo",
        # Python
        "venv",
        ".venv",
        ".virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".nox",
        ".eggs",
        "site-packages",
        ".ipynb_checkpoints",
        ".hypothesis",
        "htmlcov",
        # Rust / JVM / .NET build output
        "target",
        ".gradle",
        "obj",
        # Generic build/output directories
        "dist",
        "build",
        "coverage",
        ".nyc_output",
        # IDE/Editor directories
        ".idea",
        ".vscode",
        ".vs",
        # Misc caches
        ".cache",
    )
)

PRUNABLE_DIRS: frozenset[str] = HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS


def is_prunable(dirname: str) -> bool:
    """Check if a directory should never be descended into."""
    return dirname in PRUNABLE_DIRS
