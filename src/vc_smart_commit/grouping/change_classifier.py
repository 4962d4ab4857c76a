"""
Heuristics for categorizing changed files.

The categorizer maps a single file path to a coarse category tag using
only the file name, its extension, and the directories it lives in. It
is intentionally simple and deterministic so that it can be unit tested
without requiring a language model. The first matching rule wins.
"""

from __future__ import annotations

import posixpath
from typing import List


DOC_EXTENSIONS = {".md", ".txt"}
CONFIG_EXTENSIONS = {".json", ".yml", ".yaml", ".toml", ".ini", ".env"}
BUILD_FILENAMES = {"dockerfile", "makefile", "package.json", "package-lock.json"}
BUILD_DIRECTORIES = {"build", "dist", "deploy"}
SOURCE_EXTENSIONS = {".ts", ".js", ".py", ".java", ".cpp", ".c", ".go", ".rs", ".php"}
STYLE_EXTENSIONS = {".css", ".scss", ".sass", ".less", ".styl"}

# Source subcategories, checked in order against whole path segments.
SOURCE_SEGMENTS = (
    ("api", {"handler", "controller", "api"}),
    ("service", {"service", "business", "logic"}),
    ("model", {"model", "entity", "schema"}),
    ("util", {"util", "helper", "common"}),
)


def _split(file_path: str) -> List[str]:
    return file_path.replace("\\", "/").split("/")


def categorize_file(file_path: str) -> str:
    """Categorize a file into a coarse change category.

    Parameters
    ----------
    file_path : str
        Path to the changed file relative to the repository root.

    Returns
    -------
    str
        One of ``docs``, ``test``, ``config``, ``build``, ``api``,
        ``service``, ``model``, ``util``, ``feat``, ``style`` or ``misc``.
    """
    parts = _split(file_path)
    file_name = parts[-1].lower()
    _, ext = posixpath.splitext(file_name)

    # Documentation files
    if (
        "readme" in file_name
        or "changelog" in file_name
        or ext in DOC_EXTENSIONS
        or "doc" in file_name
    ):
        return "docs"

    # Test files, by name or by any directory on the way
    if any("test" in part.lower() or "spec" in part.lower() for part in parts):
        return "test"

    # Configuration files; dotfiles count as configuration
    if (
        "config" in file_name
        or "setting" in file_name
        or ext in CONFIG_EXTENSIONS
        or file_name.startswith(".")
    ):
        return "config"

    # Build/deployment files
    if (
        "docker" in file_name
        or "build" in file_name
        or file_name in BUILD_FILENAMES
        or any(part in BUILD_DIRECTORIES for part in parts)
    ):
        return "build"

    if ext in SOURCE_EXTENSIONS:
        for category, segments in SOURCE_SEGMENTS:
            if any(part in segments for part in parts):
                return category
        return "feat"

    if ext in STYLE_EXTENSIONS:
        return "style"

    return "misc"
