"""Path proximity between fragments and the active file.

Proximity is purely path-based: shared leading segments, directory hops
between the two files, and whether both live under the workspace root.
Directory listings (used for proximity-ranked file suggestions) are cached
per (directory, recursive) until ``clear_cache()``.
"""

from __future__ import annotations

import math
import os
import posixpath
import threading
from dataclasses import dataclass

import structlog

from coderank.config.models import SearchConfig
from coderank.contextual.models import (
    NearbyFile,
    ProximityInfo,
    ScoredPath,
    clamp,
    normalize_path,
)
from coderank.core.errors import ContextualRetrievalError
from coderank.core.excludes import is_prunable

log = structlog.get_logger(__name__)

NEUTRAL_SCORE = 0.5
SPATIAL_FLOOR = 0.1
SPATIAL_CEILING = 1.0

# Directories listed eagerly by warm_cache(), relative to the workspace root
_COMMON_DIRS: tuple[str, ...] = (".", "src", "lib", "components", "utils")


def _segments(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _common_prefix_length(a: list[str], b: list[str]) -> int:
    shared = 0
    for left, right in zip(a, b, strict=False):
        if left != right:
            break
        shared += 1
    return shared


@dataclass(frozen=True, slots=True)
class DirectoryCacheStats:
    entries: int
    directories: list[str]


class DirectoryCache:
    """Directory listings keyed by (normalized directory, recursive)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, bool], list[str]] = {}

    def get(self, directory: str, recursive: bool) -> list[str] | None:
        with self._lock:
            return self._entries.get((directory, recursive))

    def put(self, directory: str, recursive: bool, files: list[str]) -> None:
        with self._lock:
            self._entries[(directory, recursive)] = files

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> DirectoryCacheStats:
        with self._lock:
            keys = list(self._entries)
        return DirectoryCacheStats(
            entries=len(keys),
            directories=[f"{d}:{'recursive' if r else 'flat'}" for d, r in keys],
        )


class SpatialAnalyzer:
    """Scores fragments by how close their file is to the active file."""

    def __init__(
        self,
        workspace_root: str | None = None,
        cache: DirectoryCache | None = None,
    ) -> None:
        self._workspace_root = normalize_path(workspace_root) if workspace_root else None
        self._cache = cache if cache is not None else DirectoryCache()

    @property
    def workspace_root(self) -> str | None:
        return self._workspace_root

    # ---------------------------------------------------------------
    # Scoring
    # ---------------------------------------------------------------

    def score(
        self,
        fragment_path: str,
        active_file_path: str | None,
        config: SearchConfig,
    ) -> float:
        """Proximity score in [0.1, 1.0]; 0.5 when there is no active file."""
        if not active_file_path:
            return NEUTRAL_SCORE

        if normalize_path(fragment_path) == normalize_path(active_file_path):
            return SPATIAL_CEILING

        proximity = self.proximity(fragment_path, active_file_path)
        if proximity.is_same_directory:
            return min(SPATIAL_CEILING, 0.8 + config.same_directory_bonus * 0.2)

        max_distance = config.max_spatial_distance
        normalized_distance = min(proximity.distance, max_distance) / max_distance
        distance_score = math.exp(-2 * normalized_distance)
        shared_path_bonus = proximity.shared_path_depth * 0.1
        project_bonus = 0.2 if proximity.is_same_project else 0.0
        return clamp(
            distance_score + shared_path_bonus + project_bonus,
            SPATIAL_FLOOR,
            SPATIAL_CEILING,
        )

    def proximity(self, path_a: str, path_b: str) -> ProximityInfo:
        """Path relationship between two files.

        ``distance`` counts directory hops from A's directory up to the
        common ancestor plus hops down to B's directory.
        """
        norm_a = normalize_path(path_a)
        norm_b = normalize_path(path_b)
        parts_a = _segments(norm_a)
        parts_b = _segments(norm_b)

        if norm_a == norm_b:
            return ProximityInfo(
                file_path=norm_a,
                distance=0,
                is_same_directory=True,
                is_same_project=True,
                shared_path_depth=max(0, len(parts_a) - 1),
            )

        shared = _common_prefix_length(parts_a, parts_b)
        # Last segment is the file name, so it never counts as a hop
        steps_up = max(0, len(parts_a) - shared - 1)
        steps_down = max(0, len(parts_b) - shared - 1)

        return ProximityInfo(
            file_path=norm_a,
            distance=steps_up + steps_down,
            is_same_directory=posixpath.dirname(norm_a) == posixpath.dirname(norm_b),
            is_same_project=self.is_in_workspace(norm_a) and self.is_in_workspace(norm_b),
            shared_path_depth=shared,
        )

    def is_in_workspace(self, file_path: str) -> bool:
        if not self._workspace_root:
            return False
        root = _segments(self._workspace_root)
        parts = _segments(normalize_path(file_path))
        return len(parts) > len(root) and parts[: len(root)] == root

    # ---------------------------------------------------------------
    # Directory listings
    # ---------------------------------------------------------------

    def get_files_in_directory(self, directory: str, recursive: bool = False) -> list[str]:
        """Files in directory (optionally recursive), cached until clear_cache()."""
        normalized = normalize_path(directory)
        cached = self._cache.get(normalized, recursive)
        if cached is not None:
            return cached

        try:
            files = self._list_recursive(normalized) if recursive else self._list_flat(normalized)
        except OSError as e:
            raise ContextualRetrievalError.wrap(
                "get_files_in_directory",
                f"Failed to list files in directory {directory}",
                e,
            ) from e

        self._cache.put(normalized, recursive, files)
        return files

    @staticmethod
    def _list_flat(directory: str) -> list[str]:
        with os.scandir(directory) as it:
            return sorted(
                normalize_path(entry.path) for entry in it if entry.is_file(follow_symlinks=False)
            )

    @staticmethod
    def _list_recursive(directory: str) -> list[str]:
        if not os.path.isdir(directory):
            raise NotADirectoryError(directory)
        files: list[str] = []
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames[:] = sorted(d for d in dirnames if not is_prunable(d))
            files.extend(normalize_path(os.path.join(dirpath, name)) for name in sorted(filenames))
        return files

    def get_sibling_files(self, file_path: str) -> list[str]:
        """Other files in the same directory as file_path."""
        normalized = normalize_path(file_path)
        files = self.get_files_in_directory(posixpath.dirname(normalized))
        return [f for f in files if f != normalized]

    def get_nearby_files(self, file_path: str, max_depth: int = 2) -> list[NearbyFile]:
        """Files in file_path's directory and up to max_depth parents.

        Distance is the number of levels walked up. Unreadable directories
        are skipped.
        """
        nearby: list[NearbyFile] = []
        current = posixpath.dirname(normalize_path(file_path))
        for depth in range(max_depth + 1):
            try:
                files = self.get_files_in_directory(current)
            except ContextualRetrievalError:
                log.debug("spatial.nearby_dir_skipped", directory=current)
                files = []
            nearby.extend(NearbyFile(path=f, distance=depth) for f in files)

            parent = posixpath.dirname(current)
            if parent == current:
                break
            current = parent
        return nearby

    def get_all_workspace_files(self) -> list[str]:
        if not self._workspace_root:
            return []
        return self.get_files_in_directory(self._workspace_root, recursive=True)

    def get_relevant_files_by_proximity(
        self,
        active_file_path: str,
        config: SearchConfig,
        max_results: int = 10,
    ) -> list[ScoredPath]:
        """Workspace files ranked by proximity to the active file."""
        active = normalize_path(active_file_path)
        scored: list[ScoredPath] = []
        for path in self.get_all_workspace_files():
            if path == active:
                continue
            score = self.score(path, active, config)
            if score > SPATIAL_FLOOR:
                scored.append(ScoredPath(path=path, score=score))
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:max_results]

    def warm_cache(self) -> int:
        """Pre-list common top-level directories. Returns how many were listed."""
        if not self._workspace_root:
            return 0
        warmed = 0
        for relative in _COMMON_DIRS:
            directory = posixpath.join(self._workspace_root, relative)
            if not os.path.isdir(directory):
                continue
            try:
                self.get_files_in_directory(directory)
            except ContextualRetrievalError as e:
                log.warning("spatial.warm_cache_failed", directory=directory, error=str(e))
                continue
            warmed += 1
        return warmed

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> DirectoryCacheStats:
        return self._cache.stats()
