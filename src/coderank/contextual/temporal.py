"""Temporal analysis — recency scoring over a persisted timestamp store.

The store maps normalized file paths to last-modification times (epoch
milliseconds). The host feeds it through ``TemporalAnalyzer.notify_modified``;
nothing in here watches the file system.

Writers are serialized by the store's lock, which also covers flushes to
disk. A missing or corrupted store file yields an empty map.
"""

from __future__ import annotations

import json
import math
import os
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import structlog

from coderank.config.models import SearchConfig
from coderank.contextual.models import (
    Clock,
    TemporalInfo,
    TemporalStats,
    TimestampedFile,
    clamp,
    normalize_path,
    now_ms,
)
from coderank.core.errors import ContextualRetrievalError, PersistenceError
from coderank.core.excludes import is_prunable

log = structlog.get_logger(__name__)

TEMPORAL_FLOOR = 0.1
TEMPORAL_CEILING = 1.0
_HOUR_MS = 60 * 60 * 1000


class TimestampStore(Protocol):
    """Path → epoch-millis map owned by the temporal analyzer."""

    def get(self, path: str) -> int | None: ...

    def set(self, path: str, timestamp: int) -> None: ...

    def set_many(self, entries: Iterable[tuple[str, int]]) -> None: ...

    def remove(self, path: str) -> None: ...

    def remove_many(self, paths: Iterable[str]) -> None: ...

    def items(self) -> list[tuple[str, int]]: ...

    def recent_since(self, max_age_ms: int, now: int) -> list[str]: ...

    def __len__(self) -> int: ...


class InMemoryTimestampStore:
    """Timestamp store that lives only as long as the process."""

    def __init__(self, initial: dict[str, int] | None = None) -> None:
        self._lock = threading.Lock()
        self._timestamps: dict[str, int] = dict(initial or {})

    def get(self, path: str) -> int | None:
        return self._timestamps.get(path)

    def set(self, path: str, timestamp: int) -> None:
        with self._lock:
            self._timestamps[path] = timestamp
            self._persist_locked()

    def set_many(self, entries: Iterable[tuple[str, int]]) -> None:
        with self._lock:
            self._timestamps.update(entries)
            self._persist_locked()

    def remove(self, path: str) -> None:
        self.remove_many((path,))

    def remove_many(self, paths: Iterable[str]) -> None:
        with self._lock:
            for path in paths:
                self._timestamps.pop(path, None)
            self._persist_locked()

    def items(self) -> list[tuple[str, int]]:
        with self._lock:
            return list(self._timestamps.items())

    def recent_since(self, max_age_ms: int, now: int) -> list[str]:
        """Paths modified within max_age_ms of now, most recent first."""
        recent = [(p, ts) for p, ts in self.items() if now - ts <= max_age_ms]
        recent.sort(key=lambda item: item[1], reverse=True)
        return [p for p, _ in recent]

    def __len__(self) -> int:
        return len(self._timestamps)

    def _persist_locked(self) -> None:
        """Hook for durable subclasses. Called with the lock held."""


class JsonTimestampStore(InMemoryTimestampStore):
    """Timestamp store persisted as a JSON object of path → epoch millis.

    Writes go to a temp file that replaces the target, so a crash mid-write
    leaves the previous state intact. Read and write failures are logged and
    never raised.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        super().__init__(self._load())

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, int]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self._log_failure(PersistenceError.read_failed(str(self._path), str(e)))
            return {}
        if not isinstance(data, dict):
            self._log_failure(
                PersistenceError.read_failed(str(self._path), "expected a JSON object")
            )
            return {}

        timestamps: dict[str, int] = {}
        for key, value in data.items():
            # bool is an int subclass; a true/false entry is corruption
            if isinstance(value, bool) or not isinstance(value, int | float):
                continue
            if not math.isfinite(value):
                continue
            timestamps[str(key)] = int(value)
        log.debug("temporal.store_loaded", path=str(self._path), entries=len(timestamps))
        return timestamps

    def _persist_locked(self) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._timestamps, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            self._log_failure(PersistenceError.write_failed(str(self._path), str(e)))

    @staticmethod
    def _log_failure(error: PersistenceError) -> None:
        log.warning(
            "temporal.store_persistence_failed",
            error=error.error_name,
            **error.details,
        )


class TemporalAnalyzer:
    """Scores fragments by how recently their file was modified."""

    def __init__(self, store: TimestampStore | None = None, clock: Clock = now_ms) -> None:
        self._store: TimestampStore = store if store is not None else InMemoryTimestampStore()
        self._clock = clock

    @property
    def store(self) -> TimestampStore:
        return self._store

    def score(self, last_modified_at: int, config: SearchConfig) -> float:
        """Recency score in [0.1, 1.0].

        Files inside the recent-modification window score 1.0; files older
        than ``max_temporal_age_ms`` score 0.1 so old code stays marginally
        eligible. In between, the score decays exponentially with age.
        """
        age = self._clock() - last_modified_at
        if age < config.recent_modification_bonus_ms:
            return TEMPORAL_CEILING
        if age > config.max_temporal_age_ms:
            return TEMPORAL_FLOOR
        normalized_age = age / config.max_temporal_age_ms
        decayed = math.exp(-config.temporal_decay_factor * normalized_age)
        return clamp(decayed, TEMPORAL_FLOOR, TEMPORAL_CEILING)

    def notify_modified(self, file_path: str, timestamp: int | None = None) -> None:
        """Record that a file changed. Called by the host on change/create."""
        path = normalize_path(file_path)
        self._store.set(path, timestamp if timestamp is not None else self._clock())
        log.debug("temporal.file_modified", path=path)

    def get_temporal_info(self, file_path: str, config: SearchConfig) -> TemporalInfo:
        """Recency details for one file. Unknown files count as epoch 0."""
        last_modified = self._store.get(normalize_path(file_path)) or 0
        age = self._clock() - last_modified
        return TemporalInfo(
            last_modified_at=last_modified,
            age_ms=age,
            age_score=self.score(last_modified, config),
            is_recently_modified=age < config.recent_modification_bonus_ms,
        )

    def get_recently_modified_files(self, max_age_ms: int) -> list[str]:
        """Files modified within max_age_ms, most recent first."""
        return self._store.recent_since(max_age_ms, self._clock())

    def get_files_modified_in_range(self, start: int, end: int) -> list[str]:
        """Files whose timestamp falls in [start, end], most recent first."""
        in_range = [(p, ts) for p, ts in self._store.items() if start <= ts <= end]
        in_range.sort(key=lambda item: item[1], reverse=True)
        return [p for p, _ in in_range]

    def get_temporal_stats(self) -> TemporalStats:
        entries = self._store.items()
        one_hour_ago = self._clock() - _HOUR_MS

        oldest = min(entries, key=lambda item: item[1], default=None)
        newest = max(entries, key=lambda item: item[1], default=None)
        return TemporalStats(
            total_files=len(entries),
            recent_files=sum(1 for _, ts in entries if ts > one_hour_ago),
            oldest_file=TimestampedFile(*oldest) if oldest else None,
            newest_file=TimestampedFile(*newest) if newest else None,
        )

    def cleanup_old_timestamps(self, max_age_ms: int) -> int:
        """Forget files not modified within max_age_ms. Returns count removed."""
        cutoff = self._clock() - max_age_ms
        stale = [p for p, ts in self._store.items() if ts < cutoff]
        if stale:
            self._store.remove_many(stale)
        log.info("temporal.cleanup", removed=len(stale), remaining=len(self._store))
        return len(stale)

    def refresh_directory_timestamps(self, directory: Path) -> int:
        """Record file-system mtimes for every file under directory.

        Prunable directories (VCS, dependencies, build output) are skipped,
        as are files that cannot be stat'ed. Returns the number of files
        recorded.
        """
        if not directory.is_dir():
            raise ContextualRetrievalError.wrap(
                "refresh_directory_timestamps", f"Not a directory: {directory}"
            )

        def _on_walk_error(err: OSError) -> None:
            log.warning("temporal.refresh_walk_error", path=err.filename, reason=str(err))

        entries: list[tuple[str, int]] = []
        for dirpath, dirnames, filenames in os.walk(directory, onerror=_on_walk_error):
            dirnames[:] = [d for d in dirnames if not is_prunable(d)]
            for name in filenames:
                full = os.path.join(dirpath, name)
                try:
                    mtime_ns = os.stat(full).st_mtime_ns
                except OSError:
                    continue
                entries.append((normalize_path(full), mtime_ns // 1_000_000))

        self._store.set_many(entries)
        log.info("temporal.refreshed", directory=str(directory), files=len(entries))
        return len(entries)
