"""Domain models for contextual retrieval: enums, dataclasses, clock helpers.

Single Responsibility: type definitions for fragments, scores and results.
No I/O, no scoring logic.
"""

from __future__ import annotations

import math
import posixpath
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import Any

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_path(path: str) -> str:
    """Normalize separators and dot segments so paths compare by string."""
    return posixpath.normpath(path.replace("\\", "/"))


# ===================================================================
# FragmentKind: closed set of fragment shapes
# ===================================================================


class FragmentKind(StrEnum):
    """What kind of code a fragment holds."""

    function = "function"
    class_ = "class"
    interface = "interface"
    type = "type"
    variable = "variable"
    import_ = "import"
    comment = "comment"
    block = "block"


# ===================================================================
# Fragments
# ===================================================================


@dataclass(frozen=True, slots=True)
class FragmentMetadata:
    """Metadata attached to a fragment by the chunk source."""

    last_modified_at: int
    function_name: str | None = None
    class_name: str | None = None
    imports: tuple[str, ...] = ()
    exports: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    complexity: float | None = None
    file_size: int | None = None
    lines_of_code: int | None = None


@dataclass(frozen=True, slots=True)
class CodeFragment:
    """A contiguous slice of source code. Immutable once produced."""

    id: str
    file_path: str
    start_line: int
    end_line: int
    language: str
    content: str
    kind: FragmentKind
    metadata: FragmentMetadata

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CodeFragment:
        """Build a fragment from a JSON-style mapping.

        Accepts snake_case or camelCase keys. ``kind`` may also be given as
        ``type`` or ``fragmentKind``; metadata may be nested under
        ``metadata`` or given inline.
        """
        flat = {_snake(k): v for k, v in data.items()}
        meta_src = {_snake(k): v for k, v in (flat.pop("metadata", None) or {}).items()}
        for key in _METADATA_FIELDS:
            if key in flat and key not in meta_src:
                meta_src[key] = flat.pop(key)
        if "last_modified" in meta_src and "last_modified_at" not in meta_src:
            meta_src["last_modified_at"] = meta_src.pop("last_modified")

        missing = [k for k in ("id", "file_path", "content") if k not in flat]
        if "last_modified_at" not in meta_src:
            missing.append("last_modified_at")
        if missing:
            raise ValueError(f"Fragment is missing required fields: {', '.join(missing)}")

        kind_value = flat.get("kind") or flat.get("fragment_kind") or flat.get("type") or "block"
        metadata = FragmentMetadata(
            last_modified_at=int(meta_src["last_modified_at"]),
            function_name=meta_src.get("function_name"),
            class_name=meta_src.get("class_name"),
            imports=tuple(meta_src.get("imports") or ()),
            exports=tuple(meta_src.get("exports") or ()),
            dependencies=tuple(meta_src.get("dependencies") or ()),
            complexity=meta_src.get("complexity"),
            file_size=meta_src.get("file_size"),
            lines_of_code=meta_src.get("lines_of_code"),
        )
        return cls(
            id=str(flat["id"]),
            file_path=str(flat["file_path"]),
            start_line=int(flat.get("start_line", 1)),
            end_line=int(flat.get("end_line", flat.get("start_line", 1))),
            language=str(flat.get("language", "")),
            content=str(flat["content"]),
            kind=FragmentKind(str(kind_value).lower()),
            metadata=metadata,
        )


_METADATA_FIELDS = frozenset(f.name for f in fields(FragmentMetadata)) | {"last_modified"}
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


# ===================================================================
# Scores and results
# ===================================================================

SCORE_COMPONENTS: tuple[str, ...] = ("semantic", "temporal", "spatial", "structural")


@dataclass(slots=True)
class RelevanceScores:
    """Independent component scores plus the fused ``combined`` value."""

    semantic: float
    temporal: float
    spatial: float
    structural: float
    combined: float = 0.0

    def components(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in SCORE_COMPONENTS}

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self.components().values())

    def copy(self) -> RelevanceScores:
        return RelevanceScores(
            semantic=self.semantic,
            temporal=self.temporal,
            spatial=self.spatial,
            structural=self.structural,
            combined=self.combined,
        )


@dataclass(slots=True)
class SearchResult:
    """A fragment with its scores. Lives for the duration of one search.

    ``raw_scores`` holds the component scores as analyzed, before corpus-wide
    normalization rewrote ``scores``. ``rank`` is 0 until ranking.
    ``modified_at`` is the effective last-modified time used for temporal
    scoring; when unset, the fragment's own timestamp stands in.
    """

    fragment: CodeFragment
    scores: RelevanceScores
    final_score: float
    rank: int = 0
    raw_scores: RelevanceScores | None = None
    modified_at: int | None = None

    @property
    def last_modified_at(self) -> int:
        if self.modified_at is not None:
            return self.modified_at
        return self.fragment.metadata.last_modified_at

    @property
    def semantic_for_filtering(self) -> float:
        source = self.raw_scores if self.raw_scores is not None else self.scores
        return source.semantic

    def to_dict(self) -> dict[str, Any]:
        fragment = self.fragment
        return {
            "rank": self.rank,
            "final_score": self.final_score,
            "id": fragment.id,
            "file_path": fragment.file_path,
            "start_line": fragment.start_line,
            "end_line": fragment.end_line,
            "kind": fragment.kind.value,
            "language": fragment.language,
            "function_name": fragment.metadata.function_name,
            "class_name": fragment.metadata.class_name,
            "scores": {**self.scores.components(), "combined": self.scores.combined},
        }


# ===================================================================
# Analyzer outputs
# ===================================================================


@dataclass(frozen=True, slots=True)
class ProximityInfo:
    """Path proximity between a fragment's file and the active file."""

    file_path: str
    distance: int
    is_same_directory: bool
    is_same_project: bool
    shared_path_depth: int


@dataclass(frozen=True, slots=True)
class TemporalInfo:
    """Recency details for one file."""

    last_modified_at: int
    age_ms: int
    age_score: float
    is_recently_modified: bool


@dataclass(frozen=True, slots=True)
class TimestampedFile:
    path: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class TemporalStats:
    """Aggregate view over the timestamp store."""

    total_files: int
    recent_files: int
    oldest_file: TimestampedFile | None
    newest_file: TimestampedFile | None


@dataclass(frozen=True, slots=True)
class StructuralInfo:
    """Shape of a fragment as seen by the structural analyzer."""

    kind: FragmentKind
    language: str
    complexity: float
    is_exported: bool
    is_imported: bool
    has_documentation: bool


@dataclass(frozen=True, slots=True)
class QueryStructure:
    """Structural hints extracted from a natural-language query."""

    mentioned_kinds: frozenset[FragmentKind] = field(default_factory=frozenset)
    mentioned_languages: frozenset[str] = field(default_factory=frozenset)
    mentioned_symbols: tuple[str, ...] = ()

    @property
    def is_looking_for_function(self) -> bool:
        return FragmentKind.function in self.mentioned_kinds

    @property
    def is_looking_for_class(self) -> bool:
        return FragmentKind.class_ in self.mentioned_kinds

    @property
    def is_looking_for_interface(self) -> bool:
        return FragmentKind.interface in self.mentioned_kinds


@dataclass(frozen=True, slots=True)
class ScoredPath:
    """A file path with its proximity score."""

    path: str
    score: float


@dataclass(frozen=True, slots=True)
class NearbyFile:
    """A file found while walking up from the active file's directory."""

    path: str
    distance: int
