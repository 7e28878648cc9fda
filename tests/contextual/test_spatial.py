"""Tests for contextual/spatial.py - path proximity scoring."""

from __future__ import annotations

import math
from pathlib import Path

import pytest

from coderank.config.models import SearchConfig
from coderank.contextual.spatial import (
    NEUTRAL_SCORE,
    SPATIAL_CEILING,
    SPATIAL_FLOOR,
    SpatialAnalyzer,
)
from coderank.core.errors import ContextualRetrievalError


def _posix(path: Path) -> str:
    return str(path).replace("\\", "/")


class TestSpatialScore:
    """Proximity score rules."""

    def test_no_active_file_is_neutral(self, config: SearchConfig) -> None:
        """Without an active file every fragment scores 0.5."""
        analyzer = SpatialAnalyzer()
        assert analyzer.score("/ws/src/a.ts", None, config) == NEUTRAL_SCORE
        assert analyzer.score("/ws/src/a.ts", "", config) == NEUTRAL_SCORE

    def test_identical_path_scores_ceiling(self, config: SearchConfig) -> None:
        """A fragment in the active file always gets 1.0."""
        analyzer = SpatialAnalyzer("/ws")
        assert analyzer.score("/ws/src/a.ts", "/ws/src/a.ts", config) == SPATIAL_CEILING
        assert analyzer.score("/ws/src/./a.ts", "/ws/src/a.ts", config) == SPATIAL_CEILING

    def test_same_directory(self, config: SearchConfig) -> None:
        """Siblings score 0.8 + same_directory_bonus * 0.2, below the file itself."""
        analyzer = SpatialAnalyzer("/ws")
        score = analyzer.score("/ws/src/b.ts", "/ws/src/a.ts", config)
        assert score == pytest.approx(0.84)
        assert score < SPATIAL_CEILING

    def test_distance_formula(self, config: SearchConfig) -> None:
        """Distance, shared depth and project bonus combine as documented."""
        # Given - /ws/src/x/b.ts vs /ws/src/y/a.ts: one hop up, one hop down
        analyzer = SpatialAnalyzer()

        # When
        score = analyzer.score("/ws/src/x/b.ts", "/ws/src/y/a.ts", config)

        # Then - exp(-2*2/10) + 2 shared * 0.1, no workspace so no project bonus
        expected = math.exp(-0.4) + 0.2
        assert score == pytest.approx(expected)

    def test_outside_workspace_gets_no_project_bonus(self, config: SearchConfig) -> None:
        """Files outside the workspace lose the 0.2 project bonus."""
        inside = SpatialAnalyzer("/ws")
        outside = SpatialAnalyzer("/elsewhere")

        a = inside.score("/ws/lib/deep/b.ts", "/ws/src/a.ts", config)
        b = outside.score("/ws/lib/deep/b.ts", "/ws/src/a.ts", config)

        assert a == pytest.approx(b + 0.2)

    def test_far_apart_stays_above_floor(self, config: SearchConfig) -> None:
        """Distant files stay inside the score bounds."""
        analyzer = SpatialAnalyzer()
        score = analyzer.score(
            "/a/b/c/d/e/f/g/h/i/j/k/l/x.ts", "/z/y/w/v/u/t/s/r/q/p/o/n/m.ts", config
        )
        assert SPATIAL_FLOOR <= score <= SPATIAL_CEILING

    def test_closer_scores_higher(self, config: SearchConfig) -> None:
        """Fewer directory hops means a higher score."""
        analyzer = SpatialAnalyzer("/ws")
        active = "/ws/src/feature/a.ts"
        near = analyzer.score("/ws/src/other/b.ts", active, config)
        far = analyzer.score("/ws/test/unit/deep/c.ts", active, config)
        assert near > far


class TestProximity:
    """ProximityInfo computation."""

    def test_hops_and_shared_depth(self) -> None:
        """Hops count moves up and down the tree."""
        info = SpatialAnalyzer("/ws").proximity("/ws/src/x/b.ts", "/ws/lib/a.ts")

        assert info.distance == 3  # up x, up src, down lib
        assert info.shared_path_depth == 1
        assert not info.is_same_directory
        assert info.is_same_project

    def test_same_directory_flag(self) -> None:
        """Siblings are zero hops apart."""
        info = SpatialAnalyzer().proximity("/ws/src/b.ts", "/ws/src/a.ts")
        assert info.is_same_directory
        assert info.distance == 0

    def test_workspace_match_is_segment_wise(self) -> None:
        """/ws2 is not inside /ws even though the string starts with it."""
        analyzer = SpatialAnalyzer("/ws")
        assert analyzer.is_in_workspace("/ws/src/a.ts")
        assert not analyzer.is_in_workspace("/ws2/src/a.ts")

    def test_no_workspace_root_never_same_project(self) -> None:
        """Without a workspace root nothing is in the project."""
        assert not SpatialAnalyzer().is_in_workspace("/ws/a.ts")


class TestDirectoryListings:
    """Directory listings and the cache."""

    @pytest.fixture
    def workspace(self, tmp_path: Path) -> Path:
        (tmp_path / "src" / "feature").mkdir(parents=True)
        (tmp_path / "src" / "feature" / "a.ts").write_text("a")
        (tmp_path / "src" / "feature" / "b.ts").write_text("b")
        (tmp_path / "src" / "index.ts").write_text("i")
        (tmp_path / "README.md").write_text("r")
        (tmp_path / "node_modules" / "dep").mkdir(parents=True)
        (tmp_path / "node_modules" / "dep" / "x.js").write_text("x")
        return tmp_path

    def test_flat_listing(self, workspace: Path) -> None:
        """Non-recursive listings hold direct children only."""
        files = SpatialAnalyzer().get_files_in_directory(_posix(workspace / "src"))
        assert files == [_posix(workspace / "src" / "index.ts")]

    def test_recursive_listing_prunes(self, workspace: Path) -> None:
        """Recursive listings skip dependency directories."""
        files = SpatialAnalyzer().get_files_in_directory(_posix(workspace), recursive=True)

        assert _posix(workspace / "src" / "feature" / "a.ts") in files
        assert not any("node_modules" in f for f in files)
        assert len(files) == 4

    def test_listing_is_cached_until_cleared(self, workspace: Path) -> None:
        """New files appear only after the cache is cleared."""
        analyzer = SpatialAnalyzer()
        directory = _posix(workspace / "src")
        analyzer.get_files_in_directory(directory)

        (workspace / "src" / "new.ts").write_text("n")
        assert len(analyzer.get_files_in_directory(directory)) == 1

        analyzer.clear_cache()
        assert len(analyzer.get_files_in_directory(directory)) == 2

    def test_cache_stats_count_flat_and_recursive(self, workspace: Path) -> None:
        """Flat and recursive listings are cached separately."""
        analyzer = SpatialAnalyzer()
        analyzer.get_files_in_directory(_posix(workspace / "src"))
        analyzer.get_files_in_directory(_posix(workspace / "src"), recursive=True)

        stats = analyzer.get_cache_stats()

        assert stats.entries == 2
        assert any(d.endswith(":recursive") for d in stats.directories)

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        """Listing a missing directory is a retrieval error."""
        with pytest.raises(ContextualRetrievalError) as exc_info:
            SpatialAnalyzer().get_files_in_directory(_posix(tmp_path / "missing"))
        assert exc_info.value.operation == "get_files_in_directory"

    def test_sibling_files_exclude_active(self, workspace: Path) -> None:
        """Siblings exclude the active file itself."""
        active = _posix(workspace / "src" / "feature" / "a.ts")
        assert SpatialAnalyzer().get_sibling_files(active) == [
            _posix(workspace / "src" / "feature" / "b.ts")
        ]

    def test_nearby_files_walk_up(self, workspace: Path) -> None:
        """Nearby files carry their distance in parent levels."""
        active = _posix(workspace / "src" / "feature" / "a.ts")

        nearby = SpatialAnalyzer().get_nearby_files(active, max_depth=2)
        by_path = {n.path: n.distance for n in nearby}

        assert by_path[_posix(workspace / "src" / "feature" / "b.ts")] == 0
        assert by_path[_posix(workspace / "src" / "index.ts")] == 1
        assert by_path[_posix(workspace / "README.md")] == 2

    def test_relevant_files_by_proximity(self, workspace: Path, config: SearchConfig) -> None:
        """Workspace files are ranked by spatial score."""
        analyzer = SpatialAnalyzer(_posix(workspace))
        active = _posix(workspace / "src" / "feature" / "a.ts")

        ranked = analyzer.get_relevant_files_by_proximity(active, config, max_results=2)

        assert len(ranked) == 2
        assert all(r.path != active for r in ranked)
        assert ranked[0].score >= ranked[1].score
        assert all(r.score > 0.1 for r in ranked)

    def test_warm_cache_lists_directories(self, workspace: Path) -> None:
        """Warming caches one listing per directory."""
        analyzer = SpatialAnalyzer(_posix(workspace))

        warmed = analyzer.warm_cache()

        # root and src exist; lib, components, utils do not
        assert warmed == 2
        assert analyzer.get_cache_stats().entries == 2

    def test_warm_cache_without_root(self) -> None:
        """Nothing to warm without a workspace root."""
        assert SpatialAnalyzer().warm_cache() == 0
