"""Unit tests for physical removal."""

from archive_builder import TS1, ArchiveBuilder
from rdprune.archive.layout import ArchiveLayout
from rdprune.archive.scanner import TreeScanner
from rdprune.archive.walker import LocalTreeWalker
from rdprune.commit.remover import ArchiveRemover, RemovalPlan, RemovalStage
from rdprune.matching.pattern import PathMatcher, RecursionMode
from rdprune.models.plan import DeletionSet


def _plan(
    builder: ArchiveBuilder, patterns: list[str], mode: RecursionMode, ds: DeletionSet
) -> RemovalPlan:
    layout = ArchiveLayout(builder.root)
    scan = TreeScanner(layout, PathMatcher.compile(patterns, mode), LocalTreeWalker()).scan()
    return RemovalPlan.from_scan(layout, scan, ds)


class TestRemovalPlan:
    """Tests for selecting paths to remove."""

    def test_only_names_in_set(self, builder: ArchiveBuilder) -> None:
        """Scanned paths of excluded names are not selected."""
        builder.mirror_file("a/b")
        builder.mirror_file("a/c")
        builder.increment("a/b", TS1, "snapshot")
        builder.increment("a/c", TS1, "snapshot")

        plan = _plan(builder, ["/a/*"], RecursionMode.NONE, DeletionSet.of(["a/b"]))

        assert plan.mirror_files == [builder.root / "a/b"]
        assert plan.increment_files == [builder.increments_dir / f"a/b.{TS1}.snapshot"]
        assert plan.mirror_dirs == []
        assert len(plan) == 2

    def test_stage_order(self) -> None:
        """Stages run files before directories, mirror before increments."""
        assert [stage for stage, _ in RemovalPlan().stages()] == [
            RemovalStage.MIRROR_FILES,
            RemovalStage.MIRROR_DIRS,
            RemovalStage.INCREMENT_FILES,
            RemovalStage.INCREMENT_DIRS,
        ]


class TestArchiveRemover:
    """Tests for ArchiveRemover."""

    def test_recursive_removal(self, builder: ArchiveBuilder) -> None:
        """A subtree is emptied bottom-up in both trees."""
        builder.mirror_file("cache/sub/f")
        builder.increment("cache", TS1, "dir")
        builder.increment("cache/sub/f", TS1, "snapshot", compressed=True)
        builder.mirror_file("keep")

        plan = _plan(builder, ["/cache"], RecursionMode.FULL, DeletionSet.of([], ["cache"]))
        results = ArchiveRemover().remove(plan)

        assert all(r.success for r in results)
        assert not (builder.root / "cache").exists()
        assert not (builder.increments_dir / "cache").exists()
        assert not (builder.increments_dir / f"cache.{TS1}.dir").exists()
        assert (builder.root / "keep").exists()

    def test_dry_run_touches_nothing(self, builder: ArchiveBuilder) -> None:
        """Dry-run reports every path and removes none."""
        path = builder.mirror_file("a")
        plan = RemovalPlan(mirror_files=[path])

        results = ArchiveRemover(dry_run=True).remove(plan)

        assert [r.dry_run for r in results] == [True]
        assert path.exists()

    def test_failures_are_isolated(self, builder: ArchiveBuilder) -> None:
        """A failing path does not stop the others."""
        present = builder.mirror_file("present")
        plan = RemovalPlan(mirror_files=[builder.root / "absent", present])

        results = ArchiveRemover().remove(plan)

        assert [r.success for r in results] == [False, True]
        assert "does not exist" in (results[0].error or "")
        assert not present.exists()

    def test_non_empty_directory_fails(self, builder: ArchiveBuilder) -> None:
        """Directories are only removed once empty."""
        builder.mirror_file("d/f")
        plan = RemovalPlan(mirror_dirs=[builder.root / "d"])

        results = ArchiveRemover().remove(plan)

        assert results[0].success is False
        assert (builder.root / "d" / "f").exists()
