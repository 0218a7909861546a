"""Unit tests for deletion plan models."""

from rdprune.models.plan import DeletionSet, RewriteResult, RewriteStatus
from rdprune.rewrite.quoting import quote_acl_path, quote_metadata_path


class TestDeletionSet:
    """Tests for DeletionSet construction and membership."""

    def test_of_sorts_and_deduplicates(self) -> None:
        """of() canonicalizes its input."""
        ds = DeletionSet.of(["b", "a", "b"], ["z"])
        assert ds.names == ("a", "b")
        assert ds.subtrees == ("z",)
        assert len(ds) == 3
        assert list(ds) == ["a", "b", "z"]

    def test_subtree_root_not_repeated_as_name(self) -> None:
        """A name that is also a subtree root is stored once, as subtree."""
        ds = DeletionSet.of(["d", "f"], ["d"])
        assert ds.names == ("f",)
        assert ds.subtrees == ("d",)

    def test_membership(self) -> None:
        """Names match exactly, subtrees match their descendants."""
        ds = DeletionSet.of(["a/b"], ["c"])
        assert "a/b" in ds
        assert "a/b/x" not in ds
        assert "a" not in ds
        assert "c" in ds
        assert "c/d/e" in ds
        assert "cc" not in ds
        assert 1 not in ds

    def test_empty(self) -> None:
        """An empty set is falsy."""
        assert not DeletionSet.of([])

    def test_serialize_round_trip_with_odd_names(self) -> None:
        """Names with newlines and undecodable bytes survive serialization."""
        odd = b"caf\xe9".decode("utf-8", "surrogateescape")
        ds = DeletionSet.of(["a\nb", odd], ["dir with space"])

        data = ds.serialize()

        assert data.count(b"\0") == 3
        assert b"caf\xe9" in data
        assert DeletionSet.deserialize(data) == ds

    def test_serialize_is_canonical(self) -> None:
        """Equal sets serialize identically whatever their input order."""
        assert DeletionSet.of(["b", "a"]).serialize() == DeletionSet.of(["a", "b"]).serialize()


class TestEscapedNames:
    """Tests for projecting the set into record grammars."""

    def test_metadata_quoting(self) -> None:
        """Metadata records compare against backslash-quoted names."""
        escaped = DeletionSet.of(["a\nb"]).escaped(quote_metadata_path)
        assert "a\\nb" in escaped
        assert "a\nb" not in escaped

    def test_acl_quoting_with_subtree(self) -> None:
        """Quoted descendants of a quoted subtree still match."""
        escaped = DeletionSet.of([], ["d=1"]).escaped(quote_acl_path)
        assert "d\\0751" in escaped
        assert "d\\0751/x" in escaped
        assert "d=1" not in escaped


class TestRewriteResult:
    """Tests for RewriteResult."""

    def test_changed(self) -> None:
        assert RewriteResult(RewriteStatus.CHANGED, "", removed=1).changed
        assert not RewriteResult(RewriteStatus.UNCHANGED, "x").changed
