"""Unit tests for path quoting and the gzip codec."""

import gzip
from pathlib import Path

import pytest
from rdprune.rewrite.codec import GzipCompressor
from rdprune.rewrite.quoting import (
    display_name,
    quote_acl_path,
    quote_metadata_path,
    unquote_metadata_path,
)


class TestMetadataQuoting:
    """Tests for backslash quoting."""

    def test_quote(self) -> None:
        assert quote_metadata_path("a\\b\nc") == "a\\\\b\\nc"

    def test_unquote(self) -> None:
        assert unquote_metadata_path("a\\\\b\\nc") == "a\\b\nc"

    def test_unquote_leaves_unknown_escapes(self) -> None:
        """Unknown escapes and a trailing backslash pass through."""
        assert unquote_metadata_path("a\\tb\\") == "a\\tb\\"

    def test_display_name_is_single_line(self) -> None:
        assert "\n" not in display_name("two\nlines")


class TestAclQuoting:
    """Tests for octal quoting."""

    def test_printable_untouched(self) -> None:
        assert quote_acl_path("home/user/file.txt") == "home/user/file.txt"

    def test_reserved_and_control_bytes(self) -> None:
        """Space, tab, backslash and '=' are octal-escaped."""
        assert quote_acl_path("a b\t=\\") == "a\\040b\\011\\075\\134"

    def test_non_ascii_bytes(self) -> None:
        """Multi-byte and undecodable characters are escaped byte by byte."""
        assert quote_acl_path("é") == "\\303\\251"
        odd = b"\xff".decode("utf-8", "surrogateescape")
        assert quote_acl_path(odd) == "\\377"


class TestGzipCompressor:
    """Tests for GzipCompressor."""

    def test_write_and_read(self, tmp_path: Path) -> None:
        """Text survives a compressed write and read, including odd bytes."""
        codec = GzipCompressor()
        path = tmp_path / "m.gz"
        text = "File caf" + b"\xe9".decode("utf-8", "surrogateescape") + "\n"

        codec.write_text(path, text, compressed=True)

        assert gzip.decompress(path.read_bytes()) == b"File caf\xe9\n"
        assert codec.read_text(path, compressed=True) == text

    def test_output_is_deterministic(self) -> None:
        """Compressing the same data twice gives identical bytes."""
        codec = GzipCompressor()
        assert codec.compress(b"abc") == codec.compress(b"abc")

    def test_plain_files(self, tmp_path: Path) -> None:
        """Uncompressed files are read and written as they are."""
        codec = GzipCompressor()
        path = tmp_path / "m"
        codec.write_text(path, "x\n", compressed=False)
        assert path.read_bytes() == b"x\n"

    def test_corrupt_stream(self, tmp_path: Path) -> None:
        """Corrupt gzip data raises OSError."""
        path = tmp_path / "bad.gz"
        path.write_bytes(b"not gzip")
        with pytest.raises(OSError, match="Corrupt gzip"):
            GzipCompressor().read_text(path, compressed=True)

    def test_corrupt_deflate_body(self) -> None:
        """A valid header over a damaged body raises OSError too."""
        data = bytearray(gzip.compress(b"File a\n" * 200))
        for i in range(12, len(data) - 8):
            data[i] ^= 0xFF
        with pytest.raises(OSError, match="Corrupt gzip"):
            GzipCompressor().decompress(bytes(data))
