"""Stream codec capability.

Metadata files may be stored gzip compressed. The engine reads and
writes them through a Compressor so tests can swap in plain files.
"""

import gzip
import zlib
from abc import ABC, abstractmethod
from pathlib import Path

from rdprune.rewrite.quoting import from_bytes, to_bytes


class Compressor(ABC):
    """Abstract base class for stream codecs."""

    @abstractmethod
    def decompress(self, data: bytes) -> bytes:
        """Return the plain content of a compressed stream."""

    @abstractmethod
    def compress(self, data: bytes) -> bytes:
        """Return the compressed form of a plain stream."""

    def read_text(self, path: Path, compressed: bool) -> str:
        """Read a (possibly compressed) file as lossless text.

        Raises:
            OSError: If the file cannot be read or decompressed.
        """
        data = path.read_bytes()
        if compressed:
            data = self.decompress(data)
        return from_bytes(data)

    def write_text(self, path: Path, text: str, compressed: bool) -> None:
        """Write lossless text, compressing it if requested."""
        data = to_bytes(text)
        if compressed:
            data = self.compress(data)
        path.write_bytes(data)


class GzipCompressor(Compressor):
    """gzip codec.

    Args:
        level: Compression level for rewritten files.
    """

    def __init__(self, level: int = 6) -> None:
        self._level = level

    def decompress(self, data: bytes) -> bytes:
        try:
            return gzip.decompress(data)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            msg = f"Corrupt gzip stream: {e}"
            raise OSError(msg) from e

    def compress(self, data: bytes) -> bytes:
        return gzip.compress(data, compresslevel=self._level, mtime=0)
