"""Mirror metadata rewriting.

A mirror_metadata stream is a sequence of blocks::

    File home/user/notes.txt
      Type reg
      Size 1024
      SHA1Digest 3a5c...
      Inode 1179657
      DeviceLoc 2049

Blocks of deleted paths are dropped. Hard-linked files share one inode
key (DeviceLoc, Inode) and only one block of the group carries the
SHA1Digest, so when that block is dropped its digest is handed to the
next surviving block with the same key.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from rdprune.core.errors import MalformedStream
from rdprune.models.plan import DeletionSet, RewriteResult, RewriteStatus
from rdprune.rewrite.quoting import quote_metadata_path

logger = logging.getLogger(__name__)

HEADER_PREFIX = "File "
CHECKSUM_ATTR = "SHA1Digest"
INODE_ATTR = "Inode"
DEVICE_ATTR = "DeviceLoc"

_ATTR_RE = re.compile(r"^  (?P<name>[A-Za-z][A-Za-z0-9]*)(?: (?P<value>.*))?$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class Attribute:
    """One attribute line of a block.

    Attributes:
        name: Attribute name, e.g. "Inode".
        value: Everything after the name ("" when absent).
        line: The original line including its terminator.
    """

    name: str
    value: str
    line: str


@dataclass(frozen=True, slots=True)
class MetadataBlock:
    """A "File" header and its attribute lines.

    Attributes:
        path: Quoted path from the header.
        header: The original header line including its terminator.
        attributes: Attribute lines in stream order.
    """

    path: str
    header: str
    attributes: tuple[Attribute, ...]

    def get(self, name: str) -> str | None:
        """Value of the first attribute called ``name``."""
        for attr in self.attributes:
            if attr.name == name:
                return attr.value
        return None

    @property
    def inode_key(self) -> tuple[str, str] | None:
        """(DeviceLoc, Inode) pair, or None if either is missing."""
        device = self.get(DEVICE_ATTR)
        inode = self.get(INODE_ATTR)
        if device is None or inode is None:
            return None
        return (device, inode)

    def render(self) -> str:
        return self.header + "".join(a.line for a in self.attributes)

    def with_checksum(self, digest: str) -> "MetadataBlock":
        """Copy of the block with a checksum inserted after its inode location."""
        position = max(
            i for i, a in enumerate(self.attributes) if a.name in (INODE_ATTR, DEVICE_ATTR)
        )
        attributes = list(self.attributes)
        anchor = attributes[position]
        terminator = ""
        if not anchor.line.endswith("\n"):
            attributes[position] = Attribute(anchor.name, anchor.value, anchor.line + "\n")
        else:
            terminator = "\n"
        injected = Attribute(CHECKSUM_ATTR, digest, f"  {CHECKSUM_ATTR} {digest}{terminator}")
        attributes.insert(position + 1, injected)
        return MetadataBlock(self.path, self.header, tuple(attributes))


def split_records(text: str, separator: str = "\n") -> Iterator[str]:
    """Split on ``separator`` only, keeping it on each record.

    str.splitlines() would also break on carriage returns and other
    characters that are legal inside filenames.
    """
    start = 0
    while start < len(text):
        end = text.find(separator, start)
        if end == -1:
            yield text[start:]
            return
        yield text[start : end + 1]
        start = end + 1


def iter_blocks(text: str) -> Iterator[MetadataBlock]:
    """Tokenize a metadata stream into blocks.

    Args:
        text: Decompressed stream content.

    Yields:
        MetadataBlock instances in stream order.

    Raises:
        MalformedStream: On attribute lines before the first header, or any
            line that is neither a header nor an attribute.
    """
    header: str | None = None
    path = ""
    attributes: list[Attribute] = []

    for line_number, line in enumerate(split_records(text), start=1):
        content = line[:-1] if line.endswith("\n") else line
        if content.startswith(HEADER_PREFIX):
            if header is not None:
                yield MetadataBlock(path, header, tuple(attributes))
            header = line
            path = content[len(HEADER_PREFIX) :]
            attributes = []
            continue

        match = _ATTR_RE.match(content)
        if match is None:
            raise MalformedStream(f"Unexpected metadata line {content[:60]!r}", line_number)
        if header is None:
            raise MalformedStream("Attribute before first File header", line_number)
        attributes.append(Attribute(match.group("name"), match.group("value") or "", line))

    if header is not None:
        yield MetadataBlock(path, header, tuple(attributes))


def parse_blocks(text: str) -> list[MetadataBlock]:
    """Parse a whole metadata stream. See iter_blocks()."""
    return list(iter_blocks(text))


class MetadataRewriter:
    """Removes deleted paths from mirror_metadata streams.

    The inode checksum table lives only for the duration of one
    rewrite() call. When several surviving hard links follow a dropped
    digest carrier, only the first of them receives the digest.

    Args:
        deletion_set: Names to remove.
    """

    def __init__(self, deletion_set: DeletionSet) -> None:
        self._deleted = deletion_set.escaped(quote_metadata_path)

    def rewrite(self, text: str) -> RewriteResult:
        """Rewrite one decompressed metadata stream.

        Returns:
            RewriteResult; UNCHANGED carries the input content untouched.

        Raises:
            MalformedStream: If the stream does not parse.
        """
        pending: dict[tuple[str, str], str] = {}
        output: list[str] = []
        removed = 0
        moved = 0

        for block in iter_blocks(text):
            key = block.inode_key
            if block.path in self._deleted:
                removed += 1
                digest = block.get(CHECKSUM_ATTR)
                if key is not None and digest is not None:
                    pending[key] = digest
                continue

            if key is not None and key in pending and block.get(CHECKSUM_ATTR) is None:
                block = block.with_checksum(pending.pop(key))
                moved += 1
                logger.debug("Moved checksum to hard link %s", block.path)
            output.append(block.render())

        if removed == 0:
            return RewriteResult(status=RewriteStatus.UNCHANGED, content=text)
        return RewriteResult(
            status=RewriteStatus.CHANGED,
            content="".join(output),
            removed=removed,
            checksums_moved=moved,
        )
