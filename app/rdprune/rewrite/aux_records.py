"""ACL, extended attribute and file statistics rewriting.

access_control_lists and extended_attributes files are sequences of
blocks opened by a "# file: <path>" marker. file_statistics files hold
one record per path ending in four fields that are integers or "NA",
separated by newlines or, for archives written with a null separator,
by NUL characters.
"""

import logging
import re

from rdprune.core.errors import MalformedStream
from rdprune.models.plan import DeletionSet, RewriteResult, RewriteStatus
from rdprune.rewrite.metadata import split_records
from rdprune.rewrite.quoting import quote_acl_path, quote_metadata_path

logger = logging.getLogger(__name__)

MARKER_PREFIX = "# file: "

_STAT_FIELD_RE = re.compile(r"^(?:\d+|NA)$")


class AclRecordRewriter:
    """Removes deleted paths from ACL and extended attribute files.

    Args:
        deletion_set: Names to remove.
    """

    def __init__(self, deletion_set: DeletionSet) -> None:
        self._deleted = deletion_set.escaped(quote_acl_path)

    def rewrite(self, text: str) -> RewriteResult:
        """Drop every block whose marker names a deleted path.

        Lines before the first marker are kept as they are.
        """
        output: list[str] = []
        dropping = False
        removed = 0

        for line in split_records(text):
            content = line.rstrip("\n")
            if content.startswith(MARKER_PREFIX):
                dropping = content[len(MARKER_PREFIX) :] in self._deleted
                if dropping:
                    removed += 1
            if not dropping:
                output.append(line)

        if removed == 0:
            return RewriteResult(status=RewriteStatus.UNCHANGED, content=text)
        return RewriteResult(status=RewriteStatus.CHANGED, content="".join(output), removed=removed)


def detect_separator(text: str) -> str:
    """Record separator of a statistics file: NUL if the file has any, else newline."""
    return "\0" if "\0" in text else "\n"


def split_statistics_record(record: str) -> tuple[str, tuple[str, ...]] | None:
    """Split a statistics record into its quoted path and trailing fields.

    Returns:
        (path, fields), or None if the record does not end in four fields.
    """
    parts = record.rsplit(" ", 4)
    if len(parts) != 5 or not parts[0]:
        return None
    fields = tuple(parts[1:])
    if not all(_STAT_FIELD_RE.match(f) for f in fields):
        return None
    return parts[0], fields


class StatisticsRewriter:
    """Removes deleted paths from file_statistics files.

    Args:
        deletion_set: Names to remove.
    """

    def __init__(self, deletion_set: DeletionSet) -> None:
        self._deleted = deletion_set.escaped(quote_metadata_path)

    def rewrite(self, text: str) -> RewriteResult:
        """Drop every record whose path is deleted.

        Comment records (starting with "#") and empty records pass through.

        Raises:
            MalformedStream: On a record without the four trailing fields.
        """
        separator = detect_separator(text)
        output: list[str] = []
        removed = 0

        for number, record in enumerate(split_records(text, separator), start=1):
            content = record[:-1] if record.endswith(separator) else record
            if not content or content.startswith("#"):
                output.append(record)
                continue

            parsed = split_statistics_record(content)
            if parsed is None:
                raise MalformedStream(f"Unexpected statistics record {content[:60]!r}", number)
            if parsed[0] in self._deleted:
                removed += 1
                continue
            output.append(record)

        if removed == 0:
            return RewriteResult(status=RewriteStatus.UNCHANGED, content=text)
        logger.debug("Dropped %d statistics record(s)", removed)
        return RewriteResult(status=RewriteStatus.CHANGED, content="".join(output), removed=removed)
