"""Record stream rewriting.

This module provides the rewriters for mirror metadata, ACL and
extended attribute, and file statistics streams, plus the codec used
to read and write them.
"""

from rdprune.rewrite.aux_records import AclRecordRewriter, StatisticsRewriter
from rdprune.rewrite.codec import Compressor, GzipCompressor
from rdprune.rewrite.metadata import MetadataRewriter, parse_blocks

__all__ = [
    "AclRecordRewriter",
    "Compressor",
    "GzipCompressor",
    "MetadataRewriter",
    "StatisticsRewriter",
    "parse_blocks",
]
