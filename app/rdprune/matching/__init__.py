"""Path pattern compilation and matching."""

from rdprune.matching.pattern import PathMatcher, PathPattern, RecursionMode, parse_pattern

__all__ = ["PathMatcher", "PathPattern", "RecursionMode", "parse_pattern"]
