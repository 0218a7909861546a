"""Core infrastructure: errors, configuration, paths and run history."""
