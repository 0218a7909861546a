"""Archive layout, tree walking and scanning.

Submodules are imported directly (``rdprune.archive.scanner``) since the
models package depends on the layout module.
"""
