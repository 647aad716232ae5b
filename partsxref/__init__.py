"""
Top-level package for the parts cross-reference resolver.

This package contains modules for normalising raw parts exports into a
snapshot file, reading records from the parts store, building the
cross-reference link graph, resolving identifier families, ranking fuzzy
matches and serving the search API.  There are no side-effects on import
and each module can be executed as a script for ad-hoc debugging.
"""
