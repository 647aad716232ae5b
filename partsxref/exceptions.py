"""Errors raised by the cross-reference engine and its record stores."""


class CrossRefError(Exception):
    """Base class for every error the engine surfaces."""


class StoreUnavailable(CrossRefError):
    """The record store could not be read (connection, file or driver failure)."""


class SnapshotBuildError(CrossRefError):
    """Building a snapshot from an otherwise readable record set failed."""
