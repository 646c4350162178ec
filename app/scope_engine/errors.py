"""Failures crossing the store ports."""

from __future__ import annotations


class ScopeEngineError(Exception):
    """Base class for scope engine failures."""


class TransientFetchError(ScopeEngineError):
    """The remote store could not be read; the next pass will try again."""


class PersistenceFailure(ScopeEngineError):
    """A write to the remote store did not go through."""
