"""Error types for prop-prophet flows."""

from __future__ import annotations


class ProphetError(RuntimeError):
    """Base error for prop-prophet operations."""


class InputError(ProphetError):
    """Required external input is missing or malformed; the run aborts before persisting."""


class FeedError(ProphetError):
    """A feed could not be fetched and no cached copy exists."""


class LedgerWriteError(ProphetError):
    """Persisting the history ledger or alert log failed."""


class LedgerLockedError(ProphetError):
    """Another pipeline run holds the ledger writer lock."""


class CLIError(ProphetError):
    """User-facing CLI error."""
