from __future__ import annotations


class JobbotError(Exception):
    """Base class for errors raised by the tracker."""


class ValidationError(JobbotError, ValueError):
    """Malformed input to a store call. Not retried."""


class StorageError(JobbotError):
    """The persistence layer failed; fatal to the one operation."""
