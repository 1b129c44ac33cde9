"""Errors raised by the engine. Nothing here is fatal; callers may retry."""


class TimeAppError(Exception):
    """Base class for all engine errors"""


class ValidationFailed(TimeAppError, ValueError):
    """Input was rejected before any state was changed"""


class StoreError(TimeAppError):
    """A store operation failed; no state change was applied"""


class NotFoundError(StoreError):
    """The referenced project or entry does not exist in the store"""
