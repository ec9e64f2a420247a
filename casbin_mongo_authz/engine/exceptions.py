"""Errors raised by the MongoDB policy adapter.

Errors coming from the MongoDB driver itself are not wrapped; only integrity
problems detected by the adapter use these types.
"""


class PolicyAdapterError(Exception):
    """Base class for integrity errors raised by the policy adapter."""


class FilteredPolicySaveError(PolicyAdapterError, RuntimeError):
    """Raised when saving the whole policy after a filtered load."""

    def __init__(self, message: str = "cannot save a filtered policy"):
        super().__init__(message)


class DuplicatePolicyError(PolicyAdapterError, ValueError):
    """Raised when inserting a rule that is already stored."""
