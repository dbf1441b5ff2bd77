"""
Exceptions

Errors raised by the replacement engine.
"""


class DRRIPError(Exception):
    """Base class for all engine errors."""


class ContractViolation(DRRIPError, ValueError):
    """
    Caller broke the engine contract.

    Raised for out-of-range sets or ways, malformed hit flags, an access
    submitted while a miss is still outstanding, and invalid geometry.
    These are programming errors; the engine never retries them.
    """


class SearchDidNotConverge(DRRIPError, RuntimeError):
    """Victim search exhausted its step bound without finding a victim."""
