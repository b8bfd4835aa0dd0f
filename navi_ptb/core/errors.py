# /navi_ptb/core/errors.py
# Exception taxonomy for the transaction-block composer.
# Invariant violations are caller bugs and are never retried; only
# AggregationQueryFailure is safe to retry (the aggregation is read-only).

from typing import Any, Dict, Optional


class PTBError(Exception):
    """Base exception for everything raised by the composer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(PTBError):
    """A required global reference (package, storage, oracle...) is unresolved."""

    pass


class UnresolvedReference(PTBError):
    """A symbolic pool / funds-pool identifier is not in the static tables."""

    def __init__(self, message: str, identifier: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.identifier = identifier


class DoubleConsumption(PTBError):
    """A value handle was consumed more than once."""

    def __init__(self, message: str, handle_id: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.handle_id = handle_id


class UnpairedReceipt(PTBError):
    """A flash-loan receipt was never repaid, or was repaid against the wrong pool/type."""

    pass


class SplitExceedsValue(PTBError):
    """Split amounts add up to more than the known value of the source coin."""

    pass


class AggregationQueryFailure(PTBError):
    """One of the parallel reward queries failed; the whole aggregation fails."""

    def __init__(
        self,
        message: str,
        asset_id: Optional[int] = None,
        option: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.asset_id = asset_id
        self.option = option
