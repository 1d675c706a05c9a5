"""
Chain read exceptions for the poolscope package.

These are raised by chain state accessors when a point-in-time read cannot be completed.
"""

from typing import Any

from eth_typing import ChecksumAddress

from poolscope.exceptions.base import PoolscopeError


class ChainReadFailure(PoolscopeError):
    """
    Raised when a read from the chain (RPC transport, contract call, or response decoding) fails.
    """

    kind = "chain_read_failure"

    def __init__(self, pool: ChecksumAddress | str, operation: str, reason: str) -> None:
        """
        Args:
            pool: The pool address being read
            operation: The logical read that failed, e.g. "slot0" or "observe"
            reason: A description of the underlying failure
        """
        self.pool = pool
        self.operation = operation
        self.reason = reason
        super().__init__(message=f"Failed to read {operation} for pool {pool}: {reason}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool, self.operation, self.reason)


class ObservationTooOld(ChainReadFailure):
    """
    Raised by an accessor when the oracle cannot serve an observation as old as requested. The
    analyzer converts this into an `InsufficientHistory` result.
    """

    kind = "insufficient_history"

    def __init__(self, pool: ChecksumAddress | str, seconds_ago: int) -> None:
        self.seconds_ago = seconds_ago
        super().__init__(
            pool=pool,
            operation="observe",
            reason=f"no observation at least {seconds_ago} seconds old (OLD)",
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool, self.seconds_ago)
