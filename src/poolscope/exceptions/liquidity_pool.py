from typing import Any

from eth_typing import ChecksumAddress

from poolscope.exceptions.base import PoolscopeError


class LiquidityPoolError(PoolscopeError):
    """
    Exception raised inside liquidity pool helpers.
    """


class InvalidPoolState(LiquidityPoolError):
    """
    Raised when the pool's base state is malformed and nothing downstream would be meaningful.
    """

    kind = "invalid_pool_state"

    def __init__(self, pool: ChecksumAddress | str, reason: str) -> None:
        self.pool = pool
        self.reason = reason
        super().__init__(message=f"Invalid state for pool {pool}: {reason}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool, self.reason)


class PreconditionViolation(LiquidityPoolError):
    """
    Raised when a caller supplies input that does not satisfy a documented precondition, e.g. tick
    data that is not sorted in ascending order.
    """

    kind = "precondition_violation"
