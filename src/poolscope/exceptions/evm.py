from typing import Any

from poolscope.exceptions.base import PoolscopeError


class EVMRevertError(PoolscopeError):
    """
    Raised when a fixed-point library operation would revert in the equivalent contract.
    """

    kind = "evm_revert"

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(message=f"EVM Revert: {error}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.error,)
