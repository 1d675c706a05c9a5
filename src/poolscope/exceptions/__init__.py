from poolscope.exceptions.base import PoolscopeError, PoolscopeTypeError, PoolscopeValueError
from poolscope.exceptions.chain import ChainReadFailure, ObservationTooOld
from poolscope.exceptions.evm import EVMRevertError
from poolscope.exceptions.liquidity_pool import (
    InvalidPoolState,
    LiquidityPoolError,
    PreconditionViolation,
)

from . import chain, evm, liquidity_pool

__all__ = (
    "ChainReadFailure",
    "EVMRevertError",
    "InvalidPoolState",
    "LiquidityPoolError",
    "ObservationTooOld",
    "PoolscopeError",
    "PoolscopeTypeError",
    "PoolscopeValueError",
    "PreconditionViolation",
    "chain",
    "evm",
    "liquidity_pool",
)
