import dataclasses
from typing import Any

import pydantic
from eth_typing import ChecksumAddress

from poolscope.checksum_cache import get_checksum_address
from poolscope.types.aliases import Liquidity, LiquidityGross, LiquidityNet, SqrtPriceX96, Tick
from poolscope.validation.evm_values import (
    ValidatedInt24,
    ValidatedInt56,
    ValidatedInt128,
    ValidatedUint8,
    ValidatedUint128,
    ValidatedUint160,
    ValidatedUint160NonZero,
)


class TokenInfo(pydantic.BaseModel, frozen=True):
    address: ChecksumAddress
    symbol: str
    name: str = ""
    decimals: ValidatedUint8
    price_usd: float | None = None

    @pydantic.field_validator("address", mode="before")
    @classmethod
    def checksum_address(cls, address: str) -> ChecksumAddress:
        return get_checksum_address(address)


class TickRecord(pydantic.BaseModel, frozen=True):
    tick: ValidatedInt24
    liquidity_net: ValidatedInt128
    liquidity_gross: ValidatedUint128
    initialized: bool


class PoolState(pydantic.BaseModel, frozen=True):
    """
    A point-in-time view of a concentrated liquidity pool's base state, with its token metadata.
    """

    address: ChecksumAddress
    token0: TokenInfo
    token1: TokenInfo
    tick: ValidatedInt24
    sqrt_price_x96: ValidatedUint160NonZero
    tick_spacing: pydantic.PositiveInt
    liquidity: ValidatedUint128

    @pydantic.field_validator("address", mode="before")
    @classmethod
    def checksum_address(cls, address: str) -> ChecksumAddress:
        return get_checksum_address(address)


@dataclasses.dataclass(slots=True, frozen=True)
class PoolBase:
    """
    The raw values returned by a single batched read of a pool's base state.
    """

    sqrt_price_x96: SqrtPriceX96
    tick: Tick
    liquidity: Liquidity
    tick_spacing: int
    token0: ChecksumAddress
    token1: ChecksumAddress


@dataclasses.dataclass(slots=True, frozen=True)
class LiquidityInfo:
    tick: Tick
    liquidity_net: LiquidityNet
    liquidity_gross: LiquidityGross
    available_liquidity: Liquidity
    token0_amount: int
    token1_amount: int
    token0_amount_adjusted: float
    token1_amount_adjusted: float
    token0_usd: float
    token1_usd: float
    total_usd: float
    initialized: bool
    is_current_tick: bool
    liquidity_clamped: bool = False


@dataclasses.dataclass(slots=True, frozen=True)
class LiquidityDistribution:
    pool: PoolState
    ticks: list[LiquidityInfo]
    words_requested: int
    failed_words: tuple[int, ...] = ()
    failed_ticks: tuple[Tick, ...] = ()
    clamped_ticks: tuple[Tick, ...] = ()

    @property
    def complete(self) -> bool:
        """
        False if a bitmap word or an initialized tick could not be read. The distribution may then
        be missing ticks, and the available liquidity beyond a missing tick is shifted by its net
        liquidity.
        """
        return not (self.failed_words or self.failed_ticks)

    @property
    def current(self) -> LiquidityInfo:
        return next(info for info in self.ticks if info.is_current_tick)


@dataclasses.dataclass(slots=True, frozen=True)
class Cliff:
    tick: Tick
    previous_liquidity: Liquidity
    current_liquidity: Liquidity
    delta_pct: float


class Observation(pydantic.BaseModel, frozen=True):
    seconds_ago: pydantic.NonNegativeInt
    tick_cumulative: ValidatedInt56
    seconds_per_liquidity_cumulative_x128: ValidatedUint160


@dataclasses.dataclass(slots=True, frozen=True)
class TokenRatios:
    """
    The token1/token0 price ratio of a pool, derived two ways for comparison.
    """

    tick: Tick
    sqrt_price_x96: SqrtPriceX96
    ratio_from_tick: float
    ratio_from_sqrt_price: float
    adjusted_ratio: float
    decimal_adjustment: float
    precision_difference: float
    precision_difference_pct: float

    @property
    def ratio(self) -> float:
        # The sqrt price carries more precision than the tick, which is a floored logarithm
        return self.ratio_from_sqrt_price


@dataclasses.dataclass(slots=True, frozen=True)
class TwapResult:
    average_tick: Tick
    twap_ratios: TokenRatios
    current_ratios: TokenRatios
    observations: tuple[Observation, Observation]


@dataclasses.dataclass(slots=True, frozen=True)
class TwalResult:
    twal: Liquidity
    current_liquidity: Liquidity
    current_tick: Tick
    observations: tuple[Observation, Observation]


@dataclasses.dataclass(slots=True, frozen=True)
class InsufficientHistory:
    """
    Returned instead of a time-weighted result when the pool's oracle does not hold an observation
    old enough to cover the requested window. Retrying will not help; callers should fall back to
    current-state reporting or request a shorter window.
    """

    pool: ChecksumAddress
    seconds_ago: int
    kind: str = "insufficient_history"

    @property
    def message(self) -> str:
        return (
            f"Pool {self.pool} oracle has no observation at least {self.seconds_ago} seconds old."
        )

    def as_response(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


__all__ = (
    "Cliff",
    "InsufficientHistory",
    "LiquidityDistribution",
    "LiquidityInfo",
    "Observation",
    "PoolBase",
    "PoolState",
    "TickRecord",
    "TokenInfo",
    "TokenRatios",
    "TwalResult",
    "TwapResult",
)
