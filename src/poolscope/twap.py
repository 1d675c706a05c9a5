"""
Time-weighted averages over a window bounded by two oracle observations.

The pool oracle accumulates `tick * seconds` and `seconds / liquidity` (as a Q128.128 value) at
every block. Differencing two observations and dividing by the elapsed time yields the arithmetic
mean tick (a geometric mean price) and the harmonic mean liquidity over the window.

ref: https://github.com/Uniswap/v3-periphery/blob/main/contracts/libraries/OracleLibrary.sol
"""

from collections.abc import Sequence

from eth_typing import ChecksumAddress

from poolscope.constants import MAX_UINT160
from poolscope.exceptions import InvalidPoolState, PoolscopeValueError
from poolscope.types import Observation
from poolscope.types.aliases import Liquidity, Tick
from poolscope.uniswap.v3_libraries.functions import evm_divide

DEFAULT_TWAP_SECONDS = 60


def validate_seconds_ago(seconds_ago: int) -> None:
    if seconds_ago <= 0:
        raise PoolscopeValueError(
            message=f"Time-weighted window must be positive, got {seconds_ago} seconds"
        )


def observation_window(
    observations: Sequence[Observation],
    seconds_ago: int,
) -> tuple[Observation, Observation]:
    """
    Select the observations at `seconds_ago` and at the present (0 seconds ago) from the inputs,
    returned as (older, newer).
    """

    validate_seconds_ago(seconds_ago)

    by_age = {observation.seconds_ago: observation for observation in observations}
    try:
        return by_age[seconds_ago], by_age[0]
    except KeyError:
        raise PoolscopeValueError(
            message=(
                f"Observations at {seconds_ago} and 0 seconds ago are required, got "
                f"{sorted(by_age)}"
            )
        ) from None


def average_tick(observations: Sequence[Observation], seconds_ago: int) -> Tick:
    """
    The arithmetic mean tick over the window, truncated towards zero.
    """

    older, newer = observation_window(observations, seconds_ago)
    return evm_divide(newer.tick_cumulative - older.tick_cumulative, seconds_ago)


def harmonic_mean_liquidity(
    observations: Sequence[Observation],
    seconds_ago: int,
    pool: ChecksumAddress | str = "",
) -> Liquidity:
    """
    The harmonic mean of the pool's in-range liquidity over the window.

    Raises `InvalidPoolState` if the seconds-per-liquidity accumulator did not advance, which the
    pool contract never allows while time passes.
    """

    older, newer = observation_window(observations, seconds_ago)

    # The accumulator is a uint160 which may wrap
    seconds_per_liquidity_delta = (
        newer.seconds_per_liquidity_cumulative_x128 - older.seconds_per_liquidity_cumulative_x128
    ) & MAX_UINT160
    if seconds_per_liquidity_delta == 0:
        raise InvalidPoolState(
            pool=pool,
            reason=f"seconds per liquidity accumulator unchanged over {seconds_ago} seconds",
        )

    return (seconds_ago << 128) // seconds_per_liquidity_delta
