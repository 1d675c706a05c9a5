from collections.abc import Iterable, Sequence

import pydantic

from poolscope.constants import MAX_UINT32, MAX_UINT160
from poolscope.exceptions import EVMRevertError
from poolscope.types.aliases import Liquidity, Tick
from poolscope.uniswap.v3_libraries.functions import evm_divide
from poolscope.validation.evm_values import ValidatedInt56, ValidatedUint32, ValidatedUint160

"""
Read-only port of the pool oracle's observation lookup.

ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/Oracle.sol
"""


class OracleObservation(pydantic.BaseModel, frozen=True):
    block_timestamp: ValidatedUint32
    tick_cumulative: ValidatedInt56
    seconds_per_liquidity_cumulative_x128: ValidatedUint160
    initialized: bool = True


_UNINITIALIZED = OracleObservation(
    block_timestamp=0,
    tick_cumulative=0,
    seconds_per_liquidity_cumulative_x128=0,
    initialized=False,
)


def _uint32_sub(a: int, b: int) -> int:
    return (a - b) & MAX_UINT32


def transform(
    last: OracleObservation,
    block_timestamp: int,
    tick: Tick,
    liquidity: Liquidity,
) -> OracleObservation:
    """
    Extrapolate an observation forward to `block_timestamp`, assuming the tick and liquidity were
    constant since `last` was written.
    """

    delta = _uint32_sub(block_timestamp, last.block_timestamp)
    return OracleObservation(
        block_timestamp=block_timestamp,
        tick_cumulative=last.tick_cumulative + tick * delta,
        seconds_per_liquidity_cumulative_x128=(
            last.seconds_per_liquidity_cumulative_x128
            + ((delta << 128) // (liquidity if liquidity > 0 else 1))
        )
        & MAX_UINT160,
        initialized=True,
    )


def lte(time: int, a: int, b: int) -> bool:
    """
    Comparator for 32-bit timestamps, safe for 0 or 1 overflows. `a` and `b` must be
    chronologically before or equal to `time`.
    """

    if a <= time and b <= time:
        return a <= b

    a_adjusted = a if a > time else a + (1 << 32)
    b_adjusted = b if b > time else b + (1 << 32)
    return a_adjusted <= b_adjusted


def binary_search(
    observations: Sequence[OracleObservation],
    time: int,
    target: int,
    index: int,
    cardinality: int,
) -> tuple[OracleObservation, OracleObservation]:
    left = (index + 1) % cardinality  # oldest observation
    right = left + cardinality - 1  # newest observation

    while True:
        i = (left + right) // 2

        before_or_at = observations[i % cardinality]

        # Landed on an uninitialized slot, keep searching higher (more recently)
        if not before_or_at.initialized:
            left = i + 1
            continue

        at_or_after = observations[(i + 1) % cardinality]

        target_at_or_after = lte(time, before_or_at.block_timestamp, target)

        if target_at_or_after and lte(time, target, at_or_after.block_timestamp):
            return before_or_at, at_or_after

        if not target_at_or_after:
            right = i - 1
        else:
            left = i + 1


def get_surrounding_observations(
    observations: Sequence[OracleObservation],
    time: int,
    target: int,
    tick: Tick,
    index: int,
    liquidity: Liquidity,
    cardinality: int,
) -> tuple[OracleObservation, OracleObservation]:
    before_or_at = observations[index]

    # If the target is chronologically at or after the newest observation, exit early
    if lte(time, before_or_at.block_timestamp, target):
        if before_or_at.block_timestamp == target:
            return before_or_at, _UNINITIALIZED
        return before_or_at, transform(before_or_at, target, tick, liquidity)

    # The oldest observation is the next slot, or slot 0 if the buffer has not wrapped yet
    before_or_at = observations[(index + 1) % cardinality]
    if not before_or_at.initialized:
        before_or_at = observations[0]

    if not lte(time, before_or_at.block_timestamp, target):
        raise EVMRevertError(error="OLD")

    return binary_search(observations, time, target, index, cardinality)


def observe_single(
    observations: Sequence[OracleObservation],
    time: int,
    seconds_ago: int,
    tick: Tick,
    index: int,
    liquidity: Liquidity,
    cardinality: int,
) -> tuple[int, int]:
    if seconds_ago == 0:
        last = observations[index]
        if last.block_timestamp != time:
            last = transform(last, time, tick, liquidity)
        return last.tick_cumulative, last.seconds_per_liquidity_cumulative_x128

    target = _uint32_sub(time, seconds_ago)

    before_or_at, at_or_after = get_surrounding_observations(
        observations, time, target, tick, index, liquidity, cardinality
    )

    if target == before_or_at.block_timestamp:
        return (
            before_or_at.tick_cumulative,
            before_or_at.seconds_per_liquidity_cumulative_x128,
        )
    if target == at_or_after.block_timestamp:
        return (
            at_or_after.tick_cumulative,
            at_or_after.seconds_per_liquidity_cumulative_x128,
        )

    # The target lies between the two observations, so interpolate
    observation_time_delta = _uint32_sub(
        at_or_after.block_timestamp, before_or_at.block_timestamp
    )
    target_delta = _uint32_sub(target, before_or_at.block_timestamp)
    return (
        before_or_at.tick_cumulative
        + evm_divide(
            at_or_after.tick_cumulative - before_or_at.tick_cumulative,
            observation_time_delta,
        )
        * target_delta,
        (
            before_or_at.seconds_per_liquidity_cumulative_x128
            + (
                (
                    (
                        at_or_after.seconds_per_liquidity_cumulative_x128
                        - before_or_at.seconds_per_liquidity_cumulative_x128
                    )
                    & MAX_UINT160
                )
                * target_delta
            )
            // observation_time_delta
        )
        & MAX_UINT160,
    )


def observe(
    observations: Sequence[OracleObservation],
    time: int,
    seconds_agos: Iterable[int],
    tick: Tick,
    index: int,
    liquidity: Liquidity,
) -> tuple[list[int], list[int]]:
    """
    Return the tick and seconds-per-liquidity accumulators as of each `seconds_ago` before `time`.

    Raises `EVMRevertError("OLD")` if a requested time predates the oldest stored observation.
    """

    cardinality = len(observations)
    if cardinality == 0:
        raise EVMRevertError(error="I")

    tick_cumulatives: list[int] = []
    seconds_per_liquidity_cumulatives: list[int] = []
    for seconds_ago in seconds_agos:
        tick_cumulative, seconds_per_liquidity = observe_single(
            observations, time, seconds_ago, tick, index, liquidity, cardinality
        )
        tick_cumulatives.append(tick_cumulative)
        seconds_per_liquidity_cumulatives.append(seconds_per_liquidity)
    return tick_cumulatives, seconds_per_liquidity_cumulatives
