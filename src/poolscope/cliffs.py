from collections.abc import Sequence

from poolscope.accumulator import accumulate_active_liquidity
from poolscope.exceptions import PoolscopeValueError, PreconditionViolation
from poolscope.types import Cliff, LiquidityInfo
from poolscope.types.aliases import Liquidity

DEFAULT_CLIFF_THRESHOLD_PCT = 0.2


def detect_liquidity_cliffs(
    sorted_infos: Sequence[LiquidityInfo],
    starting_liquidity: Liquidity,
    threshold_pct: float = DEFAULT_CLIFF_THRESHOLD_PCT,
) -> list[Cliff]:
    """
    Find the ticks where available liquidity changes by at least `threshold_pct` (a fraction, e.g.
    0.2 for 20%) relative to the preceding tick.

    The available liquidity is derived again from each tick's net liquidity, anchored at the tick
    flagged as current with `starting_liquidity`, so values carried on the inputs are ignored. If no
    tick is flagged as current, no cliffs are reported.

    The infos must be sorted by strictly ascending tick. They are not sorted here, and a
    `PreconditionViolation` is raised for unsorted input.
    """

    if threshold_pct < 0:
        raise PoolscopeValueError(
            message=f"Cliff threshold must be non-negative, got {threshold_pct}"
        )

    for previous, current in zip(sorted_infos, sorted_infos[1:]):
        if current.tick <= previous.tick:
            raise PreconditionViolation(
                message=(
                    f"Liquidity info must be sorted by ascending tick, found {current.tick} "
                    f"after {previous.tick}"
                )
            )

    current_info = next((info for info in sorted_infos if info.is_current_tick), None)
    if current_info is None:
        return []

    available = accumulate_active_liquidity(
        ticks=((info.tick, info.liquidity_net) for info in sorted_infos),
        current_tick=current_info.tick,
        current_liquidity=starting_liquidity,
    ).available

    cliffs = []
    for previous, current in zip(sorted_infos, sorted_infos[1:]):
        previous_liquidity = available[previous.tick]
        if previous_liquidity == 0:
            continue

        current_liquidity = available[current.tick]
        delta_pct = abs(current_liquidity - previous_liquidity) / previous_liquidity
        if delta_pct >= threshold_pct:
            cliffs.append(
                Cliff(
                    tick=current.tick,
                    previous_liquidity=previous_liquidity,
                    current_liquidity=current_liquidity,
                    delta_pct=round(delta_pct * 100, 2),
                )
            )

    return cliffs
