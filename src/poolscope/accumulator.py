import dataclasses
from collections.abc import Iterable

from poolscope.logging import logger
from poolscope.types.aliases import Liquidity, LiquidityNet, Tick


@dataclasses.dataclass(slots=True, frozen=True)
class ActiveLiquidity:
    available: dict[Tick, Liquidity]
    clamped: frozenset[Tick]


def accumulate_active_liquidity(
    ticks: Iterable[tuple[Tick, LiquidityNet]],
    current_tick: Tick,
    current_liquidity: Liquidity,
) -> ActiveLiquidity:
    """
    Reconstruct the liquidity available at each tick by walking the net liquidity deltas outward
    from the current tick, where the pool reports the active liquidity directly.

    Net liquidity is defined for upward crossings. Moving up across tick `i` adds its net
    liquidity, moving down across it removes the same amount. Each tick reports the liquidity on
    its far side as seen from the current tick, i.e. above it for higher ticks and below it for
    lower ticks. The current tick is seeded with zero net liquidity when it is not initialized.

    If the walk produces a negative value, which can only happen when the tick set is incomplete or
    inconsistent with the reported liquidity, the value is clamped to zero and the tick is reported
    in `clamped`. The walk continues from the unclamped running value.
    """

    liquidity_net: dict[Tick, LiquidityNet] = dict(ticks)
    liquidity_net.setdefault(current_tick, 0)

    sorted_ticks = sorted(liquidity_net)
    anchor = sorted_ticks.index(current_tick)

    available: dict[Tick, Liquidity] = {current_tick: current_liquidity}
    clamped: set[Tick] = set()

    def record(tick: Tick, running: int) -> None:
        if running < 0:
            logger.warning(
                f"Accumulated liquidity at tick {tick} is negative ({running}), clamping to zero"
            )
            clamped.add(tick)
            available[tick] = 0
        else:
            available[tick] = running

    running = current_liquidity
    for tick in sorted_ticks[anchor + 1 :]:
        running += liquidity_net[tick]
        record(tick, running)

    running = current_liquidity
    for tick in reversed(sorted_ticks[:anchor]):
        running -= liquidity_net[tick]
        record(tick, running)

    return ActiveLiquidity(
        available=dict(sorted(available.items())),
        clamped=frozenset(clamped),
    )


def check_conservation(ticks: Iterable[tuple[Tick, LiquidityNet]]) -> int:
    """
    Sum the net liquidity of a set of ticks. Every position adds its liquidity at its lower tick
    and removes it at its upper tick, so the sum over a complete tick set is zero.
    """

    return sum(net for _, net in ticks)
