import dataclasses

import hypothesis
import hypothesis.strategies
import pytest

from poolscope.cliffs import detect_liquidity_cliffs
from poolscope.exceptions import PoolscopeValueError, PreconditionViolation
from poolscope.types import LiquidityInfo


def info(tick: int, liquidity_net: int, *, current: bool = False) -> LiquidityInfo:
    return LiquidityInfo(
        tick=tick,
        liquidity_net=liquidity_net,
        liquidity_gross=abs(liquidity_net),
        available_liquidity=0,
        token0_amount=0,
        token1_amount=0,
        token0_amount_adjusted=0.0,
        token1_amount_adjusted=0.0,
        token0_usd=0.0,
        token1_usd=0.0,
        total_usd=0.0,
        initialized=liquidity_net != 0,
        is_current_tick=current,
    )


@pytest.fixture
def infos() -> list[LiquidityInfo]:
    # Available liquidity of 800, 1000, 850 when the current tick holds 1000
    return [info(90, 200), info(100, 0, current=True), info(110, -150)]


def test_cliffs(infos: list[LiquidityInfo]) -> None:
    cliffs = detect_liquidity_cliffs(infos, starting_liquidity=1000, threshold_pct=0.1)
    assert [cliff.tick for cliff in cliffs] == [100, 110]

    first, second = cliffs
    assert first.previous_liquidity == 800
    assert first.current_liquidity == 1000
    assert first.delta_pct == 25.0
    assert second.previous_liquidity == 1000
    assert second.current_liquidity == 850
    assert second.delta_pct == 15.0


def test_cliffs_above_threshold_only(infos: list[LiquidityInfo]) -> None:
    cliffs = detect_liquidity_cliffs(infos, starting_liquidity=1000, threshold_pct=0.2)
    assert [cliff.tick for cliff in cliffs] == [100]

    assert detect_liquidity_cliffs(infos, starting_liquidity=1000, threshold_pct=0.3) == []


def test_cliff_at_exact_threshold(infos: list[LiquidityInfo]) -> None:
    cliffs = detect_liquidity_cliffs(infos, starting_liquidity=1000, threshold_pct=0.25)
    assert [cliff.tick for cliff in cliffs] == [100]


def test_cliffs_ignore_carried_liquidity() -> None:
    carried = [info(90, 200), info(100, 0, current=True), info(110, -150)]
    with_values = [dataclasses.replace(i, available_liquidity=1) for i in carried]
    assert detect_liquidity_cliffs(
        with_values, starting_liquidity=1000, threshold_pct=0.1
    ) == detect_liquidity_cliffs(carried, starting_liquidity=1000, threshold_pct=0.1)


def test_cliffs_skip_empty_previous_tick() -> None:
    infos = [info(80, 0), info(90, 500), info(100, 0, current=True)]
    # Ticks 80 and 90 both report the empty range below them
    cliffs = detect_liquidity_cliffs(infos, starting_liquidity=500, threshold_pct=0.1)
    assert cliffs == []


def test_cliffs_without_current_tick() -> None:
    assert (
        detect_liquidity_cliffs(
            [info(90, 200), info(110, -150)], starting_liquidity=1000, threshold_pct=0.1
        )
        == []
    )
    assert detect_liquidity_cliffs([], starting_liquidity=1000) == []


def test_cliffs_require_sorted_input(infos: list[LiquidityInfo]) -> None:
    with pytest.raises(PreconditionViolation):
        detect_liquidity_cliffs(list(reversed(infos)), starting_liquidity=1000)

    with pytest.raises(PreconditionViolation):
        detect_liquidity_cliffs([infos[0], infos[0], infos[1]], starting_liquidity=1000)


def test_cliffs_reject_negative_threshold(infos: list[LiquidityInfo]) -> None:
    with pytest.raises(PoolscopeValueError):
        detect_liquidity_cliffs(infos, starting_liquidity=1000, threshold_pct=-0.1)


@hypothesis.given(
    nets=hypothesis.strategies.lists(
        hypothesis.strategies.integers(min_value=-(10**6), max_value=10**6),
        min_size=1,
        max_size=30,
    ),
    current_index=hypothesis.strategies.integers(min_value=0, max_value=29),
    low_threshold=hypothesis.strategies.floats(min_value=0.0, max_value=5.0),
    high_threshold=hypothesis.strategies.floats(min_value=0.0, max_value=5.0),
)
def test_raising_threshold_never_adds_cliffs(
    nets: list[int],
    current_index: int,
    low_threshold: float,
    high_threshold: float,
) -> None:
    low_threshold, high_threshold = sorted((low_threshold, high_threshold))
    current_index %= len(nets)
    infos = [
        info(10 * i, net if i != current_index else 0, current=i == current_index)
        for i, net in enumerate(nets)
    ]

    low = detect_liquidity_cliffs(infos, starting_liquidity=10**7, threshold_pct=low_threshold)
    high = detect_liquidity_cliffs(infos, starting_liquidity=10**7, threshold_pct=high_threshold)

    assert {cliff.tick for cliff in high} <= {cliff.tick for cliff in low}
