import pytest

from poolscope.constants import MAX_UINT32
from poolscope.exceptions import EVMRevertError
from poolscope.uniswap.v3_libraries.oracle import OracleObservation, lte, observe, transform

LIQUIDITY = 2**64
TICK = 5


def observation(timestamp: int, tick: int = TICK, liquidity: int = LIQUIDITY) -> OracleObservation:
    return OracleObservation(
        block_timestamp=timestamp,
        tick_cumulative=tick * timestamp,
        seconds_per_liquidity_cumulative_x128=(timestamp << 128) // liquidity,
    )


@pytest.fixture
def observations() -> list[OracleObservation]:
    return [observation(100), observation(200), observation(300)]


def test_lte_without_overflow() -> None:
    assert lte(time=1000, a=100, b=200) is True
    assert lte(time=1000, a=200, b=100) is False
    assert lte(time=1000, a=200, b=200) is True


def test_lte_across_uint32_overflow() -> None:
    # `time` has wrapped past zero, so timestamps above it were written before the wrap
    before_wrap = MAX_UINT32 - 4
    after_wrap = 5
    assert lte(time=10, a=before_wrap, b=after_wrap) is True
    assert lte(time=10, a=after_wrap, b=before_wrap) is False


def test_transform() -> None:
    last = observation(100)
    transformed = transform(last, block_timestamp=150, tick=-2, liquidity=LIQUIDITY)
    assert transformed.block_timestamp == 150
    assert transformed.tick_cumulative == TICK * 100 + (-2 * 50)
    assert (
        transformed.seconds_per_liquidity_cumulative_x128
        == last.seconds_per_liquidity_cumulative_x128 + (50 << 128) // LIQUIDITY
    )


def test_transform_with_zero_liquidity() -> None:
    last = observation(100)
    transformed = transform(last, block_timestamp=101, tick=TICK, liquidity=0)
    assert (
        transformed.seconds_per_liquidity_cumulative_x128
        == last.seconds_per_liquidity_cumulative_x128 + (1 << 128)
    )


def test_observe_exact_timestamps(observations: list[OracleObservation]) -> None:
    tick_cumulatives, seconds_per_liquidity_cumulatives = observe(
        observations=observations,
        time=300,
        seconds_agos=[0, 100, 200],
        tick=TICK,
        index=2,
        liquidity=LIQUIDITY,
    )
    assert tick_cumulatives == [TICK * 300, TICK * 200, TICK * 100]
    assert seconds_per_liquidity_cumulatives == [
        (300 << 128) // LIQUIDITY,
        (200 << 128) // LIQUIDITY,
        (100 << 128) // LIQUIDITY,
    ]


def test_observe_interpolates_between_observations(
    observations: list[OracleObservation],
) -> None:
    tick_cumulatives, _ = observe(
        observations=observations,
        time=300,
        seconds_agos=[50, 150],
        tick=TICK,
        index=2,
        liquidity=LIQUIDITY,
    )
    assert tick_cumulatives == [TICK * 250, TICK * 150]


def test_observe_extrapolates_past_newest_observation(
    observations: list[OracleObservation],
) -> None:
    tick_cumulatives, _ = observe(
        observations=observations,
        time=400,
        seconds_agos=[0, 50],
        tick=TICK,
        index=2,
        liquidity=LIQUIDITY,
    )
    assert tick_cumulatives == [TICK * 400, TICK * 350]


def test_observe_wrapped_ring_buffer() -> None:
    # Slot 0 was overwritten most recently, so slot 1 holds the oldest observation
    tick_cumulatives, _ = observe(
        observations=[observation(400), observation(200), observation(300)],
        time=400,
        seconds_agos=[150],
        tick=TICK,
        index=0,
        liquidity=LIQUIDITY,
    )
    assert tick_cumulatives == [TICK * 250]


def test_observe_skips_uninitialized_slots() -> None:
    uninitialized = OracleObservation(
        block_timestamp=0,
        tick_cumulative=0,
        seconds_per_liquidity_cumulative_x128=0,
        initialized=False,
    )
    tick_cumulatives, _ = observe(
        observations=[observation(100), observation(200), uninitialized, uninitialized],
        time=200,
        seconds_agos=[50],
        tick=TICK,
        index=1,
        liquidity=LIQUIDITY,
    )
    assert tick_cumulatives == [TICK * 150]


def test_observe_interpolation_rounds_towards_zero() -> None:
    tick_cumulatives, _ = observe(
        observations=[
            OracleObservation(
                block_timestamp=0, tick_cumulative=0, seconds_per_liquidity_cumulative_x128=0
            ),
            OracleObservation(
                block_timestamp=3, tick_cumulative=-10, seconds_per_liquidity_cumulative_x128=0
            ),
        ],
        time=3,
        seconds_agos=[2],
        tick=-3,
        index=1,
        liquidity=LIQUIDITY,
    )
    assert tick_cumulatives == [-3]


def test_observe_older_than_oldest_observation(observations: list[OracleObservation]) -> None:
    with pytest.raises(EVMRevertError, match="OLD") as exc_info:
        observe(
            observations=observations,
            time=300,
            seconds_agos=[0, 201],
            tick=TICK,
            index=2,
            liquidity=LIQUIDITY,
        )
    assert exc_info.value.error == "OLD"


def test_observe_single_observation_at_current_block() -> None:
    with pytest.raises(EVMRevertError, match="OLD"):
        observe(
            observations=[observation(300)],
            time=300,
            seconds_agos=[60],
            tick=TICK,
            index=0,
            liquidity=LIQUIDITY,
        )


def test_observe_without_observations() -> None:
    with pytest.raises(EVMRevertError) as exc_info:
        observe(
            observations=[],
            time=300,
            seconds_agos=[0],
            tick=TICK,
            index=0,
            liquidity=LIQUIDITY,
        )
    assert exc_info.value.error == "I"
