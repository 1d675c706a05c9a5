import logging
from collections.abc import Callable
from typing import Any

import pytest

from poolscope.logging import logger
from poolscope.snapshot import PoolSnapshot
from poolscope.uniswap.v3_libraries.tick_math import get_sqrt_ratio_at_tick

POOL_ADDRESS = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

# Liquidity values are scaled so that token amounts are not rounded away
E18 = 10**18


@pytest.fixture(scope="session", autouse=True)
def _set_poolscope_logging():
    """
    Set the logging level to DEBUG for the test run
    """
    logger.setLevel(logging.DEBUG)


def snapshot_data(**overrides: Any) -> dict[str, Any]:
    """
    A pool at tick 100 with spacing 10, holding one position below and one above the current tick.
    """

    data: dict[str, Any] = {
        "address": POOL_ADDRESS,
        "token0": {
            "address": USDC_ADDRESS,
            "symbol": "USDC",
            "name": "USD Coin",
            "decimals": 6,
            "price_usd": 1.0,
        },
        "token1": {
            "address": WETH_ADDRESS,
            "symbol": "WETH",
            "name": "Wrapped Ether",
            "decimals": 18,
        },
        "sqrt_price_x96": get_sqrt_ratio_at_tick(100),
        "tick": 100,
        "tick_spacing": 10,
        "liquidity": 1000 * E18,
        "ticks": [
            {"tick": 90, "liquidity_net": 200 * E18, "liquidity_gross": 200 * E18},
            {"tick": 110, "liquidity_net": -150 * E18, "liquidity_gross": 150 * E18},
        ],
        "block_timestamp": 10_000,
        "observations": [
            {
                "block_timestamp": 10_000,
                "tick_cumulative": 0,
                "seconds_per_liquidity_cumulative_x128": 0,
            }
        ],
        "observation_index": 0,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_snapshot() -> Callable[..., PoolSnapshot]:
    def _make_snapshot(**overrides: Any) -> PoolSnapshot:
        return PoolSnapshot.model_validate(snapshot_data(**overrides))

    return _make_snapshot


def linear_oracle(
    tick: int,
    liquidity: int,
    timestamps: list[int],
) -> list[dict[str, int]]:
    """
    Observations for a pool that sat at `tick` with `liquidity` since timestamp 0.
    """

    return [
        {
            "block_timestamp": timestamp,
            "tick_cumulative": tick * timestamp,
            "seconds_per_liquidity_cumulative_x128": (timestamp << 128) // liquidity,
        }
        for timestamp in timestamps
    ]
