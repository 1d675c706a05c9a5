"""
Translation of per-tick liquidity into token quantities, USD values, and price ratios.
"""

from poolscope.exceptions import PoolscopeValueError
from poolscope.logging import logger
from poolscope.types import LiquidityInfo, TokenInfo, TokenRatios
from poolscope.types.aliases import Liquidity, LiquidityGross, LiquidityNet, SqrtPriceX96, Tick
from poolscope.uniswap.v3_libraries.constants import Q96
from poolscope.uniswap.v3_libraries.full_math import muldiv
from poolscope.uniswap.v3_libraries.sqrt_price_math import get_amount0_delta, get_amount1_delta
from poolscope.uniswap.v3_libraries.tick_math import get_sqrt_ratio_at_tick


def sqrt_ratio_at_tick(tick: Tick) -> SqrtPriceX96:
    return get_sqrt_ratio_at_tick(tick)


def calculate_token_amounts(
    tick: Tick,
    current_tick: Tick,
    available_liquidity: Liquidity,
    sqrt_price_x96: SqrtPriceX96 | None = None,
) -> tuple[int, int]:
    """
    Calculate the raw token0 and token1 amounts represented by `available_liquidity` at `tick`,
    relative to the current price.

    Liquidity at a tick below the current tick has been fully converted to token1, and liquidity
    above it is held entirely in token0. Both are priced across the sqrt price gap between the
    tick and the current tick. At the current tick the liquidity is split into its virtual
    reserves at the live sqrt price, which falls back to the current tick's sqrt price if not
    provided.
    """

    liquidity = abs(available_liquidity)
    if liquidity == 0:
        return 0, 0

    sqrt_ratio_current_x96 = get_sqrt_ratio_at_tick(current_tick)

    if tick < current_tick:
        return 0, get_amount1_delta(get_sqrt_ratio_at_tick(tick), sqrt_ratio_current_x96, liquidity)

    if tick > current_tick:
        return get_amount0_delta(sqrt_ratio_current_x96, get_sqrt_ratio_at_tick(tick), liquidity), 0

    if sqrt_price_x96 is None:
        sqrt_price_x96 = sqrt_ratio_current_x96
    if sqrt_price_x96 <= 0:
        raise PoolscopeValueError(message=f"Invalid sqrt price {sqrt_price_x96}")

    return (
        muldiv(liquidity, Q96, sqrt_price_x96),
        muldiv(liquidity, sqrt_price_x96, Q96),
    )


def adjust_amount(raw_amount: int, decimals: int) -> float:
    return abs(raw_amount) / 10**decimals


def usd_value(amount: float, token: TokenInfo, fallback_price_usd: float) -> float:
    if token.price_usd is None:
        logger.debug(
            f"No USD price for {token.symbol} ({token.address}), "
            f"using fallback {fallback_price_usd}"
        )
        return amount * fallback_price_usd
    return amount * token.price_usd


def calculate_token_ratios(
    tick: Tick,
    sqrt_price_x96: SqrtPriceX96,
    token0_decimals: int = 18,
    token1_decimals: int = 18,
) -> TokenRatios:
    """
    Calculate the token1/token0 price ratio from the tick and from the sqrt price.

    The tick is the floored logarithm of the price, so the sqrt price ratio is the more precise of
    the two. The difference between them is reported for comparison.
    """

    if sqrt_price_x96 <= 0:
        raise PoolscopeValueError(message=f"Invalid sqrt price {sqrt_price_x96}")

    ratio_from_tick = 1.0001**tick
    ratio_from_sqrt_price = (sqrt_price_x96 / Q96) ** 2
    decimal_adjustment = 10.0 ** (token0_decimals - token1_decimals)
    precision_difference = abs(ratio_from_sqrt_price - ratio_from_tick)

    return TokenRatios(
        tick=tick,
        sqrt_price_x96=sqrt_price_x96,
        ratio_from_tick=ratio_from_tick,
        ratio_from_sqrt_price=ratio_from_sqrt_price,
        adjusted_ratio=ratio_from_sqrt_price * decimal_adjustment,
        decimal_adjustment=decimal_adjustment,
        precision_difference=precision_difference,
        precision_difference_pct=precision_difference / ratio_from_sqrt_price * 100,
    )


def build_liquidity_info(
    *,
    tick: Tick,
    liquidity_net: LiquidityNet,
    liquidity_gross: LiquidityGross,
    available_liquidity: Liquidity,
    current_tick: Tick,
    sqrt_price_x96: SqrtPriceX96,
    token0: TokenInfo,
    token1: TokenInfo,
    fallback_price_usd: float,
    initialized: bool,
    liquidity_clamped: bool = False,
) -> LiquidityInfo:
    token0_amount, token1_amount = calculate_token_amounts(
        tick=tick,
        current_tick=current_tick,
        available_liquidity=available_liquidity,
        sqrt_price_x96=sqrt_price_x96,
    )
    token0_amount_adjusted = adjust_amount(token0_amount, token0.decimals)
    token1_amount_adjusted = adjust_amount(token1_amount, token1.decimals)
    token0_usd = usd_value(token0_amount_adjusted, token0, fallback_price_usd)
    token1_usd = usd_value(token1_amount_adjusted, token1, fallback_price_usd)

    return LiquidityInfo(
        tick=tick,
        liquidity_net=liquidity_net,
        liquidity_gross=liquidity_gross,
        available_liquidity=available_liquidity,
        token0_amount=token0_amount,
        token1_amount=token1_amount,
        token0_amount_adjusted=token0_amount_adjusted,
        token1_amount_adjusted=token1_amount_adjusted,
        token0_usd=token0_usd,
        token1_usd=token1_usd,
        total_usd=token0_usd + token1_usd,
        initialized=initialized,
        is_current_tick=tick == current_tick,
        liquidity_clamped=liquidity_clamped,
    )
