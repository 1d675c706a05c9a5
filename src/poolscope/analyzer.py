import logging
from collections.abc import Sequence

import pydantic
from eth_typing import ChecksumAddress

from poolscope import bitmap
from poolscope.accessor import ChainStateAccessor
from poolscope.accumulator import accumulate_active_liquidity
from poolscope.amounts import build_liquidity_info, calculate_token_ratios
from poolscope.checksum_cache import get_checksum_address
from poolscope.cliffs import detect_liquidity_cliffs as _detect_liquidity_cliffs
from poolscope.config import AnalyzerSettings
from poolscope.exceptions import InvalidPoolState, ObservationTooOld, PoolscopeValueError
from poolscope.logging import logger as poolscope_logger
from poolscope.tokens import TokenMetadataProvider
from poolscope.twap import average_tick, harmonic_mean_liquidity, validate_seconds_ago
from poolscope.types import (
    Cliff,
    InsufficientHistory,
    LiquidityDistribution,
    LiquidityInfo,
    Observation,
    PoolState,
    TickRecord,
    TokenRatios,
    TwalResult,
    TwapResult,
)
from poolscope.types.aliases import Liquidity, Tick
from poolscope.uniswap.v3_libraries.tick_math import (
    MAX_SQRT_RATIO,
    MIN_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)


class PoolAnalyzer:
    """
    Reconstructs the liquidity distribution and time-weighted averages of concentrated liquidity
    pools from point-in-time reads.

    Each call re-reads the pool state through the accessor and holds nothing between calls, so a
    single analyzer may be shared freely.
    """

    def __init__(
        self,
        accessor: ChainStateAccessor,
        token_provider: TokenMetadataProvider,
        settings: AnalyzerSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.accessor = accessor
        self.token_provider = token_provider
        self.settings = settings if settings is not None else AnalyzerSettings()
        self.logger = logger if logger is not None else poolscope_logger

    def _checksum(self, pool: str) -> ChecksumAddress:
        try:
            return get_checksum_address(pool)
        except ValueError:
            raise PoolscopeValueError(message=f"Invalid pool address {pool!r}") from None

    def get_pool_state(self, pool: str) -> PoolState:
        """
        Read the pool's base state and token metadata. Failures here are fatal, since nothing
        downstream is meaningful without them.
        """

        pool = self._checksum(pool)
        base = self.accessor.read_pool_base(pool)

        if not (MIN_SQRT_RATIO <= base.sqrt_price_x96 < MAX_SQRT_RATIO):
            self.logger.error(f"Pool {pool} sqrt price {base.sqrt_price_x96} is out of range")
            raise InvalidPoolState(
                pool=pool, reason=f"sqrt price {base.sqrt_price_x96} outside the valid range"
            )

        token0 = self.token_provider.get_token(base.token0)
        token1 = self.token_provider.get_token(base.token1)

        try:
            state = PoolState(
                address=pool,
                token0=token0,
                token1=token1,
                tick=base.tick,
                sqrt_price_x96=base.sqrt_price_x96,
                tick_spacing=base.tick_spacing,
                liquidity=base.liquidity,
            )
        except pydantic.ValidationError as exc:
            self.logger.error(f"Pool {pool} returned an invalid base state: {exc}")
            raise InvalidPoolState(pool=pool, reason=str(exc)) from exc

        # The pool's tick is the greatest tick at or below the price, except after a swap stops
        # exactly on a tick boundary moving down, where it is one lower
        if get_tick_at_sqrt_ratio(state.sqrt_price_x96) - state.tick not in (0, 1):
            self.logger.warning(
                f"Pool {pool} tick {state.tick} does not match its sqrt price "
                f"{state.sqrt_price_x96} (tick {get_tick_at_sqrt_ratio(state.sqrt_price_x96)})"
            )

        return state

    def get_tick_liquidity_distribution(
        self,
        pool: str,
        word_range: int | None = None,
    ) -> LiquidityDistribution:
        """
        Reconstruct the available liquidity and token amounts at each initialized tick within
        `word_range` bitmap words of the current tick, plus the current tick itself.

        Bitmap words or ticks that cannot be read are omitted and reported on the result, which is
        still returned with reduced precision.
        """

        if word_range is None:
            word_range = self.settings.word_range

        state = self.get_pool_state(pool)

        words = bitmap.word_range(state.tick, state.tick_spacing, word_range)
        scan = bitmap.decode_initialized_ticks(
            words=self.accessor.read_bitmap_words(state.address, words),
            tick_spacing=state.tick_spacing,
            current_tick=state.tick,
        )
        self.logger.info(
            f"Pool {state.address}: read {len(words)} bitmap words, {scan.nonzero_words} non-zero, "
            f"{len(scan.ticks)} ticks (including current)"
        )
        if scan.failed_words:
            self.logger.warning(
                f"Pool {state.address}: {len(scan.failed_words)} bitmap words could not be read"
            )

        tick_records = self.accessor.read_ticks(state.address, scan.ticks)

        records: list[TickRecord] = []
        failed_ticks: list[Tick] = []
        for tick in scan.ticks:
            record = tick_records.get(tick)
            if record is None:
                if tick != state.tick:
                    self.logger.warning(f"Pool {state.address}: tick {tick} could not be read")
                    failed_ticks.append(tick)
                    continue
                record = TickRecord(
                    tick=tick, liquidity_net=0, liquidity_gross=0, initialized=False
                )

            if tick == state.tick or record.liquidity_net != 0 or record.liquidity_gross != 0:
                records.append(record)

        active = accumulate_active_liquidity(
            ticks=((record.tick, record.liquidity_net) for record in records),
            current_tick=state.tick,
            current_liquidity=state.liquidity,
        )

        infos = [
            build_liquidity_info(
                tick=record.tick,
                liquidity_net=record.liquidity_net,
                liquidity_gross=record.liquidity_gross,
                available_liquidity=active.available[record.tick],
                current_tick=state.tick,
                sqrt_price_x96=state.sqrt_price_x96,
                token0=state.token0,
                token1=state.token1,
                fallback_price_usd=self.settings.fallback_price_usd,
                initialized=record.initialized,
                liquidity_clamped=record.tick in active.clamped,
            )
            for record in records
        ]

        return LiquidityDistribution(
            pool=state,
            ticks=infos,
            words_requested=len(words),
            failed_words=scan.failed_words,
            failed_ticks=tuple(failed_ticks),
            clamped_ticks=tuple(sorted(active.clamped)),
        )

    def detect_liquidity_cliffs(
        self,
        sorted_infos: Sequence[LiquidityInfo],
        starting_liquidity: Liquidity,
        threshold_pct: float | None = None,
    ) -> list[Cliff]:
        if threshold_pct is None:
            threshold_pct = self.settings.cliff_threshold_pct
        return _detect_liquidity_cliffs(
            sorted_infos=sorted_infos,
            starting_liquidity=starting_liquidity,
            threshold_pct=threshold_pct,
        )

    def _read_window(
        self, pool: ChecksumAddress, seconds_ago: int
    ) -> tuple[Observation, Observation] | InsufficientHistory:
        try:
            older, newer = self.accessor.read_observations(pool, [seconds_ago, 0])
        except ObservationTooOld:
            self.logger.warning(
                f"Pool {pool} oracle has no observation {seconds_ago} seconds old, "
                "time-weighted values are unavailable"
            )
            return InsufficientHistory(pool=pool, seconds_ago=seconds_ago)
        return older, newer

    def get_twap(
        self, pool: str, seconds_ago: int | None = None
    ) -> TwapResult | InsufficientHistory:
        """
        The time-weighted average tick over the last `seconds_ago` seconds, with the price ratios
        at that tick and at the current state for comparison.
        """

        if seconds_ago is None:
            seconds_ago = self.settings.twap_seconds
        validate_seconds_ago(seconds_ago)

        pool = self._checksum(pool)
        window = self._read_window(pool, seconds_ago)
        if isinstance(window, InsufficientHistory):
            return window

        state = self.get_pool_state(pool)
        twap_tick = average_tick(window, seconds_ago)

        return TwapResult(
            average_tick=twap_tick,
            twap_ratios=calculate_token_ratios(
                tick=twap_tick,
                sqrt_price_x96=get_sqrt_ratio_at_tick(twap_tick),
                token0_decimals=state.token0.decimals,
                token1_decimals=state.token1.decimals,
            ),
            current_ratios=calculate_token_ratios(
                tick=state.tick,
                sqrt_price_x96=state.sqrt_price_x96,
                token0_decimals=state.token0.decimals,
                token1_decimals=state.token1.decimals,
            ),
            observations=window,
        )

    def get_twal(
        self, pool: str, seconds_ago: int | None = None
    ) -> TwalResult | InsufficientHistory:
        """
        The harmonic mean of the in-range liquidity over the last `seconds_ago` seconds.
        """

        if seconds_ago is None:
            seconds_ago = self.settings.twap_seconds
        validate_seconds_ago(seconds_ago)

        pool = self._checksum(pool)
        window = self._read_window(pool, seconds_ago)
        if isinstance(window, InsufficientHistory):
            return window

        state = self.get_pool_state(pool)

        return TwalResult(
            twal=harmonic_mean_liquidity(window, seconds_ago, pool=pool),
            current_liquidity=state.liquidity,
            current_tick=state.tick,
            observations=window,
        )

    def get_token_ratios(self, pool: str) -> TokenRatios:
        state = self.get_pool_state(pool)
        return calculate_token_ratios(
            tick=state.tick,
            sqrt_price_x96=state.sqrt_price_x96,
            token0_decimals=state.token0.decimals,
            token1_decimals=state.token1.decimals,
        )


def get_tick_liquidity_distribution(
    analyzer: PoolAnalyzer, pool: str, word_range: int | None = None
) -> list[LiquidityInfo]:
    return analyzer.get_tick_liquidity_distribution(pool, word_range).ticks


def detect_liquidity_cliffs(
    analyzer: PoolAnalyzer,
    sorted_infos: Sequence[LiquidityInfo],
    starting_liquidity: Liquidity,
    threshold_pct: float | None = None,
) -> list[Cliff]:
    return analyzer.detect_liquidity_cliffs(sorted_infos, starting_liquidity, threshold_pct)


def get_twap(
    analyzer: PoolAnalyzer, pool: str, seconds_ago: int | None = None
) -> TwapResult | InsufficientHistory:
    return analyzer.get_twap(pool, seconds_ago)


def get_twal(
    analyzer: PoolAnalyzer, pool: str, seconds_ago: int | None = None
) -> TwalResult | InsufficientHistory:
    return analyzer.get_twal(pool, seconds_ago)
