"""
Point-in-time readers of concentrated liquidity pool state.

The analyzer depends only on the `ChainStateAccessor` protocol. `Web3ChainStateAccessor` reads from
a node, and `poolscope.snapshot.SnapshotChainStateAccessor` serves the same reads from memory.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol, cast

import eth_abi.abi
from eth_abi.exceptions import DecodingError
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from requests.exceptions import RequestException
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from web3 import Web3
from web3._utils.threads import Timeout
from web3.exceptions import ContractLogicError, ProviderConnectionError, Web3Exception
from web3.types import BlockIdentifier, TxParams

from poolscope.checksum_cache import get_checksum_address
from poolscope.constants import MULTICALL3_ADDRESS
from poolscope.exceptions import ChainReadFailure, ObservationTooOld
from poolscope.functions import encode_function_calldata, raw_call
from poolscope.logging import logger
from poolscope.types import Observation, PoolBase, TickRecord
from poolscope.types.aliases import BitmapWord, Tick, Word

DEFAULT_MULTICALL_BATCH_SIZE = 4096
DEFAULT_MAX_RETRIES = 5


class ChainStateAccessor(Protocol):
    """
    Batched, read-only access to a pool's on-chain state.

    Reads of bitmap words and ticks tolerate failures of individual items, reported as `None`.
    A failed base state read raises `ChainReadFailure`. An oracle read that reaches further back
    than the stored observations raises `ObservationTooOld`.
    """

    def read_pool_base(self, pool: ChecksumAddress) -> PoolBase: ...

    def read_bitmap_words(
        self, pool: ChecksumAddress, words: Iterable[Word]
    ) -> dict[Word, BitmapWord | None]: ...

    def read_ticks(
        self, pool: ChecksumAddress, ticks: Iterable[Tick]
    ) -> dict[Tick, TickRecord | None]: ...

    def read_observations(
        self, pool: ChecksumAddress, seconds_agos: Sequence[int]
    ) -> list[Observation]: ...


class Web3ChainStateAccessor:
    SLOT0_STRUCT_TYPES = (
        "uint160",
        "int24",
        "uint16",
        "uint16",
        "uint16",
        "uint8",
        "bool",
    )
    TICK_STRUCT_TYPES = (
        "uint128",
        "int128",
        "uint256",
        "uint256",
        "int56",
        "uint160",
        "uint32",
        "bool",
    )
    AGGREGATE3_PROTOTYPE = "aggregate3((address,bool,bytes)[])"

    def __init__(
        self,
        w3: Web3,
        multicall_address: str = MULTICALL3_ADDRESS,
        block_identifier: BlockIdentifier | None = None,
        batch_size: int = DEFAULT_MULTICALL_BATCH_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        """
        Args:
            w3: A connected Web3 instance
            multicall_address: The Multicall3 deployment used to batch bitmap and tick reads
            block_identifier: The block to read at, "latest" if omitted. Pin a block number to make
                reads issued across several batches consistent.
            batch_size: The maximum number of calls per multicall
            max_retries: The number of attempts for base state reads before giving up
        """

        self.w3 = w3
        self.multicall_address = get_checksum_address(multicall_address)
        self.block_identifier: BlockIdentifier = (
            block_identifier if block_identifier is not None else "latest"
        )
        self.batch_size = batch_size
        self.max_retries = max_retries

    def _eth_call(self, address: ChecksumAddress, function_prototype: str) -> TxParams:
        return TxParams(
            to=address,
            data=encode_function_calldata(
                function_prototype=function_prototype,
                function_arguments=None,
            ),
        )

    def read_pool_base(self, pool: ChecksumAddress) -> PoolBase:
        retrier = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential_jitter(),
            retry=retry_if_exception_type(
                (Timeout, ProviderConnectionError, RequestException, OSError)
            ),
        )

        try:
            for attempt in retrier:
                with attempt:
                    with self.w3.batch_requests() as batch:
                        # All calls use the same block so the values are consistent
                        for function_prototype in (
                            "slot0()",
                            "liquidity()",
                            "tickSpacing()",
                            "token0()",
                            "token1()",
                        ):
                            batch.add(
                                self.w3.eth.call(
                                    transaction=self._eth_call(pool, function_prototype),
                                    block_identifier=self.block_identifier,
                                )
                            )
                        slot0, liquidity, tick_spacing, token0, token1 = batch.execute()

            sqrt_price_x96, tick, *_ = eth_abi.abi.decode(
                types=self.SLOT0_STRUCT_TYPES, data=cast("HexBytes", slot0)
            )
            (liquidity,) = eth_abi.abi.decode(types=["uint128"], data=cast("HexBytes", liquidity))
            (tick_spacing,) = eth_abi.abi.decode(
                types=["int24"], data=cast("HexBytes", tick_spacing)
            )
            (token0,) = eth_abi.abi.decode(types=["address"], data=cast("HexBytes", token0))
            (token1,) = eth_abi.abi.decode(types=["address"], data=cast("HexBytes", token1))

        except RetryError as exc:
            logger.error(f"Base state read for pool {pool} failed after {self.max_retries} tries")
            raise ChainReadFailure(
                pool=pool,
                operation="base state",
                reason=f"timed out after {self.max_retries} tries",
            ) from exc
        except (DecodingError, Web3Exception, RequestException, OSError) as exc:
            # Contracts differ slightly across Uniswap V3 forks, so decoding may fail
            logger.error(f"Base state read for pool {pool} failed: {exc}")
            raise ChainReadFailure(pool=pool, operation="base state", reason=str(exc)) from exc

        return PoolBase(
            sqrt_price_x96=cast("int", sqrt_price_x96),
            tick=cast("int", tick),
            liquidity=cast("int", liquidity),
            tick_spacing=cast("int", tick_spacing),
            token0=get_checksum_address(token0),
            token1=get_checksum_address(token1),
        )

    def _aggregate(self, calls: Sequence[tuple[ChecksumAddress, bytes]]) -> list[bytes | None]:
        """
        Execute the calls through Multicall3 in chunks, allowing individual calls to fail. The
        return data of a failed call is `None`. If an entire chunk fails, all of its calls are
        marked as failed.
        """

        results: list[bytes | None] = []
        for chunk_start in range(0, len(calls), self.batch_size):
            chunk = calls[chunk_start : chunk_start + self.batch_size]
            try:
                (chunk_results,) = raw_call(
                    w3=self.w3,
                    address=self.multicall_address,
                    calldata=encode_function_calldata(
                        function_prototype=self.AGGREGATE3_PROTOTYPE,
                        function_arguments=[[(target, True, data) for target, data in chunk]],
                    ),
                    return_types=["(bool,bytes)[]"],
                    block_identifier=self.block_identifier,
                )
            except (DecodingError, Web3Exception, RequestException, OSError) as exc:
                logger.warning(f"Multicall of {len(chunk)} calls failed: {exc}")
                results.extend([None] * len(chunk))
                continue

            results.extend(
                bytes(return_data) if success else None for success, return_data in chunk_results
            )

        return results

    def read_bitmap_words(
        self, pool: ChecksumAddress, words: Iterable[Word]
    ) -> dict[Word, BitmapWord | None]:
        words = list(words)
        return_data = self._aggregate(
            [
                (
                    pool,
                    encode_function_calldata(
                        function_prototype="tickBitmap(int16)",
                        function_arguments=[word],
                    ),
                )
                for word in words
            ]
        )

        bitmap: dict[Word, BitmapWord | None] = {}
        for word, data in zip(words, return_data, strict=True):
            if data is None:
                bitmap[word] = None
                continue
            try:
                (bitmap_at_word,) = eth_abi.abi.decode(types=["uint256"], data=data)
            except DecodingError:
                bitmap[word] = None
            else:
                bitmap[word] = cast("int", bitmap_at_word)

        logger.debug(
            f"Read {len(words)} bitmap words for pool {pool}, "
            f"{sum(1 for value in bitmap.values() if value is None)} failed"
        )
        return bitmap

    def read_ticks(
        self, pool: ChecksumAddress, ticks: Iterable[Tick]
    ) -> dict[Tick, TickRecord | None]:
        ticks = list(ticks)
        return_data = self._aggregate(
            [
                (
                    pool,
                    encode_function_calldata(
                        function_prototype="ticks(int24)",
                        function_arguments=[tick],
                    ),
                )
                for tick in ticks
            ]
        )

        records: dict[Tick, TickRecord | None] = {}
        for tick, data in zip(ticks, return_data, strict=True):
            if data is None:
                records[tick] = None
                continue
            try:
                liquidity_gross, liquidity_net, *_, initialized = eth_abi.abi.decode(
                    types=self.TICK_STRUCT_TYPES, data=data
                )
            except DecodingError:
                records[tick] = None
            else:
                records[tick] = TickRecord(
                    tick=tick,
                    liquidity_net=cast("int", liquidity_net),
                    liquidity_gross=cast("int", liquidity_gross),
                    initialized=cast("bool", initialized),
                )

        return records

    def read_observations(
        self, pool: ChecksumAddress, seconds_agos: Sequence[int]
    ) -> list[Observation]:
        try:
            tick_cumulatives, seconds_per_liquidity_cumulatives = raw_call(
                w3=self.w3,
                address=pool,
                calldata=encode_function_calldata(
                    function_prototype="observe(uint32[])",
                    function_arguments=[list(seconds_agos)],
                ),
                return_types=["int56[]", "uint160[]"],
                block_identifier=self.block_identifier,
            )
        except ContractLogicError as exc:
            if "OLD" in str(exc):
                raise ObservationTooOld(pool=pool, seconds_ago=max(seconds_agos)) from exc
            raise ChainReadFailure(pool=pool, operation="observe", reason=str(exc)) from exc
        except (DecodingError, Web3Exception, RequestException, OSError) as exc:
            raise ChainReadFailure(pool=pool, operation="observe", reason=str(exc)) from exc

        return [
            Observation(
                seconds_ago=seconds_ago,
                tick_cumulative=tick_cumulative,
                seconds_per_liquidity_cumulative_x128=seconds_per_liquidity,
            )
            for seconds_ago, tick_cumulative, seconds_per_liquidity in zip(
                seconds_agos, tick_cumulatives, seconds_per_liquidity_cumulatives, strict=True
            )
        ]
