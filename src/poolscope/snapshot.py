"""
In-memory pool state, loadable from JSON, served through the `ChainStateAccessor` protocol.

Large integers may be given as JSON numbers or as decimal (or 0x-prefixed hex) strings.
"""

import pathlib
from collections.abc import Iterable, Mapping, Sequence
from typing import Annotated, Any

import pydantic
from eth_typing import ChecksumAddress

from poolscope.bitmap import encode_ticks
from poolscope.checksum_cache import get_checksum_address
from poolscope.exceptions import ChainReadFailure, EVMRevertError, ObservationTooOld
from poolscope.tokens import StaticTokenMetadataProvider
from poolscope.types import Observation, PoolBase, TickRecord, TokenInfo
from poolscope.types.aliases import BitmapWord, Tick, Word
from poolscope.uniswap.v3_libraries import oracle


def _parse_int(value: Any) -> Any:
    if isinstance(value, str):
        return int(value, 0)
    return value


type JsonInt = Annotated[int, pydantic.BeforeValidator(_parse_int)]


class SnapshotToken(pydantic.BaseModel, frozen=True):
    address: ChecksumAddress
    symbol: str
    name: str = ""
    decimals: int
    price_usd: float | None = None

    @pydantic.field_validator("address", mode="before")
    @classmethod
    def checksum_address(cls, address: str) -> ChecksumAddress:
        return get_checksum_address(address)

    def to_token_info(self) -> TokenInfo:
        return TokenInfo(
            address=self.address,
            symbol=self.symbol,
            name=self.name,
            decimals=self.decimals,
            price_usd=self.price_usd,
        )


class SnapshotTick(pydantic.BaseModel, frozen=True):
    tick: int
    liquidity_net: JsonInt
    liquidity_gross: JsonInt
    initialized: bool | None = None

    @property
    def is_initialized(self) -> bool:
        return self.initialized if self.initialized is not None else self.liquidity_gross != 0


class SnapshotObservation(pydantic.BaseModel, frozen=True):
    block_timestamp: int
    tick_cumulative: JsonInt
    seconds_per_liquidity_cumulative_x128: JsonInt
    initialized: bool = True


class PoolSnapshot(pydantic.BaseModel, frozen=True):
    """
    The state of a single pool at one block.

    `observations` is the oracle's ring buffer in storage order, with `observation_index` pointing
    to the most recently written slot. `failed_words` and `failed_ticks` simulate reads that fail.
    """

    address: ChecksumAddress
    token0: SnapshotToken
    token1: SnapshotToken
    sqrt_price_x96: JsonInt
    tick: int
    tick_spacing: int
    liquidity: JsonInt
    ticks: list[SnapshotTick] = pydantic.Field(default_factory=list)
    block_timestamp: int = 0
    observations: list[SnapshotObservation] = pydantic.Field(default_factory=list)
    observation_index: int = 0
    failed_words: frozenset[int] = frozenset()
    failed_ticks: frozenset[int] = frozenset()

    @pydantic.field_validator("address", mode="before")
    @classmethod
    def checksum_address(cls, address: str) -> ChecksumAddress:
        return get_checksum_address(address)


_SNAPSHOTS_ADAPTER: pydantic.TypeAdapter[PoolSnapshot | list[PoolSnapshot]] = (
    pydantic.TypeAdapter(PoolSnapshot | list[PoolSnapshot])
)


def load_snapshots(path: pathlib.Path) -> list[PoolSnapshot]:
    """
    Load a single snapshot or a list of snapshots from a JSON file.
    """

    loaded = _SNAPSHOTS_ADAPTER.validate_json(path.read_bytes())
    return loaded if isinstance(loaded, list) else [loaded]


class SnapshotChainStateAccessor:
    def __init__(self, snapshots: Iterable[PoolSnapshot]) -> None:
        self._snapshots: dict[ChecksumAddress, PoolSnapshot] = {
            snapshot.address: snapshot for snapshot in snapshots
        }
        self._bitmaps: dict[ChecksumAddress, dict[Word, BitmapWord]] = {}
        self._ticks: dict[ChecksumAddress, dict[Tick, SnapshotTick]] = {}

    @classmethod
    def from_file(cls, path: pathlib.Path) -> "SnapshotChainStateAccessor":
        return cls(load_snapshots(path))

    def token_provider(
        self, prices_usd: Mapping[str, float] | None = None
    ) -> StaticTokenMetadataProvider:
        """
        A metadata provider for the tokens held by the snapshot pools. Prices in `prices_usd`
        take precedence over those stored in the snapshots.
        """

        return StaticTokenMetadataProvider(
            tokens=(
                token.to_token_info()
                for snapshot in self._snapshots.values()
                for token in (snapshot.token0, snapshot.token1)
            ),
            prices_usd=prices_usd,
        )

    def _get_snapshot(self, pool: ChecksumAddress, operation: str) -> PoolSnapshot:
        try:
            return self._snapshots[get_checksum_address(pool)]
        except KeyError:
            raise ChainReadFailure(
                pool=pool, operation=operation, reason="no snapshot for this pool"
            ) from None

    def _get_ticks(self, snapshot: PoolSnapshot) -> dict[Tick, SnapshotTick]:
        if snapshot.address not in self._ticks:
            self._ticks[snapshot.address] = {tick.tick: tick for tick in snapshot.ticks}
        return self._ticks[snapshot.address]

    def _get_bitmap(self, snapshot: PoolSnapshot) -> dict[Word, BitmapWord]:
        if snapshot.address not in self._bitmaps:
            self._bitmaps[snapshot.address] = encode_ticks(
                (tick.tick for tick in snapshot.ticks if tick.is_initialized),
                snapshot.tick_spacing,
            )
        return self._bitmaps[snapshot.address]

    def read_pool_base(self, pool: ChecksumAddress) -> PoolBase:
        snapshot = self._get_snapshot(pool, "base state")
        return PoolBase(
            sqrt_price_x96=snapshot.sqrt_price_x96,
            tick=snapshot.tick,
            liquidity=snapshot.liquidity,
            tick_spacing=snapshot.tick_spacing,
            token0=snapshot.token0.address,
            token1=snapshot.token1.address,
        )

    def read_bitmap_words(
        self, pool: ChecksumAddress, words: Iterable[Word]
    ) -> dict[Word, BitmapWord | None]:
        snapshot = self._get_snapshot(pool, "tickBitmap")
        bitmap = self._get_bitmap(snapshot)
        return {
            word: None if word in snapshot.failed_words else bitmap.get(word, 0) for word in words
        }

    def read_ticks(
        self, pool: ChecksumAddress, ticks: Iterable[Tick]
    ) -> dict[Tick, TickRecord | None]:
        snapshot = self._get_snapshot(pool, "ticks")
        stored_ticks = self._get_ticks(snapshot)

        records: dict[Tick, TickRecord | None] = {}
        for tick in ticks:
            if tick in snapshot.failed_ticks:
                records[tick] = None
            elif (stored := stored_ticks.get(tick)) is not None:
                records[tick] = TickRecord(
                    tick=tick,
                    liquidity_net=stored.liquidity_net,
                    liquidity_gross=stored.liquidity_gross,
                    initialized=stored.is_initialized,
                )
            else:
                # The pool contract returns an empty struct for ticks that were never initialized
                records[tick] = TickRecord(
                    tick=tick, liquidity_net=0, liquidity_gross=0, initialized=False
                )
        return records

    def read_observations(
        self, pool: ChecksumAddress, seconds_agos: Sequence[int]
    ) -> list[Observation]:
        snapshot = self._get_snapshot(pool, "observe")

        try:
            tick_cumulatives, seconds_per_liquidity_cumulatives = oracle.observe(
                observations=[
                    oracle.OracleObservation(
                        block_timestamp=observation.block_timestamp,
                        tick_cumulative=observation.tick_cumulative,
                        seconds_per_liquidity_cumulative_x128=(
                            observation.seconds_per_liquidity_cumulative_x128
                        ),
                        initialized=observation.initialized,
                    )
                    for observation in snapshot.observations
                ],
                time=snapshot.block_timestamp,
                seconds_agos=seconds_agos,
                tick=snapshot.tick,
                index=snapshot.observation_index,
                liquidity=snapshot.liquidity,
            )
        except EVMRevertError as exc:
            if exc.error == "OLD":
                raise ObservationTooOld(pool=pool, seconds_ago=max(seconds_agos)) from exc
            raise ChainReadFailure(pool=pool, operation="observe", reason=str(exc)) from exc
        except pydantic.ValidationError as exc:
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
