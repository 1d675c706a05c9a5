from .checksum_cache import get_checksum_address
from .logging import logger
from .version import __version__

# isort: split

from . import (
    accessor,
    accumulator,
    amounts,
    bitmap,
    cliffs,
    config,
    constants,
    exceptions,
    functions,
    serialization,
    snapshot,
    tokens,
    twap,
    types,
    uniswap,
    validation,
)
from .accessor import ChainStateAccessor, Web3ChainStateAccessor
from .analyzer import (
    PoolAnalyzer,
    detect_liquidity_cliffs,
    get_tick_liquidity_distribution,
    get_twal,
    get_twap,
)
from .config import AnalyzerSettings, Settings, get_settings
from .snapshot import PoolSnapshot, SnapshotChainStateAccessor
from .tokens import StaticTokenMetadataProvider, TokenMetadataProvider, Web3TokenMetadataProvider
from .types import (
    Cliff,
    InsufficientHistory,
    LiquidityDistribution,
    LiquidityInfo,
    Observation,
    PoolState,
    TickRecord,
    TokenInfo,
    TokenRatios,
    TwalResult,
    TwapResult,
)

__all__ = (
    "AnalyzerSettings",
    "ChainStateAccessor",
    "Cliff",
    "InsufficientHistory",
    "LiquidityDistribution",
    "LiquidityInfo",
    "Observation",
    "PoolAnalyzer",
    "PoolSnapshot",
    "PoolState",
    "Settings",
    "SnapshotChainStateAccessor",
    "StaticTokenMetadataProvider",
    "TickRecord",
    "TokenInfo",
    "TokenMetadataProvider",
    "TokenRatios",
    "TwalResult",
    "TwapResult",
    "Web3ChainStateAccessor",
    "Web3TokenMetadataProvider",
    "__version__",
    "accessor",
    "accumulator",
    "amounts",
    "bitmap",
    "cliffs",
    "config",
    "constants",
    "detect_liquidity_cliffs",
    "exceptions",
    "functions",
    "get_checksum_address",
    "get_settings",
    "get_tick_liquidity_distribution",
    "get_twal",
    "get_twap",
    "logger",
    "serialization",
    "snapshot",
    "tokens",
    "twap",
    "types",
    "uniswap",
    "validation",
)
