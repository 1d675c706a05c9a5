import tomllib
from pathlib import Path

import tomlkit
from pydantic import BaseModel, Field, HttpUrl, WebsocketUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from poolscope.checksum_cache import get_checksum_address
from poolscope.logging import logger
from poolscope.types.aliases import ChainId

CONFIG_DIR = Path.home() / ".config" / "poolscope"
CONFIG_FILE = CONFIG_DIR / "config.toml"


class AnalyzerSettings(BaseModel, frozen=True):
    # Bitmap words scanned on each side of the word holding the current tick
    word_range: int = Field(default=10, ge=0)
    # Relative change in available liquidity between adjacent ticks that counts as a cliff
    cliff_threshold_pct: float = Field(default=0.2, ge=0)
    twap_seconds: int = Field(default=60, gt=0)
    # USD unit price assumed for tokens without a known price. This default has no documented
    # basis and valuations that depend on it should not be trusted.
    fallback_price_usd: float = Field(default=0.1, ge=0)
    multicall_batch_size: int = Field(default=4096, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="POOLSCOPE_",
        env_nested_delimiter="__",
    )

    rpc: dict[
        ChainId,
        HttpUrl | WebsocketUrl | Path,
    ] = Field(default_factory=dict)
    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)
    token_prices_usd: dict[str, float] = Field(default_factory=dict)

    @field_validator("rpc", mode="after")
    def validate_paths(
        cls,  # noqa: N805
        rpc_dict: dict[ChainId, HttpUrl | WebsocketUrl | Path],
    ) -> dict[ChainId, HttpUrl | WebsocketUrl | Path]:
        """
        Validate the endpoints.

        This will convert all file paths to an absolute reference, leaving HTTP and WS URLs as-is.
        """

        return {
            chain_id: endpoint.expanduser().absolute() if isinstance(endpoint, Path) else endpoint
            for chain_id, endpoint in rpc_dict.items()
        }

    @field_validator("token_prices_usd", mode="after")
    def checksum_token_addresses(
        cls,  # noqa: N805
        prices: dict[str, float],
    ) -> dict[str, float]:
        return {get_checksum_address(address): price for address, price in prices.items()}


def load_config_from_file(config_path: Path) -> Settings:
    return Settings.model_validate(
        tomllib.loads(
            config_path.read_text(),
        ),
    )


def save_config_to_file(config: Settings, config_path: Path = CONFIG_FILE) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        tomlkit.dumps(
            config.model_dump(mode="json"),
        ),
    )
    logger.info(f"Saved configuration to {config_path}.")


def get_settings(config_path: Path | None = None) -> Settings:
    """
    Load the settings from `config_path`, or the default configuration file. Defaults are used if
    the file does not exist, in which case `POOLSCOPE_` prefixed environment variables are also
    applied, e.g. `POOLSCOPE_ANALYZER__WORD_RANGE=5`.
    """

    if config_path is None:
        config_path = CONFIG_FILE

    if config_path.exists():
        return load_config_from_file(config_path)

    logger.debug(f"No configuration file at {config_path}, using defaults.")
    return Settings()
