import dataclasses
import functools
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import pydantic
from pydantic import HttpUrl, WebsocketUrl
from web3 import HTTPProvider, IPCProvider, LegacyWebSocketProvider, Web3

from poolscope.accessor import Web3ChainStateAccessor
from poolscope.analyzer import PoolAnalyzer
from poolscope.config import Settings, get_settings
from poolscope.exceptions import PoolscopeError, PoolscopeValueError
from poolscope.serialization import to_jsonable
from poolscope.snapshot import SnapshotChainStateAccessor
from poolscope.tokens import Web3TokenMetadataProvider

_ENDPOINT_ADAPTER: pydantic.TypeAdapter[HttpUrl | WebsocketUrl | Path] = pydantic.TypeAdapter(
    HttpUrl | WebsocketUrl | Path
)


@dataclasses.dataclass
class CliContext:
    config_path: Path | None
    rpc: str | None
    chain_id: int
    snapshot: Path | None

    @functools.cached_property
    def settings(self) -> Settings:
        return get_settings(self.config_path)


def get_web3(endpoint: HttpUrl | WebsocketUrl | Path) -> Web3:
    match endpoint:
        case HttpUrl():
            return Web3(HTTPProvider(str(endpoint)))
        case WebsocketUrl():
            return Web3(LegacyWebSocketProvider(str(endpoint)))
        case Path():
            return Web3(IPCProvider(str(endpoint)))
        case _:
            raise PoolscopeValueError(message=f"Unsupported RPC endpoint {endpoint!r}")


def build_analyzer(context: CliContext) -> PoolAnalyzer:
    settings = context.settings

    if context.snapshot is not None:
        accessor = SnapshotChainStateAccessor.from_file(context.snapshot)
        return PoolAnalyzer(
            accessor=accessor,
            token_provider=accessor.token_provider(prices_usd=settings.token_prices_usd),
            settings=settings.analyzer,
        )

    if context.rpc is not None:
        endpoint = _ENDPOINT_ADAPTER.validate_python(context.rpc)
    elif (configured := settings.rpc.get(context.chain_id)) is not None:
        endpoint = configured
    else:
        raise PoolscopeValueError(
            message=(
                f"No RPC endpoint given and chain ID {context.chain_id} does not have an RPC "
                "defined in the config file"
            )
        )

    w3 = get_web3(endpoint)
    return PoolAnalyzer(
        accessor=Web3ChainStateAccessor(
            w3=w3,
            batch_size=settings.analyzer.multicall_batch_size,
        ),
        token_provider=Web3TokenMetadataProvider(w3=w3, prices_usd=settings.token_prices_usd),
        settings=settings.analyzer,
    )


def echo_json(value: Any) -> None:
    click.echo(json.dumps(to_jsonable(value), indent=2))


def handle_errors(func: Callable[..., None]) -> Callable[..., None]:
    """
    Report package exceptions as a structured JSON response on stderr with a non-zero exit code.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except PoolscopeError as exc:
            click.echo(json.dumps(exc.as_response()), err=True)
            raise SystemExit(1) from exc

    return wrapper
