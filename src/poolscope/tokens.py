from collections.abc import Iterable, Mapping
from typing import Protocol, cast

import eth_abi.abi
from eth_abi.exceptions import DecodingError
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception
from web3.types import TxParams

from poolscope.checksum_cache import get_checksum_address
from poolscope.exceptions import ChainReadFailure, PoolscopeValueError
from poolscope.functions import encode_function_calldata
from poolscope.logging import logger
from poolscope.types import TokenInfo


class TokenMetadataProvider(Protocol):
    """
    Supplies the symbol, decimals, and an optional USD unit price for a token address.
    """

    def get_token(self, address: str) -> TokenInfo: ...


def _decode_string(data: bytes) -> str:
    # Some early tokens (e.g. MKR) return a bytes32 instead of a string
    try:
        (value,) = eth_abi.abi.decode(types=["string"], data=data)
        return cast("str", value)
    except DecodingError:
        (value,) = eth_abi.abi.decode(types=["bytes32"], data=data)
        return cast("HexBytes", value).decode("utf-8", errors="ignore").strip("\x00")


class StaticTokenMetadataProvider:
    def __init__(
        self,
        tokens: Iterable[TokenInfo],
        prices_usd: Mapping[str, float] | None = None,
    ) -> None:
        self._tokens: dict[ChecksumAddress, TokenInfo] = {token.address: token for token in tokens}
        self._prices_usd: dict[ChecksumAddress, float] = {
            get_checksum_address(address): price for address, price in (prices_usd or {}).items()
        }

    def get_token(self, address: str) -> TokenInfo:
        address = get_checksum_address(address)
        try:
            token = self._tokens[address]
        except KeyError:
            raise PoolscopeValueError(message=f"No metadata for token {address}") from None

        if address in self._prices_usd:
            return token.model_copy(update={"price_usd": self._prices_usd[address]})
        return token


class Web3TokenMetadataProvider:
    """
    Reads ERC-20 metadata from the chain, caching each token after the first read. USD prices are
    not available on-chain and are taken from `prices_usd` when present.
    """

    def __init__(self, w3: Web3, prices_usd: Mapping[str, float] | None = None) -> None:
        self.w3 = w3
        self._prices_usd: dict[ChecksumAddress, float] = {
            get_checksum_address(address): price for address, price in (prices_usd or {}).items()
        }
        self._cache: dict[ChecksumAddress, TokenInfo] = {}

    def get_name_symbol_decimals_batched(self, address: ChecksumAddress) -> tuple[str, str, int]:
        with self.w3.batch_requests() as batch:
            batch.add_mapping(
                {
                    self.w3.eth.call: [
                        TxParams(
                            to=address,
                            data=encode_function_calldata(
                                function_prototype=function_prototype,
                                function_arguments=None,
                            ),
                        )
                        for function_prototype in ("name()", "symbol()", "decimals()")
                    ]
                }
            )
            name, symbol, decimals = batch.execute()

        (decimals,) = eth_abi.abi.decode(types=["uint256"], data=cast("HexBytes", decimals))
        return (
            _decode_string(cast("HexBytes", name)),
            _decode_string(cast("HexBytes", symbol)),
            cast("int", decimals),
        )

    def get_token(self, address: str) -> TokenInfo:
        address = get_checksum_address(address)

        if address not in self._cache:
            try:
                name, symbol, decimals = self.get_name_symbol_decimals_batched(address)
            except (DecodingError, Web3Exception, RequestException, OSError) as exc:
                logger.error(f"Could not read token metadata for {address}: {exc}")
                raise ChainReadFailure(
                    pool=address, operation="token metadata", reason=str(exc)
                ) from exc

            logger.debug(f"Read token metadata for {address}: {symbol} ({name}), {decimals} dec")
            self._cache[address] = TokenInfo(
                address=address,
                symbol=symbol,
                name=name,
                decimals=decimals,
            )

        token = self._cache[address]
        if address in self._prices_usd:
            return token.model_copy(update={"price_usd": self._prices_usd[address]})
        return token
