from poolscope.constants import MAX_UINT256, MIN_UINT256
from poolscope.exceptions import EVMRevertError
from poolscope.uniswap.v3_libraries.functions import mulmod


def muldiv(
    a: int,
    b: int,
    denominator: int,
) -> int:
    """
    Calculate a * b / denominator, rounding down.

    The Solidity implementation uses a 512-bit intermediate product to avoid overflow. Python
    integers have no bit depth limitation, so this function only checks that the inputs and the
    result are valid uint256 values.

    ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/FullMath.sol
    """

    for name, value in (("a", a), ("b", b), ("denominator", denominator)):
        if not (MIN_UINT256 <= value <= MAX_UINT256):
            raise EVMRevertError(error=f"Invalid value for {name}.")

    if denominator == 0:
        raise EVMRevertError(error="DIVISION BY ZERO")

    result = (a * b) // denominator

    if not (MIN_UINT256 <= result <= MAX_UINT256):
        raise EVMRevertError(error="Invalid result, does not fit in uint256")

    return result


def muldiv_rounding_up(a: int, b: int, denominator: int) -> int:
    result = muldiv(a, b, denominator)
    if mulmod(a, b, denominator) > 0:
        # must be less than max uint256 since we're rounding up
        if not (MIN_UINT256 <= result < MAX_UINT256):
            raise EVMRevertError(error="FAIL!")
        return result + 1
    return result
