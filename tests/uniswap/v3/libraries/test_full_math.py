import pytest

from poolscope.constants import MAX_UINT256
from poolscope.exceptions import EVMRevertError
from poolscope.uniswap.v3_libraries.constants import Q128
from poolscope.uniswap.v3_libraries.full_math import muldiv, muldiv_rounding_up

# Tests adapted from Typescript tests on Uniswap V3 Github repo
# ref: https://github.com/Uniswap/v3-core/blob/main/test/FullMath.spec.ts


def test_muldiv() -> None:
    with pytest.raises(EVMRevertError):
        # this test should fail
        muldiv(Q128, 5, 0)

    with pytest.raises(EVMRevertError):
        # this test should fail
        muldiv(Q128, Q128, 0)

    with pytest.raises(EVMRevertError):
        # this test should fail
        muldiv(Q128, Q128, 1)

    with pytest.raises(EVMRevertError):
        # this test should fail
        muldiv(MAX_UINT256, MAX_UINT256, MAX_UINT256 - 1)

    assert muldiv(MAX_UINT256, MAX_UINT256, MAX_UINT256) == MAX_UINT256

    assert (
        muldiv(
            Q128,
            50 * Q128 // 100,  # 0.5x
            150 * Q128 // 100,  # 1.5x
        )
        == Q128 // 3
    )

    assert muldiv(Q128, 35 * Q128, 8 * Q128) == 4375 * Q128 // 1000

    assert (
        muldiv(
            Q128,
            1000 * Q128,
            3000 * Q128,
        )
        == Q128 // 3
    )

    with pytest.raises(EVMRevertError):
        muldiv(-1, Q128, Q128)

    with pytest.raises(EVMRevertError):
        muldiv(Q128, -1, Q128)


def test_muldiv_rounding_up() -> None:
    with pytest.raises(EVMRevertError):
        muldiv_rounding_up(Q128, 5, 0)

    with pytest.raises(EVMRevertError):
        # overflows after rounding up
        muldiv_rounding_up(
            535006138814359,
            432862656469423142931042426214547535783388063929571229938474969,
            2,
        )

    assert muldiv_rounding_up(MAX_UINT256, MAX_UINT256, MAX_UINT256) == MAX_UINT256

    assert (
        muldiv_rounding_up(
            Q128,
            50 * Q128 // 100,
            150 * Q128 // 100,
        )
        == Q128 // 3 + 1
    )

    assert muldiv_rounding_up(Q128, 35 * Q128, 8 * Q128) == 4375 * Q128 // 1000
