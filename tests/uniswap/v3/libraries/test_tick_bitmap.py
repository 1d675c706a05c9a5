import pytest

from poolscope.exceptions import PoolscopeValueError
from poolscope.uniswap.v3_libraries.tick_bitmap import compress, flip_tick, position

# Tests adapted from Typescript tests on Uniswap V3 Github repo
# ref: https://github.com/Uniswap/v3-core/blob/main/test/TickBitmap.spec.ts


def is_initialized(tick_bitmap: dict[int, int], tick: int, tick_spacing: int = 1) -> bool:
    word_pos, bit_pos = position(compress(tick, tick_spacing))
    return tick_bitmap.get(word_pos, 0) & (1 << bit_pos) != 0


def test_compress_rounds_towards_negative_infinity() -> None:
    assert compress(0, 10) == 0
    assert compress(9, 10) == 0
    assert compress(10, 10) == 1
    assert compress(-1, 10) == -1
    assert compress(-10, 10) == -1
    assert compress(-11, 10) == -2
    assert compress(-887272, 60) == -14788


def test_compress_rejects_invalid_spacing() -> None:
    with pytest.raises(PoolscopeValueError):
        compress(100, 0)
    with pytest.raises(PoolscopeValueError):
        compress(100, -10)


def test_position() -> None:
    assert position(0) == (0, 0)
    assert position(255) == (0, 255)
    assert position(256) == (1, 0)
    assert position(-1) == (-1, 255)
    assert position(-256) == (-1, 0)
    assert position(-257) == (-2, 255)


def test_is_initialized() -> None:
    tick_bitmap: dict[int, int] = {}
    assert is_initialized(tick_bitmap, 1) is False

    flip_tick(tick_bitmap, tick=1, tick_spacing=1)
    assert is_initialized(tick_bitmap, 1) is True

    flip_tick(tick_bitmap, tick=1, tick_spacing=1)
    assert is_initialized(tick_bitmap, 1) is False

    flip_tick(tick_bitmap, tick=2, tick_spacing=1)
    assert is_initialized(tick_bitmap, 1) is False

    flip_tick(tick_bitmap, tick=1 + 256, tick_spacing=1)
    assert is_initialized(tick_bitmap, 257) is True
    assert is_initialized(tick_bitmap, 1) is False


def test_flip_tick() -> None:
    tick_bitmap: dict[int, int] = {}

    flip_tick(tick_bitmap, tick=-230, tick_spacing=1)
    assert is_initialized(tick_bitmap, -230) is True
    assert is_initialized(tick_bitmap, -231) is False
    assert is_initialized(tick_bitmap, -229) is False
    assert is_initialized(tick_bitmap, -230 + 256) is False
    assert is_initialized(tick_bitmap, -230 - 256) is False

    flip_tick(tick_bitmap, tick=-230, tick_spacing=1)
    assert is_initialized(tick_bitmap, -230) is False

    for tick in (-230, -259, -229, 500, -259, -229, -259):
        flip_tick(tick_bitmap, tick=tick, tick_spacing=1)
    assert is_initialized(tick_bitmap, -259) is True
    assert is_initialized(tick_bitmap, -229) is False


def test_flip_tick_with_spacing() -> None:
    tick_bitmap: dict[int, int] = {}

    flip_tick(tick_bitmap, tick=-60, tick_spacing=60)
    assert tick_bitmap == {-1: 1 << 255}

    with pytest.raises(PoolscopeValueError, match="not correctly spaced"):
        flip_tick(tick_bitmap, tick=-61, tick_spacing=60)
