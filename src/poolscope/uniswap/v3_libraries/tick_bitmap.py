from functools import cache

from poolscope.exceptions import PoolscopeValueError
from poolscope.types.aliases import BitmapWord, Tick, Word


def compress(tick: Tick, tick_spacing: int) -> int:
    """
    Compress a tick to its index in the bitmap, rounding towards negative infinity.

    The pool contract truncates towards zero and then decrements for negative ticks with a
    remainder. Python floor division rounds towards negative infinity already, so it is used
    directly.
    """

    if tick_spacing <= 0:
        raise PoolscopeValueError(message=f"Tick spacing must be positive, got {tick_spacing}")
    return tick // tick_spacing


@cache
def position(compressed: int) -> tuple[Word, int]:
    """
    Computes the position in the tick initialization bitmap for the given compressed tick.

    This function does not account for tick spacing, so ticks must be compressed first.
    """
    return (
        compressed >> 8,  # word_pos
        compressed & 0xFF,  # bit_pos
    )


def flip_tick(
    tick_bitmap: dict[Word, BitmapWord],
    tick: Tick,
    tick_spacing: int,
) -> None:
    """
    Flip the initialized state of a tick in the bitmap, creating an empty word if necessary.
    """

    compressed = compress(tick, tick_spacing)
    if tick % tick_spacing != 0:
        raise PoolscopeValueError(message=f"Tick {tick} not correctly spaced for {tick_spacing}!")

    word_pos, bit_pos = position(compressed)
    tick_bitmap[word_pos] = tick_bitmap.get(word_pos, 0) ^ (1 << bit_pos)
