"""
Decoding of the pool's tick initialization bitmap.

Each 256-bit word of the bitmap flags the initialized ticks of a contiguous range of compressed
ticks. Bit `b` of word `w` corresponds to tick `(w * 256 + b) * tick_spacing`.
"""

import dataclasses
from collections.abc import Iterable, Mapping

from poolscope.constants import MAX_UINT256
from poolscope.exceptions import PoolscopeValueError
from poolscope.logging import logger
from poolscope.types.aliases import BitmapWord, Tick, Word
from poolscope.uniswap.v3_libraries import tick_bitmap
from poolscope.uniswap.v3_libraries.tick_math import MAX_TICK, MIN_TICK


@dataclasses.dataclass(slots=True, frozen=True)
class BitmapScan:
    ticks: list[Tick]
    failed_words: tuple[Word, ...]
    nonzero_words: int


def compress_tick(tick: Tick, tick_spacing: int) -> int:
    return tick_bitmap.compress(tick, tick_spacing)


def position(compressed_tick: int) -> tuple[Word, int]:
    return tick_bitmap.position(compressed_tick)


def set_bits(bitmap: BitmapWord) -> list[int]:
    """
    Return the positions of the set bits in a bitmap word, in ascending order.
    """

    if not (0 <= bitmap <= MAX_UINT256):
        raise PoolscopeValueError(message=f"Bitmap word {bitmap} is not a valid uint256 value")

    bits = []
    while bitmap:
        lowest = bitmap & -bitmap
        bits.append(lowest.bit_length() - 1)
        bitmap ^= lowest
    return bits


def ticks_in_word(word: Word, bitmap: BitmapWord, tick_spacing: int) -> list[Tick]:
    return [((word << 8) + bit) * tick_spacing for bit in set_bits(bitmap)]


def word_range(current_tick: Tick, tick_spacing: int, radius: int) -> range:
    """
    The bitmap word positions within `radius` words of the word holding the current tick,
    inclusive on both ends. Words that cannot hold a tick between MIN_TICK and MAX_TICK are
    excluded.
    """

    if radius < 0:
        raise PoolscopeValueError(message=f"Word range must be non-negative, got {radius}")

    current_word, _ = position(compress_tick(current_tick, tick_spacing))
    min_word, _ = position(compress_tick(MIN_TICK, tick_spacing))
    max_word, _ = position(compress_tick(MAX_TICK, tick_spacing))
    return range(max(current_word - radius, min_word), min(current_word + radius, max_word) + 1)


def decode_initialized_ticks(
    words: Mapping[Word, BitmapWord | None],
    tick_spacing: int,
    current_tick: Tick,
) -> BitmapScan:
    """
    Translate a set of bitmap words into an ascending list of initialized ticks.

    A `None` word represents a failed read. It contributes no ticks and is reported in
    `failed_words`. The current tick is always included, whether or not it is initialized.
    """

    ticks: set[Tick] = {current_tick}
    failed_words = []
    nonzero_words = 0

    for word, bitmap in sorted(words.items()):
        if bitmap is None:
            logger.warning(f"Bitmap word {word} could not be read, ticks in this word are omitted")
            failed_words.append(word)
            continue
        if bitmap == 0:
            continue

        nonzero_words += 1
        word_ticks = ticks_in_word(word, bitmap, tick_spacing)
        logger.debug(f"Word {word}: {len(word_ticks)} initialized ticks")
        ticks.update(word_ticks)

    return BitmapScan(
        ticks=sorted(ticks),
        failed_words=tuple(failed_words),
        nonzero_words=nonzero_words,
    )


def encode_ticks(ticks: Iterable[Tick], tick_spacing: int) -> dict[Word, BitmapWord]:
    """
    Build the bitmap words flagging the given ticks. Duplicate ticks are flagged once.
    """

    bitmap: dict[Word, BitmapWord] = {}
    for tick in set(ticks):
        tick_bitmap.flip_tick(bitmap, tick, tick_spacing)
    return bitmap
