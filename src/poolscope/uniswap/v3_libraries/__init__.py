from . import full_math as FullMath
from . import oracle as Oracle
from . import sqrt_price_math as SqrtPriceMath
from . import tick_bitmap as TickBitmap
from . import tick_math as TickMath
from . import unsafe_math as UnsafeMath

__all__ = (
    "FullMath",
    "Oracle",
    "SqrtPriceMath",
    "TickBitmap",
    "TickMath",
    "UnsafeMath",
)
