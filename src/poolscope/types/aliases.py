type BlockNumber = int
type ChainId = int
type Liquidity = int
type LiquidityGross = int
type LiquidityNet = int
type SqrtPriceX96 = int
type Tick = int
type Word = int
type BitmapWord = int
