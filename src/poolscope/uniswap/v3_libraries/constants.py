Q96_RESOLUTION = 96
Q96 = 1 << Q96_RESOLUTION

Q128_RESOLUTION = 128
Q128 = 1 << Q128_RESOLUTION
