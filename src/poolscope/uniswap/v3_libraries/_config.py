# Maximum number of entries held by the memoized fixed-point functions
V3_LIB_CACHE_SIZE = 4096
