# QR rendering
QR_MIN_SIDE = 200        # px; lower bound for the requested QR side length
QR_SIDE_DIVISOR = 3      # requested side = min(width, height) // 3
QR_QUIET_ZONE_MODULES = 4

# Default colors (CSS syntax, RGBA hex)
DEFAULT_FG_COLOR = "#000000ff"
DEFAULT_BG_COLOR = "#ffffffff"

# Output naming
MERGED_SUFFIX = "_merged"
OVERLAY_EXTENSION = "png"

# ZIP DOS timestamp range (year is stored as a 7-bit offset from 1980)
DOS_MIN_DATE_TIME = (1980, 1, 1, 0, 0, 0)
DOS_MAX_DATE_TIME = (2107, 12, 31, 23, 59, 58)

AES_KEY_BITS = 256
