"""
Format constants for the Tiled JSON map format.

Values are the literal strings the editor writes; enums in the public model
are built from these.
"""

# Newest format version this package knows about. Newer maps are still
# parsed, with a warning.
LATEST_FORMAT_VERSION = (1, 11)

# =============================================================================
# MAP
# =============================================================================

DEFAULT_RENDER_ORDER = "right-down"

# =============================================================================
# LAYERS
# =============================================================================

LAYER_TILE = "tilelayer"
LAYER_OBJECTS = "objectgroup"
LAYER_IMAGE = "imagelayer"
LAYER_GROUP = "group"

DRAW_ORDERS = ("topdown", "index")

# Tile data encodings. An absent encoding means a plain JSON array, which the
# editor labels "csv".
ENCODING_CSV = "csv"
ENCODING_BASE64 = "base64"
ENCODINGS = (ENCODING_CSV, ENCODING_BASE64)

# Compression only applies to base64 data; "" means uncompressed.
COMPRESSIONS = ("", "zlib", "gzip", "zstd")

# =============================================================================
# TEXT OBJECTS
# =============================================================================

TEXT_HALIGN = ("left", "center", "right", "justify")
TEXT_VALIGN = ("top", "center", "bottom")
