"""
GID codec - packing and unpacking of 32-bit tile references.

=============================================================================
BIT LAYOUT
=============================================================================

Every tile cell (and every tile object) stores one unsigned 32-bit value:

    bit 31        bit 30        bit 29        bits 28..0
    +-------------+-------------+-------------+---------------------------+
    | horizontal  |  vertical   |  diagonal   |     global tile id        |
    |    flip     |    flip     |    flip     |                           |
    +-------------+-------------+-------------+---------------------------+

The diagonal flag swaps x and y; combined with the other two it expresses
the 90 degree rotations the editor offers:

    rotate 90 cw   = diagonal + horizontal
    rotate 180     = horizontal + vertical
    rotate 90 ccw  = diagonal + vertical

A raw value of 0 is the empty cell. It decodes to tile id 0 with no flags
and must never be looked up in a tileset.

=============================================================================
"""

from typing import NamedTuple, Tuple

import numpy as np


FLIPPED_HORIZONTALLY = 1 << 31
FLIPPED_VERTICALLY = 1 << 30
FLIPPED_DIAGONALLY = 1 << 29

FLAG_MASK = FLIPPED_HORIZONTALLY | FLIPPED_VERTICALLY | FLIPPED_DIAGONALLY
TILE_ID_MASK = ~FLAG_MASK & 0xFFFFFFFF

MAX_RAW_GID = 0xFFFFFFFF
EMPTY_GID = 0


class DecodedGid(NamedTuple):
    """Result of decode(); unpacks as (tile_id, h_flip, v_flip, d_flip)."""
    tile_id: int
    flipped_horizontally: bool
    flipped_vertically: bool
    flipped_diagonally: bool


def decode(raw: int) -> DecodedGid:
    """
    Split a raw 32-bit tile reference into tile id and flip flags.

    Every value in [0, 2**32) is a valid input. Whether the tile id belongs
    to a tileset is the caller's business.
    """
    if not 0 <= raw <= MAX_RAW_GID:
        raise ValueError(f"raw gid {raw} is not an unsigned 32-bit value")
    return DecodedGid(
        raw & TILE_ID_MASK,
        bool(raw & FLIPPED_HORIZONTALLY),
        bool(raw & FLIPPED_VERTICALLY),
        bool(raw & FLIPPED_DIAGONALLY),
    )


def encode(tile_id: int, flipped_horizontally: bool = False,
           flipped_vertically: bool = False, flipped_diagonally: bool = False) -> int:
    """Inverse of decode(): encode(*decode(v)) == v."""
    if not 0 <= tile_id <= TILE_ID_MASK:
        raise ValueError(f"tile id {tile_id} does not fit in 29 bits")
    raw = tile_id
    if flipped_horizontally:
        raw |= FLIPPED_HORIZONTALLY
    if flipped_vertically:
        raw |= FLIPPED_VERTICALLY
    if flipped_diagonally:
        raw |= FLIPPED_DIAGONALLY
    return raw


def decode_array(raw: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorised decode() over a uint32 array.

    Returns (tile_ids, h_flips, v_flips, d_flips) with the same shape as
    the input; flag arrays are boolean.
    """
    raw = np.asarray(raw, dtype=np.uint32)
    tile_ids = raw & np.uint32(TILE_ID_MASK)
    return (
        tile_ids,
        (raw & np.uint32(FLIPPED_HORIZONTALLY)) != 0,
        (raw & np.uint32(FLIPPED_VERTICALLY)) != 0,
        (raw & np.uint32(FLIPPED_DIAGONALLY)) != 0,
    )
