"""
Tilesets and tile reference resolution.

=============================================================================
GID RANGES
=============================================================================

Each tileset owns a contiguous range of global tile ids starting at its
firstgid:

    Tileset A (firstgid=1,  tilecount=4):  GIDs 1..4
    Tileset B (firstgid=5,  tilecount=8):  GIDs 5..12

    GID 0 = empty tile (no graphic)
    GID 6 = tile 1 of B (6 - 5 = 1)

A tile id belongs to the tileset with the greatest firstgid <= id, and only
if it is below that tileset's firstgid + tilecount. TilesetIndex does this
lookup by binary search over the sorted first gids.

=============================================================================
TILESET TYPES
=============================================================================

1. SPRITESHEET: one image cut into a grid. The tile count follows from
   the image size:

       columns = (imagewidth  - 2*margin + spacing) // (tilewidth  + spacing)
       rows    = (imageheight - 2*margin + spacing) // (tileheight + spacing)

2. IMAGE COLLECTION: no tileset image, each tile carries its own. The
   tile count must be declared explicitly.

Only embedded tilesets are supported. A tileset referenced by file path
({"firstgid": 1, "source": "terrain.tsx"}) is rejected.

=============================================================================
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from . import gid as gid_codec
from .errors import (
    InvalidTilesetError, OverlappingTilesetRangesError,
    UnresolvedTileReferenceError, UnsupportedTilesetError,
)
from .logging_config import get_logger
from .objects import MapObject, build_object
from .properties import Color, Properties, empty_properties, parse_color, resolve_properties
from .raw import RawTile, RawTileset

logger = get_logger('tileset')


# =============================================================================
# MODEL
# =============================================================================

class Frame(NamedTuple):
    """One animation frame: local tile id shown for duration milliseconds."""
    tileid: int
    duration: int


@dataclass(frozen=True)
class Image:
    source: str                                      # Path, relative to the map
    width: int                                       # Pixels
    height: int


@dataclass(frozen=True)
class Tile:
    """
    Metadata for one tile of a tileset.

    Only tiles with something to say (properties, animation, collision,
    their own image) appear in Tileset.tiles.
    """
    id: int                                          # Local tile ID
    type: str = ""
    probability: float = 1.0
    image: Optional[Image] = None                    # Collection tilesets only
    animation: Tuple[Frame, ...] = ()
    collision: Optional[Tuple[MapObject, ...]] = None
    properties: Properties = field(default_factory=empty_properties)


@dataclass(frozen=True)
class Tileset:
    firstgid: int                                    # First Global ID
    name: str
    tilewidth: int                                   # Tile width in pixels
    tileheight: int
    tilecount: int
    columns: int = 0                                 # 0 for image collections
    spacing: int = 0                                 # Pixels between tiles
    margin: int = 0                                  # Pixels around edge
    image: Optional[Image] = None                    # Spritesheet image
    transparentcolor: Optional[Color] = None
    tileoffset: Tuple[int, int] = (0, 0)
    class_name: str = ""
    tiles: Mapping[int, Tile] = field(default_factory=lambda: MappingProxyType({}))
    properties: Properties = field(default_factory=empty_properties)

    @property
    def end_gid(self) -> int:
        """First gid past this tileset's range."""
        return self.firstgid + self.tilecount

    @property
    def is_collection(self) -> bool:
        return self.image is None

    def contains(self, tile_id: int) -> bool:
        return self.firstgid <= tile_id < self.end_gid

    def get_tile(self, local_id: int) -> Optional[Tile]:
        return self.tiles.get(local_id)


@dataclass(frozen=True)
class TileRef:
    """
    A resolved, non-empty tile cell.

    tileset is the index of the owning tileset in TiledMap.tilesets
    (declaration order); tile_id is local to that tileset.
    """
    gid: int                                         # Raw value incl. flag bits
    tileset: int
    tile_id: int
    flipped_horizontally: bool = False
    flipped_vertically: bool = False
    flipped_diagonally: bool = False


# =============================================================================
# NORMALIZER
# =============================================================================

def _implied_grid(raw: RawTileset) -> Tuple[int, int]:
    columns = (raw.imagewidth - 2 * raw.margin + raw.spacing) // (raw.tilewidth + raw.spacing)
    rows = (raw.imageheight - 2 * raw.margin + raw.spacing) // (raw.tileheight + raw.spacing)
    return max(columns, 0), max(rows, 0)


def _build_tile(raw: RawTile, tilecount: int, tileset_name: str) -> Tile:
    context = dict(path=raw.path, tileset=tileset_name)

    if not 0 <= raw.id < tilecount:
        raise InvalidTilesetError(
            f"tile id {raw.id} outside tileset of {tilecount} tiles", **context)

    image = None
    if raw.image:
        if (raw.imagewidth or 0) <= 0 or (raw.imageheight or 0) <= 0:
            raise InvalidTilesetError(
                f"tile {raw.id} image '{raw.image}' needs positive dimensions", **context)
        image = Image(raw.image, raw.imagewidth, raw.imageheight)

    frames = []
    for frame in raw.animation:
        if not 0 <= frame.tileid < tilecount:
            raise InvalidTilesetError(
                f"animation of tile {raw.id} references tile {frame.tileid} "
                f"outside tileset of {tilecount} tiles", **context)
        if frame.duration < 0:
            raise InvalidTilesetError(
                f"animation of tile {raw.id} has negative duration", **context)
        frames.append(Frame(frame.tileid, frame.duration))

    collision = None
    if raw.objectgroup is not None:
        collision = tuple(build_object(obj) for obj in raw.objectgroup.objects)

    return Tile(
        id=raw.id,
        type=raw.type,
        probability=raw.probability,
        image=image,
        animation=tuple(frames),
        collision=collision,
        properties=resolve_properties(raw.properties, path=raw.path, tileset=tileset_name),
    )


def build_tileset(raw: RawTileset) -> Tileset:
    """
    Validate an embedded tileset block and build a Tileset.

    Raises UnsupportedTilesetError for external references and
    InvalidTilesetError for inconsistent geometry or tile metadata.
    """
    if raw.source is not None:
        raise UnsupportedTilesetError(
            f"external tileset '{raw.source}' is not supported, embed it in the map",
            path=raw.path, tileset=raw.source)

    context = dict(path=raw.path, tileset=raw.name)

    if raw.firstgid < 1:
        raise InvalidTilesetError(f"firstgid must be at least 1, got {raw.firstgid}", **context)
    if raw.tilewidth <= 0 or raw.tileheight <= 0:
        raise InvalidTilesetError(
            f"tile size must be positive, got {raw.tilewidth}x{raw.tileheight}", **context)
    if raw.spacing < 0 or raw.margin < 0:
        raise InvalidTilesetError("spacing and margin must not be negative", **context)

    # -----------------------------------------------------------------
    # TILE COUNT
    # -----------------------------------------------------------------
    image = None
    if raw.image:
        if raw.imagewidth is None or raw.imageheight is None:
            raise InvalidTilesetError(
                f"image '{raw.image}' declared without its dimensions", **context)
        if raw.imagewidth <= 0 or raw.imageheight <= 0:
            raise InvalidTilesetError(
                f"image '{raw.image}' has non-positive size "
                f"{raw.imagewidth}x{raw.imageheight}", **context)
        image = Image(raw.image, raw.imagewidth, raw.imageheight)

        implied_columns, rows = _implied_grid(raw)
        columns = raw.columns if raw.columns is not None else implied_columns
        if columns < 0:
            raise InvalidTilesetError(f"columns must not be negative, got {columns}", **context)
        expected = columns * rows
        if raw.tilecount is not None and raw.tilecount != expected:
            raise InvalidTilesetError(
                f"tilecount {raw.tilecount} does not match {columns} columns "
                f"x {rows} rows", **context)
        tilecount = expected
    else:
        if raw.tilecount is None:
            raise InvalidTilesetError(
                "image collection tileset must declare tilecount", **context)
        if raw.tilecount < 0:
            raise InvalidTilesetError(
                f"tilecount must not be negative, got {raw.tilecount}", **context)
        tilecount = raw.tilecount
        columns = raw.columns or 0

    # -----------------------------------------------------------------
    # PER-TILE METADATA
    # -----------------------------------------------------------------
    tiles = {}
    for raw_tile in raw.tiles:
        tile = _build_tile(raw_tile, tilecount, raw.name)
        if tile.id in tiles:
            raise InvalidTilesetError(f"tile {tile.id} defined twice",
                                      path=raw_tile.path, tileset=raw.name)
        tiles[tile.id] = tile

    tileset = Tileset(
        firstgid=raw.firstgid,
        name=raw.name,
        tilewidth=raw.tilewidth,
        tileheight=raw.tileheight,
        tilecount=tilecount,
        columns=columns,
        spacing=raw.spacing,
        margin=raw.margin,
        image=image,
        transparentcolor=parse_color(raw.transparentcolor, InvalidTilesetError, **context),
        tileoffset=raw.tileoffset,
        class_name=raw.class_,
        tiles=MappingProxyType(tiles),
        properties=resolve_properties(raw.properties, path=raw.path, tileset=raw.name),
    )
    logger.debug(f"Tileset '{tileset.name}': gids {tileset.firstgid}..{tileset.end_gid - 1}")
    return tileset


# =============================================================================
# RANGE INDEX
# =============================================================================

class TilesetIndex:
    """
    Sorted view over a map's tilesets for GID -> tileset resolution.

    Construction checks that no two GID ranges overlap. Lookups are
    binary searches over first gids, scalar (bisect) or over whole tile
    layers at once (numpy.searchsorted).
    """

    def __init__(self, tilesets: Sequence[Tileset]):
        self.tilesets = tuple(tilesets)
        self._order = sorted(range(len(self.tilesets)),
                             key=lambda i: self.tilesets[i].firstgid)

        for prev_i, next_i in zip(self._order, self._order[1:]):
            prev, nxt = self.tilesets[prev_i], self.tilesets[next_i]
            if nxt.firstgid < prev.end_gid or nxt.firstgid == prev.firstgid:
                raise OverlappingTilesetRangesError(
                    f"tileset '{nxt.name}' (gids {nxt.firstgid}..{nxt.end_gid - 1}) overlaps "
                    f"'{prev.name}' (gids {prev.firstgid}..{prev.end_gid - 1})",
                    path=f"tilesets[{next_i}]", tileset=nxt.name)

        self._first_gids: List[int] = [self.tilesets[i].firstgid for i in self._order]
        self._first_array = np.array(self._first_gids, dtype=np.int64)
        self._end_array = np.array([self.tilesets[i].end_gid for i in self._order],
                                   dtype=np.int64)

    def __len__(self) -> int:
        return len(self.tilesets)

    def _owner(self, tile_id: int) -> Optional[int]:
        pos = bisect_right(self._first_gids, tile_id) - 1
        if pos < 0:
            return None
        index = self._order[pos]
        if tile_id >= self.tilesets[index].end_gid:
            return None
        return index

    def resolve(self, raw_gid: int, *, path: Optional[str] = None,
                layer: Optional[str] = None) -> Optional[TileRef]:
        """
        Resolve one raw 32-bit value. Returns None for the empty cell (0).

        Raises UnresolvedTileReferenceError when the tile id falls outside
        every tileset.
        """
        tile_id, h_flip, v_flip, d_flip = gid_codec.decode(raw_gid)
        if tile_id == gid_codec.EMPTY_GID:
            return None
        index = self._owner(tile_id)
        if index is None:
            raise UnresolvedTileReferenceError(
                f"tile id {tile_id} is not owned by any tileset",
                path=path, layer=layer, gid=raw_gid)
        return TileRef(
            gid=raw_gid,
            tileset=index,
            tile_id=tile_id - self.tilesets[index].firstgid,
            flipped_horizontally=h_flip,
            flipped_vertically=v_flip,
            flipped_diagonally=d_flip,
        )

    def resolve_array(self, raw: np.ndarray, *, path: Optional[str] = None,
                      layer: Optional[str] = None) -> Tuple[Optional[TileRef], ...]:
        """
        Resolve a flat uint32 array of raw values, preserving order.

        Each distinct raw value is resolved once and its TileRef shared by
        every cell holding it. The error for an unresolvable value names the
        first offending cell in array order.
        """
        raw = np.asarray(raw, dtype=np.uint32).ravel()
        if raw.size == 0:
            return ()

        unique, inverse = np.unique(raw, return_inverse=True)
        tile_ids = gid_codec.decode_array(unique)[0].astype(np.int64)

        positions = np.searchsorted(self._first_array, tile_ids, side="right") - 1
        owned = positions >= 0
        if len(self._first_gids):
            ends = self._end_array[np.clip(positions, 0, None)]
            owned &= tile_ids < ends
        else:
            owned[:] = False
        bad = (tile_ids != gid_codec.EMPTY_GID) & ~owned

        if bad.any():
            cell = int(np.argmax(np.isin(raw, unique[bad])))
            offending = int(raw[cell])
            raise UnresolvedTileReferenceError(
                f"tile id {offending & gid_codec.TILE_ID_MASK} at cell {cell} "
                f"is not owned by any tileset",
                path=path, layer=layer, gid=offending)

        refs = [self.resolve(int(value)) for value in unique]
        return tuple(refs[i] for i in inverse.ravel())
