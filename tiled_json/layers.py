"""
Layers - tile grids, object groups, images and groups of layers.

=============================================================================
LAYER KINDS
=============================================================================

Every layer record carries a "type" string:

    "tilelayer"    -> TileLayer     grid (or chunks) of tile references
    "objectgroup"  -> ObjectGroup   vector objects
    "imagelayer"   -> ImageLayer    a single image
    "group"        -> GroupLayer    folder of child layers (recursive)

The set is closed; LayerBuilder.build() dispatches on it once and anything else is
an UnknownLayerKindError. Groups own their children exclusively, the model
is a plain tree:

    Layers:
    ├── Background (group)
    │   ├── Sky
    │   └── Mountains
    ├── Ground
    └── Objects

Error context names layers by their group path, e.g. "Background/Sky".

=============================================================================
TILE DATA
=============================================================================

Tile data is a row-major list of raw 32-bit GIDs (top-left origin), written
either as a JSON array or as base64 of little-endian uint32 values,
optionally compressed:

    "data": [1, 2, 0, 2147483653, ...]                    plain array
    "encoding": "base64", "data": "AQAAAAIAAAA..."        base64
    "encoding": "base64", "compression": "zlib", ...      zlib / gzip / zstd

Infinite maps store tile layers as fixed-size chunks instead:

    "chunks": [{"x": -16, "y": 0, "width": 16, "height": 16, "data": [...]}]

Each raw GID is decoded and resolved against the map's tilesets. 0 is the
empty cell and becomes None.

=============================================================================
"""

import base64
import binascii
import gzip
import zlib
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np
import zstandard

from . import constants
from .errors import (
    InconsistentLayerDataError, MalformedInputError,
    UnknownLayerKindError, UnsupportedFeatureError,
)
from .gid import MAX_RAW_GID
from .logging_config import get_logger
from .objects import MapObject, build_object
from .properties import Color, Properties, empty_properties, parse_color, resolve_properties
from .raw import RawChunk, RawLayer
from .tileset import TileRef, TilesetIndex

logger = get_logger('layers')


class LayerKind(str, Enum):
    TILE = constants.LAYER_TILE
    OBJECTS = constants.LAYER_OBJECTS
    IMAGE = constants.LAYER_IMAGE
    GROUP = constants.LAYER_GROUP


# =============================================================================
# MODEL
# =============================================================================

@dataclass(frozen=True)
class BaseLayer:
    """Attributes shared by all layer kinds."""
    name: str                                        # Layer name
    id: int = 0                                      # Unique layer ID
    class_name: str = ""
    visible: bool = True                             # Is layer rendered?
    opacity: float = 1.0                             # 0.0 - 1.0
    offsetx: float = 0                               # X pixel offset
    offsety: float = 0                               # Y pixel offset
    parallaxx: float = 1.0                           # Parallax X factor
    parallaxy: float = 1.0                           # Parallax Y factor
    tintcolor: Optional[Color] = None
    properties: Properties = field(default_factory=empty_properties)


@dataclass(frozen=True)
class Chunk:
    """A width x height block of an infinite tile layer at origin (x, y)."""
    x: int
    y: int
    width: int
    height: int
    tiles: Tuple[Optional[TileRef], ...] = ()

    def tile_at(self, x: int, y: int) -> Optional[TileRef]:
        """Tile at map coordinates (x, y), None if empty or outside."""
        local_x, local_y = x - self.x, y - self.y
        if 0 <= local_x < self.width and 0 <= local_y < self.height:
            return self.tiles[local_y * self.width + local_x]
        return None


@dataclass(frozen=True)
class TileLayer(BaseLayer):
    """
    Grid of tile references.

    Finite maps fill `tiles` (width * height cells, row-major). Infinite
    maps fill `chunks`, keyed by chunk origin; width/height then describe
    the layer's bounding box starting at (startx, starty).
    """
    kind: ClassVar[LayerKind] = LayerKind.TILE

    width: int = 0                                   # Width in tiles
    height: int = 0                                  # Height in tiles
    tiles: Tuple[Optional[TileRef], ...] = ()
    infinite: bool = False
    chunks: Mapping[Tuple[int, int], Chunk] = field(default_factory=lambda: MappingProxyType({}))
    startx: int = 0
    starty: int = 0
    encoding: str = constants.ENCODING_CSV
    compression: str = ""

    def tile_at(self, x: int, y: int) -> Optional[TileRef]:
        """
        Get the tile at column x, row y.

        Returns None for empty cells and for positions outside the layer
        (or outside every chunk).
        """
        if self.infinite:
            if not self.chunks:
                return None
            chunk_width, chunk_height = self.chunk_size
            origin = (x - x % chunk_width, y - y % chunk_height)
            chunk = self.chunks.get(origin)
            return chunk.tile_at(x, y) if chunk is not None else None
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.tiles[y * self.width + x]
        return None

    @property
    def chunk_size(self) -> Tuple[int, int]:
        for chunk in self.chunks.values():
            return chunk.width, chunk.height
        return 0, 0

    def iter_tiles(self) -> Iterator[Tuple[int, int, TileRef]]:
        """Yield (x, y, ref) for every non-empty cell."""
        if self.infinite:
            for chunk in self.chunks.values():
                for index, ref in enumerate(chunk.tiles):
                    if ref is not None:
                        yield chunk.x + index % chunk.width, chunk.y + index // chunk.width, ref
        else:
            for index, ref in enumerate(self.tiles):
                if ref is not None:
                    yield index % self.width, index // self.width, ref


@dataclass(frozen=True)
class ObjectGroup(BaseLayer):
    kind: ClassVar[LayerKind] = LayerKind.OBJECTS

    objects: Tuple[MapObject, ...] = ()
    draworder: str = "topdown"
    color: Optional[Color] = None

    def get_object_by_id(self, object_id: int) -> Optional[MapObject]:
        for obj in self.objects:
            if obj.id == object_id:
                return obj
        return None


@dataclass(frozen=True)
class ImageLayer(BaseLayer):
    kind: ClassVar[LayerKind] = LayerKind.IMAGE

    image: str = ""
    imagewidth: Optional[int] = None
    imageheight: Optional[int] = None
    transparentcolor: Optional[Color] = None
    repeatx: bool = False
    repeaty: bool = False


@dataclass(frozen=True)
class GroupLayer(BaseLayer):
    kind: ClassVar[LayerKind] = LayerKind.GROUP

    # Recursive: can contain any layer kind, including more groups
    layers: Tuple['Layer', ...] = ()


Layer = Union[TileLayer, ObjectGroup, ImageLayer, GroupLayer]


# =============================================================================
# TILE DATA DECODING
# =============================================================================

def _check_gid_list(values: List[Any], path: str, layer: str) -> np.ndarray:
    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_RAW_GID:
            raise InconsistentLayerDataError(
                f"cell {index} holds {value!r}, expected an unsigned 32-bit tile reference",
                path=path, layer=layer)
    return np.array(values, dtype=np.uint32)


def _decompress(payload: bytes, compression: str, expected_bytes: int,
                path: str, layer: str) -> bytes:
    try:
        if compression == "zlib":
            return zlib.decompress(payload)
        if compression == "gzip":
            return gzip.decompress(payload)
        if compression == "zstd":
            decompressor = zstandard.ZstdDecompressor()
            # max_output_size=0 means "trust the frame header", which may omit the size
            if expected_bytes > 0:
                return decompressor.decompress(payload, max_output_size=expected_bytes)
            return decompressor.decompressobj().decompress(payload)
    except (zlib.error, OSError, EOFError, zstandard.ZstdError) as e:
        raise InconsistentLayerDataError(
            f"{compression} tile data could not be decompressed: {e}",
            path=path, layer=layer) from e
    return payload


def decode_tile_data(data: Union[List[Any], str], encoding: str, compression: str,
                     expected_count: int, path: str, layer: str) -> np.ndarray:
    """
    Turn layer or chunk "data" into a flat uint32 array of raw GIDs.

    Parameters:
    -----------
    data : list or str
        JSON array of GIDs, or base64 text when encoding is "base64"
    encoding, compression : str
        As declared on the layer ("" when absent)
    expected_count : int
        width * height; any other cell count is an error
    """
    data_path = f"{path}.data"

    if encoding not in ("",) + constants.ENCODINGS:
        raise UnsupportedFeatureError(f"unsupported tile data encoding '{encoding}'",
                                      path=path, layer=layer)
    if compression not in constants.COMPRESSIONS:
        raise UnsupportedFeatureError(f"unsupported tile data compression '{compression}'",
                                      path=path, layer=layer)

    if encoding == constants.ENCODING_BASE64:
        if not isinstance(data, str):
            raise InconsistentLayerDataError("base64 encoding declared but data is not a string",
                                             path=data_path, layer=layer)
        try:
            payload = base64.b64decode(data.strip(), validate=True)
        except binascii.Error as e:
            raise InconsistentLayerDataError(f"invalid base64 tile data: {e}",
                                             path=data_path, layer=layer) from e

        payload = _decompress(payload, compression, expected_count * 4, data_path, layer)

        if len(payload) % 4:
            raise InconsistentLayerDataError(
                f"tile data is {len(payload)} bytes, not a multiple of 4",
                path=data_path, layer=layer)
        # Each tile is 4 bytes (little-endian uint32)
        gids = np.frombuffer(payload, dtype="<u4").astype(np.uint32)
    else:
        if compression:
            raise InconsistentLayerDataError(
                f"compression '{compression}' requires base64 encoding",
                path=path, layer=layer)
        if not isinstance(data, list):
            raise InconsistentLayerDataError("tile data must be an array without base64 encoding",
                                             path=data_path, layer=layer)
        gids = _check_gid_list(data, data_path, layer)

    if gids.size != expected_count:
        raise InconsistentLayerDataError(
            f"expected {expected_count} tiles, got {gids.size}",
            path=data_path, layer=layer)
    return gids


# =============================================================================
# BUILDERS
# =============================================================================

def _layer_label(raw: RawLayer, parent: str) -> str:
    return f"{parent}/{raw.name}" if parent else raw.name


def _common_fields(raw: RawLayer, label: str) -> dict:
    if not 0.0 <= raw.opacity <= 1.0:
        raise MalformedInputError(f"opacity must be within [0, 1], got {raw.opacity}",
                                  path=raw.path, layer=label)
    return dict(
        name=raw.name,
        id=raw.id,
        class_name=raw.class_,
        visible=raw.visible,
        opacity=raw.opacity,
        offsetx=raw.offsetx,
        offsety=raw.offsety,
        parallaxx=raw.parallaxx,
        parallaxy=raw.parallaxy,
        tintcolor=parse_color(raw.tintcolor, MalformedInputError, path=raw.path, layer=label),
        properties=resolve_properties(raw.properties, path=raw.path, layer=label),
    )


class LayerBuilder:
    """
    Builds layers for one map.

    Holds what every layer needs to know about its map: the tileset index
    for resolving tile references and whether the map is infinite.
    """

    def __init__(self, tilesets: TilesetIndex, infinite: bool = False):
        self.tilesets = tilesets
        self.infinite = infinite
        self._builders = {
            LayerKind.TILE: self._build_tile_layer,
            LayerKind.OBJECTS: self._build_object_group,
            LayerKind.IMAGE: self._build_image_layer,
            LayerKind.GROUP: self._build_group,
        }

    def build(self, raw: RawLayer, parent: str = "") -> Layer:
        label = _layer_label(raw, parent)
        try:
            kind = LayerKind(raw.type)
        except ValueError:
            raise UnknownLayerKindError(f"unknown layer type '{raw.type}'",
                                        path=raw.path, layer=label) from None
        layer = self._builders[kind](raw, label)
        logger.debug(f"Built {kind.value} '{label}'")
        return layer

    # -------------------------------------------------------------------------
    # TILE LAYER
    # -------------------------------------------------------------------------

    def _build_tile_layer(self, raw: RawLayer, label: str) -> TileLayer:
        encoding = raw.encoding or ""
        compression = raw.compression or ""

        if raw.chunks is not None and not self.infinite:
            raise InconsistentLayerDataError("chunked tile data in a map that is not infinite",
                                             path=raw.path, layer=label)
        if self.infinite and raw.chunks is None:
            raise InconsistentLayerDataError("infinite map tile layer has no chunks",
                                             path=raw.path, layer=label)

        if raw.width is None or raw.height is None:
            raise MalformedInputError("tile layer needs width and height",
                                      path=raw.path, layer=label)
        if raw.width < 0 or raw.height < 0:
            raise MalformedInputError(
                f"tile layer size must not be negative, got {raw.width}x{raw.height}",
                path=raw.path, layer=label)

        common = _common_fields(raw, label)

        if self.infinite:
            chunks = self._build_chunks(raw.chunks, encoding, compression, label)
            return TileLayer(
                **common,
                width=raw.width,
                height=raw.height,
                infinite=True,
                chunks=MappingProxyType(chunks),
                startx=raw.startx,
                starty=raw.starty,
                encoding=encoding or constants.ENCODING_CSV,
                compression=compression,
            )

        if raw.data is None:
            raise MalformedInputError("missing required field 'data'",
                                      path=f"{raw.path}.data", layer=label)
        gids = decode_tile_data(raw.data, encoding, compression,
                                raw.width * raw.height, raw.path, label)
        return TileLayer(
            **common,
            width=raw.width,
            height=raw.height,
            tiles=self.tilesets.resolve_array(gids, path=f"{raw.path}.data", layer=label),
            encoding=encoding or constants.ENCODING_CSV,
            compression=compression,
        )

    def _build_chunks(self, raw_chunks: List[RawChunk], encoding: str, compression: str,
                      label: str) -> dict:
        chunks = {}
        size = None
        for raw in raw_chunks:
            if raw.width <= 0 or raw.height <= 0:
                raise InconsistentLayerDataError(
                    f"chunk size must be positive, got {raw.width}x{raw.height}",
                    path=raw.path, layer=label)
            if size is None:
                size = (raw.width, raw.height)
            elif (raw.width, raw.height) != size:
                raise InconsistentLayerDataError(
                    f"chunk is {raw.width}x{raw.height}, layer chunks are {size[0]}x{size[1]}",
                    path=raw.path, layer=label)
            if raw.x % raw.width or raw.y % raw.height:
                raise InconsistentLayerDataError(
                    f"chunk origin ({raw.x}, {raw.y}) is not aligned to the chunk size",
                    path=raw.path, layer=label)
            if (raw.x, raw.y) in chunks:
                raise InconsistentLayerDataError(
                    f"duplicate chunk at ({raw.x}, {raw.y})", path=raw.path, layer=label)

            gids = decode_tile_data(raw.data, encoding, compression,
                                    raw.width * raw.height, raw.path, label)
            chunks[(raw.x, raw.y)] = Chunk(
                x=raw.x,
                y=raw.y,
                width=raw.width,
                height=raw.height,
                tiles=self.tilesets.resolve_array(gids, path=f"{raw.path}.data", layer=label),
            )
        return chunks

    # -------------------------------------------------------------------------
    # OBJECT GROUP
    # -------------------------------------------------------------------------

    def _build_object_group(self, raw: RawLayer, label: str) -> ObjectGroup:
        if raw.draworder not in constants.DRAW_ORDERS:
            raise MalformedInputError(f"unknown draworder '{raw.draworder}'",
                                      path=raw.path, layer=label)
        return ObjectGroup(
            **_common_fields(raw, label),
            objects=tuple(build_object(obj, self.tilesets, layer=label) for obj in raw.objects),
            draworder=raw.draworder,
            color=parse_color(raw.color, MalformedInputError, path=raw.path, layer=label),
        )

    # -------------------------------------------------------------------------
    # IMAGE LAYER
    # -------------------------------------------------------------------------

    def _build_image_layer(self, raw: RawLayer, label: str) -> ImageLayer:
        return ImageLayer(
            **_common_fields(raw, label),
            image=raw.image or "",
            imagewidth=raw.imagewidth,
            imageheight=raw.imageheight,
            transparentcolor=parse_color(raw.transparentcolor, MalformedInputError,
                                         path=raw.path, layer=label),
            repeatx=raw.repeatx,
            repeaty=raw.repeaty,
        )

    # -------------------------------------------------------------------------
    # GROUP
    # -------------------------------------------------------------------------

    def _build_group(self, raw: RawLayer, label: str) -> GroupLayer:
        return GroupLayer(
            **_common_fields(raw, label),
            layers=tuple(self.build(child, parent=label) for child in raw.layers),
        )
