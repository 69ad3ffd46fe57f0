"""
Map assembly - the entry point turning a Tiled JSON document into a TiledMap.

=============================================================================
PIPELINE
=============================================================================

    bytes / text / stream
        │  json.loads                       MalformedInputError
        v
    dict ──RawMap.from_json──> RawMap       MalformedInputError
        │
        │  1. map attributes                UnsupportedFeatureError,
        │                                   MalformedInputError
        │  2. tilesets (build_tileset)      UnsupportedTilesetError,
        │                                   InvalidTilesetError
        │  3. GID ranges (TilesetIndex)     OverlappingTilesetRangesError
        │  4. layers (LayerBuilder)         UnknownLayerKindError,
        │                                   InconsistentLayerDataError,
        │                                   UnresolvedTileReferenceError
        v
    TiledMap (immutable)

Every step is a hard gate: the first error propagates to the caller and no
partial map is ever returned. The pipeline keeps no state between calls, so
parsing the same bytes always gives an equal map or the same error, and
separate parse() calls may run on separate threads.

=============================================================================
USAGE
=============================================================================

    import tiled_json

    level = tiled_json.load("level1.json")
    print(f"Map size: {level.width}x{level.height}")

    ground = level.get_layer_by_name("Ground")
    ref = ground.tile_at(5, 10)
    if ref is not None:
        tileset = level.tileset_for(ref)

=============================================================================
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Any, Iterator, List, Optional, Tuple, Union

from . import constants
from .errors import MalformedInputError, UnsupportedFeatureError, UnsupportedTilesetError
from .layers import GroupLayer, Layer, LayerBuilder
from .logging_config import get_logger
from .properties import Color, Properties, empty_properties, parse_color, resolve_properties
from .raw import RawMap
from .tileset import Tile, TileRef, Tileset, TilesetIndex, build_tileset

logger = get_logger('map')


class Orientation(str, Enum):
    ORTHOGONAL = "orthogonal"
    ISOMETRIC = "isometric"
    STAGGERED = "staggered"
    HEXAGONAL = "hexagonal"


class RenderOrder(str, Enum):
    RIGHT_DOWN = "right-down"
    RIGHT_UP = "right-up"
    LEFT_DOWN = "left-down"
    LEFT_UP = "left-up"


class StaggerAxis(str, Enum):
    X = "x"
    Y = "y"


class StaggerIndex(str, Enum):
    ODD = "odd"
    EVEN = "even"


Source = Union[bytes, bytearray, str, IO[Any]]


# =============================================================================
# TILED MAP CLASS
# =============================================================================

@dataclass(frozen=True)
class TiledMap:
    """
    Complete Tiled map - the root of the decoded model.

    Contains:
    - Map metadata (size, orientation, tile size)
    - Tilesets in declaration order (each owning a GID range)
    - Layers as a tree (groups hold their children)
    - Custom properties

    Tile references in layers point at tilesets by index into `tilesets`;
    use tileset_for() / get_tile() to follow them.
    """
    orientation: Orientation
    renderorder: RenderOrder
    width: int                                       # Map width in tiles
    height: int                                      # Map height in tiles
    tilewidth: int                                   # Tile width in pixels
    tileheight: int                                  # Tile height in pixels
    version: str = ""                                # Format version
    tiledversion: str = ""                           # Editor version
    infinite: bool = False
    hexsidelength: Optional[int] = None              # Hexagonal maps only
    staggeraxis: Optional[StaggerAxis] = None
    staggerindex: Optional[StaggerIndex] = None
    backgroundcolor: Optional[Color] = None
    nextlayerid: int = 0
    nextobjectid: int = 0
    class_name: str = ""
    parallaxoriginx: float = 0
    parallaxoriginy: float = 0
    tilesets: Tuple[Tileset, ...] = ()
    layers: Tuple[Layer, ...] = ()
    properties: Properties = field(default_factory=empty_properties)

    @classmethod
    def parse(cls, source: Source) -> 'TiledMap':
        return parse(source)

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> 'TiledMap':
        return load(filepath)

    @property
    def pixel_width(self) -> int:
        return self.width * self.tilewidth

    @property
    def pixel_height(self) -> int:
        return self.height * self.tileheight

    def tileset_for(self, ref: TileRef) -> Tileset:
        """Tileset owning a resolved tile reference."""
        return self.tilesets[ref.tileset]

    def get_tile(self, ref: TileRef) -> Optional[Tile]:
        """Per-tile metadata for a reference, None if the tile has none."""
        return self.tilesets[ref.tileset].get_tile(ref.tile_id)

    def get_layer_by_name(self, name: str) -> Optional[Layer]:
        """
        Find a layer by name (searches recursively through groups).

        Returns the first match in depth-first declaration order.
        """
        for layer in self.iter_layers():
            if layer.name == name:
                return layer
        return None

    def iter_layers(self) -> Iterator[Layer]:
        """All layers depth-first, groups before their children."""
        def walk(layers):
            for layer in layers:
                yield layer
                if isinstance(layer, GroupLayer):
                    yield from walk(layer.layers)

        return walk(self.layers)

    def get_all_layers_flat(self) -> List[Layer]:
        """All non-group layers in a flat list (groups expanded)."""
        return [layer for layer in self.iter_layers() if not isinstance(layer, GroupLayer)]


# =============================================================================
# ASSEMBLER
# =============================================================================

def _parse_version(version: str) -> Optional[Tuple[int, ...]]:
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError:
        return None


def _check_version(version: str):
    if not version:
        return
    parsed = _parse_version(version)
    if parsed is None:
        logger.warning(f"Unrecognized map format version '{version}', parsing anyway")
    elif parsed > constants.LATEST_FORMAT_VERSION:
        latest = ".".join(str(part) for part in constants.LATEST_FORMAT_VERSION)
        logger.warning(f"Map format version {version} is newer than {latest}, parsing anyway")


def _enum_value(enum_cls, value: str, what: str, key: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise UnsupportedFeatureError(f"unsupported {what} '{value}'", path=key) from None


def assemble(raw: RawMap) -> TiledMap:
    """Validate a raw map and build the finished TiledMap."""

    # -----------------------------------------------------------------
    # MAP ATTRIBUTES
    # -----------------------------------------------------------------
    if raw.type != "map":
        raise UnsupportedFeatureError(f"document type '{raw.type}' is not a map", path="type")

    _check_version(raw.version)

    orientation = _enum_value(Orientation, raw.orientation, "orientation", "orientation")
    renderorder = _enum_value(RenderOrder, raw.renderorder or constants.DEFAULT_RENDER_ORDER,
                              "render order", "renderorder")
    staggeraxis = None
    if raw.staggeraxis is not None:
        staggeraxis = _enum_value(StaggerAxis, raw.staggeraxis, "stagger axis", "staggeraxis")
    staggerindex = None
    if raw.staggerindex is not None:
        staggerindex = _enum_value(StaggerIndex, raw.staggerindex, "stagger index", "staggerindex")

    for key in ("width", "height", "tilewidth", "tileheight"):
        value = getattr(raw, key)
        if value <= 0:
            raise MalformedInputError(f"map {key} must be positive, got {value}", path=key)

    if orientation is Orientation.HEXAGONAL:
        if raw.hexsidelength is None:
            raise MalformedInputError("hexagonal map needs hexsidelength", path="hexsidelength")
        if raw.hexsidelength < 0:
            raise MalformedInputError(
                f"hexsidelength must not be negative, got {raw.hexsidelength}",
                path="hexsidelength")

    backgroundcolor = parse_color(raw.backgroundcolor, MalformedInputError, path="backgroundcolor")
    properties = resolve_properties(raw.properties, path="properties")

    # -----------------------------------------------------------------
    # TILESETS
    # -----------------------------------------------------------------
    # External references fail the whole map, whatever else is wrong
    for raw_tileset in raw.tilesets:
        if raw_tileset.source is not None:
            raise UnsupportedTilesetError(
                f"external tileset '{raw_tileset.source}' is not supported, embed it in the map",
                path=raw_tileset.path, tileset=raw_tileset.source)

    tilesets = [build_tileset(raw_tileset) for raw_tileset in raw.tilesets]
    index = TilesetIndex(tilesets)

    # -----------------------------------------------------------------
    # LAYERS
    # -----------------------------------------------------------------
    builder = LayerBuilder(index, infinite=raw.infinite)
    layers = tuple(builder.build(raw_layer) for raw_layer in raw.layers)

    tiled_map = TiledMap(
        orientation=orientation,
        renderorder=renderorder,
        width=raw.width,
        height=raw.height,
        tilewidth=raw.tilewidth,
        tileheight=raw.tileheight,
        version=raw.version,
        tiledversion=raw.tiledversion,
        infinite=raw.infinite,
        hexsidelength=raw.hexsidelength,
        staggeraxis=staggeraxis,
        staggerindex=staggerindex,
        backgroundcolor=backgroundcolor,
        nextlayerid=raw.nextlayerid,
        nextobjectid=raw.nextobjectid,
        class_name=raw.class_,
        parallaxoriginx=raw.parallaxoriginx,
        parallaxoriginy=raw.parallaxoriginy,
        tilesets=index.tilesets,
        layers=layers,
        properties=properties,
    )
    logger.debug(f"Parsed {orientation.value} map {raw.width}x{raw.height} with "
                 f"{len(tilesets)} tilesets and {len(layers)} top-level layers")
    return tiled_map


# =============================================================================
# ENTRY POINTS
# =============================================================================

def _reject_constant(name: str):
    raise MalformedInputError(f"invalid JSON number '{name}'")


def decode_json(source: Source) -> Any:
    """Generic JSON decode of bytes, text or a readable stream."""
    if hasattr(source, "read"):
        source = source.read()
    if not isinstance(source, (bytes, bytearray, str)):
        raise TypeError(f"cannot parse a map from {type(source).__name__}")
    try:
        return json.loads(source, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"invalid JSON: {e.msg}",
                                  lineno=e.lineno, colno=e.colno, pos=e.pos) from e
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"input is not valid UTF-8/16/32 text: {e.reason}",
                                  pos=e.start) from e


def parse(source: Source) -> TiledMap:
    """
    Parse a Tiled JSON map with embedded tilesets.

    Parameters:
    -----------
    source : bytes, str, or readable stream
        The whole map document. Streams are read to the end but not closed;
        the caller owns them.

    Returns:
    --------
    TiledMap : the decoded map

    Raises:
    -------
    ParseError : (a subclass of) on any malformed or unsupported input.
        Nesting deeper than the interpreter's recursion limit (hundreds of
        group layers) is reported as MalformedInputError.
    """
    try:
        return assemble(RawMap.from_json(decode_json(source)))
    except RecursionError:
        raise MalformedInputError("document is nested too deeply to decode") from None


def load(filepath: Union[str, Path]) -> TiledMap:
    """
    Load a map file from disk.

    Raises FileNotFoundError / OSError from opening the file, ParseError
    from parsing it.
    """
    with open(filepath, 'rb') as f:
        return parse(f)
