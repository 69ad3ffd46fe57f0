"""
tiled_json - decoder for Tiled JSON maps with embedded tilesets.

    import tiled_json

    level = tiled_json.load("level1.json")
    for layer in level.get_all_layers_flat():
        print(layer.name)

Requisites:
    pip install numpy zstandard
"""

from .errors import (
    ParseError, MalformedInputError, UnsupportedFeatureError, UnsupportedTilesetError,
    InvalidTilesetError, InvalidPropertyError, UnknownLayerKindError,
    InconsistentLayerDataError, UnresolvedTileReferenceError, OverlappingTilesetRangesError,
)
from .gid import DecodedGid, decode as decode_gid, encode as encode_gid
from .layers import (
    BaseLayer, Chunk, GroupLayer, ImageLayer, Layer, LayerKind, ObjectGroup, TileLayer,
)
from .objects import MapObject, ObjectKind, Point, Text
from .properties import Color, Property, PropertyType
from .tiled_map import (
    Orientation, RenderOrder, StaggerAxis, StaggerIndex, TiledMap, load, parse,
)
from .tileset import Frame, Image, Tile, TileRef, Tileset, TilesetIndex

__version__ = "0.1.0"
__all__ = [
    "parse",
    "load",
    "TiledMap",
    "Orientation",
    "RenderOrder",
    "StaggerAxis",
    "StaggerIndex",
    "Tileset",
    "TilesetIndex",
    "Tile",
    "TileRef",
    "Frame",
    "Image",
    "Layer",
    "LayerKind",
    "BaseLayer",
    "TileLayer",
    "Chunk",
    "ObjectGroup",
    "ImageLayer",
    "GroupLayer",
    "MapObject",
    "ObjectKind",
    "Point",
    "Text",
    "Color",
    "Property",
    "PropertyType",
    "DecodedGid",
    "decode_gid",
    "encode_gid",
    "ParseError",
    "MalformedInputError",
    "UnsupportedFeatureError",
    "UnsupportedTilesetError",
    "InvalidTilesetError",
    "InvalidPropertyError",
    "UnknownLayerKindError",
    "InconsistentLayerDataError",
    "UnresolvedTileReferenceError",
    "OverlappingTilesetRangesError",
]
