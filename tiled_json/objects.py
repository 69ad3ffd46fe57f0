"""
Map objects - vector shapes placed in object groups.

=============================================================================
OBJECT KINDS
=============================================================================

The JSON format has no "kind" field. The kind follows from which shape keys
an object carries, checked in this order:

    "gid"       -> TILE       tile graphic placed at (x, y)
    "point"     -> POINT      position only
    "ellipse"   -> ELLIPSE    bounded by x, y, width, height
    "polygon"   -> POLYGON    closed outline, points relative to (x, y)
    "polyline"  -> POLYLINE   open outline, points relative to (x, y)
    "text"      -> TEXT       text box of width x height
    (none)      -> RECTANGLE

The same builder is used for objects in object layers and for collision
shapes attached to tiles. Collision shapes have no tilesets to resolve
against, so they cannot be tile objects.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Optional, Tuple

from . import constants
from .errors import MalformedInputError, UnresolvedTileReferenceError, UnsupportedFeatureError
from .gid import MAX_RAW_GID
from .properties import Color, Properties, empty_properties, parse_color, resolve_properties
from .raw import RawObject, RawText

if TYPE_CHECKING:
    from .tileset import TileRef, TilesetIndex


class ObjectKind(str, Enum):
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    POLYGON = "polygon"
    POLYLINE = "polyline"
    POINT = "point"
    TILE = "tile"
    TEXT = "text"


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Text:
    text: str
    wrap: bool = False
    fontfamily: str = "sans-serif"
    pixelsize: int = 16
    color: Color = Color(0, 0, 0)
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikeout: bool = False
    kerning: bool = True
    halign: str = "left"
    valign: str = "top"


@dataclass(frozen=True)
class MapObject:
    """
    A single object. Fields not meaningful for `kind` keep their defaults:
    points is only filled for POLYGON/POLYLINE, tile for TILE, text for TEXT.
    """
    id: int                                          # Unique object ID
    kind: ObjectKind
    name: str = ""
    type: str = ""                                   # Object type/class
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    rotation: float = 0                              # Degrees, clockwise
    visible: bool = True
    points: Tuple[Point, ...] = ()
    tile: Optional['TileRef'] = None
    text: Optional[Text] = None
    properties: Properties = field(default_factory=empty_properties)


def _object_kind(raw: RawObject) -> ObjectKind:
    if raw.gid is not None:
        return ObjectKind.TILE
    if raw.point:
        return ObjectKind.POINT
    if raw.ellipse:
        return ObjectKind.ELLIPSE
    if raw.polygon is not None:
        return ObjectKind.POLYGON
    if raw.polyline is not None:
        return ObjectKind.POLYLINE
    if raw.text is not None:
        return ObjectKind.TEXT
    return ObjectKind.RECTANGLE


def _build_text(raw: RawText, path: str, layer: Optional[str]) -> Text:
    text_path = f"{path}.text"
    if raw.halign not in constants.TEXT_HALIGN:
        raise MalformedInputError(f"unknown text halign '{raw.halign}'",
                                  path=text_path, layer=layer)
    if raw.valign not in constants.TEXT_VALIGN:
        raise MalformedInputError(f"unknown text valign '{raw.valign}'",
                                  path=text_path, layer=layer)
    if raw.pixelsize <= 0:
        raise MalformedInputError(f"text pixelsize must be positive, got {raw.pixelsize}",
                                  path=text_path, layer=layer)
    color = parse_color(raw.color, MalformedInputError, path=text_path, layer=layer)
    return Text(
        text=raw.text,
        wrap=raw.wrap,
        fontfamily=raw.fontfamily,
        pixelsize=raw.pixelsize,
        color=color if color is not None else Color(0, 0, 0),
        bold=raw.bold,
        italic=raw.italic,
        underline=raw.underline,
        strikeout=raw.strikeout,
        kerning=raw.kerning,
        halign=raw.halign,
        valign=raw.valign,
    )


def build_object(raw: RawObject, tilesets: Optional['TilesetIndex'] = None,
                 layer: Optional[str] = None) -> MapObject:
    """
    Validate one raw object against its kind and build a MapObject.

    tilesets resolves the gid of tile objects; pass None where tile objects
    are not allowed (tile collision shapes).
    """
    path = raw.path
    if raw.template is not None:
        raise UnsupportedFeatureError(
            f"object instantiated from external template '{raw.template}'",
            path=path, layer=layer)

    kind = _object_kind(raw)

    if raw.width < 0 or raw.height < 0:
        raise MalformedInputError(
            f"object size must not be negative, got {raw.width}x{raw.height}",
            path=path, layer=layer)

    points: Tuple[Point, ...] = ()
    if kind in (ObjectKind.POLYGON, ObjectKind.POLYLINE):
        raw_points = raw.polygon if kind is ObjectKind.POLYGON else raw.polyline
        if not raw_points:
            raise MalformedInputError(f"{kind.value} object has no points",
                                      path=path, layer=layer)
        points = tuple(Point(x, y) for x, y in raw_points)

    tile = None
    if kind is ObjectKind.TILE:
        if not 0 <= raw.gid <= MAX_RAW_GID:
            raise MalformedInputError(f"object gid {raw.gid} is not an unsigned 32-bit value",
                                      path=path, layer=layer)
        if tilesets is None:
            raise UnresolvedTileReferenceError("tile objects are not allowed here",
                                               path=path, layer=layer, gid=raw.gid)
        tile = tilesets.resolve(raw.gid, path=path, layer=layer)
        if tile is None:
            raise UnresolvedTileReferenceError("tile object does not reference a tile",
                                               path=path, layer=layer, gid=raw.gid)

    text = _build_text(raw.text, path, layer) if kind is ObjectKind.TEXT else None

    return MapObject(
        id=raw.id,
        kind=kind,
        name=raw.name,
        type=raw.type,
        x=raw.x,
        y=raw.y,
        width=raw.width,
        height=raw.height,
        rotation=raw.rotation,
        visible=raw.visible,
        points=points,
        tile=tile,
        text=text,
        properties=resolve_properties(raw.properties, path=path, layer=layer),
    )
