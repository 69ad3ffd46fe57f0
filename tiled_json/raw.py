"""
Raw schema types - a structural mirror of the Tiled JSON document.

=============================================================================
TWO-STAGE DECODE
=============================================================================

Decoding happens in two passes:

    JSON text ──json.loads──> dict ──Raw*.from_json──> Raw schema
                                                          │
                          tileset / layers / map builders ┘
                                                          │
                                                          v
                                                    public model

This module is the first pass. It only checks SHAPE: required keys are
present and every value has the JSON type the format prescribes. Meaning is
left alone: enums stay strings, property values stay untyped, tile data
stays as it was written. Anything wrong here is a MalformedInputError
carrying the JSON path of the offending value, e.g. "layers[3].chunks[0].x".

The second pass (tileset.py, layers.py, tiled_map.py) interprets these records
and raises the semantic errors.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import MalformedInputError


# Sentinel for "key must be present"
REQUIRED = object()

_TYPE_NAMES = {
    "int": "an integer",
    "number": "a number",
    "str": "a string",
    "bool": "a boolean",
    "list": "an array",
    "object": "an object",
    "version": "a number or string",
}


def _join(path: str, key: Union[str, int]) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _matches(value: Any, expected: str) -> bool:
    # bool is a subclass of int; JSON true/false must not pass as numbers
    if expected == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "str":
        return isinstance(value, str)
    if expected == "bool":
        return isinstance(value, bool)
    if expected == "list":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    if expected == "version":
        return isinstance(value, (int, float, str)) and not isinstance(value, bool)
    raise ValueError(f"unknown expected type {expected!r}")


def expect_object(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedInputError("expected an object", path=path or None)
    return value


def get_field(data: Dict[str, Any], key: str, path: str, expected: str,
              default: Any = REQUIRED) -> Any:
    """
    Fetch data[key], checking its JSON type.

    A missing key returns `default`, or raises if the key is REQUIRED.
    An explicit null is treated like a missing key.
    """
    value = data.get(key)
    if value is None:
        if default is REQUIRED:
            raise MalformedInputError(f"missing required field '{key}'",
                                      path=_join(path, key))
        return default
    if not _matches(value, expected):
        raise MalformedInputError(
            f"field '{key}' must be {_TYPE_NAMES[expected]}, got {type(value).__name__}",
            path=_join(path, key))
    return value


def _get_list(data: Dict[str, Any], key: str, path: str) -> List[Any]:
    return get_field(data, key, path, "list", [])


def _get_class(data: Dict[str, Any], path: str) -> str:
    # "class" replaced "type" in editor 1.9; objects and tiles went back to
    # "type" in 1.10. Accept either.
    if data.get("class") is not None:
        return get_field(data, "class", path, "str")
    return get_field(data, "type", path, "str", "")


# =============================================================================
# PROPERTIES
# =============================================================================

@dataclass
class RawProperty:
    name: str
    type: str
    value: Any
    propertytype: str = ""

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawProperty':
        data = expect_object(data, path)
        if "value" not in data:
            raise MalformedInputError("missing required field 'value'",
                                      path=_join(path, "value"))
        return cls(
            name=get_field(data, "name", path, "str"),
            type=get_field(data, "type", path, "str", "string"),
            value=data["value"],
            propertytype=get_field(data, "propertytype", path, "str", ""),
        )


def parse_properties(data: Dict[str, Any], path: str) -> List[RawProperty]:
    prop_path = _join(path, "properties")
    return [RawProperty.from_json(item, _join(prop_path, i))
            for i, item in enumerate(_get_list(data, "properties", path))]


# =============================================================================
# OBJECTS
# =============================================================================

@dataclass
class RawText:
    text: str
    wrap: bool = False
    fontfamily: str = "sans-serif"
    pixelsize: int = 16
    color: Optional[str] = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikeout: bool = False
    kerning: bool = True
    halign: str = "left"
    valign: str = "top"

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawText':
        data = expect_object(data, path)
        return cls(
            text=get_field(data, "text", path, "str", ""),
            wrap=get_field(data, "wrap", path, "bool", False),
            fontfamily=get_field(data, "fontfamily", path, "str", "sans-serif"),
            pixelsize=get_field(data, "pixelsize", path, "int", 16),
            color=get_field(data, "color", path, "str", None),
            bold=get_field(data, "bold", path, "bool", False),
            italic=get_field(data, "italic", path, "bool", False),
            underline=get_field(data, "underline", path, "bool", False),
            strikeout=get_field(data, "strikeout", path, "bool", False),
            kerning=get_field(data, "kerning", path, "bool", True),
            halign=get_field(data, "halign", path, "str", "left"),
            valign=get_field(data, "valign", path, "str", "top"),
        )


def _parse_points(data: Dict[str, Any], key: str, path: str) -> Optional[List[Tuple[float, float]]]:
    items = get_field(data, key, path, "list", None)
    if items is None:
        return None
    points = []
    for i, item in enumerate(items):
        point_path = _join(_join(path, key), i)
        item = expect_object(item, point_path)
        points.append((get_field(item, "x", point_path, "number"),
                       get_field(item, "y", point_path, "number")))
    return points


@dataclass
class RawObject:
    id: int = 0
    name: str = ""
    type: str = ""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    rotation: float = 0
    visible: bool = True
    gid: Optional[int] = None
    point: bool = False
    ellipse: bool = False
    polygon: Optional[List[Tuple[float, float]]] = None
    polyline: Optional[List[Tuple[float, float]]] = None
    text: Optional[RawText] = None
    template: Optional[str] = None
    properties: List[RawProperty] = field(default_factory=list)
    path: str = ""

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawObject':
        data = expect_object(data, path)
        text = data.get("text")
        return cls(
            id=get_field(data, "id", path, "int", 0),
            name=get_field(data, "name", path, "str", ""),
            type=_get_class(data, path),
            x=get_field(data, "x", path, "number", 0),
            y=get_field(data, "y", path, "number", 0),
            width=get_field(data, "width", path, "number", 0),
            height=get_field(data, "height", path, "number", 0),
            rotation=get_field(data, "rotation", path, "number", 0),
            visible=get_field(data, "visible", path, "bool", True),
            gid=get_field(data, "gid", path, "int", None),
            point=get_field(data, "point", path, "bool", False),
            ellipse=get_field(data, "ellipse", path, "bool", False),
            polygon=_parse_points(data, "polygon", path),
            polyline=_parse_points(data, "polyline", path),
            text=RawText.from_json(text, _join(path, "text")) if text is not None else None,
            template=get_field(data, "template", path, "str", None),
            properties=parse_properties(data, path),
            path=path,
        )


# =============================================================================
# LAYERS
# =============================================================================

@dataclass
class RawChunk:
    x: int
    y: int
    width: int
    height: int
    data: Union[List[Any], str]
    path: str = ""

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawChunk':
        data = expect_object(data, path)
        return cls(
            x=get_field(data, "x", path, "int"),
            y=get_field(data, "y", path, "int"),
            width=get_field(data, "width", path, "int"),
            height=get_field(data, "height", path, "int"),
            data=_get_tile_data(data, path, required=True),
            path=path,
        )


def _get_tile_data(data: Dict[str, Any], path: str, required: bool) -> Union[List[Any], str, None]:
    value = data.get("data")
    if value is None:
        if required:
            raise MalformedInputError("missing required field 'data'",
                                      path=_join(path, "data"))
        return None
    if not isinstance(value, (list, str)):
        raise MalformedInputError("field 'data' must be an array or a base64 string",
                                  path=_join(path, "data"))
    return value


@dataclass
class RawLayer:
    """
    Any layer record, whatever its kind.

    Keys belonging to other kinds are simply absent (None / empty), the
    layer builder decides which ones matter for `type`.
    """
    type: str
    path: str = ""
    id: int = 0
    name: str = ""
    class_: str = ""
    visible: bool = True
    opacity: float = 1.0
    offsetx: float = 0
    offsety: float = 0
    parallaxx: float = 1.0
    parallaxy: float = 1.0
    tintcolor: Optional[str] = None
    properties: List[RawProperty] = field(default_factory=list)
    # tilelayer
    width: Optional[int] = None
    height: Optional[int] = None
    startx: int = 0
    starty: int = 0
    data: Union[List[Any], str, None] = None
    chunks: Optional[List[RawChunk]] = None
    encoding: Optional[str] = None
    compression: Optional[str] = None
    # objectgroup
    objects: List[RawObject] = field(default_factory=list)
    draworder: str = "topdown"
    color: Optional[str] = None
    # imagelayer
    image: Optional[str] = None
    imagewidth: Optional[int] = None
    imageheight: Optional[int] = None
    transparentcolor: Optional[str] = None
    repeatx: bool = False
    repeaty: bool = False
    # group
    layers: List['RawLayer'] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawLayer':
        data = expect_object(data, path)
        chunks = get_field(data, "chunks", path, "list", None)
        objects_path = _join(path, "objects")
        layers_path = _join(path, "layers")
        return cls(
            type=get_field(data, "type", path, "str"),
            path=path,
            id=get_field(data, "id", path, "int", 0),
            name=get_field(data, "name", path, "str", ""),
            class_=get_field(data, "class", path, "str", ""),
            visible=get_field(data, "visible", path, "bool", True),
            opacity=get_field(data, "opacity", path, "number", 1.0),
            offsetx=get_field(data, "offsetx", path, "number", 0),
            offsety=get_field(data, "offsety", path, "number", 0),
            parallaxx=get_field(data, "parallaxx", path, "number", 1.0),
            parallaxy=get_field(data, "parallaxy", path, "number", 1.0),
            tintcolor=get_field(data, "tintcolor", path, "str", None),
            properties=parse_properties(data, path),
            width=get_field(data, "width", path, "int", None),
            height=get_field(data, "height", path, "int", None),
            startx=get_field(data, "startx", path, "int", 0),
            starty=get_field(data, "starty", path, "int", 0),
            data=_get_tile_data(data, path, required=False),
            chunks=None if chunks is None else [
                RawChunk.from_json(item, _join(_join(path, "chunks"), i))
                for i, item in enumerate(chunks)
            ],
            encoding=get_field(data, "encoding", path, "str", None),
            compression=get_field(data, "compression", path, "str", None),
            objects=[RawObject.from_json(item, _join(objects_path, i))
                     for i, item in enumerate(_get_list(data, "objects", path))],
            draworder=get_field(data, "draworder", path, "str", "topdown"),
            color=get_field(data, "color", path, "str", None),
            image=get_field(data, "image", path, "str", None),
            imagewidth=get_field(data, "imagewidth", path, "int", None),
            imageheight=get_field(data, "imageheight", path, "int", None),
            transparentcolor=get_field(data, "transparentcolor", path, "str", None),
            repeatx=get_field(data, "repeatx", path, "bool", False),
            repeaty=get_field(data, "repeaty", path, "bool", False),
            layers=[RawLayer.from_json(item, _join(layers_path, i))
                    for i, item in enumerate(_get_list(data, "layers", path))],
        )


# =============================================================================
# TILESETS
# =============================================================================

@dataclass
class RawFrame:
    tileid: int
    duration: int


@dataclass
class RawTile:
    id: int
    path: str = ""
    type: str = ""
    probability: float = 1.0
    image: Optional[str] = None
    imagewidth: Optional[int] = None
    imageheight: Optional[int] = None
    properties: List[RawProperty] = field(default_factory=list)
    animation: List[RawFrame] = field(default_factory=list)
    objectgroup: Optional[RawLayer] = None

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawTile':
        data = expect_object(data, path)
        frames = []
        animation_path = _join(path, "animation")
        for i, item in enumerate(_get_list(data, "animation", path)):
            frame_path = _join(animation_path, i)
            item = expect_object(item, frame_path)
            frames.append(RawFrame(
                tileid=get_field(item, "tileid", frame_path, "int"),
                duration=get_field(item, "duration", frame_path, "int"),
            ))
        objectgroup = data.get("objectgroup")
        return cls(
            id=get_field(data, "id", path, "int"),
            path=path,
            type=_get_class(data, path),
            probability=get_field(data, "probability", path, "number", 1.0),
            image=get_field(data, "image", path, "str", None),
            imagewidth=get_field(data, "imagewidth", path, "int", None),
            imageheight=get_field(data, "imageheight", path, "int", None),
            properties=parse_properties(data, path),
            animation=frames,
            objectgroup=(RawLayer.from_json(objectgroup, _join(path, "objectgroup"))
                         if objectgroup is not None else None),
        )


@dataclass
class RawTileset:
    firstgid: int
    path: str = ""
    source: Optional[str] = None                 # set for external tilesets only
    name: str = ""
    class_: str = ""
    tilewidth: int = 0
    tileheight: int = 0
    tilecount: Optional[int] = None
    columns: Optional[int] = None
    spacing: int = 0
    margin: int = 0
    image: Optional[str] = None
    imagewidth: Optional[int] = None
    imageheight: Optional[int] = None
    transparentcolor: Optional[str] = None
    tileoffset: Tuple[int, int] = (0, 0)
    properties: List[RawProperty] = field(default_factory=list)
    tiles: List[RawTile] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any, path: str) -> 'RawTileset':
        data = expect_object(data, path)
        firstgid = get_field(data, "firstgid", path, "int")

        # External reference: {"firstgid": 1, "source": "terrain.tsx"}
        # Nothing else is read; the normalizer rejects it.
        if data.get("source") is not None:
            return cls(firstgid=firstgid, path=path,
                       source=get_field(data, "source", path, "str"))

        offset = data.get("tileoffset")
        if offset is not None:
            offset_path = _join(path, "tileoffset")
            offset = expect_object(offset, offset_path)
            tileoffset = (get_field(offset, "x", offset_path, "int", 0),
                          get_field(offset, "y", offset_path, "int", 0))
        else:
            tileoffset = (0, 0)

        tiles_path = _join(path, "tiles")
        return cls(
            firstgid=firstgid,
            path=path,
            name=get_field(data, "name", path, "str", ""),
            class_=get_field(data, "class", path, "str", ""),
            tilewidth=get_field(data, "tilewidth", path, "int"),
            tileheight=get_field(data, "tileheight", path, "int"),
            tilecount=get_field(data, "tilecount", path, "int", None),
            columns=get_field(data, "columns", path, "int", None),
            spacing=get_field(data, "spacing", path, "int", 0),
            margin=get_field(data, "margin", path, "int", 0),
            image=get_field(data, "image", path, "str", None),
            imagewidth=get_field(data, "imagewidth", path, "int", None),
            imageheight=get_field(data, "imageheight", path, "int", None),
            transparentcolor=get_field(data, "transparentcolor", path, "str", None),
            tileoffset=tileoffset,
            properties=parse_properties(data, path),
            tiles=[RawTile.from_json(item, _join(tiles_path, i))
                   for i, item in enumerate(_get_list(data, "tiles", path))],
        )


# =============================================================================
# MAP
# =============================================================================

@dataclass
class RawMap:
    orientation: str
    width: int
    height: int
    tilewidth: int
    tileheight: int
    type: str = "map"
    version: str = ""
    tiledversion: str = ""
    renderorder: Optional[str] = None
    infinite: bool = False
    hexsidelength: Optional[int] = None
    staggeraxis: Optional[str] = None
    staggerindex: Optional[str] = None
    backgroundcolor: Optional[str] = None
    nextlayerid: int = 0
    nextobjectid: int = 0
    class_: str = ""
    parallaxoriginx: float = 0
    parallaxoriginy: float = 0
    properties: List[RawProperty] = field(default_factory=list)
    tilesets: List[RawTileset] = field(default_factory=list)
    layers: List[RawLayer] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> 'RawMap':
        path = ""
        data = expect_object(data, path)
        version = get_field(data, "version", path, "version", "")
        return cls(
            type=get_field(data, "type", path, "str", "map"),
            version=str(version),
            tiledversion=get_field(data, "tiledversion", path, "str", ""),
            orientation=get_field(data, "orientation", path, "str"),
            renderorder=get_field(data, "renderorder", path, "str", None),
            width=get_field(data, "width", path, "int"),
            height=get_field(data, "height", path, "int"),
            tilewidth=get_field(data, "tilewidth", path, "int"),
            tileheight=get_field(data, "tileheight", path, "int"),
            infinite=get_field(data, "infinite", path, "bool", False),
            hexsidelength=get_field(data, "hexsidelength", path, "int", None),
            staggeraxis=get_field(data, "staggeraxis", path, "str", None),
            staggerindex=get_field(data, "staggerindex", path, "str", None),
            backgroundcolor=get_field(data, "backgroundcolor", path, "str", None),
            nextlayerid=get_field(data, "nextlayerid", path, "int", 0),
            nextobjectid=get_field(data, "nextobjectid", path, "int", 0),
            class_=get_field(data, "class", path, "str", ""),
            parallaxoriginx=get_field(data, "parallaxoriginx", path, "number", 0),
            parallaxoriginy=get_field(data, "parallaxoriginy", path, "number", 0),
            properties=parse_properties(data, path),
            tilesets=[RawTileset.from_json(item, _join("tilesets", i))
                      for i, item in enumerate(_get_list(data, "tilesets", path))],
            layers=[RawLayer.from_json(item, _join("layers", i))
                    for i, item in enumerate(_get_list(data, "layers", path))],
        )
