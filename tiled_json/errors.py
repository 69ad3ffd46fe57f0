"""
Error taxonomy raised while decoding a Tiled JSON map.

Every failure is a subclass of ParseError. Nothing is recovered from: the
first error aborts the parse and reaches the caller unchanged, so a map is
either returned complete or not at all.

    ParseError
    ├── MalformedInputError            bad JSON, missing/mistyped field
    ├── UnsupportedFeatureError        known but unimplemented variant
    │   └── UnsupportedTilesetError    tileset referenced by file path
    ├── InvalidTilesetError
    ├── InvalidPropertyError
    ├── UnknownLayerKindError
    ├── InconsistentLayerDataError
    ├── UnresolvedTileReferenceError
    └── OverlappingTilesetRangesError
"""

from typing import Optional


class ParseError(Exception):
    """
    Base class for all map decoding errors.

    Context attributes are optional and filled in by whichever stage
    detected the problem:

    path    : JSON path of the offending value, e.g. "layers[2].data"
    layer   : group path of the layer, e.g. "Background/Sky"
    tileset : name of the tileset involved
    gid     : raw 32-bit tile reference that failed
    """

    kind = "ParseError"

    def __init__(self, message: str, *, path: Optional[str] = None,
                 layer: Optional[str] = None, tileset: Optional[str] = None,
                 gid: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.layer = layer
        self.tileset = tileset
        self.gid = gid

    def __str__(self) -> str:
        context = []
        if self.path is not None:
            context.append(f"at {self.path}")
        if self.layer is not None:
            context.append(f"layer '{self.layer}'")
        if self.tileset is not None:
            context.append(f"tileset '{self.tileset}'")
        if self.gid is not None:
            context.append(f"gid {self.gid}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class MalformedInputError(ParseError):
    """Input is not valid JSON, or a required field is missing or mistyped."""

    kind = "MalformedInput"

    def __init__(self, message: str, *, lineno: Optional[int] = None,
                 colno: Optional[int] = None, pos: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.lineno = lineno
        self.colno = colno
        self.pos = pos

    def __str__(self) -> str:
        text = super().__str__()
        if self.lineno is not None:
            text += f" [line {self.lineno}, column {self.colno}]"
        return text


class UnsupportedFeatureError(ParseError):
    kind = "UnsupportedFeature"


class UnsupportedTilesetError(UnsupportedFeatureError):
    """Tileset is referenced by external file instead of being embedded."""


class InvalidTilesetError(ParseError):
    kind = "InvalidTileset"


class InvalidPropertyError(ParseError):
    kind = "InvalidProperty"


class UnknownLayerKindError(ParseError):
    kind = "UnknownLayerKind"


class InconsistentLayerDataError(ParseError):
    kind = "InconsistentLayerData"


class UnresolvedTileReferenceError(ParseError):
    kind = "UnresolvedTileReference"


class OverlappingTilesetRangesError(ParseError):
    kind = "OverlappingTilesetRanges"
