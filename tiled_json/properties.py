"""
Custom properties and colors.

Tiled lets users attach typed key/value pairs to maps, tilesets, tiles,
layers and objects. In JSON they are written as a list of triples:

    "properties": [
        {"name": "solid",  "type": "bool",  "value": true},
        {"name": "damage", "type": "int",   "value": 10},
        {"name": "tint",   "type": "color", "value": "#ff336699"}
    ]

resolve_properties() turns that list into a read-only name -> Property
mapping. The declared type decides how the value is interpreted; a value
that does not fit its type is an InvalidPropertyError.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, NamedTuple, Optional, Union

from .errors import InvalidPropertyError


# =============================================================================
# COLOR
# =============================================================================

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class Color(NamedTuple):
    """
    RGBA color, 0-255 per channel.

    The editor writes colors as #RRGGBB or #AARRGGBB (alpha FIRST); the
    tuple stores alpha last.
    """
    red: int
    green: int
    blue: int
    alpha: int = 255

    @classmethod
    def from_hex(cls, text: str) -> 'Color':
        """Parse '#RRGGBB' / '#AARRGGBB'. Raises ValueError on anything else."""
        match = _HEX_COLOR.match(text)
        if match is None:
            raise ValueError(f"invalid color value {text!r}")
        digits = match.group(1)
        channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
        if len(channels) == 4:
            alpha, red, green, blue = channels
            return cls(red, green, blue, alpha)
        return cls(*channels)

    def to_hex(self) -> str:
        if self.alpha == 255:
            return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"
        return f"#{self.alpha:02x}{self.red:02x}{self.green:02x}{self.blue:02x}"


# =============================================================================
# PROPERTY
# =============================================================================

class PropertyType(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    COLOR = "color"
    FILE = "file"
    OBJECT = "object"


PropertyValue = Union[str, int, float, bool, Color, None]


@dataclass(frozen=True)
class Property:
    """
    One typed custom property.

    value is a str for STRING and FILE, int for INT and OBJECT (the id of
    the referenced object, 0 = none), float, bool, or Color (None when the
    editor left the color unset).
    """
    name: str
    type: PropertyType
    value: PropertyValue


Properties = Mapping[str, Property]

EMPTY_PROPERTIES: Properties = MappingProxyType({})


def empty_properties() -> Properties:
    return EMPTY_PROPERTIES


# Numeric text as the editor writes it: no digit separators, no inf or nan
_INT_TEXT = re.compile(r"[+-]?[0-9]+")
_FLOAT_TEXT = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value} is not integral")
        return int(value)
    if isinstance(value, str):
        if _INT_TEXT.fullmatch(value) is None:
            raise ValueError(f"{value!r} is not an integer")
        return int(value)
    raise ValueError(f"cannot interpret {type(value).__name__} as an integer")


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            raise ValueError(f"{value} overflows a double") from None
    if isinstance(value, str):
        if _FLOAT_TEXT.fullmatch(value) is None:
            raise ValueError(f"{value!r} is not a number")
        number = float(value)
        if not math.isfinite(number):
            raise ValueError(f"{value!r} overflows a double")
        return number
    raise ValueError(f"cannot interpret {type(value).__name__} as a number")


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ValueError(f"{value!r} is not a boolean")


def _to_str(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {type(value).__name__}")
    return value


def _to_color(value: Any) -> Optional[Color]:
    # The editor writes "" for a color property that was never set
    if value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected a color string, got {type(value).__name__}")
    return Color.from_hex(value)


def _to_object_ref(value: Any) -> int:
    object_id = _to_int(value)
    if object_id < 0:
        raise ValueError(f"object reference {object_id} is negative")
    return object_id


_CONVERTERS = {
    PropertyType.STRING: _to_str,
    PropertyType.INT: _to_int,
    PropertyType.FLOAT: _to_float,
    PropertyType.BOOL: _to_bool,
    PropertyType.COLOR: _to_color,
    PropertyType.FILE: _to_str,
    PropertyType.OBJECT: _to_object_ref,
}


def resolve_property(name: str, type_tag: str, value: Any) -> Property:
    """Interpret one raw (name, type, value) triple."""
    try:
        prop_type = PropertyType(type_tag)
    except ValueError:
        raise InvalidPropertyError(
            f"property '{name}' has unknown type '{type_tag}'") from None

    try:
        converted = _CONVERTERS[prop_type](value)
    except ValueError as e:
        raise InvalidPropertyError(
            f"property '{name}' declared as {type_tag}: {e}") from e

    return Property(name=name, type=prop_type, value=converted)


def resolve_properties(raw_properties: Iterable[Any], *, path: Optional[str] = None,
                       layer: Optional[str] = None,
                       tileset: Optional[str] = None) -> Properties:
    """
    Build the name -> Property mapping from raw property records.

    raw_properties holds objects with name/type/value attributes
    (raw.RawProperty). Later duplicates override earlier ones, matching
    how the editor applies property overrides. The context keywords are
    attached to any InvalidPropertyError raised.
    """
    resolved = {}
    for raw in raw_properties:
        try:
            prop = resolve_property(raw.name, raw.type, raw.value)
        except InvalidPropertyError as e:
            e.path = path
            e.layer = layer
            e.tileset = tileset
            raise
        resolved[prop.name] = prop
    if not resolved:
        return EMPTY_PROPERTIES
    return MappingProxyType(resolved)


def parse_color(text: Optional[str], error_cls, **context) -> Optional[Color]:
    """Parse an optional color attribute, raising error_cls on bad input."""
    if text is None or text == "":
        return None
    try:
        return Color.from_hex(text)
    except ValueError as e:
        raise error_cls(str(e), **context) from e
