import pytest

from tiled_json.errors import InvalidPropertyError
from tiled_json.properties import (
    Color, PropertyType, resolve_properties, resolve_property,
)
from tiled_json.raw import RawProperty


def test_bool_from_string():
    prop = resolve_property("solid", "bool", "true")
    assert prop.type is PropertyType.BOOL
    assert prop.value is True


def test_bool_from_json_bool():
    assert resolve_property("solid", "bool", False).value is False


def test_int_not_a_number():
    with pytest.raises(InvalidPropertyError) as excinfo:
        resolve_property("solid", "int", "notanumber")
    assert excinfo.value.kind == "InvalidProperty"
    assert "solid" in str(excinfo.value)


@pytest.mark.parametrize("value, expected", [(42, 42), ("17", 17), (3.0, 3), (-5, -5)])
def test_int_values(value, expected):
    assert resolve_property("n", "int", value).value == expected


@pytest.mark.parametrize("value", [3.5, True, None, "4.2"])
def test_int_rejects_non_integral(value):
    with pytest.raises(InvalidPropertyError):
        resolve_property("n", "int", value)


def test_float_values():
    assert resolve_property("pi", "float", 3.14).value == pytest.approx(3.14)
    assert resolve_property("pi", "float", 2).value == 2.0
    assert resolve_property("pi", "float", "0.5").value == 0.5


def test_float_rejects_garbage():
    with pytest.raises(InvalidPropertyError):
        resolve_property("pi", "float", "pie")
    with pytest.raises(InvalidPropertyError):
        resolve_property("pi", "float", "nan")


@pytest.mark.parametrize("value", ["1_000", " 17", "17\n", "0x10", "+"])
def test_int_text_must_be_plain_digits(value):
    with pytest.raises(InvalidPropertyError, match="not an integer"):
        resolve_property("n", "int", value)


@pytest.mark.parametrize("value", ["inf", "-inf", "Infinity", "1_000.5", " 2.5", "1e"])
def test_float_text_must_be_a_plain_number(value):
    with pytest.raises(InvalidPropertyError, match="not a number"):
        resolve_property("pi", "float", value)


@pytest.mark.parametrize("value", ["1e400", 10 ** 400])
def test_float_overflow(value):
    with pytest.raises(InvalidPropertyError, match="overflows"):
        resolve_property("pi", "float", value)


@pytest.mark.parametrize("value, expected", [("1e3", 1000.0), ("-2.5", -2.5), (".5", 0.5),
                                             ("+7", 7.0), ("3.", 3.0)])
def test_float_text_forms(value, expected):
    assert resolve_property("pi", "float", value).value == expected


def test_string_and_file():
    assert resolve_property("title", "string", "Meadow").value == "Meadow"
    prop = resolve_property("music", "file", "audio/a.ogg")
    assert prop.type is PropertyType.FILE
    assert prop.value == "audio/a.ogg"


def test_string_rejects_numbers():
    with pytest.raises(InvalidPropertyError):
        resolve_property("title", "string", 12)


def test_object_reference():
    assert resolve_property("target", "object", 7).value == 7
    with pytest.raises(InvalidPropertyError):
        resolve_property("target", "object", -1)


def test_color_argb():
    prop = resolve_property("tint", "color", "#80ff3366")
    assert prop.value == Color(0xff, 0x33, 0x66, 0x80)


def test_color_rgb_is_opaque():
    assert resolve_property("tint", "color", "#ff3366").value == Color(255, 51, 102, 255)


def test_unset_color_is_none():
    assert resolve_property("tint", "color", "").value is None


@pytest.mark.parametrize("value", ["#12345", "#gg0000", "red", 0xff0000, "#1234567"])
def test_malformed_color(value):
    with pytest.raises(InvalidPropertyError):
        resolve_property("tint", "color", value)


def test_unknown_type_tag():
    with pytest.raises(InvalidPropertyError, match="unknown type 'class'"):
        resolve_property("stats", "class", {"hp": 3})


def test_duplicates_last_wins():
    props = resolve_properties([
        RawProperty("speed", "int", 1),
        RawProperty("name", "string", "bob"),
        RawProperty("speed", "float", 2.5),
    ])
    assert list(props) == ["speed", "name"]
    assert props["speed"].type is PropertyType.FLOAT
    assert props["speed"].value == 2.5


def test_resolved_mapping_is_read_only():
    props = resolve_properties([RawProperty("a", "int", 1)])
    with pytest.raises(TypeError):
        props["b"] = None


def test_error_carries_context():
    with pytest.raises(InvalidPropertyError) as excinfo:
        resolve_properties([RawProperty("hp", "int", "x")], path="layers[0]", layer="Ground")
    assert excinfo.value.path == "layers[0]"
    assert excinfo.value.layer == "Ground"


def test_color_hex_round_trip():
    assert Color.from_hex("#80ff3366").to_hex() == "#80ff3366"
    assert Color.from_hex("ff3366").to_hex() == "#ff3366"
