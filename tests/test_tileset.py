import numpy as np
import pytest

from factories import collection_tileset, sheet_tileset
from tiled_json.errors import (
    InvalidTilesetError, OverlappingTilesetRangesError,
    UnresolvedTileReferenceError, UnsupportedFeatureError, UnsupportedTilesetError,
)
from tiled_json.objects import ObjectKind
from tiled_json.raw import RawTileset
from tiled_json.tileset import Frame, TilesetIndex, build_tileset


def build(data, path="tilesets[0]"):
    return build_tileset(RawTileset.from_json(data, path))


# =============================================================================
# build_tileset
# =============================================================================

def test_spritesheet_basics():
    tileset = build(sheet_tileset(1, columns=2, rows=2))
    assert tileset.name == "terrain"
    assert tileset.tilecount == 4
    assert tileset.columns == 2
    assert tileset.end_gid == 5
    assert not tileset.is_collection
    assert tileset.image.source == "terrain.png"
    assert tileset.contains(4)
    assert not tileset.contains(5)


def test_tilecount_implied_by_image_margin_and_spacing():
    data = {
        "firstgid": 1, "name": "spaced", "tilewidth": 16, "tileheight": 16,
        "image": "spaced.png", "imagewidth": 70, "imageheight": 36,
        "margin": 1, "spacing": 2,
    }
    tileset = build(data)
    # (70 - 2 + 2) // 18 = 3 columns, (36 - 2 + 2) // 18 = 2 rows
    assert tileset.columns == 3
    assert tileset.tilecount == 6


def test_declared_tilecount_must_match_image():
    data = sheet_tileset(1, columns=2, rows=2, tilecount=5)
    with pytest.raises(InvalidTilesetError) as excinfo:
        build(data)
    assert excinfo.value.tileset == "terrain"
    assert excinfo.value.path == "tilesets[0]"


@pytest.mark.parametrize("width, height", [(0, 32), (32, -1)])
def test_image_dimensions_must_be_positive(width, height):
    data = sheet_tileset(1, columns=2, rows=2, imagewidth=width, imageheight=height)
    with pytest.raises(InvalidTilesetError):
        build(data)


def test_image_without_dimensions():
    data = sheet_tileset(1, columns=2, rows=2)
    del data["imagewidth"]
    with pytest.raises(InvalidTilesetError, match="without its dimensions"):
        build(data)


def test_collection_tileset():
    tileset = build(collection_tileset(10, 3))
    assert tileset.is_collection
    assert tileset.tilecount == 3
    assert tileset.get_tile(2).image.source == "props/2.png"


def test_collection_needs_tilecount():
    data = collection_tileset(10, 3)
    del data["tilecount"]
    with pytest.raises(InvalidTilesetError, match="tilecount"):
        build(data)


def test_firstgid_zero_is_rejected():
    with pytest.raises(InvalidTilesetError, match="firstgid"):
        build(sheet_tileset(0, columns=2, rows=2))


def test_tile_id_out_of_range():
    data = sheet_tileset(1, columns=2, rows=2, tiles=[{"id": 4, "type": "x"}])
    with pytest.raises(InvalidTilesetError) as excinfo:
        build(data)
    assert excinfo.value.path == "tilesets[0].tiles[0]"


def test_duplicate_tile_metadata():
    data = sheet_tileset(1, columns=2, rows=2, tiles=[{"id": 1}, {"id": 1}])
    with pytest.raises(InvalidTilesetError, match="defined twice"):
        build(data)


def test_animation_and_collision():
    data = sheet_tileset(1, columns=2, rows=2, tiles=[{
        "id": 0,
        "type": "water",
        "animation": [{"tileid": 0, "duration": 100}, {"tileid": 3, "duration": 150}],
        "objectgroup": {
            "type": "objectgroup", "name": "", "draworder": "index",
            "objects": [{"id": 1, "x": 0, "y": 0, "width": 16, "height": 4}],
        },
    }])
    tile = build(data).get_tile(0)
    assert tile.type == "water"
    assert tile.animation == (Frame(0, 100), Frame(3, 150))
    assert len(tile.collision) == 1
    assert tile.collision[0].kind is ObjectKind.RECTANGLE


def test_animation_frame_out_of_range():
    data = sheet_tileset(1, columns=2, rows=2, tiles=[{
        "id": 0, "animation": [{"tileid": 4, "duration": 100}],
    }])
    with pytest.raises(InvalidTilesetError, match="animation"):
        build(data)


def test_animation_frame_negative_duration():
    data = sheet_tileset(1, columns=2, rows=2, tiles=[{
        "id": 0, "animation": [{"tileid": 1, "duration": -1}],
    }])
    with pytest.raises(InvalidTilesetError, match="negative duration"):
        build(data)


def test_zero_duration_frame_is_allowed():
    data = sheet_tileset(1, columns=2, rows=2, tiles=[{
        "id": 0, "animation": [{"tileid": 1, "duration": 0}],
    }])
    assert build(data).get_tile(0).animation == (Frame(1, 0),)


@pytest.mark.parametrize("key, value", [
    ("tilewidth", 0),
    ("tilewidth", -16),
    ("tileheight", 0),
    ("tileheight", -16),
])
def test_tile_size_must_be_positive(key, value):
    data = sheet_tileset(1, columns=2, rows=2, **{key: value})
    with pytest.raises(InvalidTilesetError, match="tile size"):
        build(data)


@pytest.mark.parametrize("key", ["spacing", "margin"])
def test_negative_spacing_or_margin(key):
    data = sheet_tileset(1, columns=2, rows=2, **{key: -1})
    with pytest.raises(InvalidTilesetError, match="spacing and margin"):
        build(data)


def test_external_tileset_is_unsupported():
    with pytest.raises(UnsupportedTilesetError) as excinfo:
        build({"firstgid": 1, "source": "terrain.tsx"})
    assert isinstance(excinfo.value, UnsupportedFeatureError)
    assert excinfo.value.kind == "UnsupportedFeature"
    assert excinfo.value.tileset == "terrain.tsx"


def test_tileset_properties_and_transparent_color():
    data = sheet_tileset(1, columns=2, rows=2, transparentcolor="#ff00ff",
                         properties=[{"name": "biome", "type": "string", "value": "forest"}])
    tileset = build(data)
    assert tileset.transparentcolor == (255, 0, 255, 255)
    assert tileset.properties["biome"].value == "forest"


# =============================================================================
# TilesetIndex
# =============================================================================

@pytest.fixture
def index(two_tilesets):
    return TilesetIndex([build(data, f"tilesets[{i}]") for i, data in enumerate(two_tilesets)])


def test_resolve_empty_cell(index):
    assert index.resolve(0) is None


def test_resolve_range_boundaries(index):
    first = index.resolve(1)
    assert (first.tileset, first.tile_id) == (0, 0)
    last = index.resolve(4)
    assert (last.tileset, last.tile_id) == (0, 3)
    second = index.resolve(5)
    assert (second.tileset, second.tile_id) == (1, 0)
    assert index.resolve(12).tile_id == 7


def test_resolve_past_last_range(index):
    with pytest.raises(UnresolvedTileReferenceError) as excinfo:
        index.resolve(13, path="layers[0].data", layer="Ground")
    assert excinfo.value.gid == 13
    assert excinfo.value.layer == "Ground"


def test_resolve_keeps_flags(index):
    ref = index.resolve(2147483653)
    assert ref.gid == 2147483653
    assert (ref.tileset, ref.tile_id) == (1, 0)
    assert ref.flipped_horizontally
    assert not ref.flipped_vertically


def test_gap_between_ranges_is_unresolved():
    index = TilesetIndex([build(sheet_tileset(1, 2, 1)), build(sheet_tileset(10, 2, 1, name="b"))])
    with pytest.raises(UnresolvedTileReferenceError):
        index.resolve(5)


def test_declaration_order_is_kept():
    late = build(sheet_tileset(100, 2, 2, name="late"))
    early = build(sheet_tileset(1, 2, 2, name="early"))
    index = TilesetIndex([late, early])
    assert index.tilesets == (late, early)
    assert index.resolve(2).tileset == 1
    assert index.resolve(101).tileset == 0


def test_overlapping_ranges():
    a = build(sheet_tileset(1, 2, 2, name="a"))
    b = build(sheet_tileset(4, 2, 2, name="b"))
    with pytest.raises(OverlappingTilesetRangesError) as excinfo:
        TilesetIndex([a, b])
    assert excinfo.value.tileset == "b"


def test_adjacent_ranges_do_not_overlap():
    a = build(sheet_tileset(1, 2, 2, name="a"))
    b = build(sheet_tileset(5, 2, 2, name="b"))
    assert len(TilesetIndex([a, b])) == 2


def test_same_firstgid_overlaps_even_when_empty():
    a = build(collection_tileset(3, 0, name="a"))
    b = build(collection_tileset(3, 0, name="b"))
    with pytest.raises(OverlappingTilesetRangesError):
        TilesetIndex([a, b])


def test_resolve_array_matches_scalar(index):
    raw = np.array([0, 1, 6, 2147483653, 1, 0x40000004], dtype=np.uint32)
    refs = index.resolve_array(raw)
    assert refs == tuple(index.resolve(int(value)) for value in raw)


def test_resolve_array_reports_first_bad_cell(index):
    raw = np.array([1, 2, 40, 1, 99], dtype=np.uint32)
    with pytest.raises(UnresolvedTileReferenceError, match="cell 2") as excinfo:
        index.resolve_array(raw, layer="Ground")
    assert excinfo.value.gid == 40


def test_resolve_array_without_tilesets():
    index = TilesetIndex([])
    assert index.resolve_array(np.zeros(3, dtype=np.uint32)) == (None, None, None)
    with pytest.raises(UnresolvedTileReferenceError):
        index.resolve_array(np.array([0, 1], dtype=np.uint32))
