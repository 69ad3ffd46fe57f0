from pathlib import Path

import pytest

from factories import dump, make_map, sheet_tileset, tile_layer


DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def sample_map_path():
    return DATA_DIR / "map.json"


@pytest.fixture
def two_tilesets():
    """firstgid 1 with 4 tiles, firstgid 5 with 8 tiles."""
    return [
        sheet_tileset(1, columns=2, rows=2, name="terrain"),
        sheet_tileset(5, columns=4, rows=2, name="water"),
    ]


@pytest.fixture
def scenario_bytes(two_tilesets):
    layer = tile_layer([0, 1, 6, 2147483653], width=4, height=1)
    return dump(make_map([layer], two_tilesets, width=4, height=1))
