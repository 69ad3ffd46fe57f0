import logging

import pytest

from factories import dump, make_map
from tiled_json.__main__ import main
from tiled_json.logging_config import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    package = logging.getLogger("tiled_json")
    handlers, level, package_level = root.handlers[:], root.level, package.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    package.setLevel(package_level)


def test_summary_of_sample_map(sample_map_path, capsys):
    assert main([str(sample_map_path)]) == 0
    out = capsys.readouterr().out
    assert "Map: 4x3 tiles of 16x16 px, orthogonal, right-down" in out
    assert "Tilesets: 2" in out
    assert "terrain: gids 1..6" in out
    assert "- [group] Decor: 1 layers" in out
    assert "Flowers: 4x3, 2 tiles (hidden)" in out
    assert "answer (int) = 42" in out


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.json")]) == 1
    assert "not found" in capsys.readouterr().out


def test_parse_error(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_bytes(dump(make_map(orientation="oblique")))
    assert main([str(path)]) == 1
    assert "Error [UnsupportedFeature]" in capsys.readouterr().out


@pytest.mark.parametrize("verbose, debug, level", [
    (False, False, logging.WARNING),
    (True, False, logging.INFO),
    (False, True, logging.DEBUG),
])
def test_setup_logging_levels(verbose, debug, level):
    logger = setup_logging(verbose=verbose, debug=debug)
    assert logger.name == "tiled_json"
    assert logger.level == level
    assert get_logger("layers").getEffectiveLevel() == level


def test_module_loggers_are_children_of_the_package():
    assert get_logger().name == "tiled_json"
    assert get_logger("layers").name == "tiled_json.layers"
    assert get_logger("layers").parent is get_logger()
