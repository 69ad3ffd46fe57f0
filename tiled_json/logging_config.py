"""
Logger helpers for tiled_json.

Every module logs through a child of the "tiled_json" logger:

    tiled_json.map       format version warnings, finished maps
    tiled_json.tileset   finished tilesets and their gid ranges
    tiled_json.layers    finished layers, by group path

The library never installs handlers. Applications configure logging
themselves; the summary driver (python -m tiled_json) calls setup_logging().
"""

import logging
import sys
from typing import Optional


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """
    Send tiled_json log records to stderr.

    Warnings (newer format versions) are always shown; verbose adds INFO,
    debug adds the per-tileset and per-layer build messages. stdout stays
    free for the map summary.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True
    )

    logger = logging.getLogger('tiled_json')
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for one tiled_json module, e.g. get_logger('layers')."""
    if name:
        return logging.getLogger(f'tiled_json.{name}')
    return logging.getLogger('tiled_json')
