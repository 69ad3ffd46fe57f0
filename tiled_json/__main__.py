#!/usr/bin/env python3

"""
Tiled JSON map inspector - prints a summary of a decoded map.

Usage:
    python -m tiled_json <map.json> [-v] [--debug]
"""

import argparse
import sys
from pathlib import Path

from .errors import ParseError
from .layers import GroupLayer, ImageLayer, ObjectGroup, TileLayer
from .logging_config import setup_logging
from .tiled_map import TiledMap, load


def _describe_layer(layer, depth: int) -> str:
    indent = "  " * depth
    if isinstance(layer, TileLayer):
        filled = sum(1 for _ in layer.iter_tiles())
        if layer.infinite:
            detail = f"{len(layer.chunks)} chunks, {filled} tiles"
        else:
            detail = f"{layer.width}x{layer.height}, {filled} tiles"
    elif isinstance(layer, ObjectGroup):
        detail = f"{len(layer.objects)} objects"
    elif isinstance(layer, ImageLayer):
        detail = layer.image or "no image"
    else:
        detail = f"{len(layer.layers)} layers"
    hidden = "" if layer.visible else " (hidden)"
    return f"{indent}- [{layer.kind.value}] {layer.name}: {detail}{hidden}"


def print_summary(tiled_map: TiledMap):
    print(f"Map: {tiled_map.width}x{tiled_map.height} tiles of "
          f"{tiled_map.tilewidth}x{tiled_map.tileheight} px, "
          f"{tiled_map.orientation.value}, {tiled_map.renderorder.value}"
          f"{', infinite' if tiled_map.infinite else ''}")
    if tiled_map.version:
        print(f"Format version: {tiled_map.version}")

    print(f"Tilesets: {len(tiled_map.tilesets)}")
    for tileset in tiled_map.tilesets:
        print(f"  - {tileset.name}: gids {tileset.firstgid}..{tileset.end_gid - 1} "
              f"({tileset.tilecount} tiles)")

    print("Layers:")

    def walk(layers, depth):
        for layer in layers:
            print(_describe_layer(layer, depth + 1))
            if isinstance(layer, GroupLayer):
                walk(layer.layers, depth + 1)

    walk(tiled_map.layers, 0)

    if tiled_map.properties:
        print("Properties:")
        for prop in tiled_map.properties.values():
            print(f"  - {prop.name} ({prop.type.value}) = {prop.value!r}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="tiled_json",
                                     description="Decode a Tiled JSON map and print a summary.")
    parser.add_argument("map", help="path to the .json map file")
    parser.add_argument("-v", "--verbose", action="store_true", help="show info messages")
    parser.add_argument("--debug", action="store_true", help="show debug messages")
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, debug=args.debug)

    if not Path(args.map).exists():
        print(f"Error: File '{args.map}' not found")
        return 1

    try:
        tiled_map = load(args.map)
    except ParseError as e:
        print(f"Error [{e.kind}]: {e}")
        return 1

    print_summary(tiled_map)
    return 0


if __name__ == "__main__":
    sys.exit(main())
