"""Builders for Tiled JSON documents used across the tests."""

import json


def sheet_tileset(firstgid, columns, rows, name="terrain", tile=16, **extra):
    """Spritesheet tileset of columns x rows tiles, no margin or spacing."""
    tileset = {
        "firstgid": firstgid,
        "name": name,
        "tilewidth": tile,
        "tileheight": tile,
        "tilecount": columns * rows,
        "columns": columns,
        "image": f"{name}.png",
        "imagewidth": columns * tile,
        "imageheight": rows * tile,
        "margin": 0,
        "spacing": 0,
    }
    tileset.update(extra)
    return tileset


def collection_tileset(firstgid, tilecount, name="props", **extra):
    tileset = {
        "firstgid": firstgid,
        "name": name,
        "tilewidth": 32,
        "tileheight": 32,
        "tilecount": tilecount,
        "columns": 0,
        "margin": 0,
        "spacing": 0,
        "tiles": [
            {"id": i, "image": f"props/{i}.png", "imagewidth": 32, "imageheight": 32}
            for i in range(tilecount)
        ],
    }
    tileset.update(extra)
    return tileset


def tile_layer(data, width, height, name="Ground", **extra):
    layer = {
        "type": "tilelayer",
        "id": 1,
        "name": name,
        "width": width,
        "height": height,
        "x": 0,
        "y": 0,
        "opacity": 1,
        "visible": True,
        "data": data,
    }
    layer.update(extra)
    return layer


def object_group(objects, name="Objects", **extra):
    layer = {
        "type": "objectgroup",
        "id": 2,
        "name": name,
        "draworder": "topdown",
        "opacity": 1,
        "visible": True,
        "objects": objects,
    }
    layer.update(extra)
    return layer


def group(layers, name="Group", **extra):
    layer = {"type": "group", "id": 3, "name": name, "opacity": 1, "visible": True,
             "layers": layers}
    layer.update(extra)
    return layer


def make_map(layers=(), tilesets=(), width=4, height=1, **extra):
    document = {
        "type": "map",
        "version": "1.10",
        "tiledversion": "1.10.2",
        "orientation": "orthogonal",
        "renderorder": "right-down",
        "width": width,
        "height": height,
        "tilewidth": 16,
        "tileheight": 16,
        "infinite": False,
        "nextlayerid": 10,
        "nextobjectid": 10,
        "tilesets": list(tilesets),
        "layers": list(layers),
    }
    document.update(extra)
    return document


def dump(document) -> bytes:
    return json.dumps(document).encode("utf-8")
