import random

import numpy as np
import pytest

from tiled_json import gid


def test_zero_is_empty_cell():
    assert gid.decode(0) == (0, False, False, False)


def test_horizontal_flip_bit():
    assert gid.decode(2147483653) == (5, True, False, False)


def test_each_flag_bit():
    assert gid.decode(gid.FLIPPED_VERTICALLY | 9) == (9, False, True, False)
    assert gid.decode(gid.FLIPPED_DIAGONALLY | 9) == (9, False, False, True)
    assert gid.decode(0xE0000001) == (1, True, True, True)


def test_tile_id_uses_29_bits():
    decoded = gid.decode(0x1FFFFFFF)
    assert decoded.tile_id == 0x1FFFFFFF
    assert not any(decoded[1:])


def test_decode_result_fields():
    decoded = gid.decode(gid.encode(12, flipped_diagonally=True))
    assert decoded.tile_id == 12
    assert decoded.flipped_diagonally
    assert not decoded.flipped_horizontally
    assert not decoded.flipped_vertically


@pytest.mark.parametrize("raw", [0, 1, 0x1FFFFFFF, 0x20000000, 0x80000000, 0xFFFFFFFF])
def test_round_trip_boundaries(raw):
    assert gid.encode(*gid.decode(raw)) == raw


def test_round_trip_sample():
    rng = random.Random(1234)
    for _ in range(2000):
        raw = rng.getrandbits(32)
        assert gid.encode(*gid.decode(raw)) == raw


@pytest.mark.parametrize("raw", [-1, 2 ** 32])
def test_decode_rejects_values_outside_u32(raw):
    with pytest.raises(ValueError):
        gid.decode(raw)


def test_encode_rejects_oversized_tile_id():
    with pytest.raises(ValueError):
        gid.encode(0x20000000)


def test_decode_array_matches_scalar_decode():
    values = [0, 1, 6, 2147483653, 0xE0000001, 0x40000002]
    tile_ids, h_flips, v_flips, d_flips = gid.decode_array(np.array(values, dtype=np.uint32))
    for i, raw in enumerate(values):
        assert (int(tile_ids[i]), bool(h_flips[i]), bool(v_flips[i]), bool(d_flips[i])) \
            == tuple(gid.decode(raw))
