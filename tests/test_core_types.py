import numpy as np
import pytest
from PIL import Image

from colour_quant.core_types import (
    IndexedImage,
    Palette,
    PopulationEntry,
    as_rgb_image,
    coerce_to_rgb_tuple,
    distance_sq,
    index_dtype_for,
    is_grayscale_source,
    pack_rgb,
    pack_rows,
    unpack_alpha,
    unpack_rgb,
)


def test_pack_unpack_roundtrip():
    for rgb in [(0, 0, 0), (255, 255, 255), (1, 2, 3), (200, 17, 99)]:
        assert unpack_rgb(pack_rgb(rgb)) == rgb
    packed = pack_rgb((10, 20, 30), alpha=128)
    assert unpack_rgb(packed) == (10, 20, 30)
    assert unpack_alpha(packed) == 128
    assert pack_rgb((0x12, 0x34, 0x56)) == 0x123456


def test_pack_rows_matches_scalar_pack():
    rows = np.array([[1, 2, 3], [255, 0, 128]], dtype=np.uint8)
    assert pack_rows(rows).tolist() == [pack_rgb((1, 2, 3)), pack_rgb((255, 0, 128))]


def test_distance_sq_symmetric_and_zero_only_for_equal():
    rng = np.random.default_rng(3)
    cols = [tuple(int(v) for v in c) for c in rng.integers(0, 256, size=(40, 3))]
    for a in cols:
        for b in cols[:10]:
            d = distance_sq(a, b)
            assert d == distance_sq(b, a)
            assert d >= 0
            assert (d == 0) == (a == b)
    assert distance_sq((0, 0, 0), (255, 255, 255)) == 3 * 255 * 255


def test_palette_is_read_only_and_comparable():
    pal = Palette.from_colours([(1, 2, 3), (4, 5, 6)])
    assert len(pal) == 2
    assert pal[1] == (4, 5, 6)
    assert list(pal) == [(1, 2, 3), (4, 5, 6)]
    assert not pal.rgb.flags.writeable
    with pytest.raises(ValueError):
        pal.rgb[0, 0] = 9
    assert pal == pal.copy()
    assert pal != Palette.from_colours([(1, 2, 3)])
    assert len(Palette.from_colours([])) == 0


def test_index_dtype_for():
    assert index_dtype_for(2) == np.uint8
    assert index_dtype_for(256) == np.uint8
    assert index_dtype_for(257) == np.uint16
    assert index_dtype_for(70000) == np.int32


def test_indexed_image_blank_and_pixels():
    pal = Palette.from_colours([(0, 0, 0), (9, 8, 7)])
    img = IndexedImage.blank(3, 2, pal)
    assert (img.width, img.height) == (3, 2)
    assert img.indices.dtype == np.uint8
    img.indices[1, 2] = 1
    assert img.get_pixel(2, 1) == (9, 8, 7)
    assert img.get_pixel(0, 0) == (0, 0, 0)
    rgb = img.to_rgb()
    assert rgb.shape == (2, 3, 3)
    assert rgb[1, 2].tolist() == [9, 8, 7]

    dup = img.copy()
    dup.indices[0, 0] = 1
    assert img.indices[0, 0] == 0


def test_population_entry_selection_state():
    entry = PopulationEntry((1, 2, 3), 5)
    assert not entry.is_selected
    entry.selected = 0
    assert entry.is_selected
    assert entry.count == 5


def test_coerce_to_rgb_tuple():
    assert coerce_to_rgb_tuple(0x010203) == (1, 2, 3)
    assert coerce_to_rgb_tuple(np.array([4, 5, 6], dtype=np.uint8)) == (4, 5, 6)
    assert coerce_to_rgb_tuple([7, 8, 9, 255]) == (7, 8, 9)
    with pytest.raises(ValueError):
        coerce_to_rgb_tuple([1, 2])


def test_as_rgb_image_shapes():
    assert as_rgb_image(None) is None
    assert as_rgb_image(np.zeros((0, 4, 3), dtype=np.uint8)) is None

    gray = np.arange(6, dtype=np.uint8).reshape(2, 3)
    out = as_rgb_image(gray)
    assert out.shape == (2, 3, 3)
    assert np.array_equal(out[..., 0], gray) and np.array_equal(out[..., 2], gray)

    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[..., 3] = 255
    assert as_rgb_image(rgba).shape == (2, 2, 3)

    pil = Image.new("RGB", (4, 2), (10, 20, 30))
    arr = as_rgb_image(pil)
    assert arr.shape == (2, 4, 3)
    assert arr[0, 0].tolist() == [10, 20, 30]


def test_as_rgb_image_rejects_non_images():
    with pytest.raises(TypeError):
        as_rgb_image("not an image")
    with pytest.raises(TypeError):
        as_rgb_image(np.zeros((2, 2, 3), dtype=np.float32))


def test_is_grayscale_source():
    assert is_grayscale_source(np.zeros((2, 2), dtype=np.uint8))
    assert is_grayscale_source(Image.new("L", (2, 2)))
    assert not is_grayscale_source(Image.new("RGB", (2, 2)))

    grey = np.repeat(np.arange(12, dtype=np.uint8).reshape(3, 4, 1), 3, axis=2)
    assert is_grayscale_source(grey)
    rgba = np.concatenate([grey, np.full((3, 4, 1), 9, dtype=np.uint8)], axis=2)
    assert is_grayscale_source(rgba)
    tinted = grey.copy()
    tinted[1, 2, 2] += 1
    assert not is_grayscale_source(tinted)
