import numpy as np
import pytest

from colour_quant.core_types import IndexedImage, Palette
from colour_quant.dither import (
    ATKINSON,
    BURKES,
    FLOYD_STEINBERG,
    KERNELS,
    SIERRA,
    DiffusionKernel,
    DitherMode,
    ErrorBuffer,
    apply_dither,
    atkinson_dither,
    burkes_dither,
    error_diffusion_dither,
    floyd_steinberg_dither,
    nearest_dither,
    random_dither,
    sierra_dither,
    two_nearest,
)
from colour_quant.dither import diffusion
from colour_quant.dither.diffusion import trunc_div
from colour_quant.dither.random_dither import isqrt_array

BLACK_WHITE = Palette.from_colours([(0, 0, 0), (255, 255, 255)])


def _grey(values):
    arr = np.array(values, dtype=np.uint8)
    return np.repeat(arr[..., None], 3, axis=-1)


def test_kernel_weights_and_rows():
    assert FLOYD_STEINBERG.weight_total == FLOYD_STEINBERG.denominator == 16
    assert SIERRA.weight_total == SIERRA.denominator == 32
    assert BURKES.weight_total == BURKES.denominator == 32
    # Atkinson passes on 6/8 of the error.
    assert (ATKINSON.weight_total, ATKINSON.denominator) == (6, 8)
    assert [k.rows for k in (FLOYD_STEINBERG, SIERRA, BURKES, ATKINSON)] == [2, 3, 2, 3]
    assert [k.rounding for k in (FLOYD_STEINBERG, SIERRA, ATKINSON)] == [7, 15, 3]
    assert not ATKINSON.error_reduction and FLOYD_STEINBERG.error_reduction
    assert FLOYD_STEINBERG.mirrored() == ((-1, 0, 7), (1, 1, 3), (0, 1, 5), (-1, 1, 1))


# (dx, dy, weight) for a left-to-right row, written out independently of the package.
KERNEL_TAPS = {
    "floyd_steinberg": ((1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1)),
    "sierra": (
        (1, 0, 5), (2, 0, 3),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 5), (1, 1, 4), (2, 1, 2),
        (-1, 2, 2), (0, 2, 3), (1, 2, 2),
    ),
    "burkes": ((1, 0, 8), (2, 0, 4), (0, 1, 8), (1, 1, 4), (-1, 1, 4), (2, 1, 2), (-2, 1, 2)),
    "atkinson": ((1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1)),
}
KERNEL_DENOMINATORS = {"floyd_steinberg": 16, "sierra": 32, "burkes": 32, "atkinson": 8}
REDUCING_KERNELS = {"floyd_steinberg", "sierra", "burkes"}
NAMED_DITHERS = {
    "floyd_steinberg": floyd_steinberg_dither,
    "sierra": sierra_dither,
    "burkes": burkes_dither,
    "atkinson": atkinson_dither,
}


def test_kernel_taps_are_exact():
    assert set(KERNELS) == set(KERNEL_TAPS)
    for name, taps in KERNEL_TAPS.items():
        kernel = KERNELS[name]
        assert kernel.taps == taps, name
        assert kernel.denominator == KERNEL_DENOMINATORS[name]
        assert kernel.error_reduction == (name in REDUCING_KERNELS)
        assert kernel.mirrored() == tuple((-dx, dy, w) for dx, dy, w in taps)
    assert SIERRA.mirrored()[:3] == ((-1, 0, 5), (-2, 0, 3), (2, 1, 2))
    assert BURKES.mirrored()[:2] == ((-1, 0, 8), (-2, 0, 4))
    assert ATKINSON.mirrored()[-1] == (0, 2, 1)


def _tdiv(a, d):
    q = abs(a) // d
    return q if a >= 0 else -q


def _diffuse_by_hand(rows, palette, taps, denom, reduce_error):
    """Pixel-at-a-time serpentine diffusion over nested lists."""
    height, width = len(rows), len(rows[0])
    pending = {}
    out = [[0] * width for _ in range(height)]
    for y in range(height):
        forward = y % 2 == 0
        for x in range(width) if forward else range(width - 1, -1, -1):
            acc = pending.get((x, y), [0, 0, 0])
            if reduce_error:
                value = [rows[y][x][c] * denom + _tdiv(3 * acc[c], 4 * denom) for c in range(3)]
            else:
                value = [rows[y][x][c] * denom + _tdiv(acc[c], denom) for c in range(3)]
            cand = [min(255, max(0, _tdiv(v + denom // 2 - 1, denom))) for v in value]
            best = min(
                range(len(palette)),
                key=lambda j: (sum((cand[c] - palette[j][c]) ** 2 for c in range(3)), j),
            )
            out[y][x] = best
            residual = [value[c] - palette[best][c] * denom for c in range(3)]
            for dx, dy, w in taps:
                tx, ty = (x + dx if forward else x - dx), y + dy
                if 0 <= tx < width and ty < height:
                    cell = pending.setdefault((tx, ty), [0, 0, 0])
                    for c in range(3):
                        cell[c] += residual[c] * w
    return out


@pytest.mark.parametrize("name", sorted(KERNEL_TAPS))
def test_diffusion_matches_pixel_loop(name):
    rng = np.random.default_rng(21)
    img = rng.integers(0, 256, size=(7, 9, 3), dtype=np.uint8)
    palettes = [BLACK_WHITE] + [
        Palette(rng.integers(0, 256, size=(n, 3), dtype=np.uint8)) for n in (5, 63, 64, 70)
    ]
    for pal in palettes:
        reduce_error = name in REDUCING_KERNELS and len(pal) < 64
        expected = _diffuse_by_hand(
            img.tolist(), pal.as_tuples(), KERNEL_TAPS[name], KERNEL_DENOMINATORS[name], reduce_error
        )
        got = NAMED_DITHERS[name](img, pal)
        assert got.indices.tolist() == expected, (name, len(pal))
        assert apply_dither(img, pal, name).indices.tolist() == expected


def test_sierra_column_uses_two_rows_down():
    # Row 0 (100 -> black) leaves 5/32 and 3/32 of 3200 below it. With 3/4 of
    # the error fed forward the last pixel reaches 128 only through the
    # two-rows-down tap.
    assert sierra_dither(_grey([[100], [60], [113]]), BLACK_WHITE).indices.tolist() == [[0], [0], [1]]


def test_atkinson_column_uses_two_rows_down():
    # In 1/8 units: 100 -> black (residual 800); 60 + 12.5 -> black (residual 580);
    # 107 + (800 + 580) / 64 = 128.6 -> white. Without the tap it stays black.
    assert atkinson_dither(_grey([[100], [60], [107]]), BLACK_WHITE).indices.tolist() == [[0], [0], [1]]


def test_burkes_odd_row_runs_right_to_left():
    # Row 1 starts at x=2: 100 -> black, passing 8/32 of 3200 to x=1, which
    # then reaches 127.75 (3/4 error) and rounds to white.
    img = _grey([[0, 0, 0], [0, 109, 100], [0, 0, 0]])
    out = burkes_dither(img, BLACK_WHITE)
    assert out.indices.tolist() == [[0, 0, 0], [0, 1, 0], [0, 0, 0]]


def _red_palette(size):
    # Black, red, then fillers far from any (r, 0, 0) pixel.
    fillers = [(4 * k, 255, 255) for k in range(size - 2)]
    return Palette.from_colours([(0, 0, 0), (255, 0, 0)] + fillers)


def test_error_reduction_stops_at_64_colours():
    img = np.array([[[120, 0, 0], [80, 0, 0]]], dtype=np.uint8)
    # 63 colours: 80 + 3/4 * 7/16 * 120 = 119.4 -> black.
    assert floyd_steinberg_dither(img, _red_palette(63)).indices.tolist() == [[0, 0]]
    # 64 colours: 80 + 7/16 * 120 = 132.5 -> red.
    assert floyd_steinberg_dither(img, _red_palette(64)).indices.tolist() == [[0, 1]]


def test_trunc_div_rounds_toward_zero():
    a = np.array([7, -7, 15, -15, 0])
    assert trunc_div(a, 2).tolist() == [3, -3, 7, -7, 0]


def test_error_buffer_scrolls_and_clears():
    buf = ErrorBuffer(width=2, rows=3)
    buf.add(0, 1, np.array([1, 2, 3]))
    buf.add(1, 2, np.array([4, 5, 6]))
    buf.scroll()
    assert buf.pending(0).tolist() == [1, 2, 3]
    assert buf.data[1, 1].tolist() == [4, 5, 6]
    assert not buf.data[2].any()


def test_dither_mode_parse():
    assert DitherMode.parse("floyd_steinberg") is DitherMode.FLOYD_STEINBERG
    assert DitherMode.parse("Floyd-Steinberg") is DitherMode.FLOYD_STEINBERG
    assert DitherMode.parse(5) is DitherMode.RANDOM
    assert DitherMode.SIERRA.label == "sierra"
    with pytest.raises(ValueError):
        DitherMode.parse("ordered")


def test_exact_colours_map_to_themselves_in_every_mode():
    img = np.array(
        [[[255, 0, 0], [0, 255, 0]], [[0, 0, 255], [250, 250, 250]]], dtype=np.uint8
    )
    pal = Palette.from_colours([(0, 0, 255), (250, 250, 250), (255, 0, 0), (0, 255, 0)])
    for mode in DitherMode:
        out = apply_dither(img, pal, mode, rng=np.random.default_rng(0))
        assert np.array_equal(out.to_rgb(), img), mode.label


def test_single_colour_palette_maps_everything_to_zero():
    rng = np.random.default_rng(4)
    img = rng.integers(0, 256, size=(6, 9, 3), dtype=np.uint8)
    pal = Palette.from_colours([(12, 34, 56)])
    for mode in DitherMode:
        out = apply_dither(img, pal, mode, rng=np.random.default_rng(1))
        assert not out.indices.any(), mode.label


def test_solid_image_leaves_no_residual(monkeypatch):
    added = []

    class RecordingBuffer(ErrorBuffer):
        def add(self, x, dy, weighted):
            added.append(np.array(weighted))
            super().add(x, dy, weighted)

    monkeypatch.setattr(diffusion, "ErrorBuffer", RecordingBuffer)
    img = np.full((1, 100, 3), 77, dtype=np.uint8)
    out = floyd_steinberg_dither(img, Palette.from_colours([(77, 77, 77)]))
    assert not out.indices.any()
    assert added and all(not a.any() for a in added)


def test_error_reduction_for_small_palettes():
    # 120 -> black, residual 120 * 16. The next pixel (80) sees +7*120/16 = 52.5
    # with the full error (-> 132, white) but only +39.375 with 3/4 of it (-> 119, black).
    img = _grey([[120, 80]])
    full = DiffusionKernel("fs_full", FLOYD_STEINBERG.taps, 16)
    assert error_diffusion_dither(img, BLACK_WHITE, full).indices.tolist() == [[0, 1]]
    assert floyd_steinberg_dither(img, BLACK_WHITE).indices.tolist() == [[0, 0]]


def test_odd_rows_run_right_to_left():
    # Row 1 starts at its right edge: the last 100 goes black and pushes
    # 7 * 100 / 16 onto its left neighbour, which becomes white (144).
    # Left to right the same row would come out [0, 0, 1].
    img = _grey([[0, 0, 0], [0, 100, 100]])
    full = DiffusionKernel("fs_full", FLOYD_STEINBERG.taps, 16)
    out = error_diffusion_dither(img, BLACK_WHITE, full)
    assert out.indices.tolist() == [[0, 0, 0], [0, 1, 0]]


def test_diffusion_beats_plain_mapping_on_local_tone():
    ramp = np.tile(np.arange(256, dtype=np.uint8), (16, 1))
    img = _grey(ramp)

    def block_means(rgb):
        grey = rgb[..., 0].astype(np.float64)
        return grey.reshape(2, 8, 32, 8).mean(axis=(1, 3))

    target = block_means(img)
    plain = nearest_dither(img, BLACK_WHITE)
    dithered = floyd_steinberg_dither(img, BLACK_WHITE)
    err_plain = np.mean((block_means(plain.to_rgb()) - target) ** 2)
    err_dith = np.mean((block_means(dithered.to_rgb()) - target) ** 2)
    assert err_dith < err_plain


def test_out_image_is_filled_in_place():
    img = _grey([[10, 250], [250, 10]])
    out = IndexedImage.blank(2, 2, Palette.from_colours([(1, 1, 1)]))
    result = nearest_dither(img, BLACK_WHITE, out)
    assert result is out
    assert out.palette == BLACK_WHITE
    assert out.indices.tolist() == [[0, 1], [1, 0]]


def test_mismatched_out_and_empty_inputs_return_none():
    img = _grey([[10, 250]])
    wrong = IndexedImage.blank(3, 3, BLACK_WHITE)
    for mode in DitherMode:
        assert apply_dither(img, BLACK_WHITE, mode, wrong) is None
        assert apply_dither(None, BLACK_WHITE, mode) is None
        assert apply_dither(img, Palette.from_colours([]), mode) is None
        assert apply_dither(np.zeros((0, 0, 3), dtype=np.uint8), BLACK_WHITE, mode) is None


def test_palette_may_be_plain_colour_list():
    out = nearest_dither(_grey([[0, 255]]), [(255, 255, 255), (0, 0, 0)])
    assert out.indices.tolist() == [[1, 0]]


def test_nearest_ties_go_to_lowest_index():
    pal = Palette.from_colours([(0, 0, 0), (20, 20, 20), (20, 20, 20)])
    out = nearest_dither(_grey([[10, 20]]), pal)
    assert out.indices.tolist() == [[0, 1]]


def test_two_nearest():
    pal = Palette.from_colours([(0, 0, 0), (100, 100, 100), (40, 40, 40)])
    c1, c2, d1, d2 = two_nearest(np.array([[30, 30, 30]], dtype=np.uint8), pal)
    assert (int(c1[0]), int(c2[0])) == (2, 0)
    assert (int(d1[0]), int(d2[0])) == (300, 2700)

    single = Palette.from_colours([(5, 5, 5)])
    c1, c2, d1, d2 = two_nearest(np.array([[6, 5, 5]], dtype=np.uint8), single)
    assert (int(c1[0]), int(c2[0]), int(d1[0])) == (0, 0, 1)
    assert int(d2[0]) == 0xFFFFFFFF


def test_isqrt_array():
    values = np.array([0, 1, 2, 3, 4, 15, 16, 17, 48387, 0xFFFFFFFF])
    assert isqrt_array(values).tolist() == [0, 1, 1, 1, 2, 3, 4, 4, 219, 65535]


def test_random_dither_is_repeatable_and_mixes():
    img = np.full((100, 100, 3), 128, dtype=np.uint8)
    a = random_dither(img, BLACK_WHITE, seed=42)
    b = random_dither(img, BLACK_WHITE, rng=np.random.default_rng(42))
    assert np.array_equal(a.indices, b.indices)
    # e1 = 219 (white), e2 = 221 (black): black about half the time.
    black_share = float(np.mean(a.indices == 0))
    assert 0.45 < black_share < 0.55


def test_random_dither_keeps_exact_matches():
    img = _grey([[0, 255, 0]])
    for seed in range(5):
        assert random_dither(img, BLACK_WHITE, seed=seed).indices.tolist() == [[0, 1, 0]]


def test_index_width_follows_palette_size():
    pal = Palette(np.stack([np.arange(300) % 256, np.arange(300) // 256, np.zeros(300)], axis=1))
    img = np.zeros((2, 2, 3), dtype=np.uint8)
    out = nearest_dither(img, pal)
    assert out.indices.dtype == np.uint16
    small_out = IndexedImage.blank(2, 2, BLACK_WHITE)
    assert nearest_dither(img, pal, small_out).indices.dtype == np.uint16
