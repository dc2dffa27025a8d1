# colour_quant/colour_convert.py
from __future__ import annotations

"""
Colour space conversions used for matching (RGB, HSV, YIQ, YCbCr 601).

Every space is stored as three 8-bit components so converted images and
palettes flow through the same population, palette and dither code as RGB.

Exports:
  ColourSpace, colourspace_name(space)
  rgb_to_space(rgb, space)       (..., 3) uint8 -> (..., 3) uint8
  space_to_rgb(values, space)    (..., 3) uint8 -> (..., 3) uint8
  to_space(colour, space) / from_space(colour, space)   single colours
  image_to_space(image, space) / image_from_space(image, space)   in place

Round-trip error per component (8-bit storage):
  RGB 0, YCbCr <= 1, YIQ <= 2, HSV <= 4 (hue is quantised to 256 steps).
"""

from enum import IntEnum
from typing import Sequence, Union

import numpy as np

from .core_types import IndexedImage, Palette, RGBTuple, U8Image, coerce_to_rgb_tuple


class ColourSpace(IntEnum):
    RGB = 0
    HSV = 1
    YIQ = 2
    YCBCR = 3

    @classmethod
    def parse(cls, value: Union["ColourSpace", int, str]) -> "ColourSpace":
        """Accept a member, its integer value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"unknown colour space: {value!r}") from None
        return cls(int(value))


_NAMES = {
    ColourSpace.RGB: "RGB",
    ColourSpace.HSV: "HSV",
    ColourSpace.YIQ: "YIQ",
    ColourSpace.YCBCR: "YCbCr",
}


def colourspace_name(space: Union[ColourSpace, int]) -> str:
    """Display name of a colour space; '(null)' for unknown values."""
    try:
        return _NAMES[ColourSpace(int(space))]
    except ValueError:
        return "(null)"


# Linear transforms

# YIQ (NTSC). I and Q are shifted and scaled into [0, 255].
_YIQ = np.array(
    [
        [0.299, 0.587, 0.114],
        [0.596, -0.274, -0.322],
        [0.211, -0.523, 0.312],
    ],
    dtype=np.float64,
)
_YIQ_INV = np.linalg.inv(_YIQ)
_I_MAX = 0.596 * 255.0  # 151.98
_Q_MAX = 0.523 * 255.0  # 133.365

# YCbCr, ITU-R BT.601 full range. Cb and Cr are centred on 128.
_YCBCR = np.array(
    [
        [0.299, 0.587, 0.114],
        [-0.168736, -0.331264, 0.5],
        [0.5, -0.418688, -0.081312],
    ],
    dtype=np.float64,
)
_YCBCR_INV = np.linalg.inv(_YCBCR)


def _to_u8(values: np.ndarray) -> U8Image:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _rgb_to_yiq(rgb: np.ndarray) -> U8Image:
    yiq = rgb @ _YIQ.T
    yiq[..., 1] = (yiq[..., 1] + _I_MAX) * (255.0 / (2.0 * _I_MAX))
    yiq[..., 2] = (yiq[..., 2] + _Q_MAX) * (255.0 / (2.0 * _Q_MAX))
    return _to_u8(yiq)


def _yiq_to_rgb(yiq: np.ndarray) -> U8Image:
    yiq = yiq.copy()
    yiq[..., 1] = yiq[..., 1] * ((2.0 * _I_MAX) / 255.0) - _I_MAX
    yiq[..., 2] = yiq[..., 2] * ((2.0 * _Q_MAX) / 255.0) - _Q_MAX
    return _to_u8(yiq @ _YIQ_INV.T)


def _rgb_to_ycbcr(rgb: np.ndarray) -> U8Image:
    ycc = rgb @ _YCBCR.T
    ycc[..., 1:] += 128.0
    return _to_u8(ycc)


def _ycbcr_to_rgb(ycc: np.ndarray) -> U8Image:
    ycc = ycc.copy()
    ycc[..., 1:] -= 128.0
    return _to_u8(ycc @ _YCBCR_INV.T)


# HSV, all components scaled to [0, 255]; hue 0..360 degrees maps to 0..255.


def _rgb_to_hsv(rgb: np.ndarray) -> U8Image:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    mx = np.max(rgb, axis=-1)
    mn = np.min(rgb, axis=-1)
    delta = mx - mn
    chromatic = delta > 0

    with np.errstate(divide="ignore", invalid="ignore"):
        sat = np.where(mx > 0, delta / mx, 0.0)
        hue = np.where(
            mx == r,
            np.mod((g - b) / delta, 6.0),
            np.where(mx == g, (b - r) / delta + 2.0, (r - g) / delta + 4.0),
        )
    hue = np.where(chromatic, hue * 60.0, 0.0)

    out = np.empty(rgb.shape, dtype=np.float64)
    out[..., 0] = hue * (255.0 / 360.0)
    out[..., 1] = sat * 255.0
    out[..., 2] = mx
    return _to_u8(out)


def _hsv_to_rgb(hsv: np.ndarray) -> U8Image:
    hue = hsv[..., 0] * (6.0 / 255.0)  # sextants
    sat = hsv[..., 1] / 255.0
    val = hsv[..., 2]

    sextant = np.floor(hue)
    f = hue - sextant
    i = np.mod(sextant, 6.0).astype(np.int64)
    p = val * (1.0 - sat)
    q = val * (1.0 - sat * f)
    t = val * (1.0 - sat * (1.0 - f))

    r = np.choose(i, [val, q, p, p, t, val])
    g = np.choose(i, [t, val, val, q, p, p])
    b = np.choose(i, [p, p, t, val, val, q])
    return _to_u8(np.stack([r, g, b], axis=-1))


def rgb_to_space(rgb: np.ndarray, space: Union[ColourSpace, int, str]) -> U8Image:
    """
    RGB rows or image (..., 3) to the given space. Returns a new uint8 array.
    """
    space = ColourSpace.parse(space)
    arr = np.asarray(rgb, dtype=np.uint8)
    if space == ColourSpace.RGB:
        return arr.copy()
    values = arr.astype(np.float64)
    if space == ColourSpace.HSV:
        return _rgb_to_hsv(values)
    if space == ColourSpace.YIQ:
        return _rgb_to_yiq(values)
    return _rgb_to_ycbcr(values)


def space_to_rgb(values: np.ndarray, space: Union[ColourSpace, int, str]) -> U8Image:
    """
    Inverse of rgb_to_space. Returns a new uint8 array.
    """
    space = ColourSpace.parse(space)
    arr = np.asarray(values, dtype=np.uint8)
    if space == ColourSpace.RGB:
        return arr.copy()
    floats = arr.astype(np.float64)
    if space == ColourSpace.HSV:
        return _hsv_to_rgb(floats)
    if space == ColourSpace.YIQ:
        return _yiq_to_rgb(floats)
    return _ycbcr_to_rgb(floats)


def to_space(colour: Sequence[int], space: Union[ColourSpace, int, str]) -> RGBTuple:
    """Convert one RGB colour into the given space."""
    row = np.array([coerce_to_rgb_tuple(colour)], dtype=np.uint8)
    return coerce_to_rgb_tuple(rgb_to_space(row, space)[0])


def from_space(colour: Sequence[int], space: Union[ColourSpace, int, str]) -> RGBTuple:
    """Convert one colour from the given space back to RGB."""
    row = np.array([coerce_to_rgb_tuple(colour)], dtype=np.uint8)
    return coerce_to_rgb_tuple(space_to_rgb(row, space)[0])


def image_to_space(
    image: Union[U8Image, IndexedImage], space: Union[ColourSpace, int, str]
) -> Union[U8Image, IndexedImage]:
    """
    Convert an image to the given space in place and return it.
    Indexed images have their palette entries converted instead of pixels.
    """
    if isinstance(image, IndexedImage):
        image.palette = Palette(rgb_to_space(image.palette.rgb, space))
        return image
    image[..., :3] = rgb_to_space(image[..., :3], space)
    return image


def image_from_space(
    image: Union[U8Image, IndexedImage], space: Union[ColourSpace, int, str]
) -> Union[U8Image, IndexedImage]:
    """Inverse of image_to_space, also in place."""
    if isinstance(image, IndexedImage):
        image.palette = Palette(space_to_rgb(image.palette.rgb, space))
        return image
    image[..., :3] = space_to_rgb(image[..., :3], space)
    return image


__all__ = [
    "ColourSpace",
    "colourspace_name",
    "rgb_to_space",
    "space_to_rgb",
    "to_space",
    "from_space",
    "image_to_space",
    "image_from_space",
]
