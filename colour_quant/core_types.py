# colour_quant/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and lightweight helpers.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
PackedColour = int  # 0xAARRGGBB, alpha optional

U8Image = NDArray[np.uint8]  # (H, W, 3)
U8Rows = NDArray[np.uint8]  # (N, 3) colour rows
IndexArray = NDArray[np.integer]  # (H, W) palette indices


# Packed <-> triplet


def pack_rgb(rgb: Sequence[int], alpha: Optional[int] = None) -> PackedColour:
    """(r, g, b) -> 0xRRGGBB, or 0xAARRGGBB when alpha is given."""
    packed = (int(rgb[0]) << 16) | (int(rgb[1]) << 8) | int(rgb[2])
    if alpha is not None:
        packed |= int(alpha) << 24
    return packed


def unpack_rgb(packed: PackedColour) -> RGBTuple:
    """0x(AA)RRGGBB -> (r, g, b). Alpha bits are ignored."""
    return ((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF)


def unpack_alpha(packed: PackedColour) -> int:
    return (packed >> 24) & 0xFF


def pack_rows(rows: np.ndarray) -> NDArray[np.int64]:
    """Vectorised pack_rgb for (..., 3) uint8 arrays. Returns int64."""
    r = rows[..., 0].astype(np.int64)
    g = rows[..., 1].astype(np.int64)
    b = rows[..., 2].astype(np.int64)
    return (r << 16) | (g << 8) | b


def distance_sq(a: Sequence[int], b: Sequence[int]) -> int:
    """Squared Euclidean distance between two colours."""
    dr = int(a[0]) - int(b[0])
    dg = int(a[1]) - int(b[1])
    db = int(a[2]) - int(b[2])
    return dr * dr + dg * dg + db * db


def index_dtype_for(ncolours: int) -> np.dtype:
    """Smallest unsigned index type able to address ncolours entries."""
    if ncolours <= 256:
        return np.dtype(np.uint8)
    if ncolours <= 65536:
        return np.dtype(np.uint16)
    return np.dtype(np.int32)


# Value objects


@dataclass(frozen=True)
class Palette:
    """Ordered, immutable list of colours. Row i is palette index i."""

    rgb: U8Rows  # shape (N, 3)

    def __post_init__(self) -> None:
        rows = np.array(self.rgb, dtype=np.uint8).reshape(-1, 3)
        rows.setflags(write=False)
        object.__setattr__(self, "rgb", rows)

    @classmethod
    def from_colours(cls, colours: Sequence[Sequence[int]]) -> "Palette":
        if len(colours) == 0:
            return cls(np.zeros((0, 3), dtype=np.uint8))
        return cls(np.array([coerce_to_rgb_tuple(c) for c in colours], dtype=np.uint8))

    def __len__(self) -> int:
        return int(self.rgb.shape[0])

    def __getitem__(self, index: int) -> RGBTuple:
        row = self.rgb[index]
        return (int(row[0]), int(row[1]), int(row[2]))

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Palette):
            return NotImplemented
        return self.rgb.shape == other.rgb.shape and bool(np.all(self.rgb == other.rgb))

    def __hash__(self) -> int:
        return hash(self.rgb.tobytes())

    def as_tuples(self) -> List[RGBTuple]:
        return [self[i] for i in range(len(self))]

    def packed(self) -> List[PackedColour]:
        return [pack_rgb(c) for c in self]

    def copy(self) -> "Palette":
        return Palette(self.rgb.copy())


@dataclass
class IndexedImage:
    """Palette-typed image: one palette index per pixel plus the palette."""

    indices: IndexArray  # shape (H, W)
    palette: Palette

    @classmethod
    def blank(cls, width: int, height: int, palette: Palette) -> "IndexedImage":
        dtype = index_dtype_for(max(1, len(palette)))
        return cls(np.zeros((height, width), dtype=dtype), palette)

    @property
    def width(self) -> int:
        return int(self.indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.indices.shape[0])

    def get_pixel(self, x: int, y: int) -> RGBTuple:
        return self.palette[int(self.indices[y, x])]

    def to_rgb(self) -> U8Image:
        """Expand indices through the palette into an (H, W, 3) uint8 image."""
        return self.palette.rgb[self.indices.astype(np.intp, copy=False)].astype(
            np.uint8, copy=False
        )

    def copy(self) -> "IndexedImage":
        return IndexedImage(self.indices.copy(), self.palette.copy())


@dataclass
class PopulationEntry:
    """
    One distinct colour with its occurrence count.

    selected is None while the colour is a candidate; once the palette
    builder picks it, selected holds its palette index.
    """

    colour: RGBTuple
    count: int
    selected: Optional[int] = field(default=None)

    @property
    def is_selected(self) -> bool:
        return self.selected is not None


# Input coercion


def coerce_to_rgb_tuple(value: Union[Sequence[int], NDArray[np.generic], int]) -> RGBTuple:
    """
    Coerce a 3-length sequence, array row or packed int to an RGB tuple.
    """
    if isinstance(value, (int, np.integer)):
        return unpack_rgb(int(value))
    if isinstance(value, np.ndarray):
        if value.size < 3:
            raise ValueError("array too small for RGB")
        flat = value.reshape(-1)
        return (int(flat[0]), int(flat[1]), int(flat[2]))
    if len(value) < 3:
        raise ValueError("sequence too small for RGB")
    return (int(value[0]), int(value[1]), int(value[2]))


def assert_u8_image_rgb(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,3 or 4) image and return it typed as U8Image."""
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] < 3:
        raise TypeError("expected uint8 (H,W,3/4) image")
    return image


def as_rgb_image(image: Any) -> Optional[U8Image]:
    """
    Normalise a source image to a contiguous (H, W, 3) uint8 array.

    Accepts (H,W,3), (H,W,4) and (H,W) uint8 arrays, PIL images and
    IndexedImage. Returns None for None or an empty image; raises TypeError
    for anything that is not an image.
    """
    if image is None:
        return None
    if isinstance(image, IndexedImage):
        if image.indices.size == 0:
            return None
        return image.to_rgb()
    if not isinstance(image, np.ndarray):
        convert = getattr(image, "convert", None)
        if not callable(convert):
            raise TypeError(f"expected an image, got {type(image).__name__}")
        image = np.asarray(convert("RGB"), dtype=np.uint8)
    if image.size == 0:
        return None
    if image.ndim == 2 and image.dtype == np.uint8:
        image = np.repeat(image[..., None], 3, axis=2)
    rgb = assert_u8_image_rgb(image)
    return np.ascontiguousarray(rgb[..., :3])


def is_grayscale_source(image: Any) -> bool:
    """
    True for grey sources: 2-D arrays, (H,W,3/4) arrays whose R, G and B
    planes are identical, and PIL 'L'/'1'/'I'/'F' images.
    """
    if isinstance(image, np.ndarray):
        if image.ndim == 2:
            return True
        if image.ndim != 3 or image.shape[-1] < 3 or image.size == 0:
            return False
        red = image[..., 0]
        return bool(np.array_equal(red, image[..., 1]) and np.array_equal(red, image[..., 2]))
    mode = getattr(image, "mode", None)
    return mode in ("L", "1", "I", "F")


__all__ = [
    # aliases / types
    "RGBTuple",
    "PackedColour",
    "U8Image",
    "U8Rows",
    "IndexArray",
    # value objects
    "Palette",
    "IndexedImage",
    "PopulationEntry",
    # helpers
    "pack_rgb",
    "unpack_rgb",
    "unpack_alpha",
    "pack_rows",
    "distance_sq",
    "index_dtype_for",
    "coerce_to_rgb_tuple",
    "assert_u8_image_rgb",
    "as_rgb_image",
    "is_grayscale_source",
]
