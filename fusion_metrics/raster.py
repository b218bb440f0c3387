"""
In-memory raster model used by the quality metrics
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Region:
    """
    Axis-aligned bounding box in map units.

    A pixel belongs to the region when its centre lies inside the box
    (edges included).
    """

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self):
        if not (self.xmin < self.xmax and self.ymin < self.ymax):
            raise ValueError(f"Invalid region bounds: {self.bounds}")

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @classmethod
    def coerce(cls, value) -> Optional["Region"]:
        """Accept a Region, a (xmin, ymin, xmax, ymax) sequence or None."""
        if value is None or isinstance(value, Region):
            return value
        return cls(*[float(v) for v in value])


@dataclass(frozen=True, eq=False)
class RasterImage:
    """
    Multi-band raster on a regular north-up grid.

    data: H x W x C float64 array, read-only. NaN marks masked samples.
    band_names: band identifiers aligned with the last axis of data
    nominal_scale: ground sample distance in map units (square pixels)
    origin: map (x, y) of the upper-left corner of the upper-left pixel
    crs: opaque label of the coordinate reference system
    """

    data: np.ndarray
    band_names: List[str] = field(default=None)
    nominal_scale: float = 1.0
    origin: Tuple[float, float] = (0.0, 0.0)
    crs: Optional[str] = None

    def __post_init__(self):
        data = np.array(self.data, dtype=np.float64)
        if data.ndim == 2:
            data = np.expand_dims(data, axis=-1)
        if data.ndim != 3:
            raise ValueError(f"Raster data must be H x W x C, got shape {data.shape}")
        data.setflags(write=False)

        if self.band_names is None:
            band_names = [f"B{i + 1}" for i in range(data.shape[-1])]
        else:
            band_names = [str(name) for name in self.band_names]
        if len(band_names) != data.shape[-1]:
            raise ValueError(f"{len(band_names)} band names given for {data.shape[-1]} bands")
        if len(set(band_names)) != len(band_names):
            raise ValueError(f"Duplicate band names: {band_names}")

        if not self.nominal_scale > 0:
            raise ValueError(f"nominal_scale must be positive, got {self.nominal_scale}")

        object.__setattr__(self, "data", data)
        object.__setattr__(self, "band_names", band_names)
        object.__setattr__(self, "nominal_scale", float(self.nominal_scale))
        object.__setattr__(self, "origin", (float(self.origin[0]), float(self.origin[1])))

    @classmethod
    def from_bands(cls, bands: Mapping[str, np.ndarray], **kwargs) -> "RasterImage":
        """Build an image from an ordered {band name: 2-D array} mapping."""
        if not bands:
            raise ValueError("At least one band is required")
        arrays = [np.asarray(a, dtype=np.float64) for a in bands.values()]
        shapes = {a.shape for a in arrays}
        if len(shapes) != 1 or arrays[0].ndim != 2:
            raise ValueError(f"Bands must be 2-D arrays of a single shape, got {sorted(shapes)}")
        return cls(np.stack(arrays, axis=-1), band_names=list(bands.keys()), **kwargs)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape[:2]

    @property
    def band_count(self) -> int:
        return self.data.shape[-1]

    def band(self, name: str) -> np.ndarray:
        try:
            index = self.band_names.index(name)
        except ValueError:
            raise KeyError(f"Unknown band '{name}'. Available: {self.band_names}") from None
        return self.data[:, :, index]

    def select(self, *names: str) -> "RasterImage":
        """New image holding the named bands, in the given order."""
        return self.with_data(np.stack([self.band(n) for n in names], axis=-1),
                              band_names=list(names))

    def with_data(self, data: np.ndarray, band_names: Optional[Sequence[str]] = None) -> "RasterImage":
        """Derived image on the same grid."""
        data = np.asarray(data)
        if data.ndim == 2:
            data = np.expand_dims(data, axis=-1)
        if band_names is None:
            band_names = self.band_names
        return RasterImage(data, band_names=list(band_names), nominal_scale=self.nominal_scale,
                           origin=self.origin, crs=self.crs)

    def geometry(self) -> Region:
        """Region covering the full extent of the image."""
        height, width = self.shape
        x0, y0 = self.origin
        return Region(x0, y0 - height * self.nominal_scale, x0 + width * self.nominal_scale, y0)

    def same_grid(self, other: "RasterImage") -> bool:
        return (self.shape == other.shape
                and self.origin == other.origin
                and self.nominal_scale == other.nominal_scale)

    def pixel_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """Map coordinates of the pixel centres, as (x of each column, y of each row)."""
        height, width = self.shape
        x0, y0 = self.origin
        xs = x0 + (np.arange(width) + 0.5) * self.nominal_scale
        ys = y0 - (np.arange(height) + 0.5) * self.nominal_scale
        return xs, ys

    def window(self, region: Region) -> Tuple[slice, slice]:
        """Row and column slices of the pixels whose centres fall inside region."""
        xs, ys = self.pixel_centers()
        cols = np.nonzero((xs >= region.xmin) & (xs <= region.xmax))[0]
        rows = np.nonzero((ys >= region.ymin) & (ys <= region.ymax))[0]
        if cols.size == 0 or rows.size == 0:
            raise ValueError(f"Region {region.bounds} does not cover any pixel of the image")
        return slice(rows[0], rows[-1] + 1), slice(cols[0], cols[-1] + 1)

    # Pixel-wise algebra. Results keep this image's grid and band names.
    __array_ufunc__ = None

    def _operand(self, other):
        if isinstance(other, RasterImage):
            return other.data
        return np.asarray(other, dtype=np.float64)

    def __add__(self, other):
        return self.with_data(self.data + self._operand(other))

    def __sub__(self, other):
        return self.with_data(self.data - self._operand(other))

    def __mul__(self, other):
        return self.with_data(self.data * self._operand(other))

    def __pow__(self, exponent):
        return self.with_data(self.data ** exponent)

    def __abs__(self):
        return self.with_data(np.abs(self.data))

    __rmul__ = __mul__

    def __repr__(self):
        return (f"RasterImage(bands={self.band_names}, shape={self.shape}, "
                f"nominal_scale={self.nominal_scale}, origin={self.origin}, crs={self.crs!r})")
