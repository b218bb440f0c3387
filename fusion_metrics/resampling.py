"""
Resampling of rasters to another scale or onto another grid.

Both operations assume the two grids share the same coordinate reference
system; reprojection here only re-grids (scale and origin), it does not
transform coordinates between reference systems.
"""


import logging
import math

import numpy as np
from scipy import ndimage
from skimage import transform

from .raster import RasterImage


logger = logging.getLogger(__name__)

RESAMPLING_ORDERS = {
    'nearest': 0,
    'bilinear': 1,
    'bicubic': 3,
}


def resampling_order(method):
    """
    Spline order of a resampling method.

    Args:
        method (str): One of 'nearest', 'bilinear', 'bicubic'

    Returns:
        int: Spline interpolation order

    Raises:
        ValueError: If the method is unknown
    """
    key = method.lower() if method else None

    if key not in RESAMPLING_ORDERS:
        raise ValueError(f"Unknown resampling method: {method}. Available: {list(RESAMPLING_ORDERS.keys())}")

    return RESAMPLING_ORDERS[key]


def resample_to_scale(image, scale, method = 'nearest'):
    """
    Resample an image to a new nominal scale, keeping its origin.

    Args:
        image (RasterImage): Image to resample
        scale (float): Target ground sample distance, in map units
        method (str): Resampling method. Default: 'nearest'

    Returns:
        RasterImage: Resampled image. Shape: (H * s / scale, W * s / scale, C)
    """

    if scale is None or scale == image.nominal_scale:
        return image

    ratio = image.nominal_scale / float(scale)
    out_h = max(1, int(math.floor(image.shape[0] * ratio + 0.5)))
    out_w = max(1, int(math.floor(image.shape[1] * ratio + 0.5)))

    logger.debug("Resampling %s from scale %s to %s (%dx%d)",
                 image.band_names, image.nominal_scale, scale, out_h, out_w)

    data = transform.resize(image.data,
                            (out_h, out_w, image.band_count),
                            order = resampling_order(method),
                            mode = 'edge',
                            preserve_range = True,
                            anti_aliasing = False)

    return RasterImage(data,
                       band_names = image.band_names,
                       nominal_scale = scale,
                       origin = image.origin,
                       crs = image.crs)


def _fill_masked(band):
    """Replace NaN samples by the band mean so splines do not spread them."""
    mask = np.isnan(band)
    if not mask.any():
        return band, None
    filled = band.copy()
    filled[mask] = np.nanmean(band) if not mask.all() else 0.0
    return filled, mask


def reproject_to(image, target, method = 'bicubic'):
    """
    Resample image onto the pixel grid of target.

    Every target pixel centre is located in the source grid and interpolated
    with a spline of the requested order. Samples outside the source extent
    take the value of the nearest edge pixel. Masked (NaN) source samples
    stay masked in the output.

    Args:
        image (RasterImage): Image to resample
        target (RasterImage): Image whose grid (shape, origin, scale) is matched
        method (str): Resampling method. Default: 'bicubic'

    Returns:
        RasterImage: image's bands on target's grid
    """

    if image.same_grid(target):
        return image

    order = resampling_order(method)
    xs, ys = target.pixel_centers()
    x0, y0 = image.origin

    # Fractional source indices of the target pixel centres
    cols = (xs - x0) / image.nominal_scale - 0.5
    rows = (y0 - ys) / image.nominal_scale - 0.5
    grid_rows, grid_cols = np.meshgrid(rows, cols, indexing = 'ij')
    coords = np.array([grid_rows, grid_cols])

    logger.debug("Reprojecting %s onto %dx%d grid at scale %s (order %d)",
                 image.band_names, target.shape[0], target.shape[1], target.nominal_scale, order)

    out = np.zeros(target.shape + (image.band_count,))
    for i in range(image.band_count):
        band, mask = _fill_masked(image.data[:, :, i])
        out[:, :, i] = ndimage.map_coordinates(band, coords, order = order, mode = 'nearest')
        if mask is not None:
            out_mask = ndimage.map_coordinates(mask.astype(np.float64), coords, order = 0, mode = 'nearest')
            out[:, :, i][out_mask > 0.5] = np.nan

    return RasterImage(out,
                       band_names = image.band_names,
                       nominal_scale = target.nominal_scale,
                       origin = target.origin,
                       crs = target.crs)
