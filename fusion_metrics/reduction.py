"""
Region Reduction Service: per-band statistics over a region of an image.

This is the only place where pixel values are read. Reductions are built as
Dask graphs over spatial chunks and evaluated eagerly, so each call returns
a concrete BandVector. When a dask.distributed Client is active the graph
runs on its cluster.
"""


import logging
import math
import warnings

import numpy as np
import dask
import dask.array as da

from .raster import Region
from .resampling import resample_to_scale


logger = logging.getLogger(__name__)

REDUCERS = {
    'mean': da.nanmean,
    'stddev': da.nanstd,
    'variance': da.nanvar,
    'min': da.nanmin,
    'max': da.nanmax,
    'sum': da.nansum,
}


def sample_grid(data, max_pixels):
    """
    Decimate rows and columns so that at most max_pixels pixels remain.

    Parameters:
        data (np.ndarray): Image. Shape: (H, W, C)
        max_pixels (float): Maximum number of pixels. None disables the cap.

    Returns:
        np.ndarray: Regularly sampled image. Shape: (H', W', C)
    """
    height, width = data.shape[:2]

    if max_pixels is None or height * width <= max_pixels:
        return data

    step = max(1, math.ceil(math.sqrt(height * width / float(max_pixels))))
    while math.ceil(height / step) * math.ceil(width / step) > max_pixels:
        step += 1

    logger.debug("Sampling every %d-th row/column to respect max_pixels=%s", step, max_pixels)
    return data[::step, ::step, :]


class RegionReducer:
    """
    Per-band region reductions over in-memory rasters.

    Attributes:
        chunk_size (tuple): Spatial chunk size of the Dask arrays.
            Default: (256, 256).
    """

    def __init__(self, chunk_size=(256, 256)):
        self.chunk_size = tuple(chunk_size)

    def reduce(self, image, reducer, geometry=None, scale=None, max_pixels=None):
        """
        Reduce every band of an image to a single value.

        Parameters:
            image (RasterImage): Image to reduce
            reducer (str): One of 'mean', 'stddev', 'variance', 'min', 'max', 'sum'
            geometry (Region or tuple): Region to reduce over. Default: image extent
            scale (float): Sampling scale. Default: image nominal scale
            max_pixels (float): Maximum number of sampled pixels. Default: no cap

        Returns:
            np.ndarray: BandVector, one float64 per band in image band order.
                Bands without any valid (non-NaN) sample reduce to NaN.
        """
        if reducer not in REDUCERS:
            raise ValueError(f"Unknown reducer: {reducer}. Available: {list(REDUCERS.keys())}")

        image = resample_to_scale(image, scale)
        data = image.data

        region = Region.coerce(geometry)
        if region is not None:
            rows, cols = image.window(region)
            data = data[rows, cols, :]

        data = sample_grid(data, max_pixels)

        arr = da.from_array(data, chunks=(self.chunk_size[0], self.chunk_size[1], data.shape[-1]))
        values = REDUCERS[reducer](arr, axis=(0, 1))
        counts = da.sum(~da.isnan(arr), axis=(0, 1))

        # All-NaN bands warn inside numpy; they are reported as NaN below
        with warnings.catch_warnings(), np.errstate(invalid='ignore', divide='ignore'):
            warnings.simplefilter('ignore', RuntimeWarning)
            values, counts = dask.compute(values, counts)

        values = np.asarray(values, dtype=np.float64)
        values[np.asarray(counts) == 0] = np.nan

        logger.debug("reduce(%s) over %s pixels of %s -> %s",
                     reducer, data.shape[0] * data.shape[1], image.band_names, values)
        return values


def default_reducer(config=None):
    """Reducer configured from a MetricsConfig (or with defaults)."""
    if config is None:
        return RegionReducer()
    return RegionReducer(chunk_size=config.dask_chunk_size)
