"""
Utility functions: region statistics, raster algebra helpers and the
plumbing shared by the quality metrics.
"""

import logging
import warnings

import numpy as np

from .config import MetricsConfig
from .errors import (DegenerateBandWarning, DegenerateInputError,
                     MisalignedGridError, ShapeMismatchError)
from .raster import RasterImage
from .reduction import default_reducer


logger = logging.getLogger(__name__)

# Relative size below which a reduced denominator counts as zero
ZERO_TOLERANCE = np.sqrt(np.finfo(np.float64).eps)


def is_missing(x):
    """True if an optional argument was not given."""
    return x is None


def reduce_image(image, reducer, geometry=None, scale=None, max_pixels=None, reducer_service=None):
    """
    Reduce every band of an image to one value.

    Parameters:
        image (RasterImage): Image to reduce
        reducer (str): One of 'mean', 'stddev', 'variance', 'min', 'max', 'sum'
        geometry (Region): Region to reduce over. Default: image extent
        scale (float): Sampling scale. Default: native resolution
        max_pixels (float): Sampling cap. Default: no cap
        reducer_service (RegionReducer): Reduction backend. Default: default_reducer()

    Returns:
        np.ndarray: BandVector in image band order
    """
    if reducer_service is None:
        reducer_service = default_reducer()
    return reducer_service.reduce(image, reducer, geometry=geometry, scale=scale, max_pixels=max_pixels)


def image_range(image, geometry=None, scale=None, max_pixels=None, reducer_service=None):
    """Per-band max - min."""
    img_max = reduce_image(image, 'max', geometry, scale, max_pixels, reducer_service)
    img_min = reduce_image(image, 'min', geometry, scale, max_pixels, reducer_service)
    return img_max - img_min


def broadcast_constant(values, band_names, like=None):
    """
    Constant image where every pixel of band i equals values[i].

    Without `like` the image is a single pixel, which broadcasts against any
    grid in raster algebra (image - constant). With `like` it takes that
    image's grid.

    Parameters:
        values (sequence): One value per band
        band_names (sequence): Band names of the constant image
        like (RasterImage): Optional image whose grid is copied

    Returns:
        RasterImage: Constant image. Shape: (1, 1, C) or like's (H, W, C)
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    if len(values) != len(band_names):
        raise ShapeMismatchError(f"{len(values)} values given for {len(band_names)} bands")

    if like is None:
        return RasterImage(values.reshape(1, 1, -1), band_names=band_names)

    data = np.broadcast_to(values, like.shape + (len(values),))
    return like.with_data(data, band_names=band_names)


def near_zero(values, image, config, reducer):
    """
    Bands whose value is negligible next to the largest magnitude of the band.

    A band averaging to zero rarely reduces to an exact 0.0: rounding in the
    sums leaves a residue of the order of eps * max|x|.

    Parameters:
        values (np.ndarray): BandVector to test
        image (RasterImage): Image the values were reduced from
        config (MetricsConfig): Region and sampling options of the reduction
        reducer (RegionReducer): Reduction backend

    Returns:
        np.ndarray: Boolean BandVector
    """
    magnitude = reducer.reduce(abs(image), 'max',
                               geometry=config.geometry,
                               scale=config.scale,
                               max_pixels=config.max_pixels)
    return np.abs(values) <= ZERO_TOLERANCE * magnitude


def flag_degenerate(mask, image, metric, quantity, config=None):
    """
    Apply the degenerate band policy to the bands selected by mask.

    In strict mode the first offending band raises DegenerateInputError.
    Otherwise each offending band is logged and reported through a
    DegenerateBandWarning, and its inf/NaN value is left in place.

    Parameters:
        mask (np.ndarray): Boolean BandVector, True where the denominator is zero
        image (RasterImage): Image providing the band names
        metric (str): Name of the metric
        quantity (str): Name of the vanishing quantity (mean, variance, ...)
        config (MetricsConfig): Configuration. If None, uses defaults.
    """
    strict = config.strict if config is not None else False

    for index in np.flatnonzero(mask):
        band = image.band_names[index]
        if strict:
            raise DegenerateInputError(metric, band, quantity)
        message = f"{metric}: band '{band}' has zero {quantity}"
        logger.warning(message)
        warnings.warn(message, DegenerateBandWarning, stacklevel=3)


def rescale_band(target, reference, match=False, config=None, reducer=None):
    """
    Rescale an image band to be more similar to a reference band.

    Adapted from the SAGA GIS pansharpening tools.

    Parameters:
        target (RasterImage): Band(s) to rescale
        reference (RasterImage): Band(s) to rescale the target towards.
            Must have as many bands as target.
        match (bool): If True, match mean and standard deviation of the
            reference. If False, match its minimum and range.
        config (MetricsConfig): Configuration. If None, uses defaults.
        reducer (RegionReducer): Reduction backend. If None, uses the default.

    Returns:
        RasterImage: (target - offset_target) * scale + offset
    """
    if config is None:
        config = MetricsConfig()
    if reducer is None:
        reducer = default_reducer(config)
    check_band_counts(target, reference, 'rescale_band')

    options = dict(geometry=config.geometry, scale=config.scale, max_pixels=config.max_pixels,
                   reducer_service=reducer)

    if not match:
        offset_target = reduce_image(target, 'min', **options)
        offset = reduce_image(reference, 'min', **options)
        denominator = image_range(target, **options)
        numerator = image_range(reference, **options)
        quantity = 'range'
    else:
        offset_target = reduce_image(target, 'mean', **options)
        offset = reduce_image(reference, 'mean', **options)
        denominator = reduce_image(target, 'stddev', **options)
        numerator = reduce_image(reference, 'stddev', **options)
        quantity = 'stddev'

    flag_degenerate(near_zero(denominator, target, config, reducer), target, 'rescale_band', quantity, config)

    names = target.band_names
    with np.errstate(divide='ignore', invalid='ignore'):
        scale = numerator / denominator
        rescaled = ((target - broadcast_constant(offset_target, names))
                    * broadcast_constant(scale, names)
                    + broadcast_constant(offset, names))
    return rescaled


def weighted_intensity(image, red_band, green_band, blue_band, w_red, w_green, w_blue):
    """
    Intensity band from the R, G and B bands of an image with fixed band weights.

    Parameters:
        image (RasterImage): Image holding the visible bands
        red_band (str): Name of the red band
        green_band (str): Name of the green band
        blue_band (str): Name of the blue band
        w_red (float): Weight of the red band
        w_green (float): Weight of the green band
        w_blue (float): Weight of the blue band

    Returns:
        RasterImage: Single band image named 'intensity'
    """
    weights = {'w_red': w_red, 'w_green': w_green, 'w_blue': w_blue}
    missing = [name for name, value in weights.items() if is_missing(value)]
    if missing:
        raise ValueError(f"Missing intensity weight(s): {missing}")

    r = image.band(red_band) * float(w_red)
    g = image.band(green_band) * float(w_green)
    b = image.band(blue_band) * float(w_blue)

    return image.with_data(r + g + b, band_names=['intensity'])


def check_band_counts(reference, assessment, metric):
    """Reject images with differing band counts before any reduction."""
    if reference.band_count != assessment.band_count:
        raise ShapeMismatchError(f"{metric}: reference has {reference.band_count} bands "
                                 f"but assessment has {assessment.band_count}")


def check_alignment(reference, assessment, metric):
    """Reject pixel grids that cannot be compared pixel for pixel."""
    if reference.shape != assessment.shape:
        raise MisalignedGridError(f"{metric}: reference grid {reference.shape} and assessment grid "
                                  f"{assessment.shape} differ; align the images first")


def band_average(values):
    """NaN-propagating arithmetic mean of a BandVector."""
    with np.errstate(invalid='ignore'):
        return float(np.mean(np.asarray(values, dtype=np.float64)))


def format_result(values, per_band):
    """MetricResult: list of floats per band, or their mean."""
    if per_band:
        return [float(v) for v in values]
    return band_average(values)


def resolve_options(per_band, config, reducer):
    """Fill in defaulted metric arguments."""
    if config is None:
        config = MetricsConfig()
    if is_missing(per_band):
        per_band = config.per_band
    if reducer is None:
        reducer = default_reducer(config)
    return per_band, config, reducer
