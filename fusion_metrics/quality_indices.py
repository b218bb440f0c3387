"""
Universal Image Quality Index (Q) and its components.

References:
    [Wang02] Z. Wang and A. C. Bovik, "A universal image quality index,"
             IEEE Signal Processing Letters, vol. 9, no. 3, pp. 81-84, March 2002.
"""

import numpy as np
import scipy.ndimage as ft
from math import floor

from .resampling import reproject_to
from .utils import (broadcast_constant, check_band_counts, flag_degenerate,
                    format_result, resolve_options)


def _reduce(image, kind, config, reducer):
    # Q works on the assessment grid, so config.scale does not apply
    return reducer.reduce(image, kind, geometry = config.geometry, max_pixels = config.max_pixels)


def _correlation(reference, assessment, config, reducer):
    xbar = _reduce(reference, 'mean', config, reducer)
    ybar = _reduce(assessment, 'mean', config, reducer)

    x_centered = reference - broadcast_constant(xbar, reference.band_names)
    y_centered = assessment - broadcast_constant(ybar, assessment.band_names)

    numerator = _reduce(x_centered * y_centered, 'sum', config, reducer)
    x_sum = _reduce(x_centered ** 2, 'sum', config, reducer)
    y_sum = _reduce(y_centered ** 2, 'sum', config, reducer)

    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        correlation = numerator / np.sqrt(x_sum * y_sum)

    x_flat = x_sum == 0
    y_flat = y_sum == 0
    correlation[x_flat & y_flat] = 1.0
    correlation[x_flat ^ y_flat] = np.nan

    return correlation, x_flat ^ y_flat


def _luminance(reference, assessment, config, reducer):
    xbar = _reduce(reference, 'mean', config, reducer)
    ybar = _reduce(assessment, 'mean', config, reducer)

    numerator = 2 * xbar * ybar
    denominator = xbar ** 2 + ybar ** 2

    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        luminance = numerator / denominator
    luminance[denominator == 0] = 1.0

    return luminance


def _contrast(reference, assessment, config, reducer):
    x_std = _reduce(reference, 'stddev', config, reducer)
    y_std = _reduce(assessment, 'stddev', config, reducer)
    x_var = _reduce(reference, 'variance', config, reducer)
    y_var = _reduce(assessment, 'variance', config, reducer)

    numerator = 2 * x_std * y_std
    denominator = x_var + y_var

    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        contrast = numerator / denominator
    contrast[denominator == 0] = 1.0

    return contrast


def correlation(reference, assessment, config = None, reducer = None):
    """
    Per-band Pearson correlation between two aligned images.

        sum((x - xbar) * (y - ybar)) / sqrt(sum((x - xbar) ** 2) * sum((y - ybar) ** 2))

    Two flat bands correlate with 1. When only one of the bands is flat the
    correlation is undefined: the band is flagged and its value is NaN.

    Parameters:
        reference (RasterImage): First image
        assessment (RasterImage): Second image, on the same grid
        config (MetricsConfig): Configuration. If None, uses defaults.
        reducer (RegionReducer): Reduction backend. If None, uses the default.

    Returns:
        np.ndarray: Correlation of each band, in [-1, 1]
    """
    _, config, reducer = resolve_options(None, config, reducer)
    check_band_counts(reference, assessment, 'Q correlation')

    values, undefined = _correlation(reference, assessment, config, reducer)
    flag_degenerate(undefined, reference, 'Q correlation', 'variance', config)
    return values


def luminance(reference, assessment, config = None, reducer = None):
    """
    Per-band closeness of the means, 2 * xbar * ybar / (xbar ** 2 + ybar ** 2).

    Equals 1 when the means are equal (including both 0).
    """
    _, config, reducer = resolve_options(None, config, reducer)
    check_band_counts(reference, assessment, 'Q luminance')
    return _luminance(reference, assessment, config, reducer)


def contrast(reference, assessment, config = None, reducer = None):
    """
    Per-band closeness of the standard deviations, 2 * sx * sy / (sx ** 2 + sy ** 2).

    Equals 1 when the standard deviations are equal (including both 0).
    """
    _, config, reducer = resolve_options(None, config, reducer)
    check_band_counts(reference, assessment, 'Q contrast')
    return _contrast(reference, assessment, config, reducer)


def Q(reference, assessment, per_band = None, config = None, reducer = None):
    """
    Universal Image Quality Index (UIQI), computed globally per band as the
    product of correlation, luminance and contrast [Wang02].

    The reference is resampled (config.resample_method, bicubic by default)
    onto the assessment grid before any statistic is computed. Q = 1 means
    identical bands.

    A band that is flat in only one of the images has an undefined
    correlation; its contrast is 0, so its Q is 0. Such bands are flagged.

    Parameters:
        reference (RasterImage): Unmodified image
        assessment (RasterImage): Modified version of the reference
        per_band (bool): Return one value per band. Default: config.per_band
        config (MetricsConfig): Configuration. If None, uses defaults.
        reducer (RegionReducer): Reduction backend. If None, uses the default.

    Returns:
        float or list: Band average or per-band Q
    """
    per_band, config, reducer = resolve_options(per_band, config, reducer)
    check_band_counts(reference, assessment, 'Q')

    # Resample the reference to match the assessment image resolution and origin
    reference = reproject_to(reference, assessment, config.resample_method)

    # Correlation (1st component)
    corr, undefined = _correlation(reference, assessment, config, reducer)
    flag_degenerate(undefined, reference, 'Q', 'variance', config)

    # Luminance (2nd component)
    lum = _luminance(reference, assessment, config, reducer)

    # Contrast (3rd component)
    con = _contrast(reference, assessment, config, reducer)

    corr[undefined] = 0.0
    q = corr * lum * con

    return format_result(q, per_band)


def Q_map(reference, assessment, block_size = None, per_band = None, config = None):
    """
    Sliding-window Universal Image Quality Index.

    Local Q is computed in every block_size x block_size window from box
    filter sums, then averaged over the image [Wang02]. Windows where both
    images are flat score their luminance term; windows where everything is
    zero score 1.

    Parameters:
        reference (RasterImage): Unmodified image
        assessment (RasterImage): Modified version of the reference. The
            reference is resampled onto its grid first.
        block_size (int): Window size for local statistics. Default: config.q_block_size
        per_band (bool): Return one value per band. Default: config.per_band
        config (MetricsConfig): Configuration. If None, uses defaults.

    Returns:
        float or list: Band average or per-band mean of the local Q maps
    """
    per_band, config, _ = resolve_options(per_band, config, None)
    check_band_counts(reference, assessment, 'Q_map')

    if block_size is None:
        block_size = config.q_block_size
    if block_size > min(assessment.shape):
        raise ValueError(f"Q_map: block_size {block_size} exceeds the image size {assessment.shape}")

    reference = reproject_to(reference, assessment, config.resample_method)
    outputs = assessment.data
    labels = reference.data

    N = block_size ** 2
    nbands = labels.shape[-1]
    kernel = np.ones((block_size, block_size))
    pad_size = floor((kernel.shape[0] - 1) / 2)
    rows = slice(pad_size, labels.shape[0] - pad_size)
    cols = slice(pad_size, labels.shape[1] - pad_size)

    outputs_sq = outputs ** 2
    labels_sq = labels ** 2
    outputs_labels = outputs * labels

    quality = np.zeros(nbands)

    for i in range(nbands):
        outputs_sum = ft.convolve(outputs[:, :, i], kernel)[rows, cols]
        labels_sum = ft.convolve(labels[:, :, i], kernel)[rows, cols]

        outputs_sq_sum = ft.convolve(outputs_sq[:, :, i], kernel)[rows, cols]
        labels_sq_sum = ft.convolve(labels_sq[:, :, i], kernel)[rows, cols]
        outputs_labels_sum = ft.convolve(outputs_labels[:, :, i], kernel)[rows, cols]

        outputs_labels_sum_mul = outputs_sum * labels_sum
        outputs_labels_sum_mul_sq = outputs_sum ** 2 + labels_sum ** 2

        numerator = 4 * (N * outputs_labels_sum - outputs_labels_sum_mul) * outputs_labels_sum_mul
        denominator_temp = N * (outputs_sq_sum + labels_sq_sum) - outputs_labels_sum_mul_sq
        denominator = denominator_temp * outputs_labels_sum_mul_sq

        quality_map = np.ones(denominator.shape)
        index = (denominator_temp == 0) & (outputs_labels_sum_mul_sq != 0)
        quality_map[index] = 2 * outputs_labels_sum_mul[index] / outputs_labels_sum_mul_sq[index]
        index = denominator != 0
        quality_map[index] = numerator[index] / denominator[index]
        quality[i] = np.mean(quality_map)

    return format_result(quality, per_band)
