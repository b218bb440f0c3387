"""
Main quality metrics: MSE, PSNR and ERGAS, plus compute_metrics which
runs every metric of the package on an image pair.

MSE, PSNR and ERGAS compare images pixel for pixel: the reference and the
assessment image must already be aligned on pixel grids of the same shape.
"""


import logging
import multiprocessing as mp

import numpy as np
from dask.distributed import LocalCluster, Client

from .config import MetricsConfig
from .quality_indices import Q
from .utils import (check_alignment, check_band_counts, flag_degenerate,
                    format_result, near_zero, resolve_options)


logger = logging.getLogger(__name__)


def MSE(reference, assessment, per_band=None, config=None, reducer=None):
    """
    Mean Squared Error between a reference image and a modified image.

    MSE is relative to image intensity; values near 0 mean low error.
    See Hagag et al. 2013, equation 5.

    Parameters:
        reference (RasterImage): Unmodified image
        assessment (RasterImage): Modified version of the reference, such as
            a compressed or pan-sharpened image. Same band count and grid shape.
        per_band (bool): Return one value per band. Default: config.per_band
        config (MetricsConfig): Configuration. If None, uses defaults.
        reducer (RegionReducer): Reduction backend. If None, uses the default.

    Returns:
        float or list: Band average or per-band MSE
    """
    per_band, config, reducer = resolve_options(per_band, config, reducer)
    check_band_counts(reference, assessment, 'MSE')
    check_alignment(reference, assessment, 'MSE')

    squared_error = (reference - assessment) ** 2
    mse = reducer.reduce(squared_error, 'mean',
                         geometry = config.geometry,
                         scale = config.scale,
                         max_pixels = config.max_pixels)

    return format_result(mse, per_band)


def PSNR(reference, assessment, per_band=None, config=None, reducer=None):
    """
    Peak Signal-to-Noise Ratio in dB (Hagag et al. 2013).

    Larger values mean less distortion. Unlike MSE, PSNR is not relative to
    image intensity. The peak of each band is the maximum of the reference
    band. A band with MSE = 0 (identical bands) has PSNR = +inf. A zero
    peak, or one negligible next to the largest absolute value, is flagged.

    Parameters:
        reference (RasterImage): Unmodified image
        assessment (RasterImage): Modified version of the reference
        per_band (bool): Return one value per band. Default: config.per_band
        config (MetricsConfig): Configuration. If None, uses defaults.
        reducer (RegionReducer): Reduction backend. If None, uses the default.

    Returns:
        float or list: Band average (in dB space) or per-band PSNR
    """
    per_band, config, reducer = resolve_options(per_band, config, reducer)
    check_band_counts(reference, assessment, 'PSNR')

    band_mse = np.asarray(MSE(reference, assessment, per_band = True, config = config, reducer = reducer))
    peak = reducer.reduce(reference, 'max',
                          geometry = config.geometry,
                          scale = config.scale,
                          max_pixels = config.max_pixels)

    flag_degenerate(near_zero(peak, reference, config, reducer), reference, 'PSNR', 'peak value', config)

    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        psnr = 20 * np.log10(peak / np.sqrt(band_mse))

    return format_result(psnr, per_band)


def ERGAS(reference, assessment, per_band=None, config=None, reducer=None):
    """
    Dimensionless Global Relative Error of Synthesis.

    Measures spectral distortion relative to the sharpening ratio. The ratio
    of nominal scales compensates for the fact that larger gains in spatial
    resolution typically cause greater spectral distortion. Values near 0
    indicate low distortion.

        ERGAS_k = 100 * (h / l) * sqrt(MSE_k / mean_k ** 2)

    with h and l the nominal scales of the assessment and reference images.
    A band whose mean is zero, or negligible next to its largest absolute
    value, has no defined ERGAS and is flagged.

    Parameters:
        reference (RasterImage): Unmodified image
        assessment (RasterImage): Modified version of the reference
        per_band (bool): Return one value per band. Default: config.per_band
        config (MetricsConfig): Configuration. If None, uses defaults.
        reducer (RegionReducer): Reduction backend. If None, uses the default.

    Returns:
        float or list: Band average or per-band ERGAS
    """
    per_band, config, reducer = resolve_options(per_band, config, reducer)
    check_band_counts(reference, assessment, 'ERGAS')

    band_mse = np.asarray(MSE(reference, assessment, per_band = True, config = config, reducer = reducer))

    # Mean of each reference band
    xbar = reducer.reduce(reference, 'mean',
                          geometry = config.geometry,
                          scale = config.scale,
                          max_pixels = config.max_pixels)

    flag_degenerate(near_zero(xbar, reference, config, reducer), reference, 'ERGAS', 'mean', config)

    h = assessment.nominal_scale
    l = reference.nominal_scale
    coeff = 100 * (h / l)

    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        ergas = np.sqrt(band_mse / xbar ** 2) * coeff

    return format_result(ergas, per_band)


def _compute_all(reference, assessment, config):
    results = {}
    for name, metric in (('MSE', MSE), ('PSNR', PSNR), ('ERGAS', ERGAS), ('Q', Q)):
        logger.info("Computing %s...", name)
        results[name] = metric(reference, assessment, config = config)
    return results


def compute_metrics(reference, assessment, config = None, use_dask_cluster = False):
    """
    Compute all quality metrics (MSE, PSNR, ERGAS, Q) for an image pair.

    Parameters:
        reference (RasterImage): Unmodified image
        assessment (RasterImage): Modified version of the reference, on the
            same pixel grid shape
        config (MetricsConfig): Configuration. If None, uses defaults.
        use_dask_cluster (bool): Whether to run the reductions on a Dask
            LocalCluster. Default: False

    Returns:
        dict: Dictionary with keys 'MSE', 'PSNR', 'ERGAS', 'Q'

    Example:
        >>> config = MetricsConfig(per_band=True)
        >>> metrics = compute_metrics(reference, sharpened, config=config)
        >>> print(metrics['ERGAS'])
    """

    if config is None:
        config = MetricsConfig()

    config.validate()

    logger.info("Reference: %r", reference)
    logger.info("Assessment: %r", assessment)

    if use_dask_cluster:
        n_workers = max(1, int(config.n_workers * mp.cpu_count()))
        with LocalCluster(n_workers = n_workers,
                          processes = True,
                          memory_limit = "auto",
                          threads_per_worker = 1) as cluster, Client(cluster):
            logger.info("Computing metrics with %d workers...", n_workers)
            return _compute_all(reference, assessment, config)

    # Without cluster: Dask's default threaded scheduler
    return _compute_all(reference, assessment, config)
