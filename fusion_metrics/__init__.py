"""
Image Fusion Quality Metrics

Quality assessment metrics between a reference multi-band raster and a
modified (e.g. pan-sharpened) version of it.

Main Features:
    - MSE: Mean squared error
    - PSNR: Peak signal-to-noise ratio
    - ERGAS: Dimensionless global relative error of synthesis
    - Q: Universal image quality index (correlation, luminance, contrast)
    - Band rescaling and weighted intensity helpers
"""

__version__ = "1.0.0"

from .config import MetricsConfig
from .errors import (
    FusionMetricsError,
    ShapeMismatchError,
    MisalignedGridError,
    DegenerateInputError,
    DegenerateBandWarning)
from .raster import RasterImage, Region
from .reduction import RegionReducer, default_reducer
from .resampling import reproject_to, resample_to_scale
from .metrics import compute_metrics, MSE, PSNR, ERGAS
from .quality_indices import Q, Q_map, correlation, luminance, contrast
from .utils import (
    reduce_image,
    image_range,
    broadcast_constant,
    rescale_band,
    weighted_intensity)

__all__ = [
    'MetricsConfig',
    'FusionMetricsError',
    'ShapeMismatchError',
    'MisalignedGridError',
    'DegenerateInputError',
    'DegenerateBandWarning',
    'RasterImage',
    'Region',
    'RegionReducer',
    'default_reducer',
    'reproject_to',
    'resample_to_scale',
    'compute_metrics',
    'MSE',
    'PSNR',
    'ERGAS',
    'Q',
    'Q_map',
    'correlation',
    'luminance',
    'contrast',
    'reduce_image',
    'image_range',
    'broadcast_constant',
    'rescale_band',
    'weighted_intensity',
    '__version__',
]
