"""
Configuration class for metrics computation
"""

import logging

import yaml

from .raster import Region
from .resampling import RESAMPLING_ORDERS


logger = logging.getLogger(__name__)


class MetricsConfig:
    """
    Configuration parameters shared by all quality metrics.

    Attributes:
        per_band (bool): Return one value per band instead of the band mean.
            Default: False.

        geometry (Region or tuple): Region to compute the metrics over,
            as a Region or (xmin, ymin, xmax, ymax) in map units.
            Default: None (full extent of the image).

        scale (float): Scale, in map units, at which pixels are sampled.
            Default: None (native resolution of each image).

        max_pixels (float): Maximum number of pixels sampled per reduction.
            Default: 1e12. Larger images are regularly decimated.

        resample_method (str): Kernel used by Q to bring the reference onto
            the assessment grid. One of 'nearest', 'bilinear', 'bicubic'.
            Default: 'bicubic'.

        strict (bool): Raise DegenerateInputError on a band with a zero
            denominator instead of warning and returning inf/NaN.
            Default: False.

        dask_chunk_size (tuple): Spatial chunk size of the reduction arrays.
            Default: (256, 256).

        n_workers (float): Fraction of CPU cores used by the optional
            Dask LocalCluster. Default: 0.9. Range: 0.1 to 1.0.

        q_block_size (int): Window size of the sliding-window Q map.
            Default: 32. Typical values: 8, 16, 32.
    """

    def __init__(self,
                 per_band=False,
                 geometry=None,
                 scale=None,
                 max_pixels=1e12,
                 resample_method='bicubic',
                 strict=False,
                 dask_chunk_size=(256, 256),
                 n_workers=0.9,
                 q_block_size=32):
        self.per_band = per_band
        self.geometry = Region.coerce(geometry)
        self.scale = scale
        self.max_pixels = max_pixels
        self.resample_method = resample_method
        self.strict = strict
        self.dask_chunk_size = tuple(dask_chunk_size)
        self.n_workers = n_workers
        self.q_block_size = q_block_size

    def validate(self):
        """Validate configuration parameters."""
        assert self.scale is None or self.scale > 0, "scale must be positive"
        assert self.max_pixels is None or self.max_pixels >= 1, "max_pixels must be at least 1"
        assert self.resample_method in RESAMPLING_ORDERS, \
            f"resample_method must be one of {list(RESAMPLING_ORDERS.keys())}"
        assert all(c > 0 for c in self.dask_chunk_size), "chunk sizes must be positive"
        assert 0 < self.n_workers <= 1, "n_workers must be between 0 and 1"
        assert self.q_block_size > 1, "q_block_size must be greater than 1"

        if any(c % self.q_block_size != 0 for c in self.dask_chunk_size):
            logger.warning("dask_chunk_size %s is not a multiple of q_block_size %s",
                           self.dask_chunk_size, self.q_block_size)

    def replace(self, **changes):
        """Copy of this configuration with some attributes changed."""
        values = self.to_dict()
        values['geometry'] = self.geometry
        values.update(changes)
        return MetricsConfig(**values)

    def to_dict(self):
        return {
            'per_band': self.per_band,
            'geometry': list(self.geometry.bounds) if self.geometry is not None else None,
            'scale': self.scale,
            'max_pixels': self.max_pixels,
            'resample_method': self.resample_method,
            'strict': self.strict,
            'dask_chunk_size': list(self.dask_chunk_size),
            'n_workers': self.n_workers,
            'q_block_size': self.q_block_size,
        }

    @classmethod
    def from_yaml(cls, path):
        """Load a configuration from a YAML mapping of attribute names."""
        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        if not isinstance(config_dict, dict):
            raise ValueError(f"{path}: expected a mapping of configuration values")
        return cls(**config_dict)

    @classmethod
    def balanced(cls):
        """Balanced configuration (recommended)."""
        return cls(max_pixels=1e12, dask_chunk_size=(256, 256), n_workers=0.9)

    @classmethod
    def conservative(cls):
        """Conservative configuration for low-memory systems."""
        return cls(max_pixels=1e8, dask_chunk_size=(128, 128), n_workers=0.5)

    @classmethod
    def strict_mode(cls):
        """Fail fast on degenerate bands."""
        return cls(strict=True)
