import numpy as np
import pytest

from fusion_metrics import RasterImage, RegionReducer


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def reducer():
    # Small chunks so that reductions span several Dask blocks
    return RegionReducer(chunk_size=(5, 5))


@pytest.fixture
def multiband(rng):
    """3-band 16 x 16 image with distinct, positive band levels."""
    data = np.stack([rng.uniform(50, 150, (16, 16)) * level for level in (1, 2, 3)], axis=-1)
    return RasterImage(data, band_names=["B", "G", "R"], nominal_scale=10.0, origin=(500.0, 1000.0))


@pytest.fixture
def distorted(multiband, rng):
    """multiband plus gaussian noise, on the same grid."""
    noise = rng.normal(0, 5, multiband.data.shape)
    return multiband.with_data(multiband.data + noise)


@pytest.fixture
def constant_image():
    """Factory of images whose band i is filled with values[i]."""
    def make(values, shape=(8, 8), **kwargs):
        data = np.stack([np.full(shape, float(v)) for v in values], axis=-1)
        return RasterImage(data, **kwargs)
    return make
