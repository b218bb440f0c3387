import numpy as np
import pytest

from fusion_metrics import (DegenerateBandWarning, DegenerateInputError, MetricsConfig,
                            RasterImage, ShapeMismatchError, broadcast_constant,
                            image_range, rescale_band, weighted_intensity)
from fusion_metrics.utils import band_average, check_band_counts, format_result, is_missing


def test_image_range(reducer):
    img = RasterImage(np.dstack([np.arange(9.0).reshape(3, 3), np.full((3, 3), 4.0)]))
    np.testing.assert_array_equal(image_range(img, reducer_service=reducer), [8.0, 0.0])


def test_broadcast_constant_single_pixel():
    const = broadcast_constant([1, 2, 3], ["a", "b", "c"])
    assert const.data.shape == (1, 1, 3)
    assert const.band_names == ["a", "b", "c"]


def test_broadcast_constant_on_grid(multiband):
    const = broadcast_constant([1, 2, 3], multiband.band_names, like=multiband)
    assert const.shape == multiband.shape
    assert const.nominal_scale == multiband.nominal_scale
    assert np.all(const.data[:, :, 2] == 3)


def test_broadcast_constant_centres_an_image(multiband, reducer):
    centred = multiband - broadcast_constant(reducer.reduce(multiband, "mean"), multiband.band_names)
    np.testing.assert_allclose(reducer.reduce(centred, "mean"), 0, atol=1e-9)


def test_broadcast_constant_length_mismatch():
    with pytest.raises(ShapeMismatchError):
        broadcast_constant([1, 2], ["a"])


def test_rescale_band_range_matching(reducer):
    # min 0, max 10 rescaled towards min 100, max 200: v -> v * 10 + 100
    values = np.linspace(0, 10, 25).reshape(5, 5)
    target = RasterImage(values, band_names=["pan"])
    reference = RasterImage(np.linspace(100, 200, 25).reshape(5, 5)[::-1], band_names=["intensity"])

    rescaled = rescale_band(target, reference, match=False, reducer=reducer)

    assert rescaled.band_names == ["pan"]
    np.testing.assert_allclose(rescaled.data[:, :, 0], values * 10 + 100)


@pytest.mark.parametrize("match", [np.False_, 0, None])
def test_rescale_band_falsy_match_selects_range_matching(match, reducer):
    target = RasterImage(np.arange(25.0).reshape(5, 5) ** 2)
    reference = RasterImage(np.linspace(100, 200, 25).reshape(5, 5)[::-1])

    expected = rescale_band(target, reference, match=False, reducer=reducer)
    rescaled = rescale_band(target, reference, match=match, reducer=reducer)

    np.testing.assert_array_equal(rescaled.data, expected.data)
    assert not np.allclose(expected.data, rescale_band(target, reference, match=True, reducer=reducer).data)


def test_rescale_band_moment_matching(rng, reducer):
    target = RasterImage(rng.normal(10, 2, (20, 20)))
    reference = RasterImage(rng.normal(500, 40, (20, 20)))

    rescaled = rescale_band(target, reference, match=True, reducer=reducer)

    assert reducer.reduce(rescaled, "mean")[0] == pytest.approx(reducer.reduce(reference, "mean")[0])
    assert reducer.reduce(rescaled, "stddev")[0] == pytest.approx(reducer.reduce(reference, "stddev")[0])


def test_rescale_flat_target_is_degenerate(rng):
    target = RasterImage(np.full((4, 4), 3.0), band_names=["flat"])
    reference = RasterImage(rng.uniform(0, 1, (4, 4)))

    with pytest.warns(DegenerateBandWarning, match="flat"):
        rescaled = rescale_band(target, reference)
    assert np.all(np.isnan(rescaled.data))

    with pytest.raises(DegenerateInputError) as excinfo:
        rescale_band(target, reference, match=True, config=MetricsConfig(strict=True))
    assert excinfo.value.band == "flat"
    assert excinfo.value.quantity == "stddev"


def test_rescale_band_count_mismatch(multiband):
    with pytest.raises(ShapeMismatchError):
        rescale_band(multiband.select("B"), multiband)


def test_weighted_intensity():
    img = RasterImage.from_bands({
        "red": np.full((2, 2), 10.0),
        "green": np.full((2, 2), 20.0),
        "blue": np.full((2, 2), 30.0),
        "nir": np.full((2, 2), 99.0),
    })
    intensity = weighted_intensity(img, "red", "green", "blue", 0.5, 0.25, 0.25)
    assert intensity.band_names == ["intensity"]
    np.testing.assert_allclose(intensity.data[:, :, 0], 5 + 5 + 7.5)


def test_weighted_intensity_rejects_missing_weights():
    img = RasterImage(np.ones((2, 2, 3)), band_names=["r", "g", "b"])
    with pytest.raises(ValueError, match="w_blue"):
        weighted_intensity(img, "r", "g", "b", 1, 1, None)
    with pytest.raises(KeyError):
        weighted_intensity(img, "red", "g", "b", 1, 1, 1)


def test_check_band_counts(multiband):
    with pytest.raises(ShapeMismatchError, match="MSE"):
        check_band_counts(multiband, multiband.select("B", "G"), "MSE")


def test_band_average_propagates_nan():
    assert band_average([1.0, 2.0, 3.0]) == 2.0
    assert np.isnan(band_average([1.0, np.nan]))
    assert band_average([1.0, np.inf]) == np.inf


def test_format_result():
    assert format_result(np.array([1.0, 3.0]), True) == [1.0, 3.0]
    assert format_result(np.array([1.0, 3.0]), False) == 2.0
    assert is_missing(None) and not is_missing(False)
