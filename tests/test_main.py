import json
import math

import numpy as np
import pytest

from main import json_value, main


def reject_constant(token):
    raise ValueError(f"non-standard JSON token {token}")


def test_main_writes_results(tmp_path, rng):
    reference = rng.uniform(10, 100, (12, 12, 2))
    np.save(tmp_path / "reference.npy", reference)
    np.save(tmp_path / "assessment.npy", reference + rng.normal(0, 1, reference.shape))
    output = tmp_path / "results.json"

    code = main([str(tmp_path / "reference.npy"), str(tmp_path / "assessment.npy"),
                 "--bands", "red", "nir", "--per-band", "--output", str(output)])

    assert code == 0
    results = json.loads(output.read_text())
    assert results["bands"] == ["red", "nir"]
    assert set(results["metrics"]) == {"MSE", "PSNR", "ERGAS", "Q"}
    assert len(results["metrics"]["ERGAS"]) == 2
    assert results["configuration"]["per_band"] is True


def test_main_identical_images(tmp_path, rng):
    reference = rng.uniform(10, 100, (8, 8, 1))
    np.save(tmp_path / "reference.npy", reference)
    output = tmp_path / "results.json"

    code = main([str(tmp_path / "reference.npy"), str(tmp_path / "reference.npy"), "-o", str(output)])

    assert code == 0
    metrics = json.loads(output.read_text(), parse_constant=reject_constant)["metrics"]
    assert metrics["MSE"] == 0.0
    assert metrics["PSNR"] == "inf"
    assert math.isinf(float(metrics["PSNR"]))


def test_main_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.npy"), str(tmp_path / "missing.npy")]) == 1


def test_main_strict_failure(tmp_path):
    np.save(tmp_path / "reference.npy", np.zeros((8, 8, 1)))
    np.save(tmp_path / "assessment.npy", np.ones((8, 8, 1)))

    assert main([str(tmp_path / "reference.npy"), str(tmp_path / "assessment.npy"), "--strict"]) == 1


def test_json_value():
    assert json_value(1.5) == 1.5
    assert json_value([2.0, float("-inf"), float("nan")]) == [2.0, "-inf", "nan"]


def test_main_overrides_config_file(tmp_path, rng):
    reference = rng.uniform(10, 100, (12, 12, 1))
    np.save(tmp_path / "reference.npy", reference)
    np.save(tmp_path / "assessment.npy", reference + 1.0)
    (tmp_path / "config.yaml").write_text("max_pixels: 1000\ngeometry: [0, -12, 12, 0]\n")
    output = tmp_path / "results.json"

    code = main([str(tmp_path / "reference.npy"), str(tmp_path / "assessment.npy"),
                 "--config", str(tmp_path / "config.yaml"), "--max-pixels", "50", "-o", str(output)])

    assert code == 0
    results = json.loads(output.read_text())
    assert results["configuration"]["max_pixels"] == 50
    assert results["configuration"]["geometry"] == [0.0, -12.0, 12.0, 0.0]
    assert results["metrics"]["MSE"] == pytest.approx(1.0)
