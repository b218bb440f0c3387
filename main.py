"""
Command line runner for the image fusion quality metrics.

Computes MSE, PSNR, ERGAS and the Universal Image Quality Index (Q)
between a reference image and an assessment (e.g. pan-sharpened) image.
Images are NumPy arrays saved with numpy.save, in H x W x C order.

Usage examples:
    python main.py reference.npy sharpened.npy
    python main.py reference.npy sharpened.npy --per-band --output results.json
    python main.py reference.npy sharpened.npy --reference-scale 30 --assessment-scale 15
    python main.py reference.npy sharpened.npy --config config.yaml

References:
    [Wald00] L. Wald, "Quality of high resolution synthesised images: is there
             a simple criterion?", Fusion of Earth Data, 2000.
    [Wang02] Z. Wang and A. C. Bovik, "A universal image quality index,"
             IEEE Signal Processing Letters, 2002.
    [Hagag13] A. Hagag et al., 2013 (MSE and PSNR definitions).
"""

import argparse
import json
import logging
import math
from pathlib import Path

import numpy as np

from fusion_metrics import (
    compute_metrics,
    MetricsConfig,
    RasterImage
)


logger = logging.getLogger("fusion_metrics.main")


def load_data(path, band_names = None, nominal_scale = 1.0):
    """
    Load an image saved with numpy.save.

    Expects H x W x C (or H x W for a single band).
    Returns a RasterImage.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    logger.info("Loading %s...", path.name)

    data = np.load(path).astype(np.float64)
    return RasterImage(data, band_names = band_names, nominal_scale = nominal_scale)


def json_value(value):
    """
    Metric value in strict JSON: non-finite floats (PSNR of identical bands,
    degenerate bands) are written as the strings "inf", "-inf" and "nan".
    """

    if isinstance(value, list):
        return [json_value(v) for v in value]
    value = float(value)
    return value if math.isfinite(value) else str(value)


def build_parser():
    parser = argparse.ArgumentParser(
        description = 'Compute image fusion quality metrics (MSE, PSNR, ERGAS, Q)',
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
Examples:
  python main.py reference.npy sharpened.npy
  python main.py reference.npy sharpened.npy --per-band --output results.json
  python main.py reference.npy sharpened.npy --config config.yaml --strict
"""
    )

    # Required arguments (positional)
    parser.add_argument('reference', help = 'Path to the reference image (.npy, H x W x C)')
    parser.add_argument('assessment', help = 'Path to the image to assess (.npy, H x W x C)')

    # Optional arguments
    parser.add_argument('--reference-scale', type = float, default = 1.0,
                        help = 'Nominal scale of the reference image (default: 1)')
    parser.add_argument('--assessment-scale', type = float, default = 1.0,
                        help = 'Nominal scale of the assessment image (default: 1)')
    parser.add_argument('--bands', nargs = '+',
                        help = 'Band names, in channel order')
    parser.add_argument('--config', type = str,
                        help = 'Path to YAML configuration file')
    parser.add_argument('--output', '-o', type = str,
                        help = 'Save results to JSON file')
    parser.add_argument('--use-dask-cluster', action = 'store_true',
                        help = 'Run reductions on a Dask LocalCluster')
    parser.add_argument('--verbose', '-v', action = 'store_true',
                        help = 'Debug logging')

    # Configuration overrides
    parser.add_argument('--per-band', action = 'store_true',
                        help = 'Report one value per band')
    parser.add_argument('--strict', action = 'store_true',
                        help = 'Fail on degenerate bands instead of warning')
    parser.add_argument('--max-pixels', type = float,
                        help = 'Override the sampling cap')
    parser.add_argument('--n_workers', type = float,
                        help = 'Override worker fraction (0-1)')

    return parser


def main(argv = None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(level = logging.DEBUG if args.verbose else logging.INFO,
                        format = "%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Load data
    try:
        reference = load_data(args.reference, args.bands, args.reference_scale)
        assessment = load_data(args.assessment, args.bands, args.assessment_scale)
    except (OSError, ValueError) as e:
        logger.error("Error loading images: %s", e)
        return 1

    # Create configuration
    if args.config:
        logger.info("Loading config from: %s", args.config)
        config = MetricsConfig.from_yaml(args.config)
    else:
        config = MetricsConfig()

    # Override with CLI arguments
    overrides = {}
    if args.per_band:
        overrides["per_band"] = True
    if args.strict:
        overrides["strict"] = True
    if args.max_pixels:
        overrides["max_pixels"] = args.max_pixels
    if args.n_workers:
        overrides["n_workers"] = args.n_workers
    config = config.replace(**overrides)

    try:
        config.validate()
        metrics = compute_metrics(reference, assessment,
                                  config = config,
                                  use_dask_cluster = args.use_dask_cluster)
    except Exception:
        logger.exception("Error during computation")
        return 1

    # Display results
    print("=" * 70)
    print("RESULTS")
    print("=" * 70)
    for name, value in metrics.items():
        if isinstance(value, list):
            print(f"{name:<6}: " + ", ".join(f"{v:.6f}" for v in value))
        else:
            print(f"{name:<6}: {value:.6f}")
    print("=" * 70)

    # Save results if requested
    if args.output:
        output_data = {
            'metrics': {name: json_value(value) for name, value in metrics.items()},
            'bands': reference.band_names,
            'configuration': config.to_dict(),
            'input_files': {
                'reference': str(args.reference),
                'assessment': str(args.assessment)
            },
            'parameters': {
                'reference_scale': args.reference_scale,
                'assessment_scale': args.assessment_scale
            }
        }

        with open(args.output, 'w') as f:
            json.dump(output_data, f, indent = 2, allow_nan = False)
        logger.info("Results saved to: %s", args.output)

    return 0


if __name__ == "__main__":
    exit(main())
