"""
Exceptions and warnings raised by the quality metrics
"""


class FusionMetricsError(Exception):
    """Base class for every error raised by fusion_metrics."""


class ShapeMismatchError(FusionMetricsError, ValueError):
    """Reference and assessment images have a different number of bands."""


class MisalignedGridError(FusionMetricsError, ValueError):
    """Images compared pixel by pixel do not share the same pixel grid."""


class DegenerateInputError(FusionMetricsError, ArithmeticError):
    """
    A per-band denominator (mean, variance, range) is zero.

    Attributes:
        metric (str): Name of the metric being computed
        band (str): Name of the offending band
        quantity (str): The reduced quantity that vanished
    """

    def __init__(self, metric, band, quantity):
        self.metric = metric
        self.band = band
        self.quantity = quantity
        super().__init__(f"{metric}: band '{band}' has zero {quantity}, "
                         f"the index is undefined for this band")


class DegenerateBandWarning(RuntimeWarning):
    """Issued instead of DegenerateInputError when strict mode is off."""
