"""Regression model implementations."""

from multichannel_regression.models.linear import (
    PIXEL_SCALE,
    LinearRegressionModel,
    splice_channels,
    spliced_shape,
)

__all__ = [
    "PIXEL_SCALE",
    "LinearRegressionModel",
    "splice_channels",
    "spliced_shape",
]
