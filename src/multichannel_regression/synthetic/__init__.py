"""Synthetic map-file datasets for smoke runs and tests."""

from multichannel_regression.synthetic.generator import SyntheticSampleGenerator
from multichannel_regression.synthetic.writer import (
    SyntheticDataset,
    SyntheticMapFileWriter,
)

__all__ = [
    "SyntheticDataset",
    "SyntheticMapFileWriter",
    "SyntheticSampleGenerator",
]
