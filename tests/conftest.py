"""Shared pytest fixtures for multichannel_regression tests."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from multichannel_regression.config import TrainConfig
from multichannel_regression.synthetic import (
    SyntheticDataset,
    SyntheticMapFileWriter,
    SyntheticSampleGenerator,
)

CHANNELS = ["Channel1", "Channel2"]


@pytest.fixture()
def synthetic_dataset(tmp_path: Path) -> SyntheticDataset:
    """Two channels x 5 samples of 4x4 grayscale images, 3-wide targets.

    Layout mirrors the real mapfiles directory: ``TrainChannel1.map``,
    ``TrainChannel2.map`` and ``TrainTargets.ctf`` next to ``images/``.
    """
    generator = SyntheticSampleGenerator(CHANNELS, image_size=4, output_dim=3, seed=0)
    writer = SyntheticMapFileWriter(tmp_path / "mapfiles", CHANNELS)
    for _ in range(5):
        images, targets = generator.generate()
        writer.write_sample(images, targets)
    return writer.flush()


@pytest.fixture()
def two_example_dataset(tmp_path: Path) -> SyntheticDataset:
    """One channel, two 2x2x1 examples, 1-wide targets.

    Example 0 is all zeros with target 0.0; example 1 is all 255 with target 1.0.
    """
    root = tmp_path / "tiny"
    root.mkdir()
    for i, value in enumerate((0, 255)):
        Image.new("L", (2, 2), color=value).save(root / f"img_{i}.png")
    map_file = root / "TrainChannel1.map"
    map_file.write_text("img_0.png\t0\nimg_1.png\t0\n")
    targets = root / "TrainTargets.ctf"
    targets.write_text("0 |targets 0.0\n1 |targets 1.0\n")
    return SyntheticDataset({"Channel1": map_file}, targets)


@pytest.fixture()
def make_train_config() -> Callable[..., TrainConfig]:
    """Factory building a TrainConfig for a dataset fixture."""

    def _make(
        dataset: SyntheticDataset,
        image_size: int,
        output_dim: int,
        **training: Any,
    ) -> TrainConfig:
        return TrainConfig(
            data={
                "channels": dataset.channel_map_files,
                "targets": dataset.targets,
                "image_shape": (image_size, image_size, 1),
                "output_dim": output_dim,
                "randomize": False,
            },
            training=training,
            seed=0,
        )

    return _make
