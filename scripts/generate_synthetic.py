#!/usr/bin/env python3
"""Generate a synthetic multi-channel map-file dataset.

Writes one grayscale PNG per channel and sample, one ``Train<channel>.map``
per channel and a ``TrainTargets.ctf`` file whose targets are the channel
mean intensities, so the linear model has something learnable.

Usage::

    python scripts/generate_synthetic.py --output-dir mapfiles
    python scripts/generate_synthetic.py --output-dir mapfiles \
        --num-samples 512 --channels 4 --image-size 28 --output-dim 3
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add project root to path so we can import multichannel_regression
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from multichannel_regression.synthetic.generator import (  # noqa: E402
    SyntheticSampleGenerator,
)
from multichannel_regression.synthetic.writer import (  # noqa: E402
    SyntheticMapFileWriter,
)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic multi-channel map-file dataset"
    )
    parser.add_argument("--output-dir", type=Path, required=True)
    parser.add_argument("--num-samples", type=int, default=256)
    parser.add_argument("--channels", type=int, default=4)
    parser.add_argument("--image-size", type=int, default=28)
    parser.add_argument("--output-dim", type=int, default=3)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    if args.num_samples <= 0 or args.channels <= 0:
        logger.error("--num-samples and --channels must be positive")
        sys.exit(1)

    channel_names = [f"Channel{i + 1}" for i in range(args.channels)]
    generator = SyntheticSampleGenerator(
        channel_names,
        image_size=args.image_size,
        output_dim=args.output_dim,
        seed=args.seed,
    )
    writer = SyntheticMapFileWriter(args.output_dir, channel_names)

    for _ in range(args.num_samples):
        images, targets = generator.generate()
        writer.write_sample(images, targets)

    dataset = writer.flush()
    for name, path in dataset.channel_map_files.items():
        logger.info(f"{name}: {path}")
    logger.info(f"Targets: {dataset.targets}")


if __name__ == "__main__":
    main()
