"""Random grayscale channel images with targets derived from their intensity."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from PIL import Image


class SyntheticSampleGenerator:
    """Generate one grayscale image per channel plus a regression target.

    Each channel image is uniform noise around a random base brightness.
    Target component ``j`` is the mean intensity (scaled to ``[0, 1]``) of
    channel ``j % C``, so a linear model over the normalized pixels can fit
    it exactly.

    Args:
        channel_names: Channels to render.
        image_size: Height and width of every image.
        output_dim: Width of the target vector.
        seed: Seed for reproducible output.
    """

    def __init__(
        self,
        channel_names: Sequence[str],
        image_size: int = 28,
        output_dim: int = 3,
        seed: int = 42,
    ) -> None:
        if not channel_names:
            raise ValueError("at least one channel is required")
        self.channel_names = list(channel_names)
        self.image_size = image_size
        self.output_dim = output_dim
        self._rng = np.random.default_rng(seed)

    def _render(self) -> np.ndarray:
        base = self._rng.integers(0, 256)
        noise = self._rng.integers(-32, 33, size=(self.image_size, self.image_size))
        return np.clip(base + noise, 0, 255).astype(np.uint8)

    def generate(self) -> tuple[dict[str, Image.Image], list[float]]:
        """Return ``({channel: image}, targets)`` for one sample."""
        arrays = {name: self._render() for name in self.channel_names}
        means = [float(arrays[name].mean()) / 255.0 for name in self.channel_names]
        targets = [means[j % len(means)] for j in range(self.output_dim)]
        images = {name: Image.fromarray(arr) for name, arr in arrays.items()}
        return images, targets
