"""Linear regression over spliced, normalized image channels."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

import torch
import torch.nn as nn

from multichannel_regression.utils.hydra import register

# Raw 8-bit pixel values are scaled into [0, 1].
PIXEL_SCALE = 1.0 / 255


def splice_channels(
    inputs: Mapping[str, torch.Tensor], channel_names: Sequence[str]
) -> torch.Tensor:
    """Concatenate ``(B, h, w, 1)`` channel tensors into ``(B, h, w, C)``.

    Channels are spliced along the trailing axis in ``channel_names`` order.
    A missing channel raises ``KeyError``.
    """
    return torch.cat([inputs[name] for name in channel_names], dim=-1)


def spliced_shape(
    channel_shape: Sequence[int], num_channels: int
) -> tuple[int, ...]:
    """Per-sample shape after splicing ``num_channels`` inputs of ``channel_shape``."""
    *spatial, depth = channel_shape
    return (*spatial, depth * num_channels)


@register(name="linear")
class LinearRegressionModel(nn.Module):
    """``W @ flatten(splice(inputs) / 255) + b``.

    The weight matrix has shape ``(output_dim, h * w * C)`` and is
    Glorot-uniform initialized; the bias has shape ``(output_dim,)`` and
    starts at zero.

    Args:
        channel_names: Input names, in splice order.
        channel_shape: Per-channel sample shape ``(h, w, 1)``.
        output_dim: Width of the regression output.
    """

    def __init__(
        self,
        channel_names: Sequence[str],
        channel_shape: Sequence[int] = (28, 28, 1),
        output_dim: int = 3,
    ) -> None:
        super().__init__()
        self.channel_names = [str(n) for n in channel_names]
        self.channel_shape = tuple(int(d) for d in channel_shape)
        self.input_shape = spliced_shape(self.channel_shape, len(self.channel_names))
        self.feature_count = math.prod(self.input_shape)
        self.output_dim = int(output_dim)

        self.register_buffer(
            "input_scale", torch.tensor(PIXEL_SCALE), persistent=False
        )
        self.linear = nn.Linear(self.feature_count, self.output_dim)
        self.reset_parameters()

    def reset_parameters(self) -> None:
        nn.init.xavier_uniform_(self.linear.weight)
        nn.init.zeros_(self.linear.bias)

    @property
    def weight(self) -> nn.Parameter:
        return self.linear.weight

    @property
    def bias(self) -> nn.Parameter:
        return self.linear.bias

    def forward(self, inputs: Mapping[str, torch.Tensor]) -> torch.Tensor:
        x = splice_channels(inputs, self.channel_names) * self.input_scale
        return self.linear(x.reshape(x.shape[0], self.feature_count))  # type: ignore[no-any-return]
