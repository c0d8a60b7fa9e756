"""Loss functions for regression training."""

from __future__ import annotations

import torch
import torch.nn as nn


def mean_squared_error(
    predictions: torch.Tensor, targets: torch.Tensor
) -> torch.Tensor:
    """Squared error averaged over the output width, then over the batch.

    Parameters
    ----------
    predictions:
        Model output of shape ``(B, W)``.
    targets:
        Regression targets of the same shape.
    """
    squared_errors = torch.square(targets - predictions)
    return squared_errors.mean(dim=-1).mean()


class MeanSquaredErrorLoss(nn.Module):
    """``nn.Module`` wrapper around :func:`mean_squared_error`."""

    def forward(self, predictions: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        return mean_squared_error(predictions, targets)


def build_loss_fn(name: str = "mse") -> nn.Module:
    """Factory for loss functions.

    Parameters
    ----------
    name:
        Loss function name. Only ``"mse"`` is available.

    Returns
    -------
    nn.Module
        The configured loss function.
    """
    if name == "mse":
        return MeanSquaredErrorLoss()
    msg = f"Unknown loss function: {name!r}. Use 'mse'."
    raise ValueError(msg)
