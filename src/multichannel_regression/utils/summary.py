"""Rich tables describing the model and the minibatch source at startup."""

from __future__ import annotations

import torch.nn as nn
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from multichannel_regression.data.source import CompositeMinibatchSource


def print_model_info(model: nn.Module, console: Console | None = None) -> None:
    """Print parameter shapes and counts."""
    total_params = sum(p.numel() for p in model.parameters())
    trainable_params = sum(p.numel() for p in model.parameters() if p.requires_grad)

    table = Table(
        title=f"Model: {type(model).__name__}",
        header_style="bold magenta",
        box=box.SQUARE,
        show_lines=True,
    )
    table.add_column("Parameter", style="cyan")
    table.add_column("Shape", justify="right")
    table.add_column("Count", justify="right", style="green")
    for name, param in model.named_parameters():
        table.add_row(name, str(tuple(param.shape)), f"{param.numel():,}")
    (console or Console()).print(table)

    logger.info(
        f"Model: {type(model).__name__} | "
        f"Params: {total_params:,} ({trainable_params:,} trainable)"
    )


def print_stream_table(
    source: CompositeMinibatchSource, console: Console | None = None
) -> None:
    """Print every stream the source exposes."""
    table = Table(
        title=f"Minibatch Source ({source.num_samples} samples)",
        header_style="bold magenta",
        box=box.SQUARE,
        show_lines=True,
    )
    table.add_column("Stream", style="cyan")
    table.add_column("Sample Shape", justify="right")
    table.add_column("Dtype", justify="right")
    for info in source.stream_infos():
        table.add_row(info.name, str(info.shape), str(info.dtype).replace("torch.", ""))
    (console or Console()).print(table)
