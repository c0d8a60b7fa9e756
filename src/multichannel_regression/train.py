"""Training entrypoint for multichannel_regression.

Usage:
    python -m multichannel_regression.train                          # defaults
    python -m multichannel_regression.train data.root=/data/mapfiles # dataset dir
    python -m multichannel_regression.train training.minibatch_size=64
    python -m multichannel_regression.train training.max_sweeps=null # unbounded
"""

from __future__ import annotations

import sys

import hydra
import lightning as L
import torch
import torch.nn as nn
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# CRITICAL: import models to trigger @register decorators BEFORE Hydra parses config
import multichannel_regression.models  # noqa: F401
from multichannel_regression.config import FabricConfig, TrainConfig
from multichannel_regression.data.source import create_train_minibatch_source
from multichannel_regression.losses import build_loss_fn
from multichannel_regression.models.linear import LinearRegressionModel
from multichannel_regression.training import TrainingLoop, TrainingResult
from multichannel_regression.utils.summary import print_model_info, print_stream_table


def build_fabric(config: FabricConfig) -> L.Fabric:
    return L.Fabric(
        accelerator=config.accelerator,
        devices=config.devices,
        precision=config.precision,  # type: ignore[arg-type]
    )


def train(
    config: TrainConfig,
    model: nn.Module | None = None,
    fabric: L.Fabric | None = None,
    show_summary: bool = False,
) -> TrainingResult:
    """Build the source, model, loss and SGD optimizer, then run the loop.

    Args:
        config: Validated run configuration.
        model: Model taking channel input bindings. Defaults to a
            :class:`LinearRegressionModel` shaped by ``config.data``.
        fabric: Fabric for device placement. Built from ``config.fabric``
            when omitted.
        show_summary: Print stream and model tables before training.
    """
    data_cfg = config.data
    source = create_train_minibatch_source(
        data_cfg.channels,
        data_cfg.targets,
        output_dim=data_cfg.output_dim,
        max_sweeps=config.training.max_sweeps,
        image_shape=data_cfg.image_shape,
        randomize=data_cfg.randomize,
        seed=config.seed,
    )

    if model is None:
        model = LinearRegressionModel(
            channel_names=data_cfg.channel_names,
            channel_shape=data_cfg.image_shape,
            output_dim=data_cfg.output_dim,
        )
    if show_summary:
        print_stream_table(source)
        print_model_info(model)

    loss_fn = build_loss_fn(config.training.loss)
    optimizer = torch.optim.SGD(model.parameters(), lr=config.training.learning_rate)

    if fabric is None:
        fabric = build_fabric(config.fabric)
    model, optimizer = fabric.setup(model, optimizer)

    loop = TrainingLoop(
        model,
        loss_fn,
        optimizer,
        source,
        data_cfg.channel_names,
        fabric=fabric,
        minibatch_size=config.training.minibatch_size,
        log_every_sweeps=config.training.log_every_sweeps,
    )
    return loop.run()


@hydra.main(version_base=None, config_path="conf", config_name="train")
def main(cfg: DictConfig) -> None:
    """Run training with the given Hydra config."""
    # Setup logging
    logger.remove()
    logger.add(sys.stderr, level=str(cfg.get("log_level", "INFO")).upper())

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")
    config = TrainConfig.from_hydra(cfg)

    # Seed everything for reproducibility
    L.seed_everything(config.seed, workers=True)

    model: nn.Module = hydra.utils.instantiate(
        cfg.model,
        channel_names=config.data.channel_names,
        channel_shape=list(config.data.image_shape),
        output_dim=config.data.output_dim,
    )

    result = train(config, model=model, show_summary=True)
    logger.info(
        f"Training {result.state.value}: {result.sweeps} sweeps, "
        f"{result.steps} steps, last loss {result.last_loss}"
    )

    if config.pause_on_exit and sys.stdin.isatty():
        input("Press Enter to exit...")


if __name__ == "__main__":
    main()
