"""Minibatch SGD training loop driven by a composite minibatch source."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import lightning as L
import torch
import torch.nn as nn
from loguru import logger

from multichannel_regression.data.source import TARGETS_STREAM, features_stream_name
from multichannel_regression.types import InputBindings, Minibatch


class MinibatchSource(Protocol):
    def get_next_minibatch(
        self, minibatch_size: int, device: torch.device | str | None = None
    ) -> Minibatch: ...


class TrainingState(enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TrainingResult:
    state: TrainingState
    sweeps: int
    steps: int
    last_loss: float | None


class TrainingLoop:
    """Run optimizer steps until the source returns an empty minibatch.

    Every iteration binds each channel's ``"{channel}features"`` stream and the
    ``"targets"`` stream to named inputs, takes one optimizer step and, when
    the minibatch closes a sweep, advances the sweep counter.  Progress is
    logged on the first sweep and then every ``log_every_sweeps`` sweeps.

    Nothing is retried: errors from the source, the model or the optimizer
    propagate to the caller.

    Args:
        model: Module mapping input bindings to predictions.
        loss_fn: ``loss_fn(predictions, targets)`` returning a scalar.
        optimizer: Optimizer over ``model``'s parameters.
        source: Object with ``get_next_minibatch(size, device)``.
        channel_names: Channel inputs to bind from every minibatch.
        fabric: Optional Fabric used for device placement and backward; the
            model and optimizer must already be set up with it.
        minibatch_size: Samples requested per step.
        log_every_sweeps: Sweep logging cadence.
    """

    def __init__(
        self,
        model: nn.Module,
        loss_fn: nn.Module,
        optimizer: torch.optim.Optimizer,
        source: MinibatchSource,
        channel_names: Sequence[str],
        *,
        fabric: L.Fabric | None = None,
        minibatch_size: int = 32,
        log_every_sweeps: int = 100,
    ) -> None:
        if minibatch_size <= 0:
            raise ValueError(f"minibatch_size must be positive, got {minibatch_size}")
        if log_every_sweeps <= 0:
            raise ValueError(
                f"log_every_sweeps must be positive, got {log_every_sweeps}"
            )
        self.model = model
        self.loss_fn = loss_fn
        self.optimizer = optimizer
        self.source = source
        self.channel_names = list(channel_names)
        self.fabric = fabric
        self.minibatch_size = minibatch_size
        self.log_every_sweeps = log_every_sweeps

        self.state = TrainingState.RUNNING
        self.sweeps = 0
        self.steps = 0
        self.previous_minibatch_loss_average: float | None = None

    def bind_inputs(self, minibatch: Minibatch) -> tuple[InputBindings, torch.Tensor]:
        """Map channel names to their image data and extract the targets.

        A stream missing from ``minibatch`` raises ``KeyError``.
        """
        inputs: InputBindings = {
            name: minibatch[features_stream_name(name)].data
            for name in self.channel_names
        }
        targets = minibatch[TARGETS_STREAM].data
        if self.fabric is not None:
            inputs = self.fabric.to_device(inputs)
            targets = self.fabric.to_device(targets)
        return inputs, targets

    def train_minibatch(self, inputs: InputBindings, targets: torch.Tensor) -> float:
        """One SGD step; returns the minibatch's average loss."""
        self.model.train()
        self.optimizer.zero_grad()
        predictions = self.model(inputs)
        loss = self.loss_fn(predictions, targets)
        if self.fabric is not None:
            self.fabric.backward(loss)
        else:
            loss.backward()
        self.optimizer.step()
        self.steps += 1
        self.previous_minibatch_loss_average = float(loss.detach())
        return self.previous_minibatch_loss_average

    def step(self) -> bool:
        """Process one minibatch. Returns ``False`` once training has completed."""
        if self.state is TrainingState.COMPLETED:
            return False

        minibatch = self.source.get_next_minibatch(self.minibatch_size)
        if minibatch.empty():
            logger.info(f"Completed all {self.sweeps} sweeps")
            self.state = TrainingState.COMPLETED
            return False

        inputs, targets = self.bind_inputs(minibatch)
        self.train_minibatch(inputs, targets)

        if minibatch[TARGETS_STREAM].sweep_end:
            if self.sweeps % self.log_every_sweeps == 0:
                logger.info(
                    f"Current sweep: {self.sweeps}. "
                    f"Loss: {self.previous_minibatch_loss_average}"
                )
            self.sweeps += 1
        return True

    def run(self) -> TrainingResult:
        while self.step():
            pass
        return TrainingResult(
            state=self.state,
            sweeps=self.sweeps,
            steps=self.steps,
            last_loss=self.previous_minibatch_loss_average,
        )
