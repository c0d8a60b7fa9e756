"""Pydantic frozen configuration models for multichannel_regression."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field, field_validator, model_validator


class DataConfig(BaseModel, frozen=True):
    """Input channels, regression targets and per-channel image shape.

    ``channels`` maps channel name to map-file path.  Channel order in the
    mapping is the splice order of the model input.
    """

    channels: dict[str, Path]
    targets: Path
    image_shape: tuple[int, int, int] = (28, 28, 1)
    output_dim: int = Field(default=3, gt=0)
    randomize: bool = True

    @field_validator("channels")
    @classmethod
    def _at_least_one_channel(cls, value: dict[str, Path]) -> dict[str, Path]:
        if not value:
            raise ValueError("at least one input channel is required")
        return value

    @field_validator("image_shape")
    @classmethod
    def _single_channel_images(
        cls, value: tuple[int, int, int]
    ) -> tuple[int, int, int]:
        height, width, depth = value
        if height <= 0 or width <= 0:
            raise ValueError(f"image_shape must be positive, got {value}")
        if depth != 1:
            raise ValueError(
                f"each channel holds one grayscale plane; got depth {depth}"
            )
        return value

    @property
    def channel_names(self) -> list[str]:
        return list(self.channels)


class TrainingConfig(BaseModel, frozen=True):
    """SGD loop settings.

    ``max_sweeps=None`` keeps the source running until it is stopped by
    other means; any integer is a hard bound on full passes over the data.
    """

    minibatch_size: int = Field(default=32, gt=0)
    max_sweeps: int | None = Field(default=None, ge=1)
    learning_rate: float = Field(default=0.001, gt=0.0)
    log_every_sweeps: int = Field(default=100, gt=0)
    loss: str = "mse"


class FabricConfig(BaseModel, frozen=True):
    """Arguments forwarded to ``lightning.Fabric``."""

    accelerator: str = "cpu"
    devices: int | str = 1
    precision: str = "32-true"


class TrainConfig(BaseModel, frozen=True):
    """Root configuration for a training run.

    All fields are validated at construction time. Frozen, no mutation after creation.
    """

    data: DataConfig
    training: TrainingConfig = TrainingConfig()
    fabric: FabricConfig = FabricConfig()
    seed: int = 42
    log_level: str = "INFO"
    pause_on_exit: bool = True

    @model_validator(mode="after")
    def _upper_log_level(self) -> TrainConfig:
        # Use object.__setattr__ because model is frozen
        object.__setattr__(self, "log_level", self.log_level.upper())
        return self

    @classmethod
    def from_hydra(cls, cfg: DictConfig) -> TrainConfig:
        """Validate a composed Hydra config; unrelated groups (``model``) are ignored."""
        container: Any = OmegaConf.to_container(cfg, resolve=True)
        container.pop("model", None)
        return cls.model_validate(container)
