"""Deserializers turning map files and CTF files into per-stream tensors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

import torch
from loguru import logger
from PIL import Image
from pydantic import BaseModel, Field, field_validator
from torchvision.transforms import v2

from multichannel_regression.io.ctf import read_ctf
from multichannel_regression.io.map_file import MapFileError, read_map_file
from multichannel_regression.types import StreamInfo


class Deserializer(ABC):
    """Random-access reader for a fixed set of samples.

    Subclasses expose one or more named streams and return, for a list of
    sample indices, one tensor per stream with a leading batch axis.
    """

    @property
    @abstractmethod
    def streams(self) -> list[StreamInfo]:
        """Streams produced by :meth:`read`."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of samples."""

    @abstractmethod
    def read(self, indices: Sequence[int]) -> dict[str, torch.Tensor]:
        """Load the given samples for every stream."""


class ImageDeserializer(Deserializer):
    """Decode the images listed in a map file.

    Produces a features stream of raw pixel values (float32, 0-255) shaped
    ``(B, height, width, depth)`` and a labels stream holding the map-file
    label one-hot encoded over ``num_labels`` classes.

    Images are decoded lazily in :meth:`read`; a size mismatch against
    ``image_shape`` raises ``ValueError`` at that point.

    Args:
        map_file: Map file listing image paths and labels.
        features_stream: Name of the image stream.
        labels_stream: Name of the label stream.
        num_labels: Number of label classes.
        image_shape: ``(height, width, depth)`` of every decoded image.
        grayscale: Decode to one luminance plane (depth 1) instead of RGB.
    """

    def __init__(
        self,
        map_file: Path | str,
        features_stream: str,
        labels_stream: str,
        num_labels: int = 1,
        image_shape: Sequence[int] = (28, 28, 1),
        grayscale: bool = True,
    ) -> None:
        self.map_file = Path(map_file)
        self.features_stream = features_stream
        self.labels_stream = labels_stream
        self.num_labels = num_labels
        self.image_shape = tuple(int(d) for d in image_shape)
        self.grayscale = grayscale

        expected_depth = 1 if grayscale else 3
        if len(self.image_shape) != 3 or self.image_shape[-1] != expected_depth:
            raise ValueError(
                f"image_shape {self.image_shape} does not match "
                f"{'grayscale' if grayscale else 'RGB'} decoding "
                f"(depth {expected_depth})"
            )

        self.entries = read_map_file(self.map_file)
        for entry in self.entries:
            if not 0 <= entry.label < num_labels:
                raise MapFileError(
                    f"{self.map_file}: label {entry.label} for {entry.image_path} "
                    f"is outside [0, {num_labels})"
                )
        logger.debug(
            f"ImageDeserializer: {len(self.entries)} samples for stream "
            f"'{features_stream}' from {self.map_file}"
        )

    @property
    def streams(self) -> list[StreamInfo]:
        return [
            StreamInfo(self.features_stream, self.image_shape),
            StreamInfo(self.labels_stream, (self.num_labels,)),
        ]

    def __len__(self) -> int:
        return len(self.entries)

    def _load_image(self, path: Path) -> torch.Tensor:
        height, width, _ = self.image_shape
        with Image.open(path) as img:
            img = img.convert("L" if self.grayscale else "RGB")
        tensor = v2.functional.pil_to_tensor(img)  # (depth, H, W) uint8
        if tuple(tensor.shape[1:]) != (height, width):
            raise ValueError(
                f"{path}: image is {tensor.shape[2]}x{tensor.shape[1]}, "
                f"expected {width}x{height}"
            )
        return tensor.permute(1, 2, 0).to(torch.float32)

    def read(self, indices: Sequence[int]) -> dict[str, torch.Tensor]:
        if len(indices) == 0:
            images = torch.empty((0, *self.image_shape), dtype=torch.float32)
        else:
            images = torch.stack(
                [self._load_image(self.entries[i].image_path) for i in indices]
            )
        labels = torch.tensor(
            [self.entries[i].label for i in indices], dtype=torch.long
        )
        one_hot = torch.nn.functional.one_hot(labels, num_classes=self.num_labels)
        return {
            self.features_stream: images,
            self.labels_stream: one_hot.to(torch.float32),
        }


class CTFStreamConfig(BaseModel, frozen=True):
    """One dense stream to extract from a CTF file."""

    name: str
    dim: int = Field(gt=0)
    is_sparse: bool = False

    @field_validator("is_sparse")
    @classmethod
    def _dense_only(cls, value: bool) -> bool:
        if value:
            raise ValueError("sparse CTF streams are not supported")
        return value


class CTFDeserializer(Deserializer):
    """Dense numeric streams read eagerly from a CTF file.

    Args:
        path: CTF file.
        streams: Streams to extract; each must be present on every line.
    """

    def __init__(self, path: Path | str, streams: Sequence[CTFStreamConfig]) -> None:
        if not streams:
            raise ValueError("CTFDeserializer needs at least one stream")
        self.path = Path(path)
        self._configs = list(streams)
        rows = read_ctf(self.path, {s.name: s.dim for s in self._configs})
        self._data = {
            s.name: torch.tensor(rows[s.name], dtype=torch.float32).reshape(-1, s.dim)
            for s in self._configs
        }
        self._num_samples = len(rows[self._configs[0].name])
        logger.debug(
            f"CTFDeserializer: {self._num_samples} samples for streams "
            f"{[s.name for s in self._configs]} from {self.path}"
        )

    @property
    def streams(self) -> list[StreamInfo]:
        return [StreamInfo(s.name, (s.dim,)) for s in self._configs]

    def __len__(self) -> int:
        return self._num_samples

    def read(self, indices: Sequence[int]) -> dict[str, torch.Tensor]:
        index = torch.as_tensor(list(indices), dtype=torch.long)
        return {name: data[index] for name, data in self._data.items()}
