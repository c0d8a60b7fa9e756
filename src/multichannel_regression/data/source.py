"""Composite minibatch source over several deserializers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

import torch
from loguru import logger

from multichannel_regression.data.deserializers import (
    CTFDeserializer,
    CTFStreamConfig,
    Deserializer,
    ImageDeserializer,
)
from multichannel_regression.types import Minibatch, StreamData, StreamInfo

FEATURES_SUFFIX = "features"
LABELS_SUFFIX = "labels"
TARGETS_STREAM = "targets"


def features_stream_name(channel: str) -> str:
    return channel + FEATURES_SUFFIX


def labels_stream_name(channel: str) -> str:
    return channel + LABELS_SUFFIX


class CompositeMinibatchSource:
    """Zip the streams of several deserializers into sweep-aware minibatches.

    Sample ``i`` of every deserializer belongs to the same example, so all
    deserializers must hold the same number of samples.

    A minibatch never crosses a sweep boundary: the last minibatch of a sweep
    may be smaller than requested and is flagged ``sweep_end=True`` on every
    stream.  Once ``max_sweeps`` sweeps have been produced (or when the
    source holds no samples at all) every call returns an empty
    :class:`Minibatch`.

    Args:
        deserializers: Sources of streams; stream names must be unique.
        max_sweeps: Bound on full passes over the data. ``None`` is unbounded.
        randomize: Shuffle sample order independently for every sweep.
        seed: Seed of the shuffling generator.
    """

    def __init__(
        self,
        deserializers: Sequence[Deserializer],
        max_sweeps: int | None = None,
        randomize: bool = True,
        seed: int = 0,
    ) -> None:
        if not deserializers:
            raise ValueError("CompositeMinibatchSource needs at least one deserializer")
        if max_sweeps is not None and max_sweeps < 1:
            raise ValueError(f"max_sweeps must be >= 1 or None, got {max_sweeps}")

        sizes = {len(d) for d in deserializers}
        if len(sizes) != 1:
            detail = ", ".join(
                f"{type(d).__name__}={len(d)}" for d in deserializers
            )
            raise ValueError(f"Deserializers disagree on sample count: {detail}")

        self._stream_infos: dict[str, StreamInfo] = {}
        for d in deserializers:
            for info in d.streams:
                if info.name in self._stream_infos:
                    raise ValueError(f"Duplicate stream name: {info.name!r}")
                self._stream_infos[info.name] = info

        self._deserializers = list(deserializers)
        self._num_samples = sizes.pop()
        self.max_sweeps = max_sweeps
        self.randomize = randomize
        self._generator = torch.Generator().manual_seed(seed)

        self._order: list[int] = []
        self._position = 0
        self._sweeps_completed = 0
        self._samples_seen = 0

        logger.info(
            f"Minibatch source: {self._num_samples} samples, "
            f"{len(self._stream_infos)} streams, max_sweeps={max_sweeps}"
        )

    # ------------------------------------------------------------------
    # Stream lookup
    # ------------------------------------------------------------------

    def stream_info(self, name: str) -> StreamInfo:
        """Look up a stream by name; unknown names raise ``KeyError``."""
        try:
            return self._stream_infos[name]
        except KeyError:
            raise KeyError(
                f"Unknown stream {name!r}; available: {sorted(self._stream_infos)}"
            ) from None

    def stream_infos(self) -> list[StreamInfo]:
        return list(self._stream_infos.values())

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def num_samples(self) -> int:
        return self._num_samples

    @property
    def sweeps_completed(self) -> int:
        return self._sweeps_completed

    @property
    def samples_seen(self) -> int:
        return self._samples_seen

    @property
    def is_exhausted(self) -> bool:
        if self._num_samples == 0:
            return True
        return self.max_sweeps is not None and self._sweeps_completed >= self.max_sweeps

    # ------------------------------------------------------------------
    # Minibatches
    # ------------------------------------------------------------------

    def _sweep_order(self) -> list[int]:
        if self.randomize:
            return torch.randperm(self._num_samples, generator=self._generator).tolist()
        return list(range(self._num_samples))

    def get_next_minibatch(
        self, minibatch_size: int, device: torch.device | str | None = None
    ) -> Minibatch:
        """Return the next ``minibatch_size`` samples of the current sweep.

        Args:
            minibatch_size: Maximum number of samples in the minibatch.
            device: Optional device to move stream tensors to.

        Returns:
            A :class:`Minibatch`; empty once the source is exhausted.
        """
        if minibatch_size <= 0:
            raise ValueError(f"minibatch_size must be positive, got {minibatch_size}")
        if self.is_exhausted:
            return Minibatch()

        if self._position == 0:
            self._order = self._sweep_order()
        end = min(self._position + minibatch_size, self._num_samples)
        indices = self._order[self._position : end]
        sweep_end = end == self._num_samples

        streams: dict[str, StreamData] = {}
        for deserializer in self._deserializers:
            for name, data in deserializer.read(indices).items():
                if device is not None:
                    data = data.to(device)
                streams[name] = StreamData(
                    data=data, num_samples=len(indices), sweep_end=sweep_end
                )

        self._samples_seen += len(indices)
        if sweep_end:
            self._position = 0
            self._sweeps_completed += 1
        else:
            self._position = end
        return Minibatch(streams)


def create_train_minibatch_source(
    channel_map_files: Mapping[str, Path | str],
    targets_path: Path | str,
    output_dim: int,
    max_sweeps: int | None = None,
    image_shape: Sequence[int] = (28, 28, 1),
    randomize: bool = True,
    seed: int = 0,
) -> CompositeMinibatchSource:
    """Build the training source: grayscale images per channel plus CTF targets.

    Each channel ``c`` contributes streams ``"{c}features"`` and
    ``"{c}labels"``; the CTF file contributes the ``"targets"`` stream of
    width ``output_dim``.
    """
    deserializers: list[Deserializer] = [
        ImageDeserializer(
            map_file,
            features_stream=features_stream_name(channel),
            labels_stream=labels_stream_name(channel),
            num_labels=1,
            image_shape=image_shape,
            grayscale=True,
        )
        for channel, map_file in channel_map_files.items()
    ]
    deserializers.append(
        CTFDeserializer(
            targets_path, [CTFStreamConfig(name=TARGETS_STREAM, dim=output_dim)]
        )
    )
    return CompositeMinibatchSource(
        deserializers, max_sweeps=max_sweeps, randomize=randomize, seed=seed
    )
