"""Stream and minibatch types shared by the data source and the training loop."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

import torch

# Named model inputs (channel names plus the targets input) bound to the
# tensors of a single minibatch.  Rebuilt on every training step.
InputBindings = dict[str, torch.Tensor]


@dataclass(frozen=True)
class StreamInfo:
    """Description of one stream exposed by a minibatch source.

    shape: Shape of a single sample (no batch axis).
    """

    name: str
    shape: tuple[int, ...]
    dtype: torch.dtype = torch.float32


@dataclass(frozen=True)
class StreamData:
    """One stream's slice of a minibatch.

    data: Tensor of shape ``(num_samples, *stream_shape)``.
    sweep_end: True when this minibatch completes a full pass over the data.
    """

    data: torch.Tensor
    num_samples: int
    sweep_end: bool = False


class Minibatch(Mapping[str, StreamData]):
    """Read-only mapping from stream name to :class:`StreamData`.

    Streams may be looked up by name or by :class:`StreamInfo`.  A minibatch
    with no streams signals that the source is exhausted.
    """

    def __init__(self, streams: Mapping[str, StreamData] | None = None) -> None:
        self._streams: dict[str, StreamData] = dict(streams or {})

    def __getitem__(self, key: str | StreamInfo) -> StreamData:
        name = key.name if isinstance(key, StreamInfo) else key
        return self._streams[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._streams)

    def __len__(self) -> int:
        return len(self._streams)

    def __repr__(self) -> str:
        return (
            f"Minibatch(streams={list(self._streams)}, "
            f"num_samples={self.num_samples}, sweep_end={self.sweep_end})"
        )

    def empty(self) -> bool:
        return not self._streams

    @property
    def num_samples(self) -> int:
        if not self._streams:
            return 0
        return max(s.num_samples for s in self._streams.values())

    @property
    def sweep_end(self) -> bool:
        return any(s.sweep_end for s in self._streams.values())
