"""Write synthetic channel images, map files and a targets CTF file to disk."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import NamedTuple

from loguru import logger
from PIL import Image

from multichannel_regression.data.source import TARGETS_STREAM


class SyntheticDataset(NamedTuple):
    channel_map_files: dict[str, Path]
    targets: Path


class SyntheticMapFileWriter:
    """Writes ``images/<channel>/NNNNN.png`` plus ``Train<channel>.map`` and
    ``TrainTargets.ctf`` into an output directory.

    Map-file image paths are relative to ``output_dir``; every map-file label
    is ``0``.

    Args:
        output_dir: Directory to write into.
        channel_names: Channels every sample provides an image for.
    """

    def __init__(self, output_dir: Path, channel_names: Sequence[str]) -> None:
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.channel_names = list(channel_names)
        for name in self.channel_names:
            (self.output_dir / "images" / name).mkdir(parents=True, exist_ok=True)
        self._map_lines: dict[str, list[str]] = {n: [] for n in self.channel_names}
        self._ctf_lines: list[str] = []

    def write_sample(
        self, images: Mapping[str, Image.Image], targets: Sequence[float]
    ) -> None:
        """Save one image per channel and record the sample's target vector."""
        index = len(self._ctf_lines)
        for name in self.channel_names:
            rel_path = Path("images") / name / f"{index:05d}.png"
            images[name].save(self.output_dir / rel_path)
            self._map_lines[name].append(f"{rel_path.as_posix()}\t0")
        values = " ".join(f"{v:.6f}" for v in targets)
        self._ctf_lines.append(f"{index} |{TARGETS_STREAM} {values}")

    def flush(self) -> SyntheticDataset:
        """Write map files and the CTF file; return their paths."""
        map_files: dict[str, Path] = {}
        for name, lines in self._map_lines.items():
            map_path = self.output_dir / f"Train{name}.map"
            map_path.write_text("".join(f"{line}\n" for line in lines))
            map_files[name] = map_path
        ctf_path = self.output_dir / "TrainTargets.ctf"
        ctf_path.write_text("".join(f"{line}\n" for line in self._ctf_lines))
        logger.info(
            f"Wrote {self.num_written} synthetic samples x "
            f"{len(self.channel_names)} channels to {self.output_dir}"
        )
        return SyntheticDataset(map_files, ctf_path)

    @property
    def num_written(self) -> int:
        """Number of samples written so far."""
        return len(self._ctf_lines)
