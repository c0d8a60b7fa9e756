"""Image map file reader.

A map file lists one sample per line: an image path and an integer label,
separated by a tab (any whitespace is accepted)::

    images/ch1/00000.png	0
    images/ch1/00001.png	0

Relative image paths are resolved against the map file's directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple

from loguru import logger


class MapFileError(ValueError):
    """A map file line could not be parsed."""


class MapFileEntry(NamedTuple):
    image_path: Path
    label: int


def read_map_file(path: Path | str) -> list[MapFileEntry]:
    """Parse a map file into ``(image_path, label)`` entries.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        MapFileError: If a non-blank line does not hold exactly a path and an
            integer label.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Map file not found: {path}")

    entries: list[MapFileEntry] = []
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            # Split on the last field so image paths may contain spaces
            parts = line.rsplit(maxsplit=1)
            if len(parts) != 2:
                raise MapFileError(
                    f"{path}:{line_no}: expected '<image path> <label>', got {line!r}"
                )
            image, label = parts
            try:
                label_idx = int(label)
            except ValueError as e:
                raise MapFileError(
                    f"{path}:{line_no}: label must be an integer, got {label!r}"
                ) from e
            image_path = Path(image)
            if not image_path.is_absolute():
                image_path = path.parent / image_path
            entries.append(MapFileEntry(image_path, label_idx))

    logger.debug(f"Read {len(entries)} entries from map file {path}")
    return entries
