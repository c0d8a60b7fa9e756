"""CNTK text format (CTF) reader for dense numeric streams.

Each sample line holds an optional sequence id followed by one or more
``|<stream> <values...>`` fields::

    0 |targets 0.12 0.50 0.33
    1 |targets 0.91 0.02 0.47 |# trailing comment

Fields starting with ``|#`` are comments.  Only dense streams are supported,
and every line is one sample.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from loguru import logger


class CTFFormatError(ValueError):
    """A CTF line could not be parsed against the configured streams."""


def parse_ctf_line(line: str) -> tuple[str | None, dict[str, list[str]]]:
    """Split one CTF line into its sequence id and raw stream tokens.

    Returns:
        ``(sequence_id, {stream_name: [value tokens]})``.  Comment fields are
        dropped; ``sequence_id`` is ``None`` when the line starts with ``|``.
    """
    head, *fields = line.split("|")
    sequence_id = head.strip() or None
    streams: dict[str, list[str]] = {}
    for field in fields:
        if field.startswith("#"):
            continue
        tokens = field.split()
        if not tokens:
            raise CTFFormatError("stream marker '|' without a stream name")
        name, *values = tokens
        if name in streams:
            raise CTFFormatError(f"stream {name!r} appears twice on one line")
        streams[name] = values
    return sequence_id, streams


def read_ctf(
    path: Path | str, stream_dims: Mapping[str, int]
) -> dict[str, list[list[float]]]:
    """Read dense samples for the requested streams.

    Args:
        path: CTF file to read.
        stream_dims: Expected dimension of every stream to extract.  Streams
            present in the file but not listed here are skipped.

    Returns:
        Mapping of stream name to a list of per-sample value lists, in file
        order.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        CTFFormatError: If a configured stream is missing from a sample line,
            has the wrong dimension, or holds non-numeric (e.g. sparse) values.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"CTF file not found: {path}")

    samples: dict[str, list[list[float]]] = {name: [] for name in stream_dims}
    skipped: set[str] = set()
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                _, streams = parse_ctf_line(line)
            except CTFFormatError as e:
                raise CTFFormatError(f"{path}:{line_no}: {e}") from e
            if not streams:
                if "|#" in line:
                    continue
                raise CTFFormatError(f"{path}:{line_no}: no '|<stream>' fields")
            for name, dim in stream_dims.items():
                if name not in streams:
                    raise CTFFormatError(
                        f"{path}:{line_no}: missing stream {name!r}"
                    )
                tokens = streams[name]
                if len(tokens) != dim:
                    raise CTFFormatError(
                        f"{path}:{line_no}: stream {name!r} has {len(tokens)} "
                        f"values, expected {dim}"
                    )
                try:
                    samples[name].append([float(t) for t in tokens])
                except ValueError as e:
                    raise CTFFormatError(
                        f"{path}:{line_no}: stream {name!r} must be dense "
                        f"numeric values, got {tokens}"
                    ) from e
            skipped.update(set(streams) - set(stream_dims))

    if skipped:
        logger.debug(f"Ignored unconfigured CTF streams {sorted(skipped)} in {path}")
    counts = {name: len(rows) for name, rows in samples.items()}
    logger.debug(f"Read CTF samples {counts} from {path}")
    return samples
