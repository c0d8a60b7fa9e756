"""Readers for image map files and CNTK text format (CTF) target files."""

from multichannel_regression.io.ctf import CTFFormatError, parse_ctf_line, read_ctf
from multichannel_regression.io.map_file import (
    MapFileEntry,
    MapFileError,
    read_map_file,
)

__all__ = [
    "CTFFormatError",
    "MapFileEntry",
    "MapFileError",
    "parse_ctf_line",
    "read_ctf",
    "read_map_file",
]
