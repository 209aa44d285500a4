"""ASCII PPM (P3) serialization of a rendered grid.

Layout:
    P3
    <width> <height>
    255
    r g b r g b ...

Pixels are emitted with the outer loop over x and the inner loop over y,
one ``"r g b "`` token per pixel and no line breaks between tokens.
Readers must split on arbitrary whitespace.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import IO

import numpy as np

logger = logging.getLogger(__name__)

MAGIC = "P3"
MAX_VALUE = 255


def format_ppm(grid: np.ndarray) -> str:
    """Serialize a (width, height, 3) uint8 grid to P3 text."""
    width, height = grid.shape[:2]
    header = f"{MAGIC}\n{width} {height}\n{MAX_VALUE}\n"
    # C-order ravel of [x, y, channel] is exactly x-outer, y-inner
    body = "".join(f"{v} " for v in grid.ravel().tolist())
    return header + body


def _is_binary(stream) -> bool:
    if isinstance(stream, (io.RawIOBase, io.BufferedIOBase)):
        return True
    return "b" in getattr(stream, "mode", "")


def write_ppm(grid: np.ndarray, destination: str | Path | IO) -> None:
    """Write a grid to a path or an open stream.

    Paths are truncated on open and missing parent directories are
    created. Binary streams receive the ASCII-encoded bytes. Errors from
    the destination propagate as OSError.
    """
    contents = format_ppm(grid)

    if hasattr(destination, "write"):
        if _is_binary(destination):
            destination.write(contents.encode("ascii"))
        else:
            destination.write(contents)
        return

    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="ascii", newline="\n") as f:
        f.write(contents)
    logger.info("Wrote %s (%d bytes)", path, len(contents))


def read_ppm(source: str | Path | IO) -> np.ndarray:
    """Parse P3 text back into a (width, height, 3) uint8 grid."""
    if hasattr(source, "read"):
        text = source.read()
        if isinstance(text, bytes):
            text = text.decode("ascii")
    else:
        text = Path(source).read_text(encoding="ascii")

    tokens = text.split()
    if len(tokens) < 4 or tokens[0] != MAGIC:
        raise ValueError("Not a P3 image: missing magic string or header")

    width, height, max_value = int(tokens[1]), int(tokens[2]), int(tokens[3])
    if max_value != MAX_VALUE:
        raise ValueError(f"Unsupported max channel value {max_value}")

    values = tokens[4:]
    expected = width * height * 3
    if len(values) != expected:
        raise ValueError(
            f"Expected {expected} channel values for {width}x{height}, "
            f"got {len(values)}"
        )

    data = np.array([int(v) for v in values], dtype=np.int64)
    if data.size and (data.min() < 0 or data.max() > MAX_VALUE):
        raise ValueError("Channel value out of range [0, 255]")
    return data.astype(np.uint8).reshape(width, height, 3)
