"""Parallel raster builder: static column sharding with deterministic merge.

The image width is cut into ``n_shards`` contiguous column ranges. Each
worker fills a private buffer for its range by calling the color function
for every pixel; the buffers are copied into one pre-sized grid after all
workers have finished, always in shard-index order. Results are therefore
bit-identical to a sequential evaluation for any pure color function.

Usage:
    grid = ParallelRasterBuilder(n_shards=8).render(width, height, color_fn)
"""

from __future__ import annotations

import logging
import multiprocessing
import time
from multiprocessing.pool import ThreadPool
from typing import Callable, NamedTuple

import numpy as np

logger = logging.getLogger(__name__)

# Worker count used by the reference renders
DEFAULT_SHARDS = 8

ColorFn = Callable[[int, int], tuple[int, int, int]]


class ShardSpec(NamedTuple):
    """Column range [x_start, x_stop) assigned to one worker."""

    index: int
    x_start: int
    x_stop: int
    height: int
    color_fn: ColorFn


class ShardResult(NamedTuple):
    """Private pixel buffer computed for one shard."""

    index: int
    x_start: int
    pixels: np.ndarray  # (x_stop - x_start, height, 3) uint8


def new_grid(width: int, height: int) -> np.ndarray:
    """Allocate a black (width, height, 3) uint8 grid indexed [x, y]."""
    return np.zeros((width, height, 3), dtype=np.uint8)


def compute_shard(spec: ShardSpec) -> ShardResult:
    """Evaluate the color function over every pixel of one shard.

    Runs inside a worker; touches nothing but its own buffer.
    """
    pixels = new_grid(spec.x_stop - spec.x_start, spec.height)
    for local_x in range(spec.x_stop - spec.x_start):
        global_x = spec.x_start + local_x
        for y in range(spec.height):
            pixels[local_x, y] = spec.color_fn(global_x, y)
    return ShardResult(spec.index, spec.x_start, pixels)


def render_sequential(width: int, height: int, color_fn: ColorFn) -> np.ndarray:
    """Single-loop evaluation of color_fn over the whole image."""
    grid = new_grid(width, height)
    for x in range(width):
        for y in range(height):
            grid[x, y] = color_fn(x, y)
    return grid


class ParallelRasterBuilder:
    """Static fork-join renderer over contiguous column shards.

    Args:
        n_shards: Number of workers, one shard each.
        cover_remainder: When the width is not a multiple of n_shards,
            give the leftover columns to the last shard. When False the
            leftover columns are skipped and stay black.
        processes: Use a process pool (True) or a thread pool (False).
            With processes the color function must be picklable.
    """

    def __init__(
        self,
        n_shards: int = DEFAULT_SHARDS,
        cover_remainder: bool = True,
        processes: bool = True,
    ):
        if n_shards < 1:
            raise ValueError(f"n_shards must be at least 1, got {n_shards}")
        self.n_shards = n_shards
        self.cover_remainder = cover_remainder
        self.processes = processes

    def build_shard_specs(
        self, width: int, height: int, color_fn: ColorFn,
    ) -> list[ShardSpec]:
        """Partition [0, width) into n_shards contiguous column ranges."""
        if width < 0 or height < 0:
            raise ValueError(
                f"Image dimensions must be non-negative, got {width}x{height}"
            )
        if self.cover_remainder and 0 < width < self.n_shards:
            raise ValueError(
                f"Cannot split {width} columns into {self.n_shards} shards"
            )

        size = width // self.n_shards
        specs: list[ShardSpec] = []
        for t in range(self.n_shards):
            x_start = t * size
            x_stop = (t + 1) * size
            if self.cover_remainder and t == self.n_shards - 1:
                x_stop = width
            specs.append(ShardSpec(t, x_start, x_stop, height, color_fn))

        remainder = width - size * self.n_shards
        if remainder and not self.cover_remainder:
            logger.warning(
                "Width %d is not a multiple of %d shards; "
                "last %d columns are not computed",
                width, self.n_shards, remainder,
            )
        return specs

    def render(self, width: int, height: int, color_fn: ColorFn) -> np.ndarray:
        """Compute the full grid, blocking until every shard is done.

        Returns:
            (width, height, 3) uint8 array indexed [x, y].
        """
        specs = self.build_shard_specs(width, height, color_fn)

        logger.info(
            "Rendering %dx%d with %d shards (%s)",
            width, height, self.n_shards,
            "processes" if self.processes else "threads",
        )
        t0 = time.monotonic()

        results: list[ShardResult | None] = [None] * len(specs)
        if self.n_shards == 1:
            # Sequential mode (useful for debugging)
            results[0] = compute_shard(specs[0])
        else:
            pool_cls = multiprocessing.Pool if self.processes else ThreadPool
            with pool_cls(self.n_shards) as pool:
                for result in pool.imap_unordered(compute_shard, specs):
                    results[result.index] = result
                    logger.debug(
                        "Shard %d finished (%.2f s)",
                        result.index, time.monotonic() - t0,
                    )

        grid = new_grid(width, height)
        for result in results:
            n_cols = result.pixels.shape[0]
            grid[result.x_start:result.x_start + n_cols] = result.pixels

        logger.info(
            "Render complete: %dx%d in %.2f s",
            width, height, time.monotonic() - t0,
        )
        return grid
