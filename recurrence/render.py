"""Render pipeline: recurrence-time images, single or randomized batch.

Standalone script (not part of the GUI) that maps every pixel to an
initial angle pair, runs the recurrence search on a static pool of
workers and writes the result as an ASCII PPM file.

Usage:
    python -m recurrence.render [--width 512] [--height 512] [--output out.ppm]
    python -m recurrence.render --batch 10 --output-dir renders/ --seed 1
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from recurrence.mapper import (
    DEFAULT_MAX_ITERATIONS, DEFAULT_THRESHOLD, RecurrenceColorMapper,
)
from recurrence.ppm import read_ppm, write_ppm
from recurrence.raster import DEFAULT_SHARDS, ParallelRasterBuilder
from simulation import RENDER_DT, PendulumParams

logger = logging.getLogger(__name__)

# Iteration budget for the exhaustive batch search
BATCH_MAX_ITERATIONS = 25555


class VerificationError(Exception):
    """A written image did not read back identically."""


@dataclass(frozen=True)
class RenderTask:
    """Immutable specification for one recurrence image."""

    params: PendulumParams
    width: int
    height: int
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    dt: float = RENDER_DT
    threshold: float = DEFAULT_THRESHOLD
    n_shards: int = DEFAULT_SHARDS
    cover_remainder: bool = True
    processes: bool = True
    jit: bool = True

    def mapper(self) -> RecurrenceColorMapper:
        return RecurrenceColorMapper(
            width=self.width,
            height=self.height,
            params=self.params,
            max_iterations=self.max_iterations,
            dt=self.dt,
            threshold=self.threshold,
            jit=self.jit,
        )


@dataclass(frozen=True)
class ParamRanges:
    """Uniform sampling bounds (low, high) for each physical constant."""

    l1: tuple[float, float] = (0.5, 1.5)
    l2: tuple[float, float] = (0.5, 1.5)
    m1: tuple[float, float] = (1.0, 2.0)
    m2: tuple[float, float] = (1.0, 2.0)
    g: tuple[float, float] = (5.0, 15.0)


def sample_params(
    rng: np.random.Generator, ranges: ParamRanges = ParamRanges(),
) -> PendulumParams:
    """Draw a fresh set of physical constants."""
    return PendulumParams(
        l1=float(rng.uniform(*ranges.l1)),
        l2=float(rng.uniform(*ranges.l2)),
        m1=float(rng.uniform(*ranges.m1)),
        m2=float(rng.uniform(*ranges.m2)),
        g=float(rng.uniform(*ranges.g)),
    )


def output_filename(params: PendulumParams, prefix: str = "recurrence") -> str:
    """File name encoding the physical constants of a render."""
    return (
        f"{prefix}_l1={params.l1:.3f}_l2={params.l2:.3f}"
        f"_m1={params.m1:.3f}_m2={params.m2:.3f}_g={params.g:.3f}.ppm"
    )


def render_image(task: RenderTask) -> np.ndarray:
    """Compute the recurrence grid for one task."""
    builder = ParallelRasterBuilder(
        n_shards=task.n_shards,
        cover_remainder=task.cover_remainder,
        processes=task.processes,
    )
    return builder.render(task.width, task.height, task.mapper())


def verify_written(path: str | Path, grid: np.ndarray) -> None:
    """Read a written image back and compare it to the rendered grid."""
    if not np.array_equal(read_ppm(path), grid):
        raise VerificationError(f"Verification failed for {path}")
    logger.info("Verified %s", path)


def run_batch(
    count: int,
    output_dir: str | Path,
    rng: np.random.Generator,
    width: int,
    height: int,
    ranges: ParamRanges = ParamRanges(),
    verify: bool = False,
    **task_kwargs,
) -> list[Path]:
    """Render ``count`` images, each with freshly sampled constants.

    With ``verify`` each file is read back and compared to its grid
    before the next image starts.

    Returns:
        Paths of the written files, in render order.

    Raises:
        VerificationError: a written file did not read back identically.
    """
    output_dir = Path(output_dir)
    written: list[Path] = []
    t0 = time.monotonic()

    for i in range(count):
        params = sample_params(rng, ranges)
        task = RenderTask(params=params, width=width, height=height, **task_kwargs)
        logger.info("Batch image %d/%d: %s", i + 1, count, params)

        grid = render_image(task)
        path = output_dir / output_filename(params)
        write_ppm(grid, path)
        if verify:
            verify_written(path, grid)
        written.append(path)

    elapsed = time.monotonic() - t0
    logger.info("Batch complete: %d images in %.1f s", count, elapsed)
    return written


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render double pendulum recurrence-time images as P3 PPM.",
    )
    parser.add_argument("--width", type=_positive_int, default=512)
    parser.add_argument("--height", type=_positive_int, default=512)
    parser.add_argument(
        "--iterations",
        type=_positive_int,
        default=None,
        help=f"Iteration budget per pixel (default: {DEFAULT_MAX_ITERATIONS}, "
             f"{BATCH_MAX_ITERATIONS} in batch mode)",
    )
    parser.add_argument("--dt", type=float, default=RENDER_DT,
                        help=f"Euler step size (default: {RENDER_DT})")
    parser.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD,
                        help="Per-axis recurrence tolerance (default: %(default)s)")
    parser.add_argument("--shards", type=_positive_int, default=DEFAULT_SHARDS,
                        help="Number of parallel workers (default: %(default)s)")
    parser.add_argument("--threads", action="store_true",
                        help="Use threads instead of worker processes")
    parser.add_argument(
        "--truncate-remainder",
        action="store_true",
        help="Skip columns left over when width is not a multiple of shards",
    )
    parser.add_argument("--output", type=str, default="recurrence.ppm",
                        help="Output path for a single render (default: %(default)s)")
    parser.add_argument("--batch", type=_positive_int, default=None,
                        help="Render N images with randomly sampled constants")
    parser.add_argument("--output-dir", type=str, default="renders",
                        help="Output directory in batch mode (default: %(default)s)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for batch sampling")
    parser.add_argument("--verify", action="store_true",
                        help="Re-read each written image and compare it to the render")
    parser.add_argument("--no-jit", action="store_true",
                        help="Use the NumPy recurrence search even if numba is installed")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for rendering."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for flag, value in (("--dt", args.dt), ("--threshold", args.threshold)):
        if not (np.isfinite(value) and value > 0):
            logger.error("%s must be a positive finite number, got %s", flag, value)
            return 2

    common = dict(
        dt=args.dt,
        threshold=args.threshold,
        n_shards=args.shards,
        cover_remainder=not args.truncate_remainder,
        processes=not args.threads,
        jit=not args.no_jit,
    )

    try:
        if args.batch is not None:
            iterations = args.iterations or BATCH_MAX_ITERATIONS
            run_batch(
                args.batch, args.output_dir, np.random.default_rng(args.seed),
                args.width, args.height, verify=args.verify,
                max_iterations=iterations, **common,
            )
            return 0

        task = RenderTask(
            params=PendulumParams(),
            width=args.width,
            height=args.height,
            max_iterations=args.iterations or DEFAULT_MAX_ITERATIONS,
            **common,
        )
        grid = render_image(task)
        write_ppm(grid, args.output)

        if args.verify:
            verify_written(args.output, grid)
    except VerificationError as exc:
        logger.error("%s", exc)
        return 1
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    except OSError:
        logger.exception("Failed to write image")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
