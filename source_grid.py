"""
Source Grid Builder
Samples an N x N grid of image-plane points in every cell, maps them through
the lens, sorts the survivors into the forest roots and refines the forest.
"""

import numpy as np
from typing import Callable, Tuple
from dataclasses import dataclass

from quadtree_algorithms import Forest, Point2D
from grid_config import GridConfig
from lens_models import SIELens
from grid_logger import logger

Transform = Callable[[Point2D], Point2D]


@dataclass
class SamplingStats:
    """Counts gathered while filling the forest"""
    generated: int = 0
    inserted: int = 0
    discarded: int = 0


def cell_sample_points(i: int, j: int, n: int) -> Tuple[np.ndarray, np.ndarray]:
    """Image-plane sample grid of cell (i, j), ordered by sample index k = row * n + col"""
    k = np.arange(n * n)
    xs = i + 0.5 + ((k % n) + 0.5) / n
    ys = j + 0.5 + ((k // n) + 0.5) / n
    return xs, ys


def apply_transform(transform: Transform, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Map coordinate arrays through a transform, vectorised when it supports it"""
    if hasattr(transform, 'deflect'):
        return transform.deflect(xs, ys)

    mapped = [transform(Point2D(float(x), float(y))) for x, y in zip(xs, ys)]
    return (np.array([p.x for p in mapped], dtype=np.float64),
            np.array([p.y for p in mapped], dtype=np.float64))


def populate_forest(forest: Forest, transform: Transform, samples_per_side: int) -> SamplingStats:
    """Sample every cell, lens the points and insert those landing inside the domain"""
    stats = SamplingStats()
    min_x, min_y, max_x, max_y = forest.bounds

    for j in range(forest.height):
        for i in range(forest.width):
            xs, ys = cell_sample_points(i, j, samples_per_side)
            sx, sy = apply_transform(transform, xs, ys)
            stats.generated += len(xs)

            # Skip non-finite and out-of-range points
            keep = (np.isfinite(sx) & np.isfinite(sy)
                    & (sx >= min_x) & (sx < max_x) & (sy >= min_y) & (sy < max_y))
            stats.discarded += int(np.count_nonzero(~keep))

            # Sort point into tree root
            for x, y in zip(sx[keep], sy[keep]):
                forest.insert_into((int(x - 0.5), int(y - 0.5)), Point2D(float(x), float(y)))
                stats.inserted += 1

    logger.info("Sampled %d points: %d inserted, %d discarded",
                stats.generated, stats.inserted, stats.discarded)
    return stats


def build_source_grid(config: GridConfig = None, transform: Transform = None) -> Tuple[Forest, SamplingStats]:
    """Create, fill and refine a forest for the given configuration"""
    config = (config or GridConfig()).validate()
    if transform is None:
        transform = SIELens(config.lens)

    forest = Forest(config.width, config.height, chunk_size=config.samples_per_side)
    stats = populate_forest(forest, transform, config.samples_per_side)

    forest.refine_all(config.threshold, config.max_depth)
    logger.info("Refined %dx%d grid into %d leaves",
                config.width, config.height, forest.leaf_count())
    return forest, stats
