import os

import matplotlib

matplotlib.use("Agg")
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import pytest

from quadtree_algorithms import Forest, Point2D, QuadtreeNode


def fill_quadrants(node: QuadtreeNode, total: int, seed: int = 0) -> None:
    """Insert total points spread evenly over the four quadrants of node."""
    import numpy as np

    rng = np.random.default_rng(seed)
    for k in range(total):
        quadrant = k % 4
        i, j = quadrant % 2, quadrant // 2
        fx, fy = rng.uniform(0.05, 0.45, size=2)
        x = node.x - 0.5 * node.w + (i * 0.5 + fx) * node.w
        y = node.y - 0.5 * node.h + (j * 0.5 + fy) * node.h
        node.insert(Point2D(float(x), float(y)))


@pytest.fixture
def root() -> QuadtreeNode:
    return QuadtreeNode(1, 1, 1, 1)


@pytest.fixture
def small_forest() -> Forest:
    return Forest(3, 2)


@pytest.fixture
def fill():
    return fill_quadrants
