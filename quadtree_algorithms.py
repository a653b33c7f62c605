"""
Lens Quadtree - Core Implementation
This module contains the adaptive quadtree used to build a source-plane grid,
including the chunked point buffer, recursive refinement of overfull cells,
leaf traversal and teardown, and the forest of root cells tiling the domain.
"""

import numpy as np
from typing import Callable, Iterator, List, Optional, Tuple
from enum import Enum
from dataclasses import dataclass

from grid_logger import logger

# Reference grid: WIDTH x HEIGHT unit cells, N x N samples per cell
WIDTH = 20
HEIGHT = 20
N = 10
THRESH = 1.0

# Refinement stops here even for cells that are still overfull
DEFAULT_MAX_DEPTH = 32


class QuadtreeError(RuntimeError):
    """Base class for quadtree errors"""


class QuadtreeStateError(QuadtreeError):
    """Raised when a node is used in a state that does not allow the operation"""


class NodeState(Enum):
    """Enumeration of quadtree node states"""
    LEAF = "leaf"
    INTERNAL = "internal"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class Point2D:
    """Immutable 2D point"""
    x: float = 0.0
    y: float = 0.0

    def quadrant(self, cx: float, cy: float) -> Tuple[int, int]:
        """Quadrant index (i, j) relative to a centre; ties go to the lower index"""
        return int(self.x > cx), int(self.y > cy)


class PointBuffer:
    """
    Growable point store of a leaf node.

    Points live in a (capacity, 2) float64 array that is reallocated in
    fixed chunks whenever it is exactly full. A failed reallocation raises
    MemoryError, which is deliberately left to propagate: the caller has no
    retry path and the run is expected to abort.
    """

    def __init__(self, chunk_size: int = N):
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self._points = np.empty((0, 2), dtype=np.float64)
        self.count = 0

    @property
    def capacity(self) -> int:
        return self._points.shape[0]

    def append(self, p: Point2D):
        """Append a point, growing storage by one chunk when full"""
        if self.count == self.capacity:
            grown = np.empty((self.capacity + self.chunk_size, 2), dtype=np.float64)
            grown[:self.count] = self._points[:self.count]
            self._points = grown

        self._points[self.count, 0] = p.x
        self._points[self.count, 1] = p.y
        self.count += 1

    def as_array(self) -> np.ndarray:
        """Return a copy of the stored points as a (count, 2) array"""
        return self._points[:self.count].copy()

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[Point2D]:
        for k in range(self.count):
            yield Point2D(float(self._points[k, 0]), float(self._points[k, 1]))


class QuadtreeNode:
    """A rectangular cell that is either a leaf holding points or has four children"""

    def __init__(self, x: float, y: float, w: float, h: float,
                 depth: int = 0, chunk_size: int = N):
        # Centre and full extent of the cell
        self.x = x
        self.y = y
        self.w = w
        self.h = h
        self.depth = depth

        self.chunk_size = chunk_size
        self.state = NodeState.LEAF
        # Set on the first refine(); a refined leaf is final
        self.refined = False
        self.buffer: Optional[PointBuffer] = PointBuffer(chunk_size)
        self.children: Optional[List['QuadtreeNode']] = None

    def __repr__(self) -> str:
        return (f"QuadtreeNode(x={self.x!r}, y={self.y!r}, w={self.w!r}, h={self.h!r}, "
                f"depth={self.depth}, state={self.state.value})")

    @property
    def is_leaf(self) -> bool:
        return self.state is NodeState.LEAF

    @property
    def count(self) -> int:
        """Number of points held directly by this node (0 unless it is a leaf)"""
        return self.buffer.count if self.buffer is not None else 0

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Box as (min_x, min_y, max_x, max_y)"""
        return (self.x - 0.5 * self.w, self.y - 0.5 * self.h,
                self.x + 0.5 * self.w, self.y + 0.5 * self.h)

    def _require(self, state: NodeState, operation: str):
        if self.state is not state:
            raise QuadtreeStateError(
                f"cannot {operation} a node in state '{self.state.value}', "
                f"expected '{state.value}'")

    def _require_unrefined(self, operation: str):
        self._require(NodeState.LEAF, operation)
        if self.refined:
            raise QuadtreeStateError(f"cannot {operation} a leaf that has already been refined")

    def insert(self, p: Point2D):
        """Add a point to this leaf; refinement is a separate pass"""
        self._require_unrefined("insert into")
        self.buffer.append(p)

    def child_index(self, p: Point2D) -> int:
        """Index of the child quadrant a point belongs to"""
        i, j = p.quadrant(self.x, self.y)
        return j * 2 + i

    def _make_children(self) -> List['QuadtreeNode']:
        children = []
        for j in range(2):
            for i in range(2):
                children.append(QuadtreeNode(
                    self.x + (2 * i - 1) * 0.25 * self.w,
                    self.y + (2 * j - 1) * 0.25 * self.h,
                    0.5 * self.w,
                    0.5 * self.h,
                    depth=self.depth + 1,
                    chunk_size=self.chunk_size,
                ))
        return children

    def refine(self, threshold: float = THRESH * N * N,
               max_depth: Optional[int] = DEFAULT_MAX_DEPTH):
        """Recursively subdivide this leaf while it holds more than threshold points"""
        self._require_unrefined("refine")
        self.refined = True

        if self.buffer.count <= threshold:
            return

        if max_depth is not None and self.depth >= max_depth:
            logger.warning(
                "Depth cap %d reached at (%g, %g) with %d points, leaving cell unrefined",
                max_depth, self.x, self.y, self.buffer.count)
            return

        children = self._make_children()

        # Sort points into child quadrants
        for p in self.buffer:
            children[self.child_index(p)].insert(p)

        logger.debug("Split cell (%g, %g) at depth %d: %s",
                     self.x, self.y, self.depth, [c.count for c in children])

        # Points have moved to the children
        self.buffer = None
        self.children = children
        self.state = NodeState.INTERNAL

        for child in children:
            child.refine(threshold, max_depth)

    def for_each_leaf(self, visitor: Callable[['QuadtreeNode'], None]):
        """Apply visitor to every leaf in this subtree in quadrant order"""
        if self.state is NodeState.INTERNAL:
            for child in self.children:
                child.for_each_leaf(visitor)
        else:
            self._require(NodeState.LEAF, "visit")
            visitor(self)

    def iter_leaves(self) -> Iterator['QuadtreeNode']:
        """Yield the leaves of this subtree in the same order as for_each_leaf"""
        if self.state is NodeState.INTERNAL:
            for child in self.children:
                yield from child.iter_leaves()
        else:
            self._require(NodeState.LEAF, "visit")
            yield self

    def destroy(self):
        """Release this subtree; the node cannot be used afterwards"""
        if self.state is NodeState.DESTROYED:
            raise QuadtreeStateError("node has already been destroyed")

        if self.state is NodeState.INTERNAL:
            for child in self.children:
                child.destroy()
            self.children = None
        else:
            self.buffer = None

        self.state = NodeState.DESTROYED


class Forest:
    """Grid of independent quadtree roots, one per integer cell"""

    def __init__(self, width: int = WIDTH, height: int = HEIGHT, chunk_size: int = N):
        if width < 1 or height < 1:
            raise ValueError("forest dimensions must be positive")

        self.width = width
        self.height = height

        # Roots centred at integer points 1..width, 1..height
        self.roots: List[List[QuadtreeNode]] = [
            [QuadtreeNode(i + 1, j + 1, 1, 1, chunk_size=chunk_size) for i in range(width)]
            for j in range(height)
        ]
        self.destroyed = False

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Domain as (min_x, min_y, max_x, max_y), upper edges exclusive"""
        return 0.5, 0.5, self.width + 0.5, self.height + 0.5

    def _check_alive(self):
        if self.destroyed:
            raise QuadtreeStateError("forest has already been destroyed")

    def root(self, i: int, j: int) -> QuadtreeNode:
        """Root of cell (i, j)"""
        self._check_alive()
        if not (0 <= i < self.width and 0 <= j < self.height):
            raise IndexError(f"cell ({i}, {j}) outside {self.width}x{self.height} grid")
        return self.roots[j][i]

    def iter_roots(self) -> Iterator[QuadtreeNode]:
        """Yield roots in row-major order"""
        self._check_alive()
        for row in self.roots:
            yield from row

    def contains(self, p: Point2D) -> bool:
        """Check whether a point lies inside the domain"""
        if not (np.isfinite(p.x) and np.isfinite(p.y)):
            return False
        min_x, min_y, max_x, max_y = self.bounds
        return min_x <= p.x < max_x and min_y <= p.y < max_y

    def locate(self, p: Point2D) -> Tuple[int, int]:
        """Cell index of a point inside the domain"""
        if not self.contains(p):
            raise ValueError(f"point ({p.x}, {p.y}) is outside the domain")
        return int(p.x - 0.5), int(p.y - 0.5)

    def insert_into(self, cell_index: Tuple[int, int], p: Point2D):
        """Insert a point into the root of the given cell"""
        i, j = cell_index
        self.root(i, j).insert(p)

    def insert(self, p: Point2D):
        """Insert a point into the root of the cell containing it"""
        self.insert_into(self.locate(p), p)

    def refine_all(self, threshold: float = THRESH * N * N,
                   max_depth: Optional[int] = DEFAULT_MAX_DEPTH):
        """Refine every root independently"""
        for node in self.iter_roots():
            node.refine(threshold, max_depth)
        logger.debug("Refined %d roots with threshold %g", self.width * self.height, threshold)

    def visit_all_leaves(self, visitor: Callable[[QuadtreeNode], None]):
        """Apply visitor to every leaf of every root, roots in row-major order"""
        for node in self.iter_roots():
            node.for_each_leaf(visitor)

    def iter_leaves(self) -> Iterator[QuadtreeNode]:
        for node in self.iter_roots():
            yield from node.iter_leaves()

    def leaf_count(self) -> int:
        return sum(1 for _ in self.iter_leaves())

    def point_count(self) -> int:
        return sum(leaf.count for leaf in self.iter_leaves())

    def destroy_all(self):
        """Tear down every root and release the grid"""
        self._check_alive()
        for row in self.roots:
            for node in row:
                node.destroy()
        self.roots = []
        self.destroyed = True


# Testing and validation functions
def validate_refinement():
    """Validate refinement with the reference scenarios"""
    print("Validating quadtree refinement...")
    threshold = THRESH * N * N

    # Test 1: overfull root splits into four sparse quadrants
    print("Test 1: Overfull root")
    root = QuadtreeNode(1, 1, 1, 1)
    rng = np.random.default_rng(0)
    for quadrant in range(4):
        ox = 0.5 + 0.5 * (quadrant % 2)
        oy = 0.5 + 0.5 * (quadrant // 2)
        for x, y in rng.uniform(0.05, 0.45, size=(150 // 4 + (quadrant < 150 % 4), 2)):
            root.insert(Point2D(ox + x, oy + y))
    root.refine(threshold)
    counts = [leaf.count for leaf in root.iter_leaves()]
    print(f"  Leaves: {len(counts)}, counts: {counts}, total: {sum(counts)}")

    # Test 2: sparse root stays a leaf
    print("\nTest 2: Sparse root")
    root = QuadtreeNode(1, 1, 1, 1)
    for x, y in rng.uniform(0.5, 1.5, size=(50, 2)):
        root.insert(Point2D(x, y))
    root.refine(threshold)
    print(f"  Leaf: {root.is_leaf}, count: {root.count}")

    # Test 3: coincident points stop at the depth cap
    print("\nTest 3: Coincident points")
    root = QuadtreeNode(1, 1, 1, 1)
    for _ in range(int(threshold) + 1):
        root.insert(Point2D(1.2, 0.7))
    root.refine(threshold, max_depth=8)
    deepest = max(leaf.depth for leaf in root.iter_leaves())
    print(f"  Deepest leaf: {deepest}")

    print("Refinement validation completed!")


if __name__ == "__main__":
    # Run validation when module is executed directly
    validate_refinement()
