import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import PatchCollection
from matplotlib.colors import LogNorm
from matplotlib.patches import Rectangle
from typing import List, Optional, Tuple

from quadtree_algorithms import Forest, QuadtreeNode


class SourceGridVisualization:
    """Draws the leaf cells of a refined forest, shaded by point density"""

    def __init__(self, forest: Forest, cmap: str = 'viridis'):
        self.forest = forest
        self.cmap = cmap
        self.fig = None
        self.ax = None
        self.collection = None

    def leaf_rectangles(self) -> Tuple[List[Rectangle], np.ndarray]:
        """Rectangle patches and point densities of every leaf"""
        patches = []
        densities = []

        def add(leaf: QuadtreeNode):
            min_x, min_y, _, _ = leaf.bounds
            patches.append(Rectangle((min_x, min_y), leaf.w, leaf.h))
            densities.append(leaf.count / (leaf.w * leaf.h))

        self.forest.visit_all_leaves(add)
        return patches, np.array(densities, dtype=np.float64)

    def setup_plot(self, ax=None, title: str = 'Source Plane Grid'):
        """Create the figure and draw every leaf"""
        if ax is None:
            self.fig, self.ax = plt.subplots(figsize=(10, 10))
        else:
            self.fig, self.ax = ax.figure, ax

        patches, densities = self.leaf_rectangles()

        # Empty leaves are drawn at the lowest occupied density
        positive = densities[densities > 0]
        floor = positive.min() if positive.size else 1.0
        shaded = np.where(densities > 0, densities, floor)

        self.collection = PatchCollection(patches, cmap=self.cmap, edgecolor='black', linewidth=0.2)
        self.collection.set_array(shaded)
        if positive.size and positive.max() > floor:
            self.collection.set_norm(LogNorm(vmin=floor, vmax=positive.max()))
        self.ax.add_collection(self.collection)

        min_x, min_y, max_x, max_y = self.forest.bounds
        self.ax.set_xlim(min_x, max_x)
        self.ax.set_ylim(min_y, max_y)
        self.ax.set_aspect('equal')
        self.ax.set_xlabel('x')
        self.ax.set_ylabel('y')
        self.ax.set_title(title)
        self.fig.colorbar(self.collection, ax=self.ax, label='points per unit area')
        return self.fig

    def save(self, filename: str, dpi: int = 150):
        if self.fig is None:
            self.setup_plot()
        self.fig.savefig(filename, dpi=dpi, bbox_inches='tight')

    def close(self):
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None
            self.ax = None


def plot_source_grid(forest: Forest, filename: Optional[str] = None, show: bool = False):
    """Plot the leaf partition, optionally saving it and showing it on screen"""
    visualization = SourceGridVisualization(forest)
    fig = visualization.setup_plot()

    if filename:
        visualization.save(filename)
        print(f"Source grid plot saved to {filename}")
    if show:
        plt.show()
    return fig
