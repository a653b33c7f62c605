"""
Leaf Reporting
Turns the leaves of a refined forest into a printed table, plain records,
summary statistics and JSON/CSV exports.
"""

import csv
import json
import sys
import numpy as np
from typing import Dict, List, TextIO
from dataclasses import dataclass, asdict
from datetime import datetime

from quadtree_algorithms import Forest, QuadtreeNode


@dataclass(frozen=True)
class LeafRecord:
    """Geometry and occupancy of one leaf cell"""
    index: int
    x: float
    y: float
    w: float
    h: float
    count: int
    depth: int


def format_leaf_row(counter: int, leaf: QuadtreeNode) -> str:
    """Fixed-width table row for a leaf"""
    return f"{counter:10d}{leaf.x:10g}{leaf.y:10g}{leaf.w:10g}{leaf.h:10g}{leaf.count:10d}"


class LeafTablePrinter:
    """Leaf visitor writing one numbered row per leaf"""

    def __init__(self, stream: TextIO = None):
        self.stream = stream or sys.stdout
        self.counter = 0

    def __call__(self, leaf: QuadtreeNode):
        self.counter += 1
        self.stream.write(format_leaf_row(self.counter, leaf) + "\n")


def print_leaf_table(forest: Forest, stream: TextIO = None) -> int:
    """Print every leaf of the forest and return the number of rows written"""
    printer = LeafTablePrinter(stream)
    forest.visit_all_leaves(printer)
    return printer.counter


def collect_leaves(forest: Forest) -> List[LeafRecord]:
    """Snapshot every leaf in traversal order"""
    records = []

    def record(leaf: QuadtreeNode):
        records.append(LeafRecord(len(records) + 1, leaf.x, leaf.y, leaf.w, leaf.h,
                                  leaf.count, leaf.depth))

    forest.visit_all_leaves(record)
    return records


def summarize_leaves(records: List[LeafRecord]) -> Dict:
    """Aggregate statistics over leaf records"""
    if not records:
        return {
            'leaf_count': 0,
            'total_points': 0,
            'max_depth': 0,
            'min_count': 0,
            'max_count': 0,
            'mean_count': 0.0,
            'depth_histogram': {},
        }

    counts = np.array([r.count for r in records])
    depths = np.array([r.depth for r in records])
    levels, occurrences = np.unique(depths, return_counts=True)

    return {
        'leaf_count': len(records),
        'total_points': int(counts.sum()),
        'max_depth': int(depths.max()),
        'min_count': int(counts.min()),
        'max_count': int(counts.max()),
        'mean_count': float(counts.mean()),
        'depth_histogram': {int(d): int(n) for d, n in zip(levels, occurrences)},
    }


def print_summary(summary: Dict, stream: TextIO = None):
    stream = stream or sys.stdout
    stream.write("=== Source Grid Summary ===\n")
    stream.write(f"Leaves: {summary['leaf_count']}\n")
    stream.write(f"Points: {summary['total_points']}\n")
    stream.write(f"Points per leaf: min {summary['min_count']}, "
                 f"max {summary['max_count']}, mean {summary['mean_count']:.2f}\n")
    stream.write(f"Maximum depth: {summary['max_depth']}\n")
    for depth, n in summary['depth_histogram'].items():
        stream.write(f"  depth {depth}: {n} leaves\n")


def export_leaves_json(forest: Forest, filename: str, metadata: Dict = None):
    """Export leaf records and their summary as JSON"""
    records = collect_leaves(forest)
    data = {
        'timestamp': datetime.now().isoformat(),
        'grid': {'width': forest.width, 'height': forest.height},
        'metadata': metadata or {},
        'summary': summarize_leaves(records),
        'leaves': [asdict(r) for r in records],
    }

    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)


def export_leaves_csv(forest: Forest, filename: str):
    """Export leaf records as CSV, one row per leaf"""
    columns = list(LeafRecord.__dataclass_fields__)
    with open(filename, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for r in collect_leaves(forest):
            writer.writerow(asdict(r))
