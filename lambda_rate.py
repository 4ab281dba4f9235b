#!/usr/bin/env python3
#
# Layout Rating
# =============
#
# Scores candidate layouts by vertical footprint. The height of a column is
# the number of tracks live in it, where a nested scope counts as tall as its
# own interior (at least one track), and no column is shorter than one.
# A layout's height is its tallest column.
# Lower is better; ties keep the first candidate generated.

import statistics
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from lambda_layout import CallSlot, Layout, NestedSlot, Seed
from lambda_matrix import LayoutMatrix, NestedCell, build_matrix

# ============================================================================
# HEIGHT
# ============================================================================

def matrix_height(matrix: LayoutMatrix) -> int:
    #Tallest column of a matrix, nested scopes weighted by their own height.#
    nested: Dict[int, int] = {}

    def weight(cell) -> int:
        if isinstance(cell, NestedCell):
            key = id(cell.matrix)
            if key not in nested:
                nested[key] = max(1, matrix_height(cell.matrix))
            return nested[key]
        return 1

    # Every column is at least one unit tall, so only a layout without columns costs 0
    return max((max(1, sum(weight(cell) for _, cell in matrix.occupied(t)))
                for t in range(matrix.duration)), default=0)


def layout_height(layout: Layout) -> int:
    return matrix_height(build_matrix(layout))


def rate_layout(layout: Layout) -> int:
    #Cost of a layout. Bigger is worse; 0 only for a layout with no columns.#
    return layout_height(layout)

# ============================================================================
# SELECTION
# ============================================================================

def choose_layout(candidates: Iterable[Layout],
                  stats: Optional['SearchStats'] = None) -> Layout:
    #Stream candidates and keep the first one of minimum cost.#
    best = None
    best_cost = None
    for layout in candidates:
        cost = rate_layout(layout)
        if stats is not None:
            stats.update(cost)
        if best_cost is None or cost < best_cost:
            best, best_cost = layout, cost
    if best is None:
        raise ValueError("No candidate layouts to choose from")
    return best


def rank_layouts(candidates: Iterable[Layout], limit: Optional[int] = None,
                 stats: Optional['SearchStats'] = None) -> List[Tuple[int, int, Layout]]:
    #(cost, generation index, layout) sorted by cost, generation order on ties.#
    rated = []
    for index, layout in enumerate(candidates):
        cost = rate_layout(layout)
        if stats is not None:
            stats.update(cost)
        rated.append((cost, index, layout))
    rated.sort(key=lambda entry: (entry[0], entry[1]))
    return rated if limit is None else rated[:limit]

# ============================================================================
# SUMMARY
# ============================================================================

@dataclass
class LayoutSummary:
    height: int
    duration: int
    width: int
    seeds: int
    calls: int
    nested: int


def summarize(layout: Layout) -> LayoutSummary:
    seeds = calls = nested = 0
    for _, _, slot in layout.placements():
        if isinstance(slot, Seed):
            seeds += 1
        elif isinstance(slot, CallSlot):
            calls += 1
        elif isinstance(slot, NestedSlot):
            nested += 1
    return LayoutSummary(rate_layout(layout), layout.duration, layout.width,
                         seeds, calls, nested)

# ============================================================================
# METRICS
# ============================================================================

class SearchStats:
    #Track and report candidate enumeration metrics.#

    def __init__(self):
        self.count = 0
        self.best: Optional[int] = None
        self.worst: Optional[int] = None
        self.total = 0
        self.recent = deque(maxlen=1000)
        self.start_time = time.time()

    def update(self, cost: int):
        self.count += 1
        self.total += cost
        self.recent.append(cost)
        self.best = cost if self.best is None else min(self.best, cost)
        self.worst = cost if self.worst is None else max(self.worst, cost)

    def percentile(self, values: List[int], p: float) -> float:
        if not values:
            return 0.0
        sorted_vals = sorted(values)
        k = int(len(sorted_vals) * p)
        return sorted_vals[min(k, len(sorted_vals) - 1)]

    def report(self) -> Dict[str, Any]:
        elapsed = time.time() - self.start_time
        recent = list(self.recent)
        return {
            'candidates': self.count,
            'best_cost': self.best,
            'worst_cost': self.worst,
            'mean_cost': self.total / self.count if self.count else 0.0,
            'median_cost': statistics.median(recent) if recent else 0.0,
            'p90_cost': self.percentile(recent, 0.9),
            'elapsed_s': elapsed,
            'candidates_per_sec': self.count / elapsed if elapsed > 0 else 0.0,
        }
