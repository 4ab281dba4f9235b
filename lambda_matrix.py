#!/usr/bin/env python3
#
# Layout Matrix Builder
# =====================
#
# Projects a layout onto a dense time x track grid. rows[t][p] is the
# placement whose span covers time t on track p, or VACANT. Nested scopes are
# not flattened into the parent grid: a NestedCell carries the sub-matrix of
# the scope's interior, so the renderer keeps scopes opaque while still being
# able to ask "is identifier X live at time T".

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

from lambda_errors import OverlappingTracks, UnsupportedStep
from lambda_layout import CallSlot, Empty, Layout, NestedSlot, Seed

# ============================================================================
# CELLS
# ============================================================================

@dataclass(slots=True, frozen=True)
class Vacant:
    pass


VACANT = Vacant()


class _Occupied:
    __slots__ = ()

    @property
    def id(self) -> int:
        return self.slot.id

    @property
    def color(self) -> str:
        return self.slot.color

    @property
    def created(self) -> bool:
        #The track starts in this cell.#
        return self.time == self.since

    @property
    def closes(self) -> bool:
        #The track ends in this cell; the position is free from the next column.#
        return self.time == self.until


@dataclass(slots=True, frozen=True)
class TrackCell(_Occupied):
    slot: Union[Seed, CallSlot]
    since: int
    until: int
    time: int


@dataclass(slots=True, frozen=True)
class NestedCell(_Occupied):
    slot: NestedSlot
    since: int
    until: int
    time: int
    matrix: 'LayoutMatrix'


Cell = Union[Vacant, TrackCell, NestedCell]

# ============================================================================
# MATRIX
# ============================================================================

@dataclass(frozen=True)
class LayoutMatrix:
    rows: Tuple[Tuple[Cell, ...], ...]
    width: int

    @property
    def duration(self) -> int:
        return len(self.rows)

    def cell(self, time: int, track: int) -> Cell:
        return self.rows[time][track]

    def occupied(self, time: int) -> List[Tuple[int, Union[TrackCell, NestedCell]]]:
        #(track, cell) pairs that are not vacant at time.#
        return [(track, cell) for track, cell in enumerate(self.rows[time])
                if not isinstance(cell, Vacant)]

    def identifiers_at(self, time: int) -> List[int]:
        return [cell.id for _, cell in self.occupied(time)]

    def track_of(self, identifier: int, time: int) -> Optional[int]:
        for track, cell in self.occupied(time):
            if cell.id == identifier:
                return track
        return None

    def is_live(self, identifier: int, time: int) -> bool:
        return self.track_of(identifier, time) is not None

    def track(self, track: int) -> List[Cell]:
        #All cells of one track over time.#
        return [row[track] for row in self.rows]


def build_matrix(layout: Layout) -> LayoutMatrix:
    duration, width = layout.duration, layout.width
    grid: List[List[Cell]] = [[VACANT] * width for _ in range(duration)]

    for since, column in enumerate(layout.columns):
        for position, slot in enumerate(column):
            if isinstance(slot, Empty):
                continue
            if isinstance(slot, NestedSlot):
                inner = build_matrix(slot.layout)
            elif not isinstance(slot, (Seed, CallSlot)):
                raise UnsupportedStep(slot)

            for time in range(since, min(slot.until, duration - 1) + 1):
                if not isinstance(grid[time][position], Vacant):
                    raise OverlappingTracks(position, time)
                if isinstance(slot, NestedSlot):
                    grid[time][position] = NestedCell(slot, since, slot.until, time, inner)
                else:
                    grid[time][position] = TrackCell(slot, since, slot.until, time)

    return LayoutMatrix(tuple(tuple(row) for row in grid), width)


def iter_matrices(matrix: LayoutMatrix) -> Iterator[Tuple[int, LayoutMatrix]]:
    #Yield (scope id, sub-matrix) for every nested scope, depth first.#
    seen = set()
    for row in matrix.rows:
        for cell in row:
            if isinstance(cell, NestedCell) and cell.id not in seen:
                seen.add(cell.id)
                yield cell.id, cell.matrix
                yield from iter_matrices(cell.matrix)

# ============================================================================
# TEXT RENDERING
# ============================================================================

def cell_label(cell: Cell, names: Optional[Dict[int, str]] = None) -> str:
    if isinstance(cell, Vacant):
        return '·'
    names = names or {}
    label = names.get(cell.id, str(cell.id))
    if isinstance(cell, NestedCell):
        return f"λ{label}"
    return label


def format_matrix(matrix: LayoutMatrix, names: Optional[Dict[int, str]] = None) -> str:
    #One text line per track, one column per time unit.#
    if matrix.duration == 0 or matrix.width == 0:
        return '(empty)'
    labels = [[cell_label(cell, names) for cell in matrix.track(track)]
              for track in range(matrix.width)]
    size = max(len(label) for line in labels for label in line)
    return '\n'.join(f"{track:>3} | " + ' '.join(label.ljust(size) for label in line).rstrip()
                     for track, line in enumerate(labels))
