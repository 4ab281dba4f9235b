#!/usr/bin/env python3
"""
Tests for the Layout Matrix Builder.

Uses the greedy layout of λf.λx. f (f x), whose interior is:

    time:      0    1    2
    track 0:   ·    3    3
    track 1:   f    f    f
    track 2:   x    x    2
"""

import pytest

from lambda_errors import OverlappingTracks, UnsupportedStep
from lambda_layout import PALETTE, Layout, Seed, greedy_layout
from lambda_matrix import (VACANT, NestedCell, TrackCell, Vacant, build_matrix,
                           cell_label, format_matrix, iter_matrices)
from lambda_terms import index_term, parse_term
from lambda_timeline import linearize


def print_section(title):
    print(f"\n{'='*70}")
    print(f"{title}")
    print(f"{'='*70}\n")


@pytest.fixture
def twice_matrix():
    result = index_term(parse_term("\\f x. f (f x)"))
    timeline, output_id = linearize(result.term)
    return build_matrix(greedy_layout(timeline, result.inputs, output_id))


def test_outer_matrix_is_opaque(twice_matrix):
    print_section("Matrix of λf.λx. f (f x)")
    assert twice_matrix.duration == 1
    assert twice_matrix.width == 1
    cell = twice_matrix.cell(0, 0)
    assert isinstance(cell, NestedCell)
    assert cell.id == 5
    assert twice_matrix.identifiers_at(0) == [5], "Interior ids must stay hidden"


def test_nested_sub_matrix(twice_matrix):
    inner = twice_matrix.cell(0, 0).matrix
    print(format_matrix(inner, {0: 'f', 1: 'x'}))
    assert inner.duration == 3
    assert inner.width == 3
    assert isinstance(inner.cell(0, 0), Vacant)
    assert inner.identifiers_at(0) == [0, 1]
    assert inner.identifiers_at(1) == [3, 0, 1]
    assert inner.identifiers_at(2) == [3, 0, 2]


def test_liveness_queries(twice_matrix):
    inner = twice_matrix.cell(0, 0).matrix
    assert inner.track_of(0, 0) == 1
    assert inner.track_of(3, 1) == 0
    assert inner.track_of(2, 2) == 2
    assert inner.is_live(1, 1)
    assert not inner.is_live(1, 2), "x closes after its last use"
    assert inner.track_of(42, 0) is None


def test_created_and_closes_flags(twice_matrix):
    inner = twice_matrix.cell(0, 0).matrix
    f_cells = inner.track(1)
    assert [c.created for c in f_cells] == [True, False, False]
    assert [c.closes for c in f_cells] == [False, False, True]

    x_cell = inner.cell(1, 2)
    assert isinstance(x_cell, TrackCell)
    assert x_cell.closes and x_cell.since == 0 and x_cell.until == 1
    assert inner.cell(2, 2).created
    assert x_cell.color == PALETTE[1]


def test_iter_matrices(twice_matrix):
    scopes = list(iter_matrices(twice_matrix))
    assert [scope for scope, _ in scopes] == [5]


def test_empty_layout():
    matrix = build_matrix(Layout())
    assert matrix.duration == 0
    assert matrix.width == 0
    assert format_matrix(matrix) == '(empty)'


def test_overlap_detected():
    a = Seed(0, 'a', PALETTE[0], 1)
    b = Seed(1, 'b', PALETTE[1], 1)
    with pytest.raises(OverlappingTracks) as info:
        build_matrix(Layout(((a,), (b,))))
    assert (info.value.track, info.value.time) == (0, 1)


def test_unknown_slot_rejected():
    with pytest.raises(UnsupportedStep):
        build_matrix(Layout((("junk",),)))


def test_labels(twice_matrix):
    assert cell_label(VACANT) == '·'
    assert cell_label(twice_matrix.cell(0, 0)) == 'λ5'
    inner = twice_matrix.cell(0, 0).matrix
    assert cell_label(inner.cell(0, 1), {0: 'f'}) == 'f'
    assert cell_label(inner.cell(1, 0)) == '3'

    text = format_matrix(inner, {0: 'f', 1: 'x'})
    lines = text.splitlines()
    assert len(lines) == 3
    assert lines[1].split('|')[1].split() == ['f', 'f', 'f']


if __name__ == '__main__':
    import sys
    sys.exit(pytest.main([__file__, '-v']))
