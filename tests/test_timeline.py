#!/usr/bin/env python3
"""
Tests for the Timeline Builder.

Verifies that:
1. Abstractions become a single Nested step with a private sub-timeline
2. Function operands are sequenced before argument operands
3. Every referenced identifier is defined before use (or is a free input)
4. Linearization is deterministic for a fresh counter at the same start
"""

import pytest

from lambda_errors import MissingReference, UnsupportedStep
from lambda_terms import LIBRARY, IdAllocator, church, index_term, parse_term
from lambda_timeline import (Call, Nested, build_timeline, check_timeline,
                             format_timeline, last_use, linearize, produced_ids,
                             references, step_count)


def print_section(title):
    print(f"\n{'='*70}")
    print(f"{title}")
    print(f"{'='*70}\n")


def timeline_of(text, free=()):
    result = index_term(parse_term(text), free=free)
    return result, linearize(result.term)


def test_first_combinator_timeline():
    print_section("Scenario A: λx.λy. x")
    _, (timeline, result_id) = timeline_of("\\x. \\y. x")
    print(format_timeline(timeline))
    assert timeline == (Nested(3, (0, 1), 0, (), ('x', 'y')),)
    assert result_id == 3


def test_apply_timeline():
    print_section("Scenario B: λf.λx. f x")
    _, (timeline, result_id) = timeline_of("\\f. \\x. f x")
    print(format_timeline(timeline))
    assert timeline == (Nested(4, (0, 1), 2, (Call(2, 0, 1),), ('f', 'x')),)
    assert result_id == 4


def test_function_before_argument():
    _, (timeline, _) = timeline_of("\\a b c. c (a b)")
    nested = timeline[0]
    assert nested.argument_ids == (0, 1, 2)
    assert nested.output_id == 3
    assert nested.timeline == (Call(4, 0, 1), Call(3, 2, 4))


def test_free_inputs_and_variables():
    result, (timeline, result_id) = timeline_of("f", free=['f'])
    assert timeline == ()
    assert result_id == result.inputs[0][0]


def test_nested_argument_scope():
    # (λx. x) y: the abstraction is produced before the call consuming it
    result, (timeline, result_id) = timeline_of("(\\x. x) y", free=['y'])
    y = result.inputs[0][0]
    assert isinstance(timeline[0], Nested)
    assert timeline[1] == Call(result_id, timeline[0].id, y)


@pytest.mark.parametrize("name", sorted(LIBRARY))
def test_definition_before_use(name):
    result = index_term(LIBRARY[name])
    timeline, output_id = linearize(result.term)
    check_timeline(timeline, [i for i, _ in result.inputs], output_id)


def test_definition_before_use_with_capture():
    # Inner scope uses f from the enclosing scope
    result = index_term(parse_term("\\f. g (\\x. f x)"), free=['g'])
    timeline, output_id = linearize(result.term)
    check_timeline(timeline, [i for i, _ in result.inputs], output_id)


def test_malformed_timeline_detected():
    with pytest.raises(MissingReference) as info:
        check_timeline((Call(2, 0, 1),), inputs=[0])
    assert info.value.identifier == 1

    with pytest.raises(MissingReference):
        check_timeline((Nested(5, (0,), 9, ()),))


def test_deterministic_rebuild():
    ast = parse_term("\\n f x. f (n f x)")
    first = linearize(index_term(ast, IdAllocator(start=7)).term)
    second = linearize(index_term(ast, IdAllocator(start=7)).term)
    assert first == second


def test_queries():
    timeline = build_timeline(index_term(church(2)).term)
    inner = timeline[0].timeline
    f, x = timeline[0].argument_ids

    assert references(timeline[0], f), "Nested steps see references in their sub-timeline"
    assert last_use(inner, f) == 1
    assert last_use(inner, x) == 0
    assert last_use(inner, 999) is None
    assert produced_ids(inner) == [step.id for step in inner]
    assert step_count(timeline) == 3


def test_unsupported_term():
    with pytest.raises(UnsupportedStep):
        linearize("not a term")
    with pytest.raises(UnsupportedStep):
        references("bogus", 0)


def test_format_timeline():
    _, (timeline, _) = timeline_of("\\f x. f x")
    text = format_timeline(timeline)
    assert "λ 0:f 1:x -> 2" in text
    assert "2 = 0:f 1:x" in text


if __name__ == '__main__':
    import sys
    sys.exit(pytest.main([__file__, '-v']))
