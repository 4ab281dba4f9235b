#!/usr/bin/env python3
"""
End-to-end tests for the lambda_viz pipeline and CLI.

Verifies that:
1. visualize() returns the cheapest layout of a term
2. The JSON export is serializable and complete
3. show / rank / library modes print what they promise
4. Bad input exits with an error instead of a traceback
"""

import json

import pytest

from lambda_layout import NestedSlot
from lambda_terms import parse_term
from lambda_viz import (Config, binder_names, layout_to_dict, main, prepare,
                        resolve_term, visualize)


def print_section(title):
    print(f"\n{'='*70}")
    print(f"{title}")
    print(f"{'='*70}\n")


def test_visualize_twice():
    print_section("Pipeline for λf.λx. f (f x)")
    vis = visualize(parse_term("\\f x. f (f x)"))
    print(f"cost={vis.cost} candidates={vis.stats.count}")
    assert vis.cost == 3
    assert vis.output_id == 5
    assert vis.names == {0: 'f', 1: 'x'}
    assert isinstance(vis.layout.columns[0][0], NestedSlot)
    assert not vis.truncated


def test_layout_export_is_json():
    vis = visualize(resolve_term('compose'))
    data = layout_to_dict(vis.layout)
    text = json.dumps(data)
    assert json.loads(text) == data

    top = data['columns'][0][0]
    assert top['kind'] == 'nested'
    assert top['layout']['duration'] > 0
    kinds = {slot['kind'] for column in top['layout']['columns'] for slot in column if slot}
    assert kinds == {'seed', 'call'}


def test_free_variables_detected():
    indexed, timeline, output_id = prepare(parse_term("f x"), Config())
    assert indexed.inputs == ((0, 'f'), (1, 'x'))
    assert binder_names(indexed) == {0: 'f', 1: 'x'}
    assert output_id == 2


def test_truncated_search():
    vis = visualize(parse_term("\\a b c. c (a b)"), Config(max_candidates=2))
    assert vis.stats.count == 2
    assert vis.truncated


def test_greedy_config():
    vis = visualize(resolve_term('succ'), Config(exhaustive=False))
    assert vis.stats.count == 1


def test_invalid_config():
    with pytest.raises(ValueError):
        Config(lookahead=0)
    with pytest.raises(ValueError):
        Config(max_candidates=0)


def test_show_plain(capsys):
    main(['show', '\\f x. f (f x)', '--no-ansi'])
    out = capsys.readouterr().out
    print(out)
    assert "Layout (cost=3):" in out
    assert "Scope λ5:" in out
    assert "height=3" in out


def test_show_rich(capsys):
    main(['show', 'apply'])
    out = capsys.readouterr().out
    assert "Summary" in out


def test_show_json(tmp_path, capsys):
    target = tmp_path / "layout.json"
    main(['show', 'two', '--greedy', '--json', str(target), '--no-ansi'])
    assert "Layout written" in capsys.readouterr().err

    data = json.loads(target.read_text())
    assert data['term'].startswith("λf.")
    assert data['names']['0'] == 'f'
    assert data['layout']['width'] == 1


def test_rank_plain(capsys):
    main(['rank', '\\a b c. c (a b)', '--top', '3', '--no-ansi'])
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 4
    assert all(line.startswith('#') for line in lines[:3])
    report = json.loads(lines[-1])
    assert report['candidates'] > 3
    assert report['best_cost'] == 4


def test_library_plain(capsys):
    main(['library', '--no-ansi'])
    out = capsys.readouterr().out
    assert "compose" in out
    apply_line = next(line for line in out.splitlines() if line.startswith('apply'))
    assert apply_line.endswith("λf. λx. f x")
    assert apply_line.split()[1:3] == ['size=5', 'depth=3']


def test_library_rich(capsys):
    main(['library'])
    out = capsys.readouterr().out
    assert "Depth" in out


def test_strict_rejects_free_variables(capsys):
    with pytest.raises(SystemExit) as info:
        main(['show', 'f x', '--strict', '--no-ansi'])
    assert info.value.code == 1
    assert "cannot visualize term" in capsys.readouterr().err


def test_syntax_error_exits(capsys):
    with pytest.raises(SystemExit) as info:
        main(['show', '(x', '--no-ansi'])
    assert info.value.code == 1


def test_bad_option_exits(capsys):
    with pytest.raises(SystemExit) as info:
        main(['show', 'x', '--lookahead', '0'])
    assert info.value.code == 2


if __name__ == '__main__':
    import sys
    sys.exit(pytest.main([__file__, '-v']))
