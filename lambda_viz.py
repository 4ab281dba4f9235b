#!/usr/bin/env python3
#
# λ-Term Braid Layout Pipeline
# ============================
#
# surface term -> indexed term -> timeline -> candidate layouts -> rated
# layout -> layout matrix. The chosen layout (or its JSON export) is what an
# external renderer draws: one colored line per track, call results spawning
# off their function's line, nested scopes drawn as boxes.
#
# USAGE:
#   Show:     python lambda_viz.py show "\f x. f (f x)"
#   Library:  python lambda_viz.py show compose --json compose.json
#   Rank:     python lambda_viz.py rank "\a b c. c (a b)" --top 10
#   Greedy:   python lambda_viz.py show "\n f x. f (n f x)" --greedy
#   List:     python lambda_viz.py library
#
# Free variables are declared as top-level inputs automatically unless
# --strict is given (then they are an error) or --free lists them explicitly.

import argparse
import json
import sys
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Dict, Iterator, List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from lambda_errors import LayoutError, UnsupportedStep
from lambda_layout import (LOOKAHEAD, CallSlot, Empty, Layout, NestedSlot, Seed,
                           synthesize)
from lambda_matrix import (LayoutMatrix, Vacant, build_matrix,
                           cell_label, format_matrix, iter_matrices)
from lambda_rate import SearchStats, choose_layout, rank_layouts, summarize
from lambda_terms import (LIBRARY, Ast, IdAllocator, IndexedAbs, IndexedApp,
                          IndexResult, free_variables, index_term, parse_term,
                          print_ast)
from lambda_timeline import Timeline, format_timeline, linearize, step_count

# ============================================================================
# CONFIG
# ============================================================================

@dataclass
class Config:
    lookahead: int = LOOKAHEAD
    exhaustive: bool = True
    max_candidates: Optional[int] = None
    id_start: int = 0
    free: Optional[List[str]] = None  # None: detect free variables
    strict: bool = False
    warn_steps: int = 8  # Exhaustive search beyond this many steps gets slow

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.lookahead < 1:
            raise ValueError(f"lookahead must be positive, got {self.lookahead}")
        if self.max_candidates is not None and self.max_candidates < 1:
            raise ValueError(f"max_candidates must be positive, got {self.max_candidates}")

# ============================================================================
# PIPELINE
# ============================================================================

@dataclass
class Visualization:
    ast: Ast
    indexed: IndexResult
    timeline: Timeline
    output_id: int
    layout: Layout
    cost: int
    names: Dict[int, str] = field(default_factory=dict)
    stats: Optional[SearchStats] = None
    truncated: bool = False


def resolve_term(text: str) -> Ast:
    #A LIBRARY name, or surface syntax.#
    if text in LIBRARY:
        return LIBRARY[text]
    return parse_term(text)


def binder_names(indexed: IndexResult) -> Dict[int, str]:
    #Display names of every binder and declared input, by identifier.#
    names = {identifier: name for identifier, name in indexed.inputs}
    stack = [indexed.term]
    while stack:
        term = stack.pop()
        if isinstance(term, IndexedAbs):
            names[term.binder_id] = term.name
            stack.append(term.body)
        elif isinstance(term, IndexedApp):
            stack.extend((term.function, term.argument))
    return names


def prepare(ast: Ast, config: Config) -> Tuple[IndexResult, Timeline, int]:
    #Index and linearize a term.#
    if config.free is not None:
        free = config.free
    else:
        free = [] if config.strict else free_variables(ast)
    indexed = index_term(ast, IdAllocator(config.id_start), free)
    timeline, output_id = linearize(indexed.term)
    return indexed, timeline, output_id


def candidates(timeline: Timeline, indexed: IndexResult, output_id: int,
               config: Config) -> Iterator[Layout]:
    layouts = synthesize(timeline, indexed.inputs, output_id,
                         config.lookahead, config.exhaustive)
    if config.max_candidates is not None:
        layouts = islice(layouts, config.max_candidates)
    return layouts


def _warn_size(timeline: Timeline, config: Config):
    steps = step_count(timeline)
    if config.exhaustive and config.max_candidates is None and steps > config.warn_steps:
        sys.stderr.write(f"[Warning: {steps} steps, exhaustive enumeration may be slow - "
                         f"try --greedy or --max-candidates]\n")
        sys.stderr.flush()


def _warn_truncated(stats: SearchStats, config: Config) -> bool:
    truncated = config.max_candidates is not None and stats.count >= config.max_candidates
    if truncated:
        sys.stderr.write(f"[Warning: enumeration stopped after {stats.count} candidates]\n")
        sys.stderr.flush()
    return truncated


def visualize(ast: Ast, config: Optional[Config] = None) -> Visualization:
    #Run the whole pipeline and return the cheapest layout.#
    config = config or Config()
    indexed, timeline, output_id = prepare(ast, config)
    _warn_size(timeline, config)

    stats = SearchStats()
    layout = choose_layout(candidates(timeline, indexed, output_id, config), stats)
    truncated = _warn_truncated(stats, config)
    return Visualization(ast, indexed, timeline, output_id, layout, stats.best,
                         binder_names(indexed), stats, truncated)

# ============================================================================
# EXPORT
# ============================================================================

def slot_to_dict(slot) -> Optional[Dict[str, Any]]:
    if isinstance(slot, Empty):
        return None
    if isinstance(slot, Seed):
        return {'kind': 'seed', 'id': slot.id, 'name': slot.name,
                'color': slot.color, 'until': slot.until}
    if isinstance(slot, CallSlot):
        return {'kind': 'call', 'id': slot.id, 'function': slot.function_id,
                'argument': slot.argument_id, 'side': slot.side.value,
                'color': slot.color, 'until': slot.until}
    if isinstance(slot, NestedSlot):
        return {'kind': 'nested', 'id': slot.id, 'arguments': list(slot.argument_ids),
                'output': slot.output_id, 'color': slot.color, 'until': slot.until,
                'layout': layout_to_dict(slot.layout)}
    raise UnsupportedStep(slot)


def layout_to_dict(layout: Layout) -> Dict[str, Any]:
    #JSON-ready description of a layout for external renderers.#
    return {
        'duration': layout.duration,
        'width': layout.width,
        'columns': [[slot_to_dict(slot) for slot in column] for column in layout.columns],
    }

# ============================================================================
# DISPLAY
# ============================================================================

def matrix_table(matrix: LayoutMatrix, names: Dict[int, str], title: str) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Track", justify="right")
    for t in range(matrix.duration):
        table.add_column(f"t{t}", justify="center")

    for track in range(matrix.width):
        row = [str(track)]
        for cell in matrix.track(track):
            label = cell_label(cell, names)
            if isinstance(cell, Vacant):
                row.append(Text(label, style="dim"))
            else:
                style = cell.color + (" bold" if cell.created else "")
                row.append(Text(label + ("▪" if cell.closes else ""), style=style))
        table.add_row(*row)
    return table


def print_visualization(vis: Visualization, no_ansi: bool = False):
    matrix = build_matrix(vis.layout)
    summary = summarize(vis.layout)

    print(f"Term: {print_ast(vis.ast)}")
    if vis.indexed.inputs:
        print("Inputs: " + ' '.join(f"{i}:{n}" for i, n in vis.indexed.inputs))
    print("Timeline:")
    print(format_timeline(vis.timeline, vis.names, indent=1) or "  (empty)")
    print()

    if no_ansi:
        print(f"Layout (cost={vis.cost}):")
        print(format_matrix(matrix, vis.names))
        for scope, inner in iter_matrices(matrix):
            print(f"\nScope λ{scope}:")
            print(format_matrix(inner, vis.names))
        print(f"\nheight={summary.height} duration={summary.duration} width={summary.width} "
              f"seeds={summary.seeds} calls={summary.calls} nested={summary.nested}")
        return

    console = Console()
    console.print(matrix_table(matrix, vis.names, f"Layout (cost={vis.cost})"))
    for scope, inner in iter_matrices(matrix):
        console.print(matrix_table(inner, vis.names, f"Scope λ{scope}"))

    table = Table(title="Summary", box=box.ROUNDED)
    for column in ("Height", "Duration", "Width", "Seeds", "Calls", "Nested", "Candidates"):
        table.add_column(column, justify="right")
    table.add_row(str(summary.height), str(summary.duration), str(summary.width),
                  str(summary.seeds), str(summary.calls), str(summary.nested),
                  str(vis.stats.count if vis.stats else 1))
    console.print(table)

# ============================================================================
# MODES
# ============================================================================

def show_mode(args, config: Config):
    #Lay out one term and print the chosen layout.#
    vis = visualize(resolve_term(args.term), config)
    print_visualization(vis, args.no_ansi)

    if args.json:
        with open(args.json, 'w') as f:
            json.dump({'term': print_ast(vis.ast), 'cost': vis.cost,
                       'names': {str(k): v for k, v in vis.names.items()},
                       'layout': layout_to_dict(vis.layout)}, f, indent=2)
        sys.stderr.write(f"[Layout written to {args.json}]\n")
        sys.stderr.flush()


def rank_mode(args, config: Config):
    #Rank the cheapest candidates of one term.#
    ast = resolve_term(args.term)
    indexed, timeline, output_id = prepare(ast, config)
    _warn_size(timeline, config)

    stats = SearchStats()
    ranked = rank_layouts(candidates(timeline, indexed, output_id, config), args.top, stats)
    _warn_truncated(stats, config)
    report = stats.report()

    if args.no_ansi:
        for cost, index, layout in ranked:
            print(f"#{index:<6} cost={cost} duration={layout.duration} width={layout.width}")
        print(json.dumps(report))
        return

    console = Console()
    table = Table(title=f"Candidates for {print_ast(ast)}", box=box.ROUNDED)
    table.add_column("Rank", justify="right")
    table.add_column("Candidate", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Width", justify="right")
    for rank, (cost, index, layout) in enumerate(ranked, 1):
        table.add_row(str(rank), str(index), str(cost), str(layout.duration), str(layout.width))
    console.print(table)

    stats_table = Table(title="Search", box=box.ROUNDED)
    stats_table.add_column("Metric")
    stats_table.add_column("Value", justify="right")
    for key, value in report.items():
        stats_table.add_row(key, f"{value:.3f}" if isinstance(value, float) else str(value))
    console.print(stats_table)


def library_mode(args, config: Config):
    #List the built-in library terms.#
    if args.no_ansi:
        for name, ast in LIBRARY.items():
            print(f"{name:<10} size={ast.size():<3} depth={ast.depth():<3} {print_ast(ast)}")
        return

    table = Table(title="Library", box=box.ROUNDED)
    table.add_column("Name")
    table.add_column("Term")
    table.add_column("Size", justify="right")
    table.add_column("Depth", justify="right")
    for name, ast in LIBRARY.items():
        table.add_row(name, print_ast(ast), str(ast.size()), str(ast.depth()))
    Console().print(table)

# ============================================================================
# CLI
# ============================================================================

def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description='λ-term braid layout')
    subparsers = parser.add_subparsers(dest='mode', required=True)

    def add_search_options(sub):
        sub.add_argument('term', help='Term in \\x. syntax, or a library name')
        sub.add_argument('--lookahead', type=int, default=LOOKAHEAD,
                         help='Free slots inspected when reusing a track')
        sub.add_argument('--greedy', action='store_true',
                         help='Only the preferred placement at every step')
        sub.add_argument('--max-candidates', type=int,
                         help='Stop enumeration after this many candidates')
        sub.add_argument('--id-start', type=int, default=0)
        sub.add_argument('--free', default='',
                         help='Comma separated free inputs (default: detected)')
        sub.add_argument('--strict', action='store_true',
                         help='Free variables are an error')
        sub.add_argument('--no-ansi', action='store_true')

    show = subparsers.add_parser('show')
    add_search_options(show)
    show.add_argument('--json', type=str, help='Write the chosen layout as JSON')

    rank = subparsers.add_parser('rank')
    add_search_options(rank)
    rank.add_argument('--top', type=int, default=10)

    library = subparsers.add_parser('library')
    library.add_argument('--no-ansi', action='store_true')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)

    config = Config()
    if hasattr(args, 'lookahead'):
        config.lookahead = args.lookahead
    if hasattr(args, 'greedy'):
        config.exhaustive = not args.greedy
    if hasattr(args, 'max_candidates'):
        config.max_candidates = args.max_candidates
    if hasattr(args, 'id_start'):
        config.id_start = args.id_start
    if hasattr(args, 'free') and args.free:
        config.free = [name.strip() for name in args.free.split(',') if name.strip()]
    if hasattr(args, 'strict'):
        config.strict = args.strict
    try:
        config.validate()
    except ValueError as e:
        sys.stderr.write(f"[Error: {e}]\n")
        sys.exit(2)

    sys.stderr.write("=" * 60 + "\n")
    sys.stderr.write("λ-Term Braid Layout\n")
    if args.mode != 'library':
        sys.stderr.write(f"Mode: {args.mode} | Lookahead: {config.lookahead}")
        sys.stderr.write(" | Search: " + ("exhaustive" if config.exhaustive else "greedy"))
        if config.max_candidates:
            sys.stderr.write(f" | Max candidates: {config.max_candidates}")
        sys.stderr.write("\n")
    sys.stderr.write("=" * 60 + "\n")
    sys.stderr.flush()

    try:
        if args.mode == 'show':
            show_mode(args, config)
        elif args.mode == 'rank':
            rank_mode(args, config)
        elif args.mode == 'library':
            library_mode(args, config)
    except (LayoutError, ValueError) as e:
        sys.stderr.write(f"\n[Error: cannot visualize term: {e}]\n")
        sys.stderr.flush()
        sys.exit(1)


if __name__ == '__main__':
    main()
