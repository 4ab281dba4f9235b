#!/usr/bin/env python3
#
# Timeline Builder
# ================
#
# Linearizes an indexed term into an ordered sequence of steps, the way an
# expression tree is flattened into SSA form: every identifier is produced
# before it is used, function operands are sequenced before argument
# operands, and each abstraction becomes one atomic Nested step carrying its
# own private sub-timeline.
#
#   λf.λx. f x   =>   [Nested(id=4, args=[0, 1], out=2, [Call(2, 0, 1)])]

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from lambda_errors import MissingReference, UnsupportedStep
from lambda_terms import (IndexedAbs, IndexedApp, IndexedTerm, IndexedVar,
                          group_arguments)

# ============================================================================
# STEPS
# ============================================================================

@dataclass(slots=True, frozen=True)
class Call:
    #Apply function_id to argument_id, producing id.#
    id: int
    function_id: int
    argument_id: int


@dataclass(slots=True, frozen=True)
class Nested:
    #Enter a scope binding argument_ids, run timeline, expose output_id as id.#
    id: int
    argument_ids: Tuple[int, ...]
    output_id: int
    timeline: Tuple['Step', ...] = ()
    argument_names: Tuple[str, ...] = ()


Step = Union[Call, Nested]
Timeline = Tuple[Step, ...]

# ============================================================================
# LINEARIZATION
# ============================================================================

def linearize(term: IndexedTerm) -> Tuple[Timeline, int]:
    #Build the timeline of a term and return it with the term's result id.#
    if isinstance(term, IndexedVar):
        return (), term.ref

    if isinstance(term, IndexedApp):
        function_timeline, function_id = linearize(term.function)
        argument_timeline, argument_id = linearize(term.argument)
        step = Call(term.id, function_id, argument_id)
        return function_timeline + argument_timeline + (step,), term.id

    if isinstance(term, IndexedAbs):
        group = group_arguments(term)
        inner, output_id = linearize(group.body)
        step = Nested(group.id, group.argument_ids, output_id, inner,
                      group.argument_names)
        return (step,), group.id

    raise UnsupportedStep(term)


def build_timeline(term: IndexedTerm) -> Timeline:
    return linearize(term)[0]

# ============================================================================
# QUERIES
# ============================================================================

def references(step: Step, identifier: int) -> bool:
    #Does a step (or anything nested inside it) refer to identifier?#
    if isinstance(step, Call):
        return identifier == step.function_id or identifier == step.argument_id
    if isinstance(step, Nested):
        if identifier == step.output_id or identifier in step.argument_ids:
            return True
        return any(references(inner, identifier) for inner in step.timeline)
    raise UnsupportedStep(step)


def last_use(timeline: Timeline, identifier: int) -> Optional[int]:
    #Index of the last step referencing identifier, or None.#
    for index in range(len(timeline) - 1, -1, -1):
        if references(timeline[index], identifier):
            return index
    return None


def operands(step: Step) -> Tuple[int, ...]:
    #Identifiers a step consumes from the scope it runs in.#
    if isinstance(step, Call):
        return (step.function_id, step.argument_id)
    if isinstance(step, Nested):
        return ()
    raise UnsupportedStep(step)


def produced_ids(timeline: Timeline) -> List[int]:
    #Identifiers produced by the steps of one scope, in order.#
    return [step.id for step in timeline]


def check_timeline(timeline: Timeline, inputs: Iterable[int] = (),
                   output_id: Optional[int] = None) -> None:
    #Verify definition-before-use, raising MissingReference on violation.#
    def check(timeline: Timeline, visible: Set[int], output_id: Optional[int]):
        for step in timeline:
            for identifier in operands(step):
                if identifier not in visible:
                    raise MissingReference(identifier, step)
            if isinstance(step, Nested):
                check(step.timeline, visible | set(step.argument_ids), step.output_id)
            visible = visible | {step.id}
        if output_id is not None and output_id not in visible:
            raise MissingReference(output_id, None)

    check(timeline, set(inputs), output_id)


def format_timeline(timeline: Timeline, names: Optional[Dict[int, str]] = None,
                    indent: int = 0) -> str:
    #Indented text listing of a timeline.#
    names = names or {}

    def label(identifier: int, names: Dict[int, str]) -> str:
        name = names.get(identifier)
        return f"{identifier}:{name}" if name else str(identifier)

    lines = []
    pad = '  ' * indent
    for step in timeline:
        if isinstance(step, Call):
            lines.append(f"{pad}{label(step.id, names)} = {label(step.function_id, names)} "
                         f"{label(step.argument_id, names)}")
        elif isinstance(step, Nested):
            scoped = {**names, **dict(zip(step.argument_ids, step.argument_names))}
            args = ' '.join(label(i, scoped) for i in step.argument_ids)
            lines.append(f"{pad}{step.id} = λ {args} -> {label(step.output_id, scoped)}")
            if step.timeline:
                lines.append(format_timeline(step.timeline, scoped, indent + 1))
        else:
            raise UnsupportedStep(step)
    return '\n'.join(lines)


def step_count(timeline: Timeline) -> int:
    #Total number of steps, nested scopes included.#
    total = 0
    for step in timeline:
        total += 1
        if isinstance(step, Nested):
            total += step_count(step.timeline)
    return total
