#!/usr/bin/env python3
#
# Layout Synthesizer
# ==================
#
# Assigns every value of a timeline to a track. A layout is a sequence of
# time columns of equal width; column t holds the placements made at time t.
# A placement occupies its position from its own column through `until`, the
# last column whose step references it. After that the position is free and
# later steps may reuse it.
#
#   time:      0    1    2
#   track 0:   .    ab   ab      <- Call result spawned next to a
#   track 1:   a    a    .
#   track 2:   b    b    .
#   track 3:   c    c    c
#
# synthesize() enumerates every structurally valid layout lazily. For each
# step the preferred spot comes first (a free position within the lookahead
# window next to the function track, or a new track adjacent to it), followed
# by every other free position and every insertion point. Nested scopes are
# synthesized recursively and every (interior layout, outer spot) pair is a
# distinct candidate. Nothing is pruned: pick with lambda_rate, or stop early.

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from lambda_errors import MissingReference, UnsupportedStep
from lambda_timeline import Call, Nested, Timeline, last_use

LOOKAHEAD = 3

PALETTE = ('#F37878', '#21BEE0', '#AA59AB', '#38F461', '#BBB684')


def color_for(identifier: int) -> str:
    return PALETTE[identifier % len(PALETTE)]

# ============================================================================
# LAYOUT MODEL
# ============================================================================

class Side(Enum):
    #Side of the function track a Call result spawns on.#
    BEFORE = 'before'
    AFTER = 'after'


@dataclass(slots=True, frozen=True)
class Empty:
    pass


EMPTY = Empty()


@dataclass(slots=True, frozen=True)
class Seed:
    #Track created for one input of a scope.#
    id: int
    name: str
    color: str
    until: int


@dataclass(slots=True, frozen=True)
class CallSlot:
    id: int
    function_id: int
    argument_id: int
    side: Side
    color: str
    until: int


@dataclass(slots=True, frozen=True)
class NestedSlot:
    #Opaque scope: only `id` is visible outside, the interior lives in `layout`.#
    id: int
    argument_ids: Tuple[int, ...]
    output_id: int
    layout: 'Layout'
    color: str
    until: int


Placement = Union[Seed, CallSlot, NestedSlot]
Slot = Union[Empty, Seed, CallSlot, NestedSlot]
Column = Tuple[Slot, ...]


@dataclass(frozen=True)
class Layout:
    columns: Tuple[Column, ...] = ()

    @property
    def duration(self) -> int:
        return len(self.columns)

    @property
    def width(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    def placements(self) -> Iterator[Tuple[int, int, Placement]]:
        #Yield (time, position, placement) for every non-empty slot.#
        for time, column in enumerate(self.columns):
            for position, slot in enumerate(column):
                if not isinstance(slot, Empty):
                    yield time, position, slot

    def find(self, identifier: int) -> Optional[Tuple[int, int, Placement]]:
        #Locate the placement producing identifier in this scope.#
        for time, position, slot in self.placements():
            if slot.id == identifier:
                return time, position, slot
        return None


def _covering(layout: Layout, position: int, time: int) -> Optional[Tuple[int, Placement]]:
    #(since, placement) of the placement occupying position at time.#
    for since in range(min(time, layout.duration - 1), -1, -1):
        slot = layout.columns[since][position]
        if not isinstance(slot, Empty):
            return (since, slot) if time <= slot.until else None
    return None


def live_tracks(layout: Layout, time: int) -> Dict[int, Placement]:
    #Placements whose span covers `time`, keyed by position.#
    live = {}
    for position in range(layout.width):
        covering = _covering(layout, position, time)
        if covering is not None:
            live[position] = covering[1]
    return live


def placement_span(layout: Layout, position: int, time: int) -> Optional[Tuple[int, int]]:
    #(since, until) of the placement occupying position at time, or None.#
    if not 0 <= position < layout.width:
        return None
    covering = _covering(layout, position, time)
    if covering is None:
        return None
    since, slot = covering
    return since, slot.until


def is_before(a: int, b: int, identifiers: Sequence[int]) -> bool:
    #True when a is met before b scanning left to right.#
    for identifier in identifiers:
        if identifier == a:
            return True
        if identifier == b:
            return False
    return False

# ============================================================================
# SPOT SEARCH
# ============================================================================

class Spot(NamedTuple):
    #Where a result goes: reuse a free position, or insert a new one.#
    insert: bool
    position: int


def _position_of(live: Dict[int, Placement], identifier: int) -> Optional[int]:
    for position, slot in live.items():
        if slot.id == identifier:
            return position
    return None


def preferred_spot(live: Dict[int, Placement], width: int, anchor: Optional[int],
                   direction: int, lookahead: int = LOOKAHEAD) -> Spot:
    #Nearest free position within the lookahead window, else a new adjacent track.#
    if anchor is None:
        for position in range(min(lookahead, width)):
            if position not in live:
                return Spot(False, position)
        return Spot(True, width)

    for offset in range(1, lookahead + 1):
        position = anchor + direction * offset
        if position < 0 or position >= width:
            break
        if position not in live:
            return Spot(False, position)
    return Spot(True, anchor if direction < 0 else anchor + 1)


def candidate_spots(live: Dict[int, Placement], width: int, preferred: Spot,
                    exhaustive: bool = True) -> List[Spot]:
    #Preferred spot first, then every free position, then every insertion point.#
    spots = [preferred]
    if not exhaustive:
        return spots
    for position in range(width):
        spot = Spot(False, position)
        if position not in live and spot not in spots:
            spots.append(spot)
    for position in range(width + 1):
        spot = Spot(True, position)
        if spot not in spots:
            spots.append(spot)
    return spots


def place(layout: Layout, spot: Spot, slot: Placement) -> Layout:
    #Append a column holding slot at spot, widening every column on insert.#
    columns = layout.columns
    width = layout.width
    if spot.insert:
        columns = tuple(column[:spot.position] + (EMPTY,) + column[spot.position:]
                        for column in columns)
        width += 1
    column = tuple(slot if position == spot.position else EMPTY for position in range(width))
    return Layout(columns + (column,))

# ============================================================================
# SYNTHESIS
# ============================================================================

def _consumer_partner(timeline: Timeline, start: int, identifier: int) -> Tuple[Optional[int], bool]:
    #Other operand of the first later Call consuming identifier, and whether
    #identifier is that call's argument.#
    for step in timeline[start:]:
        if isinstance(step, Call):
            if step.argument_id == identifier:
                return step.function_id, True
            if step.function_id == identifier:
                return step.argument_id, False
    return None, False


def synthesize(timeline: Timeline, seeds: Sequence[Tuple[int, str]] = (),
               output_id: Optional[int] = None, lookahead: int = LOOKAHEAD,
               exhaustive: bool = True,
               captured: FrozenSet[int] = frozenset()) -> Iterator[Layout]:
    #Lazily enumerate every complete layout of a timeline.

    #seeds: (identifier, name) inputs placed in the first column
    #output_id: value kept live through the last column
    #captured: identifiers visible from enclosing scopes, usable without a track here
    #exhaustive: False yields only the preferred placement at every step
    #
    base = 1 if seeds else 0
    last_column = base + len(timeline) - 1

    def span_end(identifier: int, after: int, time: int) -> int:
        if identifier == output_id:
            return max(last_column, time)
        index = last_use(timeline[after:], identifier)
        return time if index is None else base + after + index

    def require(identifier: int, live: Dict[int, Placement], step) -> None:
        if identifier in captured:
            return
        if _position_of(live, identifier) is None:
            raise MissingReference(identifier, step)

    def extend(layout: Layout, k: int) -> Iterator[Layout]:
        if k == len(timeline):
            if output_id is not None:
                require(output_id, live_tracks(layout, last_column), None)
            yield layout
            return

        step = timeline[k]
        time = base + k
        live = live_tracks(layout, time)
        width = layout.width

        if isinstance(step, Call):
            require(step.function_id, live, step)
            require(step.argument_id, live, step)
            ordered = [live[position].id for position in sorted(live)]
            before = is_before(step.function_id, step.argument_id, ordered)
            function_at = _position_of(live, step.function_id)
            argument_at = _position_of(live, step.argument_id)
            if function_at is not None:
                anchor, direction = function_at, (-1 if before else 1)
                color = live[function_at].color
            else:
                anchor, direction = argument_at, 1
                color = color_for(step.id)

            slot = CallSlot(step.id, step.function_id, step.argument_id,
                            Side.BEFORE if before else Side.AFTER, color,
                            span_end(step.id, k + 1, time))
            preferred = preferred_spot(live, width, anchor, direction, lookahead)
            for spot in candidate_spots(live, width, preferred, exhaustive):
                yield from extend(place(layout, spot, slot), k + 1)

        elif isinstance(step, Nested):
            partner, is_argument = _consumer_partner(timeline, k + 1, step.id)
            anchor = _position_of(live, partner) if partner is not None else None
            preferred = preferred_spot(live, width, anchor, 1 if is_argument else -1, lookahead)
            spots = candidate_spots(live, width, preferred, exhaustive)

            names = step.argument_names or tuple(str(i) for i in step.argument_ids)
            inner_seeds = tuple(zip(step.argument_ids, names))
            visible = captured | frozenset(slot.id for slot in live.values())
            until = span_end(step.id, k + 1, time)

            for interior in synthesize(step.timeline, inner_seeds, step.output_id,
                                       lookahead, exhaustive, visible):
                slot = NestedSlot(step.id, step.argument_ids, step.output_id,
                                  interior, color_for(step.id), until)
                for spot in spots:
                    yield from extend(place(layout, spot, slot), k + 1)

        else:
            raise UnsupportedStep(step)

    initial = Layout()
    if seeds:
        initial = Layout((tuple(Seed(identifier, name, color_for(identifier),
                                     span_end(identifier, 0, 0))
                                for identifier, name in seeds),))
    yield from extend(initial, 0)


def greedy_layout(timeline: Timeline, seeds: Sequence[Tuple[int, str]] = (),
                  output_id: Optional[int] = None, lookahead: int = LOOKAHEAD) -> Layout:
    #The single layout made of preferred placements only.#
    return next(synthesize(timeline, seeds, output_id, lookahead, exhaustive=False))
