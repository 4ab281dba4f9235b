#!/usr/bin/env python3
#
# Error taxonomy for the λ-term layout pipeline.
#
# Every error is fatal for the term being processed: indexing, linearization
# and synthesis abort immediately and never hand back a partial layout.
# Callers treat any LayoutError as "this term cannot be visualized".

from typing import Any, Optional


class LayoutError(Exception):
    #Base class for all pipeline failures.#
    pass


class UnboundVariable(LayoutError):
    #A variable has no enclosing binder and was not declared as a free input.#

    def __init__(self, name: str):
        super().__init__(f"Unbound variable '{name}'")
        self.name = name


class ExhaustedIds(LayoutError):
    #A bounded identifier allocator ran out of identifiers.#

    def __init__(self, limit: int):
        super().__init__(f"Identifier allocator exhausted (limit={limit})")
        self.limit = limit


class MissingReference(LayoutError):
    #A step references an identifier that is not live in the layout built so far.#

    def __init__(self, identifier: int, step: Any = None):
        super().__init__(f"Identifier {identifier} is not available to step {step!r}")
        self.identifier = identifier
        self.step = step


class UnsupportedStep(LayoutError):
    #A timeline step, term node or layout slot of unknown type.#

    def __init__(self, step: Any):
        super().__init__(f"Unsupported step {type(step).__name__}: {step!r}")
        self.step = step


class OverlappingTracks(LayoutError):
    #Two placements claim the same (track, time) cell.#

    def __init__(self, track: int, time: int):
        super().__init__(f"Track {track} is occupied twice at time {time}")
        self.track = track
        self.time = time


class TermSyntaxError(ValueError):
    #Malformed surface syntax handed to the parser.#

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position
