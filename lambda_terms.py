#!/usr/bin/env python3
#
# Lambda Calculus Surface Terms and Identifier Indexing
# =====================================================
#
# Surface terms are built by a front-end (constructors below, or parse_term).
# Before a term can be laid out every binder and every subterm receives a
# unique integer identifier; variables are resolved to the identifier of the
# binder they refer to. Identifiers are plain ints shared by the indexed term,
# the timeline and the layout.
#
# SYNTAX (parse_term):
#   - \ or λ for lambda, one or more binder names, then a dot
#   - juxtaposition for application (left associative), () for grouping
#   - names: letters, digits, _ and '
#
#   \f x. f (f x)      λa.λb.λc. c (a b)      (\x. x x) (\x. x x)

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from lambda_errors import ExhaustedIds, TermSyntaxError, UnboundVariable, UnsupportedStep

# ============================================================================
# SURFACE TERMS
# ============================================================================

@dataclass(slots=True, frozen=True)
class Var:
    name: str

    def size(self) -> int:
        return 1

    def depth(self) -> int:
        return 0


@dataclass(slots=True, frozen=True)
class Abs:
    name: str
    body: 'Ast'

    def size(self) -> int:
        return 1 + self.body.size()

    def depth(self) -> int:
        return 1 + self.body.depth()


@dataclass(slots=True, frozen=True)
class App:
    function: 'Ast'
    argument: 'Ast'

    def size(self) -> int:
        return 1 + self.function.size() + self.argument.size()

    def depth(self) -> int:
        return 1 + max(self.function.depth(), self.argument.depth())


Ast = Union[Var, Abs, App]


def var(name: str) -> Ast:
    return Var(name)


def lam(name: str, body: Ast) -> Ast:
    return Abs(name, body)


def call(function: Ast, argument: Ast) -> Ast:
    return App(function, argument)


def calls(function: Ast, *arguments: Ast) -> Ast:
    #Apply a function to several arguments, left to right.#
    result = function
    for argument in arguments:
        result = App(result, argument)
    return result


def lambdas(names: Sequence[str], body: Ast) -> Ast:
    #Curried abstraction: lambdas(['a', 'b'], body) is λa.λb. body#
    result = body
    for name in reversed(names):
        result = Abs(name, result)
    return result


def free_variables(ast: Ast) -> List[str]:
    #Free variable names in order of first occurrence.#
    found: List[str] = []

    def walk(t: Ast, bound: frozenset):
        if isinstance(t, Var):
            if t.name not in bound and t.name not in found:
                found.append(t.name)
        elif isinstance(t, Abs):
            walk(t.body, bound | {t.name})
        elif isinstance(t, App):
            walk(t.function, bound)
            walk(t.argument, bound)
        else:
            raise UnsupportedStep(t)

    walk(ast, frozenset())
    return found

# ============================================================================
# PRINTING
# ============================================================================

def _wrap_when(value: str, condition: bool) -> str:
    return f"({value})" if condition else value


def print_ast(ast: Ast, inside_call: bool = False) -> str:
    #Render a surface term with minimal parentheses.#
    if isinstance(ast, Var):
        return ast.name
    if isinstance(ast, Abs):
        return f"λ{ast.name}. {print_ast(ast.body)}"
    if isinstance(ast, App):
        argument_parens = (isinstance(ast.argument, App)
                           or (inside_call and isinstance(ast.argument, Abs)))
        function_parens = isinstance(ast.function, Abs)
        return (_wrap_when(print_ast(ast.function, True), function_parens) + " "
                + _wrap_when(print_ast(ast.argument), argument_parens))
    raise UnsupportedStep(ast)

# ============================================================================
# PARSING
# ============================================================================

_PUNCTUATION = {'\\': 'lambda', 'λ': 'lambda', '.': 'dot', '(': 'open', ')': 'close'}


def tokenize(text: str) -> List[Tuple[str, str, int]]:
    #Split source text into (kind, text, position) tokens.#
    tokens = []
    i = 0
    while i < len(text):
        c = text[i]
        if c in _PUNCTUATION:
            tokens.append((_PUNCTUATION[c], c, i))
            i += 1
        elif c.isalnum() or c in "_'":
            # λ is alphanumeric to str.isalnum, but was matched above
            j = i
            while (j < len(text) and text[j] not in _PUNCTUATION
                   and (text[j].isalnum() or text[j] in "_'")):
                j += 1
            tokens.append(('name', text[i:j], i))
            i = j
        elif c.isspace():
            i += 1
        else:
            raise TermSyntaxError(f"Unexpected character {c!r}", i)
    return tokens


class _Parser:
    #Recursive-descent parser over the token list.#

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    def peek(self) -> Optional[Tuple[str, str, int]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def expect(self, kind: str) -> Tuple[str, str, int]:
        token = self.peek()
        if token is None:
            raise TermSyntaxError(f"Expected {kind} but reached end of input", len(self.text))
        if token[0] != kind:
            raise TermSyntaxError(f"Expected {kind} but found {token[1]!r}", token[2])
        self.pos += 1
        return token

    def parse(self) -> Ast:
        if not self.tokens:
            raise TermSyntaxError("Empty term", 0)
        term = self.term()
        token = self.peek()
        if token is not None:
            raise TermSyntaxError(f"Unexpected {token[1]!r}", token[2])
        return term

    def term(self) -> Ast:
        token = self.peek()
        if token is not None and token[0] == 'lambda':
            return self.abstraction()

        result = None
        while True:
            token = self.peek()
            if token is None or token[0] in ('close', 'dot'):
                break
            if token[0] == 'lambda':
                # A trailing lambda extends as far right as possible
                operand = self.abstraction()
            else:
                operand = self.atom()
            result = operand if result is None else App(result, operand)

        if result is None:
            position = token[2] if token else len(self.text)
            raise TermSyntaxError("Expected a term", position)
        return result

    def abstraction(self) -> Ast:
        self.expect('lambda')
        names = [self.expect('name')[1]]
        while self.peek() is not None and self.peek()[0] == 'name':
            names.append(self.expect('name')[1])
        self.expect('dot')
        return lambdas(names, self.term())

    def atom(self) -> Ast:
        token = self.peek()
        if token[0] == 'name':
            self.pos += 1
            return Var(token[1])
        if token[0] == 'open':
            self.pos += 1
            inner = self.term()
            self.expect('close')
            return inner
        raise TermSyntaxError(f"Unexpected {token[1]!r}", token[2])


def parse_term(text: str) -> Ast:
    return _Parser(text).parse()

# ============================================================================
# LIBRARY TERMS
# ============================================================================

def church(n: int) -> Ast:
    #Church numeral n: λf.λx. f (f ... x)#
    body = var('x')
    for _ in range(n):
        body = call(var('f'), body)
    return lambdas(['f', 'x'], body)


_TRUE = lambdas(['true', 'false'], var('true'))
_FALSE = lambdas(['true', 'false'], var('false'))

LIBRARY: Dict[str, Ast] = {
    'True': _TRUE,
    'False': _FALSE,
    'if': lambdas(['condition', 'then', 'else'],
                  calls(var('condition'), var('then'), var('else'))),
    'or': lambdas(['a', 'b'], calls(var('a'), _TRUE, var('b'))),
    'and': lambdas(['a', 'b'], calls(var('a'), var('b'), _FALSE)),
    'first': lambdas(['x', 'y'], var('x')),
    'apply': lambdas(['f', 'x'], call(var('f'), var('x'))),
    'compose': lambdas(['f', 'g', 'x'], call(var('f'), call(var('g'), var('x')))),
    'succ': lambdas(['n', 'f', 'x'], call(var('f'), calls(var('n'), var('f'), var('x')))),
    'two': church(2),
}

# ============================================================================
# IDENTIFIERS
# ============================================================================

class IdAllocator:
    #Monotonic identifier counter, optionally bounded by `limit` (exclusive).#

    def __init__(self, start: int = 0, limit: Optional[int] = None):
        if start < 0:
            raise ValueError(f"Identifiers are non-negative, got start={start}")
        self._next = start
        self.limit = limit

    @property
    def value(self) -> int:
        return self._next

    def next(self) -> int:
        if self.limit is not None and self._next >= self.limit:
            raise ExhaustedIds(self.limit)
        identifier = self._next
        self._next += 1
        return identifier

# ============================================================================
# INDEXED TERMS
# ============================================================================

@dataclass(slots=True, frozen=True)
class IndexedVar:
    ref: int


@dataclass(slots=True, frozen=True)
class IndexedAbs:
    id: int
    binder_id: int
    name: str
    body: 'IndexedTerm'


@dataclass(slots=True, frozen=True)
class IndexedApp:
    id: int
    function: 'IndexedTerm'
    argument: 'IndexedTerm'


IndexedTerm = Union[IndexedVar, IndexedAbs, IndexedApp]


@dataclass(frozen=True)
class IndexResult:
    term: IndexedTerm
    # Declared top-level free inputs as (identifier, name)
    inputs: Tuple[Tuple[int, str], ...] = ()


def term_id(term: IndexedTerm) -> int:
    #Identifier of the value a term produces.#
    if isinstance(term, IndexedVar):
        return term.ref
    if isinstance(term, (IndexedAbs, IndexedApp)):
        return term.id
    raise UnsupportedStep(term)


def index_term(ast: Ast, allocator: Optional[IdAllocator] = None,
               free: Sequence[str] = ()) -> IndexResult:
    #Assign identifiers to every binder and subterm, resolving variables.

    #Free names get their identifiers first, in the order given; they act as
    #binders enclosing the whole term.
    #
    if allocator is None:
        allocator = IdAllocator()

    inputs = tuple((allocator.next(), name) for name in free)
    scope: Dict[str, int] = {name: identifier for identifier, name in inputs}

    def index(t: Ast, scope: Dict[str, int]) -> IndexedTerm:
        if isinstance(t, Var):
            if t.name not in scope:
                raise UnboundVariable(t.name)
            return IndexedVar(scope[t.name])
        elif isinstance(t, Abs):
            binder_id = allocator.next()
            body = index(t.body, {**scope, t.name: binder_id})
            return IndexedAbs(allocator.next(), binder_id, t.name, body)
        elif isinstance(t, App):
            node_id = allocator.next()
            function = index(t.function, scope)
            argument = index(t.argument, scope)
            return IndexedApp(node_id, function, argument)
        raise UnsupportedStep(t)

    return IndexResult(index(ast, scope), inputs)

# ============================================================================
# ARGUMENT GROUPING
# ============================================================================

@dataclass(frozen=True)
class ScopeGroup:
    id: int
    arguments: Tuple[Tuple[int, str], ...]
    body: IndexedTerm
    output_id: int

    @property
    def argument_ids(self) -> Tuple[int, ...]:
        return tuple(identifier for identifier, _ in self.arguments)

    @property
    def argument_names(self) -> Tuple[str, ...]:
        return tuple(name for _, name in self.arguments)


def group_arguments(term: IndexedAbs) -> ScopeGroup:
    #Collapse a chain of curried abstractions into one multi-argument scope.#
    arguments = []
    current: IndexedTerm = term
    while isinstance(current, IndexedAbs):
        arguments.append((current.binder_id, current.name))
        current = current.body
    return ScopeGroup(term.id, tuple(arguments), current, term_id(current))
