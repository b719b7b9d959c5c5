"""Tokenizer and recursive-descent parser for scan formulas.

Grammar, lowest precedence first::

    comparison := additive [("<" | "<=" | ">" | ">=" | "==" | "!=") additive]
    additive   := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("+" | "-") unary | primary
    primary    := NUMBER | IDENT | IDENT "(" [comparison ("," comparison)*] ")"
                | "(" comparison ")"
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.errors import ExpressionSyntaxError
from .functions import FunctionRegistry, ParamKind, create_default_registry
from .nodes import Binary, Call, Compare, Node, Number, Symbol, Unary
from .symbols import SymbolTable


_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>>=|<=|==|!=|[-+*/()<>,])"
    r")"
)

COMPARISON_OPS = {"<", "<=", ">", ">=", "==", "!="}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


def tokenize(formula: str) -> List[Token]:
    """Split *formula* into tokens, ending with an ``end`` token."""
    tokens: List[Token] = []
    pos = 0
    length = len(formula)
    while pos < length:
        if formula[pos:].strip() == "":
            break
        match = _TOKEN_RE.match(formula, pos)
        if match is None or match.end() == pos:
            start = pos + len(formula[pos:]) - len(formula[pos:].lstrip())
            raise ExpressionSyntaxError(f"unexpected character '{formula[start]}'", formula, start)
        kind = match.lastgroup
        tokens.append(Token(kind, match.group(kind), match.start(kind)))
        pos = match.end()
    tokens.append(Token("end", "", length))
    return tokens


class _Parser:
    """Single-use parser over one token stream."""

    def __init__(self, formula: str, symbols: SymbolTable, functions: FunctionRegistry):
        self.formula = formula
        self.symbols = symbols
        self.functions = functions
        self.tokens = tokenize(formula)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, text: str) -> Token:
        if self.current.text != text:
            raise self.error(f"expected '{text}'")
        return self.advance()

    def error(self, message: str) -> ExpressionSyntaxError:
        token = self.current
        found = "end of formula" if token.kind == "end" else f"'{token.text}'"
        return ExpressionSyntaxError(f"{message}, found {found}", self.formula, token.pos)

    def parse(self) -> Node:
        if self.current.kind == "end":
            raise self.error("empty formula")
        node = self.comparison()
        if self.current.kind != "end":
            raise self.error("unexpected token")
        return node

    def comparison(self) -> Node:
        left = self.additive()
        if self.current.kind == "op" and self.current.text in COMPARISON_OPS:
            op = self.advance().text
            right = self.additive()
            if self.current.kind == "op" and self.current.text in COMPARISON_OPS:
                raise self.error("chained comparison")
            return Compare(op, left, right)
        return left

    def additive(self) -> Node:
        node = self.term()
        while self.current.kind == "op" and self.current.text in ("+", "-"):
            op = self.advance().text
            node = Binary(op, node, self.term())
        return node

    def term(self) -> Node:
        node = self.unary()
        while self.current.kind == "op" and self.current.text in ("*", "/"):
            op = self.advance().text
            node = Binary(op, node, self.unary())
        return node

    def unary(self) -> Node:
        if self.current.kind == "op" and self.current.text in ("+", "-"):
            op = self.advance().text
            return Unary(op, self.unary())
        return self.primary()

    def primary(self) -> Node:
        token = self.current
        if token.kind == "number":
            self.advance()
            return Number(float(token.text))
        if token.kind == "ident":
            self.advance()
            if self.current.text == "(":
                return self.call(token)
            return Symbol(token.text, self.symbols.resolve(token.text))
        if token.text == "(":
            self.advance()
            node = self.comparison()
            self.expect(")")
            return node
        raise self.error("expected a value")

    def call(self, name: Token) -> Node:
        spec = self.functions.get(name.text)
        self.expect("(")
        args: List[Node] = []
        positions: List[int] = []
        if self.current.text != ")":
            positions.append(self.current.pos)
            args.append(self.comparison())
            while self.current.text == ",":
                self.advance()
                positions.append(self.current.pos)
                args.append(self.comparison())
        self.expect(")")

        if spec.default_series and args and isinstance(args[0], Number):
            default = Symbol(spec.default_series, self.symbols.resolve(spec.default_series))
            args.insert(0, default)
            positions.insert(0, name.pos)
        spec.check_arity(len(args))
        for arg, kind, pos in zip(args, spec.params, positions):
            if kind is ParamKind.SERIES and isinstance(arg, Number):
                raise ExpressionSyntaxError(
                    f"{spec.name}() expects a series, got the number {arg}", self.formula, pos
                )
        return Call(name.text, tuple(args))


class Parser:
    """Parses formulas into ASTs, caching one tree per formula string."""

    def __init__(
        self,
        symbols: Optional[SymbolTable] = None,
        functions: Optional[FunctionRegistry] = None,
    ):
        self.symbols = symbols or SymbolTable()
        self.functions = functions or create_default_registry()
        self._cache: Dict[str, Node] = {}

    def parse(self, formula: str) -> Node:
        """Parse *formula*; raises a ``CompilationError`` subclass on failure."""
        node = self._cache.get(formula)
        if node is None:
            node = _Parser(formula, self.symbols, self.functions).parse()
            self._cache[formula] = node
        return node

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)
