"""
KPI expression parser.

Recursive-descent parser for the fixed KPI formula grammar. Produces an
immutable AST; anything outside the grammar is a syntax error. There is no
general-purpose ``eval`` anywhere in the KPI path.

Grammar (lowest to highest precedence):

    expression := or_expr
    or_expr    := and_expr ("||" and_expr)*
    and_expr   := equality ("&&" equality)*
    equality   := relational (("==" | "!=") relational)*
    relational := additive ((">" | "<" | ">=" | "<=") additive)*
    additive   := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("-" | "+" | "!") unary | primary
    primary    := NUMBER | "true" | "false" | PATH | "(" expression ")"
    PATH       := IDENT ("." IDENT)*

All binary operators are left-associative.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Union

MAX_EXPRESSION_LENGTH = 500
MAX_NESTING_DEPTH = 64


class ExpressionError(ValueError):
    """Base class for KPI expression failures."""


class ExpressionSyntaxError(ExpressionError):
    """The expression does not conform to the grammar."""


class ExpressionEvaluationError(ExpressionError):
    """The expression parsed but could not be evaluated against the scope."""


# =============================================================================
# AST
# =============================================================================


@dataclass(frozen=True)
class NumberLiteral:
    value: float


@dataclass(frozen=True)
class BooleanLiteral:
    value: bool


@dataclass(frozen=True)
class Variable:
    path: tuple[str, ...]

    @property
    def dotted(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


Node = Union[NumberLiteral, BooleanLiteral, Variable, UnaryOp, BinaryOp]


def iter_variables(node: Node) -> Iterator[Variable]:
    """Yield every variable reference in the tree, left to right."""
    if isinstance(node, Variable):
        yield node
    elif isinstance(node, UnaryOp):
        yield from iter_variables(node.operand)
    elif isinstance(node, BinaryOp):
        yield from iter_variables(node.left)
        yield from iter_variables(node.right)


# =============================================================================
# Tokenizer
# =============================================================================


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, BOOL, PATH, OP, END
    text: str
    pos: int


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<WS>\s+)
  | (?P<NUMBER>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<PATH>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
  | (?P<OP>&&|\|\||>=|<=|==|!=|[-+*/<>!()])
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE,
)

_BOOLEAN_WORDS = {"true": True, "false": False}


def tokenize(expression: str) -> list[Token]:
    """
    Split an expression into tokens.

    Raises:
        ExpressionSyntaxError: On any character outside the grammar
    """
    tokens = []
    for match in _TOKEN_PATTERN.finditer(expression):
        kind = match.lastgroup
        text = match.group()
        pos = match.start()
        if kind == "WS":
            continue
        if kind == "MISMATCH":
            raise ExpressionSyntaxError(f"Unexpected character {text!r} at position {pos}")
        if kind == "PATH" and text in _BOOLEAN_WORDS:
            kind = "BOOL"
        tokens.append(Token(kind, text, pos))
    tokens.append(Token("END", "", len(expression)))
    return tokens


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Single-use recursive-descent parser over a token list."""

    EQUALITY_OPS = ("==", "!=")
    RELATIONAL_OPS = (">", "<", ">=", "<=")
    ADDITIVE_OPS = ("+", "-")
    MULTIPLICATIVE_OPS = ("*", "/")
    UNARY_OPS = ("-", "+", "!")

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.current
        self.index += 1
        return token

    def _match_op(self, ops: tuple[str, ...]) -> bool:
        return self.current.kind == "OP" and self.current.text in ops

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ExpressionSyntaxError("Expression is nested too deeply")

    def parse(self) -> Node:
        if self.current.kind == "END":
            raise ExpressionSyntaxError("Expression is empty")
        node = self._or()
        if self.current.kind != "END":
            raise ExpressionSyntaxError(
                f"Unexpected token {self.current.text!r} at position {self.current.pos}"
            )
        return node

    def _binary_level(self, ops: tuple[str, ...], operand) -> Node:
        node = operand()
        while self._match_op(ops):
            op = self._advance().text
            node = BinaryOp(op, node, operand())
        return node

    def _or(self) -> Node:
        return self._binary_level(("||",), self._and)

    def _and(self) -> Node:
        return self._binary_level(("&&",), self._equality)

    def _equality(self) -> Node:
        return self._binary_level(self.EQUALITY_OPS, self._relational)

    def _relational(self) -> Node:
        return self._binary_level(self.RELATIONAL_OPS, self._additive)

    def _additive(self) -> Node:
        return self._binary_level(self.ADDITIVE_OPS, self._term)

    def _term(self) -> Node:
        return self._binary_level(self.MULTIPLICATIVE_OPS, self._unary)

    def _unary(self) -> Node:
        if self._match_op(self.UNARY_OPS):
            op = self._advance().text
            self._enter()
            operand = self._unary()
            self.depth -= 1
            return UnaryOp(op, operand)
        return self._primary()

    def _primary(self) -> Node:
        token = self.current
        if token.kind == "NUMBER":
            self._advance()
            return NumberLiteral(float(token.text))
        if token.kind == "BOOL":
            self._advance()
            return BooleanLiteral(_BOOLEAN_WORDS[token.text])
        if token.kind == "PATH":
            self._advance()
            return Variable(tuple(token.text.split(".")))
        if token.kind == "OP" and token.text == "(":
            self._advance()
            self._enter()
            node = self._or()
            self.depth -= 1
            if not self._match_op((")",)):
                raise ExpressionSyntaxError(
                    f"Expected ')' at position {self.current.pos}"
                )
            self._advance()
            return node
        if token.kind == "END":
            raise ExpressionSyntaxError("Unexpected end of expression")
        raise ExpressionSyntaxError(f"Unexpected token {token.text!r} at position {token.pos}")


@lru_cache(maxsize=256)
def parse_expression(expression: str) -> Node:
    """
    Parse a KPI expression into an AST.

    Results are cached; the AST is immutable so sharing is safe.

    Raises:
        ExpressionSyntaxError: If the expression is empty, too long or
            outside the grammar
    """
    if not isinstance(expression, str):
        raise ExpressionSyntaxError("Expression must be a string")
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionSyntaxError(
            f"Expression exceeds {MAX_EXPRESSION_LENGTH} characters"
        )
    return _Parser(tokenize(expression)).parse()
