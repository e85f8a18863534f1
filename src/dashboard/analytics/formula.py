"""
Calculated columns from user formulas.

Formulas are arithmetic expressions over column names, e.g.
``(Spend / Sales) * 100``. They are parsed into a small expression tree and
evaluated against the numeric values of each row; user text is never handed
to eval() or exec().

Supported syntax:
    numbers        12, 1.5, .5, 1e3
    columns        Spend, Total_Sales, [Column With Spaces], [%Spend]
    operators      + - * / % ^ (or **), unary + and -, parentheses
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, NamedTuple

import numpy as np
import pandas as pd

from analytics.parser import coerce_number, numeric_values

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>(?:[^\W\d]|\$)[\w$]*)
  | (?P<bracket>\[[^\]]*\])
  | (?P<op>\*\*|[-+*/%^()])
""", re.VERBOSE)

# '%' keeps the sign of the dividend
_BINARY_OPS = {
    '+': np.add,
    '-': np.subtract,
    '*': np.multiply,
    '/': np.divide,
    '%': np.fmod,
    '^': np.power,
}


class FormulaError(Exception):
    """Base class for formula failures."""


class FormulaSyntaxError(FormulaError):
    """The formula text is not a valid expression."""


class FormulaEvaluationError(FormulaError):
    """The formula referenced an unknown column or produced a non-finite result."""


class Token(NamedTuple):
    kind: str
    value: str
    position: int


class Number(NamedTuple):
    value: float


class Variable(NamedTuple):
    name: str


class UnaryOp(NamedTuple):
    op: str
    operand: Any


class BinaryOp(NamedTuple):
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class CalcColumn:
    """A column computed per row from a formula."""

    name: str
    formula: str

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Calculated column name must not be empty")


def tokenize(text: str) -> List[Token]:
    """
    Split formula text into tokens.

    Args:
        text: Formula text

    Returns:
        Tokens, terminated by an 'end' token

    Raises:
        FormulaSyntaxError: On characters outside the grammar
    """
    tokens = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue

        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise FormulaSyntaxError(f"Unexpected character {text[pos]!r} at position {pos}")

        kind = match.lastgroup
        value = match.group(kind)
        if kind == 'bracket':
            kind = 'name'
            value = value[1:-1].strip()
            if not value:
                raise FormulaSyntaxError(f"Empty column reference at position {pos}")

        tokens.append(Token(kind, value, pos))
        pos = match.end()

    tokens.append(Token('end', '', pos))
    return tokens


class _Parser:
    """Recursive descent parser over a token list."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def at_op(self, *ops: str) -> bool:
        token = self.peek()
        return token.kind == 'op' and token.value in ops

    def parse(self):
        if self.peek().kind == 'end':
            raise FormulaSyntaxError("Formula is empty")

        node = self.expression()
        token = self.peek()
        if token.kind != 'end':
            raise FormulaSyntaxError(f"Unexpected {token.value!r} at position {token.position}")
        return node

    def expression(self):
        node = self.term()
        while self.at_op('+', '-'):
            op = self.advance().value
            node = BinaryOp(op, node, self.term())
        return node

    def term(self):
        node = self.unary()
        while self.at_op('*', '/', '%'):
            op = self.advance().value
            node = BinaryOp(op, node, self.unary())
        return node

    def unary(self):
        if self.at_op('+', '-'):
            op = self.advance().value
            return UnaryOp(op, self.unary())
        return self.power()

    def power(self):
        base = self.primary()
        if self.at_op('^', '**'):
            self.advance()
            # right associative; the exponent may carry its own sign (2^-1)
            return BinaryOp('^', base, self.unary())
        return base

    def primary(self):
        token = self.advance()
        if token.kind == 'number':
            return Number(float(token.value))
        if token.kind == 'name':
            return Variable(token.value)
        if token.kind == 'op' and token.value == '(':
            node = self.expression()
            closing = self.advance()
            if closing.kind != 'op' or closing.value != ')':
                raise FormulaSyntaxError(f"Missing ')' for '(' at position {token.position}")
            return node
        if token.kind == 'end':
            raise FormulaSyntaxError("Unexpected end of formula")
        raise FormulaSyntaxError(f"Unexpected {token.value!r} at position {token.position}")


def _evaluate(node, lookup: Callable[[str], Any]):
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Variable):
        return lookup(node.name)
    if isinstance(node, UnaryOp):
        operand = _evaluate(node.operand, lookup)
        return np.negative(operand) if node.op == '-' else operand
    return _BINARY_OPS[node.op](_evaluate(node.left, lookup), _evaluate(node.right, lookup))


def _collect_variables(node, names: List[str]) -> None:
    if isinstance(node, Variable):
        if node.name not in names:
            names.append(node.name)
    elif isinstance(node, UnaryOp):
        _collect_variables(node.operand, names)
    elif isinstance(node, BinaryOp):
        _collect_variables(node.left, names)
        _collect_variables(node.right, names)


class Formula:
    """A compiled arithmetic formula."""

    def __init__(self, text: str):
        """
        Compile formula text.

        Args:
            text: Formula text, e.g. '(Spend / Sales) * 100'

        Raises:
            FormulaSyntaxError: If the text is not a valid expression
        """
        self.text = text
        try:
            self._tree = _Parser(tokenize(text)).parse()
        except RecursionError:
            raise FormulaSyntaxError("Formula is nested too deeply") from None

    @property
    def variables(self) -> List[str]:
        """Column names referenced by the formula, in order of appearance."""
        names = []
        _collect_variables(self._tree, names)
        return names

    def evaluate(self, scope: Mapping[str, Any]) -> float:
        """
        Evaluate against a single row.

        Args:
            scope: Mapping of column name to cell value; values are coerced to numbers

        Returns:
            Finite result

        Raises:
            FormulaEvaluationError: On unknown columns or non-finite results
        """
        def lookup(name: str) -> float:
            if name not in scope:
                raise FormulaEvaluationError(f"Unknown column '{name}'")
            return np.float64(coerce_number(scope[name]))

        with np.errstate(all='ignore'):
            result = float(_evaluate(self._tree, lookup))

        if not math.isfinite(result):
            raise FormulaEvaluationError(f"'{self.text}' did not produce a finite number")
        return result

    def evaluate_frame(self, rows: pd.DataFrame) -> pd.Series:
        """
        Evaluate against every row of a DataFrame.

        Args:
            rows: Rows providing the scope; every column is available

        Returns:
            Object Series of floats, None where the result is not finite

        Raises:
            FormulaEvaluationError: If the formula references a column not in rows
        """
        def lookup(name: str) -> pd.Series:
            if name not in rows.columns:
                raise FormulaEvaluationError(f"Unknown column '{name}'")
            return numeric_values(rows, name)

        with np.errstate(all='ignore'):
            result = _evaluate(self._tree, lookup)

        if isinstance(result, pd.Series):
            numbers = result.astype(float).tolist()
        else:
            numbers = [float(result)] * len(rows)

        values = [number if math.isfinite(number) else None for number in numbers]
        return pd.Series(values, index=rows.index, dtype=object)


def _null_column(rows: pd.DataFrame) -> pd.Series:
    return pd.Series([None] * len(rows), index=rows.index, dtype=object)


def apply_calculated_columns(rows: pd.DataFrame, calc_columns: Iterable[CalcColumn]) -> pd.DataFrame:
    """
    Add calculated columns to every row.

    Columns are evaluated in order; each formula sees the base columns plus
    the calculated columns written before it. A formula that fails to parse
    or references an unknown column yields None for every row; a non-finite
    result yields None for that row only. Nothing is raised.

    Args:
        rows: Base rows (not modified)
        calc_columns: Calculated column definitions, in order

    Returns:
        New DataFrame with the calculated columns set
    """
    calc_columns = list(calc_columns)
    if not calc_columns:
        return rows

    result = rows.copy()
    for calc in calc_columns:
        try:
            values = Formula(calc.formula).evaluate_frame(result)
        except FormulaError as exc:
            logger.warning(f"Calculated column '{calc.name}' left blank: {exc}")
            values = _null_column(result)
        else:
            failed = int(values.isna().sum())
            if failed:
                logger.debug(f"Calculated column '{calc.name}': {failed} rows without a finite result")

        result[calc.name] = values

    logger.info(f"Applied {len(calc_columns)} calculated columns to {len(result)} rows")
    return result


def check_formula(formula: str, columns: Iterable[str]) -> List[str]:
    """
    Describe problems that would make a formula evaluate to blanks.

    Args:
        formula: Formula text
        columns: Column names available to the formula

    Returns:
        Human-readable problems; empty when the formula looks usable
    """
    try:
        compiled = Formula(formula)
    except FormulaSyntaxError as exc:
        return [f"Formula error: {exc}"]

    known = set(columns)
    return [f"Unknown column '{name}'" for name in compiled.variables if name not in known]
