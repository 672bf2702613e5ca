"""Inline calculator for the tools source.

Recursive descent over ``+ - * / ^`` and parentheses. ``^`` binds tighter
than ``*`` and is right-associative; a single leading sign is allowed on
each operand.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger


OPERATOR_PATTERN = re.compile(r'[+\-*/^()]')
DIGIT_PATTERN = re.compile(r'[0-9]')
WHITESPACE_PATTERN = re.compile(r'\s')

# Nested parentheses and chained exponents allowed before giving up
MAX_DEPTH = 64


class ExpressionError(ValueError):
    """Raised internally when an expression cannot be parsed."""


@dataclass(frozen=True)
class CalculatorResult:
    expression: str
    result: Optional[float]

    @property
    def display(self) -> str:
        return format_number(self.result) if self.result is not None else ''


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.depth = 0

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ''

    def _descend(self) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise ExpressionError(f"Nesting deeper than {MAX_DEPTH}")

    def parse(self) -> float:
        value = self._expression()
        if self.pos != len(self.text):
            raise ExpressionError(f"Unexpected trailing input at {self.pos}")
        return value

    def _expression(self) -> float:
        left = self._term()
        while self._peek() in ('+', '-'):
            op = self.text[self.pos]
            self.pos += 1
            right = self._term()
            left = left + right if op == '+' else left - right
        return left

    def _term(self) -> float:
        left = self._power()
        while self._peek() in ('*', '/'):
            op = self.text[self.pos]
            self.pos += 1
            right = self._power()
            if op == '/' and right == 0:
                raise ExpressionError("Division by zero")
            left = left * right if op == '*' else left / right
        return left

    def _power(self) -> float:
        base = self._unary()
        if self._peek() == '^':
            self.pos += 1
            self._descend()
            exponent = self._power()
            self.depth -= 1
            try:
                base = math.pow(base, exponent)
            except (OverflowError, ValueError) as e:
                raise ExpressionError(str(e))
        return base

    def _unary(self) -> float:
        if self._peek() == '-':
            self.pos += 1
            return -self._atom()
        if self._peek() == '+':
            self.pos += 1
        return self._atom()

    def _atom(self) -> float:
        if self._peek() == '(':
            self.pos += 1
            self._descend()
            value = self._expression()
            self.depth -= 1
            if self._peek() != ')':
                raise ExpressionError("Missing closing parenthesis")
            self.pos += 1
            return value

        start = self.pos
        while self._peek() and self._peek() in '0123456789.':
            self.pos += 1
        if self.pos == start:
            raise ExpressionError(f"Unexpected character at {self.pos}")

        try:
            return float(self.text[start:self.pos])
        except ValueError:
            raise ExpressionError(f"Invalid number: {self.text[start:self.pos]}")


def evaluate(expression: str) -> Optional[float]:
    """
    Evaluate a math expression.

    Returns:
        The result, or None when the text is not a finite math expression
    """
    text = WHITESPACE_PATTERN.sub('', expression or '')
    if not text:
        return None

    # Plain words and bare numbers are not calculations
    if not OPERATOR_PATTERN.search(text) or not DIGIT_PATTERN.search(text):
        return None

    try:
        result = _Parser(text).parse()
    except ExpressionError as e:
        logger.debug(f"Not a calculation '{expression}': {e}")
        return None

    if not math.isfinite(result):
        return None
    return result


def calculate(query: str) -> CalculatorResult:
    return CalculatorResult(expression=query, result=evaluate(query))


def format_number(value: float) -> str:
    """Render a result without a trailing ``.0`` for whole numbers."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
