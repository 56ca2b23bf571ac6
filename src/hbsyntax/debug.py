"""--debug token and expression dumps to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from hbsyntax.model import Expression
from hbsyntax.tokens import RawToken


def dump_tokens(tokens: list[RawToken], *, file: TextIO = sys.stderr) -> None:
    """Print one line per raw scanner token to *file*."""
    file.write("Tokens\n")
    for tok in tokens:
        file.write(f"{_indent(1)}{tok.type.name} {tok.start}-{tok.end} {tok.text!r}\n")


def dump_expressions(expressions: list[Expression], *, file: TextIO = sys.stderr) -> None:
    """Print a human-readable expression listing to *file*."""
    file.write("Expressions\n")
    for expr in expressions:
        _dump_expression(expr, 1, file)


def _indent(depth: int) -> str:
    return "  " * depth


def _dump_expression(expr: Expression, depth: int, f: TextIO) -> None:
    flags = ""
    if expr.chained:
        flags = " chained"
    elif expr.inverted:
        flags = " inverted"
    f.write(f"{_indent(depth)}{expr.kind.capitalize()} {expr.start}-{expr.end}{flags}\n")
    for tok in expr.tokens:
        f.write(f"{_indent(depth + 1)}{tok.type.name}({tok.text!r})\n")
