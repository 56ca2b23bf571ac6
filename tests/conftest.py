"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from hbsyntax.scanner import Scanner
from hbsyntax.tokenizer import tokenize
from hbsyntax.tokens import HighlightToken, HighlightType, Terminal


@pytest.fixture
def lex():
    """Return a helper that drives a scanner and returns (terminal, text) pairs (excluding EOF)."""

    def _lex(source: str) -> list[tuple[Terminal, str]]:
        scanner = Scanner(source)
        result = []
        while True:
            terminal = scanner.lex()
            if terminal == Terminal.EOF:
                return result
            result.append((terminal, scanner.text))

    return _lex


@pytest.fixture
def spans():
    """Return a helper that tokenizes source into (type, value) pairs."""

    def _spans(source: str) -> list[tuple[str, str]]:
        return [(str(t.type), t.value) for t in tokenize(source)]

    return _spans


def assert_types(tokens: list[tuple[Terminal, str]], expected: list[Terminal]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t[0] for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[tuple[Terminal, str]], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t[1] for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_covers(source: str, tokens: list[HighlightToken]) -> None:
    """Assert that tokens are contiguous, non-empty and rebuild the source."""
    assert "".join(t.value for t in tokens) == source
    pos = 0
    for t in tokens:
        assert t.start == pos, f"gap or overlap at {pos}: {t}"
        assert t.end > t.start
        assert source[t.start : t.end] == t.value
        pos = t.end
    assert pos == len(source)


def find_tokens(tokens: list[HighlightToken], tt: HighlightType) -> list[HighlightToken]:
    """Return all tokens of the given type."""
    return [t for t in tokens if t.type == tt]
