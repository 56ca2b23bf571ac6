"""Handlebars template syntax analysis: highlighting, variable extraction, rendering."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from hbsyntax.model import BlockContext, ExtractionResult
    from hbsyntax.tokens import HighlightToken

__version__ = "0.1.0"


def tokenize(content: str) -> list[HighlightToken]:
    """Split a template into contiguous, classified highlight spans."""
    from hbsyntax.tokenizer import tokenize as _tokenize

    return _tokenize(content)


def extract(content: str) -> ExtractionResult:
    """Extract the variables a template references."""
    from hbsyntax.parser import extract as _extract

    return _extract(content)


def block_context_at(content: str, offset: int) -> BlockContext | None:
    """Return the innermost open each/with block enclosing *offset*."""
    from hbsyntax.parser import block_context_at as _block_context_at

    return _block_context_at(content, offset)


def interpolate(
    content: str,
    variables: Mapping[str, Any] | None = None,
    helpers: Mapping[str, Callable[..., Any]] | None = None,
) -> str:
    """Render a template; with no variables the template is returned untouched."""
    from hbsyntax.render import interpolate as _interpolate

    return _interpolate(content, variables, helpers)
