"""Syntax-highlight tokenizer: classifies every character range of a template.

The pipeline runs in five stages over one scanner pass:

1. scan the text into positioned raw tokens, stopping at the first scan error
2. normalize the scanner's recovery quirks (``.``/``=`` lexed as ``ID``)
3. annotate each token with the state of its enclosing expression
4. classify each token into a :class:`HighlightType`
5. fill the gaps between tokens with ``text`` spans

The result always concatenates back to the input.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from hbsyntax.errors import ScanError
from hbsyntax.scanner import Scanner
from hbsyntax.tokens import (
    AnnotatedToken,
    ExpressionContext,
    HighlightToken,
    HighlightType,
    Location,
    RawToken,
    Terminal,
)

logger = logging.getLogger(__name__)

BLOCK_OPENERS = frozenset(
    {
        Terminal.OPEN_BLOCK,
        Terminal.OPEN_INVERSE,
        Terminal.OPEN_INVERSE_CHAIN,
        Terminal.OPEN_ENDBLOCK,
    }
)
MUSTACHE_OPENERS = frozenset({Terminal.OPEN, Terminal.OPEN_UNESCAPED})
PARTIAL_OPENERS = frozenset({Terminal.OPEN_PARTIAL, Terminal.OPEN_PARTIAL_BLOCK})
EXPRESSION_OPENERS = BLOCK_OPENERS | MUSTACHE_OPENERS | PARTIAL_OPENERS
EXPRESSION_CLOSERS = frozenset(
    {
        Terminal.CLOSE,
        Terminal.CLOSE_UNESCAPED,
        Terminal.CLOSE_RAW_BLOCK,
        Terminal.END_RAW_BLOCK,
    }
)

# Terminals that make a leading mustache ID a helper call
ARGUMENT_TYPES = frozenset(
    {
        Terminal.ID,
        Terminal.STRING,
        Terminal.NUMBER,
        Terminal.BOOLEAN,
        Terminal.DATA,
        Terminal.OPEN_SEXPR,
        Terminal.UNDEFINED,
        Terminal.NULL,
    }
)

_STATIC_TYPES: dict[Terminal, HighlightType] = {
    Terminal.CONTENT: HighlightType.TEXT,
    Terminal.COMMENT: HighlightType.COMMENT,
    Terminal.OPEN: HighlightType.BRACE,
    Terminal.CLOSE: HighlightType.BRACE,
    Terminal.OPEN_UNESCAPED: HighlightType.BRACE,
    Terminal.CLOSE_UNESCAPED: HighlightType.BRACE,
    Terminal.OPEN_RAW_BLOCK: HighlightType.BRACE,
    Terminal.CLOSE_RAW_BLOCK: HighlightType.BRACE,
    Terminal.END_RAW_BLOCK: HighlightType.BRACE,
    Terminal.OPEN_BLOCK: HighlightType.BRACE,
    Terminal.OPEN_INVERSE: HighlightType.BRACE,
    Terminal.OPEN_INVERSE_CHAIN: HighlightType.BRACE,
    Terminal.OPEN_ENDBLOCK: HighlightType.BRACE,
    Terminal.OPEN_PARTIAL: HighlightType.BRACE,
    Terminal.OPEN_PARTIAL_BLOCK: HighlightType.BRACE,
    Terminal.OPEN_SEXPR: HighlightType.SUBEXPR_PAREN,
    Terminal.CLOSE_SEXPR: HighlightType.SUBEXPR_PAREN,
    Terminal.OPEN_BLOCK_PARAMS: HighlightType.BLOCK_KEYWORD,
    Terminal.CLOSE_BLOCK_PARAMS: HighlightType.BLOCK_KEYWORD,
    Terminal.INVERSE: HighlightType.BLOCK_KEYWORD,
    Terminal.STRING: HighlightType.LITERAL,
    Terminal.NUMBER: HighlightType.LITERAL,
    Terminal.BOOLEAN: HighlightType.LITERAL,
    Terminal.UNDEFINED: HighlightType.LITERAL,
    Terminal.NULL: HighlightType.LITERAL,
    Terminal.DATA: HighlightType.DATA_VAR,
    Terminal.SEP: HighlightType.BRACE,
    Terminal.EQUALS: HighlightType.BRACE,
}


def tokenize(content: str) -> list[HighlightToken]:
    """Split *content* into contiguous, classified highlight tokens.

    Never raises: on a scan error the remainder of the input becomes ``text``.
    """
    if not content:
        return []

    raw = normalize(scan(content, Scanner()))
    classified = classify(annotate(raw))
    return [t for t in build_output(content, classified) if t.value]


# ----------------------------------------------------------------------
# Stage 1: scan
# ----------------------------------------------------------------------


def line_starts(content: str) -> list[int]:
    """Offsets at which each line of *content* begins (lines split on ``\\n``)."""
    starts = [0]
    for i, ch in enumerate(content):
        if ch == "\n":
            starts.append(i + 1)
    return starts


def to_offsets(starts: list[int], location: Location) -> tuple[int, int]:
    """Convert a scanner location to absolute ``(start, end)`` offsets."""
    return (
        starts[location.first_line - 1] + location.first_column,
        starts[location.last_line - 1] + location.last_column,
    )


def scan(content: str, scanner: Scanner) -> list[RawToken]:
    """Drive *scanner* over *content*, collecting tokens up to the first error."""
    scanner.set_input(content)
    starts = line_starts(content)
    tokens: list[RawToken] = []

    try:
        while True:
            terminal = scanner.lex()
            if terminal == Terminal.EOF:
                break
            start, end = to_offsets(starts, scanner.location)
            tokens.append(RawToken(terminal, content[start:end], start, end))
    except ScanError as exc:
        logger.debug(
            "scan stopped at %d:%d (%s); %d tokens kept",
            exc.line,
            exc.column,
            exc.message,
            len(tokens),
        )

    return tokens


# ----------------------------------------------------------------------
# Stage 2: normalize
# ----------------------------------------------------------------------


def normalize_terminal(terminal: Terminal, text: str) -> Terminal:
    """Repair the scanner's lookahead quirks for a single token."""
    if terminal == Terminal.ID:
        if text == ".":
            return Terminal.SEP
        if text == "=":
            return Terminal.EQUALS
    return terminal


def normalize(tokens: list[RawToken]) -> list[RawToken]:
    result = []
    for tok in tokens:
        fixed = normalize_terminal(tok.type, tok.text)
        result.append(tok if fixed == tok.type else replace(tok, type=fixed))
    return result


# ----------------------------------------------------------------------
# Stage 3: annotate
# ----------------------------------------------------------------------


def annotate(tokens: list[RawToken]) -> list[AnnotatedToken]:
    """Attach expression context to every token in one forward pass."""
    result: list[AnnotatedToken] = []

    expression: str | None = None
    in_block_params = False
    helper_seen = False
    # Whether the current path's root followed the helper name
    root_after_helper = False

    for i, tok in enumerate(tokens):
        prev = tokens[i - 1].type if i > 0 else None

        if tok.type in EXPRESSION_OPENERS:
            if tok.type in BLOCK_OPENERS:
                expression = "block-close" if tok.type == Terminal.OPEN_ENDBLOCK else "block-open"
            elif tok.type in PARTIAL_OPENERS:
                expression = "partial"
            else:
                expression = "mustache"
            helper_seen = False
            root_after_helper = False
        elif tok.type in EXPRESSION_CLOSERS:
            expression = None
            helper_seen = False
            root_after_helper = False

        if tok.type == Terminal.OPEN_BLOCK_PARAMS:
            in_block_params = True
        elif tok.type == Terminal.CLOSE_BLOCK_PARAMS:
            in_block_params = False

        is_root = tok.type == Terminal.ID and prev not in (Terminal.SEP, Terminal.DATA)
        if is_root:
            root_after_helper = helper_seen

        result.append(
            AnnotatedToken(tok, ExpressionContext(expression, in_block_params, root_after_helper))
        )

        if is_root and not in_block_params and prev != Terminal.EQUALS:
            helper_seen = True

    return result


# ----------------------------------------------------------------------
# Stage 4: classify
# ----------------------------------------------------------------------


def classify(tokens: list[AnnotatedToken]) -> list[tuple[AnnotatedToken, HighlightType]]:
    result = []
    for i, tok in enumerate(tokens):
        if tok.type == Terminal.ID:
            prev = tokens[i - 1].type if i > 0 else None
            nxt = tokens[i + 1].type if i + 1 < len(tokens) else None
            kind = _classify_id(tok, prev, nxt)
        else:
            kind = _STATIC_TYPES.get(tok.type, HighlightType.TEXT)
        result.append((tok, kind))
    return result


def _classify_id(tok: AnnotatedToken, prev: Terminal | None, nxt: Terminal | None) -> HighlightType:
    context = tok.context

    if tok.token.text == "this":
        return HighlightType.DATA_VAR

    if context.in_block_params:
        return HighlightType.BLOCK_PARAM

    if nxt == Terminal.EQUALS:
        return HighlightType.HASH_KEY
    if prev == Terminal.EQUALS:
        return HighlightType.HASH_VALUE

    if prev == Terminal.DATA:
        return HighlightType.DATA_VAR

    if prev == Terminal.SEP:
        if context.path_root_after_helper:
            return HighlightType.HELPER_ARG
        return HighlightType.VARIABLE_PATH

    if context.type in ("block-open", "block-close"):
        if prev in BLOCK_OPENERS:
            return HighlightType.BLOCK_KEYWORD
        return HighlightType.HELPER_ARG

    if context.type == "partial":
        if prev in PARTIAL_OPENERS:
            return HighlightType.HELPER
        return HighlightType.HELPER_ARG

    if prev == Terminal.OPEN_SEXPR:
        return HighlightType.HELPER

    if context.type == "mustache":
        if prev in MUSTACHE_OPENERS:
            if nxt == Terminal.SEP:
                return HighlightType.VARIABLE
            if nxt in ARGUMENT_TYPES:
                return HighlightType.HELPER
            return HighlightType.VARIABLE
        return HighlightType.HELPER_ARG

    return HighlightType.VARIABLE


# ----------------------------------------------------------------------
# Stage 5: build output
# ----------------------------------------------------------------------


def build_output(
    content: str, classified: list[tuple[AnnotatedToken, HighlightType]]
) -> list[HighlightToken]:
    """Emit classified spans, filling every gap with ``text``."""
    result: list[HighlightToken] = []
    pos = 0
    i = 0

    while i < len(classified):
        tok, kind = classified[i]
        start, end = tok.token.start, tok.token.end

        if start > pos:
            result.append(HighlightToken(HighlightType.TEXT, content[pos:start], pos, start))

        # @name is shown as one data variable
        if tok.type == Terminal.DATA and i + 1 < len(classified):
            following = classified[i + 1][0].token
            if following.type == Terminal.ID and following.start == end:
                end = following.end
                kind = HighlightType.DATA_VAR
                i += 1

        result.append(HighlightToken(kind, content[start:end], start, end))
        pos = end
        i += 1

    if pos < len(content):
        result.append(HighlightToken(HighlightType.TEXT, content[pos:], pos, len(content)))

    return result
