"""Expression parser: segments a template into expressions and extracts variables.

No grammar is involved: expressions are cut out of the scanner's token stream
and each one is interpreted from its token sequence alone. Input that the
scanner rejects is skipped up to the next ``{{`` and scanning resumes there,
so broken templates still yield every expression around the damage.
"""

from __future__ import annotations

import logging
from enum import Enum, auto

from hbsyntax.builtins import BLOCK_HELPER_NAMES, CONTEXT_HELPERS, is_built_in
from hbsyntax.errors import ScanError
from hbsyntax.model import (
    BlockContext,
    BlockFrame,
    Expression,
    ExpressionToken,
    ExtractedVariable,
    ExtractionResult,
)
from hbsyntax.scanner import Scanner
from hbsyntax.tokenizer import line_starts, normalize_terminal, to_offsets
from hbsyntax.tokens import Terminal

logger = logging.getLogger(__name__)

_OPENER_KINDS: dict[Terminal, str] = {
    Terminal.OPEN: "mustache",
    Terminal.OPEN_UNESCAPED: "mustache",
    Terminal.OPEN_PARTIAL: "partial",
    Terminal.OPEN_PARTIAL_BLOCK: "partial",
    Terminal.OPEN_BLOCK: "block",
    Terminal.OPEN_INVERSE: "block",
    Terminal.OPEN_INVERSE_CHAIN: "block",
    Terminal.OPEN_ENDBLOCK: "endblock",
}

_CLOSERS = frozenset({Terminal.CLOSE, Terminal.CLOSE_UNESCAPED})

_RAW_DELIMITERS = frozenset(
    {Terminal.OPEN_RAW_BLOCK, Terminal.CLOSE_RAW_BLOCK, Terminal.END_RAW_BLOCK}
)

# Tokens that, following a path, make that path a helper name
_ARGUMENT_TOKENS = frozenset(
    {
        Terminal.ID,
        Terminal.STRING,
        Terminal.NUMBER,
        Terminal.BOOLEAN,
        Terminal.DATA,
        Terminal.OPEN_SEXPR,
    }
)


# ----------------------------------------------------------------------
# Segmentation
# ----------------------------------------------------------------------


class _Mode(Enum):
    SCANNING = auto()
    RECOVERING = auto()


def parse_expressions(content: str) -> list[Expression]:
    """Cut *content* into expressions, recovering from scan errors."""
    scanner = Scanner()
    expressions: list[Expression] = []
    mode = _Mode.SCANNING
    start = 0
    consumed = 0

    while True:
        if mode == _Mode.SCANNING:
            consumed = _scan_segment(scanner, content, start, expressions)
            if consumed is None:
                break
            mode = _Mode.RECOVERING
        else:
            resume = content.find("{{", max(consumed, start + 1))
            if resume == -1:
                break
            logger.debug("scan error after offset %d; resuming at %d", consumed, resume)
            start = resume
            mode = _Mode.SCANNING

    return expressions


def _scan_segment(
    scanner: Scanner, content: str, start: int, expressions: list[Expression]
) -> int | None:
    """Scan ``content[start:]``, appending expressions as they close.

    Returns None when the segment scanned to the end, otherwise the absolute
    offset just past the last token matched before the scan error.
    """
    segment = content[start:]
    scanner.set_input(segment)
    starts = line_starts(segment)

    consumed = start
    kind: str | None = None
    tokens: list[ExpressionToken] = []
    expr_start = 0
    opener = Terminal.OPEN

    try:
        while True:
            terminal = scanner.lex()
            if terminal == Terminal.EOF:
                return None

            tok_start, tok_end = to_offsets(starts, scanner.location)
            consumed = start + tok_end

            if terminal in _RAW_DELIMITERS:
                continue

            if terminal in _OPENER_KINDS:
                kind = _OPENER_KINDS[terminal]
                tokens = []
                expr_start = start + tok_start
                opener = terminal
                continue

            if terminal in _CLOSERS:
                if kind is not None:
                    expressions.append(
                        Expression(
                            kind=kind,
                            tokens=tuple(tokens),
                            helper_name=tokens[0].text if tokens else None,
                            start=expr_start,
                            end=consumed,
                            chained=opener == Terminal.OPEN_INVERSE_CHAIN,
                            inverted=opener == Terminal.OPEN_INVERSE,
                        )
                    )
                kind = None
                tokens = []
                continue

            if kind is not None:
                text = scanner.text
                tokens.append(ExpressionToken(normalize_terminal(terminal, text), text))
    except ScanError:
        return consumed


# ----------------------------------------------------------------------
# Variable extraction
# ----------------------------------------------------------------------


def collect_path(tokens: tuple[ExpressionToken, ...], start: int) -> list[str]:
    """Collect the dotted path beginning at ``tokens[start]``.

    Stops at the first token that cannot continue the path, and before an
    identifier that is really a hash key.
    """
    path: list[str] = []
    expecting_id = True
    for i in range(start, len(tokens)):
        tok = tokens[i]
        if tok.type == Terminal.ID:
            if not expecting_id:
                break
            if i + 1 < len(tokens) and tokens[i + 1].type == Terminal.EQUALS:
                break
            path.append(tok.text)
            expecting_id = False
        elif tok.type == Terminal.SEP:
            expecting_id = True
        else:
            break
    return path


def _token_type(tokens: tuple[ExpressionToken, ...], idx: int) -> Terminal | None:
    if 0 <= idx < len(tokens):
        return tokens[idx].type
    return None


def _first_id(tokens: tuple[ExpressionToken, ...], start: int) -> int | None:
    for idx in range(start, len(tokens)):
        if tokens[idx].type == Terminal.ID:
            return idx
    return None


class _Extractor:
    """Walks expressions in order, tracking the open block stack."""

    def __init__(self) -> None:
        self._variables: dict[str, ExtractedVariable] = {}
        self._stack: list[BlockFrame] = []
        self._prefix: str | None = None
        self._root: str | None = None

    def run(self, expressions: list[Expression]) -> list[ExtractedVariable]:
        for expr in expressions:
            self._update_context()
            if expr.kind == "mustache":
                self._mustache(expr)
            elif expr.kind == "block":
                frame = self._block(expr)
                if not expr.chained:
                    self._stack.append(frame)
            elif expr.kind == "partial":
                self._partial(expr)
            elif expr.kind == "endblock":
                if self._stack:
                    self._stack.pop()
        return list(self._variables.values())

    def _update_context(self) -> None:
        """Fold the block stack into the current context prefix and root."""
        parts: list[str] = []
        root: str | None = None
        for frame in self._stack:
            if frame.helper in CONTEXT_HELPERS and frame.context:
                if root is None:
                    root = frame.context
                parts.append(f"{frame.context}[]" if frame.helper == "each" else frame.context)
        if parts:
            self._prefix = ".".join(parts) + "."
            self._root = root
        else:
            self._prefix = None
            self._root = None

    def _add(self, path: list[str], block_type: str | None = None) -> None:
        # Parent segments (..) are kept verbatim; no scope resolution is attempted
        joined = ".".join(path)
        if self._prefix is not None:
            full_path = self._prefix + joined
            context = self._root
        else:
            full_path = joined
            context = None

        if full_path in self._variables:
            return

        if block_type:
            kind = "block"
        elif "." in full_path or context:
            kind = "nested"
        else:
            kind = "simple"
        self._variables[full_path] = ExtractedVariable(path[0], full_path, kind, block_type, context)

    def _mustache(self, expr: Expression) -> None:
        tokens = expr.tokens
        if not tokens or tokens[0].type == Terminal.DATA:
            return

        if is_built_in(tokens[0].text):
            self._arguments(tokens, 1)
            return

        path = collect_path(tokens, 0)
        if not path:
            return
        after = len(path) * 2 - 1
        if _token_type(tokens, after) in _ARGUMENT_TOKENS:
            # The path names a helper; only its arguments are variables
            self._arguments(tokens, after)
        else:
            self._add(path)

    def _block(self, expr: Expression) -> BlockFrame:
        tokens = expr.tokens
        helper = expr.helper_name or ""

        if helper not in BLOCK_HELPER_NAMES:
            return BlockFrame(helper, "")

        if _token_type(tokens, 1) == Terminal.OPEN_SEXPR:
            self._arguments(tokens, 1)
            return BlockFrame(helper, "")

        context = ""
        idx = _first_id(tokens, 1)
        if idx is not None and _token_type(tokens, idx - 1) == Terminal.DATA:
            # @root.items names no context key
            return BlockFrame(helper, "")
        if idx is not None:
            path = collect_path(tokens, idx)
            if path and not is_built_in(path[0]):
                self._add(path, block_type=helper)
            if path and helper in CONTEXT_HELPERS:
                context = path[0]
        return BlockFrame(helper, context)

    def _partial(self, expr: Expression) -> None:
        tokens = expr.tokens
        # Skip the partial name, which may be a dotted path
        idx = 1
        while idx < len(tokens) and tokens[idx].type in (Terminal.SEP, Terminal.ID):
            if tokens[idx].type == Terminal.ID and tokens[idx - 1].type != Terminal.SEP:
                break
            idx += 1
        self._arguments(tokens, idx)

    def _arguments(self, tokens: tuple[ExpressionToken, ...], start: int) -> None:
        i = start
        while i < len(tokens):
            tok = tokens[i]
            prev = _token_type(tokens, i - 1)

            if tok.type in (Terminal.OPEN_SEXPR, Terminal.CLOSE_SEXPR, Terminal.DATA, Terminal.EQUALS):
                i += 1
                continue
            if prev == Terminal.DATA:
                i += 1
                continue
            if tok.type == Terminal.ID and _token_type(tokens, i + 1) == Terminal.EQUALS:
                i += 1
                continue

            if tok.type == Terminal.ID and not is_built_in(tok.text) and prev != Terminal.OPEN_SEXPR:
                path = collect_path(tokens, i)
                if path:
                    self._add(path)
                    i += len(path) * 2 - 2
            i += 1


def extract(content: str) -> ExtractionResult:
    """Extract the variables a template references.

    Never raises; unparseable regions are skipped.
    """
    variables = _Extractor().run(parse_expressions(content))

    roots: dict[str, None] = {}
    for var in variables:
        if var.context is None:
            roots.setdefault(var.name)

    return ExtractionResult(tuple(variables), tuple(roots))


# ----------------------------------------------------------------------
# Block context
# ----------------------------------------------------------------------


def _block_context(expr: Expression) -> BlockContext:
    tokens = expr.tokens
    variable = ""
    if _token_type(tokens, 1) != Terminal.OPEN_SEXPR:
        idx = _first_id(tokens, 1)
        if idx is not None:
            variable = ".".join(collect_path(tokens, idx))

    params: list[str] = []
    in_params = False
    for tok in tokens:
        if tok.type == Terminal.OPEN_BLOCK_PARAMS:
            in_params = True
        elif tok.type == Terminal.CLOSE_BLOCK_PARAMS:
            break
        elif in_params and tok.type == Terminal.ID:
            params.append(tok.text)

    return BlockContext(expr.helper_name or "", variable, tuple(params))


def block_context_at(content: str, offset: int) -> BlockContext | None:
    """Return the innermost open ``each``/``with`` block enclosing *offset*."""
    offset = max(0, min(offset, len(content)))
    stack: list[BlockContext] = []

    for expr in parse_expressions(content[:offset]):
        if expr.helper_name not in CONTEXT_HELPERS:
            continue
        if expr.kind == "block" and not (expr.chained or expr.inverted):
            stack.append(_block_context(expr))
        elif expr.kind == "endblock":
            for i in range(len(stack) - 1, -1, -1):
                if stack[i].type == expr.helper_name:
                    del stack[i]
                    break

    return stack[-1] if stack else None
