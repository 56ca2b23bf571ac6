"""Minimal LSP server for Handlebars templates: semantic tokens and scan diagnostics."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    SemanticTokens,
    SemanticTokensLegend,
    SemanticTokensParams,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from hbsyntax import __version__
from hbsyntax.errors import ScanError
from hbsyntax.scanner import Scanner
from hbsyntax.tokenizer import tokenize
from hbsyntax.tokens import HighlightType, Terminal

# Plain text is never reported
TOKEN_TYPES: list[str] = [str(t) for t in HighlightType if t != HighlightType.TEXT]
LEGEND = SemanticTokensLegend(token_types=TOKEN_TYPES, token_modifiers=[])

_TYPE_INDEX = {t: i for i, t in enumerate(TOKEN_TYPES)}

server = LanguageServer("hbsyntax-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)


def encode_semantic_tokens(source: str) -> list[int]:
    """Encode highlight spans as LSP relative semantic-token data.

    Spans crossing line breaks are split into one entry per line. Positions
    count code points.
    """
    data: list[int] = []
    line = col = 0
    prev_line = prev_col = 0

    for tok in tokenize(source):
        index = _TYPE_INDEX.get(str(tok.type))
        for k, piece in enumerate(tok.value.split("\n")):
            if k > 0:
                line += 1
                col = 0
            length = len(piece.rstrip("\r"))
            if index is not None and length:
                delta_start = col - prev_col if line == prev_line else col
                data.extend((line - prev_line, delta_start, length, index, 0))
                prev_line, prev_col = line, col
            col += len(piece)

    return data


def scan_error(source: str) -> ScanError | None:
    """Scan *source* to the end and return the first error, if any."""
    scanner = Scanner(source)
    try:
        while scanner.lex() != Terminal.EOF:
            pass
    except ScanError as exc:
        return exc
    return None


def _validate(ls: LanguageServer, uri: str) -> None:
    """Scan the document and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    diagnostics: list[Diagnostic] = []

    exc = scan_error(doc.source)
    if exc is not None:
        line = exc.line - 1
        col = exc.column - 1
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start=Position(line=line, character=col),
                    end=Position(line=line, character=col + 1),
                ),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="hbsyntax",
            )
        )

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL, LEGEND)
def semantic_tokens_full(ls: LanguageServer, params: SemanticTokensParams) -> SemanticTokens:
    doc = ls.workspace.get_text_document(params.text_document.uri)
    return SemanticTokens(data=encode_semantic_tokens(doc.source))


def main() -> None:
    server.start_io()
