"""Handlebars scanner: a restartable, stateful lexer over template text.

The scanner is driven one terminal at a time: ``set_input()`` resets it, each
``lex()`` call returns the next :class:`Terminal`, and the current match is
described by ``text`` (resolved value), ``match`` (source slice) and
``location``. Rules are tried in order and the first one that matches wins,
so a few inputs lex in surprising ways (a ``.`` right before ``}}`` is an
``ID``, not a ``SEP``); downstream stages repair those.

A scanner is not reentrant. Give every concurrent caller its own instance.
"""

from __future__ import annotations

import re
from enum import Enum, auto

from hbsyntax.errors import ScanError
from hbsyntax.tokens import Location, Terminal, ends_identifier, is_id_char


class Condition(Enum):
    INITIAL = auto()  # template content
    MUSTACHE = auto()  # inside {{ ... }}
    ESCAPED = auto()  # content following \{{
    COMMENT = auto()  # inside {{!-- ... --}}
    RAW = auto()  # body of {{{{raw}}}} ... {{{{/raw}}}}


_NUMBER = re.compile(r"-?[0-9]+(?:\.[0-9]+)?(?=[~}\s)])")
_BLOCK_PARAMS = re.compile(r"as\s+\|")
_STANDALONE_INVERSE = re.compile(r"\^\s*~?\}\}|\s*else\s*~?\}\}")
_INVERSE_CHAIN = re.compile(r"\s*else")
_BRACKET_ESCAPE = re.compile(r"\\([\\\]])")

_LITERALS = (
    ("true", Terminal.BOOLEAN),
    ("false", Terminal.BOOLEAN),
    ("undefined", Terminal.UNDEFINED),
    ("null", Terminal.NULL),
)

_ESCAPED_STOPS = ("{{", "\\{{", "\\\\{{")


def _ends_literal(ch: str) -> bool:
    return ch.isspace() or ch in ("~", "}", ")")


class Scanner:
    """Tokenize Handlebars template text one terminal at a time."""

    def __init__(self, source: str = "") -> None:
        self.set_input(source)

    def set_input(self, source: str) -> None:
        """Reset all state and start scanning *source* from the beginning."""
        self._source = source
        self._pos = 0
        self._line = 1
        self._column = 0
        self._conditions: list[Condition] = [Condition.INITIAL]
        self.text = ""
        self.match = ""
        self.location = Location(1, 0, 1, 0)

    @property
    def condition(self) -> Condition:
        return self._conditions[-1]

    def lex(self) -> Terminal:
        """Return the next terminal, or Terminal.EOF once the input is exhausted."""
        while True:
            if self._pos >= len(self._source):
                self._take(0)
                return Terminal.EOF

            state = self.condition
            if state == Condition.INITIAL:
                terminal = self._lex_content()
            elif state == Condition.MUSTACHE:
                terminal = self._lex_mustache()
            elif state == Condition.ESCAPED:
                terminal = self._lex_escaped()
            elif state == Condition.COMMENT:
                terminal = self._lex_long_comment()
            else:
                terminal = self._lex_raw()

            # Rules without a terminal (whitespace, the {{!-- hand-off) lex again
            if terminal is not None:
                return terminal

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _starts_with(self, text: str, offset: int = 0) -> bool:
        return self._source.startswith(text, self._pos + offset)

    def _take(self, length: int, text: str | None = None) -> None:
        """Consume *length* characters as the current match."""
        matched = self._source[self._pos : self._pos + length]
        first_line, first_column = self._line, self._column

        newlines = matched.count("\n")
        if newlines:
            self._line += newlines
            self._column = len(matched) - matched.rfind("\n") - 1
        else:
            self._column += len(matched)
        self._pos += length

        self.match = matched
        self.text = matched if text is None else text
        self.location = Location(first_line, first_column, self._line, self._column)

    def _emit(self, terminal: Terminal, length: int, text: str | None = None) -> Terminal:
        self._take(length, text)
        return terminal

    def _error(self, message: str) -> ScanError:
        here = Location(self._line, self._column, self._line, self._column)
        return ScanError(message, here, self._source)

    # ------------------------------------------------------------------
    # Condition stack
    # ------------------------------------------------------------------

    def _begin(self, condition: Condition) -> None:
        self._conditions.append(condition)

    def _pop(self) -> None:
        if len(self._conditions) > 1:
            self._conditions.pop()

    # ------------------------------------------------------------------
    # INITIAL: content up to the next {{
    # ------------------------------------------------------------------

    def _lex_content(self) -> Terminal | None:
        source = self._source
        opener = source.find("{{", self._pos)
        nul = source.find("\0", self._pos)

        if opener != -1 and (nul == -1 or nul > opener):
            text = source[self._pos : opener]
            if text.endswith("\\\\"):
                # \\{{ is a literal backslash followed by a real expression
                value = text[:-1]
                self._begin(Condition.MUSTACHE)
            elif text.endswith("\\"):
                value = text[:-1]
                self._begin(Condition.ESCAPED)
            else:
                value = text
                self._begin(Condition.MUSTACHE)
            self._take(len(text), value)
            return Terminal.CONTENT if value else None

        end = nul if nul != -1 else len(source)
        if end > self._pos:
            return self._emit(Terminal.CONTENT, end - self._pos)

        raise self._error("NUL character in template")

    # ------------------------------------------------------------------
    # ESCAPED: \{{ ... runs to the next (possibly escaped) opener
    # ------------------------------------------------------------------

    def _lex_escaped(self) -> Terminal | None:
        source = self._source
        nul = source.find("\0", self._pos)
        limit = nul if nul != -1 else len(source)

        end = self._pos + 2
        while end <= limit:
            if end == len(source) or source.startswith(_ESCAPED_STOPS, end):
                self._pop()
                return self._emit(Terminal.CONTENT, end - self._pos)
            end += 1

        raise self._error("unrecognized text after escaped mustache")

    # ------------------------------------------------------------------
    # COMMENT: {{!-- ... --}}
    # ------------------------------------------------------------------

    def _lex_long_comment(self) -> Terminal | None:
        source = self._source
        search = self._pos
        while True:
            dashes = source.find("--", search)
            if dashes == -1:
                raise self._error("unterminated comment")
            if source.startswith("}}", dashes + 2):
                end = dashes + 4
                break
            if source.startswith("~}}", dashes + 2):
                end = dashes + 5
                break
            search = dashes + 1

        self._pop()
        return self._emit(Terminal.COMMENT, end - self._pos)

    # ------------------------------------------------------------------
    # RAW: raw block bodies, which may nest
    # ------------------------------------------------------------------

    def _lex_raw(self) -> Terminal | None:
        source = self._source

        if self._starts_with("{{{{") and self._peek(4) not in ("", "/"):
            self._begin(Condition.RAW)
            return self._emit(Terminal.CONTENT, 4)

        if self._starts_with("{{{{/"):
            name_start = self._pos + 5
            name_end = name_start
            while name_end < len(source) and is_id_char(source[name_end]):
                name_end += 1
            if name_end > name_start and source.startswith("}}}}", name_end):
                length = name_end + 4 - self._pos
                self._pop()
                if self.condition == Condition.RAW:
                    return self._emit(Terminal.CONTENT, length)
                return self._emit(Terminal.END_RAW_BLOCK, length, source[name_start:name_end])

        opener = source.find("{{{{", self._pos + 1)
        nul = source.find("\0", self._pos)
        if opener != -1 and (nul == -1 or nul > opener):
            return self._emit(Terminal.CONTENT, opener - self._pos)

        raise self._error("unterminated raw block")

    # ------------------------------------------------------------------
    # MUSTACHE: inside an expression
    # ------------------------------------------------------------------

    def _lex_mustache(self) -> Terminal | None:
        ch = self._peek()

        if ch == "(":
            return self._emit(Terminal.OPEN_SEXPR, 1)

        if ch == ")":
            return self._emit(Terminal.CLOSE_SEXPR, 1)

        if self._starts_with("{{{{"):
            return self._emit(Terminal.OPEN_RAW_BLOCK, 4)

        if self._starts_with("}}}}"):
            self._pop()
            self._begin(Condition.RAW)
            return self._emit(Terminal.CLOSE_RAW_BLOCK, 4)

        if self._starts_with("{{"):
            return self._lex_open()

        if ch == "=":
            return self._emit(Terminal.EQUALS, 1)

        if self._starts_with(".."):
            return self._emit(Terminal.ID, 2)

        if ch == "." and ends_identifier(self._peek(1)):
            return self._emit(Terminal.ID, 1)

        if ch in ("/", "."):
            return self._emit(Terminal.SEP, 1)

        if ch.isspace():
            end = self._pos
            while end < len(self._source) and self._source[end].isspace():
                end += 1
            self._take(end - self._pos)
            return None

        if self._starts_with("}}}") or self._starts_with("}~}}"):
            self._pop()
            return self._emit(Terminal.CLOSE_UNESCAPED, 3 if self._starts_with("}}}") else 4)

        if self._starts_with("}}") or self._starts_with("~}}"):
            self._pop()
            return self._emit(Terminal.CLOSE, 2 if self._starts_with("}}") else 3)

        if ch in ('"', "'"):
            end = self._scan_quoted(ch)
            if end is not None:
                inner = self._source[self._pos + 1 : end - 1]
                return self._emit(Terminal.STRING, end - self._pos, inner.replace("\\" + ch, ch))

        if ch == "@":
            return self._emit(Terminal.DATA, 1)

        for word, terminal in _LITERALS:
            if self._starts_with(word) and _ends_literal(self._peek(len(word))):
                return self._emit(terminal, len(word))

        m = _NUMBER.match(self._source, self._pos)
        if m:
            return self._emit(Terminal.NUMBER, m.end() - self._pos)

        m = _BLOCK_PARAMS.match(self._source, self._pos)
        if m:
            return self._emit(Terminal.OPEN_BLOCK_PARAMS, m.end() - self._pos)

        if ch == "|":
            return self._emit(Terminal.CLOSE_BLOCK_PARAMS, 1)

        end = self._pos
        while end < len(self._source) and is_id_char(self._source[end]):
            end += 1
        if end > self._pos and end < len(self._source) and ends_identifier(self._source[end]):
            return self._emit(Terminal.ID, end - self._pos)

        if ch == "[":
            end = self._scan_quoted("[")
            if end is not None:
                literal = self._source[self._pos : end]
                return self._emit(Terminal.ID, end - self._pos, _BRACKET_ESCAPE.sub(r"\1", literal))

        return self._emit(Terminal.INVALID, 1)

    def _lex_open(self) -> Terminal | None:
        """Classify an expression opener; the input starts with ``{{``."""
        source = self._source
        after = self._pos + 2
        if self._peek(2) == "~":
            after += 1
        ch = source[after] if after < len(source) else ""

        if ch == ">":
            return self._emit(Terminal.OPEN_PARTIAL, after + 1 - self._pos)

        if source.startswith("#>", after):
            return self._emit(Terminal.OPEN_PARTIAL_BLOCK, after + 2 - self._pos)

        if ch == "#":
            end = after + 1
            if end < len(source) and source[end] == "*":
                end += 1
            return self._emit(Terminal.OPEN_BLOCK, end - self._pos)

        if ch == "/":
            return self._emit(Terminal.OPEN_ENDBLOCK, after + 1 - self._pos)

        m = _STANDALONE_INVERSE.match(source, after)
        if m:
            self._pop()
            return self._emit(Terminal.INVERSE, m.end() - self._pos)

        if ch == "^":
            return self._emit(Terminal.OPEN_INVERSE, after + 1 - self._pos)

        m = _INVERSE_CHAIN.match(source, after)
        if m:
            return self._emit(Terminal.OPEN_INVERSE_CHAIN, m.end() - self._pos)

        if ch == "{":
            return self._emit(Terminal.OPEN_UNESCAPED, after + 1 - self._pos)

        if ch == "&":
            return self._emit(Terminal.OPEN, after + 1 - self._pos)

        if source.startswith("!--", after):
            # Rescan the whole {{!-- from the comment condition
            self._pop()
            self._begin(Condition.COMMENT)
            return None

        if ch == "!":
            close = source.find("}}", after + 1)
            if close != -1:
                self._pop()
                return self._emit(Terminal.COMMENT, close + 2 - self._pos)

        end = after + 1 if ch == "*" else after
        return self._emit(Terminal.OPEN, end - self._pos)

    def _scan_quoted(self, opener: str) -> int | None:
        """Return the end offset of a quoted run starting at the cursor, or None.

        The closing character may be escaped with a backslash; if the run never
        closes, the last escaped closer ends it instead.
        """
        source = self._source
        closer = "]" if opener == "[" else opener
        last_escaped = -1
        i = self._pos + 1
        while i < len(source):
            ch = source[i]
            if ch == "\\" and i + 1 < len(source) and source[i + 1] == closer:
                last_escaped = i + 1
                i += 2
                continue
            if ch == closer:
                return i + 1
            i += 1
        if last_escaped != -1:
            return last_escaped + 1
        return None
