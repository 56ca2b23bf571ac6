"""Scanner terminals, highlight categories, and the token records passed between stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, StrEnum, auto


class Terminal(Enum):
    # Content
    CONTENT = auto()  # text between expressions
    COMMENT = auto()  # {{! ... }} or {{!-- ... --}}, captured whole

    # Expression delimiters
    OPEN = auto()  # {{ or {{& or {{*
    CLOSE = auto()  # }}
    OPEN_UNESCAPED = auto()  # {{{
    CLOSE_UNESCAPED = auto()  # }}}
    OPEN_RAW_BLOCK = auto()  # {{{{
    CLOSE_RAW_BLOCK = auto()  # }}}}
    END_RAW_BLOCK = auto()  # {{{{/name}}}}
    OPEN_BLOCK = auto()  # {{#
    OPEN_INVERSE = auto()  # {{^
    OPEN_INVERSE_CHAIN = auto()  # {{else
    OPEN_ENDBLOCK = auto()  # {{/
    OPEN_PARTIAL = auto()  # {{>
    OPEN_PARTIAL_BLOCK = auto()  # {{#>
    INVERSE = auto()  # {{else}} or {{^}}, captured whole

    # Expression components
    OPEN_SEXPR = auto()  # (
    CLOSE_SEXPR = auto()  # )
    OPEN_BLOCK_PARAMS = auto()  # as |
    CLOSE_BLOCK_PARAMS = auto()  # |
    ID = auto()
    SEP = auto()  # . or /
    EQUALS = auto()  # =
    DATA = auto()  # @

    # Literals
    STRING = auto()
    NUMBER = auto()
    BOOLEAN = auto()
    UNDEFINED = auto()
    NULL = auto()

    INVALID = auto()  # any other single character inside an expression
    EOF = auto()


class HighlightType(StrEnum):
    TEXT = "text"
    VARIABLE = "variable"
    VARIABLE_PATH = "variable-path"
    BLOCK_KEYWORD = "block-keyword"
    BLOCK_PARAM = "block-param"
    HELPER = "helper"
    HELPER_ARG = "helper-arg"
    HASH_KEY = "hash-key"
    HASH_VALUE = "hash-value"
    LITERAL = "literal"
    DATA_VAR = "data-var"
    SUBEXPR_PAREN = "subexpr-paren"
    COMMENT = "comment"
    RAW = "raw"
    BRACE = "brace"


@dataclass(frozen=True, slots=True)
class Location:
    """Match location as the scanner reports it: 1-based lines, 0-based columns."""

    first_line: int
    first_column: int
    last_line: int
    last_column: int


@dataclass(frozen=True, slots=True)
class RawToken:
    """One scanner terminal with absolute offsets into the scanned text."""

    type: Terminal
    text: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class ExpressionContext:
    """Structural state of the expression enclosing a token."""

    type: str | None  # "mustache", "block-open", "block-close", "partial"
    in_block_params: bool
    path_root_after_helper: bool


@dataclass(frozen=True, slots=True)
class AnnotatedToken:
    token: RawToken
    context: ExpressionContext

    @property
    def type(self) -> Terminal:
        return self.token.type


@dataclass(frozen=True, slots=True)
class HighlightToken:
    """A classified span of the original input."""

    type: HighlightType
    value: str
    start: int
    end: int

    def to_dict(self) -> dict[str, object]:
        return {"type": str(self.type), "value": self.value, "start": self.start, "end": self.end}


# Characters that may never appear in an identifier
_NON_ID = frozenset("!\"#%&'()*+,./;<=>@[\\]^`{|}~")

# Characters allowed to follow an identifier (besides whitespace)
_ID_LOOKAHEAD = frozenset("=~}/.)|")


def is_id_char(ch: str) -> bool:
    """Return True if ch may appear in an identifier."""
    return not ch.isspace() and ch not in _NON_ID


def ends_identifier(ch: str) -> bool:
    """Return True if ch may follow an identifier."""
    return ch.isspace() or ch in _ID_LOOKAHEAD
