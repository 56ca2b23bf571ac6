"""Records produced by expression segmentation and variable extraction."""

from __future__ import annotations

from dataclasses import dataclass, field

from hbsyntax.tokens import Terminal


@dataclass(frozen=True, slots=True)
class ExpressionToken:
    """A terminal inside an expression, carrying the scanner's resolved text."""

    type: Terminal
    text: str


@dataclass(frozen=True, slots=True)
class Expression:
    """One ``{{ ... }}`` expression, delimiters excluded from ``tokens``."""

    kind: str  # "mustache", "block", "endblock", "partial"
    tokens: tuple[ExpressionToken, ...]
    helper_name: str | None
    start: int
    end: int
    chained: bool = False  # {{else if ...}}
    inverted: bool = False  # {{^helper ...}}


@dataclass(frozen=True, slots=True)
class BlockFrame:
    helper: str
    context: str


@dataclass(frozen=True, slots=True)
class ExtractedVariable:
    """A variable reference found in a template."""

    name: str
    path: str
    type: str  # "simple", "nested", "block"
    block_type: str | None = None
    context: str | None = None

    def to_dict(self) -> dict[str, str]:
        d = {"name": self.name, "path": self.path, "type": self.type}
        if self.block_type:
            d["blockType"] = self.block_type
        if self.context:
            d["context"] = self.context
        return d


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    variables: tuple[ExtractedVariable, ...]
    root_variables: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "variables": [v.to_dict() for v in self.variables],
            "rootVariables": list(self.root_variables),
        }


@dataclass(frozen=True, slots=True)
class BlockContext:
    """The innermost ``each``/``with`` block enclosing a cursor position."""

    type: str  # "each" or "with"
    variable: str
    block_params: tuple[str, ...] = field(default=())

    @property
    def is_each(self) -> bool:
        return self.type == "each"

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type,
            "variable": self.variable,
            "blockParams": list(self.block_params),
            "isEach": self.is_each,
        }
