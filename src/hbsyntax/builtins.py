"""Built-in helper registry and the static completion vocabulary."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class HelperDef:
    """Definition of a helper every Handlebars runtime provides."""

    name: str
    block: bool  # usable as {{#name}} ... {{/name}}
    changes_context: bool  # body renders against the argument


def _make_builtins() -> dict[str, HelperDef]:
    defs: dict[str, HelperDef] = {}

    def d(name: str, *, block: bool = False, changes_context: bool = False) -> None:
        defs[name] = HelperDef(name, block, changes_context)

    # Block helpers
    d("if", block=True)
    d("unless", block=True)
    d("each", block=True, changes_context=True)
    d("with", block=True, changes_context=True)

    # Inline helpers
    d("lookup")
    d("log")

    # Keywords that lex like helper names
    d("this")
    d("else")

    return defs


BUILTINS: dict[str, HelperDef] = _make_builtins()

BLOCK_HELPER_NAMES: tuple[str, ...] = tuple(h.name for h in BUILTINS.values() if h.block)
BUILT_IN_HELPERS: frozenset[str] = frozenset(BUILTINS)
CONTEXT_HELPERS: frozenset[str] = frozenset(h.name for h in BUILTINS.values() if h.changes_context)

# Data variables available inside {{#each}}
EACH_DATA_VARIABLES: tuple[str, ...] = ("this", "@index", "@first", "@last", "@key")

# Data variables available everywhere
GLOBAL_DATA_VARIABLES: tuple[str, ...] = ("@root",)


def is_built_in(name: str) -> bool:
    """Return True for built-in helper names and ``@`` data variables."""
    return name in BUILT_IN_HELPERS or name.startswith("@")
