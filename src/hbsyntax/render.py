"""Template rendering over pybars3."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pybars import Compiler


def interpolate(
    content: str,
    variables: Mapping[str, Any] | None = None,
    helpers: Mapping[str, Callable[..., Any]] | None = None,
) -> str:
    """Render *content* against *variables*.

    With no variables the template is returned untouched. *helpers* is the
    per-render helper table (an options mapping with a ``helpers`` key in other
    Handlebars hosts), visible to this call only. Helpers follow the pybars
    convention ``helper(this, *args, **hash)``. Compile and render errors
    propagate, including exceptions raised by helpers.
    """
    if variables is None:
        return content

    template = Compiler().compile(content)
    return str(template(dict(variables), helpers=dict(helpers) if helpers else None))
