"""The compiled output: SQL text plus the parameter map."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from spanql.schema.values import TypeHint, spanner_type_hint


@dataclass
class CompiledQuery:
    """The output of a successful build.

    Attributes:
        sql: The SQL string with ``@paramN`` placeholders.
        parameters: Values for every placeholder in ``sql`` and nothing more.
    """

    sql: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def type_hints(self) -> dict[str, TypeHint]:
        """Return Spanner type hints for the parameters.

        Parameters whose type cannot be inferred (``None``, arrays of
        ``None``) are left out; Spanner infers them server-side.

        Returns:
            ``{name: hint}`` suitable for the client's ``param_types``.
        """
        hints: dict[str, TypeHint] = {}
        for name, value in self.parameters.items():
            hint = spanner_type_hint(value)
            if hint is not None:
                hints[name] = hint
        return hints
