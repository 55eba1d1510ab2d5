"""
Parameterized SQL statements.

Caller-supplied values are never spliced into query text. They are bound as
`$n` placeholders and travel to the platform in `Statement.parameters`.
"""

from dataclasses import dataclass
from typing import Any, List, Tuple


@dataclass(frozen=True)
class Statement:
    text: str
    parameters: Tuple[Any, ...] = ()


class StatementBuilder:
    """
    Assemble a statement clause by clause.

        builder = StatementBuilder("SELECT * FROM meetings m WHERE 1=1")
        builder.add(f"AND m.fireflies_id = {builder.bind(fireflies_id)}")
        builder.add(f"LIMIT {builder.bind(limit)}")
        statement = builder.build()
    """

    def __init__(self, base: str):
        self._parts: List[str] = [base.strip()]
        self._params: List[Any] = []

    def bind(self, value: Any) -> str:
        self._params.append(value)
        return f"${len(self._params)}"

    def add(self, clause: str) -> "StatementBuilder":
        self._parts.append(clause.strip())
        return self

    def build(self) -> Statement:
        return Statement("\n".join(self._parts), tuple(self._params))


def statement(text: str, *parameters: Any) -> Statement:
    """Shortcut for a fixed template with positional placeholders."""
    return Statement(text.strip(), tuple(parameters))


def like_pattern(term: str) -> str:
    """Substring ILIKE pattern with the LIKE wildcards in `term` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
