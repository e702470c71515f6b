"""Parameterized statements and placeholder handling.

Statements are written with positional ``?`` placeholders. Placeholders are
located with the sqlglot MySQL tokenizer so that question marks inside string
literals, quoted identifiers and comments are never mistaken for parameters.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from mysqlhelper.exceptions import SQLBuilderError

__all__ = ("Statement", "count_placeholders", "to_pyformat")

PLACEHOLDER = "?"
PYFORMAT_PLACEHOLDER = "%s"
DIALECT = "mysql"


@lru_cache(maxsize=1024)
def _placeholder_offsets(sql: str) -> tuple[int, ...]:
    try:
        tokens = sqlglot.tokenize(sql, read=DIALECT)
    except TokenError as exc:
        msg = f"Unable to tokenize statement: {exc}"
        raise SQLBuilderError(msg) from exc
    return tuple(
        token.start for token in tokens if token.token_type == TokenType.PLACEHOLDER and token.text == PLACEHOLDER
    )


def count_placeholders(sql: str) -> int:
    """Count the positional ``?`` placeholders in ``sql``."""
    if PLACEHOLDER not in sql:
        return 0
    return len(_placeholder_offsets(sql))


@lru_cache(maxsize=1024)
def to_pyformat(sql: str) -> str:
    """Rewrite ``?`` placeholders to the ``%s`` style expected by asyncmy.

    Literal percent signs are doubled because the driver interpolates the whole
    statement with ``%`` formatting whenever arguments are supplied.

    Args:
        sql: Statement text using ``?`` placeholders.

    Returns:
        Statement text using ``%s`` placeholders.
    """
    offsets = set(_placeholder_offsets(sql)) if PLACEHOLDER in sql else set()
    parts: list[str] = []
    for index, char in enumerate(sql):
        if index in offsets:
            parts.append(PYFORMAT_PLACEHOLDER)
        elif char == "%":
            parts.append("%%")
        else:
            parts.append(char)
    return "".join(parts)


@dataclass(frozen=True, slots=True)
class Statement:
    """SQL text plus its positional parameter vector."""

    text: str
    params: tuple[Any, ...] = ()

    @classmethod
    def of(cls, text: str, params: "Sequence[Any] | None" = None) -> "Statement":
        """Build a statement from any parameter sequence."""
        return cls(text, tuple(params) if params else ())

    @property
    def placeholder_count(self) -> int:
        return count_placeholders(self.text)

    def is_consistent(self) -> bool:
        """Whether the number of placeholders matches the number of parameters."""
        return self.placeholder_count == len(self.params)
