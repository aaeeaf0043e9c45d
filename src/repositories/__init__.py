"""Database repository helpers."""

from repositories.schema import drop_kicker_schema, ensure_kicker_schema

__all__ = [
    "drop_kicker_schema",
    "ensure_kicker_schema",
]
