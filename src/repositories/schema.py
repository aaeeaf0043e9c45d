"""Schema creation for the kicker tables."""

from __future__ import annotations

from sqlalchemy.engine import Engine

from models import Base


def ensure_kicker_schema(engine: Engine) -> None:
    """Create all kicker tables, constraints and partial indexes if they do not exist."""
    Base.metadata.create_all(bind=engine)


def drop_kicker_schema(engine: Engine) -> None:
    """Drop every kicker table."""
    Base.metadata.drop_all(bind=engine)
