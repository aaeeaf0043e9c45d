"""Fire-and-forget notifications about match transitions."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import DefaultDict

logger = logging.getLogger(__name__)


class MatchEventKind(str, Enum):
    CREATED = "created"
    GOAL = "goal"
    OWN_GOAL = "own_goal"
    UNDO = "undo"
    ENDED = "ended"
    ABORTED = "aborted"


@dataclass(frozen=True)
class MatchEvent:
    kind: MatchEventKind
    kicker_id: int
    match_id: int
    occurred_at: datetime
    score_team1: int = 0
    score_team2: int = 0


MatchEventHandler = Callable[[MatchEvent], None]


class MatchEventPublisher:
    """Delivers committed match transitions to subscribers.

    Delivery is best effort: a failing handler is logged and skipped, it never
    undoes or fails the operation that produced the event.
    """

    def __init__(self) -> None:
        self._handlers: list[MatchEventHandler] = []
        self._counter: DefaultDict[MatchEventKind, int] = defaultdict(int)

    def subscribe(self, handler: MatchEventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: MatchEvent) -> None:
        self._counter[event.kind] += 1
        for handler in self._handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "match event handler failed kind=%s match_id=%s",
                    event.kind.value,
                    event.match_id,
                )

    def emitted_count(self, kind: MatchEventKind | None = None) -> int:
        if kind is None:
            return sum(self._counter.values())
        return self._counter[kind]


__all__ = ["MatchEvent", "MatchEventHandler", "MatchEventKind", "MatchEventPublisher"]
