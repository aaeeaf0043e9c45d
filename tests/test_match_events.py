"""Unit tests for the match event publisher."""

from __future__ import annotations

from datetime import datetime

from domain.events import MatchEvent, MatchEventKind, MatchEventPublisher


def _event(kind: MatchEventKind) -> MatchEvent:
    return MatchEvent(kind=kind, kicker_id=1, match_id=2, occurred_at=datetime(2026, 1, 1))


def test_publish_delivers_to_every_subscriber_in_order() -> None:
    publisher = MatchEventPublisher()
    calls: list[str] = []
    publisher.subscribe(lambda event: calls.append(f"a:{event.kind.value}"))
    publisher.subscribe(lambda event: calls.append(f"b:{event.kind.value}"))

    publisher.publish(_event(MatchEventKind.GOAL))

    assert calls == ["a:goal", "b:goal"]


def test_failing_handler_is_logged_and_skipped(caplog) -> None:
    publisher = MatchEventPublisher()
    delivered: list[MatchEvent] = []

    def broken(event: MatchEvent) -> None:
        raise RuntimeError("boom")

    publisher.subscribe(broken)
    publisher.subscribe(delivered.append)

    publisher.publish(_event(MatchEventKind.ENDED))

    assert len(delivered) == 1
    assert "match event handler failed kind=ended match_id=2" in caplog.text


def test_emitted_count_by_kind() -> None:
    publisher = MatchEventPublisher()
    for kind in (MatchEventKind.GOAL, MatchEventKind.GOAL, MatchEventKind.UNDO):
        publisher.publish(_event(kind))

    assert publisher.emitted_count() == 3
    assert publisher.emitted_count(MatchEventKind.GOAL) == 2
    assert publisher.emitted_count(MatchEventKind.ABORTED) == 0
