from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import requests

from splitline.types import DomainEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[DomainEvent], None]


def build_event(topic: str, payload: dict[str, Any]) -> DomainEvent:
    return DomainEvent(
        event_id=str(uuid4()),
        topic=topic,
        occurred_at=datetime.now(UTC),
        payload=payload,
    )


class EventPublisher:
    """Publish contract used by the services; delivery is at-least-once."""

    def publish(self, topic: str, payload: dict[str, Any]) -> DomainEvent:
        raise NotImplementedError


def publish_safely(publisher: EventPublisher | None, topic: str, payload: dict[str, Any]) -> None:
    if publisher is None:
        return
    try:
        publisher.publish(topic, payload)
    except Exception:
        # The write already committed; delivery is best-effort.
        logger.exception("Event publish failed topic=%s", topic)


class InMemoryEventPublisher(EventPublisher):
    def __init__(self) -> None:
        self._events: list[DomainEvent] = []
        self._subscribers: list[tuple[str | None, Subscriber]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, payload: dict[str, Any]) -> DomainEvent:
        event = build_event(topic, payload)
        with self._lock:
            self._events.append(event)
            subscribers = [fn for wanted, fn in self._subscribers if wanted in (None, topic)]
        for subscriber in subscribers:
            subscriber(event)
        return event

    def subscribe(self, callback: Subscriber, topic: str | None = None) -> None:
        with self._lock:
            self._subscribers.append((topic, callback))

    def events(self, topic: str | None = None) -> list[DomainEvent]:
        with self._lock:
            return [event for event in self._events if topic is None or event.topic == topic]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingEventPublisher(EventPublisher):
    def publish(self, topic: str, payload: dict[str, Any]) -> DomainEvent:
        event = build_event(topic, payload)
        logger.info("event topic=%s event_id=%s payload=%s", topic, event.event_id, payload)
        return event


class WebhookEventPublisher(EventPublisher):
    def __init__(self, url: str, timeout_sec: int = 5, session: requests.Session | None = None):
        if not url:
            raise ValueError("webhook publisher requires a url")
        self.url = url
        self.timeout_sec = timeout_sec
        self.http = session or requests.Session()

    def publish(self, topic: str, payload: dict[str, Any]) -> DomainEvent:
        event = build_event(topic, payload)
        response = self.http.post(
            self.url,
            json=event.model_dump(mode="json"),
            headers={"X-Event-Topic": topic, "Idempotency-Key": event.event_id},
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        return event
