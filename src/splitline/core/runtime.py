from __future__ import annotations

from splitline.config import Settings, get_settings
from splitline.core.events import (
    EventPublisher,
    InMemoryEventPublisher,
    LoggingEventPublisher,
    WebhookEventPublisher,
)

_EVENT_PUBLISHER: EventPublisher | None = None


def build_event_publisher(settings: Settings) -> EventPublisher:
    if settings.event_publisher == "webhook":
        return WebhookEventPublisher(settings.event_webhook_url, timeout_sec=settings.event_webhook_timeout_sec)
    if settings.event_publisher == "log":
        return LoggingEventPublisher()
    return InMemoryEventPublisher()


def get_event_publisher() -> EventPublisher:
    global _EVENT_PUBLISHER
    if _EVENT_PUBLISHER is None:
        _EVENT_PUBLISHER = build_event_publisher(get_settings())
    return _EVENT_PUBLISHER


def set_event_publisher(publisher: EventPublisher | None) -> None:
    global _EVENT_PUBLISHER
    _EVENT_PUBLISHER = publisher
