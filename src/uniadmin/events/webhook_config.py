"""Subscribers that receive hierarchy events over HTTP."""

from dataclasses import dataclass, field

from uniadmin.config import Settings


@dataclass
class WebhookSubscription:
    """One outbound endpoint; an empty ``event_types`` list means every event."""

    url: str
    secret: str
    event_types: list[str] = field(default_factory=list)
    active: bool = True

    def wants(self, event_type: str) -> bool:
        return self.active and (not self.event_types or event_type in self.event_types)


class WebhookRegistry:
    """In-memory list of subscriptions, seeded from settings at startup."""

    def __init__(self) -> None:
        self._subscriptions: list[WebhookSubscription] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookRegistry":
        registry = cls()
        if settings.webhook_url:
            registry.register(WebhookSubscription(url=settings.webhook_url, secret=settings.webhook_secret))
        return registry

    def register(self, subscription: WebhookSubscription) -> None:
        self.unregister(subscription.url)
        self._subscriptions.append(subscription)

    def unregister(self, url: str) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.url != url]

    def get_subscribers(self, event_type: str) -> list[WebhookSubscription]:
        return [s for s in self._subscriptions if s.wants(event_type)]

    def list_all(self) -> list[WebhookSubscription]:
        return list(self._subscriptions)
