"""Route webhook events to their handlers."""

from __future__ import annotations

from typing import Callable

import logfire

from src.config import Settings
from src.constants import AUTHENTICATION_TEXT
from src.models.messenger import EventKind, MessagingEvent, WebhookEnvelope
from src.services.messaging_protocol import MessagingService, get_messaging_service
from src.services.reply_composer import ReplyComposer
from src.services.scheduler import TaskScheduler
from src.services.search_service import SearchBackend, get_search_backend


class EventDispatcher:
    """Dispatch every messaging event of a page envelope by its kind.

    Handlers return without waiting on any network call; replies run on the
    scheduler in the background.
    """

    def __init__(
        self,
        composer: ReplyComposer,
        messaging: MessagingService,
        scheduler: TaskScheduler,
    ):
        self.composer = composer
        self.messaging = messaging
        self.scheduler = scheduler
        self._handlers: dict[EventKind, Callable[[MessagingEvent], None]] = {
            EventKind.MESSAGE: composer.handle_message,
            EventKind.POSTBACK: composer.handle_postback,
            EventKind.DELIVERY: self.received_delivery_confirmation,
            EventKind.READ: self.received_message_read,
            EventKind.OPTIN: self.received_authentication,
            EventKind.ACCOUNT_LINK: self.received_account_link,
            EventKind.UNKNOWN: self.received_unknown_event,
        }

    def dispatch(self, envelope: WebhookEnvelope) -> int:
        """
        Handle all events of a page envelope.

        A failing handler is logged and does not stop the remaining events.

        Returns:
            Number of events handled
        """
        handled = 0
        for entry in envelope.entry:
            for event in entry.messaging:
                handler = self._handlers[event.kind]
                try:
                    handler(event)
                except Exception as e:
                    logfire.error(
                        "Error handling messaging event",
                        page_id=entry.id,
                        kind=event.kind.value,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue
                handled += 1
        return handled

    def received_delivery_confirmation(self, event: MessagingEvent) -> None:
        delivery = event.delivery
        for message_id in delivery.mids:
            logfire.info("Received delivery confirmation", message_id=message_id)
        logfire.info(
            "All messages delivered before watermark",
            watermark=delivery.watermark,
        )

    def received_message_read(self, event: MessagingEvent) -> None:
        logfire.info(
            "Received message read event",
            watermark=event.read.watermark,
            seq=event.read.seq,
        )

    def received_authentication(self, event: MessagingEvent) -> None:
        """Log the plugin pass-through ref and confirm to the user."""
        logfire.info(
            "Received authentication",
            sender_id=event.sender_id,
            recipient_id=event.recipient_id,
            ref=event.optin.ref,
            timestamp=event.timestamp,
        )
        self.scheduler.spawn(
            self.messaging.send_text(event.sender_id, AUTHENTICATION_TEXT)
        )

    def received_account_link(self, event: MessagingEvent) -> None:
        logfire.info(
            "Received account link event",
            sender_id=event.sender_id,
            status=event.account_linking.status,
            authorization_code=event.account_linking.authorization_code,
        )

    def received_unknown_event(self, event: MessagingEvent) -> None:
        logfire.warn(
            "Webhook received unhandled messaging event",
            event=event.model_dump(exclude_none=True),
        )


def build_dispatcher(
    settings: Settings,
    scheduler: TaskScheduler,
    messaging: MessagingService | None = None,
    search: SearchBackend | None = None,
) -> EventDispatcher:
    """Wire the dispatcher and its collaborators from settings."""
    messaging = messaging or get_messaging_service(settings)
    search = search or get_search_backend(settings)
    composer = ReplyComposer(messaging=messaging, search=search, scheduler=scheduler)
    return EventDispatcher(composer=composer, messaging=messaging, scheduler=scheduler)
