"""Reply composition for incoming messages and postbacks.

Free text is classified with a handful of keyword heuristics and routed to
the search backend. Searches and sends run as background tasks on the
scheduler, so the webhook can acknowledge Facebook right away; follow-up
messages (reference link, social proof, collection info) are scheduled with
fixed delays and are never cancelled.
"""

from __future__ import annotations

import random
from typing import Awaitable, Callable

import logfire

from src.constants import (
    CAPTION_TEMPLATE,
    COLLECTION_FOLLOWUP_DELAY_SECONDS,
    COLLECTION_TEMPLATE,
    DATE_RANGE_SEPARATOR,
    FETCHING_PAINTING_TEXT,
    MONUMENTS_KEYWORD,
    MORE_WORK_BUTTON_TITLE,
    MORE_WORK_TEXT,
    NOT_UNDERSTOOD_TEXT,
    POSTBACK_ERROR_TEMPLATE,
    QUICK_REPLY_TEXT,
    REFERENCE_LINK_DELAY_SECONDS,
    SEARCH_FAILED_TEXT,
    SEARCHING_TEXT,
    SOCIAL_PROOF_DELAY_SECONDS,
    SOCIAL_PROOF_TEMPLATE,
    SOCIAL_PROOF_VIEWERS_RANGE,
    SOCIAL_PROOF_WATCHING_RANGE,
    SURPRISE_KEYWORD,
    WIKIDATA_ENTITY_PAGE_URL,
)
from src.models.messenger import MessagingEvent
from src.models.search_models import (
    ButtonOption,
    ButtonsSearchResult,
    ButtonSet,
    ImageResult,
    ImagesSearchResult,
    SearchResult,
    TextSearchResult,
)
from src.services.messaging_protocol import MessagingService
from src.services.scheduler import TaskScheduler
from src.services.search_service import SearchBackend, SearchError

SearchCall = Callable[[], Awaitable[SearchResult]]


def entity_page_url(entity_id: str) -> str:
    return WIKIDATA_ENTITY_PAGE_URL.format(entity_id=entity_id)


def caption_for(image: ImageResult) -> str:
    return CAPTION_TEMPLATE.format(label=image.label, description=image.description)


def log_unexpected_search_error(sender_id: str, error: Exception) -> None:
    logfire.error(
        "Search failed unexpectedly",
        sender_id=sender_id,
        error=str(error),
        error_type=type(error).__name__,
    )


class ReplyComposer:
    """Turn messages and postbacks into Messenger replies.

    Example:
        >>> composer = ReplyComposer(messenger, search, scheduler)
        >>> composer.handle_message(event)  # returns immediately
    """

    def __init__(
        self,
        messaging: MessagingService,
        search: SearchBackend,
        scheduler: TaskScheduler,
        rng: random.Random | None = None,
    ):
        """Initialize the composer.

        Args:
            messaging: Outbound messaging service
            search: Search backend answering painter and monument queries
            scheduler: Scheduler running sends and searches in the background
            rng: Random source for the social-proof numbers
        """
        self.messaging = messaging
        self.search = search
        self.scheduler = scheduler
        self._rng = rng or random.Random()

    # =========================================================================
    # Message path
    # =========================================================================

    def choose_search(self, text: str) -> tuple[str, SearchCall]:
        """
        Classify normalized message text into a search call.

        Returns:
            Tuple of (search name, zero-argument coroutine function)
        """
        if DATE_RANGE_SEPARATOR in text:
            dates = [part.strip() for part in text.split(DATE_RANGE_SEPARATOR)]
            # Operands are swapped around the separator
            return "painter_by_date", lambda: self.search.painter_by_date(
                dates[1], dates[0]
            )
        if text == MONUMENTS_KEYWORD:
            return "get_monuments", self.search.get_monuments
        if text == SURPRISE_KEYWORD:
            return "random_artist", self.search.random_artist
        return "search_painters", lambda: self.search.search_painters(text)

    def handle_message(self, event: MessagingEvent) -> None:
        """Reply to an incoming message; all sends happen in the background."""
        message = event.message
        sender_id = event.sender_id

        logfire.info(
            "Received message",
            sender_id=sender_id,
            recipient_id=event.recipient_id,
            timestamp=event.timestamp,
            message=message.model_dump(exclude_none=True),
        )

        if message.is_echo:
            logfire.info(
                "Received echo",
                message_id=message.mid,
                app_id=message.app_id,
                metadata=message.metadata,
            )
            return

        if message.quick_reply is not None:
            logfire.info(
                "Quick reply tapped",
                message_id=message.mid,
                payload=message.quick_reply.payload,
            )
            self.scheduler.spawn(self.messaging.send_text(sender_id, QUICK_REPLY_TEXT))
            return

        if not message.text:
            self.scheduler.spawn(self.messaging.send_text(sender_id, NOT_UNDERSTOOD_TEXT))
            return

        parsed = message.text.strip().lower()
        self.scheduler.spawn(self.messaging.send_text(sender_id, SEARCHING_TEXT))
        self.scheduler.spawn(self.messaging.send_typing_on(sender_id))

        search_name, search_call = self.choose_search(parsed)
        logfire.info("Starting search", sender_id=sender_id, search=search_name)
        self.scheduler.spawn(self._run_message_search(sender_id, search_call))

    async def _run_message_search(self, sender_id: str, search_call: SearchCall) -> None:
        try:
            result = await search_call()
        except SearchError as e:
            await self.on_search_response(sender_id, e, None)
        except Exception as e:
            log_unexpected_search_error(sender_id, e)
            await self.on_search_response(sender_id, SearchError(SEARCH_FAILED_TEXT), None)
        else:
            await self.on_search_response(sender_id, None, result)

    async def on_search_response(
        self,
        sender_id: str,
        error: SearchError | None,
        result: SearchResult | None,
    ) -> None:
        """Deliver a completed message-path search to the user."""
        await self.messaging.send_typing_off(sender_id)

        if error is not None:
            await self.messaging.send_text(sender_id, str(error))
            return

        logfire.info("Search completed", sender_id=sender_id, result_type=result.type)

        if isinstance(result, ButtonsSearchResult):
            await self.messaging.send_buttons(sender_id, result.buttons)
        elif isinstance(result, ImagesSearchResult):
            await self.send_image_with_caption(sender_id, result.images)
            self.scheduler.call_later(
                REFERENCE_LINK_DELAY_SECONDS,
                self.messaging.send_url,
                sender_id,
                entity_page_url(result.images.id),
            )
            self.schedule_social_proof(sender_id)
        elif isinstance(result, TextSearchResult):
            await self.messaging.send_text(sender_id, result.text)

    # =========================================================================
    # Postback path
    # =========================================================================

    def handle_postback(self, event: MessagingEvent) -> None:
        """Fetch a painting for the artist in the postback payload."""
        sender_id = event.sender_id
        payload = event.postback.payload or ""

        self.scheduler.spawn(self._run_postback_search(sender_id, payload))

        logfire.info(
            "Received postback",
            sender_id=sender_id,
            recipient_id=event.recipient_id,
            payload=payload,
            timestamp=event.timestamp,
        )
        self.scheduler.spawn(self.messaging.send_text(sender_id, FETCHING_PAINTING_TEXT))

    async def _run_postback_search(self, sender_id: str, artist_id: str) -> None:
        try:
            result = await self.search.paintings_by_artist(artist_id)
        except SearchError as e:
            await self.on_postback_response(sender_id, e, None)
        except Exception as e:
            log_unexpected_search_error(sender_id, e)
            await self.on_postback_response(sender_id, SearchError(SEARCH_FAILED_TEXT), None)
        else:
            await self.on_postback_response(sender_id, None, result)

    async def on_postback_response(
        self,
        sender_id: str,
        error: SearchError | None,
        result: SearchResult | None,
    ) -> None:
        """Deliver a completed postback search to the user."""
        if error is not None:
            await self.messaging.send_text(
                sender_id, POSTBACK_ERROR_TEMPLATE.format(error=error)
            )
            return

        if not isinstance(result, ImagesSearchResult):
            logfire.warn(
                "Ignoring postback result", sender_id=sender_id, result_type=result.type
            )
            return

        image = result.images
        await self.send_image_with_caption(sender_id, image)
        self.schedule_social_proof(sender_id)
        logfire.info("Sent painting", sender_id=sender_id, image=image.model_dump())

        if image.collection:
            self.scheduler.call_later(
                COLLECTION_FOLLOWUP_DELAY_SECONDS,
                self.send_collection_followup,
                sender_id,
                image,
            )

    async def send_collection_followup(self, sender_id: str, image: ImageResult) -> None:
        """Name the collection, link to the work and offer another one."""
        await self.messaging.send_text(
            sender_id, COLLECTION_TEMPLATE.format(collection=image.collection)
        )
        await self.messaging.send_url(sender_id, image.url or entity_page_url(image.id))
        await self.messaging.send_buttons(
            sender_id,
            ButtonSet(
                text=MORE_WORK_TEXT,
                data=[
                    ButtonOption(title=MORE_WORK_BUTTON_TITLE, payload=image.author or "")
                ],
            ),
        )

    # =========================================================================
    # Shared
    # =========================================================================

    async def send_image_with_caption(self, sender_id: str, image: ImageResult) -> None:
        await self.messaging.send_text(sender_id, caption_for(image))
        await self.messaging.send_image(sender_id, image.image)

    def social_proof_text(self) -> str:
        return SOCIAL_PROOF_TEMPLATE.format(
            viewers=self._rng.randint(*SOCIAL_PROOF_VIEWERS_RANGE),
            watching=self._rng.randint(*SOCIAL_PROOF_WATCHING_RANGE),
        )

    def schedule_social_proof(self, sender_id: str) -> None:
        """Send a randomized 'others are watching' text after a short delay."""
        self.scheduler.call_later(
            SOCIAL_PROOF_DELAY_SECONDS,
            self.messaging.send_text,
            sender_id,
            self.social_proof_text(),
        )
