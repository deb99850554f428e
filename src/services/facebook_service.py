"""Send messages to Facebook Graph API service."""

import time

import httpx
import logfire

from src.config import Settings
from src.constants import (
    FACEBOOK_GRAPH_API_URL,
    FACEBOOK_GRAPH_API_VERSION,
    LINK_BUTTON_TITLE,
    LINK_TEXT,
    MAX_BUTTON_TITLE_CHARS,
    MAX_TEMPLATE_BUTTONS,
)
from src.logging_config import redact_tokens
from src.models.messenger import (
    ButtonTemplatePayload,
    ImageAttachment,
    ImagePayload,
    OutboundEnvelope,
    OutboundMessage,
    PostbackButton,
    Recipient,
    SenderAction,
    TemplateAttachment,
    UrlButton,
)
from src.models.search_models import ButtonSet


class MessengerClient:
    """Facebook Messenger Send API client.

    Every send is best effort: HTTP and transport failures are logged together
    with the payload and never raised to the caller. In mock mode nothing is
    sent and the would-be payload is logged instead.

    Example:
        >>> client = MessengerClient(settings)
        >>> await client.send_text("user123", "Hallo!")
    """

    def __init__(self, settings: Settings):
        if not settings.facebook_page_access_token:
            raise ValueError("facebook_page_access_token is required")
        self._token = settings.facebook_page_access_token
        self._timeout = settings.facebook_api_timeout_seconds
        self._mock_mode = settings.messenger_mock_mode
        self._public_base_url = settings.public_base_url
        self._url = (
            f"{FACEBOOK_GRAPH_API_URL}/{FACEBOOK_GRAPH_API_VERSION}/me/messages"
        )

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    async def send(self, envelope: OutboundEnvelope) -> None:
        """
        Post a message envelope to the Send API.

        Args:
            envelope: Recipient plus message or sender action
        """
        payload = envelope.to_payload()
        params = {"access_token": self._token}

        if self._mock_mode:
            logfire.info(
                "Mock mode: message not sent",
                url=self._url,
                params=redact_tokens(params),
                payload=payload,
            )
            return

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, params=params, json=payload)
            elapsed = time.time() - start_time

            if response.status_code == 200:
                try:
                    response_data = response.json()
                except ValueError as e:
                    logfire.error(
                        "Facebook returned an unreadable response",
                        recipient_id=envelope.recipient.id,
                        status_code=response.status_code,
                        response_body=response.text[:500],
                        error=str(e),
                        payload=payload,
                        response_time_ms=elapsed * 1000,
                    )
                    return
                if not isinstance(response_data, dict):
                    response_data = {}
                logfire.info(
                    "Facebook message sent successfully",
                    recipient_id=response_data.get("recipient_id"),
                    message_id=response_data.get("message_id"),
                    response_time_ms=elapsed * 1000,
                )
            else:
                logfire.error(
                    "Facebook message send failed",
                    recipient_id=envelope.recipient.id,
                    status_code=response.status_code,
                    response_body=response.text[:500],  # Limit response body length
                    payload=payload,
                    response_time_ms=elapsed * 1000,
                )
        except httpx.RequestError as e:
            elapsed = time.time() - start_time
            logfire.error(
                "Facebook API request error",
                recipient_id=envelope.recipient.id,
                error=str(e),
                error_type=type(e).__name__,
                payload=payload,
                response_time_ms=elapsed * 1000,
            )

    async def send_text(self, recipient_id: str, text: str) -> None:
        await self.send(
            OutboundEnvelope(
                recipient=Recipient(id=recipient_id),
                message=OutboundMessage(text=text),
            )
        )

    async def send_image(self, recipient_id: str, image_url: str) -> None:
        """Send an image attachment; relative URLs resolve against the server URL."""
        attachment = ImageAttachment(
            payload=ImagePayload(url=self._absolute_url(image_url))
        )
        await self.send(
            OutboundEnvelope(
                recipient=Recipient(id=recipient_id),
                message=OutboundMessage(attachment=attachment),
            )
        )

    async def send_buttons(self, recipient_id: str, buttons: ButtonSet) -> None:
        """Send a button template with one postback button per option."""
        template = ButtonTemplatePayload(
            text=buttons.text,
            buttons=[
                PostbackButton(
                    title=option.title[:MAX_BUTTON_TITLE_CHARS],
                    payload=option.payload,
                )
                for option in buttons.data[:MAX_TEMPLATE_BUTTONS]
            ],
        )
        await self.send(
            OutboundEnvelope(
                recipient=Recipient(id=recipient_id),
                message=OutboundMessage(attachment=TemplateAttachment(payload=template)),
            )
        )

    async def send_url(self, recipient_id: str, url: str) -> None:
        """Send a link as a button template with a single web_url button."""
        template = ButtonTemplatePayload(
            text=LINK_TEXT,
            buttons=[UrlButton(title=LINK_BUTTON_TITLE, url=url)],
        )
        await self.send(
            OutboundEnvelope(
                recipient=Recipient(id=recipient_id),
                message=OutboundMessage(attachment=TemplateAttachment(payload=template)),
            )
        )

    async def send_typing_on(self, recipient_id: str) -> None:
        await self._send_action(recipient_id, SenderAction.TYPING_ON)

    async def send_typing_off(self, recipient_id: str) -> None:
        await self._send_action(recipient_id, SenderAction.TYPING_OFF)

    async def _send_action(self, recipient_id: str, action: SenderAction) -> None:
        await self.send(
            OutboundEnvelope(recipient=Recipient(id=recipient_id), sender_action=action)
        )

    def _absolute_url(self, url: str) -> str:
        if url.startswith("/") and self._public_base_url:
            return f"{self._public_base_url}{url}"
        return url
