"""Incoming/outgoing Facebook Messenger models."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _MessengerModel(BaseModel):
    """Base for webhook models; Facebook adds fields without notice."""

    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Inbound webhook payload
# =============================================================================


class Participant(_MessengerModel):
    """Sender or recipient of a messaging event."""

    id: str


class QuickReply(_MessengerModel):
    payload: str


class Attachment(_MessengerModel):
    type: str
    payload: dict[str, Any] | None = None


class MessageContent(_MessengerModel):
    """Incoming Facebook Messenger message.

    A message carries text or attachments; text may be absent.
    """

    mid: str | None = None
    is_echo: bool = False
    app_id: int | str | None = None
    metadata: str | None = None
    text: str | None = None
    quick_reply: QuickReply | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Postback(_MessengerModel):
    """Button tap carrying a developer-defined payload."""

    payload: str | None = None
    title: str | None = None


class Delivery(_MessengerModel):
    mids: list[str] = Field(default_factory=list)
    watermark: int | None = None
    seq: int | None = None


class Read(_MessengerModel):
    watermark: int | None = None
    seq: int | None = None


class Optin(_MessengerModel):
    """Authentication via the Send-to-Messenger plugin."""

    ref: str | None = None


class AccountLinking(_MessengerModel):
    status: str | None = None
    authorization_code: str | None = None


class EventKind(str, Enum):
    """Variant of a messaging event, in dispatch priority order."""

    MESSAGE = "message"
    POSTBACK = "postback"
    DELIVERY = "delivery"
    READ = "read"
    OPTIN = "optin"
    ACCOUNT_LINK = "account_link"
    UNKNOWN = "unknown"


class MessagingEvent(_MessengerModel):
    """A single messaging event inside a page entry."""

    sender: Participant
    recipient: Participant
    timestamp: int | None = None
    message: MessageContent | None = None
    postback: Postback | None = None
    delivery: Delivery | None = None
    read: Read | None = None
    optin: Optin | None = None
    account_linking: AccountLinking | None = None

    @property
    def kind(self) -> EventKind:
        """Variant tag; the first present field wins."""
        if self.message is not None:
            return EventKind.MESSAGE
        if self.postback is not None:
            return EventKind.POSTBACK
        if self.delivery is not None:
            return EventKind.DELIVERY
        if self.read is not None:
            return EventKind.READ
        if self.optin is not None:
            return EventKind.OPTIN
        if self.account_linking is not None:
            return EventKind.ACCOUNT_LINK
        return EventKind.UNKNOWN

    @property
    def sender_id(self) -> str:
        return self.sender.id

    @property
    def recipient_id(self) -> str:
        return self.recipient.id


class PageEntry(_MessengerModel):
    """Facebook webhook entry."""

    id: str
    time: int | None = None
    messaging: list[MessagingEvent] = Field(default_factory=list)


class WebhookEnvelope(_MessengerModel):
    """Facebook webhook payload; possibly several batched entries."""

    object: str
    entry: list[PageEntry] = Field(default_factory=list)


# =============================================================================
# Outbound Send API payload
# =============================================================================


class Recipient(BaseModel):
    id: str


class PostbackButton(BaseModel):
    type: Literal["postback"] = "postback"
    title: str
    payload: str


class UrlButton(BaseModel):
    type: Literal["web_url"] = "web_url"
    title: str
    url: str


class ButtonTemplatePayload(BaseModel):
    template_type: Literal["button"] = "button"
    text: str
    buttons: list[PostbackButton | UrlButton]


class ImagePayload(BaseModel):
    url: str


class ImageAttachment(BaseModel):
    type: Literal["image"] = "image"
    payload: ImagePayload


class TemplateAttachment(BaseModel):
    type: Literal["template"] = "template"
    payload: ButtonTemplatePayload


class OutboundMessage(BaseModel):
    """Text or attachment message body; exactly one is set."""

    text: str | None = None
    attachment: ImageAttachment | TemplateAttachment | None = None


class SenderAction(str, Enum):
    TYPING_ON = "typing_on"
    TYPING_OFF = "typing_off"


class OutboundEnvelope(BaseModel):
    """Body of a Send API request."""

    recipient: Recipient
    message: OutboundMessage | None = None
    sender_action: SenderAction | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON shape expected by the Send API."""
        return self.model_dump(mode="json", exclude_none=True)
