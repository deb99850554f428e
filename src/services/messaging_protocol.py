"""Messaging abstraction protocols for decoupling from the Facebook API.

The reply composer and dispatcher depend on this Protocol rather than on
``MessengerClient`` directly, so tests can pass a mock and other
platforms could be plugged in later.
"""

from typing import Protocol

from src.config import Settings
from src.models.search_models import ButtonSet
from src.services.facebook_service import MessengerClient


class MessagingService(Protocol):
    """Protocol for pushing replies to a chat user.

    Implementations never raise on delivery failures; they log and move on.
    """

    async def send_text(self, recipient_id: str, text: str) -> None: ...

    async def send_image(self, recipient_id: str, image_url: str) -> None: ...

    async def send_buttons(self, recipient_id: str, buttons: ButtonSet) -> None: ...

    async def send_url(self, recipient_id: str, url: str) -> None: ...

    async def send_typing_on(self, recipient_id: str) -> None: ...

    async def send_typing_off(self, recipient_id: str) -> None: ...


def get_messaging_service(settings: Settings) -> MessagingService:
    """Factory function to get a MessagingService implementation.

    Currently returns MessengerClient, which honours mock mode itself.

    Args:
        settings: Application settings

    Returns:
        MessagingService implementation (currently Facebook)
    """
    return MessengerClient(settings)
