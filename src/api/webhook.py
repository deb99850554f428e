"""Facebook webhook endpoints.

GET answers the subscription challenge; POST verifies the request signature,
decodes the batched events and hands them to the EventDispatcher. The POST
handler acknowledges as soon as events are dispatched: Facebook requires a
200 within 20 seconds, and replies are sent in the background.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from src.config import Settings
from src.constants import FACEBOOK_SIGNATURE_HEADER
from src.models.messenger import WebhookEnvelope
from src.services.dispatcher import EventDispatcher
from src.services.signature import verify_request_signature

logger = logging.getLogger(__name__)
router = APIRouter()


def get_app_settings(request: Request) -> Settings:
    """Settings built at startup and stored on the application state."""
    return request.app.state.settings


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


@router.get("")
async def verify_webhook(
    request: Request,
    settings: Settings = Depends(get_app_settings),
):
    """Facebook webhook verification endpoint."""
    mode = request.query_params.get("hub.mode")
    token = request.query_params.get("hub.verify_token")
    challenge = request.query_params.get("hub.challenge")

    if mode == "subscribe" and token == settings.facebook_verify_token:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(challenge or "")

    logger.warning("Webhook verification failed: validation tokens do not match")
    return Response(status_code=403)


@router.post("")
async def handle_webhook(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Handle incoming Facebook Messenger webhook events."""
    body = await request.body()

    # Raises SignatureVerificationError, answered by the app exception handler
    verify_request_signature(
        body,
        request.headers.get(FACEBOOK_SIGNATURE_HEADER),
        settings.facebook_app_secret,
    )

    try:
        envelope = WebhookEnvelope.model_validate_json(body)
    except ValidationError as e:
        logger.warning("Malformed webhook payload: %s", e.errors(include_url=False))
        return JSONResponse({"status": "invalid"}, status_code=400)

    if envelope.object != "page":
        logger.warning("Ignoring webhook for object %r", envelope.object)
        return JSONResponse({"status": "ignored"}, status_code=404)

    handled = dispatcher.dispatch(envelope)
    logger.info(
        "Dispatched %d messaging events from %d entries", handled, len(envelope.entry)
    )

    return {"status": "ok"}
