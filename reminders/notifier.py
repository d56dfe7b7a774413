"""Deliver reminder notifications over WhatsApp via Twilio."""

import asyncio

from config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_WHATSAPP_FROM
from logger import logger
from utils.log_sanitizer import mask_user_id
from .errors import DeliveryError


def format_notification(message: str) -> str:
    """Notification text for a fired reminder (embeds the stored message verbatim)."""
    return f"*Here's the reminder you scheduled:*\n\n{message}"


def _is_twilio_configured() -> bool:
    """Check if Twilio credentials are configured."""
    return all([TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_WHATSAPP_FROM])


def to_whatsapp_address(user_id: str) -> str:
    """Turn a WhatsApp id (phone number) into a Twilio address."""
    if user_id.startswith("whatsapp:"):
        return user_id
    number = user_id if user_id.startswith("+") else f"+{user_id}"
    return f"whatsapp:{number}"


async def send_whatsapp(user_id: str, text: str) -> str:
    """Send a WhatsApp message via Twilio.

    Args:
        user_id: Recipient WhatsApp id
        text: Message body

    Returns:
        Twilio message SID

    Raises:
        DeliveryError: Twilio not configured or the message was rejected
    """
    if not _is_twilio_configured():
        raise DeliveryError("Twilio credentials not configured")

    from twilio.rest import Client as TwilioClient
    from twilio.base.exceptions import TwilioException

    def _send():
        client = TwilioClient(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
        return client.messages.create(
            body=text,
            from_=to_whatsapp_address(TWILIO_WHATSAPP_FROM),
            to=to_whatsapp_address(user_id)
        )

    try:
        message = await asyncio.to_thread(_send)
    except TwilioException as e:
        logger.error(f"Twilio error for {mask_user_id(user_id)}: {e}")
        raise DeliveryError(str(e)) from e

    logger.info(f"Sent WhatsApp to {mask_user_id(user_id)} ({message.sid})")
    return message.sid
