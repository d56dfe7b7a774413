"""Pull the core task out of a reminder request with Claude Haiku.

"Remind me to call Vaibhav" -> "call Vaibhav". Any failure falls back to the
text we were given, so a reminder is never lost because of this step.
"""

import re

import httpx

from config import ANTHROPIC_API_KEY, CRUX_MODEL
from logger import logger
from . import config

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"

CRUX_PROMPT = """Extract the core task or item the user wants to be reminded about from the following text. Remove any leading phrases like "Remind me to", "Can you remind me to", "I need to be reminded about". Just provide the concise task itself.

Example:
Text: "Remind me to call Vaibhav"
Crux: "call Vaibhav"

Text: "I need to be reminded about buying groceries"
Crux: "buying groceries"

Text: "meeting with John"
Crux: "meeting with John"

Text: "{text}"
Crux:"""


def clean_crux(answer: str) -> str:
    """Strip markdown fences, a leading 'Crux:' label and wrapping quotes."""
    cleaned = re.sub(r'```\w*', '', answer).strip()
    cleaned = re.sub(r'^crux:\s*', '', cleaned, flags=re.IGNORECASE)
    # Only the first line is the task
    cleaned = cleaned.splitlines()[0].strip() if cleaned else ''
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in '"\'':
        cleaned = cleaned[1:-1].strip()
    return cleaned


async def extract_crux(raw_text: str) -> str:
    """Ask Claude for the concise task in raw_text.

    Args:
        raw_text: Reminder request with the time expression already removed

    Returns:
        The concise task, or raw_text unchanged if the API is unavailable
    """
    if not ANTHROPIC_API_KEY:
        return raw_text

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                ANTHROPIC_URL,
                headers={
                    "x-api-key": ANTHROPIC_API_KEY,
                    "anthropic-version": "2023-06-01",
                    "content-type": "application/json"
                },
                json={
                    "model": CRUX_MODEL,
                    "max_tokens": config.CRUX_MAX_TOKENS,
                    "messages": [{"role": "user", "content": CRUX_PROMPT.format(text=raw_text)}]
                },
                timeout=config.CRUX_TIMEOUT
            )

            if response.status_code != 200:
                logger.warning(f"Crux extraction returned {response.status_code}, using raw text")
                return raw_text

            data = response.json()
            crux = clean_crux(data["content"][0]["text"])
            if not crux:
                logger.warning("Crux extraction returned nothing, using raw text")
                return raw_text

            logger.debug(f"Crux extracted ({len(raw_text)} -> {len(crux)} chars)")
            return crux

    except Exception as e:
        logger.error(f"Crux extraction error: {e}")
        return raw_text
