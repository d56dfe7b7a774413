"""Log sanitizer - keeps phone numbers and credentials out of log files.

WhatsApp user ids are phone numbers, so every log line that mentions a
recipient goes through ``mask_user_id`` and free text through
``sanitize_for_log``.
"""

import re
from typing import Union

# Patterns to detect and redact sensitive data
SENSITIVE_PATTERNS = [
    # Anthropic keys and Twilio account SIDs (before the digit patterns)
    (r'sk-ant-[A-Za-z0-9\-_]+', '[API_KEY]'),
    (r'\bAC[0-9a-f]{32}\b', '[TWILIO_SID]'),

    # Twilio-style WhatsApp addresses
    (r'whatsapp:\+?\d{7,15}', 'whatsapp:[PHONE]'),

    # International phone numbers (E.164 with or without the plus)
    (r'\+\d{7,15}\b', '[PHONE]'),
    (r'\b\d{10,15}\b', '[PHONE]'),

    # Email addresses
    (r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b', '[EMAIL]'),

    # API keys, tokens, secrets in key=value format
    (r'(password|secret|token|api_key|apikey|auth|bearer|credential)["\s:=]+[^\s,}"\']{8,}',
     r'\1=[REDACTED]'),

    # Bearer tokens
    (r'(Bearer|Basic)\s+[A-Za-z0-9\-_\.]+', r'\1 [REDACTED]'),
]

# Compiled patterns for efficiency
_COMPILED_PATTERNS = [(re.compile(p, re.IGNORECASE), r) for p, r in SENSITIVE_PATTERNS]


def sanitize_log(text: str) -> str:
    """Remove sensitive data from text for safe logging.

    Args:
        text: The text to sanitize

    Returns:
        Sanitized text with sensitive data replaced by placeholders
    """
    if not text:
        return text

    result = text
    for pattern, replacement in _COMPILED_PATTERNS:
        result = pattern.sub(replacement, result)

    return result


def sanitize_for_log(value: Union[str, bytes, None], max_length: int = 200) -> str:
    """Sanitize and truncate a value for logging.

    Args:
        value: The value to sanitize (string or bytes)
        max_length: Maximum length of returned string

    Returns:
        Sanitized, truncated string safe for logging
    """
    if value is None:
        return "<None>"

    if isinstance(value, bytes):
        text = value.decode('utf-8', errors='replace')
    else:
        text = str(value)

    sanitized = sanitize_log(text)

    if len(sanitized) > max_length:
        return sanitized[:max_length] + f"... [{len(text)} chars total]"

    return sanitized


def mask_user_id(user_id: Union[str, int, None]) -> str:
    """Mask a recipient id, keeping only the last four characters.

    Args:
        user_id: WhatsApp id / phone number

    Returns:
        Masked id such as ``***4567``
    """
    if user_id is None:
        return "<None>"

    text = str(user_id)
    if text.startswith("whatsapp:"):
        text = text[len("whatsapp:"):]
    if len(text) <= 4:
        return "*" * len(text)
    return "***" + text[-4:]
