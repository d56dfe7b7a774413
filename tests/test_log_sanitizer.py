"""Tests for keeping phone numbers and secrets out of logs."""

import logging

from logger import LOGGER_NAME, logger
from utils.log_sanitizer import mask_user_id, sanitize_for_log, sanitize_log


def test_mask_user_id():
    assert mask_user_id("919876543210") == "***3210"
    assert mask_user_id("whatsapp:+919876543210") == "***3210"
    assert mask_user_id("123") == "***"
    assert mask_user_id(None) == "<None>"


def test_sanitize_phone_numbers():
    assert sanitize_log("sent to whatsapp:+919876543210") == "sent to whatsapp:[PHONE]"
    assert sanitize_log("call +447700900123 now") == "call [PHONE] now"
    assert sanitize_log("user 919876543210 said hi") == "user [PHONE] said hi"


def test_sanitize_credentials():
    sid = "AC" + "0123456789abcdef" * 2
    assert sanitize_log(f"account {sid}") == "account [TWILIO_SID]"
    assert "sk-ant-" not in sanitize_log("key sk-ant-api03-abcDEF_123")
    assert "abc.def-ghi" not in sanitize_log("Authorization: Bearer abc.def-ghi")
    assert sanitize_log("auth_token=supersecretvalue") == "auth_token=[REDACTED]"


def test_sanitize_for_log_truncates():
    result = sanitize_for_log("x" * 300, max_length=50)
    assert result.startswith("x" * 50)
    assert result.endswith("[300 chars total]")
    assert sanitize_for_log(None) == "<None>"
    assert sanitize_for_log(b"bytes ok") == "bytes ok"


def test_logger_redacts_records(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        logger.info("Sent to whatsapp:+919876543210 (%s)", "SM123")

    assert "919876543210" not in caplog.text
    assert "whatsapp:[PHONE] (SM123)" in caplog.text
