"""Tests for crux extraction."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from reminders.crux import clean_crux, extract_crux


def test_clean_crux():
    assert clean_crux('"call Vaibhav"') == "call Vaibhav"
    assert clean_crux("Crux: buying groceries") == "buying groceries"
    assert clean_crux("```\nmeeting with John\n```") == "meeting with John"
    assert clean_crux("pay rent\nsecond line") == "pay rent"
    assert clean_crux("") == ""


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    with patch("reminders.crux.ANTHROPIC_API_KEY", "test-key"), \
            patch("httpx.AsyncClient") as mock:
        client = AsyncMock()
        mock.return_value.__aenter__.return_value = client
        yield client


def _response(status_code=200, text='"call Vaibhav"'):
    return Mock(status_code=status_code, json=Mock(return_value={"content": [{"text": text}]}))


@pytest.mark.asyncio
async def test_extract_crux(mock_httpx_client):
    mock_httpx_client.post.return_value = _response()

    assert await extract_crux("Remind me to call Vaibhav") == "call Vaibhav"

    kwargs = mock_httpx_client.post.call_args.kwargs
    assert kwargs["headers"]["x-api-key"] == "test-key"
    assert "Remind me to call Vaibhav" in kwargs["json"]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_extract_crux_without_key():
    # no_crux_api fixture removes the key
    assert await extract_crux("Remind me to call Vaibhav") == "Remind me to call Vaibhav"


@pytest.mark.asyncio
async def test_extract_crux_http_error(mock_httpx_client):
    mock_httpx_client.post.return_value = _response(status_code=529)

    assert await extract_crux("Remind me to stretch") == "Remind me to stretch"


@pytest.mark.asyncio
async def test_extract_crux_empty_answer(mock_httpx_client):
    mock_httpx_client.post.return_value = _response(text='""')

    assert await extract_crux("Remind me to stretch") == "Remind me to stretch"


@pytest.mark.asyncio
async def test_extract_crux_timeout(mock_httpx_client):
    mock_httpx_client.post.side_effect = httpx.ReadTimeout("slow")

    assert await extract_crux("Remind me to stretch") == "Remind me to stretch"
