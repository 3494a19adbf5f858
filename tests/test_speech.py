from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from webinar.services import speech
from webinar.services.speech import SynthesisError, synthesize
from webinar.settings.config import settings


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_synthesize_posts_script_to_voice_endpoint() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("xi-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"MP3DATA", headers={"content-type": "audio/mpeg"})

    async def scenario():
        async with _client(handler) as client:
            return await synthesize("Good morning.", "voice-123", "bs", client=client)

    audio, media_type = asyncio.run(scenario())
    assert audio == b"MP3DATA"
    assert media_type == "audio/mpeg"
    assert seen["url"].endswith("/text-to-speech/voice-123")
    assert seen["key"] == "test-elevenlabs-key"
    assert seen["body"] == {
        "text": "Good morning.",
        "model_id": settings.ELEVENLABS_MODEL,
        "language_code": "bs",
    }


def test_default_voice_and_media_type() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"MP3DATA")

    async def scenario():
        async with _client(handler) as client:
            return await synthesize("Good morning.", client=client)

    _, media_type = asyncio.run(scenario())
    assert seen["url"].endswith(f"/text-to-speech/{settings.ELEVENLABS_VOICE_ID}")
    assert "language_code" not in seen["body"]
    assert media_type == speech.DEFAULT_MEDIA_TYPE


def test_provider_error_raises_synthesis_error() -> None:
    async def scenario():
        async with _client(lambda request: httpx.Response(401, json={"detail": "bad key"})) as client:
            await synthesize("Good morning.", client=client)

    with pytest.raises(SynthesisError):
        asyncio.run(scenario())


def test_empty_audio_raises_synthesis_error() -> None:
    async def scenario():
        async with _client(lambda request: httpx.Response(200, content=b"")) as client:
            await synthesize("Good morning.", client=client)

    with pytest.raises(SynthesisError):
        asyncio.run(scenario())


def test_missing_api_key_raises_without_calling_provider(monkeypatch) -> None:
    monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", None)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=b"x")

    async def scenario():
        async with _client(handler) as client:
            await synthesize("Good morning.", client=client)

    with pytest.raises(SynthesisError):
        asyncio.run(scenario())
    assert calls == []
