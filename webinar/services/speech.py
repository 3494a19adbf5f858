# services/speech.py
import logging
from typing import Optional, Tuple

import httpx

from webinar.settings.config import settings

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "audio/mpeg"


class SynthesisError(RuntimeError):
    pass


async def synthesize(
    script: str,
    voice_id: Optional[str] = None,
    language: Optional[str] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[bytes, str]:
    """
    Text to speech through ElevenLabs. Returns (audio_bytes, media_type).
    Any failure raises SynthesisError; callers decide whether that is fatal.
    """
    if not (script or "").strip():
        raise SynthesisError("Nothing to synthesize")
    if not settings.ELEVENLABS_API_KEY:
        raise SynthesisError("ELEVENLABS_API_KEY is not configured")

    voice = voice_id or settings.ELEVENLABS_VOICE_ID
    url = f"{settings.ELEVENLABS_BASE_URL.rstrip('/')}/text-to-speech/{voice}"
    headers = {
        "xi-api-key": settings.ELEVENLABS_API_KEY,
        "Accept": DEFAULT_MEDIA_TYPE,
    }
    payload = {"text": script, "model_id": settings.ELEVENLABS_MODEL}
    language = language or settings.NARRATION_LANGUAGE
    if language:
        payload["language_code"] = language

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.TTS_TIMEOUT) as c:
                r = await c.post(url, json=payload, headers=headers)
        else:
            r = await client.post(url, json=payload, headers=headers)
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise SynthesisError(f"ElevenLabs request failed: {e}") from e

    audio = r.content
    if not audio:
        raise SynthesisError("ElevenLabs returned an empty audio body")
    media_type = (r.headers.get("content-type") or DEFAULT_MEDIA_TYPE).split(";")[0].strip()
    logger.debug("tts: voice=%s bytes=%d type=%s", voice, len(audio), media_type)
    return audio, media_type
