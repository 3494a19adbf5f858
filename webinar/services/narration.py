# services/narration.py
"""
Per-slide narration: cache lookup, script generation, speech, upload, cache write.

Stages for one request:

    RECEIVED -> HASH_COMPUTED -> CACHE_HIT -> RESPOND
                              -> CACHE_MISS -> SCRIPT_GENERATING -> SCRIPT_OK
                                 -> AUDIO_GENERATING -> AUDIO_OK | AUDIO_FAILED
                                 -> CACHED -> RESPOND

A failure before SCRIPT_OK is fatal for the request and propagates to the caller.
Audio is best effort: synthesis or upload failures leave audio_url as None.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

from webinar import llm_client
from webinar.services import speech
from webinar.services.content_hash import DEFAULT_DOCUMENT_ID, audio_key, content_hash
from webinar.services.object_store import ObjectStore, UploadError
from webinar.services.script_cache import CacheEntry, ScriptCacheStore

logger = logging.getLogger(__name__)

FALLBACK_SCRIPT = "Unable to generate script for this slide."

ScriptGenerator = Callable[[str], Awaitable[str]]
Synthesizer = Callable[..., Awaitable[Tuple[bytes, str]]]


class NarrationStage(str, enum.Enum):
    received = "RECEIVED"
    hash_computed = "HASH_COMPUTED"
    cache_hit = "CACHE_HIT"
    cache_miss = "CACHE_MISS"
    script_generating = "SCRIPT_GENERATING"
    script_ok = "SCRIPT_OK"
    audio_generating = "AUDIO_GENERATING"
    audio_ok = "AUDIO_OK"
    audio_failed = "AUDIO_FAILED"
    cached = "CACHED"
    respond = "RESPOND"


@dataclass
class NarrationRequest:
    document_id: Optional[str]
    page_number: int
    total_pages: int
    current_text: Optional[str] = None
    previous_text: Optional[str] = None
    next_text: Optional[str] = None


@dataclass
class NarrationResult:
    script: str
    audio_url: Optional[str]
    cached: bool
    content_hash: Optional[str] = None
    stages: List[NarrationStage] = field(default_factory=list)


class ScriptOrchestrator:
    def __init__(
        self,
        store: ScriptCacheStore,
        uploader: ObjectStore,
        *,
        generate: Optional[ScriptGenerator] = None,
        synthesize: Optional[Synthesizer] = None,
        voice_id: Optional[str] = None,
        language: Optional[str] = None,
    ):
        self.store = store
        self.uploader = uploader
        self.generate = generate or llm_client.generate_narration
        self.synthesize = synthesize or speech.synthesize
        self.voice_id = voice_id
        self.language = language

    async def run(self, req: NarrationRequest) -> NarrationResult:
        stages: List[NarrationStage] = []

        def enter(stage: NarrationStage) -> None:
            stages.append(stage)
            logger.debug("narration[%s p%s]: %s", req.document_id, req.page_number, stage.value)

        enter(NarrationStage.received)
        document_id = req.document_id or DEFAULT_DOCUMENT_ID
        digest = content_hash(
            document_id,
            req.page_number,
            req.total_pages,
            req.current_text,
            req.previous_text,
            req.next_text,
        )
        enter(NarrationStage.hash_computed)

        hit = await self.store.get(digest)
        if hit is not None:
            enter(NarrationStage.cache_hit)
            logger.info("narration cache HIT %s (page %s/%s)", digest[:12], req.page_number, req.total_pages)
            enter(NarrationStage.respond)
            return NarrationResult(hit.script, hit.audio_url, True, digest, stages)

        enter(NarrationStage.cache_miss)
        logger.info(
            "narration cache MISS %s (page %s/%s, %d chars)",
            digest[:12], req.page_number, req.total_pages, len(req.current_text or ""),
        )

        enter(NarrationStage.script_generating)
        prompt = llm_client.build_narration_prompt(
            req.page_number,
            req.total_pages,
            req.current_text,
            req.previous_text,
            req.next_text,
        )
        script = await self.generate(prompt)
        enter(NarrationStage.script_ok)

        enter(NarrationStage.audio_generating)
        audio_url = await self._audio_for(digest, script)
        enter(NarrationStage.audio_ok if audio_url else NarrationStage.audio_failed)

        stored = await self.store.put(
            CacheEntry(
                content_hash=digest,
                document_id=document_id,
                page_number=req.page_number,
                total_pages=req.total_pages,
                script=script,
                audio_url=audio_url,
            )
        )
        enter(NarrationStage.cached)
        enter(NarrationStage.respond)
        return NarrationResult(stored.script, stored.audio_url, False, digest, stages)

    async def _audio_for(self, digest: str, script: str) -> Optional[str]:
        try:
            audio, media_type = await self.synthesize(script, self.voice_id, self.language)
            return await self.uploader.upload(audio_key(digest), audio, media_type or speech.DEFAULT_MEDIA_TYPE)
        except (speech.SynthesisError, UploadError) as e:
            logger.warning("narration %s: audio unavailable, continuing text-only: %s", digest[:12], e)
        except Exception:
            logger.exception("narration %s: unexpected audio failure, continuing text-only", digest[:12])
        return None
