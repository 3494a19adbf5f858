from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from webinar.database import get_db
from webinar.llm_client import GenerationError
from webinar.schemas import GenerateScriptError, GenerateScriptRequest, GenerateScriptResponse
from webinar.services.narration import FALLBACK_SCRIPT, NarrationRequest, ScriptOrchestrator
from webinar.services.object_store import (
    AUDIO_PREFIX,
    CACHE_CONTROL,
    AudioNotFound,
    ObjectStore,
    StorageError,
    get_object_store,
)
from webinar.services.script_cache import CacheUnavailable, ScriptCacheStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["narration"])


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
) -> ScriptOrchestrator:
    return ScriptOrchestrator(ScriptCacheStore(db), store)


def _fallback(error: str) -> JSONResponse:
    body = GenerateScriptError(script=FALLBACK_SCRIPT, audio_url=None, error=error)
    return JSONResponse(body.model_dump(by_alias=True), status_code=500)


@router.post("/generate-script", response_model=GenerateScriptResponse)
async def generate_script(
    payload: GenerateScriptRequest,
    orchestrator: ScriptOrchestrator = Depends(get_orchestrator),
):
    logger.info(
        "generate-script: pdf=%s page=%s/%s text=%d chars",
        payload.pdf_id, payload.page_number, payload.total_pages, len(payload.text_content or ""),
    )
    req = NarrationRequest(
        document_id=payload.pdf_id,
        page_number=payload.page_number,
        total_pages=payload.total_pages,
        current_text=payload.text_content,
        previous_text=payload.previous_text,
        next_text=payload.next_text,
    )
    try:
        result = await orchestrator.run(req)
    except (GenerationError, CacheUnavailable) as e:
        logger.error("generate-script failed for page %s: %s", payload.page_number, e)
        return _fallback(str(e))
    except Exception as e:
        logger.exception("generate-script: unexpected failure for page %s", payload.page_number)
        return _fallback(str(e) or e.__class__.__name__)

    body = GenerateScriptResponse(script=result.script, audio_url=result.audio_url, cached=result.cached)
    return JSONResponse(body.model_dump(by_alias=True))


@router.get("/audio/{key:path}")
async def get_audio(key: str, store: ObjectStore = Depends(get_object_store)):
    key = (key or "").strip("/")
    if not key:
        return Response("Audio key required", status_code=400, media_type="text/plain")
    try:
        obj = await store.fetch(f"{AUDIO_PREFIX}{key}")
    except AudioNotFound:
        return Response("Audio not found", status_code=404, media_type="text/plain")
    except StorageError:
        logger.exception("audio: fetch failed for %s", key)
        return Response("Error fetching audio", status_code=500, media_type="text/plain")

    logger.debug("audio: serving %s (%d bytes)", key, len(obj.body))
    return Response(
        content=obj.body,
        media_type=obj.content_type or "audio/mpeg",
        headers={
            "Content-Length": str(len(obj.body)),
            "Cache-Control": CACHE_CONTROL,
            "Accept-Ranges": "bytes",
        },
    )
