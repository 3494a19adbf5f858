"""Async client for the portal's narration and quiz endpoints, used by the slide player."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import httpx

from webinar.services.narration import NarrationRequest
from webinar.services.quiz import QuizQuestion

logger = logging.getLogger(__name__)


class PortalError(RuntimeError):
    pass


@dataclass
class ScriptReply:
    script: str
    audio_url: Optional[str]
    cached: bool
    error: Optional[str] = None


class PortalClient:
    def __init__(self, base_url: str = "", *, client: Optional[httpx.AsyncClient] = None, timeout: float = 120.0):
        self._owns_client = client is None
        self.http = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def generate_script(self, req: NarrationRequest) -> ScriptReply:
        body = {
            "pdfId": req.document_id,
            "pageNumber": req.page_number,
            "totalPages": req.total_pages,
            "textContent": req.current_text,
        }
        if req.previous_text:
            body["previousText"] = req.previous_text
        if req.next_text:
            body["nextText"] = req.next_text
        try:
            r = await self.http.post("/api/generate-script", json=body)
        except httpx.HTTPError as e:
            raise PortalError(f"generate-script request failed: {e}") from e

        # a 500 still carries the fallback script
        if r.status_code not in (200, 500):
            raise PortalError(f"generate-script returned {r.status_code}: {r.text[:200]}")
        try:
            data = r.json()
        except ValueError as e:
            raise PortalError(f"generate-script returned non-JSON ({r.status_code})") from e
        return ScriptReply(
            script=data.get("script") or "",
            audio_url=data.get("audioUrl"),
            cached=bool(data.get("cached", False)),
            error=data.get("error"),
        )

    async def generate_quiz(self, chunk_id: int, slides: Sequence[Tuple[int, str]]) -> List[QuizQuestion]:
        body = {
            "mode": "generate",
            "chunkId": chunk_id,
            "slides": [{"page": page, "text": text} for page, text in slides],
        }
        try:
            r = await self.http.post("/api/quiz", json=body)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PortalError(f"quiz request for chunk {chunk_id} failed: {e}") from e
        return [QuizQuestion.from_wire(q) for q in data.get("questions") or []]
