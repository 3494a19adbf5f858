"""
Slide player: page state, text extraction, narration requests and audio playback.

Every page visit gets a PageVisit token. Leaving a page cancels its token,
cancels the in-flight narration task and stops audio before anything else
happens, so a late reply for page N can never play after the user moved on.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional, Protocol

from webinar.player.api import PortalClient, PortalError, ScriptReply
from webinar.player.extract import TextExtractor
from webinar.services.narration import NarrationRequest

if TYPE_CHECKING:
    from webinar.player.quiz import QuizController

logger = logging.getLogger(__name__)


class AudioPlayer(Protocol):
    def play(self, url: str) -> None: ...

    def stop(self) -> None: ...


@dataclass
class PageVisit:
    page: int
    serial: int
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def valid(self) -> bool:
        return not self.cancelled


@dataclass
class PresentationState:
    document_id: str
    current_page: int = 1
    total_pages: Optional[int] = None
    extracted_text: Dict[int, str] = field(default_factory=dict)
    scripts: Dict[int, str] = field(default_factory=dict)
    audio_urls: Dict[int, Optional[str]] = field(default_factory=dict)
    errors: Dict[int, str] = field(default_factory=dict)
    is_loading_script: bool = False
    is_speaking: bool = False
    visit: Optional[PageVisit] = None


class PresentationController:
    def __init__(
        self,
        state: PresentationState,
        api: PortalClient,
        extractor: TextExtractor,
        player: AudioPlayer,
        quiz: Optional["QuizController"] = None,
    ):
        self.state = state
        self.api = api
        self.extractor = extractor
        self.player = player
        self.quiz = quiz
        self._task: Optional[asyncio.Task] = None
        self._serial = 0

    # ---------- document / text ----------

    def load_document(self) -> int:
        self.state.total_pages = self.extractor.page_count
        return self.state.total_pages

    def _extract(self, page: int) -> None:
        if page in self.state.extracted_text:
            return
        self.state.extracted_text[page] = self.extractor.extract(page)

    def render_page(self, page: int) -> str:
        """Extract the page's text, then its direct neighbours if not already known."""
        self._extract(page)
        total = self.state.total_pages or 0
        for neighbour in (page - 1, page + 1):
            if 1 <= neighbour <= total:
                self._extract(neighbour)
        return self.state.extracted_text[page]

    # ---------- navigation ----------

    def go_to(self, page: int) -> Optional[asyncio.Task]:
        """
        Show `page`. Returns the narration task, or None when navigation is
        refused (out of range, or forward while a quiz is unanswered).
        Must be called from inside a running event loop.
        """
        st = self.state
        total = st.total_pages
        if total is None or page < 1 or page > total:
            return None
        if page > st.current_page and self.quiz is not None and self.quiz.blocks_navigation:
            logger.debug("player: forward navigation to %s blocked by quiz", page)
            return None

        self._leave_page()
        st.current_page = page
        self._serial += 1
        visit = PageVisit(page=page, serial=self._serial)
        st.visit = visit

        self.render_page(page)
        if self.quiz is not None:
            self.quiz.on_page_ready(page)

        self._task = asyncio.create_task(self._narrate(visit), name=f"narration-p{page}")
        return self._task

    def next_page(self) -> Optional[asyncio.Task]:
        return self.go_to(self.state.current_page + 1)

    def previous_page(self) -> Optional[asyncio.Task]:
        return self.go_to(self.state.current_page - 1)

    def _leave_page(self) -> None:
        st = self.state
        if st.visit is not None:
            st.visit.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.player.stop()
        st.is_speaking = False
        st.is_loading_script = False

    async def close(self) -> None:
        self._leave_page()
        self.state.visit = None

    # ---------- narration ----------

    def _request_for(self, page: int) -> NarrationRequest:
        st = self.state
        return NarrationRequest(
            document_id=st.document_id,
            page_number=page,
            total_pages=st.total_pages,
            current_text=st.extracted_text.get(page),
            previous_text=st.extracted_text.get(page - 1),
            next_text=st.extracted_text.get(page + 1),
        )

    async def _narrate(self, visit: PageVisit) -> None:
        st = self.state
        page = visit.page
        if st.total_pages is None or page not in st.extracted_text:
            return

        if page in st.scripts and st.audio_urls.get(page):
            self._play(visit, st.audio_urls[page])
            return

        st.is_loading_script = True
        try:
            reply = await self.api.generate_script(self._request_for(page))
        except PortalError as e:
            if visit.valid:
                logger.warning("player: narration for page %s failed: %s", page, e)
                st.errors[page] = str(e)
                st.is_loading_script = False
            return

        if not visit.valid:
            logger.debug("player: dropping stale narration for page %s", page)
            return
        st.is_loading_script = False
        self._apply(page, reply)
        if reply.audio_url:
            self._play(visit, reply.audio_url)

    def _apply(self, page: int, reply: ScriptReply) -> None:
        st = self.state
        st.scripts[page] = reply.script
        st.audio_urls[page] = reply.audio_url
        if reply.error:
            st.errors[page] = reply.error
        else:
            st.errors.pop(page, None)

    # ---------- audio ----------

    def _play(self, visit: PageVisit, url: str) -> None:
        if not visit.valid:
            return
        self.player.play(url)
        self.state.is_speaking = True

    def playback_finished(self) -> None:
        self.state.is_speaking = False
