"""Quiz gating for the slide player: one quiz per chunk of N slides, graded locally."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from webinar.player.api import PortalClient, PortalError
from webinar.player.presentation import PresentationState
from webinar.services.quiz import (
    QuizGrade,
    QuizQuestion,
    chunk_for_page,
    chunk_pages,
    grade_quiz,
    is_quiz_boundary,
)
from webinar.settings.config import settings

logger = logging.getLogger(__name__)


@dataclass
class QuizState:
    slides_per_quiz: int
    active_chunk: Optional[int] = None
    questions: List[QuizQuestion] = field(default_factory=list)
    answers: Dict[str, List[str]] = field(default_factory=dict)
    modal_open: bool = False
    is_loading: bool = False
    error: Optional[str] = None
    grade: Optional[QuizGrade] = None
    completed: Dict[int, QuizGrade] = field(default_factory=dict)


class QuizController:
    def __init__(
        self,
        api: PortalClient,
        presentation: PresentationState,
        state: Optional[QuizState] = None,
        pass_score: Optional[int] = None,
    ):
        self.api = api
        self.presentation = presentation
        self.state = state or QuizState(slides_per_quiz=settings.SLIDES_PER_QUIZ)
        self.pass_score = settings.QUIZ_PASS_SCORE if pass_score is None else pass_score
        self._task: Optional[asyncio.Task] = None
        self._load_serial = 0

    @property
    def blocks_navigation(self) -> bool:
        # forward progress waits for close(), which needs a graded attempt
        return self.state.modal_open

    def chunk_text_ready(self, chunk_id: int) -> bool:
        known = self.presentation.extracted_text
        return all(page in known for page in chunk_pages(chunk_id, self.state.slides_per_quiz))

    def should_trigger(self, page: int) -> bool:
        n = self.state.slides_per_quiz
        if not is_quiz_boundary(page, n) or self.state.modal_open:
            return False
        chunk_id = chunk_for_page(page, n)
        return chunk_id not in self.state.completed and self.chunk_text_ready(chunk_id)

    def on_page_ready(self, page: int) -> Optional[asyncio.Task]:
        if not self.should_trigger(page):
            return None
        return self.open(chunk_for_page(page, self.state.slides_per_quiz))

    def open(self, chunk_id: int) -> asyncio.Task:
        st = self.state
        st.active_chunk = chunk_id
        st.modal_open = True
        logger.info("quiz: opening chunk %s", chunk_id)
        return self._start_load(chunk_id)

    def _start_load(self, chunk_id: int) -> asyncio.Task:
        st = self.state
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._load_serial += 1
        st.questions = []
        st.answers = {}
        st.grade = None
        st.error = None
        st.is_loading = True
        self._task = asyncio.create_task(self._load(chunk_id, self._load_serial), name=f"quiz-chunk-{chunk_id}")
        return self._task

    async def _load(self, chunk_id: int, serial: int) -> None:
        st = self.state
        pages = chunk_pages(chunk_id, st.slides_per_quiz)
        slides = [(page, self.presentation.extracted_text.get(page, "")) for page in pages]
        try:
            questions = await self.api.generate_quiz(chunk_id, slides)
        except PortalError as e:
            if serial == self._load_serial:
                # modal stays open on the error until the user retries
                logger.warning("quiz: chunk %s failed to load: %s", chunk_id, e)
                st.error = str(e)
                st.is_loading = False
            return
        if serial != self._load_serial:
            return
        st.questions = list(questions)
        st.is_loading = False

    # ---------- answering ----------

    def select(self, question_id: str, option: str) -> List[str]:
        question = next((q for q in self.state.questions if q.id == question_id), None)
        if question is None:
            raise KeyError(question_id)
        if option not in question.options:
            raise ValueError(f"{option!r} is not an option of {question_id}")
        current = self.state.answers.get(question_id, [])
        if question.kind == "single":
            chosen = [option]
        elif option in current:
            chosen = [a for a in current if a != option]
        else:
            chosen = current + [option]
        self.state.answers[question_id] = chosen
        return chosen

    def submit(self) -> QuizGrade:
        st = self.state
        if st.active_chunk is None or not st.questions:
            raise RuntimeError("no quiz loaded")
        grade = grade_quiz(st.questions, st.answers, self.pass_score)
        st.grade = grade
        st.completed[st.active_chunk] = grade
        logger.info(
            "quiz: chunk %s scored %s (%s/%s) passed=%s",
            st.active_chunk, grade.score, grade.correct_count, grade.total, grade.passed,
        )
        return grade

    def close(self) -> bool:
        """Closing is only possible after a graded attempt."""
        st = self.state
        if st.grade is None:
            return False
        st.modal_open = False
        return True

    def retry(self, chunk_id: Optional[int] = None) -> asyncio.Task:
        """Regenerate a fresh quiz for the active (or given) chunk."""
        chunk_id = chunk_id or self.state.active_chunk
        if chunk_id is None:
            raise RuntimeError("no chunk to retry")
        self.state.active_chunk = chunk_id
        self.state.modal_open = True
        return self._start_load(chunk_id)
