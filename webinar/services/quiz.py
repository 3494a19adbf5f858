# services/quiz.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence

from webinar.settings.config import settings

logger = logging.getLogger(__name__)

QuestionKind = Literal["single", "multiple"]


@dataclass(frozen=True)
class QuizQuestion:
    id: str
    question: str
    kind: QuestionKind
    options: tuple
    correct_answers: tuple

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "type": self.kind,
            "options": list(self.options),
            "correctAnswers": list(self.correct_answers),
        }

    @classmethod
    def from_wire(cls, data: Mapping) -> "QuizQuestion":
        return cls(
            id=str(data["id"]),
            question=str(data["question"]),
            kind=data["type"],
            options=tuple(data["options"]),
            correct_answers=tuple(data["correctAnswers"]),
        )


@dataclass
class QuizGrade:
    score: int
    passed: bool
    correct_count: int
    total: int
    per_question: Dict[str, bool] = field(default_factory=dict)


# ---------- chunk arithmetic ----------

def chunk_for_page(page: int, per_quiz: int | None = None) -> int:
    n = per_quiz or settings.SLIDES_PER_QUIZ
    return (page - 1) // n + 1


def chunk_pages(chunk_id: int, per_quiz: int | None = None) -> List[int]:
    n = per_quiz or settings.SLIDES_PER_QUIZ
    start = (chunk_id - 1) * n + 1
    return list(range(start, start + n))


def is_quiz_boundary(page: int, per_quiz: int | None = None) -> bool:
    n = per_quiz or settings.SLIDES_PER_QUIZ
    return page >= 1 and page % n == 0


# ---------- normalization of model output ----------

def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _choices(values) -> Optional[List[str]]:
    """Stripped, de-duplicated, non-empty strings; None if any entry is not a string."""
    if not isinstance(values, list):
        return []
    if not all(isinstance(v, str) for v in values):
        return None
    return list(dict.fromkeys(v.strip() for v in values if v.strip()))


def normalize_questions(raw: Iterable[Mapping]) -> List[QuizQuestion]:
    """
    Keep only questions that satisfy the quiz invariants:
    >=2 distinct options, correct answers drawn from the options,
    exactly one for "single", two or more for "multiple", unique ids.
    """
    out: List[QuizQuestion] = []
    seen: set[str] = set()
    for index, item in enumerate(raw, start=1):
        raw_id = item.get("id")
        if isinstance(raw_id, int) and not isinstance(raw_id, bool):
            raw_id = str(raw_id)
        qid = _text(raw_id) or f"q{index}"
        text = _text(item.get("question"))
        kind = _text(item.get("type")).lower()
        raw_options = item.get("options")
        raw_correct = item.get("correctAnswers")
        options = _choices(raw_options)
        correct = _choices(raw_correct)

        reason = None
        if not isinstance(raw_options, list) or not isinstance(raw_correct, list):
            reason = "options and correctAnswers must be lists"
        elif options is None or correct is None:
            reason = "non-string option or answer"
        elif not text:
            reason = "empty question"
        elif kind not in ("single", "multiple"):
            reason = f"unknown type {kind!r}"
        elif len(options) < 2:
            reason = "fewer than two options"
        elif not correct or any(a not in options for a in correct):
            reason = "correct answers not among options"
        elif kind == "single" and len(correct) != 1:
            reason = "single question without exactly one answer"
        elif kind == "multiple" and len(correct) < 2:
            reason = "multiple question with fewer than two answers"
        elif qid in seen:
            reason = f"duplicate id {qid}"
        if reason:
            logger.warning("quiz: dropping question %s (%s)", qid, reason)
            continue
        seen.add(qid)
        out.append(QuizQuestion(qid, text, kind, tuple(options), tuple(correct)))
    return out


# ---------- grading ----------

def is_answer_correct(submitted: Sequence[str], correct: Sequence[str]) -> bool:
    return sorted(submitted) == sorted(correct)


def grade_quiz(
    questions: Sequence[QuizQuestion],
    answers: Mapping[str, Sequence[str]],
    pass_score: int | None = None,
) -> QuizGrade:
    threshold = settings.QUIZ_PASS_SCORE if pass_score is None else pass_score
    per_question = {
        q.id: is_answer_correct(answers.get(q.id) or [], q.correct_answers) for q in questions
    }
    correct_count = sum(1 for ok in per_question.values() if ok)
    total = len(questions)
    # half-up, so 62.5 scores 63
    score = math.floor(100 * correct_count / total + 0.5) if total else 0
    return QuizGrade(
        score=score,
        passed=score >= threshold,
        correct_count=correct_count,
        total=total,
        per_question=per_question,
    )
