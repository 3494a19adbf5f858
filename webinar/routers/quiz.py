from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from webinar import llm_client
from webinar.schemas import QuizRead, QuizRequest
from webinar.services.quiz import normalize_questions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["quiz"])


@router.post("/quiz", response_model=QuizRead, response_model_by_alias=True)
async def quiz(payload: QuizRequest):
    if not payload.mode:
        raise HTTPException(400, "mode is required")
    if payload.mode != "generate":
        # grading is done by the client against correctAnswers
        raise HTTPException(400, "Unsupported mode")
    if not payload.slides or not payload.chunk_id:
        raise HTTPException(400, "slides and chunkId are required")
    if any(s.page is None for s in payload.slides):
        raise HTTPException(400, "every slide needs a page")

    slides = [(s.page, s.text or "") for s in payload.slides]
    try:
        raw = await llm_client.generate_quiz_questions(slides)
    except llm_client.QuizGenerationError as e:
        logger.error("quiz: generation failed for chunk %s: %s", payload.chunk_id, e)
        raise HTTPException(500, "Failed to generate quiz") from e

    questions = normalize_questions(raw)
    if not questions:
        logger.error("quiz: no usable questions for chunk %s", payload.chunk_id)
        raise HTTPException(500, "Failed to generate quiz")

    logger.info("quiz: chunk %s -> %d questions", payload.chunk_id, len(questions))
    return {"chunkId": payload.chunk_id, "questions": [q.to_wire() for q in questions]}
