import json
import logging
import re
from typing import Optional, Sequence

import httpx

from webinar.settings.config import settings

logger = logging.getLogger(__name__)

PREVIOUS_EXCERPT_CHARS = 500
NEXT_EXCERPT_CHARS = 300


class GenerationError(RuntimeError):
    pass


class QuizGenerationError(GenerationError):
    pass


# ---------- reply cleanup ----------

_FENCED = re.compile(r"```[\w-]*\s*(.*?)```", re.S)
_PREFACE_MARKERS = ("here is", "here's", "here you go")
_PREFACE_LABELS = {"script", "presentation script", "speaking script", "narration"}
_QUOTE_PAIRS = (('"', '"'), ("“", "”"))


def _is_preface(line: str) -> bool:
    if not line.endswith(":") or len(line) > 120:
        return False
    label = line[:-1].strip().lower()
    return label in _PREFACE_LABELS or any(marker in label for marker in _PREFACE_MARKERS)


def _sanitize_llm_text(out: str) -> str:
    """Strip the chat wrapping models put around a script: code fences, a "Here is..." line, quotes."""
    text = (out or "").strip()
    fenced = _FENCED.search(text)
    if fenced and fenced.group(1).strip():
        text = fenced.group(1).strip()

    lines = text.splitlines()
    while lines and (not lines[0].strip() or _is_preface(lines[0].strip())):
        lines.pop(0)
    text = "\n".join(line.rstrip() for line in lines).strip()

    for opening, closing in _QUOTE_PAIRS:
        if len(text) > 1 and text.startswith(opening) and text.endswith(closing):
            text = text[1:-1].strip() or text
            break
    return text


async def chat_completion(
    prompt: str,
    *,
    model: str,
    temperature: float,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Single-turn, non-streaming call to OpenRouter's OpenAI-compatible /chat/completions.
    Returns the raw assistant text.
    """
    url = f"{settings.OPENROUTER_BASE_URL.rstrip('/')}/chat/completions"
    headers = {"Authorization": f"Bearer {settings.OPENROUTER_API_KEY or ''}"}
    payload = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
        "stream": False,
    }
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT) as c:
                r = await c.post(url, json=payload, headers=headers)
        else:
            r = await client.post(url, json=payload, headers=headers)
        r.raise_for_status()
        data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise GenerationError(f"OpenRouter request failed: {e}") from e

    try:
        out = data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationError(f"Malformed OpenRouter response: {str(data)[:200]}") from e
    return out


# -------------------------------
# Slide narration
# -------------------------------

def _excerpt(text: str, limit: int) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "…"


def _position_framing(page_number: int, total_pages: int) -> str:
    if page_number == 1:
        return (
            "This is the OPENING slide. You may greet the audience briefly and introduce "
            "what the session covers."
        )
    if page_number == total_pages:
        return (
            "This is the CLOSING slide. Wrap up the session, summarize the key takeaway "
            "and thank the audience."
        )
    return (
        "This slide CONTINUES an ongoing presentation. Do NOT greet the audience and do NOT "
        "reintroduce the topic; pick up naturally from the previous slide."
    )


def build_narration_prompt(
    page_number: int,
    total_pages: int,
    text_content: Optional[str],
    previous_text: Optional[str] = None,
    next_text: Optional[str] = None,
    *,
    topic: Optional[str] = None,
) -> str:
    topic = topic or settings.PRESENTATION_TOPIC
    sections = [
        f"You are a professional presentation speaker for {topic}. "
        "Generate a natural, engaging presentation script for this slide.",
        "",
        f"Slide {page_number} of {total_pages}:",
        f"Slide Content: {text_content or 'No text content available'}",
        "",
        _position_framing(page_number, total_pages),
    ]
    if previous_text and page_number > 1:
        sections += [
            "",
            "Previous slide content (for continuity only, do not repeat it):",
            _excerpt(previous_text, PREVIOUS_EXCERPT_CHARS),
        ]
    if next_text and page_number < total_pages:
        sections += [
            "",
            "Next slide preview (you may lead into it, do not cover it):",
            _excerpt(next_text, NEXT_EXCERPT_CHARS),
        ]
    sections += [
        "",
        "Create a 30-50 second speaking script that:",
        "- Sounds natural and conversational (like a real presenter, not just reading the slide)",
        "- Explains key concepts in an engaging and educational way",
        "- Maintains a professional training/educational tone",
        "- Is written in the SAME language as the slide content; do not translate",
        "- Contains no labels, headings, stage directions or commentary about the script",
        "",
        "Only return the script text, nothing else.",
    ]
    return "\n".join(sections)


async def generate_narration(prompt: str, *, client: Optional[httpx.AsyncClient] = None) -> str:
    raw = await chat_completion(
        prompt,
        model=settings.SCRIPT_MODEL,
        temperature=settings.SCRIPT_TEMPERATURE,
        client=client,
    )
    script = _sanitize_llm_text(raw)
    if not script:
        raise GenerationError("Empty script from LLM.")
    return script


# -------------------------------
# Quiz generation
# -------------------------------

QUIZ_TEMPLATE = """You are creating a short knowledge check from training slides.
Slides (last {slide_count}):
{slides_text}

Generate exactly {question_count} EASY questions that focus on core facts from these slides.
Mix radio (single correct) and checkbox (multiple correct) styles.
Write the questions in the same language as the slides.

IMPORTANT: Include the correct answer(s) for each question so we can grade automatically.

Return ONLY JSON in this shape:
{{
  "questions": [
    {{
      "id": "q1",
      "question": "What ...?",
      "type": "single",
      "options": ["A", "B", "C", "D"],
      "correctAnswers": ["A"]
    }},
    {{
      "id": "q2",
      "question": "Which of the following...?",
      "type": "multiple",
      "options": ["A", "B", "C", "D"],
      "correctAnswers": ["A", "C"]
    }}
  ]
}}

Rules:
- For "single" type: correctAnswers should have exactly 1 option
- For "multiple" type: correctAnswers should have 2+ options
- correctAnswers must be exact matches from the options array
"""


def build_quiz_prompt(slides: Sequence[tuple[int, str]], question_count: Optional[int] = None) -> str:
    slides_text = "\n".join(f"Slide {page}: {text or 'No text'}" for page, text in slides)
    return QUIZ_TEMPLATE.format(
        slide_count=len(slides),
        slides_text=slides_text,
        question_count=question_count or settings.QUIZ_QUESTION_COUNT,
    )


def _as_json(text: str):
    """First JSON object or array anywhere in the model output, or None."""
    m = re.search(r"\{[\s\S]*\}|\[[\s\S]*\]", text or "")
    if not m:
        return None
    try:
        return json.loads(m.group(0))
    except ValueError:
        return None


async def generate_quiz_questions(
    slides: Sequence[tuple[int, str]],
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> list[dict]:
    """Returns the raw question dicts the model produced; validation happens in services.quiz."""
    prompt = build_quiz_prompt(slides)
    try:
        raw = await chat_completion(
            prompt,
            model=settings.QUIZ_MODEL,
            temperature=settings.QUIZ_TEMPERATURE,
            client=client,
        )
    except GenerationError as e:
        raise QuizGenerationError(str(e)) from e
    data = _as_json(raw)
    if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
        raise QuizGenerationError(f"Quiz model returned no questions: {(raw or '')[:200]}")
    return [q for q in data["questions"] if isinstance(q, dict)]
