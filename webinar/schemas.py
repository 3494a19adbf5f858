from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    # wire format is camelCase; python side stays snake_case
    model_config = ConfigDict(populate_by_name=True)


# =========================
# NARRATION SCHEMAS
# =========================
class GenerateScriptRequest(_CamelModel):
    pdf_id: Optional[str] = Field(default=None, alias="pdfId")
    page_number: int = Field(alias="pageNumber", ge=1)
    total_pages: int = Field(alias="totalPages", ge=1)
    text_content: Optional[str] = Field(default=None, alias="textContent")
    previous_text: Optional[str] = Field(default=None, alias="previousText")
    next_text: Optional[str] = Field(default=None, alias="nextText")


class GenerateScriptResponse(_CamelModel):
    script: str
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    cached: bool = False


class GenerateScriptError(_CamelModel):
    script: str
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    error: str


# =========================
# QUIZ SCHEMAS
# =========================
class SlideText(BaseModel):
    page: Optional[int] = None
    text: Optional[str] = ""


class QuizRequest(_CamelModel):
    # every field optional so missing ones surface as 400 instead of 422
    mode: Optional[str] = None
    chunk_id: Optional[int] = Field(default=None, alias="chunkId")
    slides: Optional[List[SlideText]] = None


class QuizQuestionRead(_CamelModel):
    id: str
    question: str
    type: Literal["single", "multiple"]
    options: List[str]
    correct_answers: List[str] = Field(alias="correctAnswers")


class QuizRead(_CamelModel):
    chunk_id: int = Field(alias="chunkId")
    questions: List[QuizQuestionRead]
