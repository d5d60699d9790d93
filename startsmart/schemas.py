"""Pydantic request/response schemas for the StartSmart API."""
from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from startsmart.models import Stage

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


# ---------------------------------------------------------------------------
# Ideas & investments
# ---------------------------------------------------------------------------


class IdeaOut(BaseModel):
    id: str
    title: str
    description: str
    stage: Stage
    ai_score: int
    crowd_votes: int
    total_investment: int
    validation_score: int
    created_at: str
    user_id: str
    canvas_generated: bool


class IdeaCreate(BaseModel):
    title: str
    description: str
    stage: Stage = Stage.IDEA

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _not_blank(v)


class IdeaUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    stage: Stage | None = None
    canvas_generated: bool | None = None


class InvestmentCreate(BaseModel):
    amount: int = Field(gt=0)


class InvestmentOut(BaseModel):
    id: str
    investor_id: str
    idea_id: str
    amount: int
    timestamp: str


class UserOut(BaseModel):
    id: str
    name: str
    tokens: int
    ideas: list[str]
    investments: list[str]


class InvestResult(BaseModel):
    user: UserOut
    idea: IdeaOut
    investment: InvestmentOut


class LeaderboardEntry(BaseModel):
    id: str
    title: str
    validation_score: int
    total_investment: int
    stage: Stage
    has_recruitment: bool


class StatsOut(BaseModel):
    ideas: int
    total_investment: int
    tokens: int
    active_recruitments: int
    investments: int
    completed_pitches: int
    by_stage: dict[str, int]


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatMessageIn(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _not_blank(v)


class ChatMessageOut(BaseModel):
    id: str
    sender: str
    content: str
    timestamp: str


# ---------------------------------------------------------------------------
# Pitch practice
# ---------------------------------------------------------------------------


class PitchQuestionOut(BaseModel):
    number: int
    question: str
    tips: str


class PitchStart(BaseModel):
    idea_id: str


class PitchAnswerIn(BaseModel):
    answer: str

    @field_validator("answer")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _not_blank(v)


class PitchSessionOut(BaseModel):
    id: str
    idea_id: str
    idea_title: str | None = None
    current_question: int
    total_questions: int
    answers: list[str] = []
    scores: list[int] = []
    feedback: list[str] = []
    score: float | None = None
    completed: bool
    next_question: PitchQuestionOut | None = None


class PitchAnswerOut(BaseModel):
    score: int
    tier: str
    feedback: str
    session: PitchSessionOut


# ---------------------------------------------------------------------------
# Canvas
# ---------------------------------------------------------------------------


class CanvasBlockOut(BaseModel):
    key: str
    title: str
    prompt: str
    content: str


class CanvasOut(BaseModel):
    idea_id: str
    idea_title: str
    blocks: list[CanvasBlockOut]


class PlacedTextOut(BaseModel):
    y: float
    text: str
    style: str


class PageOut(BaseModel):
    number: int
    items: list[PlacedTextOut]


class CanvasDocumentIn(BaseModel):
    blocks: dict[str, str] = {}


class CanvasDocumentOut(BaseModel):
    filename: str
    pages: list[PageOut]


# ---------------------------------------------------------------------------
# Recruitment
# ---------------------------------------------------------------------------


class RecruitmentPostCreate(BaseModel):
    idea_id: str
    title: str
    description: str
    skills: list[str] = []

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, list):
            return v
        return [s.strip() if isinstance(s, str) else s for s in v if not isinstance(s, str) or s.strip()]


class ApplicationCreate(BaseModel):
    applicant_name: str
    email: str
    message: str = ""

    @field_validator("applicant_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("email must look like name@example.com")
        return v


class ApplicationOut(BaseModel):
    id: str
    applicant_name: str
    email: str
    message: str
    applied_at: str


class RecruitmentPostOut(BaseModel):
    id: str
    idea_id: str
    idea_title: str | None = None
    title: str
    description: str
    skills: list[str]
    applications: list[ApplicationOut]
    created_at: str
