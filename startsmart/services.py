"""Workflow controllers and read-side helpers shared by the API and MCP server."""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum

from startsmart.models import AppState, ChatMessage, Idea, Investment, PitchSession, RecruitmentPost, Sender, Stage
from startsmart.scorer import PITCH_QUESTIONS, AnswerScore, PitchQuestion, chat_response, score_answer
from startsmart.store import Store

log = logging.getLogger(__name__)

LEADERBOARD_TITLE_LEN = 20

IDEA_SORT_FIELDS = ("created", "title", "ai_score", "validation", "investment")

# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def idea_summary(idea: Idea) -> dict:
    return {
        "id": idea.id, "title": idea.title, "description": idea.description,
        "stage": idea.stage.value, "ai_score": idea.ai_score,
        "crowd_votes": idea.crowd_votes, "total_investment": idea.total_investment,
        "validation_score": idea.validation_score,
        "created_at": idea.created_at.isoformat(), "user_id": idea.user_id,
        "canvas_generated": idea.canvas_generated,
    }


def user_summary(state: AppState) -> dict:
    user = state.current_user
    return {
        "id": user.id, "name": user.name, "tokens": user.tokens,
        "ideas": list(user.ideas), "investments": list(user.investments),
    }


def investment_summary(investment: Investment) -> dict:
    return {
        "id": investment.id, "investor_id": investment.investor_id,
        "idea_id": investment.idea_id, "amount": investment.amount,
        "timestamp": investment.timestamp.isoformat(),
    }


def message_summary(message: ChatMessage) -> dict:
    return {
        "id": message.id, "sender": message.sender.value,
        "content": message.content, "timestamp": message.timestamp.isoformat(),
    }


def _idea_title(state: AppState, idea_id: str) -> str | None:
    # Orphaned references (idea deleted) render without a title.
    idea = state.find_idea(idea_id)
    return idea.title if idea else None


def session_summary(state: AppState, session: PitchSession) -> dict:
    next_question = (
        None if session.completed else question_summary(PITCH_QUESTIONS[session.current_question])
    )
    return {
        "id": session.id, "idea_id": session.idea_id,
        "idea_title": _idea_title(state, session.idea_id),
        "current_question": session.current_question,
        "total_questions": len(PITCH_QUESTIONS),
        "answers": list(session.answers), "scores": list(session.scores),
        "feedback": list(session.feedback), "score": session.score,
        "completed": session.completed, "next_question": next_question,
    }


def question_summary(question: PitchQuestion) -> dict:
    return {"number": question.number, "question": question.question, "tips": question.tips}


def post_summary(state: AppState, post: RecruitmentPost) -> dict:
    return {
        "id": post.id, "idea_id": post.idea_id,
        "idea_title": _idea_title(state, post.idea_id),
        "title": post.title, "description": post.description,
        "skills": list(post.skills),
        "applications": [
            {"id": a.id, "applicant_name": a.applicant_name, "email": a.email,
             "message": a.message, "applied_at": a.applied_at.isoformat()}
            for a in post.applications
        ],
        "created_at": post.created_at.isoformat(),
    }


# ---------------------------------------------------------------------------
# Filtering, sorting and rankings
# ---------------------------------------------------------------------------


def filter_and_sort_ideas(
    ideas: tuple[Idea, ...] | list[Idea], *, stage: str | None = None, search: str | None = None,
    sort_by: str = "created", sort_dir: str = "asc",
) -> list[Idea]:
    items = list(ideas)
    if stage:
        stages = {s.strip().lower() for s in stage.split(",")}
        items = [i for i in items if i.stage.value in stages]
    if search:
        q = search.lower()
        items = [i for i in items if q in i.title.lower() or q in i.description.lower()]

    def sort_key(idea: Idea):
        if sort_by == "title":
            return idea.title.lower()
        if sort_by == "ai_score":
            return idea.ai_score
        if sort_by == "validation":
            return idea.validation_score
        if sort_by == "investment":
            return idea.total_investment
        return idea.created_at

    items.sort(key=sort_key, reverse=(sort_dir == "desc"))
    return items


def _short_title(title: str) -> str:
    if len(title) > LEADERBOARD_TITLE_LEN:
        return title[:LEADERBOARD_TITLE_LEN] + "..."
    return title


def leaderboard(state: AppState) -> list[dict]:
    """Ideas ranked by validation score (AI score plus crowd votes), best first."""
    recruiting = {p.idea_id for p in state.recruitment_posts}
    rows = [
        {
            "id": idea.id, "title": _short_title(idea.title),
            "validation_score": idea.validation_score,
            "total_investment": idea.total_investment,
            "stage": idea.stage.value,
            "has_recruitment": idea.id in recruiting,
        }
        for idea in state.ideas
    ]
    rows.sort(key=lambda r: r["validation_score"], reverse=True)
    return rows


def compute_stats(state: AppState) -> dict:
    by_stage = {s.value: 0 for s in Stage}
    for idea in state.ideas:
        by_stage[idea.stage.value] += 1
    return {
        "ideas": len(state.ideas),
        "total_investment": sum(i.total_investment for i in state.ideas),
        "tokens": state.current_user.tokens,
        "active_recruitments": len(state.recruitment_posts),
        "investments": len(state.investments),
        "completed_pitches": sum(1 for s in state.pitch_sessions if s.completed),
        "by_stage": by_stage,
    }


# ---------------------------------------------------------------------------
# Pitch practice
# ---------------------------------------------------------------------------


class PitchPhase(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AnswerResult:
    session: PitchSession
    question: PitchQuestion
    scored: AnswerScore


class PitchController:
    """Drives the six-question investor practice flow over a ``Store``.

    A completed session is terminal; practising again means starting a new
    session.  Abandoning simply means no longer submitting to a session id.
    """

    def __init__(self, store: Store):
        self.store = store

    @staticmethod
    def questions() -> tuple[PitchQuestion, ...]:
        return PITCH_QUESTIONS

    def start(self, idea_id: str) -> str:
        session_id = self.store.create_pitch_session(idea_id)
        log.debug("Pitch session %s started for idea %s", session_id, idea_id)
        return session_id

    def phase(self, session_id: str | None) -> PitchPhase:
        session = self.store.state.find_session(session_id) if session_id else None
        if session is None:
            return PitchPhase.NOT_STARTED
        return PitchPhase.COMPLETED if session.completed else PitchPhase.IN_PROGRESS

    def current_question(self, session_id: str) -> PitchQuestion | None:
        session = self.store.state.find_session(session_id)
        if session is None or session.completed:
            return None
        return PITCH_QUESTIONS[session.current_question]

    def submit_answer(self, session_id: str, answer: str) -> AnswerResult | None:
        """Score *answer* for the current question and advance.

        Returns None (and changes nothing) when the session is unknown or
        already completed.
        """
        question = self.current_question(session_id)
        if question is None:
            return None
        scored = score_answer(answer)
        state = self.store.advance_pitch_session(session_id, answer, scored.score, scored.feedback)
        session = state.find_session(session_id)
        if session is None:
            return None
        if session.completed:
            log.info("Pitch session %s completed with average %.1f", session_id, session.score)
        return AnswerResult(session=session, question=question, scored=scored)

    def average_score(self, session_id: str) -> float | None:
        """Mean of the per-question scores once the session is completed."""
        session = self.store.state.find_session(session_id)
        if session is None or not session.completed:
            return None
        return sum(session.scores) / len(session.scores)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatController:
    """Appends the user's message at once and the assistant reply after a short pause.

    The pause only paces the conversation; with ``delay=(0, 0)`` replies are
    immediate and nothing else changes.
    """

    def __init__(
        self, store: Store, *, delay: tuple[float, float] = (1.0, 2.0),
        rng: random.Random | None = None,
    ):
        self.store = store
        self.delay = delay
        self._rng = rng or random.Random()

    def _pause(self) -> float:
        low, high = self.delay
        return self._rng.uniform(low, high) if high > 0 else 0.0

    def post(self, content: str) -> ChatMessage:
        state = self.store.append_chat_message(Sender.USER, content)
        return state.chat_messages[-1]

    async def reply(self, content: str) -> ChatMessage:
        pause = self._pause()
        log.debug("Assistant reply scheduled in %.2fs", pause)
        await asyncio.sleep(pause)
        state = self.store.append_chat_message(Sender.ASSISTANT, chat_response(content))
        return state.chat_messages[-1]

    async def reply_in_background(self, content: str) -> None:
        """Scheduled-task entry point: a failed reply is logged, not raised."""
        try:
            await self.reply(content)
        except Exception as exc:
            log.warning("Assistant reply failed for %r: %s", content[:40], exc)

    async def send(self, content: str) -> tuple[ChatMessage, ChatMessage]:
        return self.post(content), await self.reply(content)
