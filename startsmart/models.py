from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Stage(str, Enum):
    IDEA = "idea"
    PROTOTYPE = "prototype"
    TESTING = "testing"
    LAUNCH = "launch"


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Rejection(str, Enum):
    """The two ways a store mutation can silently no-op."""
    INSUFFICIENT_BALANCE = "insufficient_balance"
    UNKNOWN_REFERENCE = "unknown_reference"


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True)


class User(_Entity):
    id: str
    name: str
    tokens: int
    ideas: tuple[str, ...] = ()
    investments: tuple[str, ...] = ()


class Idea(_Entity):
    id: str
    title: str
    description: str
    stage: Stage = Stage.IDEA
    ai_score: int
    crowd_votes: int = 0
    total_investment: int = 0
    created_at: datetime
    user_id: str
    canvas_generated: bool = False

    @property
    def validation_score(self) -> int:
        return self.ai_score + self.crowd_votes


class Investment(_Entity):
    id: str
    investor_id: str
    idea_id: str
    amount: int
    timestamp: datetime


class ChatMessage(_Entity):
    id: str
    sender: Sender
    content: str
    timestamp: datetime


class PitchSession(_Entity):
    id: str
    idea_id: str
    current_question: int = 0
    answers: tuple[str, ...] = ()
    scores: tuple[int, ...] = ()
    feedback: tuple[str, ...] = ()
    score: float | None = None  # running mean of ``scores``
    completed: bool = False


class Application(_Entity):
    id: str
    applicant_name: str
    email: str
    message: str
    applied_at: datetime


class RecruitmentPost(_Entity):
    id: str
    idea_id: str
    title: str
    description: str
    skills: tuple[str, ...] = ()
    applications: tuple[Application, ...] = ()
    created_at: datetime


# ---------------------------------------------------------------------------
# Store snapshot
# ---------------------------------------------------------------------------


class AppState(_Entity):
    """One immutable snapshot of every collection plus the current user.

    Collections are tuples in insertion order; reducers replace the whole
    snapshot rather than mutating it.
    """
    current_user: User
    ideas: tuple[Idea, ...] = ()
    investments: tuple[Investment, ...] = ()
    chat_messages: tuple[ChatMessage, ...] = ()
    pitch_sessions: tuple[PitchSession, ...] = ()
    recruitment_posts: tuple[RecruitmentPost, ...] = ()

    def find_idea(self, idea_id: str) -> Idea | None:
        return next((i for i in self.ideas if i.id == idea_id), None)

    def find_session(self, session_id: str) -> PitchSession | None:
        return next((s for s in self.pitch_sessions if s.id == session_id), None)

    def find_post(self, post_id: str) -> RecruitmentPost | None:
        return next((p for p in self.recruitment_posts if p.id == post_id), None)
