"""In-memory entity store: pure reducers plus the handle that owns a snapshot.

Every mutation is a reducer ``(AppState, ...) -> AppState``.  Reducers never
touch the snapshot they are given; identifiers, timestamps and random draws
are passed in so the functions stay deterministic.  A reducer that rejects
its input returns the *same* snapshot object, so ``new is old`` means
"nothing happened".

``Store`` is the only stateful piece.  It supplies ids, clock and random
source, applies a reducer, and swaps the snapshot reference in one step so
readers only ever see complete states.
"""
from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, Protocol

from startsmart.models import (
    AppState,
    Application,
    ChatMessage,
    Idea,
    Investment,
    PitchSession,
    RecruitmentPost,
    Rejection,
    Sender,
    Stage,
    User,
)
from startsmart.scorer import PITCH_QUESTIONS, WELCOME_MESSAGE
from startsmart.utils import IdFactory, utcnow

log = logging.getLogger(__name__)

AI_SCORE_MIN = 60
AI_SCORE_MAX = 100

QUESTION_COUNT = len(PITCH_QUESTIONS)

# Fields ``update_idea`` may merge; ledger fields are owned by ``record_investment``.
UPDATABLE_IDEA_FIELDS = ("title", "description", "stage", "canvas_generated")


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


# ---------------------------------------------------------------------------
# Initial state
# ---------------------------------------------------------------------------


def initial_state(
    user_id: str = "user-1", user_name: str = "John Doe", tokens: int = 100,
    welcome_id: str = "welcome", now: datetime | None = None,
) -> AppState:
    welcome = ChatMessage(
        id=welcome_id, sender=Sender.ASSISTANT, content=WELCOME_MESSAGE,
        timestamp=now or utcnow(),
    )
    return AppState(
        current_user=User(id=user_id, name=user_name, tokens=tokens),
        chat_messages=(welcome,),
    )


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def investment_rejection(state: AppState, idea_id: str, amount: int) -> Rejection | None:
    """Why ``record_investment`` would no-op for these arguments, or None if it applies."""
    if state.find_idea(idea_id) is None:
        return Rejection.UNKNOWN_REFERENCE
    if amount <= 0 or amount > state.current_user.tokens:
        return Rejection.INSUFFICIENT_BALANCE
    return None


def _replace(items: tuple, target_id: str, fn: Callable[[Any], Any]) -> tuple:
    return tuple(fn(item) if item.id == target_id else item for item in items)


# ---------------------------------------------------------------------------
# Reducers: ideas
# ---------------------------------------------------------------------------


def create_idea(
    state: AppState, *, idea_id: str, title: str, description: str,
    stage: Stage, ai_score: int, now: datetime,
) -> AppState:
    user = state.current_user
    idea = Idea(
        id=idea_id, title=title, description=description, stage=stage,
        ai_score=ai_score, created_at=now, user_id=user.id,
    )
    return state.model_copy(update={
        "ideas": (*state.ideas, idea),
        "current_user": user.model_copy(update={"ideas": (*user.ideas, idea_id)}),
    })


def update_idea(state: AppState, idea_id: str, updates: Mapping[str, Any]) -> AppState:
    """Merge non-None values for ``UPDATABLE_IDEA_FIELDS`` into the idea."""
    if state.find_idea(idea_id) is None:
        return state
    changes = {f: updates[f] for f in UPDATABLE_IDEA_FIELDS if updates.get(f) is not None}
    if "stage" in changes:
        changes["stage"] = Stage(changes["stage"])
    if not changes:
        return state
    return state.model_copy(update={
        "ideas": _replace(state.ideas, idea_id, lambda i: i.model_copy(update=changes)),
    })


def delete_idea(state: AppState, idea_id: str) -> AppState:
    """Drop the idea and the owner's reference to it.

    Investments, pitch sessions and recruitment posts pointing at the idea are
    kept as orphans; the investment ledger stays complete.
    """
    if state.find_idea(idea_id) is None:
        return state
    user = state.current_user
    return state.model_copy(update={
        "ideas": tuple(i for i in state.ideas if i.id != idea_id),
        "current_user": user.model_copy(
            update={"ideas": tuple(i for i in user.ideas if i != idea_id)}
        ),
    })


# ---------------------------------------------------------------------------
# Reducers: investments
# ---------------------------------------------------------------------------


def record_investment(
    state: AppState, *, investment_id: str, idea_id: str, amount: int, now: datetime,
) -> AppState:
    """Debit the user and credit the idea in one snapshot, or return *state* untouched."""
    if investment_rejection(state, idea_id, amount) is not None:
        return state
    user = state.current_user
    investment = Investment(
        id=investment_id, investor_id=user.id, idea_id=idea_id,
        amount=amount, timestamp=now,
    )

    def credit(idea: Idea) -> Idea:
        return idea.model_copy(update={
            "total_investment": idea.total_investment + amount,
            "crowd_votes": idea.crowd_votes + 1,
        })

    return state.model_copy(update={
        "investments": (*state.investments, investment),
        "current_user": user.model_copy(update={
            "tokens": user.tokens - amount,
            "investments": (*user.investments, investment_id),
        }),
        "ideas": _replace(state.ideas, idea_id, credit),
    })


# ---------------------------------------------------------------------------
# Reducers: chat
# ---------------------------------------------------------------------------


def append_chat_message(
    state: AppState, *, message_id: str, sender: Sender, content: str, now: datetime,
) -> AppState:
    message = ChatMessage(id=message_id, sender=Sender(sender), content=content, timestamp=now)
    return state.model_copy(update={"chat_messages": (*state.chat_messages, message)})


# ---------------------------------------------------------------------------
# Reducers: pitch sessions
# ---------------------------------------------------------------------------


def create_pitch_session(state: AppState, *, session_id: str, idea_id: str) -> AppState:
    session = PitchSession(id=session_id, idea_id=idea_id)
    return state.model_copy(update={"pitch_sessions": (*state.pitch_sessions, session)})


def advance_pitch_session(
    state: AppState, session_id: str, *, answer: str, score: int, feedback: str,
) -> AppState:
    """Record one answer and move to the next question.

    No-op for unknown or already completed sessions, so the question index
    never passes ``QUESTION_COUNT``.
    """
    session = state.find_session(session_id)
    if session is None or session.completed:
        return state
    scores = (*session.scores, score)
    index = session.current_question + 1
    advanced = session.model_copy(update={
        "current_question": index,
        "answers": (*session.answers, answer),
        "scores": scores,
        "feedback": (*session.feedback, feedback),
        "score": sum(scores) / len(scores),
        "completed": index >= QUESTION_COUNT,
    })
    return state.model_copy(update={
        "pitch_sessions": _replace(state.pitch_sessions, session_id, lambda _: advanced),
    })


# ---------------------------------------------------------------------------
# Reducers: recruitment
# ---------------------------------------------------------------------------


def create_recruitment_post(
    state: AppState, *, post_id: str, idea_id: str, title: str, description: str,
    skills: Iterable[str], now: datetime,
) -> AppState:
    post = RecruitmentPost(
        id=post_id, idea_id=idea_id, title=title, description=description,
        skills=tuple(skills), created_at=now,
    )
    return state.model_copy(update={"recruitment_posts": (*state.recruitment_posts, post)})


def submit_application(
    state: AppState, post_id: str, *, application_id: str, applicant_name: str,
    email: str, message: str, now: datetime,
) -> AppState:
    if state.find_post(post_id) is None:
        return state
    application = Application(
        id=application_id, applicant_name=applicant_name, email=email,
        message=message, applied_at=now,
    )
    return state.model_copy(update={
        "recruitment_posts": _replace(
            state.recruitment_posts, post_id,
            lambda p: p.model_copy(update={"applications": (*p.applications, application)}),
        ),
    })


# ---------------------------------------------------------------------------
# Store handle
# ---------------------------------------------------------------------------


class Store:
    """Owns the current ``AppState`` and applies reducers to it.

    Each public mutator returns the snapshot that is current afterwards
    (``create_pitch_session`` returns the new session id instead).
    """

    def __init__(
        self,
        state: AppState | None = None,
        *,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] = utcnow,
        ids: IdFactory | None = None,
    ):
        self._lock = threading.Lock()
        self._rng = rng or random.Random()
        self._clock = clock
        self._ids = ids or IdFactory()
        self._state = state if state is not None else initial_state(now=clock())
        self._starting_user = self._state.current_user

    @property
    def state(self) -> AppState:
        return self._state

    def _apply(self, reducer: Callable[..., AppState], *args: Any, **kwargs: Any) -> tuple[AppState, AppState]:
        """Run *reducer* on the current snapshot and swap in its result.

        Returns ``(old, new)``; ``old`` is the exact snapshot the reducer saw,
        so a rejection can be explained from it after the lock is released.
        """
        with self._lock:
            old = self._state
            new = reducer(old, *args, **kwargs)
            self._state = new
        if new is not old:
            log.debug("Applied %s", reducer.__name__)
        return old, new

    def reset(self, state: AppState | None = None) -> AppState:
        """Replace the snapshot wholesale; the id factory carries on."""
        if state is None:
            state = initial_state(
                user_id=self._starting_user.id, user_name=self._starting_user.name,
                tokens=self._starting_user.tokens, welcome_id=self._ids("msg"),
                now=self._clock(),
            )
        with self._lock:
            self._state = state
        log.info("Store reset")
        return state

    # -- ideas --------------------------------------------------------------

    def create_idea(self, title: str, description: str, stage: Stage | str = Stage.IDEA) -> AppState:
        _, state = self._apply(
            create_idea, idea_id=self._ids("idea"), title=title, description=description,
            stage=Stage(stage), ai_score=self._rng.randint(AI_SCORE_MIN, AI_SCORE_MAX),
            now=self._clock(),
        )
        return state

    def update_idea(self, idea_id: str, updates: Mapping[str, Any]) -> AppState:
        old, state = self._apply(update_idea, idea_id, updates)
        if state is old and old.find_idea(idea_id) is None:
            log.info("Update ignored (%s): idea %s", Rejection.UNKNOWN_REFERENCE.value, idea_id)
        return state

    def delete_idea(self, idea_id: str) -> AppState:
        old, state = self._apply(delete_idea, idea_id)
        if state is old:
            log.info("Delete ignored (%s): idea %s", Rejection.UNKNOWN_REFERENCE.value, idea_id)
        return state

    # -- investments --------------------------------------------------------

    def record_investment(self, idea_id: str, amount: int) -> AppState:
        old, state = self._apply(
            record_investment, investment_id=self._ids("inv"), idea_id=idea_id,
            amount=amount, now=self._clock(),
        )
        if state is old:
            reason = investment_rejection(old, idea_id, amount)
            log.info("Investment of %s in %s rejected (%s)", amount, idea_id, reason.value)
        return state

    # -- chat ---------------------------------------------------------------

    def append_chat_message(self, sender: Sender | str, content: str) -> AppState:
        _, state = self._apply(
            append_chat_message, message_id=self._ids("msg"), sender=Sender(sender),
            content=content, now=self._clock(),
        )
        return state

    # -- pitch sessions -----------------------------------------------------

    def create_pitch_session(self, idea_id: str) -> str:
        session_id = self._ids("session")
        self._apply(create_pitch_session, session_id=session_id, idea_id=idea_id)
        return session_id

    def advance_pitch_session(self, session_id: str, answer: str, score: int, feedback: str) -> AppState:
        old, state = self._apply(
            advance_pitch_session, session_id, answer=answer, score=score, feedback=feedback,
        )
        if state is old:
            if old.find_session(session_id) is None:
                log.info("Pitch answer ignored (%s): session %s",
                         Rejection.UNKNOWN_REFERENCE.value, session_id)
            else:
                log.info("Pitch answer ignored: session %s already completed", session_id)
        return state

    # -- recruitment --------------------------------------------------------

    def create_recruitment_post(
        self, idea_id: str, title: str, description: str, skills: Iterable[str],
    ) -> AppState:
        _, state = self._apply(
            create_recruitment_post, post_id=self._ids("post"), idea_id=idea_id,
            title=title, description=description, skills=skills, now=self._clock(),
        )
        return state

    def submit_application(self, post_id: str, applicant_name: str, email: str, message: str) -> AppState:
        old, state = self._apply(
            submit_application, post_id, application_id=self._ids("app"),
            applicant_name=applicant_name, email=email, message=message, now=self._clock(),
        )
        if state is old:
            log.info("Application ignored (%s): post %s", Rejection.UNKNOWN_REFERENCE.value, post_id)
        return state
