from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from startsmart import export, services
from startsmart.config import build_store, load_settings
from startsmart.models import AppState, Rejection
from startsmart.schemas import (
    ApplicationCreate,
    CanvasDocumentIn,
    CanvasDocumentOut,
    CanvasOut,
    ChatMessageIn,
    ChatMessageOut,
    IdeaCreate,
    IdeaOut,
    IdeaUpdate,
    InvestmentCreate,
    InvestmentOut,
    InvestResult,
    LeaderboardEntry,
    PitchAnswerIn,
    PitchAnswerOut,
    PitchQuestionOut,
    PitchSessionOut,
    PitchStart,
    RecruitmentPostCreate,
    RecruitmentPostOut,
    StatsOut,
    UserOut,
)
from startsmart.scorer import CANVAS_BLOCKS, generate_canvas
from startsmart.store import Store, investment_rejection

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    app.state.settings = settings
    app.state.store = build_store(settings)
    log.info("StartSmart store ready for %s with %s tokens", settings.user_name, settings.initial_tokens)
    yield


app = FastAPI(
    title="StartSmart",
    version="0.1.0",
    description=(
        "Startup incubation API: track ideas, chat with a scripted mentor, draft "
        "business model canvases, practise investor pitches, invest tokens, and "
        "recruit collaborators. All state is in memory and lost on restart."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Ideas", "description": "Create, browse, edit, and delete startup ideas."},
        {"name": "Funding", "description": "Token investments and the validation leaderboard."},
        {"name": "Chat", "description": "Scripted mentor chat. Replies arrive shortly after the message."},
        {"name": "Pitch", "description": "Six-question investor pitch practice with per-answer scoring."},
        {"name": "Canvas", "description": "Business model canvas drafts and paginated documents."},
        {"name": "Recruitment", "description": "Team recruitment posts and applications."},
        {"name": "Stats", "description": "Dashboard aggregates."},
        {"name": "Admin", "description": "Administrative operations."},
    ],
)


# ---------------------------------------------------------------------------
# Dependencies & Helpers
# ---------------------------------------------------------------------------


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_pitch(store: Store = Depends(get_store)) -> services.PitchController:
    return services.PitchController(store)


def get_chat(request: Request, store: Store = Depends(get_store)) -> services.ChatController:
    return services.ChatController(store, delay=request.app.state.settings.chat_delay)


def _idea_or_404(state: AppState, idea_id: str):
    idea = state.find_idea(idea_id)
    if idea is None:
        raise HTTPException(404, "Idea not found")
    return idea


def _session_or_404(state: AppState, session_id: str):
    session = state.find_session(session_id)
    if session is None:
        raise HTTPException(404, "Pitch session not found")
    return session


# ---------------------------------------------------------------------------
# Routes: Root & User
# ---------------------------------------------------------------------------


@app.get("/")
async def root():
    return {"name": app.title, "version": app.version, "docs": "/docs"}


@app.get("/api/user", response_model=UserOut, tags=["Funding"], summary="Current user and token balance")
async def get_user(store: Store = Depends(get_store)):
    return services.user_summary(store.state)


# ---------------------------------------------------------------------------
# Routes: Ideas
# ---------------------------------------------------------------------------


@app.get("/api/ideas", response_model=list[IdeaOut],
         tags=["Ideas"], summary="List ideas with filtering and sorting")
async def list_ideas(
    stage: str | None = Query(None, description="Comma-separated: idea, prototype, testing, launch"),
    search: str | None = Query(None, description="Free-text search across title and description"),
    sort_by: str = Query("created", description=f"Sort field: {', '.join(services.IDEA_SORT_FIELDS)}"),
    sort_dir: str = Query("asc", description="asc or desc"),
    store: Store = Depends(get_store),
):
    ideas = services.filter_and_sort_ideas(
        store.state.ideas, stage=stage, search=search, sort_by=sort_by, sort_dir=sort_dir,
    )
    return [services.idea_summary(i) for i in ideas]


@app.post("/api/ideas", response_model=IdeaOut, status_code=201,
          tags=["Ideas"], summary="Submit a new idea (AI score assigned on creation)")
async def create_idea(body: IdeaCreate, store: Store = Depends(get_store)):
    state = store.create_idea(body.title, body.description, body.stage)
    return services.idea_summary(state.ideas[-1])


@app.get("/api/ideas/{idea_id}", response_model=IdeaOut, tags=["Ideas"], summary="Get one idea")
async def get_idea(idea_id: str, store: Store = Depends(get_store)):
    return services.idea_summary(_idea_or_404(store.state, idea_id))


@app.put("/api/ideas/{idea_id}", response_model=IdeaOut,
         tags=["Ideas"], summary="Update idea fields (partial update, null fields ignored)")
async def update_idea(idea_id: str, body: IdeaUpdate, store: Store = Depends(get_store)):
    _idea_or_404(store.state, idea_id)
    state = store.update_idea(idea_id, body.model_dump())
    return services.idea_summary(_idea_or_404(state, idea_id))


@app.delete("/api/ideas/{idea_id}", tags=["Ideas"],
            summary="Delete an idea (investments, sessions, and posts are kept)")
async def delete_idea(idea_id: str, store: Store = Depends(get_store)):
    _idea_or_404(store.state, idea_id)
    store.delete_idea(idea_id)
    return {"ok": True}


# ---------------------------------------------------------------------------
# Routes: Funding
# ---------------------------------------------------------------------------


@app.post("/api/ideas/{idea_id}/invest", response_model=InvestResult,
          tags=["Funding"], summary="Invest tokens in an idea")
async def invest(idea_id: str, body: InvestmentCreate, store: Store = Depends(get_store)):
    reason = investment_rejection(store.state, idea_id, body.amount)
    if reason is Rejection.UNKNOWN_REFERENCE:
        raise HTTPException(404, "Idea not found")
    if reason is Rejection.INSUFFICIENT_BALANCE:
        raise HTTPException(400, f"Insufficient tokens: {store.state.current_user.tokens} available")
    state = store.record_investment(idea_id, body.amount)
    return {
        "user": services.user_summary(state),
        "idea": services.idea_summary(_idea_or_404(state, idea_id)),
        "investment": services.investment_summary(state.investments[-1]),
    }


@app.get("/api/investments", response_model=list[InvestmentOut],
         tags=["Funding"], summary="List every investment in order")
async def list_investments(store: Store = Depends(get_store)):
    return [services.investment_summary(i) for i in store.state.investments]


@app.get("/api/leaderboard", response_model=list[LeaderboardEntry],
         tags=["Funding"], summary="Ideas ranked by validation score")
async def get_leaderboard(store: Store = Depends(get_store)):
    return services.leaderboard(store.state)


# ---------------------------------------------------------------------------
# Routes: Chat
# ---------------------------------------------------------------------------


@app.get("/api/chat", response_model=list[ChatMessageOut], tags=["Chat"], summary="Chat history")
async def list_messages(store: Store = Depends(get_store)):
    return [services.message_summary(m) for m in store.state.chat_messages]


@app.post("/api/chat", response_model=ChatMessageOut, status_code=201,
          tags=["Chat"], summary="Send a message; the mentor reply is appended shortly after")
async def send_message(
    body: ChatMessageIn, background: BackgroundTasks,
    chat: services.ChatController = Depends(get_chat),
):
    message = chat.post(body.content)
    background.add_task(chat.reply_in_background, body.content)
    return services.message_summary(message)


# ---------------------------------------------------------------------------
# Routes: Pitch
# ---------------------------------------------------------------------------


@app.get("/api/pitch/questions", response_model=list[PitchQuestionOut],
         tags=["Pitch"], summary="The fixed investor question set")
async def list_questions():
    return [services.question_summary(q) for q in services.PitchController.questions()]


@app.get("/api/pitch/sessions", response_model=list[PitchSessionOut], tags=["Pitch"], summary="List sessions")
async def list_sessions(store: Store = Depends(get_store)):
    state = store.state
    return [services.session_summary(state, s) for s in state.pitch_sessions]


@app.post("/api/pitch/sessions", response_model=PitchSessionOut, status_code=201,
          tags=["Pitch"], summary="Start a pitch practice session for an idea")
async def start_session(
    body: PitchStart, store: Store = Depends(get_store),
    pitch: services.PitchController = Depends(get_pitch),
):
    _idea_or_404(store.state, body.idea_id)
    session_id = pitch.start(body.idea_id)
    state = store.state
    return services.session_summary(state, _session_or_404(state, session_id))


@app.get("/api/pitch/sessions/{session_id}", response_model=PitchSessionOut,
         tags=["Pitch"], summary="Get a pitch session")
async def get_session(session_id: str, store: Store = Depends(get_store)):
    state = store.state
    return services.session_summary(state, _session_or_404(state, session_id))


@app.post("/api/pitch/sessions/{session_id}/answers", response_model=PitchAnswerOut,
          tags=["Pitch"], summary="Answer the current question and receive feedback")
async def submit_answer(
    session_id: str, body: PitchAnswerIn, store: Store = Depends(get_store),
    pitch: services.PitchController = Depends(get_pitch),
):
    _session_or_404(store.state, session_id)
    result = pitch.submit_answer(session_id, body.answer)
    if result is None:
        raise HTTPException(409, "Pitch session already completed")
    return {
        "score": result.scored.score, "tier": result.scored.tier.value,
        "feedback": result.scored.feedback,
        "session": services.session_summary(store.state, result.session),
    }


# ---------------------------------------------------------------------------
# Routes: Canvas
# ---------------------------------------------------------------------------


@app.post("/api/ideas/{idea_id}/canvas", response_model=CanvasOut,
          tags=["Canvas"], summary="Generate a business model canvas draft for an idea")
async def create_canvas(idea_id: str, store: Store = Depends(get_store)):
    idea = _idea_or_404(store.state, idea_id)
    canvas = generate_canvas(idea.title, idea.description)
    store.update_idea(idea_id, {"canvas_generated": True})
    return {
        "idea_id": idea.id, "idea_title": idea.title,
        "blocks": [
            {"key": b.key, "title": b.title, "prompt": b.prompt, "content": canvas[b.key]}
            for b in CANVAS_BLOCKS
        ],
    }


def _canvas_document(idea, edits: dict[str, str], fmt: str):
    canvas = generate_canvas(idea.title, idea.description)
    # Edited block text replaces the draft; unknown keys are ignored.
    canvas.update({k: v for k, v in edits.items() if k in canvas})
    pages = export.layout_canvas(idea.title, canvas)
    filename = export.document_filename(idea.title)
    if fmt == "text":
        return PlainTextResponse(
            export.render_text(pages),
            headers={"Content-Disposition": export.content_disposition(filename)},
        )
    return {
        "filename": filename,
        "pages": [
            {"number": p.number,
             "items": [{"y": i.y, "text": i.text, "style": i.style} for i in p.items]}
            for p in pages
        ],
    }


@app.get("/api/ideas/{idea_id}/canvas/document", response_model=CanvasDocumentOut,
         tags=["Canvas"], summary="Lay out the drafted canvas as a paginated document",
         responses={200: {"content": {"text/plain": {}}}})
async def canvas_document(
    idea_id: str,
    fmt: str = Query("json", alias="format", description="json or text"),
    store: Store = Depends(get_store),
):
    idea = _idea_or_404(store.state, idea_id)
    return _canvas_document(idea, {}, fmt)


@app.post("/api/ideas/{idea_id}/canvas/document", response_model=CanvasDocumentOut,
          tags=["Canvas"], summary="Lay out an edited canvas as a paginated document",
          responses={200: {"content": {"text/plain": {}}}})
async def edited_canvas_document(
    idea_id: str, body: CanvasDocumentIn,
    fmt: str = Query("json", alias="format", description="json or text"),
    store: Store = Depends(get_store),
):
    idea = _idea_or_404(store.state, idea_id)
    return _canvas_document(idea, body.blocks, fmt)


# ---------------------------------------------------------------------------
# Routes: Recruitment
# ---------------------------------------------------------------------------


@app.get("/api/recruitment", response_model=list[RecruitmentPostOut],
         tags=["Recruitment"], summary="List recruitment posts")
async def list_posts(store: Store = Depends(get_store)):
    state = store.state
    return [services.post_summary(state, p) for p in state.recruitment_posts]


@app.post("/api/recruitment", response_model=RecruitmentPostOut, status_code=201,
          tags=["Recruitment"], summary="Open a recruitment post for an idea")
async def create_post(body: RecruitmentPostCreate, store: Store = Depends(get_store)):
    _idea_or_404(store.state, body.idea_id)
    state = store.create_recruitment_post(body.idea_id, body.title, body.description, body.skills)
    return services.post_summary(state, state.recruitment_posts[-1])


@app.post("/api/recruitment/{post_id}/applications", response_model=RecruitmentPostOut, status_code=201,
          tags=["Recruitment"], summary="Apply to a recruitment post")
async def apply_to_post(post_id: str, body: ApplicationCreate, store: Store = Depends(get_store)):
    if store.state.find_post(post_id) is None:
        raise HTTPException(404, "Recruitment post not found")
    state = store.submit_application(post_id, body.applicant_name, body.email, body.message)
    return services.post_summary(state, state.find_post(post_id))


# ---------------------------------------------------------------------------
# Routes: Stats
# ---------------------------------------------------------------------------


@app.get("/api/stats", response_model=StatsOut, tags=["Stats"], summary="Dashboard aggregates")
async def get_stats(store: Store = Depends(get_store)):
    return services.compute_stats(store.state)


# ---------------------------------------------------------------------------
# Routes: Reset
# ---------------------------------------------------------------------------


class ResetResult(BaseModel):
    ok: bool
    tokens: int


@app.delete("/api/reset", response_model=ResetResult,
            tags=["Admin"], summary="Discard all data and start from a fresh state")
async def reset(store: Store = Depends(get_store)):
    state = store.reset()
    return {"ok": True, "tokens": state.current_user.tokens}


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("startsmart.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
