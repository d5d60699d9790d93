from __future__ import annotations

import json
import logging

from mcp.server.fastmcp import FastMCP

from startsmart import services
from startsmart.config import build_store, load_settings
from startsmart.models import AppState, Rejection
from startsmart.scorer import CANVAS_BLOCKS, FeedbackTier, PITCH_QUESTIONS, generate_canvas
from startsmart.store import Store, investment_rejection

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _idea_or_error(state: AppState, idea_id: str):
    idea = state.find_idea(idea_id)
    if idea is None:
        return None, {"error": f"Idea {idea_id} not found"}
    return idea, None


def _overview() -> str:
    return json.dumps({
        "system": "StartSmart - startup incubation workspace",
        "description": (
            "StartSmart tracks startup ideas for one user, scores pitch practice answers, "
            "drafts business model canvases, and runs a token-based investment leaderboard. "
            "State lives in memory for the lifetime of this server."
        ),
        "data_model": {
            "idea": "Title, description, stage, AI score (60-100), crowd votes and total tokens invested.",
            "investment": "Tokens moved from the user to an idea. Each one adds a crowd vote.",
            "pitch_session": "Six investor questions answered in order, each scored 0-100.",
            "recruitment_post": "A call for collaborators on an idea, with applications.",
        },
        "workflow": [
            "1. get_stats() - overview of ideas, tokens and activity.",
            "2. create_idea(title, description) or list_ideas() to browse.",
            "3. invest(idea_id, amount) - spend tokens; see get_leaderboard().",
            "4. start_pitch(idea_id) then submit_pitch_answer(session_id, answer) six times.",
            "5. generate_canvas(idea_id) - draft the nine canvas blocks.",
        ],
        "stages": ["idea", "prototype", "testing", "launch"],
        "feedback_tiers": [t.value for t in FeedbackTier],
    }, indent=2)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


def build_server(store: Store) -> FastMCP:
    """Create an MCP server whose tools read and write *store*."""
    mcp = FastMCP(
        "StartSmart",
        instructions=(
            "StartSmart is a startup incubation workspace. Use these tools to manage ideas, "
            "invest tokens, practise investor pitches, and draft business model canvases. "
            "Start with get_stats() for an overview."
        ),
        json_response=True,
    )
    chat = services.ChatController(store, delay=(0.0, 0.0))
    pitch = services.PitchController(store)

    @mcp.resource("startsmart://overview")
    def startsmart_overview() -> str:
        """Overview of StartSmart: data model, workflow, and vocabularies."""
        return _overview()

    # -- ideas --------------------------------------------------------------

    @mcp.tool()
    def list_ideas(stage: str | None = None, search: str | None = None,
                   sort_by: str = "created", sort_dir: str = "asc") -> list[dict]:
        """List ideas.

        Args:
            stage: Comma-separated filter from: idea, prototype, testing, launch.
            search: Free-text search across title and description.
            sort_by: created, title, ai_score, validation, investment.
            sort_dir: asc or desc.
        """
        ideas = services.filter_and_sort_ideas(
            store.state.ideas, stage=stage, search=search, sort_by=sort_by, sort_dir=sort_dir,
        )
        return [services.idea_summary(i) for i in ideas]

    @mcp.tool()
    def get_idea(idea_id: str) -> dict:
        """Get one idea by id."""
        idea, err = _idea_or_error(store.state, idea_id)
        return err if err else services.idea_summary(idea)

    @mcp.tool()
    def create_idea(title: str, description: str, stage: str = "idea") -> dict:
        """Submit a new idea. Stage is one of idea, prototype, testing, launch."""
        try:
            state = store.create_idea(title, description, stage)
        except ValueError:
            return {"error": f"Unknown stage {stage!r}"}
        return services.idea_summary(state.ideas[-1])

    @mcp.tool()
    def update_idea(idea_id: str, title: str | None = None, description: str | None = None,
                    stage: str | None = None) -> dict:
        """Update an idea. Only provided (non-null) arguments are applied."""
        _, err = _idea_or_error(store.state, idea_id)
        if err:
            return err
        try:
            state = store.update_idea(idea_id, {"title": title, "description": description, "stage": stage})
        except ValueError:
            return {"error": f"Unknown stage {stage!r}"}
        return services.idea_summary(state.find_idea(idea_id))

    @mcp.tool()
    def delete_idea(idea_id: str) -> dict:
        """Delete an idea. Its investments, pitch sessions and posts are kept."""
        _, err = _idea_or_error(store.state, idea_id)
        if err:
            return err
        store.delete_idea(idea_id)
        return {"ok": True, "deleted_idea_id": idea_id}

    # -- funding ------------------------------------------------------------

    @mcp.tool()
    def invest(idea_id: str, amount: int) -> dict:
        """Invest tokens from the current user's balance in an idea."""
        reason = investment_rejection(store.state, idea_id, amount)
        if reason is Rejection.UNKNOWN_REFERENCE:
            return {"error": f"Idea {idea_id} not found"}
        if reason is Rejection.INSUFFICIENT_BALANCE:
            return {"error": f"Insufficient tokens: {store.state.current_user.tokens} available"}
        state = store.record_investment(idea_id, amount)
        return {
            "tokens": state.current_user.tokens,
            "idea": services.idea_summary(state.find_idea(idea_id)),
        }

    @mcp.tool()
    def get_leaderboard() -> list[dict]:
        """Ideas ranked by validation score (AI score plus crowd votes)."""
        return services.leaderboard(store.state)

    @mcp.tool()
    def get_stats() -> dict:
        """Dashboard aggregates: ideas, tokens, investments, recruitment and pitches."""
        return services.compute_stats(store.state)

    # -- chat ---------------------------------------------------------------

    @mcp.tool()
    async def ask_mentor(message: str) -> dict:
        """Send a message to the scripted mentor and get its reply."""
        _, reply = await chat.send(message)
        return services.message_summary(reply)

    # -- pitch --------------------------------------------------------------

    @mcp.tool()
    def start_pitch(idea_id: str) -> dict:
        """Start a pitch practice session and return its first question."""
        _, err = _idea_or_error(store.state, idea_id)
        if err:
            return err
        session_id = pitch.start(idea_id)
        state = store.state
        return services.session_summary(state, state.find_session(session_id))

    @mcp.tool()
    def submit_pitch_answer(session_id: str, answer: str) -> dict:
        """Answer the session's current question; returns score, feedback and next question."""
        if store.state.find_session(session_id) is None:
            return {"error": f"Pitch session {session_id} not found"}
        result = pitch.submit_answer(session_id, answer)
        if result is None:
            return {"error": f"Pitch session {session_id} already completed"}
        return {
            "question": result.question.question,
            "score": result.scored.score, "feedback": result.scored.feedback,
            "session": services.session_summary(store.state, result.session),
        }

    @mcp.tool()
    def list_pitch_questions() -> list[dict]:
        """The six investor questions with tips."""
        return [services.question_summary(q) for q in PITCH_QUESTIONS]

    # -- canvas -------------------------------------------------------------

    @mcp.tool(name="generate_canvas")
    def generate_canvas_tool(idea_id: str) -> dict:
        """Draft the nine business model canvas blocks for an idea."""
        idea, err = _idea_or_error(store.state, idea_id)
        if err:
            return err
        canvas = generate_canvas(idea.title, idea.description)
        store.update_idea(idea_id, {"canvas_generated": True})
        return {b.title: canvas[b.key] for b in CANVAS_BLOCKS}

    # -- recruitment --------------------------------------------------------

    @mcp.tool()
    def list_recruitment_posts() -> list[dict]:
        """List recruitment posts with their applications."""
        state = store.state
        return [services.post_summary(state, p) for p in state.recruitment_posts]

    @mcp.tool()
    def create_recruitment_post(idea_id: str, title: str, description: str, skills: str = "") -> dict:
        """Open a recruitment post. Skills are comma-separated."""
        _, err = _idea_or_error(store.state, idea_id)
        if err:
            return err
        skill_list = [s.strip() for s in skills.split(",") if s.strip()]
        state = store.create_recruitment_post(idea_id, title, description, skill_list)
        return services.post_summary(state, state.recruitment_posts[-1])

    @mcp.tool()
    def apply_to_post(post_id: str, applicant_name: str, email: str, message: str = "") -> dict:
        """Apply to a recruitment post."""
        if store.state.find_post(post_id) is None:
            return {"error": f"Recruitment post {post_id} not found"}
        state = store.submit_application(post_id, applicant_name, email, message)
        return services.post_summary(state, state.find_post(post_id))

    return mcp


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the StartSmart MCP server over stdio."""
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    build_server(build_store(settings)).run()


if __name__ == "__main__":
    main()
