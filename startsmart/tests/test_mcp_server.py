"""Tests for the MCP server: tool registration and tool behaviour against a store."""
from __future__ import annotations

import json

import pytest

from startsmart.mcp_server import build_server
from startsmart.store import Store

EXPECTED_TOOLS = {
    "list_ideas", "get_idea", "create_idea", "update_idea", "delete_idea",
    "invest", "get_leaderboard", "get_stats", "ask_mentor",
    "start_pitch", "submit_pitch_answer", "list_pitch_questions",
    "generate_canvas", "list_recruitment_posts", "create_recruitment_post",
    "apply_to_post",
}


class FixedRandom:
    def randint(self, a: int, b: int) -> int:
        return 72


@pytest.fixture()
def store() -> Store:
    return Store(rng=FixedRandom())


@pytest.fixture()
def server(store):
    return build_server(store)


async def call(server, name: str, **arguments) -> dict:
    """Call a dict-returning tool and decode its JSON payload."""
    result = await server.call_tool(name, arguments)
    if isinstance(result, tuple):  # (content, structured) on newer mcp releases
        result = result[0]
    return json.loads(result[0].text)


@pytest.fixture()
def idea_id(store) -> str:
    return store.create_idea("Foo", "A test idea").ideas[-1].id


class TestBuildServer:
    @pytest.mark.asyncio
    async def test_tools_registered(self, server):
        tools = await server.list_tools()
        assert EXPECTED_TOOLS <= {t.name for t in tools}

    @pytest.mark.asyncio
    async def test_overview_resource(self, server):
        resources = await server.list_resources()
        assert "startsmart://overview" in {str(r.uri) for r in resources}

    def test_servers_do_not_share_state(self):
        a, b = Store(), Store()
        build_server(a)
        build_server(b)
        a.create_idea("Only in a", "d")
        assert b.state.ideas == ()


class TestIdeaTools:
    @pytest.mark.asyncio
    async def test_create_idea(self, server, store):
        data = await call(server, "create_idea", title="Solar kiosk", description="Energy", stage="prototype")
        assert data["title"] == "Solar kiosk"
        assert data["stage"] == "prototype"
        assert data["ai_score"] == 72
        assert store.state.find_idea(data["id"]) is not None

    @pytest.mark.asyncio
    async def test_create_idea_bad_stage(self, server, store):
        data = await call(server, "create_idea", title="A", description="b", stage="ipo")
        assert "error" in data
        assert store.state.ideas == ()

    @pytest.mark.asyncio
    async def test_update_and_delete(self, server, store, idea_id):
        data = await call(server, "update_idea", idea_id=idea_id, stage="launch")
        assert data["stage"] == "launch"
        assert data["title"] == "Foo"
        assert await call(server, "delete_idea", idea_id=idea_id) == {"ok": True, "deleted_idea_id": idea_id}
        assert "error" in await call(server, "get_idea", idea_id=idea_id)
        assert store.state.ideas == ()

    @pytest.mark.asyncio
    async def test_update_unknown_idea(self, server):
        assert "error" in await call(server, "update_idea", idea_id="idea-404", title="x")


class TestFundingTools:
    @pytest.mark.asyncio
    async def test_invest(self, server, store, idea_id):
        data = await call(server, "invest", idea_id=idea_id, amount=30)
        assert data["tokens"] == 70
        assert data["idea"]["total_investment"] == 30
        assert data["idea"]["crowd_votes"] == 1

    @pytest.mark.asyncio
    async def test_invest_unknown_idea(self, server, store):
        before = store.state
        data = await call(server, "invest", idea_id="idea-404", amount=5)
        assert "not found" in data["error"]
        assert store.state is before

    @pytest.mark.asyncio
    async def test_invest_insufficient_balance(self, server, store, idea_id):
        before = store.state
        data = await call(server, "invest", idea_id=idea_id, amount=101)
        assert data["error"].startswith("Insufficient tokens")
        assert store.state is before

    @pytest.mark.asyncio
    async def test_stats(self, server, store, idea_id):
        store.record_investment(idea_id, 10)
        data = await call(server, "get_stats")
        assert data["ideas"] == 1
        assert data["tokens"] == 90


class TestMentorTool:
    @pytest.mark.asyncio
    async def test_revenue_reply(self, server, store):
        data = await call(server, "ask_mentor", message="What is a good revenue model?")
        assert data["sender"] == "assistant"
        assert data["content"].startswith("Revenue models are crucial")
        senders = [m.sender.value for m in store.state.chat_messages]
        assert senders == ["assistant", "user", "assistant"]


class TestPitchTools:
    @pytest.mark.asyncio
    async def test_full_session_then_completed(self, server, idea_id):
        session = await call(server, "start_pitch", idea_id=idea_id)
        assert session["next_question"]["number"] == 1
        answer = " ".join(["w"] * 59) + " 7"
        for _ in range(6):
            data = await call(server, "submit_pitch_answer", session_id=session["id"], answer=answer)
            assert data["score"] == 80
        assert data["session"]["completed"] is True
        data = await call(server, "submit_pitch_answer", session_id=session["id"], answer=answer)
        assert "already completed" in data["error"]

    @pytest.mark.asyncio
    async def test_unknown_session(self, server):
        data = await call(server, "submit_pitch_answer", session_id="session-404", answer="hi")
        assert "not found" in data["error"]

    @pytest.mark.asyncio
    async def test_start_for_unknown_idea(self, server, store):
        assert "error" in await call(server, "start_pitch", idea_id="idea-404")
        assert store.state.pitch_sessions == ()


class TestCanvasAndRecruitmentTools:
    @pytest.mark.asyncio
    async def test_generate_canvas(self, server, store, idea_id):
        data = await call(server, "generate_canvas", idea_id=idea_id)
        assert len(data) == 9
        assert "Foo" in data["Value Proposition"]
        assert store.state.find_idea(idea_id).canvas_generated is True

    @pytest.mark.asyncio
    async def test_post_and_apply(self, server, idea_id):
        post = await call(
            server, "create_recruitment_post", idea_id=idea_id, title="CTO",
            description="Build it", skills="python, ml, ",
        )
        assert post["skills"] == ["python", "ml"]
        data = await call(
            server, "apply_to_post", post_id=post["id"], applicant_name="Ada", email="ada@example.com",
        )
        assert [a["applicant_name"] for a in data["applications"]] == ["Ada"]

    @pytest.mark.asyncio
    async def test_apply_unknown_post(self, server):
        data = await call(server, "apply_to_post", post_id="post-404", applicant_name="Ada", email="a@b.co")
        assert "not found" in data["error"]
