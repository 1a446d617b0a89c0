"""Unit tests for agent chat turns and the autonomous loop

Tests cover:
- Message bookkeeping (step numbers, current_step, tokens)
- One tool round per chat turn
- GOAL_COMPLETE detection
- Loop termination: goal met, plain reply, plan continuation, max_steps,
  cancellation and provider failures
- System prompt assembly and history replay
"""

import pytest

from docspace.agents.prompting import build_system_prompt, is_goal_complete
from docspace.agents.service import SessionNotActiveError, run_agent_loop, run_chat_turn
from docspace.agents.tools.builtin import provision_builtin_tools
from docspace.agents.tools.plan import update_plan
from docspace.domain.ai.ports import LLMResponse, LLMServiceError, ToolCall
from docspace.models import AgentLongTermMemory, AgentSessionMessage, AgentToolAssignment


def tool_call(name, arguments, call_id="call_1"):
    return LLMResponse(content=None, tool_calls=[ToolCall(call_id, name, arguments)], tokens_in=10, tokens_out=5)


@pytest.fixture
def agent_with_tools(db_session, agent, tenant):
    for tool in provision_builtin_tools(db_session, tenant.tenant_id):
        db_session.add(AgentToolAssignment(agent_id=agent.agent_id, tool_id=tool.tool_id))
    db_session.commit()
    return agent


def messages(db, session):
    return (
        db.query(AgentSessionMessage)
        .filter(AgentSessionMessage.session_id == session.session_id)
        .order_by(AgentSessionMessage.step_number)
        .all()
    )


class TestSystemPrompt:
    def test_goal_and_instructions(self, agent):
        prompt = build_system_prompt(agent, [])

        assert prompt.startswith("You are a careful research assistant.\n\n## Your Goal\n")
        assert "GOAL_COMPLETE" in prompt
        assert "Relevant Memories" not in prompt

    def test_memories_listed(self, db_session, agent):
        memory = AgentLongTermMemory(
            agent_id=agent.agent_id, tenant_id=agent.tenant_id, memory_type="preference", content="Likes tables",
        )
        db_session.add(memory)
        db_session.commit()

        assert "- [preference] Likes tables" in build_system_prompt(agent, [memory])

    @pytest.mark.parametrize("content,expected", [
        ("GOAL_COMPLETE: done", True),
        ("  GOAL_COMPLETE", True),
        ("Not yet GOAL_COMPLETE", False),
        ("", False),
        (None, False),
    ])
    def test_goal_marker(self, content, expected):
        assert is_goal_complete(content) is expected


class TestChatTurn:
    def test_plain_reply(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue("Hello! How can I help?")

        result = run_chat_turn(db_session, agent_session, "Hi", llm_factory, blob_store)

        assert result["message"] == {"role": "assistant", "content": "Hello! How can I help?", "tokens_used": 15}
        assert result["session"]["current_step"] == 2
        assert result["session"]["status"] == "active"
        stored = messages(db_session, agent_session)
        assert [(m.step_number, m.role) for m in stored] == [(1, "user"), (2, "assistant")]
        assert llm_factory.requested == ["openai"]
        assert llm.calls[0]["tools"] is None
        assert llm.calls[0]["model"] == "gpt-4o"

    def test_one_tool_round(self, db_session, agent_with_tools, agent_session, llm, llm_factory, blob_store, uploaded_file):
        llm.queue(tool_call("list_files", {"path": "/"}), "You have one file: report.txt")

        result = run_chat_turn(db_session, agent_session, "What files do I have?", llm_factory, blob_store)

        assert result["message"]["content"] == "You have one file: report.txt"
        assert result["message"]["tokens_used"] == 30
        stored = messages(db_session, agent_session)
        assert [m.role for m in stored] == ["user", "assistant", "tool", "assistant"]
        assert stored[1].content == "Using tools..."
        assert stored[2].tool_name == "list_files"
        assert stored[2].tool_output["success"] is True
        assert "report.txt" in stored[2].content
        assert len(llm.calls[0]["tools"]) == 6
        second_call_roles = [m.role for m in llm.calls[1]["messages"]]
        assert second_call_roles[-2:] == ["assistant", "tool"]

    def test_goal_complete_finishes_session(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue("GOAL_COMPLETE The answer is 42.")

        result = run_chat_turn(db_session, agent_session, "Answer", llm_factory, blob_store)

        assert result["session"]["status"] == "completed"
        assert result["session"]["goal_met"] is True
        assert agent_session.ended_at is not None

    def test_inactive_session(self, db_session, agent_session, llm_factory, blob_store):
        agent_session.status = "cancelled"
        db_session.commit()

        with pytest.raises(SessionNotActiveError):
            run_chat_turn(db_session, agent_session, "Hi", llm_factory, blob_store)

    def test_history_replays_user_and_assistant_only(self, db_session, agent_session, llm, llm_factory, blob_store):
        db_session.add_all([
            AgentSessionMessage(session_id=agent_session.session_id, step_number=1, role="user", content="First"),
            AgentSessionMessage(session_id=agent_session.session_id, step_number=2, role="assistant", content="Reply"),
            AgentSessionMessage(session_id=agent_session.session_id, step_number=3, role="tool", content="{}"),
        ])
        agent_session.current_step = 3
        db_session.commit()
        llm.queue("Second reply")

        run_chat_turn(db_session, agent_session, "Second", llm_factory, blob_store)

        sent = llm.calls[0]["messages"]
        assert [(m.role, m.content) for m in sent[1:]] == [("user", "First"), ("assistant", "Reply"), ("user", "Second")]
        assert messages(db_session, agent_session)[-1].step_number == 5

    def test_provider_error_propagates(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue(LLMServiceError("down"))

        with pytest.raises(LLMServiceError):
            run_chat_turn(db_session, agent_session, "Hi", llm_factory, blob_store)


class TestAgentLoop:
    def test_goal_complete_on_first_iteration(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue("GOAL_COMPLETE Finished.")

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store, message="Go")

        assert result["status"] == "completed"
        assert result["iterations"] == 1
        assert result["session"]["goal_met"] is True
        assert [m.role for m in messages(db_session, agent_session)] == ["user", "assistant"]

    def test_plain_reply_without_plan_stops(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue("I need more information.")

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        assert result["status"] == "active"
        assert result["iterations"] == 1

    def test_tool_calls_keep_the_loop_going(self, db_session, agent_with_tools, agent_session, llm, llm_factory, blob_store):
        llm.queue(
            tool_call("update_plan", {"action": "create", "goal": "g", "steps": [{"step_number": 1, "description": "d"}]}),
            tool_call("update_plan", {"action": "update_step", "step_number": 1, "step_status": "completed"}, "call_2"),
            "GOAL_COMPLETE All steps done.",
        )

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store, message="Plan it")

        assert result["iterations"] == 3
        assert result["status"] == "completed"
        tool_messages = [m for m in messages(db_session, agent_session) if m.role == "tool"]
        assert [m.tool_output["success"] for m in tool_messages] == [True, True]

    def test_plan_with_remaining_work_continues(self, db_session, agent_session, tool_context, llm, llm_factory, blob_store):
        update_plan(tool_context, {
            "action": "create", "goal": "g", "steps": [{"step_number": 1, "description": "d"}],
        })
        llm.queue("Working...", "Still working...", "Almost...", "Stopping here.")

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        assert result["iterations"] == 4
        assert result["status"] == "active"

    def test_max_steps_completes_without_goal(self, db_session, agent_with_tools, agent_session, llm, llm_factory, blob_store):
        llm.queue(*[tool_call("list_files", {}, f"call_{i}") for i in range(agent_with_tools.max_steps)])

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        assert result["iterations"] == agent_with_tools.max_steps
        assert result["status"] == "completed"
        assert result["session"]["goal_met"] is False

    def test_plain_reply_on_last_step_completes_without_goal(self, db_session, agent_with_tools, agent_session, llm, llm_factory, blob_store):
        steps = agent_with_tools.max_steps
        llm.queue(*[tool_call("list_files", {}, f"call_{i}") for i in range(steps - 1)], "Out of ideas.")

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        assert result["iterations"] == steps
        assert result["status"] == "completed"
        assert result["session"]["goal_met"] is False

    def test_unassigned_tool_reports_failure_to_model(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue(tool_call("get_weather", {"location": "Paris"}), "GOAL_COMPLETE")

        run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        tool_message = next(m for m in messages(db_session, agent_session) if m.role == "tool")
        assert tool_message.content == "Tool not found: get_weather"
        assert tool_message.tool_output == {"success": False, "result": "Tool not found: get_weather"}

    def test_cancellation_stops_before_model_call(self, db_session, agent_session, llm, llm_factory, blob_store, monkeypatch):
        monkeypatch.setattr("docspace.agents.service._is_cancelled", lambda db, session_id: True)

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        assert result["iterations"] == 0
        assert llm.calls == []

    def test_provider_failure_marks_session_failed(self, db_session, agent_session, llm, llm_factory, blob_store):
        llm.queue(LLMServiceError("down"))

        with pytest.raises(LLMServiceError):
            run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        db_session.refresh(agent_session)
        assert agent_session.status == "failed"
        assert agent_session.ended_at is not None

    def test_inactive_session_is_skipped(self, db_session, agent_session, llm_factory, blob_store):
        agent_session.status = "completed"
        db_session.commit()

        result = run_agent_loop(db_session, agent_session.session_id, llm_factory, blob_store)

        assert result == {"status": "skipped", "reason": "Session is not active"}

    def test_unknown_session_is_skipped(self, db_session, agent_session, llm_factory, blob_store):
        from uuid import uuid4

        assert run_agent_loop(db_session, uuid4(), llm_factory, blob_store)["status"] == "skipped"
