"""Integration tests for agent sessions, chat and long-term memories

Tests cover:
- Session creation (default title, inactive agents)
- Session detail, status polling, cancellation and deletion
- Session memory lookup by key
- Synchronous chat turns and provider failures
- Background runs handed to the dispatcher
- Long-term memory CRUD with access tracking
"""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docspace.agents.tools.plan import update_plan
from docspace.domain.ai.ports import LLMServiceError
from docspace.models import AgentLongTermMemory, AgentSession

pytestmark = pytest.mark.integration


class TestSessions:
    def test_create_with_default_title(self, client: TestClient, user_headers, agent, user):
        response = client.post("/api/v1/agent-sessions", headers=user_headers, json={"agent_id": str(agent.agent_id)})

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Session with Research Assistant"
        assert data["status"] == "active"
        assert data["current_step"] == 0
        assert data["user_id"] == str(user.user_id)

    def test_inactive_agent(self, client: TestClient, db_session: Session, user_headers, agent):
        agent.is_active = False
        db_session.commit()

        response = client.post("/api/v1/agent-sessions", headers=user_headers, json={"agent_id": str(agent.agent_id)})

        assert response.status_code == 404
        assert response.json()["detail"] == "Agent not found or inactive"

    def test_list_filtered_by_agent(self, client: TestClient, user_headers, agent, agent_session):
        by_agent = client.get(f"/api/v1/agent-sessions?agent_id={agent.agent_id}", headers=user_headers).json()
        other = client.get(f"/api/v1/agent-sessions?agent_id={uuid4()}", headers=user_headers).json()

        assert [s["session_id"] for s in by_agent["sessions"]] == [str(agent_session.session_id)]
        assert other["sessions"] == []

    def test_detail_and_status(self, client: TestClient, user_headers, agent_session, llm):
        llm.queue("Hi there")
        client.post("/api/v1/agent-chat", headers=user_headers, json={
            "session_id": str(agent_session.session_id), "message": "Hello",
        })

        detail = client.get(f"/api/v1/agent-sessions/{agent_session.session_id}", headers=user_headers).json()
        polled = client.get(f"/api/v1/agent-sessions/{agent_session.session_id}/status", headers=user_headers).json()

        assert [m["role"] for m in detail["messages"]] == ["user", "assistant"]
        assert polled["message_count"] == 2
        assert polled["current_step"] == 2
        assert polled["last_message"]["content"] == "Hi there"

    def test_cancel(self, client: TestClient, user_headers, agent_session):
        response = client.post(f"/api/v1/agent-sessions/{agent_session.session_id}/cancel", headers=user_headers)

        assert response.json()["status"] == "cancelled"
        assert response.json()["ended_at"] is not None

        again = client.post(f"/api/v1/agent-sessions/{agent_session.session_id}/cancel", headers=user_headers)
        assert again.status_code == 404

    def test_delete(self, client: TestClient, db_session: Session, user_headers, agent_session):
        response = client.delete(f"/api/v1/agent-sessions/{agent_session.session_id}", headers=user_headers)

        assert response.json() == {"deleted": True, "session_id": str(agent_session.session_id)}
        assert db_session.query(AgentSession).count() == 0


class TestSessionMemory:
    def test_plan_by_key(self, client: TestClient, user_headers, agent_session, tool_context):
        update_plan(tool_context, {"action": "create", "goal": "Report", "steps": [{"step_number": 1, "description": "Read"}]})

        by_key = client.get(f"/api/v1/agent-sessions/{agent_session.session_id}/memory?key=execution_plan", headers=user_headers).json()
        missing = client.get(f"/api/v1/agent-sessions/{agent_session.session_id}/memory?key=nothing", headers=user_headers).json()
        everything = client.get(f"/api/v1/agent-sessions/{agent_session.session_id}/memory", headers=user_headers).json()

        assert by_key["memory"]["memory_value"]["goal"] == "Report"
        assert missing == {"memory": None}
        assert len(everything["memories"]) == 1

    def test_other_tenant_forbidden(self, client: TestClient, other_headers, agent_session):
        response = client.get(f"/api/v1/agent-sessions/{agent_session.session_id}/memory", headers=other_headers)

        assert response.status_code == 403


class TestChat:
    def test_chat_turn(self, client: TestClient, user_headers, agent_session, llm):
        llm.queue("The report covers Q3.")

        response = client.post("/api/v1/agent-chat", headers=user_headers, json={
            "session_id": str(agent_session.session_id), "message": "What is in the report?",
        })

        assert response.status_code == 200
        assert response.json()["message"]["content"] == "The report covers Q3."
        assert response.json()["session"]["current_step"] == 2

    def test_inactive_session(self, client: TestClient, db_session: Session, user_headers, agent_session):
        agent_session.status = "completed"
        db_session.commit()

        response = client.post("/api/v1/agent-chat", headers=user_headers, json={
            "session_id": str(agent_session.session_id), "message": "Hello",
        })

        assert response.status_code == 400

    def test_provider_failure(self, client: TestClient, user_headers, agent_session, llm):
        llm.queue(LLMServiceError("rate limited"))

        response = client.post("/api/v1/agent-chat", headers=user_headers, json={
            "session_id": str(agent_session.session_id), "message": "Hello",
        })

        assert response.status_code == 502
        assert response.json()["detail"] == "AI provider error: rate limited"

    def test_unknown_session(self, client: TestClient, user_headers):
        response = client.post("/api/v1/agent-chat", headers=user_headers, json={"session_id": str(uuid4()), "message": "Hi"})

        assert response.status_code == 404


class TestRun:
    def test_run_is_dispatched(self, client: TestClient, user_headers, agent_session, dispatcher):
        response = client.post(f"/api/v1/agent-sessions/{agent_session.session_id}/run", headers=user_headers, json={"message": "Go"})

        assert response.status_code == 202
        assert response.json() == {"session_id": str(agent_session.session_id), "status": "active", "queued": True}
        assert dispatcher.agent_loops == [(agent_session.session_id, "Go")]

    def test_run_inactive_session(self, client: TestClient, db_session: Session, user_headers, agent_session):
        agent_session.status = "cancelled"
        db_session.commit()

        response = client.post(f"/api/v1/agent-sessions/{agent_session.session_id}/run", headers=user_headers, json={})

        assert response.status_code == 400


class TestLongTermMemories:
    def test_create_and_list_by_importance(self, client: TestClient, user_headers, agent):
        for content, importance in (("Uses metric units", 3), ("Prefers tables", 9)):
            response = client.post(f"/api/v1/agent-memories?agent_id={agent.agent_id}", headers=user_headers, json={
                "content": content, "memory_type": "preference", "importance": importance,
            })
            assert response.status_code == 201

        memories = client.get(f"/api/v1/agent-memories?agent_id={agent.agent_id}", headers=user_headers).json()["memories"]

        assert [m["content"] for m in memories] == ["Prefers tables", "Uses metric units"]

    def test_invalid_type(self, client: TestClient, user_headers, agent):
        response = client.post(f"/api/v1/agent-memories?agent_id={agent.agent_id}", headers=user_headers, json={
            "content": "x", "memory_type": "rumor",
        })

        assert response.status_code == 400

    def test_get_tracks_access(self, client: TestClient, db_session: Session, user_headers, agent, tenant):
        memory = AgentLongTermMemory(agent_id=agent.agent_id, tenant_id=tenant.tenant_id, content="Fiscal year starts in April")
        db_session.add(memory)
        db_session.commit()

        client.get(f"/api/v1/agent-memories/{memory.memory_id}", headers=user_headers)
        data = client.get(f"/api/v1/agent-memories/{memory.memory_id}", headers=user_headers).json()

        assert data["access_count"] == 2
        assert data["last_accessed_at"] is not None

    def test_deactivated_memory_hidden_from_list(self, client: TestClient, db_session: Session, user_headers, agent, tenant):
        memory = AgentLongTermMemory(agent_id=agent.agent_id, tenant_id=tenant.tenant_id, content="Old fact", memory_type="fact")
        db_session.add(memory)
        db_session.commit()

        client.put(f"/api/v1/agent-memories/{memory.memory_id}", headers=user_headers, json={"is_active": False})

        assert client.get(f"/api/v1/agent-memories?agent_id={agent.agent_id}", headers=user_headers).json() == {"memories": []}

    def test_delete(self, client: TestClient, db_session: Session, user_headers, agent, tenant):
        memory = AgentLongTermMemory(agent_id=agent.agent_id, tenant_id=tenant.tenant_id, content="Temp")
        db_session.add(memory)
        db_session.commit()

        response = client.delete(f"/api/v1/agent-memories/{memory.memory_id}", headers=user_headers)

        assert response.json()["deleted"] is True
        assert db_session.query(AgentLongTermMemory).count() == 0
