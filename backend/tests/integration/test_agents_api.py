"""Integration tests for agent definitions

Tests cover:
- Creating agents in the caller's tenant with provider validation
- Per-tenant unique names
- Listing with assigned tools
- Partial updates and deletion
- System prompt drafting through the model
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docspace.agents.tools.builtin import provision_builtin_tools
from docspace.domain.ai.ports import LLMResponse, LLMServiceError
from docspace.models import Agent, AgentToolAssignment

pytestmark = pytest.mark.integration


@pytest.fixture
def agent_payload():
    return {
        "name": "Summarizer",
        "description": "Summarizes documents",
        "goal": "Produce short summaries",
        "system_prompt": "You write concise summaries.",
        "model_provider": "anthropic",
        "model_name": "claude-3-5-sonnet-latest",
    }


class TestCreateAgent:
    def test_create_in_caller_tenant(self, client: TestClient, user_headers, tenant, user, agent_payload):
        response = client.post("/api/v1/agents", headers=user_headers, json=agent_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["tenant_id"] == str(tenant.tenant_id)
        assert data["user_id"] == str(user.user_id)
        assert data["max_steps"] == 10
        assert data["temperature"] == 0.7

    def test_invalid_provider(self, client: TestClient, user_headers, agent_payload):
        agent_payload["model_provider"] = "cohere"

        response = client.post("/api/v1/agents", headers=user_headers, json=agent_payload)

        assert response.status_code == 400

    def test_duplicate_name_in_tenant(self, client: TestClient, user_headers, agent, agent_payload):
        agent_payload["name"] = "  Research Assistant "

        response = client.post("/api/v1/agents", headers=user_headers, json=agent_payload)

        assert response.status_code == 409

    def test_same_name_in_other_tenant(self, client: TestClient, other_headers, agent, agent_payload):
        agent_payload["name"] = "Research Assistant"

        assert client.post("/api/v1/agents", headers=other_headers, json=agent_payload).status_code == 201

    def test_max_steps_bounds(self, client: TestClient, user_headers, agent_payload):
        agent_payload["max_steps"] = 0

        assert client.post("/api/v1/agents", headers=user_headers, json=agent_payload).status_code == 422


class TestReadUpdateDelete:
    def test_list_with_assigned_tools(self, client: TestClient, db_session: Session, user_headers, agent, tenant):
        tools = {t.name: t for t in provision_builtin_tools(db_session, tenant.tenant_id)}
        db_session.add(AgentToolAssignment(agent_id=agent.agent_id, tool_id=tools["read_file"].tool_id))
        db_session.commit()

        agents = client.get("/api/v1/agents", headers=user_headers).json()["agents"]

        assert len(agents) == 1
        assert agents[0]["assigned_tools"] == [{"tool_id": str(tools["read_file"].tool_id), "name": "read_file"}]

    def test_get_and_agent_tools(self, client: TestClient, user_headers, agent):
        assert client.get(f"/api/v1/agents/{agent.agent_id}", headers=user_headers).json()["name"] == "Research Assistant"
        assert client.get(f"/api/v1/agents/{agent.agent_id}/tools", headers=user_headers).json() == {"tools": []}

    def test_partial_update(self, client: TestClient, user_headers, agent):
        response = client.put(f"/api/v1/agents/{agent.agent_id}", headers=user_headers, json={
            "goal": "  Find revenue figures ", "description": None, "max_steps": 20,
        })

        data = response.json()
        assert data["goal"] == "Find revenue figures"
        assert data["description"] is None
        assert data["max_steps"] == 20
        assert data["model_name"] == "gpt-4o"

    def test_rename_to_existing(self, client: TestClient, db_session: Session, user_headers, agent, tenant, user):
        db_session.add(Agent(
            tenant_id=tenant.tenant_id, user_id=user.user_id, name="Other", goal="g", system_prompt="s",
            model_provider="openai", model_name="gpt-4o",
        ))
        db_session.commit()

        response = client.put(f"/api/v1/agents/{agent.agent_id}", headers=user_headers, json={"name": "Other"})

        assert response.status_code == 409

    def test_delete(self, client: TestClient, db_session: Session, user_headers, agent):
        response = client.delete(f"/api/v1/agents/{agent.agent_id}", headers=user_headers)

        assert response.json() == {"deleted": True, "agent_id": str(agent.agent_id)}
        assert db_session.query(Agent).count() == 0


class TestGeneratePrompt:
    def test_drafts_prompt(self, client: TestClient, user_headers, llm, llm_factory):
        llm.queue(LLMResponse(content="  You are Ledger, a finance helper.  ", tokens_in=40, tokens_out=10))

        response = client.post("/api/v1/agents/generate-prompt", headers=user_headers, json={
            "name": "Ledger", "description": "Finance helper", "goal": "Explain invoices",
        })

        assert response.status_code == 200
        assert response.json() == {"system_prompt": "You are Ledger, a finance helper.", "tokens_used": 50}
        assert llm_factory.requested == ["openai"]
        prompt = llm.calls[0]["messages"][-1].content
        assert "Ledger" in prompt and "Explain invoices" in prompt

    def test_missing_field(self, client: TestClient, user_headers):
        response = client.post("/api/v1/agents/generate-prompt", headers=user_headers, json={"name": "Ledger", "goal": " "})

        assert response.status_code == 400

    def test_provider_failure(self, client: TestClient, user_headers, llm):
        llm.queue(LLMServiceError("quota exceeded"))

        response = client.post("/api/v1/agents/generate-prompt", headers=user_headers, json={
            "name": "Ledger", "description": "Finance helper", "goal": "Explain invoices",
        })

        assert response.status_code == 502
        assert "quota exceeded" in response.json()["detail"]
