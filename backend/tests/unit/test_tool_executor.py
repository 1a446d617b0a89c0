"""Unit tests for tool execution and builtin tool provisioning

Tests cover:
- Dispatch by assigned tool name and type
- Builtin results serialized as JSON text
- Tool errors reported as failed results
- Builtin catalogue provisioning per tenant
"""

import json

import pytest

from docspace.agents.tools.builtin import BUILTIN_TOOLS, provision_builtin_tools
from docspace.agents.tools.executor import BUILTIN_HANDLERS, execute_tool_call
from docspace.models import AgentTool


@pytest.fixture
def builtin_tools(db_session, tenant, user):
    return provision_builtin_tools(db_session, tenant.tenant_id, user.user_id)


class TestExecuteToolCall:
    def test_tool_not_assigned(self, tool_context, builtin_tools):
        result = execute_tool_call(tool_context, builtin_tools, "launch_rocket", {})

        assert result.success is False
        assert result.result == "Tool not found: launch_rocket"

    def test_builtin_result_is_json_text(self, tool_context, builtin_tools):
        result = execute_tool_call(tool_context, builtin_tools, "list_files", {"path": "/"})

        assert result.success is True
        assert json.loads(result.result)["path"] == "/"

    def test_builtin_tool_error(self, tool_context, builtin_tools):
        result = execute_tool_call(tool_context, builtin_tools, "read_file", {"file_path": "/missing.txt"})

        assert result.success is False
        assert "File not found" in result.result

    def test_plan_through_executor(self, tool_context, builtin_tools):
        result = execute_tool_call(tool_context, builtin_tools, "update_plan", {
            "action": "create", "goal": "g", "steps": [{"step_number": 1, "description": "d"}],
        })

        assert json.loads(result.result)["action"] == "created"

    def test_mcp_tool_not_executed(self, tool_context, db_session, tenant):
        tool = AgentTool(tenant_id=tenant.tenant_id, name="search", description="MCP search", tool_type="mcp_server")
        db_session.add(tool)
        db_session.commit()

        result = execute_tool_call(tool_context, [tool], "search", {"q": "x"})

        assert result.success is False
        assert "not yet implemented" in result.result

    def test_python_script_unsupported(self, tool_context, db_session, tenant):
        tool = AgentTool(tenant_id=tenant.tenant_id, name="calc", description="Script", tool_type="python_script")
        db_session.add(tool)
        db_session.commit()

        result = execute_tool_call(tool_context, [tool], "calc", {})

        assert result.success is False
        assert result.to_dict() == {"success": False, "result": "Unsupported tool type: python_script"}


class TestProvisionBuiltinTools:
    def test_every_builtin_has_a_handler(self):
        assert {t["name"] for t in BUILTIN_TOOLS} == set(BUILTIN_HANDLERS)

    def test_provisions_six_tools(self, db_session, tenant, builtin_tools):
        rows = db_session.query(AgentTool).filter(AgentTool.tenant_id == tenant.tenant_id).all()

        assert len(rows) == 6
        assert all(r.tool_type == "builtin" for r in rows)
        assert all(r.input_schema["type"] == "object" for r in rows)

    def test_reprovisioning_keeps_is_active(self, db_session, tenant, builtin_tools):
        weather = next(t for t in builtin_tools if t.name == "get_weather")
        weather.is_active = False
        weather.description = "stale"
        db_session.commit()

        provision_builtin_tools(db_session, tenant.tenant_id)

        db_session.refresh(weather)
        assert db_session.query(AgentTool).count() == 6
        assert weather.is_active is False
        assert weather.description.startswith("Get the current weather")

    def test_tenants_get_separate_rows(self, db_session, tenant, other_tenant, builtin_tools):
        provision_builtin_tools(db_session, other_tenant.tenant_id)

        assert db_session.query(AgentTool).count() == 12
