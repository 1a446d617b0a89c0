"""Run a model-requested tool call against the agent's assigned tools.

Builtin tools run in-process. MCP and python_script tools are registered
but not executed; the call reports a failed ToolResult instead of raising
so the model can carry on.
"""

import json
import logging
from typing import Any, Callable, Dict, Iterable

from ...infrastructure.storage.s3_blob_store import StorageError
from ...models import AgentTool
from ...observability.metrics import agent_tool_calls_total
from .context import ToolContext, ToolError, ToolResult
from .files import run_file_action
from .plan import update_plan
from .weather import get_weather

logger = logging.getLogger(__name__)

BuiltinHandler = Callable[[ToolContext, Dict[str, Any]], Dict[str, Any]]


def _file_action(action: str) -> BuiltinHandler:
    def handler(ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
        return run_file_action(ctx, {**args, "action": action})
    return handler


BUILTIN_HANDLERS: Dict[str, BuiltinHandler] = {
    "update_plan": update_plan,
    "list_files": _file_action("list"),
    "read_file": _file_action("read"),
    "create_file": _file_action("create"),
    "delete_file": _file_action("delete"),
    "get_weather": get_weather,
}


def run_builtin(ctx: ToolContext, tool_name: str, args: Dict[str, Any]) -> ToolResult:
    handler = BUILTIN_HANDLERS.get(tool_name)
    if handler is None:
        return ToolResult(False, f"Builtin tool not configured: {tool_name}")
    try:
        result = handler(ctx, args)
    except ToolError as e:
        logger.info(f"Tool {tool_name} rejected call: {e.message}", extra={"session_id": ctx.session_id})
        return ToolResult(False, e.message)
    except StorageError as e:
        logger.warning(f"Tool {tool_name} storage failure: {e}", extra={"session_id": ctx.session_id})
        return ToolResult(False, f"Tool execution error: {e}")
    return ToolResult(True, json.dumps(result, indent=2, default=str))


def execute_tool_call(ctx: ToolContext, tools: Iterable[AgentTool], tool_name: str, args: Dict[str, Any]) -> ToolResult:
    """Execute one tool call.

    Args:
        tools: The agent's assigned, active tools
        tool_name: Name the model asked for
        args: Parsed call arguments

    Returns:
        ToolResult whose ``result`` is the text sent back to the model
    """
    tool = next((t for t in tools if t.name == tool_name), None)
    if tool is None:
        outcome = ToolResult(False, f"Tool not found: {tool_name}")
    elif tool.tool_type == "builtin":
        outcome = run_builtin(ctx, tool_name, args)
    elif tool.tool_type == "mcp_server":
        outcome = ToolResult(False, "MCP server tool execution not yet implemented.")
    else:
        outcome = ToolResult(False, f"Unsupported tool type: {tool.tool_type}")

    agent_tool_calls_total.labels(tool=tool_name, success=str(outcome.success).lower()).inc()
    return outcome
