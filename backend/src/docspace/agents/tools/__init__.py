"""Builtin agent tools and the tool-call executor"""

from .builtin import BUILTIN_TOOLS, provision_builtin_tools
from .context import ToolContext, ToolError, ToolResult
from .executor import BUILTIN_HANDLERS, execute_tool_call, run_builtin

__all__ = [
    "BUILTIN_TOOLS",
    "provision_builtin_tools",
    "ToolContext",
    "ToolError",
    "ToolResult",
    "BUILTIN_HANDLERS",
    "execute_tool_call",
    "run_builtin",
]
