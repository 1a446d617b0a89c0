"""Catalogue of builtin tools and their provisioning per tenant.

Every builtin tool has a handler in executor.BUILTIN_HANDLERS. The rows
created here make the tools assignable to agents.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...models import AgentTool

logger = logging.getLogger(__name__)

_FILE_PATH = {
    "type": "string",
    "description": "Full path to the file (e.g., \"/documents/notes.txt\")",
}

BUILTIN_TOOLS: List[Dict[str, Any]] = [
    {
        "name": "update_plan",
        "description": (
            "Create or update your execution plan. Call at the start of every task to create a plan, "
            "and after completing each step to mark progress. The plan guides your autonomous execution."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["create", "update_step", "complete", "fail", "wait_for_user"],
                    "description": "The action to perform on the plan",
                },
                "goal": {
                    "type": "string",
                    "description": "The goal you are trying to accomplish (required for create action)",
                },
                "steps": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "step_number": {"type": "integer"},
                            "description": {"type": "string"},
                        },
                        "required": ["step_number", "description"],
                    },
                    "description": "The steps to accomplish the goal (required for create action, max 10)",
                },
                "step_number": {
                    "type": "integer",
                    "description": "The step number to update (required for update_step action)",
                },
                "step_status": {
                    "type": "string",
                    "enum": ["in_progress", "completed", "failed", "skipped"],
                    "description": "The new status for the step (required for update_step action)",
                },
                "step_result": {
                    "type": "string",
                    "description": "Summary of what happened in this step (optional for update_step)",
                },
                "reason": {
                    "type": "string",
                    "description": "Reason for completion/failure/waiting (required for complete, fail, wait_for_user)",
                },
            },
            "required": ["action"],
        },
    },
    {
        "name": "list_files",
        "description": "List files and folders in a directory. Returns file names, sizes, types, and paths.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Directory path to list (e.g., \"/\" for root, \"/documents\" for documents folder)",
                },
            },
            "required": [],
        },
    },
    {
        "name": "read_file",
        "description": "Read the contents of a text file. Only works with text-based files (txt, json, md, csv, xml, html).",
        "input_schema": {
            "type": "object",
            "properties": {"file_path": _FILE_PATH},
            "required": ["file_path"],
        },
    },
    {
        "name": "create_file",
        "description": "Create a new text file with the specified content. Overwrites if file already exists.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": _FILE_PATH,
                "content": {"type": "string", "description": "Text content to write to the file"},
            },
            "required": ["file_path", "content"],
        },
    },
    {
        "name": "delete_file",
        "description": "Delete a file from storage. This action cannot be undone.",
        "input_schema": {
            "type": "object",
            "properties": {"file_path": _FILE_PATH},
            "required": ["file_path"],
        },
    },
    {
        "name": "get_weather",
        "description": (
            "Get the current weather and forecast for a given location. Returns temperature, "
            "conditions, humidity, wind, and a 6-hour forecast."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": "City name or location (e.g., \"New York, NY\" or \"Paris, France\")",
                },
                "units": {
                    "type": "string",
                    "enum": ["imperial", "metric"],
                    "description": "Temperature units - imperial (°F) or metric (°C). Default: imperial",
                },
            },
            "required": ["location"],
        },
    },
]


def provision_builtin_tools(db: Session, tenant_id: UUID, user_id: Optional[UUID] = None) -> List[AgentTool]:
    """Create or refresh the builtin tool rows of a tenant.

    Existing rows (matched by name) get the current description and
    schema; their is_active flag is left alone.
    """
    existing = {
        tool.name: tool
        for tool in db.query(AgentTool).filter(
            AgentTool.tenant_id == tenant_id,
            AgentTool.name.in_([t["name"] for t in BUILTIN_TOOLS]),
        )
    }

    tools = []
    for definition in BUILTIN_TOOLS:
        tool = existing.get(definition["name"])
        if tool is None:
            tool = AgentTool(tenant_id=tenant_id, user_id=user_id, name=definition["name"], tool_type="builtin")
            db.add(tool)
        tool.description = definition["description"]
        tool.input_schema = definition["input_schema"]
        tools.append(tool)

    db.commit()
    logger.info(f"Provisioned {len(tools)} builtin tools", extra={"tenant_id": str(tenant_id)})
    return tools
