"""Execution plan tool.

The plan lives in agent_session_memory under the ``execution_plan`` key:

    {
        "goal": "...",
        "steps": [{"step_number": 1, "description": "...", "status": "pending"}],
        "current_step_index": 0,
        "status": "executing",
        "created_at": "...",
        "updated_at": "...",
    }

The autonomous loop reads it to decide whether a plain text reply should
end the run or whether work remains.
"""

import copy
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...models import AgentSessionMemory
from ...models.base import utcnow, isoformat
from .context import ToolContext, ToolError

logger = logging.getLogger(__name__)

PLAN_KEY = "execution_plan"
PLAN_ACTIONS = ("create", "update_step", "complete", "fail", "wait_for_user")
VALID_STEP_STATUSES = ("in_progress", "completed", "failed", "skipped")
MAX_PLAN_STEPS = 10

# Plan statuses that stop the loop from continuing on its own
TERMINAL_PLAN_STATUSES = ("waiting_for_user", "completed", "failed")

_STATUS_FOR_ACTION = {
    "complete": "completed",
    "fail": "failed",
    "wait_for_user": "waiting_for_user",
}


def get_session_memory(db: Session, session_id: UUID, key: str) -> Optional[AgentSessionMemory]:
    return (
        db.query(AgentSessionMemory)
        .filter(AgentSessionMemory.session_id == session_id, AgentSessionMemory.memory_key == key)
        .first()
    )


def load_plan(db: Session, session_id: UUID) -> Optional[Dict[str, Any]]:
    entry = get_session_memory(db, session_id, PLAN_KEY)
    return copy.deepcopy(entry.memory_value) if entry else None


def save_plan(db: Session, session_id: UUID, plan: Dict[str, Any]) -> None:
    entry = get_session_memory(db, session_id, PLAN_KEY)
    if entry is None:
        db.add(AgentSessionMemory(session_id=session_id, memory_key=PLAN_KEY, memory_value=plan))
    else:
        # Reassign so the JSON column is flagged dirty
        entry.memory_value = plan
    db.commit()


def has_remaining_work(plan: Optional[Dict[str, Any]]) -> bool:
    """True while the plan has pending or in-progress steps and is still executing."""
    if not plan or plan.get("status") in TERMINAL_PLAN_STATUSES:
        return False
    return any(step.get("status") in ("pending", "in_progress") for step in plan.get("steps", []))


def _create(db: Session, session_id: UUID, args: Dict[str, Any]) -> Dict[str, Any]:
    goal = args.get("goal")
    if not isinstance(goal, str) or not goal.strip():
        raise ToolError("goal is required for create action")
    steps = args.get("steps")
    if not isinstance(steps, list) or not steps:
        raise ToolError("steps array is required for create action")
    if len(steps) > MAX_PLAN_STEPS:
        raise ToolError(f"Maximum {MAX_PLAN_STEPS} steps allowed")
    for step in steps:
        if not isinstance(step, dict) or not isinstance(step.get("step_number"), int) or not step.get("description"):
            raise ToolError("Each step must have step_number and description")

    now = isoformat(utcnow())
    plan = {
        "created_at": now,
        "updated_at": now,
        "goal": goal.strip(),
        "steps": [
            {"step_number": s["step_number"], "description": s["description"], "status": "pending"}
            for s in steps
        ],
        "current_step_index": 0,
        "status": "executing",
    }
    save_plan(db, session_id, plan)
    logger.info(f"Plan created with {len(plan['steps'])} steps", extra={"session_id": str(session_id)})
    return {"action": "created", "plan_status": plan["status"], "step_count": len(plan["steps"])}


def _update_step(db: Session, session_id: UUID, args: Dict[str, Any]) -> Dict[str, Any]:
    step_number = args.get("step_number")
    if not isinstance(step_number, int):
        raise ToolError("step_number is required for update_step action")
    step_status = args.get("step_status")
    if step_status not in VALID_STEP_STATUSES:
        raise ToolError(f"step_status must be one of: {', '.join(VALID_STEP_STATUSES)}")

    plan = load_plan(db, session_id)
    if plan is None:
        raise ToolError("No plan found for this session", status_code=404)

    steps = plan["steps"]
    index = next((i for i, s in enumerate(steps) if s.get("step_number") == step_number), None)
    if index is None:
        raise ToolError(f"Step {step_number} not found in plan", status_code=404)

    step = steps[index]
    step["status"] = step_status
    if args.get("step_result") is not None:
        step["result"] = args["step_result"]
    if step_status == "completed":
        step["completed_at"] = isoformat(utcnow())
        if index == plan.get("current_step_index"):
            plan["current_step_index"] = min(index + 1, len(steps) - 1)
    plan["updated_at"] = isoformat(utcnow())

    save_plan(db, session_id, plan)
    return {"action": "step_updated", "step_number": step_number, "step_status": step_status}


def _change_status(db: Session, session_id: UUID, new_status: str, reason: Optional[str]) -> Dict[str, Any]:
    plan = load_plan(db, session_id)
    if plan is None:
        raise ToolError("No plan found for this session", status_code=404)

    plan["status"] = new_status
    plan["updated_at"] = isoformat(utcnow())
    save_plan(db, session_id, plan)
    logger.info(f"Plan status changed to {new_status}", extra={"session_id": str(session_id)})
    return {"action": "status_changed", "plan_status": new_status, "reason": reason}


def update_plan(ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    """Apply one plan action for the session in ``ctx``.

    Raises:
        ToolError: Missing session, unknown action, invalid input, or no plan yet
    """
    if ctx.session_id is None:
        raise ToolError("session_id is required")
    action = args.get("action")
    if action not in PLAN_ACTIONS:
        raise ToolError(f"Invalid action. Must be one of: {', '.join(PLAN_ACTIONS)}")

    if action == "create":
        return _create(ctx.db, ctx.session_id, args)
    if action == "update_step":
        return _update_step(ctx.db, ctx.session_id, args)
    return _change_status(ctx.db, ctx.session_id, _STATUS_FOR_ACTION[action], args.get("reason"))
