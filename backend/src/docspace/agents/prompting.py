"""System prompt assembly and prompt drafting for agents"""

import logging
from typing import Dict, List, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain.ai.ports import LLMMessage, ToolDefinition
from ..models import Agent, AgentLongTermMemory, AgentTool, AgentToolAssignment
from ..prompts.service import resolve_prompt, render_template

logger = logging.getLogger(__name__)

AGENT_PROMPT_NAME = "generate_agent_prompt"
GOAL_COMPLETE_MARKER = "GOAL_COMPLETE"
MEMORY_LIMIT = 10

AGENT_INSTRUCTIONS = (
    "\n\n## Instructions\n"
    "- Work towards completing the goal step by step\n"
    "- Use available tools when needed\n"
    f"- When you believe the goal is complete, respond with \"{GOAL_COMPLETE_MARKER}\" at the start of your message\n"
    "- If you cannot complete the goal, explain why"
)


def relevant_memories(db: Session, agent_id: UUID, limit: int = MEMORY_LIMIT) -> List[AgentLongTermMemory]:
    return (
        db.query(AgentLongTermMemory)
        .filter(AgentLongTermMemory.agent_id == agent_id, AgentLongTermMemory.is_active.is_(True))
        .order_by(
            AgentLongTermMemory.importance.desc(),
            AgentLongTermMemory.last_accessed_at.desc().nulls_last(),
        )
        .limit(limit)
        .all()
    )


def assigned_tools(db: Session, agent_id: UUID) -> List[AgentTool]:
    """Active tools assigned to an agent."""
    return (
        db.query(AgentTool)
        .join(AgentToolAssignment, AgentToolAssignment.tool_id == AgentTool.tool_id)
        .filter(AgentToolAssignment.agent_id == agent_id, AgentTool.is_active.is_(True))
        .order_by(AgentTool.name)
        .all()
    )


def tool_definitions(tools: Sequence[AgentTool]) -> List[ToolDefinition]:
    return [
        ToolDefinition(
            name=tool.name,
            description=tool.description,
            parameters=tool.input_schema or {"type": "object", "properties": {}},
        )
        for tool in tools
    ]


def build_system_prompt(agent: Agent, memories: Sequence[AgentLongTermMemory]) -> str:
    """Agent prompt, goal, memories and the GOAL_COMPLETE instructions.

    Example:
        ## Your Goal
        Summarize the quarterly reports

        ## Relevant Memories
        - [preference] Prefers bullet points
    """
    prompt = f"{agent.system_prompt}\n\n## Your Goal\n{agent.goal}"
    if memories:
        prompt += "\n\n## Relevant Memories\n"
        prompt += "".join(f"- [{m.memory_type}] {m.content}\n" for m in memories)
    return prompt + AGENT_INSTRUCTIONS


def is_goal_complete(content: str) -> bool:
    return (content or "").strip().startswith(GOAL_COMPLETE_MARKER)


def generate_agent_prompt(db: Session, llm_factory, name: str, description: str, goal: str) -> Dict[str, object]:
    """Draft a system prompt with the generate_agent_prompt configuration.

    Raises:
        LLMProviderError: The provider call failed
        ValueError: The configured provider is unknown or has no API key
    """
    config = resolve_prompt(db, AGENT_PROMPT_NAME)
    messages = []
    if config.system_prompt:
        messages.append(LLMMessage(role="system", content=config.system_prompt))
    messages.append(
        LLMMessage(
            role="user",
            content=render_template(config.user_prompt_template, name=name, description=description, goal=goal),
        )
    )

    response = llm_factory.get(config.model_provider).complete(
        messages,
        model=config.model_name,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
    logger.info(f"Generated system prompt for agent {name}")
    return {"system_prompt": (response.content or "").strip(), "tokens_used": response.tokens_used}
