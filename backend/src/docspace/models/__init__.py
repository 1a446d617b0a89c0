"""SQLAlchemy Models for DocSpace"""

from .base import Base, PortableJSONB
from .user import User, Admin
from .tenant import Tenant, Membership, MEMBERSHIP_ROLES
from .file import Folder, File
from .blob_inventory import BlobInventory
from .extraction import ExtractionJob, ExtractionOutput, ChunkIndex
from .prompt import Prompt
from .qa import QAGenerationJob, ChunkQAPair, QA_PAIR_STATUSES
from .agent import (
    Agent,
    AgentSession,
    AgentSessionMessage,
    AgentLongTermMemory,
    AgentSessionMemory,
    MODEL_PROVIDERS,
    SESSION_STATUSES,
    MESSAGE_ROLES,
    MEMORY_TYPES,
)
from .agent_tool import AgentTool, AgentToolAssignment, MCPServer, TOOL_TYPES, MCP_AUTH_TYPES

__all__ = [
    "Base",
    "PortableJSONB",
    "User",
    "Admin",
    "Tenant",
    "Membership",
    "MEMBERSHIP_ROLES",
    "Folder",
    "File",
    "BlobInventory",
    "ExtractionJob",
    "ExtractionOutput",
    "ChunkIndex",
    "Prompt",
    "QAGenerationJob",
    "ChunkQAPair",
    "QA_PAIR_STATUSES",
    "Agent",
    "AgentSession",
    "AgentSessionMessage",
    "AgentLongTermMemory",
    "AgentSessionMemory",
    "MODEL_PROVIDERS",
    "SESSION_STATUSES",
    "MESSAGE_ROLES",
    "MEMORY_TYPES",
    "AgentTool",
    "AgentToolAssignment",
    "MCPServer",
    "TOOL_TYPES",
    "MCP_AUTH_TYPES",
]
