"""LLM agents: definitions, sessions, long-term memory and tools."""
