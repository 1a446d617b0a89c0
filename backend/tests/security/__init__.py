"""Security tests for DocSpace

This module contains security-focused tests including:
- Authentication bypass attempts
- Tenant isolation between files, Q&A pairs and agents
"""
