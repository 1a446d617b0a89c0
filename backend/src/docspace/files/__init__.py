"""Hierarchical tenant file storage."""
