"""Tenant dashboard statistics."""
