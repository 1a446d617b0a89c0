"""Tenant helpers and the public tenant directory."""

from .slug import slugify

__all__ = ["slugify"]
