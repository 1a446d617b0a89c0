"""Tenant slug generation"""

import re

from fastapi import HTTPException, status

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Turn a tenant name into a URL-safe slug.

    Example:
        >>> slugify("  Acme Corp. (EU)  ")
        'acme-corp-eu'

    Raises:
        HTTPException 400: If nothing slug-worthy remains
    """
    slug = _NON_SLUG_CHARS.sub("-", (name or "").lower()).strip("-")
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant name must contain at least one letter or digit",
        )
    return slug[:100].strip("-")
