"""Authentication: password hashing, JWT tokens and request auth context."""
