"""Role hierarchy helpers."""

from .roles import (  # noqa: F401
    ROLE_HIERARCHY,
    has_minimum_role,
    role_rank,
)
