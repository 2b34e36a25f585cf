"""Back-office role hierarchy used for capability gates."""

from __future__ import annotations


# Highest authority first.
ROLE_HIERARCHY: tuple[str, ...] = (
    "president",
    "senior-general-manager",
    "general-manager",
    "regional-sales-manager",
    "area-sales-manager",
    "senior-manager",
    "manager",
    "assistant-manager",
    "senior-executive",
    "executive",
    "junior-executive",
)


def role_rank(role: str | None) -> int | None:
    """Return the hierarchy index for ``role`` (0 is highest) or ``None`` if unknown."""

    if not role:
        return None
    try:
        return ROLE_HIERARCHY.index(role.strip().lower())
    except ValueError:
        return None


def has_minimum_role(role: str | None, minimum_role: str) -> bool:
    """True when ``role`` sits at or above ``minimum_role``."""

    rank = role_rank(role)
    threshold = role_rank(minimum_role)
    if threshold is None:
        raise ValueError(f"Unknown role threshold: {minimum_role}")
    return rank is not None and rank <= threshold


__all__ = ["ROLE_HIERARCHY", "has_minimum_role", "role_rank"]
