from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: str
    role: str = "student"

    @property
    def room(self) -> str:
        """Socket room holding every session of this user."""
        return f"user:{self.user_id}"
