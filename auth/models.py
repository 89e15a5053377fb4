"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store and routes
do the work.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """Represents an account in DatingApp.

    The token layer only ever reads `username` -- it is the subject claim of
    every bearer token issued for this user.
    """

    username: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    is_active: bool = True
