"""SQLAlchemy models. Importing this package registers every table on the metadata."""

from __future__ import annotations

from .refresh_token import RefreshToken
from .user import User

__all__ = ["RefreshToken", "User"]
