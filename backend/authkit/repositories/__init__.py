"""Repository package exposing persistence-layer access for the models."""

from __future__ import annotations

from authkit.repositories.base import BaseRepository
from authkit.repositories.refresh_token import RefreshTokenRowRepository
from authkit.repositories.user import UserRepository

__all__ = ["BaseRepository", "RefreshTokenRowRepository", "UserRepository"]
