from .account import AccountRepository
from .base import BaseRepository
from .refresh_token import RefreshTokenRepository

__all__ = ["AccountRepository", "BaseRepository", "RefreshTokenRepository"]
