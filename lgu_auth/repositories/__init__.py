from lgu_auth.repositories.refresh_token_repository import RefreshTokenRepository
from lgu_auth.repositories.user_repository import UserRepository

__all__ = ["RefreshTokenRepository", "UserRepository"]
