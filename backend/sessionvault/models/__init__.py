# Sessionvault Models
from sessionvault.models.refresh_token import RefreshToken
from sessionvault.models.user_account import UserAccount

__all__ = [
    "RefreshToken",
    "UserAccount",
]
