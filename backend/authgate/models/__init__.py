from authgate.models.account import Account
from authgate.models.refresh_token import RefreshToken

__all__ = ["Account", "RefreshToken"]
