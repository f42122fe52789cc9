from .codec import ClaimsCodec, TokenClaims
from .dto import TokenPairOut
from .service import TokenService

__all__ = ["ClaimsCodec", "TokenClaims", "TokenPairOut", "TokenService"]
