from __future__ import annotations

from dataclasses import dataclass

BEARER = "Bearer"


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Short-lived bearer token.
    :type access_token: str
    :param refresh_token: Long-lived rotation token.
    :type refresh_token: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    :param token_type: Always ``Bearer``.
    :type token_type: str
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = BEARER
