"""Password hashing with werkzeug's salted PBKDF2-SHA256."""

from __future__ import annotations

import logging

from werkzeug.security import check_password_hash, generate_password_hash

log = logging.getLogger(__name__)

SALT_LENGTH = 16


class CredentialVerifier:
    """
    Hash secrets and check candidates against stored digests.

    :param cost: PBKDF2 iteration count. Hashing is CPU-bound and blocks the
        calling thread on purpose.
    :type cost: int
    """

    def __init__(self, cost: int = 600_000) -> None:
        if cost < 1:
            raise ValueError("cost must be >= 1")
        self.method = f"pbkdf2:sha256:{int(cost)}"

    def hash(self, secret: str) -> str:
        """
        Return a salted one-way digest of ``secret``.

        :raises ValueError: If ``secret`` is empty.
        """
        if not isinstance(secret, str) or not secret:
            raise ValueError("Secret must be a non-empty string.")
        return generate_password_hash(secret, method=self.method, salt_length=SALT_LENGTH)

    def matches(self, secret: str, digest: str | None) -> bool:
        """
        Check ``secret`` against ``digest`` in constant time.

        Never raises: an empty or malformed digest simply does not match.
        """
        if not digest or not isinstance(secret, str):
            return False
        try:
            return bool(check_password_hash(digest, secret))
        except (ValueError, TypeError):
            log.warning("credential.digest.malformed")
            return False
