from .verifier import CredentialVerifier

__all__ = ["CredentialVerifier"]
