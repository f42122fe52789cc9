from .providers import ExternalIdentity
from .resolver import IdentityResolver

__all__ = ["ExternalIdentity", "IdentityResolver"]
