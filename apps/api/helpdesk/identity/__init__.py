from .base import IdentityProvider
from .local import LocalIdentityProvider

__all__ = ["IdentityProvider", "LocalIdentityProvider"]
