from .identity_provider import IdentityProviderClient, get_identity_provider, identity_provider
from .service import UserMirrorService, placeholder_email, user_mirror_service

__all__ = [
    "IdentityProviderClient",
    "UserMirrorService",
    "get_identity_provider",
    "identity_provider",
    "placeholder_email",
    "user_mirror_service",
]
