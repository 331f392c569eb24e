"""
Authentication module for the Tripboard backend.
Verifies identity provider access tokens and maps them onto local users.
"""
from tripboard.auth.models import UserModel
from tripboard.auth.service import (
    IdentityResolver,
    ResolvedUser,
    derive_user_id,
    identity_resolver,
)
from tripboard.auth.providers import JWKSTokenVerifier, TokenVerificationError

__all__ = [
    # Models
    "UserModel",
    # Identity
    "IdentityResolver",
    "ResolvedUser",
    "derive_user_id",
    "identity_resolver",
    # Token verification
    "JWKSTokenVerifier",
    "TokenVerificationError",
]
