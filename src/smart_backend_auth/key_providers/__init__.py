"""
Key provider implementations for resolving token signing keys.

This package contains implementations of the KeyProvider protocol,
allowing flexible resolution of signing keys from different sources.
"""

from .jwks import JWKSKeyProvider, rsa_public_key_from_jwk
from .static import StaticKeyProvider

__all__ = ["JWKSKeyProvider", "StaticKeyProvider", "rsa_public_key_from_jwk"]
