"""Protocol definitions for the authorization gate.

This module defines structural interfaces using Protocol (PEP 544) for:
- Token verification
- Signing-key resolution
- Key-set caching
- Scope authorization

Using protocols allows for duck-typing and easier testing/mocking without
requiring explicit inheritance. Any class that implements the required methods
satisfies the protocol.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

    from .authorization import Operation

# ============================================================================
# Type Aliases
# ============================================================================

type Claims = Mapping[str, Any]
"""Represents the verified JWT payload as an immutable mapping.
"""

type KeySet = Mapping[str, Any]
"""A decoded issuer key-set document (``{"keys": [...]}``)."""

type SigningKey = RSAPublicKey | EllipticCurvePublicKey | str
"""Verification key: RSA or EC public key, or an HMAC shared secret."""


# ============================================================================
# Core Protocols
# ============================================================================


class TokenVerifier(Protocol):
    """Protocol for JWT verification implementations.

    Implementers must provide a verify() method that:
    1. Validates the token's structure, signature and validity window
    2. Returns the decoded claims payload

    Claims are only ever produced here, so anything holding Claims holds
    verified data.
    """

    def verify(self, token: str) -> Claims:
        """Verify a JWT and return its decoded claims.

        Args:
            token: The raw JWT string (e.g., from Authorization: Bearer <token>)

        Returns:
            Immutable mapping of verified claims from the token payload.

        Raises:
            TokenExpired: Token's exp claim has passed
            SignatureInvalid: Token is malformed or the signature is wrong
            UnsupportedAlgorithm: Header names an algorithm we do not verify
            KeyRetrievalFailed: Signing key could not be obtained
            VerificationFailed: Any other verification failure
        """
        ...


class CacheStore(Protocol):
    """Protocol for caching fetched issuer key sets.

    Entries are keyed by the key-set address. Implementations must be safe
    for concurrent readers; writers are serialized by the key provider.
    """

    def get(self, address: str) -> KeySet | None:
        """Retrieve a cached key-set document.

        Args:
            address: Issuer key-set URL.

        Returns:
            The document if cached and not expired, None otherwise.
        """
        ...

    def set(self, address: str, key_set: KeySet, ttl_seconds: int) -> None:
        """Store a key-set document with a TTL.

        Args:
            address: Issuer key-set URL.
            key_set: Decoded key-set document.
            ttl_seconds: Time-to-live in seconds.
        """
        ...

    def delete(self, address: str) -> None:
        """Drop a cached entry, forcing the next lookup to refetch."""
        ...


class KeyProvider(Protocol):
    """Protocol for resolving token signing keys.

    Common implementations:
    - JWKS endpoint fetcher (JWKSKeyProvider)
    - Static key (StaticKeyProvider)
    """

    def get_key_for_token(self, kid: str | None) -> SigningKey:
        """Resolve the verification key for a token.

        Args:
            kid: Key ID hint from the unverified token header, if any.
                 Providers may ignore it.

        Returns:
            Key usable by the algorithm family it was built for.

        Raises:
            KeyFetchError: If the key cannot be fetched or constructed.
        """
        ...


class Authorizer(Protocol):
    """Protocol for scope-to-operation policy implementations."""

    def authorize(self, claims: Claims, operation: Operation) -> None:
        """Check that verified claims permit the operation.

        Args:
            claims: Verified JWT claims.
            operation: Action the request is attempting.

        Raises:
            InsufficientScope: If the claims do not grant the operation.
            ClaimDecodeFailed: If the scope claim has an unexpected shape.

        Note:
            Implementations must fail closed.
        """
        ...
