"""JWT verification implementation using PyJWT.

This module provides the verifier that:
- Reads the key ID (kid) hint from the token header
- Resolves the signing key via an injected KeyProvider
- Selects exactly one algorithm from the header via AlgorithmSelector
- Validates signature and validity window using PyJWT
- Maps PyJWT exceptions to domain-specific error types

The verifier is the single source of cryptographic truth: claims only leave
this module after the signature has been checked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import jwt

from .algorithms import AlgorithmSelector, read_unverified_header
from .errors import (
    AuthError,
    KeyRetrievalFailed,
    SignatureInvalid,
    TokenExpired,
    VerificationFailed,
)
from .protocols import Claims

if TYPE_CHECKING:
    from .protocols import KeyProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class JWTVerifyOptions:
    """Configuration for JWT validation rules.

    SMART backend-services tokens are only required to be signed and
    unexpired, so issuer and audience checks are opt-in.

    Attributes:
        issuer: Expected ``iss`` claim. If None, issuer is not validated.

        audience: Expected ``aud`` claim. If None, audience is not validated,
            including for tokens that carry an ``aud`` claim.

        leeway: Clock skew tolerance in seconds for exp/nbf/iat validation.
            Default: 0 (no leeway).
    """

    issuer: str | None = None
    audience: str | None = None
    leeway: int = 0


class JWTVerifier:
    """JWT verification backed by PyJWT.

    Architecture:
        1. Read kid from token header (unverified)
        2. Resolve signing key via KeyProvider
        3. Select algorithm from header via AlgorithmSelector
        4. Verify signature and claims via PyJWT, allowing only that algorithm
        5. Map exceptions to domain errors

    Thread Safety:
        This class is thread-safe assuming the KeyProvider is thread-safe.
        The JWTVerifyOptions are frozen and immutable.

    Example:
        ```python
        verifier = JWTVerifier(
            key_provider=JWKSKeyProvider("https://auth.example.org/jwks"),
        )

        try:
            claims = verifier.verify(raw_token)
        except TokenExpired:
            ...
        except SignatureInvalid:
            ...
        ```
    """

    def __init__(
        self,
        key_provider: KeyProvider,
        options: JWTVerifyOptions | None = None,
        selector: AlgorithmSelector | None = None,
    ) -> None:
        self._keys = key_provider
        self._opt = options or JWTVerifyOptions()
        self._selector = selector or AlgorithmSelector()

    def verify(self, token: str) -> Claims:
        """Verify a JWT and return its decoded claims.

        Args:
            token: Raw JWT string (typically from Authorization: Bearer header).

        Returns:
            Mapping of verified claims from the token payload.

        Raises:
            SignatureInvalid: Token is malformed or the signature does not match.
            TokenExpired: Token's exp claim has passed (accounting for leeway).
            UnsupportedAlgorithm: Header names an unsupported algorithm.
            KeyRetrievalFailed: Signing key could not be fetched or built.
            VerificationFailed: Key/algorithm mismatch or any other failure.
        """
        kid = read_unverified_header(token).get("kid")

        # Step 1: resolve the key. The kid is only a lookup hint.
        try:
            key = self._keys.get_key_for_token(kid if isinstance(kid, str) else None)
        except AuthError:
            raise
        except Exception as e:
            logger.exception("Unexpected error resolving signing key")
            raise KeyRetrievalFailed() from e

        # Step 2: pick the algorithm and check the key fits it
        algorithm = self._selector.select(token, key)
        prepared_key = algorithm.prepare_key()

        # Step 3: signature + validity window, restricted to one algorithm
        options: dict[str, Any] = {}
        if self._opt.audience is None:
            options["verify_aud"] = False
        try:
            return jwt.decode(
                token,
                prepared_key,
                algorithms=[algorithm.name],
                audience=self._opt.audience,
                issuer=self._opt.issuer,
                leeway=self._opt.leeway,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired() from e
        except jwt.DecodeError as e:
            # Includes InvalidSignatureError and structural problems
            raise SignatureInvalid() from e
        except jwt.InvalidKeyError as e:
            raise VerificationFailed(
                f"Signing key cannot be used with {algorithm.name}"
            ) from e
        except jwt.InvalidTokenError as e:
            raise VerificationFailed(f"Token validation failed: {e}") from e
