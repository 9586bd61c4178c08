"""Signing-algorithm selection from the unverified token header.

The token header is unauthenticated. It is read here only to decide which
verification primitive to build; nothing in it is trusted.

Supported families:
- HMAC  (HS256, HS384, HS512): key is a shared-secret string
- RSA   (RS256, RS384, RS512): key is an RSA public key
- ECDSA (ES256, ES384, ES512): key is an EC public key

Everything else, including PS256/PS384 and ``none``, is rejected.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Final

import jwt
from jwt.algorithms import get_default_algorithms

from .errors import SignatureInvalid, UnsupportedAlgorithm, VerificationFailed
from .protocols import SigningKey


class AlgorithmFamily(enum.Enum):
    """Cryptographic family of a JWS algorithm."""

    HMAC = "HMAC"
    RSA = "RSA"
    ECDSA = "ECDSA"


SUPPORTED_ALGORITHMS: Final[dict[str, AlgorithmFamily]] = {
    "HS256": AlgorithmFamily.HMAC,
    "HS384": AlgorithmFamily.HMAC,
    "HS512": AlgorithmFamily.HMAC,
    "RS256": AlgorithmFamily.RSA,
    "RS384": AlgorithmFamily.RSA,
    "RS512": AlgorithmFamily.RSA,
    "ES256": AlgorithmFamily.ECDSA,
    "ES384": AlgorithmFamily.ECDSA,
    "ES512": AlgorithmFamily.ECDSA,
}
"""Algorithms this gate verifies, mapped to their family."""


def read_unverified_header(token: str) -> dict[str, Any]:
    """Decode the header segment without any signature check.

    Raises:
        SignatureInvalid: If the token or its header is malformed.
    """
    try:
        return jwt.get_unverified_header(token)
    except jwt.DecodeError as e:
        raise SignatureInvalid("Token is malformed") from e


@dataclass(frozen=True, slots=True)
class VerifierAlgorithm:
    """A verification primitive: one algorithm bound to one key.

    Attributes:
        name: JWS algorithm identifier (e.g. "RS256").
        family: Cryptographic family of ``name``.
        key: Verification key the primitive was constructed from.
    """

    name: str
    family: AlgorithmFamily
    key: SigningKey

    def prepare_key(self) -> Any:
        """Return the key in the form PyJWT verifies with.

        This is where a key of the wrong type for the family is caught,
        for example an RSA public key offered to an HS256 token. It is
        never coerced.

        Raises:
            VerificationFailed: If the key cannot be used with this algorithm.
        """
        try:
            return get_default_algorithms()[self.name].prepare_key(self.key)
        except (jwt.InvalidKeyError, TypeError, ValueError) as e:
            raise VerificationFailed(
                f"Signing key cannot be used with {self.name}"
            ) from e


class AlgorithmSelector:
    """Picks the verification algorithm a token claims to use.

    Stateless and safe to share between threads.
    """

    def select(self, token: str, key: SigningKey) -> VerifierAlgorithm:
        """Build the verifier primitive for ``token`` from ``key``.

        Args:
            token: Raw, untrusted JWT.
            key: Key obtained from a KeyProvider.

        Returns:
            VerifierAlgorithm for the header's ``alg``.

        Raises:
            SignatureInvalid: If the header cannot be decoded.
            UnsupportedAlgorithm: If ``alg`` is missing or not supported.
        """
        alg = read_unverified_header(token).get("alg")
        family = SUPPORTED_ALGORITHMS.get(alg) if isinstance(alg, str) else None
        if family is None:
            raise UnsupportedAlgorithm("Algorithm is not supported")
        return VerifierAlgorithm(name=alg, family=family, key=key)
