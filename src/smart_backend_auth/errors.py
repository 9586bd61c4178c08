"""Authentication and authorization errors.

This module defines the exception hierarchy for bearer-token failures.
All errors inherit from AuthError to allow catch-all error handling.

Every error carries an HTTP-style ``error_code`` and a client-safe
``description``. Descriptions are specific enough for client debugging
("expired", "invalid signature", "malformed header", "insufficient scope")
but never include key material, raw tokens or stack detail.
"""

from __future__ import annotations

from typing import ClassVar


class AuthError(Exception):
    """Base exception for all authentication and authorization failures.

    Attributes:
        error_code: HTTP status the host should answer with.
        description: Client-safe explanation of the failure.
    """

    error_code: ClassVar[int] = 401
    default_description: ClassVar[str] = "Authentication failed"

    def __init__(self, description: str | None = None) -> None:
        self.description = description or self.default_description
        super().__init__(self.description)


class MalformedAuthorizationHeader(AuthError):  # noqa: N818
    """Raised when the Authorization header is not ``Bearer <token>``.

    Absence of the header is not an error; the gate answers that with the
    deny-except-discovery verdict instead.
    """

    default_description = 'Authorization header is not in the form "Bearer <token>"'


class TokenExpired(AuthError):  # noqa: N818
    """Raised when a token's ``exp`` claim has passed (after leeway)."""

    default_description = "Token is expired"


class SignatureInvalid(AuthError):  # noqa: N818
    """Raised when a token is malformed or its signature does not verify.

    This covers structural problems (wrong segment count, bad base64url,
    undecodable header) as well as tampered or foreign-signed tokens.
    """

    default_description = "Token is invalid"


class UnsupportedAlgorithm(AuthError):  # noqa: N818
    """Raised when the token header names an algorithm we do not verify."""

    default_description = "Algorithm is not supported"


class KeyRetrievalFailed(AuthError):  # noqa: N818
    """Raised when the issuer signing key cannot be obtained."""

    default_description = "Internal error processing public key"


class KeyFetchError(KeyRetrievalFailed):
    """Raised by key providers for network, parse or key-construction failures.

    Never substituted by a default key; the request fails instead.
    """


class VerificationFailed(AuthError):  # noqa: N818
    """Raised for any other verification failure.

    Examples: the key type does not match the algorithm family, the token
    is not yet valid (``nbf``/``iat``), or issuer/audience checks fail.
    """

    default_description = "Unable to authorize token"


class InsufficientScope(AuthError):  # noqa: N818
    """Raised when a verified token lacks the grant for the operation.

    This is the only error that maps to 403: authentication succeeded but
    authorization did not.
    """

    error_code = 403
    default_description = "Insufficient scope"


class ClaimDecodeFailed(AuthError):  # noqa: N818
    """Raised when verified claims cannot be interpreted.

    Verification already validated structure, so this indicates an issuer
    sending an unexpected claim shape (e.g. a non-string ``scope``).
    """

    default_description = "Unable to decode token"
