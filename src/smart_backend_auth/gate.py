"""Per-request authorization gate.

The host calls ``AuthorizationGate.evaluate`` once per request with the raw
``Authorization`` header value and the attempted operation, and receives a
Verdict or an AuthError. The gate is a pure decision sequence with no
session memory:

1. No header               -> DENY_ALL_EXCEPT_DISCOVERY
2. Header not Bearer       -> MalformedAuthorizationHeader
3. Admin token matches     -> ALLOW_ALL (no cryptographic verification)
4. Verify token            -> TokenExpired / SignatureInvalid / ...
5. Authorize scope         -> InsufficientScope / ClaimDecodeFailed
6. Otherwise               -> ALLOW_ALL
"""

from __future__ import annotations

import enum
import hmac
import logging
import re
from typing import TYPE_CHECKING, Final

from .errors import AuthError, MalformedAuthorizationHeader

if TYPE_CHECKING:
    from .authorization import Operation
    from .protocols import Authorizer, TokenVerifier

logger = logging.getLogger(__name__)

_BEARER_RE: Final[re.Pattern[str]] = re.compile(r"Bearer (\S+)")


class Verdict(enum.Enum):
    """Binary authorization outcome for one request.

    The host translates ALLOW_ALL into "permit" and
    DENY_ALL_EXCEPT_DISCOVERY into "permit only the capability/discovery
    routes, deny everything else".
    """

    ALLOW_ALL = "allow-all"
    DENY_ALL_EXCEPT_DISCOVERY = "deny-all-except-discovery"


def extract_bearer_token(authorization_header: str) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` value.

    The scheme is case-sensitive and the whole value must match.

    Raises:
        MalformedAuthorizationHeader: For any other shape, e.g. ``Basic abc``,
            ``Bearer`` with no token, or ``bearer xyz``.
    """
    match = _BEARER_RE.fullmatch(authorization_header)
    if match is None:
        raise MalformedAuthorizationHeader()
    return match.group(1)


class AuthorizationGate:
    """Orchestrates admin bypass, token verification and scope authorization.

    Args:
        verifier: Verifies token signature and validity window.
        authorizer: Applies the scope policy to verified claims.
        admin_token: Optional shared secret that bypasses verification.
            Compared in constant time. Must be usable as a bearer token,
            i.e. contain no whitespace.

    Raises:
        ValueError: If the admin token contains whitespace.

    Thread Safety:
        Holds no mutable state; safe to share between request threads as long
        as the verifier and authorizer are.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        authorizer: Authorizer,
        admin_token: str | None = None,
    ) -> None:
        if admin_token and any(c.isspace() for c in admin_token):
            raise ValueError("Admin token cannot contain whitespace")

        self._verifier = verifier
        self._authorizer = authorizer
        self._admin_token = admin_token.encode("utf-8") if admin_token else None

    def evaluate(
        self, authorization_header: str | None, operation: Operation
    ) -> Verdict:
        """Decide the verdict for one request.

        Args:
            authorization_header: Raw header value, or None if absent.
            operation: Action the request is attempting.

        Returns:
            ALLOW_ALL for an authorized request, DENY_ALL_EXCEPT_DISCOVERY for
            an unauthenticated one.

        Raises:
            AuthError: Subclass describing why authentication or
                authorization failed. Never downgraded to a verdict.
        """
        if authorization_header is None:
            return Verdict.DENY_ALL_EXCEPT_DISCOVERY

        token = extract_bearer_token(authorization_header)

        if self._is_admin_token(token):
            logger.info("Admin token presented; skipping verification")
            return Verdict.ALLOW_ALL

        try:
            claims = self._verifier.verify(token)
            self._authorizer.authorize(claims, operation)
        except AuthError as e:
            logger.info(
                "Denied %s request: %s (%s)",
                operation.method,
                type(e).__name__,
                e.description,
            )
            raise

        return Verdict.ALLOW_ALL

    def _is_admin_token(self, token: str) -> bool:
        if self._admin_token is None:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self._admin_token)
