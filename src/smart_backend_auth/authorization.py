"""Scope extraction and SMART backend-services scope authorization.

This module maps a verified token's ``scope`` claim and the attempted
operation to allow/deny. The policy is evaluated as an ordered set of
independent conditions; the first one that holds grants access:

1. scope contains ``system/*.*``                      -> any operation
2. operation is a read (GET) and scope has ``system/*.read``
3. operation is a write (POST, PUT, DELETE) and scope has ``system/*.write``

Otherwise access is denied with InsufficientScope.

Security Notes
--------------
The scope string is treated as a set of space-separated literals and
matched by exact membership. A value such as ``"xsystem/*.read"`` or
``"system/*.readonly"`` grants nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .errors import ClaimDecodeFailed, InsufficientScope
from .protocols import Authorizer, Claims

SCOPE_ALL: Final[str] = "system/*.*"
SCOPE_READ: Final[str] = "system/*.read"
SCOPE_WRITE: Final[str] = "system/*.write"

READ_METHODS: Final[frozenset[str]] = frozenset({"GET"})
WRITE_METHODS: Final[frozenset[str]] = frozenset({"POST", "PUT", "DELETE"})


@dataclass(frozen=True, slots=True)
class Operation:
    """The action an incoming request is attempting.

    Supplied by the host; the gate never derives it.

    Attributes:
        method: HTTP method, e.g. "GET". Compared case-insensitively.
    """

    method: str

    @property
    def is_read(self) -> bool:
        return self.method.upper() in READ_METHODS

    @property
    def is_write(self) -> bool:
        return self.method.upper() in WRITE_METHODS


class ScopeAccess:
    """Extracts the granted scopes from verified claims.

    Args:
        scope_claim: Claim key holding the space-delimited scope string.
    """

    def __init__(self, scope_claim: str = "scope") -> None:
        self._claim = scope_claim

    def scopes(self, claims: Claims) -> frozenset[str]:
        """Return the set of scope tokens granted by the claims.

        Raises:
            InsufficientScope: If the claim is absent.
            ClaimDecodeFailed: If the claim is present but not a string.

        Examples:
            >>> ScopeAccess().scopes({"scope": "system/*.read"})
            frozenset({'system/*.read'})
        """
        if self._claim not in claims or claims[self._claim] is None:
            raise InsufficientScope()

        raw = claims[self._claim]
        if not isinstance(raw, str):
            raise ClaimDecodeFailed("Scope claim is not a string")

        return frozenset(raw.split())


class ScopeAuthorizer(Authorizer):
    """Enforces the SMART ``system/*`` scope policy on verified claims.

    Only accepts Claims, which are produced solely by a TokenVerifier, so
    unverified tokens never reach the policy.

    Examples:
        >>> authorizer = ScopeAuthorizer()
        >>> authorizer.authorize({"scope": "system/*.read"}, Operation("GET"))
        >>> authorizer.authorize({"scope": "system/*.read"}, Operation("POST"))
        Traceback (most recent call last):
        ...
        smart_backend_auth.errors.InsufficientScope: Insufficient scope
    """

    def __init__(self, access: ScopeAccess | None = None) -> None:
        self._access = access or ScopeAccess()

    def authorize(self, claims: Claims, operation: Operation) -> None:
        """Authorize the operation against the granted scopes.

        Raises:
            InsufficientScope: If no policy condition grants the operation,
                or the scope claim is missing.
            ClaimDecodeFailed: If the scope claim has an unexpected type.
        """
        scopes = self._access.scopes(claims)

        if SCOPE_ALL in scopes:
            return
        if operation.is_read and SCOPE_READ in scopes:
            return
        if operation.is_write and SCOPE_WRITE in scopes:
            return

        raise InsufficientScope()
