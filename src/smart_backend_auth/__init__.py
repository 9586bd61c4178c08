"""
SMART-on-FHIR Backend Services authorization gate.

High-level flow (per request)
-----------------------------
1. The host (e.g. `AuthExtension` for Flask) calls
   `AuthorizationGate.evaluate(authorization_header, Operation(method))`.
2. No header -> `Verdict.DENY_ALL_EXCEPT_DISCOVERY`.
3. Header must be `Bearer <token>`; an admin token short-circuits to
   `Verdict.ALLOW_ALL`.
4. `JWTVerifier.verify(token)`:
   - Reads unverified header for `kid` and `alg`
   - Asks KeyProvider for the issuer key (fetched from the key-set URL)
   - `AlgorithmSelector` binds the header's algorithm to that key
   - Runs `jwt.decode(...)` allowing only that algorithm
5. `ScopeAuthorizer` maps `system/*.*`, `system/*.read`, `system/*.write`
   and the request method to allow/deny.
6. Success -> `Verdict.ALLOW_ALL`; any failure raises an `AuthError`.

Security notes
--------------
- Never trust claims until signature verification succeeds.
- Only allow known algorithms (avoid algorithm confusion).
- Admin tokens are compared in constant time.
- Key-set fetches are cached, single-flight per address, and forced
  refreshes are throttled.

Example usage
-------------

.. code-block:: python

    from flask import Flask

    from smart_backend_auth import (
        AuthExtension,
        GateConfig,
        build_gate,
        discovery_blueprint,
    )

    config = GateConfig.from_env()
    app = Flask(__name__)
    app.register_blueprint(
        discovery_blueprint(config.token_address, config.registration_address)
    )
    AuthExtension(build_gate(config)).init_app(app)
"""

# Algorithms
from .algorithms import AlgorithmFamily, AlgorithmSelector, VerifierAlgorithm

# Authorization
from .authorization import Operation, ScopeAccess, ScopeAuthorizer

# Cache stores
from .cache_stores import InMemoryCache, RedisCache

# Capability statement
from .capability import (
    OAUTH_URIS_EXTENSION_URL,
    SmartCapabilityStatementProvider,
    build_security_component,
)

# Configuration
from .config import GateConfig, build_gate

# Errors
from .errors import (
    AuthError,
    ClaimDecodeFailed,
    InsufficientScope,
    KeyFetchError,
    KeyRetrievalFailed,
    MalformedAuthorizationHeader,
    SignatureInvalid,
    TokenExpired,
    UnsupportedAlgorithm,
    VerificationFailed,
)

# Flask extension
from .flask_extension import AuthExtension, discovery_blueprint

# Gate
from .gate import AuthorizationGate, Verdict, extract_bearer_token

# Key providers
from .key_providers import JWKSKeyProvider, StaticKeyProvider

# Protocols
from .protocols import (
    Authorizer,
    CacheStore,
    Claims,
    KeyProvider,
    KeySet,
    SigningKey,
    TokenVerifier,
)

# Refresh gate
from .refresh_gate import RefreshGate

# Verifier
from .verifier import JWTVerifier, JWTVerifyOptions

# Discovery document
from .well_known import get_well_known_json, well_known_document

__all__ = [
    # Errors
    "AuthError",
    "ClaimDecodeFailed",
    "InsufficientScope",
    "KeyFetchError",
    "KeyRetrievalFailed",
    "MalformedAuthorizationHeader",
    "SignatureInvalid",
    "TokenExpired",
    "UnsupportedAlgorithm",
    "VerificationFailed",
    # Protocols
    "Authorizer",
    "CacheStore",
    "Claims",
    "KeyProvider",
    "KeySet",
    "SigningKey",
    "TokenVerifier",
    # Algorithms
    "AlgorithmFamily",
    "AlgorithmSelector",
    "VerifierAlgorithm",
    # Verifier
    "JWTVerifier",
    "JWTVerifyOptions",
    # Refresh gate
    "RefreshGate",
    # Cache stores
    "InMemoryCache",
    "RedisCache",
    # Authorization
    "Operation",
    "ScopeAccess",
    "ScopeAuthorizer",
    # Key providers
    "JWKSKeyProvider",
    "StaticKeyProvider",
    # Gate
    "AuthorizationGate",
    "Verdict",
    "extract_bearer_token",
    # Discovery
    "OAUTH_URIS_EXTENSION_URL",
    "SmartCapabilityStatementProvider",
    "build_security_component",
    "get_well_known_json",
    "well_known_document",
    # Configuration
    "GateConfig",
    "build_gate",
    # Flask extension
    "AuthExtension",
    "discovery_blueprint",
]
