"""Gate configuration loaded from the process environment.

Values come from environment variables, optionally populated from a
``.env`` file via python-dotenv:

==================================== =========================================
``AUTH_SERVER_CERTS_ADDRESS``        Issuer key-set URL (required)
``ADMIN_TOKEN``                      Bearer value that bypasses verification
``AUTH_SERVER_TOKEN_ADDRESS``        OAuth token endpoint (discovery)
``AUTH_SERVER_REGISTRATION_ADDRESS`` Client registration endpoint (discovery)
``JWKS_CACHE_TTL``                   Key-set cache lifetime, seconds (300)
``JWKS_FETCH_TIMEOUT``               Key-set request timeout, seconds (30)
``JWKS_MATCH_KID``                   Select keys by ``kid`` (false)
``TOKEN_ISSUER``                     Expected ``iss`` claim
``TOKEN_AUDIENCE``                   Expected ``aud`` claim
``TOKEN_LEEWAY``                     Clock skew tolerance, seconds (0)
==================================== =========================================
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from .authorization import ScopeAuthorizer
from .gate import AuthorizationGate
from .key_providers import JWKSKeyProvider
from .protocols import CacheStore
from .verifier import JWTVerifier, JWTVerifyOptions

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _optional(env: Mapping[str, str], name: str) -> str | None:
    return env.get(name) or None


@dataclass(frozen=True, slots=True)
class GateConfig:
    """Settings for the authorization gate and its discovery collaborators."""

    certs_address: str
    admin_token: str | None = None
    token_address: str | None = None
    registration_address: str | None = None
    jwks_cache_ttl: int = 300
    jwks_fetch_timeout: float = 30.0
    jwks_match_kid: bool = False
    issuer: str | None = None
    audience: str | None = None
    leeway: int = 0

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, *, dotenv: bool = True
    ) -> GateConfig:
        """Build the configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file into ``os.environ`` first.

        Raises:
            ValueError: If the key-set address is missing or a value is invalid.
        """
        if dotenv:
            load_dotenv()
        env = os.environ if environ is None else environ

        certs_address = env.get("AUTH_SERVER_CERTS_ADDRESS")
        if not certs_address:
            raise ValueError("AUTH_SERVER_CERTS_ADDRESS is required")

        admin_token = _optional(env, "ADMIN_TOKEN")
        if admin_token is not None and any(c.isspace() for c in admin_token):
            raise ValueError("ADMIN_TOKEN cannot contain whitespace")

        return cls(
            certs_address=certs_address,
            admin_token=admin_token,
            token_address=_optional(env, "AUTH_SERVER_TOKEN_ADDRESS"),
            registration_address=_optional(env, "AUTH_SERVER_REGISTRATION_ADDRESS"),
            jwks_cache_ttl=_int(env, "JWKS_CACHE_TTL", 300),
            jwks_fetch_timeout=_float(env, "JWKS_FETCH_TIMEOUT", 30.0),
            jwks_match_kid=_bool(env, "JWKS_MATCH_KID", False),
            issuer=_optional(env, "TOKEN_ISSUER"),
            audience=_optional(env, "TOKEN_AUDIENCE"),
            leeway=_int(env, "TOKEN_LEEWAY", 0),
        )


def build_gate(config: GateConfig, cache: CacheStore | None = None) -> AuthorizationGate:
    """Wire key provider, verifier, authorizer and gate from configuration."""
    provider = JWKSKeyProvider(
        config.certs_address,
        cache=cache,
        ttl_seconds=config.jwks_cache_ttl,
        timeout=config.jwks_fetch_timeout,
        match_kid=config.jwks_match_kid,
    )
    verifier = JWTVerifier(
        provider,
        JWTVerifyOptions(
            issuer=config.issuer,
            audience=config.audience,
            leeway=config.leeway,
        ),
    )
    return AuthorizationGate(verifier, ScopeAuthorizer(), admin_token=config.admin_token)
