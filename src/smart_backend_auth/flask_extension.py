"""Flask host adapter for the authorization gate.

This module connects AuthorizationGate to a Flask application. The gate is
framework-agnostic; this adapter is the "host access-control layer" that
turns its verdicts into Flask behaviour.

Key Components:
- AuthExtension: registers a ``before_request`` hook that evaluates every request
- discovery_blueprint: serves ``/metadata`` and ``/.well-known/smart-configuration``

Translation:
1. ALLOW_ALL                  -> request proceeds to the view
2. DENY_ALL_EXCEPT_DISCOVERY  -> discovery routes proceed, everything else 401
3. AuthError                  -> abort with the error's code (401, or 403 for scope)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Final

from flask import Blueprint, Flask, Response, abort, g, request

from .authorization import Operation
from .capability import METADATA_PATH, SmartCapabilityStatementProvider
from .errors import AuthError
from .gate import Verdict
from .well_known import WELL_KNOWN_PATH, get_well_known_json

if TYPE_CHECKING:
    from .gate import AuthorizationGate

logger = logging.getLogger(__name__)

_EXT_KEY: Final[str] = "smart_auth"
"""Flask extensions registry key for AuthExtension."""

DEFAULT_DISCOVERY_PATHS: Final[frozenset[str]] = frozenset({METADATA_PATH, WELL_KNOWN_PATH})
"""Routes reachable without credentials."""


class AuthExtension:
    """
    Flask glue for the SMART backend-services authorization gate.

    Responsibilities:
    - Read the Authorization header and method of each request
    - Ask the AuthorizationGate for a verdict
    - Store the verdict in ``flask.g.verdict``
    - Convert domain errors to HTTP responses (abort)

    Every request is evaluated, ``OPTIONS`` included. The one exception is
    a CORS preflight that Flask answers itself (automatic ``OPTIONS``
    response, no view runs); browsers never send credentials with those.
    Pass ``allow_preflight=False`` to evaluate those too.

    Pattern:
        auth = AuthExtension()
        auth.init_app(app, gate=gate)

    Usage:
        auth = AuthExtension(build_gate(GateConfig.from_env()))
        auth.init_app(app)
    """

    def __init__(
        self,
        gate: AuthorizationGate | None = None,
        *,
        discovery_paths: Iterable[str] = DEFAULT_DISCOVERY_PATHS,
        allow_preflight: bool = True,
    ) -> None:
        self._gate: AuthorizationGate | None = gate
        self._discovery_paths = frozenset(discovery_paths)
        self._allow_preflight = allow_preflight

    def init_app(self, app: Flask, *, gate: AuthorizationGate | None = None) -> None:
        """Register the authorization hook on the Flask app.

        Args:
            app (Flask): The Flask application instance.
            gate (AuthorizationGate | None, optional): Gate instance. Defaults to
                the one given to the constructor.

        Raises:
            RuntimeError: If no gate was provided at all.
        """
        if gate is not None:
            self._gate = gate
        if self._gate is None:
            raise RuntimeError("AuthExtension requires an AuthorizationGate")

        bound_gate = self._gate

        def authorize_request() -> None:
            return self._authorize_request(bound_gate)

        app.extensions[_EXT_KEY] = self
        app.before_request(authorize_request)

    def _authorize_request(self, gate: AuthorizationGate) -> None:
        if self._allow_preflight and _is_automatic_preflight():
            return None

        try:
            verdict = gate.evaluate(
                request.headers.get("Authorization"),
                Operation(request.method),
            )
        except AuthError as e:
            abort(e.error_code, description=e.description)
        except Exception:
            logger.exception("Unexpected error while authorizing request")
            abort(401, description="Authentication failed")

        g.verdict = verdict
        if (
            verdict is Verdict.DENY_ALL_EXCEPT_DISCOVERY
            and request.path not in self._discovery_paths
        ):
            abort(401, description="Missing token")
        return None


def _is_automatic_preflight() -> bool:
    """True for a CORS preflight that Flask answers without running a view."""
    if request.method != "OPTIONS":
        return False
    if "Access-Control-Request-Method" not in request.headers:
        return False
    rule = request.url_rule
    return rule is not None and bool(getattr(rule, "provide_automatic_options", False))


def discovery_blueprint(
    token_address: str,
    registration_address: str | None = None,
    base_statement: Mapping[str, Any] | None = None,
    capability_provider: SmartCapabilityStatementProvider | None = None,
) -> Blueprint:
    """Blueprint serving the SMART discovery and capability documents.

    Args:
        token_address: OAuth token endpoint to advertise.
        registration_address: Optional registration endpoint to advertise.
        base_statement: Host CapabilityStatement to attach security to.
        capability_provider: Pre-configured provider; overrides the above
            for ``/metadata``.
    """
    provider = capability_provider or SmartCapabilityStatementProvider(
        token_address, registration_address, base_statement
    )
    well_known = get_well_known_json(token_address, registration_address)

    bp = Blueprint("smart_discovery", __name__)

    @bp.get(WELL_KNOWN_PATH)
    def smart_configuration() -> Response:
        return Response(well_known, mimetype="application/json")

    @bp.get(METADATA_PATH)
    def metadata() -> Response:
        return Response(
            json.dumps(provider.get_server_conformance()),
            mimetype="application/fhir+json",
        )

    return bp
