"""OAuth security metadata for the server's FHIR CapabilityStatement.

Clients discover the token (and registration) endpoints from the
``rest[mode=server].security`` element of ``/metadata``. The endpoints are
carried in the SMART ``oauth-uris`` extension with child extensions named
``register`` and ``token``.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Final

OAUTH_URIS_EXTENSION_URL: Final[str] = (
    "http://fhir-registry.smarthealthit.org/StructureDefinition/oauth-uris"
)
METADATA_PATH: Final[str] = "/metadata"

type CapabilityStatement = dict[str, Any]
type PostProcessStep = Callable[[CapabilityStatement], None]

_DEFAULT_STATEMENT: Final[Mapping[str, Any]] = {
    "resourceType": "CapabilityStatement",
    "status": "active",
    "kind": "instance",
    "fhirVersion": "4.0.1",
    "format": ["json"],
    "rest": [{"mode": "server"}],
}


def build_security_component(
    token_address: str, registration_address: str | None = None
) -> dict[str, Any]:
    """Build the ``security`` element advertising the OAuth endpoints."""
    extensions: list[dict[str, str]] = []
    if registration_address is not None:
        extensions.append({"url": "register", "valueUri": registration_address})
    extensions.append({"url": "token", "valueUri": token_address})

    return {
        "extension": [
            {"url": OAUTH_URIS_EXTENSION_URL, "extension": extensions},
        ],
    }


class SmartCapabilityStatementProvider:
    """Produces the server CapabilityStatement with SMART security attached.

    Post-processing steps customise the statement (title, publisher, ...)
    after the security element is set. ``with_step`` returns a new provider,
    so a configured provider is never mutated.

    Args:
        token_address: OAuth token endpoint.
        registration_address: Optional dynamic client registration endpoint.
        base_statement: Statement generated by the host framework. Defaults
            to a minimal R4 server statement.
        steps: Post-processing steps, applied in order.
    """

    def __init__(
        self,
        token_address: str,
        registration_address: str | None = None,
        base_statement: Mapping[str, Any] | None = None,
        steps: Iterable[PostProcessStep] = (),
    ) -> None:
        self._token_address = token_address
        self._registration_address = registration_address
        self._base = base_statement if base_statement is not None else _DEFAULT_STATEMENT
        self._steps = tuple(steps)

    def with_step(self, step: PostProcessStep) -> SmartCapabilityStatementProvider:
        return SmartCapabilityStatementProvider(
            self._token_address,
            self._registration_address,
            self._base,
            (*self._steps, step),
        )

    def get_server_conformance(self) -> CapabilityStatement:
        statement: CapabilityStatement = copy.deepcopy(dict(self._base))
        security = build_security_component(
            self._token_address, self._registration_address
        )

        rest_components = statement.setdefault("rest", [])
        server_rest = next(
            (rc for rc in rest_components if rc.get("mode") == "server"), None
        )
        if server_rest is None:
            rest_components.append({"mode": "server", "security": security})
        else:
            server_rest["security"] = security

        for step in self._steps:
            step(statement)

        return statement
