"""SMART ``.well-known/smart-configuration`` discovery document."""

from __future__ import annotations

import json
from typing import Any, Final

from .authorization import SCOPE_ALL, SCOPE_READ, SCOPE_WRITE

WELL_KNOWN_PATH: Final[str] = "/.well-known/smart-configuration"

SCOPES_SUPPORTED: Final[tuple[str, ...]] = (
    SCOPE_ALL,
    SCOPE_READ,
    SCOPE_WRITE,
    "offline_access",
)
RESPONSE_TYPES_SUPPORTED: Final[tuple[str, ...]] = ("token",)


def well_known_document(
    token_endpoint: str, registration_endpoint: str | None = None
) -> dict[str, Any]:
    """Build the discovery document as a dict.

    ``registration_endpoint`` is only present when a registration address is
    configured.
    """
    document: dict[str, Any] = {
        "token_endpoint": token_endpoint,
        "response_types_supported": list(RESPONSE_TYPES_SUPPORTED),
        "scopes_supported": list(SCOPES_SUPPORTED),
    }
    if registration_endpoint is not None:
        document["registration_endpoint"] = registration_endpoint
    return document


def get_well_known_json(
    token_endpoint: str, registration_endpoint: str | None = None
) -> str:
    """Render the discovery document as 2-space indented JSON."""
    return json.dumps(well_known_document(token_endpoint, registration_endpoint), indent=2)
