"""
Tests for the well-known discovery document and capability statement.
"""

import json

import smart_backend_auth as m

TOKEN_URL = "https://auth.example.org/token"
REGISTER_URL = "https://auth.example.org/register"


class TestWellKnown:
    def test_document_fields(self):
        doc = m.well_known_document(TOKEN_URL)

        assert doc == {
            "token_endpoint": TOKEN_URL,
            "response_types_supported": ["token"],
            "scopes_supported": [
                "system/*.*",
                "system/*.read",
                "system/*.write",
                "offline_access",
            ],
        }

    def test_registration_endpoint_included_when_configured(self):
        doc = m.well_known_document(TOKEN_URL, REGISTER_URL)

        assert doc["registration_endpoint"] == REGISTER_URL

    def test_json_is_indented(self):
        text = m.get_well_known_json(TOKEN_URL)

        assert json.loads(text)["token_endpoint"] == TOKEN_URL
        assert '\n  "token_endpoint"' in text


class TestCapabilityStatement:
    def test_security_component_token_only(self):
        security = m.build_security_component(TOKEN_URL)

        assert security == {
            "extension": [
                {
                    "url": m.OAUTH_URIS_EXTENSION_URL,
                    "extension": [{"url": "token", "valueUri": TOKEN_URL}],
                }
            ]
        }

    def test_security_component_register_first(self):
        inner = m.build_security_component(TOKEN_URL, REGISTER_URL)["extension"][0]["extension"]

        assert [e["url"] for e in inner] == ["register", "token"]

    def test_default_statement_gets_security(self):
        statement = m.SmartCapabilityStatementProvider(TOKEN_URL).get_server_conformance()

        assert statement["resourceType"] == "CapabilityStatement"
        assert statement["rest"][0]["mode"] == "server"
        assert "security" in statement["rest"][0]

    def test_base_statement_is_not_mutated(self):
        base = {
            "resourceType": "CapabilityStatement",
            "rest": [{"mode": "server", "resource": [{"type": "Patient"}]}],
        }
        provider = m.SmartCapabilityStatementProvider(TOKEN_URL, base_statement=base)

        statement = provider.get_server_conformance()

        assert statement["rest"][0]["resource"] == [{"type": "Patient"}]
        assert "security" in statement["rest"][0]
        assert "security" not in base["rest"][0]

    def test_server_rest_added_when_missing(self):
        base = {"resourceType": "CapabilityStatement", "rest": [{"mode": "client"}]}
        provider = m.SmartCapabilityStatementProvider(TOKEN_URL, base_statement=base)

        rest = provider.get_server_conformance()["rest"]

        assert rest[0] == {"mode": "client"}
        assert rest[1]["mode"] == "server"
        assert "security" in rest[1]

    def test_steps_applied_in_order(self):
        def set_title(statement: dict) -> None:
            statement["title"] = "Demo"

        def suffix_title(statement: dict) -> None:
            statement["title"] += " Server"

        base = m.SmartCapabilityStatementProvider(TOKEN_URL)
        provider = base.with_step(set_title).with_step(suffix_title)

        assert provider.get_server_conformance()["title"] == "Demo Server"
        assert "title" not in base.get_server_conformance()
