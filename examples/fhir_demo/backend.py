from flask import Flask, g, jsonify
from flask_cors import CORS

from examples.fhir_demo.app_config import CONFIG, auth
from smart_backend_auth import discovery_blueprint


def create_app() -> Flask:
    """
    Create a minimal FHIR-style API protected by SMART backend-services tokens.

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    # Discovery routes stay reachable without a token
    if CONFIG.token_address:
        app.register_blueprint(
            discovery_blueprint(CONFIG.token_address, CONFIG.registration_address)
        )
    auth.init_app(app)

    CORS(
        app,
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    patients: dict[str, dict] = {}

    @app.get("/Patient/<patient_id>")
    def read_patient(patient_id: str):
        patient = patients.get(patient_id)
        if patient is None:
            return jsonify({"resourceType": "OperationOutcome", "issue": []}), 404
        return jsonify(patient), 200

    @app.put("/Patient/<patient_id>")
    def update_patient(patient_id: str):
        patients[patient_id] = {"resourceType": "Patient", "id": patient_id}
        return jsonify(patients[patient_id]), 200

    @app.get("/whoami")
    def whoami():
        return jsonify({"verdict": g.verdict.value}), 200

    @app.errorhandler(401)
    def unauthorized(error):
        """Handle failed authentication."""
        return jsonify(
            {
                "resourceType": "OperationOutcome",
                "issue": [
                    {"severity": "error", "code": "login", "diagnostics": error.description}
                ],
            }
        ), 401

    @app.errorhandler(403)
    def forbidden(error):
        """Handle insufficient scope."""
        return jsonify(
            {
                "resourceType": "OperationOutcome",
                "issue": [
                    {"severity": "error", "code": "forbidden", "diagnostics": error.description}
                ],
            }
        ), 403

    return app


if __name__ == "__main__":
    create_app().run(port=8080)
