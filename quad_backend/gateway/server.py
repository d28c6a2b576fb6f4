"""
API gateway: combines the users, organizations, events, landmarks and
official-status blueprints, and serves stored images.
This is the local entrypoint for development.
"""

import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from quad_backend.auth_service.routes import users_bp
from quad_backend.config import Settings
from quad_backend.database.db_connection import Database
from quad_backend.events_service.routes import events_bp
from quad_backend.gateway.bindings import EXTENSION_KEY, Bindings, get_bindings
from quad_backend.gateway.dispatch import CORS_HEADERS, handle_request
from quad_backend.landmarks_service.routes import landmarks_bp
from quad_backend.official_service.routes import official_bp
from quad_backend.organizations_service.routes import organizations_bp
from quad_backend.storage.blob_store import S3BlobStore
from quad_backend.storage.images import serve_image

API_PREFIX = "/api"


def build_bindings(settings: Settings) -> Bindings:
    """
    Open the database handle and, when a bucket is configured, the blob store.
    """
    storage = None
    if settings.storage_bucket:
        storage = S3BlobStore(
            bucket=settings.storage_bucket,
            endpoint_url=settings.storage_endpoint_url,
            region=settings.storage_region,
            access_key_id=settings.storage_access_key_id,
            secret_access_key=settings.storage_secret_access_key,
        )
    else:
        logging.warning("[Gateway] STORAGE_BUCKET is not set; image upload and serving are disabled.")

    return Bindings(settings=settings, database=Database(settings.database_url), storage=storage)


def create_app(settings: Optional[Settings] = None, bindings: Optional[Bindings] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        settings (Settings, optional): Defaults to Settings.from_env().
            Ignored when ``bindings`` is given.
        bindings (Bindings, optional): Prebuilt handles (tests pass a mocked
            database and an in-memory blob store).

    Returns:
        Flask: The configured Flask application.
    """
    if bindings is None:
        settings = settings or Settings.from_env()
        bindings = build_bindings(settings)
    settings = bindings.settings

    # Basic console logging during API requests
    logging.basicConfig(level=settings.log_level, format="[%(levelname)s] %(asctime)s - %(message)s")

    app = Flask(__name__)
    app.extensions[EXTENSION_KEY] = bindings

    CORS(app, resources={
        r"/*": {
            "origins": "*",
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(users_bp, url_prefix=API_PREFIX)
    app.register_blueprint(organizations_bp, url_prefix=API_PREFIX)
    app.register_blueprint(events_bp, url_prefix=API_PREFIX)
    app.register_blueprint(landmarks_bp, url_prefix=API_PREFIX)
    app.register_blueprint(official_bp, url_prefix=API_PREFIX)
    logging.info("All blueprints registered successfully.")

    # --- IMAGES ---
    @app.route("/images/<path:image_path>", methods=["GET", "OPTIONS"], provide_automatic_options=False)
    def images(image_path: str):
        """
        Serve an uploaded image from the blob store.
        """
        return handle_request(
            request,
            lambda req: serve_image(get_bindings().storage, image_path, CORS_HEADERS),
        )

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    # --- FALLBACKS ---
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logging.error(f"[Gateway] Unhandled error: {e}")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    port = app.extensions[EXTENSION_KEY].settings.gateway_port
    app.run(host="0.0.0.0", port=port, debug=True)
