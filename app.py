#!/usr/bin/env python3
"""
PE Network Web API

Flask app exposing imports, the review queue and connection paths.
"""

from flask import Flask, jsonify

from config import Settings, get_logger
from repositories import Repository
from routes import network_bp, review_bp, connections_bp
from routes.services import EXTENSION_KEY, build_services

LOGGER = get_logger(__name__)


def create_app(settings: Settings = None, repository: Repository = None) -> Flask:
    """
    Build an app over one set of core services.

    Tests pass their own repository; the default comes from settings.
    """
    app = Flask(__name__)
    services = build_services(settings, repository)
    app.extensions[EXTENSION_KEY] = services

    app.register_blueprint(network_bp)
    app.register_blueprint(review_bp)
    app.register_blueprint(connections_bp)

    @app.route("/")
    def index():
        """Service status"""
        return jsonify({
            "service": "pe-network",
            "backend": services.settings.backend,
            "review_counts": services.review_queue.counts(),
            "active_batches": services.cascade.active_batches(),
        })

    LOGGER.debug(f"App ready on {services.settings.backend} backend")
    return app


app = create_app()


if __name__ == "__main__":
    print("\n" + "="*60)
    print("  PE Network API")
    print("="*60)
    print("  Listening on http://localhost:5001")
    print("="*60 + "\n")
    app.run(debug=True, port=5001)
