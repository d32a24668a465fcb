# CORS configuration
import logging
import os

from flask import request
from flask_cors import CORS

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def allowed_origins():
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return list(DEFAULT_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


def configure_cors(app):
    # Admin screens live on a separate origin; only the API is exposed
    CORS(app, resources={
        r"/api/*": {
            "origins": allowed_origins(),
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Admin-Token", "X-Requested-With"],
        }
    })

    @app.after_request
    def log_cross_origin(response):
        origin = request.headers.get("Origin")
        if origin:
            logger.debug(f"CORS - Origin: {origin} {request.method} -> {response.status_code}")
        return response

    return app
